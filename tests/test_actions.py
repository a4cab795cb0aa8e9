import unittest
from datetime import date

from meetnotes.models import ActionPoint, Note, Priority, Status
from meetnotes.notes import actions


MEETING = """Weekly sync

Action: Send the budget report to finance
- Need to update the roadmap by Friday
@alice will prepare the slides for the review
TODO: fix it
"""


class TestExtractActionPoints(unittest.TestCase):
    def test_finds_labelled_bulleted_and_mentioned_actions(self):
        found = {a.description: a for a in actions.extract_action_points(MEETING)}

        self.assertIn("Send the budget report to finance", found)
        self.assertIn("Need to update the roadmap by Friday", found)
        self.assertEqual(found["Need to update the roadmap by Friday"].due_date, "Friday")
        self.assertEqual(found["prepare the slides for the review"].assignee, "alice")

    def test_short_descriptions_are_ignored(self):
        descriptions = [a.description for a in actions.extract_action_points(MEETING)]
        self.assertNotIn("fix it", descriptions)

    def test_same_description_reported_once(self):
        text = "Action: Review the contract draft\nTODO: review the contract draft\n"
        self.assertEqual(len(actions.extract_action_points(text)), 1)

    def test_nothing_to_extract(self):
        self.assertEqual(actions.extract_action_points("Just chatting about the weather."), [])


class TestHeuristics(unittest.TestCase):
    def test_detect_priority(self):
        self.assertEqual(actions.detect_priority("Fix the login bug ASAP"), Priority.HIGH)
        self.assertEqual(actions.detect_priority("Get it done this week"), Priority.MEDIUM)
        self.assertEqual(actions.detect_priority("Clean up the wiki eventually"), Priority.LOW)
        self.assertEqual(actions.detect_priority("Rename the repo"), Priority.MEDIUM)

    def test_extract_assignee_and_due_date(self):
        self.assertEqual(actions.extract_assignee("assigned to Bob"), "Bob")
        self.assertEqual(actions.extract_assignee("@carol please check"), "carol")
        self.assertIsNone(actions.extract_assignee("nobody in particular"))
        self.assertEqual(actions.extract_due_date("ship it by March 3"), "March 3")
        self.assertEqual(actions.extract_due_date("finish next week"), "next week")
        self.assertIsNone(actions.extract_due_date("whenever"))


def _ap(i, *, priority=Priority.MEDIUM, status=Status.PENDING, assignee=None, due=None):
    return ActionPoint(
        id=f"ap{i}",
        description=f"Task number {i}",
        note_id="n1",
        assignee=assignee,
        due_date=due,
        priority=priority,
        status=status,
    )


class TestFormatting(unittest.TestCase):
    def test_markdown_groups_by_priority(self):
        out = actions.format_action_points_markdown(
            [
                _ap(1, priority=Priority.LOW),
                _ap(2, priority=Priority.HIGH, assignee="alice", due="Friday"),
                _ap(3, status=Status.COMPLETED),
            ]
        )
        self.assertLess(out.index("### High Priority"), out.index("### Medium Priority"))
        self.assertLess(out.index("### Medium Priority"), out.index("### Low Priority"))
        self.assertIn("- [ ] Task number 2 (@alice) - Due: Friday", out)
        self.assertIn("- [x] Task number 3", out)
        self.assertEqual(actions.format_action_points_markdown([]), "No action points found.")

    def test_action_points_email_skips_completed(self):
        draft = actions.action_points_email([_ap(1, assignee="bob"), _ap(2, status=Status.COMPLETED)])
        self.assertEqual(draft.subject, "Action Points - Meeting Follow-up")
        self.assertIn("1. Task number 1 (Assigned to: bob)", draft.body)
        self.assertNotIn("Task number 2", draft.body)
        self.assertEqual(draft.to, [])

    def test_meeting_summary_email(self):
        note = Note(
            id="n1",
            title="Retro",
            date=date(2024, 2, 1),
            project="work",
            content="Went well.",
            action_points=[_ap(1, assignee="dan", due="Monday")],
        )
        draft = actions.meeting_summary_email(note)
        self.assertEqual(draft.subject, "Meeting Summary: Retro")
        self.assertIn("our meeting on 2024-02-01", draft.body)
        self.assertIn("1. Task number 1 (dan) - Due: Monday", draft.body)
        self.assertNotIn("## Action Points", actions.meeting_summary_email(note, include_action_points=False).body)


class TestScheduling(unittest.TestCase):
    def test_action_event_duration(self):
        ev = actions.action_event(_ap(1, priority=Priority.HIGH), "2024-01-15T10:00:00", 45)
        self.assertEqual(ev.title, "[Action] Task number 1")
        self.assertEqual(ev.start_time, "2024-01-15T10:00:00")
        self.assertEqual(ev.end_time, "2024-01-15T10:45:00")
        self.assertIn("Priority: high", ev.description)
        self.assertIn("Assignee: Unassigned", ev.description)

    def test_schedule_back_to_back(self):
        events = actions.schedule_events(
            [_ap(1), _ap(2, status=Status.COMPLETED), _ap(3)], "2024-01-15T09:00:00", slot_minutes=30
        )
        self.assertEqual([e.start_time for e in events], ["2024-01-15T09:00:00", "2024-01-15T09:30:00"])
        self.assertEqual(events[-1].end_time, "2024-01-15T10:00:00")

    def test_long_titles_are_truncated(self):
        ap = ActionPoint(id="x", description="y" * 80, note_id="n")
        self.assertEqual(actions.action_title(ap), "[Action] " + "y" * 50 + "...")


if __name__ == "__main__":
    unittest.main()
