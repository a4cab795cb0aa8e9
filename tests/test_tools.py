import tempfile
import unittest
from pathlib import Path

import httpx

from meetnotes.config import AppConfig, GoogleCredentials, ProviderCredentials, load_config
from meetnotes.errors import ProviderError
from meetnotes.models import ProjectConfig, Status
from meetnotes.providers.calendar import get_calendar
from meetnotes.tools import TOOLS, ToolContext, call_tool, list_tools


class _Closing:
    closed = 0

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed += 1


class FakeCalendar(_Closing):
    def __init__(self):
        self.events = []

    def create_event(self, event):
        if "boom" in event.title:
            raise ProviderError("calendar down")
        self.events.append(event)
        return f"https://cal/{len(self.events)}"

    def list_events(self, start, end):
        return list(self.events)


class FakeMailer(_Closing):
    def __init__(self):
        self.sent = []
        self.drafts = []

    def send(self, draft):
        self.sent.append(draft)
        return "sent"

    def create_draft(self, draft):
        self.drafts.append(draft)
        return "drafted"


class TestTools(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        root = Path(self._tmp.name)
        self.config_path = root / "config.json"
        cfg = AppConfig(storage_base_path=str(root / "notes"), projects=[ProjectConfig(name="work", path="work")])
        self.calendar = FakeCalendar()
        self.mailer = FakeMailer()
        self.local_drafts = FakeMailer()
        self.calendar_calls = []
        self.mailer_calls = []
        self.timeouts = []

        def calendar_factory(config, provider=None, timeout_s=None):
            self.calendar_calls.append(provider)
            self.timeouts.append(timeout_s)
            return self.calendar

        def mailer_factory(config, method=None, timeout_s=None):
            self.mailer_calls.append(method)
            self.timeouts.append(timeout_s)
            return self.mailer

        self.ctx = ToolContext(
            config=cfg,
            config_path=self.config_path,
            calendar_factory=calendar_factory,
            mailer_factory=mailer_factory,
            draft_opener=lambda: self.local_drafts,
            http_timeout=12.5,
        )

    def tearDown(self):
        self._tmp.cleanup()

    def _note(self, title="Sync", content="Nothing yet", **kw):
        res = call_tool("add_note", {"project": "work", "title": title, "content": content, **kw}, self.ctx)
        self.assertTrue(res["success"], res)
        return res

    def test_registry_lists_every_tool(self):
        names = [t["name"] for t in list_tools()]
        self.assertEqual(len(names), 24)
        self.assertEqual(set(names), set(TOOLS))
        schema = next(t for t in list_tools() if t["name"] == "add_note")["input_schema"]
        self.assertIn("project", schema["required"])

    def test_unknown_tool_and_bad_arguments(self):
        self.assertEqual(call_tool("nope", {}, self.ctx), {"success": False, "error": "Unknown tool: nope"})

        res = call_tool("add_note", {"title": "No project"}, self.ctx)
        self.assertFalse(res["success"])
        self.assertIn("Invalid arguments", res["error"])

    def test_exceptions_become_error_results(self):
        res = call_tool("add_note", {"project": "ghost", "title": "T", "content": "c"}, self.ctx)
        self.assertFalse(res["success"])
        self.assertIn("ghost", res["error"])

    def test_add_note_with_extraction(self):
        res = self._note(content="Action: Send the budget report to finance\n", extract_actions=True, tags=["q3"])
        self.assertEqual(res["extracted_actions"], 1)
        self.assertEqual(res["note"]["action_points"][0]["description"], "Send the budget report to finance")

        listed = call_tool("list_notes", {"project": "work"}, self.ctx)
        self.assertEqual(listed["count"], 1)
        self.assertEqual(listed["notes"][0]["action_point_count"], 1)
        self.assertEqual(listed["notes"][0]["tags"], ["q3"])

        got = call_tool("get_note", {"project": "work", "note_id": res["note"]["id"]}, self.ctx)
        self.assertEqual(got["note"]["title"], "Sync")
        self.assertEqual(call_tool("get_note", {"project": "work", "note_id": "x"}, self.ctx)["error"], "Note not found")

    def test_action_points(self):
        note_id = self._note()["note"]["id"]
        added = call_tool(
            "add_action_point",
            {"project": "work", "note_id": note_id, "description": "Book the venue", "priority": "high"},
            self.ctx,
        )
        self.assertTrue(added["success"])
        self.assertEqual(added["action_point"]["priority"], "high")

        bad = call_tool("add_action_point", {"project": "work", "note_id": note_id, "description": "x", "priority": "huge"}, self.ctx)
        self.assertFalse(bad["success"])

        listed = call_tool("list_action_points", {}, self.ctx)
        self.assertEqual(listed["count"], 1)

        extracted = call_tool("extract_action_points", {"content": "TODO: Call the landlord today"}, self.ctx)
        self.assertEqual(extracted["action_points"][0]["priority"], "high")

    def test_projects_are_persisted(self):
        res = call_tool("add_project", {"name": "home"}, self.ctx)
        self.assertTrue(res["success"])
        self.assertEqual(res["project_count"], 2)
        self.assertEqual(load_config(self.config_path).project_names(), ["work", "home"])

        projects = call_tool("list_projects", {}, self.ctx)
        self.assertEqual([p["name"] for p in projects["projects"]], ["work", "home"])

    def test_calendar_event_defaults_to_one_hour(self):
        res = call_tool("create_calendar_event", {"title": "Retro", "start_time": "2024-01-15T10:00:00"}, self.ctx)
        self.assertTrue(res["success"])
        self.assertEqual(self.calendar.events[0].end_time, "2024-01-15T11:00:00")
        self.assertEqual(self.calendar_calls, [None])

        listed = call_tool("list_calendar_events", {"start_date": "a", "end_date": "b", "provider": "outlook"}, self.ctx)
        self.assertEqual(listed["events"][0]["title"], "Retro")
        self.assertEqual(self.calendar_calls[-1], "outlook")
        self.assertEqual(self.timeouts, [12.5, 12.5])
        self.assertEqual(self.calendar.closed, 2)

    def test_add_action_to_calendar(self):
        note_id = self._note()["note"]["id"]
        ap = call_tool("add_action_point", {"project": "work", "note_id": note_id, "description": "Book the venue"}, self.ctx)

        missing = call_tool("add_action_to_calendar", {"schedule_time": "2024-01-15T10:00:00"}, self.ctx)
        self.assertFalse(missing["success"])
        self.assertEqual(missing["available_actions"][0]["id"], ap["action_point"]["id"])

        res = call_tool(
            "add_action_to_calendar",
            {"action_point_id": ap["action_point"]["id"], "schedule_time": "2024-01-15T10:00:00", "duration": 30},
            self.ctx,
        )
        self.assertTrue(res["success"])
        self.assertEqual(self.calendar.events[0].title, "[Action] Book the venue")
        self.assertEqual(self.calendar.events[0].end_time, "2024-01-15T10:30:00")

        done = self.ctx.store.add_action_point("work", note_id, description="Already done", status=Status.COMPLETED)
        res = call_tool(
            "add_action_to_calendar", {"action_point_id": done.id, "schedule_time": "2024-01-15T10:00:00"}, self.ctx
        )
        self.assertEqual(res, {"success": False, "error": "Action point not found"})

    def test_schedule_reports_failed_slots(self):
        note_id = self._note()["note"]["id"]
        for desc in ("Book the venue", "boom goes the budget", "Send invitations"):
            call_tool("add_action_point", {"project": "work", "note_id": note_id, "description": desc}, self.ctx)

        res = call_tool("schedule_action_points", {"start_date": "2024-01-15T09:00:00"}, self.ctx)
        self.assertTrue(res["success"])
        self.assertEqual(res["scheduled"], 2)
        self.assertEqual(res["links"][1], "Failed: [Action] boom goes the budget")
        self.assertEqual(self.calendar.events[1].start_time, "2024-01-15T10:00:00")

    def test_compose_email_routing(self):
        base = {"to": ["a@example.com"], "subject": "Hi", "body": "Body"}

        self.assertEqual(call_tool("compose_email", base, self.ctx)["message"], "drafted")
        self.assertEqual(len(self.local_drafts.drafts), 1)

        call_tool("compose_email", {**base, "method": "gmail"}, self.ctx)
        self.assertEqual(len(self.mailer.drafts), 1)

        sent = call_tool("compose_email", {**base, "send_immediately": True}, self.ctx)
        self.assertTrue(sent["sent"])
        self.assertEqual(len(self.mailer.sent), 1)
        self.assertEqual(self.mailer_calls, ["gmail", None])
        self.assertEqual((self.mailer.closed, self.local_drafts.closed), (2, 1))
        self.assertEqual(self.timeouts, [12.5, 12.5])

    def test_email_action_points(self):
        empty = call_tool("email_action_points", {"to": ["a@example.com"]}, self.ctx)
        self.assertEqual(empty, {"success": False, "error": "No pending action points to email"})

        note_id = self._note()["note"]["id"]
        call_tool("add_action_point", {"project": "work", "note_id": note_id, "description": "Book the venue"}, self.ctx)
        res = call_tool("email_action_points", {"to": ["a@example.com"], "send_immediately": True}, self.ctx)
        self.assertEqual(res["action_point_count"], 1)
        self.assertEqual(self.mailer.sent[0].to, ["a@example.com"])
        self.assertIn("Book the venue", self.mailer.sent[0].body)

    def test_email_meeting_summary_and_open_draft(self):
        note_id = self._note(title="Retro")["note"]["id"]
        res = call_tool("email_meeting_summary", {"to": ["a@example.com"], "project": "work", "note_id": note_id}, self.ctx)
        self.assertTrue(res["success"])
        self.assertEqual(self.local_drafts.drafts[0].subject, "Meeting Summary: Retro")

        call_tool("open_email_draft", {"to": ["b@example.com"], "subject": "S", "body": "B"}, self.ctx)
        self.assertEqual(self.local_drafts.drafts[1].to, ["b@example.com"])

    def test_linking_tools(self):
        a = self._note(title="Planning", content="Backlog velocity roadmap budget hiring", tags=["sprint"])["note"]["id"]
        b = self._note(title="Planning", content="Backlog velocity roadmap design launch", tags=["sprint"])["note"]["id"]

        related = call_tool("find_related_notes", {"project": "work", "note_id": a}, self.ctx)
        self.assertEqual(related["related_notes"][0]["relevance_score"], 73)

        args = {"source_project": "work", "source_note_id": a, "target_project": "work", "target_note_id": b}
        self.assertTrue(call_tool("link_notes", args, self.ctx)["success"])
        self.assertFalse(call_tool("link_notes", args, self.ctx)["success"])

        linked = call_tool("get_linked_notes", {"project": "work", "note_id": b}, self.ctx)
        self.assertEqual(linked["links"][0]["type"], "backlink")

        graph = call_tool("get_note_graph", {}, self.ctx)
        self.assertEqual((graph["node_count"], graph["edge_count"]), (2, 1))

        auto = call_tool("auto_link_notes", {"project": "work", "note_id": a}, self.ctx)
        self.assertEqual(auto["linked_count"], 0)

        obsidian = call_tool("update_obsidian_links", {"project": "work", "note_id": a}, self.ctx)
        self.assertEqual(obsidian["linked_count"], 1)
        backlinks = call_tool("find_backlinks", {"project": "work", "note_id": b, "strict": True}, self.ctx)
        self.assertEqual([x["note_id"] for x in backlinks["backlinks"]], [a])

        self.assertTrue(call_tool("unlink_notes", args, self.ctx)["success"])
        self.assertEqual(call_tool("get_linked_notes", {"project": "work", "note_id": a}, self.ctx)["count"], 0)


class TestProviderClients(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.calendars = []
        self.cfg = AppConfig(
            storage_base_path=self._tmp.name,
            credentials=ProviderCredentials(
                google=GoogleCredentials(client_id="gid", client_secret="gsecret", refresh_token="grt")
            ),
        )

    def tearDown(self):
        self._tmp.cleanup()

    def _calendar_factory(self, reply, status_code=200):
        def handler(request):
            if request.url.path.endswith("/token"):
                return httpx.Response(200, json={"access_token": "tok"})
            return httpx.Response(status_code, json=reply)

        def factory(config, provider=None, **kw):
            cal = get_calendar(config, provider, transport=httpx.MockTransport(handler), **kw)
            self.calendars.append(cal)
            return cal

        return factory

    def test_http_client_is_closed_after_tool_call(self):
        ctx = ToolContext(config=self.cfg, calendar_factory=self._calendar_factory({"id": "e1"}), http_timeout=7.0)
        res = call_tool("create_calendar_event", {"title": "Retro", "start_time": "2024-01-15T10:00:00"}, ctx)

        self.assertEqual(res["link"], "e1")
        session = self.calendars[0].session
        self.assertEqual(session.timeout_s, 7.0)
        self.assertTrue(session._client.is_closed)

    def test_http_client_is_closed_when_provider_fails(self):
        ctx = ToolContext(config=self.cfg, calendar_factory=self._calendar_factory({"error": "nope"}, status_code=500))
        res = call_tool("list_calendar_events", {"start_date": "a", "end_date": "b"}, ctx)

        self.assertFalse(res["success"])
        self.assertIn("500", res["error"])
        self.assertTrue(self.calendars[0].session._client.is_closed)


if __name__ == "__main__":
    unittest.main()
