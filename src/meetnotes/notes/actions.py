from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta

from ..models import ActionPoint, CalendarEvent, EmailDraft, Note, Priority, Status


@dataclass(frozen=True)
class ExtractedAction:
    description: str
    assignee: str | None = None
    due_date: str | None = None
    priority: Priority = Priority.MEDIUM


# Each pattern captures the action text as `desc`; some also capture `who` / `due`.
_ACTION_PATTERNS = [
    # "Action: ...", "TODO: ...", "Task: ..."
    re.compile(r"(?:action|todo|task|to-do):\s*(?P<desc>.+?)(?:\n|$)", re.IGNORECASE),
    # Bullets starting with an obligation
    re.compile(r"[-*]\s+(?P<desc>(?:need to|should|must|will|going to|have to)\s+.+?)(?:\n|$)", re.IGNORECASE),
    # "@person will ..." / "@person to ..."
    re.compile(r"@(?P<who>\w+)\s+(?:will|to|should)\s+(?P<desc>.+?)(?:\n|$)", re.IGNORECASE),
    # Bullets starting with an action verb
    re.compile(
        r"[-*]\s+(?P<desc>(?:follow up|schedule|send|review|prepare|create|update|check|confirm|contact|call|email|meet with|discuss)\s+.+?)(?:\n|$)",
        re.IGNORECASE,
    ),
    # Bullets with a deadline: "- ship the build by Friday"
    re.compile(r"[-*]\s+(?P<desc>.+?)\s+(?:by|before|until|due)\s+(?P<due>\w+(?:\s+\w+)?)", re.IGNORECASE),
]

PRIORITY_KEYWORDS: dict[Priority, list[str]] = {
    Priority.HIGH: ["urgent", "asap", "immediately", "critical", "priority", "important", "today"],
    Priority.MEDIUM: ["soon", "this week", "next few days"],
    Priority.LOW: ["eventually", "when possible", "low priority", "nice to have"],
}

_ASSIGNEE_PATTERNS = [
    re.compile(r"@(\w+)"),
    re.compile(r"assigned to (\w+)", re.IGNORECASE),
    re.compile(r"(\w+) will"),
    re.compile(r"(\w+) to follow up", re.IGNORECASE),
    re.compile(r"(\w+) is responsible", re.IGNORECASE),
]

_DATE_PATTERNS = [
    re.compile(r"by (\w+ \d+)", re.IGNORECASE),
    re.compile(r"before (\w+ \d+)", re.IGNORECASE),
    re.compile(r"due (\w+ \d+)", re.IGNORECASE),
    re.compile(r"deadline:?\s*(\w+ \d+)", re.IGNORECASE),
    re.compile(r"(today|tomorrow|monday|tuesday|wednesday|thursday|friday|saturday|sunday)", re.IGNORECASE),
    re.compile(r"(next week|this week|end of week)", re.IGNORECASE),
]

MIN_DESCRIPTION_CHARS = 10

EVENT_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S"


def detect_priority(text: str) -> Priority:
    lower = text.lower()
    for priority in (Priority.HIGH, Priority.MEDIUM, Priority.LOW):
        if any(k in lower for k in PRIORITY_KEYWORDS[priority]):
            return priority
    return Priority.MEDIUM


def extract_assignee(text: str) -> str | None:
    for pat in _ASSIGNEE_PATTERNS:
        m = pat.search(text)
        if m and m.group(1):
            return m.group(1)
    return None


def extract_due_date(text: str) -> str | None:
    for pat in _DATE_PATTERNS:
        m = pat.search(text)
        if m and m.group(1):
            return m.group(1)
    return None


def clean_description(text: str) -> str:
    return re.sub(r"\s+", " ", re.sub(r"@\w+", "", text)).strip()


def extract_action_points(content: str) -> list[ExtractedAction]:
    """Heuristically pull action items out of free meeting-note text.

    Patterns run in a fixed order; an action found by an earlier pattern wins
    over the same description found later (compared case-insensitively).
    """
    out: list[ExtractedAction] = []
    seen: set[str] = set()

    for pat in _ACTION_PATTERNS:
        for m in pat.finditer(content):
            raw = m.group(0)
            description = clean_description(m.group("desc"))
            key = description.lower()
            if key in seen or len(description) < MIN_DESCRIPTION_CHARS:
                continue
            seen.add(key)

            groups = m.groupdict()
            out.append(
                ExtractedAction(
                    description=description,
                    assignee=groups.get("who") or extract_assignee(raw),
                    due_date=groups.get("due") or extract_due_date(raw),
                    priority=detect_priority(raw),
                )
            )

    return out


def format_action_points_markdown(action_points: list[ActionPoint]) -> str:
    if not action_points:
        return "No action points found."

    lines = ["## Action Points", ""]
    for priority in (Priority.HIGH, Priority.MEDIUM, Priority.LOW):
        items = [ap for ap in action_points if ap.priority == priority]
        if not items:
            continue

        lines.append(f"### {priority.value.capitalize()} Priority")
        lines.append("")
        for ap in items:
            checkbox = "[x]" if ap.status == Status.COMPLETED else "[ ]"
            line = f"- {checkbox} {ap.description}"
            if ap.assignee:
                line += f" (@{ap.assignee})"
            if ap.due_date:
                line += f" - Due: {ap.due_date}"
            lines.append(line)
        lines.append("")

    return "\n".join(lines)


def action_title(ap: ActionPoint) -> str:
    short = ap.description[:50]
    return f"[Action] {short}{'...' if len(ap.description) > 50 else ''}"


def event_description(ap: ActionPoint) -> str:
    return f"Priority: {ap.priority.value}\nAssignee: {ap.assignee or 'Unassigned'}\n\n{ap.description}"


def action_points_email(action_points: list[ActionPoint], subject: str | None = None) -> EmailDraft:
    pending = [ap for ap in action_points if ap.status != Status.COMPLETED]

    items = []
    for i, ap in enumerate(pending, start=1):
        line = f"{i}. {ap.description}"
        if ap.assignee:
            line += f" (Assigned to: {ap.assignee})"
        if ap.due_date:
            line += f" - Due: {ap.due_date}"
        items.append(line)

    body = "\n".join(
        [
            "Hi,",
            "",
            "Here are the action points from our recent meeting:",
            "",
            *items,
            "",
            "Please review and let me know if you have any questions.",
            "",
            "Best regards",
        ]
    )
    return EmailDraft(to=[], subject=subject or "Action Points - Meeting Follow-up", body=body)


def action_event(ap: ActionPoint, start_time: str, duration_minutes: int = 60) -> CalendarEvent:
    start = datetime.fromisoformat(start_time)
    end = start + timedelta(minutes=duration_minutes)
    return CalendarEvent(
        title=action_title(ap),
        description=event_description(ap),
        start_time=start.strftime(EVENT_TIME_FORMAT),
        end_time=end.strftime(EVENT_TIME_FORMAT),
    )


def schedule_events(action_points: list[ActionPoint], start_time: str, slot_minutes: int = 30) -> list[CalendarEvent]:
    """Back-to-back calendar slots for every non-completed action point."""
    start = datetime.fromisoformat(start_time)
    out = []
    for ap in action_points:
        if ap.status == Status.COMPLETED:
            continue
        out.append(action_event(ap, start.strftime(EVENT_TIME_FORMAT), slot_minutes))
        start += timedelta(minutes=slot_minutes)
    return out


def meeting_summary_email(note: Note, *, include_action_points: bool = True) -> EmailDraft:
    body = f"Hi,\n\nHere's a summary from our meeting on {note.date.isoformat()}:\n\n{note.content}"
    if include_action_points and note.action_points:
        body += "\n\n---\n\n## Action Points\n\n"
        for i, ap in enumerate(note.action_points, start=1):
            body += f"{i}. {ap.description}"
            if ap.assignee:
                body += f" ({ap.assignee})"
            if ap.due_date:
                body += f" - Due: {ap.due_date}"
            body += "\n"
    body += "\n\nBest regards"
    return EmailDraft(to=[], subject=f"Meeting Summary: {note.title}", body=body)
