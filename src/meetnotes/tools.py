"""Named tools with validated arguments, for agent/tool-call integrations.

Every handler returns a JSON-serializable dict with a `success` flag;
`call_tool` turns validation errors and exceptions into
`{"success": False, "error": ...}` so nothing raises across this boundary.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from functools import cached_property
from pathlib import Path
from typing import Any, Callable, Literal

from pydantic import BaseModel, Field, ValidationError

from .config import AppConfig, Settings, add_project, save_config
from .linking.service import NoteLinker
from .models import CalendarEvent, EmailDraft, Priority, ProjectConfig, Status, StorageKind
from .notes import actions
from .notes.store import NoteStore
from .providers.calendar import CalendarProvider, get_calendar
from .providers.mail import EmailProvider, MailtoDraft, get_mailer


logger = logging.getLogger(__name__)

CalendarName = Literal["google", "outlook"]
EmailMethod = Literal["draft", "gmail", "outlook"]


@dataclass
class ToolContext:
    config: AppConfig
    config_path: Path | None = None
    calendar_factory: Callable[..., CalendarProvider] = get_calendar
    mailer_factory: Callable[..., EmailProvider] = get_mailer
    draft_opener: Callable[[], EmailProvider] = MailtoDraft
    http_timeout: float = field(default_factory=lambda: Settings().http_timeout)

    @cached_property
    def store(self) -> NoteStore:
        return NoteStore(self.config)

    @cached_property
    def linker(self) -> NoteLinker:
        return NoteLinker(self.store)

    def calendar(self, provider: str | None = None) -> CalendarProvider:
        return self.calendar_factory(self.config, provider, timeout_s=self.http_timeout)

    def mailer(self, method: str | None = None) -> EmailProvider:
        return self.mailer_factory(self.config, method, timeout_s=self.http_timeout)


@dataclass(frozen=True)
class Tool:
    name: str
    description: str
    args: type[BaseModel]
    handler: Callable[[ToolContext, Any], dict[str, Any]]


TOOLS: dict[str, Tool] = {}


def tool(name: str, description: str, args: type[BaseModel]):
    def register(fn):
        TOOLS[name] = Tool(name=name, description=description, args=args, handler=fn)
        return fn

    return register


def list_tools() -> list[dict[str, Any]]:
    return [
        {"name": t.name, "description": t.description, "input_schema": t.args.model_json_schema()}
        for t in TOOLS.values()
    ]


def call_tool(name: str, args: dict[str, Any] | None, ctx: ToolContext) -> dict[str, Any]:
    t = TOOLS.get(name)
    if t is None:
        return {"success": False, "error": f"Unknown tool: {name}"}

    try:
        parsed = t.args.model_validate(args or {})
    except ValidationError as e:
        return {"success": False, "error": f"Invalid arguments: {e}"}

    try:
        return t.handler(ctx, parsed)
    except Exception as e:
        logger.warning("Tool %s failed: %s", name, e)
        return {"success": False, "error": str(e)}


def _send(ctx: ToolContext, draft: EmailDraft, method: str | None, send_now: bool) -> str:
    # Unsent mail without an explicit method goes to the local mail app.
    if send_now:
        with ctx.mailer(method) as mailer:
            return mailer.send(draft)
    if method in (None, "draft"):
        with ctx.draft_opener() as opener:
            return opener.create_draft(draft)
    with ctx.mailer(method) as mailer:
        return mailer.create_draft(draft)


# -- notes -----------------------------------------------------------------


class AddNoteArgs(BaseModel):
    project: str = Field(description="Name of the project to add the note to")
    title: str = Field(description="Title of the note")
    content: str = Field(description="Content of the note (markdown supported)")
    tags: list[str] = Field(default_factory=list, description="Optional tags for the note")
    extract_actions: bool = Field(False, description="Automatically extract action points from content")


@tool("add_note", "Create a new note in a project with optional automatic action point extraction", AddNoteArgs)
def add_note(ctx: ToolContext, args: AddNoteArgs) -> dict[str, Any]:
    note = ctx.store.create_note(args.project, args.title, args.content, args.tags)
    if not args.extract_actions:
        return {
            "success": True,
            "note": note.to_dict(),
            "message": f'Note "{note.title}" created in project "{args.project}"',
        }

    extracted = actions.extract_action_points(args.content)
    for a in extracted:
        ctx.store.add_action_point(
            args.project,
            note.id,
            description=a.description,
            assignee=a.assignee,
            due_date=a.due_date,
            priority=a.priority,
        )
    updated = ctx.store.get_note(args.project, note.id) or note
    return {
        "success": True,
        "note": updated.to_dict(),
        "extracted_actions": len(extracted),
        "message": f"Note created with {len(extracted)} action points extracted",
    }


class NoteRefArgs(BaseModel):
    project: str = Field(description="Project name")
    note_id: str = Field(description="Note ID")


@tool("get_note", "Retrieve a specific note by ID", NoteRefArgs)
def get_note(ctx: ToolContext, args: NoteRefArgs) -> dict[str, Any]:
    note = ctx.store.get_note(args.project, args.note_id)
    if note is None:
        return {"success": False, "error": "Note not found"}
    return {"success": True, "note": note.to_dict()}


class ProjectArgs(BaseModel):
    project: str = Field(description="Project name to list notes from")


@tool("list_notes", "List all notes in a project", ProjectArgs)
def list_notes(ctx: ToolContext, args: ProjectArgs) -> dict[str, Any]:
    notes = ctx.store.list_notes(args.project)
    return {
        "success": True,
        "count": len(notes),
        "notes": [
            {
                "id": n.id,
                "title": n.title,
                "date": n.date.isoformat(),
                "tags": n.tags,
                "action_point_count": len(n.action_points),
            }
            for n in notes
        ],
    }


class AddActionPointArgs(BaseModel):
    project: str = Field(description="Project name")
    note_id: str = Field(description="ID of the note to add action point to")
    description: str = Field(description="Description of the action point")
    assignee: str | None = Field(None, description="Person assigned to this action")
    due_date: str | None = Field(None, description="Due date for the action")
    priority: Priority = Field(Priority.MEDIUM, description="Priority level")


@tool("add_action_point", "Add an action point to an existing note", AddActionPointArgs)
def add_action_point(ctx: ToolContext, args: AddActionPointArgs) -> dict[str, Any]:
    ap = ctx.store.add_action_point(
        args.project,
        args.note_id,
        description=args.description,
        assignee=args.assignee,
        due_date=args.due_date,
        priority=args.priority,
    )
    if ap is None:
        return {"success": False, "error": "Note not found"}
    return {"success": True, "action_point": ap.to_dict(), "message": "Action point added"}


class ListActionPointsArgs(BaseModel):
    project: str | None = Field(None, description="Filter by project (optional, shows all if omitted)")
    pending_only: bool = Field(True, description="Show only pending action points")


@tool("list_action_points", "List action points across projects", ListActionPointsArgs)
def list_action_points(ctx: ToolContext, args: ListActionPointsArgs) -> dict[str, Any]:
    if args.pending_only:
        points = ctx.store.pending_action_points(args.project)
    else:
        points = ctx.store.all_action_points(args.project)
    return {"success": True, "count": len(points), "action_points": [ap.to_dict() for ap in points]}


class ExtractArgs(BaseModel):
    content: str = Field(description="Text content to extract action points from")


@tool("extract_action_points", "Extract action points from text content using patterns", ExtractArgs)
def extract_action_points(ctx: ToolContext, args: ExtractArgs) -> dict[str, Any]:
    extracted = actions.extract_action_points(args.content)
    return {
        "success": True,
        "count": len(extracted),
        "action_points": [
            {"description": a.description, "assignee": a.assignee, "due_date": a.due_date, "priority": a.priority.value}
            for a in extracted
        ],
    }


class AddProjectArgs(BaseModel):
    name: str = Field(description='Project name (e.g., "work", "personal", "client-x")')
    path: str | None = Field(None, description="Subfolder path for the project (defaults to the name)")
    storage: StorageKind = Field(StorageKind.LOCAL, description="Storage backend")


@tool("add_project", "Add a new project for organizing notes", AddProjectArgs)
def add_project_tool(ctx: ToolContext, args: AddProjectArgs) -> dict[str, Any]:
    add_project(ctx.config, ProjectConfig(name=args.name, path=args.path or args.name, storage=args.storage))
    save_config(ctx.config, ctx.config_path)
    return {
        "success": True,
        "message": f'Project "{args.name}" added',
        "project_count": len(ctx.config.projects),
    }


class NoArgs(BaseModel):
    pass


@tool("list_projects", "List all configured projects", NoArgs)
def list_projects(ctx: ToolContext, args: NoArgs) -> dict[str, Any]:
    return {
        "success": True,
        "default_project": ctx.config.default_project,
        "projects": [p.to_dict() for p in ctx.config.projects],
    }


# -- calendar --------------------------------------------------------------


class CreateEventArgs(BaseModel):
    title: str = Field(description="Title of the event")
    description: str | None = Field(None, description="Event description")
    start_time: str = Field(description="Start time in ISO format (e.g., 2024-01-15T10:00:00)")
    end_time: str | None = Field(None, description="End time in ISO format (defaults to 1 hour after start)")
    attendees: list[str] = Field(default_factory=list, description="List of attendee email addresses")
    location: str | None = Field(None, description="Event location")
    provider: CalendarName | None = Field(None, description="Calendar provider (uses default if not specified)")


@tool("create_calendar_event", "Create a calendar event in Google Calendar or Outlook", CreateEventArgs)
def create_calendar_event(ctx: ToolContext, args: CreateEventArgs) -> dict[str, Any]:
    end_time = args.end_time
    if not end_time:
        end_time = (datetime.fromisoformat(args.start_time) + timedelta(hours=1)).strftime(actions.EVENT_TIME_FORMAT)

    event = CalendarEvent(
        title=args.title,
        description=args.description,
        start_time=args.start_time,
        end_time=end_time,
        attendees=args.attendees,
        location=args.location,
    )
    with ctx.calendar(args.provider) as calendar:
        link = calendar.create_event(event)
    return {"success": True, "message": "Calendar event created", "link": link}


class ListEventsArgs(BaseModel):
    start_date: str = Field(description="Start date in ISO format")
    end_date: str = Field(description="End date in ISO format")
    provider: CalendarName | None = Field(None, description="Calendar provider")


@tool("list_calendar_events", "List upcoming calendar events", ListEventsArgs)
def list_calendar_events(ctx: ToolContext, args: ListEventsArgs) -> dict[str, Any]:
    with ctx.calendar(args.provider) as calendar:
        events = calendar.list_events(args.start_date, args.end_date)
    return {
        "success": True,
        "count": len(events),
        "events": [
            {
                "title": e.title,
                "start_time": e.start_time,
                "end_time": e.end_time,
                "location": e.location,
                "attendee_count": len(e.attendees),
            }
            for e in events
        ],
    }


class ActionToCalendarArgs(BaseModel):
    action_point_id: str | None = Field(None, description="Specific action point ID to add")
    project: str | None = Field(None, description="Filter by project")
    schedule_time: str = Field(description="When to schedule the action (ISO format)")
    duration: int = Field(60, description="Duration in minutes")
    provider: CalendarName | None = Field(None, description="Calendar provider")


@tool("add_action_to_calendar", "Add a specific action point to your calendar", ActionToCalendarArgs)
def add_action_to_calendar(ctx: ToolContext, args: ActionToCalendarArgs) -> dict[str, Any]:
    if not args.action_point_id:
        pending = ctx.store.pending_action_points(args.project)
        return {
            "success": False,
            "error": "No action point ID specified",
            "available_actions": [
                {"id": ap.id, "description": ap.description[:100], "priority": ap.priority.value} for ap in pending
            ],
        }

    ap = ctx.store.find_action_point(args.action_point_id, args.project)
    if ap is None or ap.status == Status.COMPLETED:
        return {"success": False, "error": "Action point not found"}

    event = actions.action_event(ap, args.schedule_time, args.duration)
    with ctx.calendar(args.provider) as calendar:
        link = calendar.create_event(event)
    return {"success": True, "message": "Action point added to calendar", "link": link}


class ScheduleArgs(BaseModel):
    project: str | None = Field(None, description="Filter by project")
    start_date: str = Field(description="Start scheduling from this date (ISO format)")
    slot_duration: int = Field(30, description="Duration per action point in minutes")
    provider: CalendarName | None = Field(None, description="Calendar provider")


@tool("schedule_action_points", "Bulk schedule all pending action points to calendar", ScheduleArgs)
def schedule_action_points(ctx: ToolContext, args: ScheduleArgs) -> dict[str, Any]:
    events = actions.schedule_events(ctx.store.pending_action_points(args.project), args.start_date, args.slot_duration)
    if not events:
        return {"success": True, "message": "No pending action points to schedule", "scheduled": 0}

    results = []
    failed = 0
    with ctx.calendar(args.provider) as calendar:
        for event in events:
            try:
                results.append(calendar.create_event(event))
            except Exception as e:
                # One failed slot should not abort the rest of the schedule.
                logger.warning("Could not schedule %r: %s", event.title, e)
                results.append(f"Failed: {event.title}")
                failed += 1

    return {
        "success": True,
        "message": f"Scheduled {len(results) - failed} of {len(results)} action points",
        "scheduled": len(results) - failed,
        "links": results,
    }


# -- email -----------------------------------------------------------------


class ComposeEmailArgs(BaseModel):
    to: list[str] = Field(description="List of recipient email addresses")
    cc: list[str] = Field(default_factory=list, description="CC recipients")
    bcc: list[str] = Field(default_factory=list, description="BCC recipients")
    subject: str = Field(description="Email subject")
    body: str = Field(description="Email body content")
    method: EmailMethod | None = Field(None, description="Send method (uses default if not specified)")
    send_immediately: bool = Field(False, description="If true, sends immediately; otherwise creates draft")


@tool("compose_email", "Compose and send/draft an email", ComposeEmailArgs)
def compose_email(ctx: ToolContext, args: ComposeEmailArgs) -> dict[str, Any]:
    draft = EmailDraft(to=args.to, cc=args.cc, bcc=args.bcc, subject=args.subject, body=args.body)
    message = _send(ctx, draft, args.method, args.send_immediately)
    return {"success": True, "message": message, "sent": args.send_immediately}


class EmailActionPointsArgs(BaseModel):
    to: list[str] = Field(description="Recipient email addresses")
    project: str | None = Field(None, description="Filter action points by project")
    subject: str | None = Field(None, description="Custom email subject")
    method: EmailMethod | None = Field(None, description="Send method")
    send_immediately: bool = Field(False, description="Send immediately or create draft")


@tool("email_action_points", "Email pending action points to recipients", EmailActionPointsArgs)
def email_action_points(ctx: ToolContext, args: EmailActionPointsArgs) -> dict[str, Any]:
    pending = ctx.store.pending_action_points(args.project)
    if not pending:
        return {"success": False, "error": "No pending action points to email"}

    draft = actions.action_points_email(pending, args.subject)
    draft.to = args.to
    message = _send(ctx, draft, args.method, args.send_immediately)
    return {
        "success": True,
        "message": message,
        "action_point_count": len(pending),
        "sent": args.send_immediately,
    }


class MeetingSummaryArgs(BaseModel):
    to: list[str] = Field(description="Recipient email addresses")
    project: str = Field(description="Project name")
    note_id: str = Field(description="Note ID containing meeting summary")
    include_action_points: bool = Field(True, description="Include action points in email")
    method: EmailMethod | None = Field(None, description="Send method")
    send_immediately: bool = Field(False, description="Send immediately or create draft")


@tool("email_meeting_summary", "Email a meeting summary with action points", MeetingSummaryArgs)
def email_meeting_summary(ctx: ToolContext, args: MeetingSummaryArgs) -> dict[str, Any]:
    note = ctx.store.get_note(args.project, args.note_id)
    if note is None:
        return {"success": False, "error": "Note not found"}

    draft = actions.meeting_summary_email(note, include_action_points=args.include_action_points)
    draft.to = args.to
    message = _send(ctx, draft, args.method, args.send_immediately)
    return {"success": True, "message": message, "sent": args.send_immediately}


class OpenDraftArgs(BaseModel):
    to: list[str] = Field(description="Recipient email addresses")
    cc: list[str] = Field(default_factory=list, description="CC recipients")
    subject: str = Field(description="Email subject")
    body: str = Field(description="Email body")


@tool("open_email_draft", "Open an email draft in the default mail application", OpenDraftArgs)
def open_email_draft(ctx: ToolContext, args: OpenDraftArgs) -> dict[str, Any]:
    draft = EmailDraft(to=args.to, cc=args.cc, subject=args.subject, body=args.body)
    with ctx.draft_opener() as opener:
        return {"success": True, "message": opener.create_draft(draft)}


# -- linking ---------------------------------------------------------------


def _link_summary(links) -> list[dict[str, Any]]:
    return [
        {
            "note_id": link.note_id,
            "title": link.note_title,
            "project": link.project,
            "type": link.link_type.value,
            "relevance_score": link.relevance_score,
        }
        for link in links
    ]


class FindRelatedArgs(BaseModel):
    project: str = Field(description="Project name")
    note_id: str = Field(description="Note ID to find related notes for")
    limit: int = Field(5, description="Maximum number of related notes to return")
    min_score: int = Field(15, description="Minimum relevance score (0-100)")


@tool("find_related_notes", "Find notes related to a specific note based on content similarity", FindRelatedArgs)
def find_related_notes(ctx: ToolContext, args: FindRelatedArgs) -> dict[str, Any]:
    related = ctx.linker.find_related_notes(args.project, args.note_id, args.limit, args.min_score)
    return {"success": True, "count": len(related), "related_notes": _link_summary(related)}


class LinkArgs(BaseModel):
    source_project: str = Field(description="Source note project")
    source_note_id: str = Field(description="Source note ID")
    target_project: str = Field(description="Target note project")
    target_note_id: str = Field(description="Target note ID")


@tool("link_notes", "Create a bidirectional link between two notes (Obsidian-style)", LinkArgs)
def link_notes(ctx: ToolContext, args: LinkArgs) -> dict[str, Any]:
    return ctx.linker.link_notes(
        args.source_project, args.source_note_id, args.target_project, args.target_note_id
    ).to_dict()


@tool("unlink_notes", "Remove the link between two notes", LinkArgs)
def unlink_notes(ctx: ToolContext, args: LinkArgs) -> dict[str, Any]:
    return ctx.linker.unlink_notes(
        args.source_project, args.source_note_id, args.target_project, args.target_note_id
    ).to_dict()


@tool("get_linked_notes", "Get all notes linked to a specific note", NoteRefArgs)
def get_linked_notes(ctx: ToolContext, args: NoteRefArgs) -> dict[str, Any]:
    links = ctx.linker.get_linked_notes(args.project, args.note_id)
    return {"success": True, "count": len(links), "links": _link_summary(links)}


class AutoLinkArgs(BaseModel):
    project: str = Field(description="Project name")
    note_id: str = Field(description="Note ID to auto-link")
    limit: int = Field(3, description="Maximum number of notes to link")
    min_score: int = Field(20, description="Minimum relevance score to auto-link")


@tool("auto_link_notes", "Automatically find and link related notes based on similarity", AutoLinkArgs)
def auto_link_notes(ctx: ToolContext, args: AutoLinkArgs) -> dict[str, Any]:
    added = ctx.linker.auto_link_related_notes(args.project, args.note_id, args.limit, args.min_score)
    return {
        "success": True,
        "linked_count": len(added),
        "new_links": _link_summary(added),
        "message": f"Auto-linked {len(added)} related notes" if added else "No new related notes found to link",
    }


class BacklinkArgs(BaseModel):
    project: str = Field(description="Project name")
    note_id: str = Field(description="Note ID to find backlinks for")
    strict: bool = Field(False, description="Only count [[wikilink]] mentions, not plain title mentions")


@tool("find_backlinks", "Find all notes that reference a specific note", BacklinkArgs)
def find_backlinks(ctx: ToolContext, args: BacklinkArgs) -> dict[str, Any]:
    backlinks = ctx.linker.find_backlinks(args.project, args.note_id, strict=args.strict)
    return {
        "success": True,
        "count": len(backlinks),
        "backlinks": [{"note_id": b.note_id, "title": b.note_title, "project": b.project} for b in backlinks],
    }


class GraphArgs(BaseModel):
    project: str | None = Field(None, description="Filter by project (optional)")


@tool("get_note_graph", "Get a graph representation of all note connections", GraphArgs)
def get_note_graph(ctx: ToolContext, args: GraphArgs) -> dict[str, Any]:
    graph = ctx.linker.get_note_graph(args.project)
    return {
        "success": True,
        "node_count": len(graph.nodes),
        "edge_count": len(graph.edges),
        **graph.to_dict(),
    }


@tool("update_obsidian_links", "Update note content with Obsidian-style [[wikilinks]] for linked notes", NoteRefArgs)
def update_obsidian_links(ctx: ToolContext, args: NoteRefArgs) -> dict[str, Any]:
    note = ctx.linker.update_note_with_obsidian_links(args.project, args.note_id)
    if note is None:
        return {"success": False, "error": "Note not found"}
    return {
        "success": True,
        "message": "Note updated with Obsidian wikilinks",
        "linked_count": len(note.linked_notes),
    }
