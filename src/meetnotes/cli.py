from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.text import Text

from .config import (
    AppConfig,
    GoogleCredentials,
    MicrosoftCredentials,
    Settings,
    add_project,
    load_config,
    save_config,
    set_value,
)
from .errors import MeetNotesError
from .linking.service import NoteLinker
from .models import CalendarEvent, Priority, ProjectConfig, StorageKind
from .notes import actions
from .notes.store import NoteStore
from .providers.calendar import get_calendar
from .providers.mail import get_mailer


app = typer.Typer(add_completion=False, help="MeetNotes: meeting notes, action points and linked knowledge.")
console = Console()

project_app = typer.Typer(add_completion=False, help="Manage projects.")
note_app = typer.Typer(add_completion=False, help="Create and read notes.")
action_app = typer.Typer(add_completion=False, help="Action points.")
calendar_app = typer.Typer(add_completion=False, help="Calendar integration (Google / Outlook).")
email_app = typer.Typer(add_completion=False, help="Email integration (draft / Gmail / Outlook).")
config_app = typer.Typer(add_completion=False, help="Show or change configuration.")
link_app = typer.Typer(add_completion=False, help="Note linking (Obsidian-style).")

app.add_typer(project_app, name="project")
app.add_typer(note_app, name="note")
app.add_typer(action_app, name="action")
app.add_typer(calendar_app, name="calendar")
app.add_typer(email_app, name="email")
app.add_typer(config_app, name="config")
app.add_typer(link_app, name="link")


@dataclass
class CliState:
    config_path: Path
    http_timeout: float

    def load(self) -> AppConfig:
        return load_config(self.config_path)

    def save(self, config: AppConfig) -> None:
        save_config(config, self.config_path)


def _state(ctx: typer.Context) -> CliState:
    return ctx.obj


def _store(ctx: typer.Context) -> NoteStore:
    return NoteStore(_state(ctx).load())


def _fail(message: str, code: int = 1) -> None:
    console.print(message, style="red", markup=False)
    raise typer.Exit(code=code)


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(None, "--config", help="Path to config.json (default: $MEETNOTES_CONFIG_DIR/config.json)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    settings = Settings()
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    ctx.obj = CliState(config_path=config or settings.config_path, http_timeout=settings.http_timeout)


# -- projects --------------------------------------------------------------


@project_app.command("add")
def project_add(
    ctx: typer.Context,
    name: str = typer.Argument(...),
    path: str | None = typer.Option(None, "--path", help="Subfolder under the storage base path"),
    storage: StorageKind = typer.Option(StorageKind.LOCAL, "--storage"),
):
    """Add (or replace) a project."""
    state = _state(ctx)
    cfg = state.load()
    add_project(cfg, ProjectConfig(name=name, path=path or name, storage=storage))
    state.save(cfg)
    console.print(f'Project "{name}" added', style="green", markup=False)


@project_app.command("list")
def project_list(ctx: typer.Context):
    """List configured projects."""
    cfg = _state(ctx).load()
    if not cfg.projects:
        console.print("No projects yet. Add one with `meetnotes project add NAME`.", style="yellow", markup=False)
        return

    table = Table(title="Projects")
    table.add_column("name")
    table.add_column("path")
    table.add_column("storage")
    table.add_column("default", justify="center")
    for p in cfg.projects:
        table.add_row(Text(p.name), Text(p.path), Text(p.storage.value), "*" if p.name == cfg.default_project else "")
    console.print(table)


# -- notes -----------------------------------------------------------------


@note_app.command("add")
def note_add(
    ctx: typer.Context,
    project: str = typer.Argument(...),
    title: str = typer.Argument(...),
    content: str | None = typer.Option(None, "--content", "-c", help="Note body (markdown)"),
    file: Path | None = typer.Option(None, "--file", "-f", exists=True, dir_okay=False, help="Read the body from a file"),
    tag: list[str] = typer.Option([], "--tag", "-t", help="Tag (repeatable)"),
    extract: bool = typer.Option(False, "--extract", help="Extract action points from the body"),
):
    """Create a note."""
    if content is None and file is None:
        raise typer.BadParameter("Provide --content or --file")
    body = file.read_text(encoding="utf-8") if file is not None else str(content)

    store = _store(ctx)
    try:
        note = store.create_note(project, title, body, list(tag))
    except MeetNotesError as e:
        _fail(str(e))

    console.print(f'Note "{note.title}" created ({note.id})', style="green", markup=False)
    if extract:
        found = actions.extract_action_points(body)
        for a in found:
            store.add_action_point(
                project, note.id, description=a.description, assignee=a.assignee, due_date=a.due_date, priority=a.priority
            )
        console.print(f"Extracted {len(found)} action point(s)", markup=False)


@note_app.command("list")
def note_list(ctx: typer.Context, project: str = typer.Argument(...)):
    """List notes in a project, newest first."""
    try:
        notes = _store(ctx).list_notes(project)
    except MeetNotesError as e:
        _fail(str(e))

    table = Table(title=f"Notes in {project}")
    table.add_column("id")
    table.add_column("date")
    table.add_column("title")
    table.add_column("tags")
    table.add_column("actions", justify="right")
    for n in notes:
        table.add_row(Text(n.id), Text(n.date.isoformat()), Text(n.title), Text(", ".join(n.tags)), str(len(n.action_points)))
    console.print(table)


@note_app.command("show")
def note_show(ctx: typer.Context, project: str = typer.Argument(...), note_id: str = typer.Argument(...)):
    """Print a note with its action points and links."""
    note = _store(ctx).get_note(project, note_id)
    if note is None:
        _fail("Note not found")

    console.print(note.title, style="bold", markup=False)
    console.print(f"{note.date.isoformat()} | {note.project} | {', '.join(note.tags)}", style="dim", markup=False)
    console.print("")
    console.print(note.content, markup=False)
    if note.action_points:
        console.print("")
        console.print(actions.format_action_points_markdown(note.action_points), markup=False)
    if note.linked_notes:
        console.print("")
        console.print("Links:", style="bold", markup=False)
        for link in note.linked_notes:
            console.print(f"- {link.note_title} ({link.link_type.value}, {link.project}/{link.note_id})", markup=False)


# -- action points -----------------------------------------------------------


@action_app.command("list")
def action_list(
    ctx: typer.Context,
    project: str | None = typer.Option(None, "--project", "-p"),
    all_: bool = typer.Option(False, "--all", help="Include completed action points"),
):
    """List action points across projects."""
    store = _store(ctx)
    points = store.all_action_points(project) if all_ else store.pending_action_points(project)
    if not points:
        console.print("No action points.", style="yellow", markup=False)
        return

    table = Table(title="Action Points")
    table.add_column("id")
    table.add_column("priority")
    table.add_column("description")
    table.add_column("assignee")
    table.add_column("due")
    table.add_column("status")
    for ap in points:
        table.add_row(
            Text(ap.id),
            Text(ap.priority.value),
            Text(ap.description),
            Text(ap.assignee or ""),
            Text(ap.due_date or ""),
            Text(ap.status.value),
        )
    console.print(table)


@action_app.command("add")
def action_add(
    ctx: typer.Context,
    project: str = typer.Argument(...),
    note_id: str = typer.Argument(...),
    description: str = typer.Argument(...),
    assignee: str | None = typer.Option(None, "--assignee", "-a"),
    due: str | None = typer.Option(None, "--due"),
    priority: Priority = typer.Option(Priority.MEDIUM, "--priority"),
):
    """Add an action point to a note."""
    try:
        ap = _store(ctx).add_action_point(
            project, note_id, description=description, assignee=assignee, due_date=due, priority=priority
        )
    except MeetNotesError as e:
        _fail(str(e))
    if ap is None:
        _fail("Note not found")
    console.print(f"Action point added ({ap.id})", style="green", markup=False)


@action_app.command("extract")
def action_extract(file: Path = typer.Argument(..., exists=True, dir_okay=False)):
    """Preview the action points found in a text file."""
    found = actions.extract_action_points(file.read_text(encoding="utf-8"))
    if not found:
        console.print("No action points found.", style="yellow", markup=False)
        return
    for a in found:
        extra = ", ".join(x for x in (a.assignee and f"@{a.assignee}", a.due_date and f"due {a.due_date}") if x)
        console.print(f"- [{a.priority.value}] {a.description}" + (f" ({extra})" if extra else ""), markup=False)


# -- calendar / email ------------------------------------------------------


@calendar_app.command("add")
def calendar_add(
    ctx: typer.Context,
    title: str = typer.Argument(...),
    start: str = typer.Option(..., "--start", help="ISO start time, e.g. 2024-01-15T10:00:00"),
    end: str = typer.Option(..., "--end", help="ISO end time"),
    description: str | None = typer.Option(None, "--description"),
    attendee: list[str] = typer.Option([], "--attendee", help="Attendee email (repeatable)"),
    location: str | None = typer.Option(None, "--location"),
    provider: str | None = typer.Option(None, "--provider", help="google | outlook"),
):
    """Create a calendar event."""
    state = _state(ctx)
    event = CalendarEvent(
        title=title, start_time=start, end_time=end, description=description, attendees=list(attendee), location=location
    )
    try:
        with get_calendar(state.load(), provider, timeout_s=state.http_timeout) as calendar:
            link = calendar.create_event(event)
    except MeetNotesError as e:
        _fail(str(e))
    console.print(f"Event created: {link}", style="green", markup=False)


@calendar_app.command("list")
def calendar_list(
    ctx: typer.Context,
    start: str = typer.Option(..., "--start"),
    end: str = typer.Option(..., "--end"),
    provider: str | None = typer.Option(None, "--provider"),
):
    """List calendar events in a time range."""
    state = _state(ctx)
    try:
        with get_calendar(state.load(), provider, timeout_s=state.http_timeout) as calendar:
            events = calendar.list_events(start, end)
    except MeetNotesError as e:
        _fail(str(e))

    table = Table(title="Events")
    table.add_column("start")
    table.add_column("end")
    table.add_column("title")
    table.add_column("location")
    for e in events:
        table.add_row(Text(e.start_time), Text(e.end_time), Text(e.title), Text(e.location or ""))
    console.print(table)


@email_app.command("actions")
def email_actions(
    ctx: typer.Context,
    to: list[str] = typer.Option(..., "--to", help="Recipient (repeatable)"),
    project: str | None = typer.Option(None, "--project", "-p"),
    subject: str | None = typer.Option(None, "--subject"),
    method: str | None = typer.Option(None, "--method", help="draft | gmail | outlook"),
    send: bool = typer.Option(False, "--send", help="Send instead of creating a draft"),
):
    """Email pending action points."""
    state = _state(ctx)
    cfg = state.load()
    pending = NoteStore(cfg).pending_action_points(project)
    if not pending:
        _fail("No pending action points to email")

    draft = actions.action_points_email(pending, subject)
    draft.to = list(to)
    try:
        with get_mailer(cfg, method, timeout_s=state.http_timeout) as mailer:
            message = mailer.send(draft) if send else mailer.create_draft(draft)
    except MeetNotesError as e:
        _fail(str(e))
    console.print(message, style="green", markup=False)


# -- config ----------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Print the configuration (secrets masked)."""
    data = _state(ctx).load().to_dict()
    for block in data["credentials"].values():
        for k in block:
            if k in ("client_secret", "refresh_token") and block[k]:
                block[k] = "****"
    console.print_json(json.dumps(data))


@config_app.command("set")
def config_set(ctx: typer.Context, key: str = typer.Argument(...), value: str = typer.Argument(...)):
    """Set a config value, e.g. `default_calendar outlook` or `credentials.google.client_id ID`."""
    state = _state(ctx)
    cfg = state.load()
    try:
        set_value(cfg, key, value)
    except MeetNotesError as e:
        _fail(str(e), code=2)
    state.save(cfg)
    console.print(f"{key} updated", style="green", markup=False)


@config_app.command("google")
def config_google(ctx: typer.Context):
    """Prompt for Google OAuth credentials and save them."""
    state = _state(ctx)
    cfg = state.load()
    cfg.credentials.google = GoogleCredentials(
        client_id=typer.prompt("Google client ID"),
        client_secret=typer.prompt("Google client secret", hide_input=True),
        refresh_token=typer.prompt("Refresh token", hide_input=True),
    )
    state.save(cfg)
    console.print("Google credentials saved", style="green")


@config_app.command("microsoft")
def config_microsoft(ctx: typer.Context):
    """Prompt for Microsoft OAuth credentials and save them."""
    state = _state(ctx)
    cfg = state.load()
    cfg.credentials.microsoft = MicrosoftCredentials(
        client_id=typer.prompt("Microsoft client ID"),
        client_secret=typer.prompt("Microsoft client secret", hide_input=True),
        tenant_id=typer.prompt("Tenant ID", default="common"),
        refresh_token=typer.prompt("Refresh token", hide_input=True),
    )
    state.save(cfg)
    console.print("Microsoft credentials saved", style="green")


# -- linking ---------------------------------------------------------------


def _linker(ctx: typer.Context) -> NoteLinker:
    return NoteLinker(_store(ctx))


def _links_table(title: str, links) -> Table:
    table = Table(title=title)
    table.add_column("id")
    table.add_column("title")
    table.add_column("project")
    table.add_column("type")
    table.add_column("score", justify="right")
    for link in links:
        score = "" if link.relevance_score is None else f"{link.relevance_score}%"
        table.add_row(Text(link.note_id), Text(link.note_title), Text(link.project), Text(link.link_type.value), score)
    return table


@link_app.command("find")
def link_find(
    ctx: typer.Context,
    project: str = typer.Argument(...),
    note_id: str = typer.Argument(...),
    limit: int = typer.Option(5, "--limit"),
    min_score: int = typer.Option(15, "--min-score"),
):
    """Show notes related to a note."""
    related = _linker(ctx).find_related_notes(project, note_id, limit, min_score)
    if not related:
        console.print("No related notes found.", style="yellow", markup=False)
        return
    console.print(_links_table("Related Notes", related))


@link_app.command("add")
def link_add(
    ctx: typer.Context,
    source_project: str = typer.Argument(...),
    source_id: str = typer.Argument(...),
    target_project: str = typer.Argument(...),
    target_id: str = typer.Argument(...),
):
    """Link two notes in both directions."""
    res = _linker(ctx).link_notes(source_project, source_id, target_project, target_id)
    if not res.success:
        _fail(res.message)
    console.print(res.message, style="green", markup=False)


@link_app.command("remove")
def link_remove(
    ctx: typer.Context,
    source_project: str = typer.Argument(...),
    source_id: str = typer.Argument(...),
    target_project: str = typer.Argument(...),
    target_id: str = typer.Argument(...),
):
    """Remove the link between two notes."""
    res = _linker(ctx).unlink_notes(source_project, source_id, target_project, target_id)
    if not res.success:
        _fail(res.message)
    console.print(res.message, style="green", markup=False)


@link_app.command("list")
def link_list(ctx: typer.Context, project: str = typer.Argument(...), note_id: str = typer.Argument(...)):
    """Show a note's links."""
    links = _linker(ctx).get_linked_notes(project, note_id)
    if not links:
        console.print("No linked notes.", style="yellow", markup=False)
        return
    console.print(_links_table("Linked Notes", links))


@link_app.command("auto")
def link_auto(
    ctx: typer.Context,
    project: str = typer.Argument(...),
    note_id: str = typer.Argument(...),
    limit: int = typer.Option(3, "--limit"),
    min_score: int = typer.Option(20, "--min-score"),
):
    """Link a note to its most similar notes."""
    added = _linker(ctx).auto_link_related_notes(project, note_id, limit, min_score)
    if not added:
        console.print("No new related notes found to link.", style="yellow", markup=False)
        return
    console.print(f"Auto-linked {len(added)} related note(s)", style="green", markup=False)
    console.print(_links_table("New Links", added))


@link_app.command("backlinks")
def link_backlinks(
    ctx: typer.Context,
    project: str = typer.Argument(...),
    note_id: str = typer.Argument(...),
    strict: bool = typer.Option(False, "--strict", help="Only count [[wikilink]] mentions"),
):
    """Show notes that mention a note."""
    backlinks = _linker(ctx).find_backlinks(project, note_id, strict=strict)
    if not backlinks:
        console.print("No backlinks found.", style="yellow", markup=False)
        return
    console.print(_links_table("Backlinks", backlinks))


@link_app.command("graph")
def link_graph(
    ctx: typer.Context,
    project: str | None = typer.Option(None, "--project", "-p"),
    as_json: bool = typer.Option(False, "--json", help="Print the graph as JSON"),
):
    """Show the note graph."""
    graph = _linker(ctx).get_note_graph(project)
    if as_json:
        console.print_json(json.dumps(graph.to_dict()))
        return

    titles = {n.id: n.title for n in graph.nodes}
    console.print(f"{len(graph.nodes)} notes, {len(graph.edges)} links", style="bold", markup=False)
    for e in graph.edges:
        console.print(f"- {titles.get(e.source, e.source)} <-> {titles.get(e.target, e.target)} ({e.type})", markup=False)


@link_app.command("obsidian")
def link_obsidian(ctx: typer.Context, project: str = typer.Argument(...), note_id: str = typer.Argument(...)):
    """Append a Related Notes section of [[wikilinks]] to a note."""
    note = _linker(ctx).update_note_with_obsidian_links(project, note_id)
    if note is None:
        _fail("Note not found")
    console.print(f"Updated {note.title} with {len(note.linked_notes)} wikilink(s)", style="green", markup=False)


# -- server ----------------------------------------------------------------


@app.command()
def serve(
    ctx: typer.Context,
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8000, "--port"),
):
    """Serve the tool-call API over HTTP (FastAPI)."""
    try:
        import uvicorn
    except ImportError:
        _fail("Missing web dependencies. Install: `pip install -e '.[web]'`", code=2)

    from .web.server import create_app

    app_ = create_app(config_path=_state(ctx).config_path)
    uvicorn.run(app_, host=host, port=int(port))
