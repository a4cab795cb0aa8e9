from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any


class LinkType(str, Enum):
    MANUAL = "manual"
    RELATED = "related"
    BACKLINK = "backlink"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Status(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class StorageKind(str, Enum):
    LOCAL = "local"
    OBSIDIAN = "obsidian"
    NOTION = "notion"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_date(value: Any) -> date | None:
    """Coerce a front-matter value (date, datetime or ISO string) to a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


@dataclass
class NoteLink:
    note_id: str
    note_title: str
    project: str
    link_type: LinkType
    relevance_score: int | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "note_id": self.note_id,
            "note_title": self.note_title,
            "project": self.project,
            "link_type": self.link_type.value,
        }
        if self.relevance_score is not None:
            d["relevance_score"] = int(self.relevance_score)
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NoteLink:
        score = data.get("relevance_score")
        return cls(
            note_id=str(data.get("note_id", "")),
            note_title=str(data.get("note_title", "")),
            project=str(data.get("project", "")),
            link_type=LinkType(data.get("link_type", LinkType.MANUAL.value)),
            relevance_score=int(score) if score is not None else None,
        )


@dataclass
class ActionPoint:
    id: str
    description: str
    note_id: str
    assignee: str | None = None
    due_date: str | None = None
    priority: Priority = Priority.MEDIUM
    status: Status = Status.PENDING

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "assignee": self.assignee,
            "due_date": self.due_date,
            "priority": self.priority.value,
            "status": self.status.value,
            "note_id": self.note_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ActionPoint:
        return cls(
            id=str(data.get("id", "")),
            description=str(data.get("description", "")),
            note_id=str(data.get("note_id", "")),
            assignee=data.get("assignee") or None,
            due_date=data.get("due_date") or None,
            priority=Priority(data.get("priority") or Priority.MEDIUM.value),
            status=Status(data.get("status") or Status.PENDING.value),
        )


@dataclass
class Note:
    """A meeting note as stored in one Markdown file.

    `date` is the calendar day the note belongs to; `created_at` and
    `updated_at` are ISO timestamps maintained by the store.
    """

    id: str
    title: str
    date: date
    project: str
    content: str = ""
    tags: list[str] = field(default_factory=list)
    action_points: list[ActionPoint] = field(default_factory=list)
    linked_notes: list[NoteLink] = field(default_factory=list)
    created_at: str = field(default_factory=utc_now_iso)
    updated_at: str = field(default_factory=utc_now_iso)

    def front_matter(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "date": self.date.isoformat(),
            "project": self.project,
            "tags": list(self.tags),
            "linked_notes": [l.to_dict() for l in self.linked_notes],
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "action_points": [ap.to_dict() for ap in self.action_points],
        }

    def to_dict(self) -> dict[str, Any]:
        return {**self.front_matter(), "content": self.content}

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, content: str | None = None) -> Note:
        return cls(
            id=str(data.get("id", "")),
            title=str(data.get("title", "")),
            date=parse_date(data.get("date")) or date.today(),
            project=str(data.get("project") or ""),
            content=content if content is not None else str(data.get("content") or ""),
            tags=[str(t) for t in (data.get("tags") or [])],
            action_points=[ActionPoint.from_dict(a) for a in (data.get("action_points") or [])],
            linked_notes=[NoteLink.from_dict(l) for l in (data.get("linked_notes") or [])],
            created_at=str(data.get("created_at") or utc_now_iso()),
            updated_at=str(data.get("updated_at") or utc_now_iso()),
        )


@dataclass(frozen=True)
class ProjectConfig:
    name: str
    path: str
    storage: StorageKind = StorageKind.LOCAL

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "path": self.path, "storage": self.storage.value}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProjectConfig:
        name = str(data["name"])
        return cls(
            name=name,
            path=str(data.get("path") or name),
            storage=StorageKind(data.get("storage") or StorageKind.LOCAL.value),
        )


@dataclass
class CalendarEvent:
    title: str
    start_time: str
    end_time: str
    description: str | None = None
    attendees: list[str] = field(default_factory=list)
    location: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "attendees": list(self.attendees),
            "location": self.location,
        }


@dataclass
class EmailDraft:
    to: list[str]
    subject: str
    body: str
    cc: list[str] = field(default_factory=list)
    bcc: list[str] = field(default_factory=list)
