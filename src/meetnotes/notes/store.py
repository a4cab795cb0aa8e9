"""Flat-file note storage: one Markdown file with YAML front matter per note."""

from __future__ import annotations

import logging
import os
import tempfile
import uuid
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Any, Iterable

from ..config import AppConfig, get_project
from ..errors import ProjectNotFoundError, StorageError
from ..models import ActionPoint, Note, Priority, ProjectConfig, Status, StorageKind, utc_now_iso
from . import markdown as md


logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {"title", "content", "tags", "action_points", "linked_notes"}


def generate_id() -> str:
    return uuid.uuid4().hex[:12]


class NoteStore:
    def __init__(self, config: AppConfig):
        self.config = config

    # -- paths -------------------------------------------------------------

    def project_path(self, project: ProjectConfig) -> Path:
        base = Path(self.config.storage_base_path).expanduser()
        if project.storage == StorageKind.OBSIDIAN:
            root = Path(self.config.obsidian_vault_path).expanduser() if self.config.obsidian_vault_path else base
            return root / project.path
        if project.storage == StorageKind.NOTION:
            return base / "notion-cache" / project.path
        return base / project.path

    def _require_project(self, name: str) -> ProjectConfig:
        project = get_project(self.config, name)
        if project is None:
            raise ProjectNotFoundError(name)
        return project

    def _iter_files(self, project_name: str) -> Iterable[tuple[Path, Note]]:
        project = get_project(self.config, project_name)
        if project is None:
            return
        root = self.project_path(project)
        if not root.is_dir():
            return
        for path in sorted(root.glob("*.md")):
            yield path, self._read(path, project_name)

    def _read(self, path: Path, project_name: str) -> Note:
        fm, body = md.split_front_matter(path.read_text(encoding="utf-8", errors="replace"))
        note = Note.from_dict(fm, content=body)
        # Hand-written files may lack front matter; the file name stands in.
        if not note.id:
            note.id = path.stem
        if not note.title:
            note.title = path.stem
        if not note.project:
            note.project = project_name
        return note

    # -- collaborator interface --------------------------------------------

    def get_note(self, project: str, note_id: str) -> Note | None:
        for _, note in self._iter_files(project):
            if note.id == note_id:
                return note
        return None

    def list_notes(self, project: str) -> list[Note]:
        notes = [note for _, note in self._iter_files(project)]
        # Newest first; sort is stable so same-day notes keep file-name order.
        return sorted(notes, key=lambda n: n.date, reverse=True)

    def list_all_notes(self, project: str | None = None) -> list[Note]:
        """Notes of every configured project, in project order (or just `project`)."""
        out: list[Note] = []
        for p in self.config.projects:
            if project is not None and p.name != project:
                continue
            out.extend(self.list_notes(p.name))
        return out

    def create_note(self, project: str, title: str, content: str, tags: list[str] | None = None) -> Note:
        proj = self._require_project(project)
        root = self.project_path(proj)
        root.mkdir(parents=True, exist_ok=True)

        now = utc_now_iso()
        note = Note(
            id=generate_id(),
            title=title,
            date=date.today(),
            project=project,
            content=content,
            tags=list(tags or []),
            created_at=now,
            updated_at=now,
        )

        path = root / f"{note.date.isoformat()}-{md.slugify(title)}.md"
        if path.exists():
            path = root / f"{note.date.isoformat()}-{md.slugify(title)}-{note.id[:6]}.md"
        path.write_text(md.render(note.front_matter(), note.content), encoding="utf-8")
        logger.debug("Created note %s at %s", note.id, path)
        return note

    def update_note(self, project: str, note_id: str, **updates: Any) -> Note | None:
        self._require_project(project)
        updated = self.update_notes([(project, note_id, updates)])
        return updated[0]

    def update_notes(self, updates: list[tuple[str, str, dict[str, Any]]]) -> list[Note | None]:
        """Apply several note updates as one two-phase write.

        Every updated note is first rendered to a temporary file beside its
        target. Only when all of them are staged are they renamed into place;
        if a rename fails, files already replaced get their previous content
        back. Entries whose note does not exist are returned as None.
        """
        for _, _, fields in updates:
            bad = set(fields) - UPDATABLE_FIELDS
            if bad:
                raise ValueError(f"Fields not updatable: {', '.join(sorted(bad))}")

        staged: list[tuple[Path, Path, str]] = []
        results: list[Note | None] = []

        try:
            for project, note_id, fields in updates:
                found = next(((p, n) for p, n in self._iter_files(project) if n.id == note_id), None)
                if found is None:
                    results.append(None)
                    continue

                path, note = found
                new_note = replace(note, **fields, updated_at=utc_now_iso())
                original = path.read_text(encoding="utf-8", errors="replace")
                fd, tmp_name = tempfile.mkstemp(prefix=f".{path.stem}.", suffix=".tmp", dir=path.parent)
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(md.render(new_note.front_matter(), new_note.content))
                staged.append((Path(tmp_name), path, original))
                results.append(new_note)
        except OSError as e:
            for tmp, _, _ in staged:
                tmp.unlink(missing_ok=True)
            raise StorageError(f"Failed to stage note update: {e}") from e

        committed: list[tuple[Path, str]] = []
        try:
            for tmp, path, original in staged:
                os.replace(tmp, path)
                committed.append((path, original))
        except OSError as e:
            for path, original in committed:
                path.write_text(original, encoding="utf-8")
            for tmp, _, _ in staged:
                tmp.unlink(missing_ok=True)
            raise StorageError(f"Failed to commit note update, rolled back {len(committed)} file(s): {e}") from e

        for path, _ in committed:
            logger.debug("Updated %s", path)
        return results

    # -- action points -----------------------------------------------------

    def add_action_point(
        self,
        project: str,
        note_id: str,
        *,
        description: str,
        assignee: str | None = None,
        due_date: str | None = None,
        priority: Priority = Priority.MEDIUM,
        status: Status = Status.PENDING,
    ) -> ActionPoint | None:
        note = self.get_note(project, note_id)
        if note is None:
            return None

        ap = ActionPoint(
            id=generate_id(),
            description=description,
            note_id=note_id,
            assignee=assignee,
            due_date=due_date,
            priority=priority,
            status=status,
        )
        self.update_note(project, note_id, action_points=[*note.action_points, ap])
        return ap

    def all_action_points(self, project: str | None = None) -> list[ActionPoint]:
        out: list[ActionPoint] = []
        for note in self.list_all_notes(project):
            out.extend(note.action_points)
        return out

    def pending_action_points(self, project: str | None = None) -> list[ActionPoint]:
        return [ap for ap in self.all_action_points(project) if ap.status != Status.COMPLETED]

    def find_action_point(self, action_id: str, project: str | None = None) -> ActionPoint | None:
        return next((ap for ap in self.all_action_points(project) if ap.id == action_id), None)
