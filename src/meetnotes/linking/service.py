from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from ..errors import StorageError
from ..models import LinkType, Note, NoteLink
from ..notes.store import NoteStore
from .graph import NoteGraph, build_graph
from .links import has_link_to, manual_pair, new_links, remove_links_to
from .related import find_related


logger = logging.getLogger(__name__)

LINK_ICONS = {
    LinkType.BACKLINK: "⬅️",
    LinkType.RELATED: "🔗",
    LinkType.MANUAL: "➡️",
}

LINK_SECTION_HEADINGS = ("## Related Notes", "## Linked Notes")


@dataclass(frozen=True)
class LinkResult:
    success: bool
    message: str

    def to_dict(self) -> dict[str, object]:
        return {"success": self.success, "message": self.message}


def generate_obsidian_links(note: Note) -> str:
    """Note content with a "Related Notes" section of [[wikilinks]] appended.

    Content that already has a Related/Linked Notes heading, or a note with
    no links, is returned unchanged.
    """
    if not note.linked_notes:
        return note.content
    if any(h in note.content for h in LINK_SECTION_HEADINGS):
        return note.content

    lines = ["", "---", "", "## Related Notes", ""]
    for link in note.linked_notes:
        score = f" ({link.relevance_score}% match)" if link.relevance_score else ""
        lines.append(f"- {LINK_ICONS[link.link_type]} [[{link.note_title}]]{score}")
    return note.content + "\n".join(lines)


class NoteLinker:
    """Link operations over every note of the configured projects.

    Each call re-reads the notes it needs from the store; nothing is cached
    between calls.
    """

    def __init__(self, store: NoteStore):
        self.store = store

    def _pool(self) -> list[Note]:
        return self.store.list_all_notes()

    def find_related_notes(self, project: str, note_id: str, limit: int = 5, min_score: int = 15) -> list[NoteLink]:
        source = self.store.get_note(project, note_id)
        if source is None:
            return []
        return find_related(source, self._pool(), limit=limit, min_score=min_score)

    def link_notes(self, source_project: str, source_id: str, target_project: str, target_id: str) -> LinkResult:
        source = self.store.get_note(source_project, source_id)
        target = self.store.get_note(target_project, target_id)
        if source is None or target is None:
            return LinkResult(False, "One or both notes not found")

        if has_link_to(source.linked_notes, target_id):
            return LinkResult(False, "Notes are already linked")

        src_links, tgt_links = manual_pair(source, target)
        try:
            self.store.update_notes(
                [
                    (source_project, source_id, {"linked_notes": src_links}),
                    (target_project, target_id, {"linked_notes": tgt_links}),
                ]
            )
        except StorageError as e:
            logger.warning("Linking %s -> %s failed: %s", source_id, target_id, e)
            return LinkResult(False, str(e))

        logger.info("Linked %s -> %s", source_id, target_id)
        return LinkResult(True, f'Linked "{source.title}" ↔ "{target.title}"')

    def unlink_notes(self, source_project: str, source_id: str, target_project: str, target_id: str) -> LinkResult:
        source = self.store.get_note(source_project, source_id)
        target = self.store.get_note(target_project, target_id)
        if source is None or target is None:
            return LinkResult(False, "One or both notes not found")

        try:
            self.store.update_notes(
                [
                    (source_project, source_id, {"linked_notes": remove_links_to(source.linked_notes, target_id)}),
                    (target_project, target_id, {"linked_notes": remove_links_to(target.linked_notes, source_id)}),
                ]
            )
        except StorageError as e:
            logger.warning("Unlinking %s -> %s failed: %s", source_id, target_id, e)
            return LinkResult(False, str(e))

        logger.info("Unlinked %s -> %s", source_id, target_id)
        return LinkResult(True, "Notes unlinked")

    def get_linked_notes(self, project: str, note_id: str) -> list[NoteLink]:
        note = self.store.get_note(project, note_id)
        if note is None:
            return []
        return list(note.linked_notes)

    def auto_link_related_notes(self, project: str, note_id: str, limit: int = 3, min_score: int = 20) -> list[NoteLink]:
        note = self.store.get_note(project, note_id)
        if note is None:
            return []

        related = find_related(note, self._pool(), limit=limit, min_score=min_score)
        added = new_links(note.linked_notes, related)
        if added:
            self.store.update_note(project, note_id, linked_notes=[*note.linked_notes, *added])
            logger.info("Auto-linked %d note(s) to %s", len(added), note_id)
        return added

    def find_backlinks(self, project: str, note_id: str, *, strict: bool = False) -> list[NoteLink]:
        """Notes whose text mentions the target note.

        A `[[Title]]` wikilink always counts. Unless `strict`, a plain
        case-insensitive mention of the title counts too.
        """
        target = self.store.get_note(project, note_id)
        if target is None:
            return []

        wikilink = re.compile(r"\[\[" + re.escape(target.title) + r"\]\]", re.IGNORECASE)
        title_lower = target.title.lower()

        out: list[NoteLink] = []
        for note in self._pool():
            if note.id == note_id:
                continue
            mentioned = bool(wikilink.search(note.content))
            if not mentioned and not strict:
                mentioned = title_lower in note.content.lower()
            if mentioned:
                out.append(
                    NoteLink(note_id=note.id, note_title=note.title, project=note.project, link_type=LinkType.BACKLINK)
                )
        return out

    def get_note_graph(self, project: str | None = None) -> NoteGraph:
        return build_graph(self.store.list_all_notes(project))

    def update_note_with_obsidian_links(self, project: str, note_id: str) -> Note | None:
        note = self.store.get_note(project, note_id)
        if note is None:
            return None
        return self.store.update_note(project, note_id, content=generate_obsidian_links(note))
