from __future__ import annotations

from ..models import LinkType, Note, NoteLink


def has_link_to(links: list[NoteLink], note_id: str) -> bool:
    return any(l.note_id == note_id for l in links)


def remove_links_to(links: list[NoteLink], note_id: str) -> list[NoteLink]:
    return [l for l in links if l.note_id != note_id]


def manual_pair(source: Note, target: Note) -> tuple[list[NoteLink], list[NoteLink]]:
    """New link lists for a manual link: manual on `source`, backlink on `target`."""
    src_links = [
        *source.linked_notes,
        NoteLink(note_id=target.id, note_title=target.title, project=target.project, link_type=LinkType.MANUAL),
    ]
    tgt_links = [
        *target.linked_notes,
        NoteLink(note_id=source.id, note_title=source.title, project=source.project, link_type=LinkType.BACKLINK),
    ]
    return src_links, tgt_links


def new_links(existing: list[NoteLink], candidates: list[NoteLink]) -> list[NoteLink]:
    """Candidates whose target is not linked yet (in `existing` or earlier in `candidates`)."""
    seen = {l.note_id for l in existing}
    out: list[NoteLink] = []
    for c in candidates:
        if c.note_id in seen:
            continue
        seen.add(c.note_id)
        out.append(c)
    return out
