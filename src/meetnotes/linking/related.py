from __future__ import annotations

from typing import Iterable

from ..models import LinkType, Note, NoteLink
from .similarity import score


def find_related(
    source: Note,
    pool: Iterable[Note],
    *,
    limit: int = 5,
    min_score: int = 15,
) -> list[NoteLink]:
    """Rank `pool` against `source`, best first.

    The pool may contain `source` itself; it scores 0 and falls below any
    positive threshold. Equal scores keep pool order.
    """
    scored = [(note, score(source, note)) for note in pool]
    kept = [item for item in scored if item[1] >= min_score]
    kept.sort(key=lambda item: item[1], reverse=True)

    return [
        NoteLink(
            note_id=note.id,
            note_title=note.title,
            project=note.project,
            link_type=LinkType.RELATED,
            relevance_score=s,
        )
        for note, s in kept[: max(0, int(limit))]
    ]
