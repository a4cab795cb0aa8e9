from __future__ import annotations

import logging
import math

from ..models import Note
from .keywords import extract_keywords


logger = logging.getLogger(__name__)

TAG_WEIGHT = 20
KEYWORD_WEIGHT = 50
SAME_PROJECT_BONUS = 10
DATE_WINDOW_DAYS = 7
DATE_BONUS = 10
ASSIGNEE_WEIGHT = 5


def _assignees(note: Note) -> set[str]:
    return {ap.assignee for ap in note.action_points if ap.assignee}


def score(a: Note, b: Note) -> int:
    """Relatedness of `b` to `a`. Zero for a note compared with itself.

    Sum of: 20 per tag of `a` present in `b`, up to 50 for keyword overlap
    (shared / larger keyword set), 10 for the same project, `10 - days` when
    the notes are at most a week apart, 5 per shared assignee. Rounded half
    up at the end; there is no upper bound.
    """
    if a.id == b.id:
        return 0

    total = 0.0

    common_tags = [t for t in a.tags if t in b.tags]
    total += len(common_tags) * TAG_WEIGHT

    kw_a = extract_keywords(a.content + " " + a.title)
    kw_b = extract_keywords(b.content + " " + b.title)
    overlap = sum(1 for k in kw_a if k in kw_b)
    largest = max(len(kw_a), len(kw_b))
    if largest > 0:
        total += overlap / largest * KEYWORD_WEIGHT

    if a.project == b.project:
        total += SAME_PROJECT_BONUS

    days = abs((a.date - b.date).days)
    if days <= DATE_WINDOW_DAYS:
        total += DATE_BONUS - days

    shared = _assignees(a) & _assignees(b)
    total += len(shared) * ASSIGNEE_WEIGHT

    result = math.floor(total + 0.5)
    logger.debug("score(%s, %s) = %s", a.id, b.id, result)
    return result
