from __future__ import annotations

import re
from typing import Any

import yaml


_FRONT_MATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
_SLUG_RE = re.compile(r"[^a-z0-9]+")


def split_front_matter(text: str) -> tuple[dict[str, Any], str]:
    """Return (front_matter, body). Text without a front-matter block is all body."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    m = _FRONT_MATTER_RE.match(text)
    if not m:
        return {}, text

    data = yaml.safe_load(m.group(1)) or {}
    if not isinstance(data, dict):
        # A scalar/list block is not front matter we understand; keep it as body.
        return {}, text
    return data, text[m.end():]


def render(front_matter: dict[str, Any], body: str) -> str:
    fm = yaml.safe_dump(front_matter, sort_keys=False, allow_unicode=True, default_flow_style=False)
    return f"---\n{fm}---\n{body}"


def slugify(name: str, max_len: int = 50) -> str:
    return _SLUG_RE.sub("-", name.lower()).strip("-")[:max_len]
