from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from ..models import Note


@dataclass(frozen=True)
class GraphNode:
    id: str
    title: str
    project: str


@dataclass(frozen=True)
class GraphEdge:
    source: str
    target: str
    type: str


@dataclass
class NoteGraph:
    nodes: list[GraphNode] = field(default_factory=list)
    edges: list[GraphEdge] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [vars(n).copy() for n in self.nodes],
            "edges": [vars(e).copy() for e in self.edges],
        }


def edge_key(a: str, b: str) -> str:
    return "-".join(sorted((a, b)))


def build_graph(notes: Iterable[Note]) -> NoteGraph:
    """One node per note, one undirected edge per linked pair.

    A manual link and its backlink collapse to a single edge. The edge keeps
    the type of the first link visited, so the result depends on the order
    of `notes` and of each note's links.
    """
    graph = NoteGraph()
    seen: set[str] = set()

    for note in notes:
        graph.nodes.append(GraphNode(id=note.id, title=note.title, project=note.project))
        for link in note.linked_notes:
            key = edge_key(note.id, link.note_id)
            if key in seen:
                continue
            seen.add(key)
            graph.edges.append(GraphEdge(source=note.id, target=link.note_id, type=link.link_type.value))

    return graph
