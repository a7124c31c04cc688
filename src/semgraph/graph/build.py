"""Similarity graph construction.

Every unordered pair of entries is scored with cosine similarity and linked
when the score reaches ``min_similarity``. Entries are sorted by id before
anything else, so the same set of entries always yields the same node indices
and the same link order no matter how the input was ordered.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Mapping

import numpy as np

from .classify import LinkClassifier, Strength
from .extract import detect_mood
from .similarity import as_vector, cosine_from_parts, vector_norm


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Entry:
    id: str
    title: str = ""
    content: str = ""
    created_at: str | datetime | None = None
    embedding: Any = None

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "Entry":
        if d.get("id") is None:
            raise ValueError("entry is missing 'id'")
        return cls(
            id=str(d["id"]),
            title=str(d.get("title") or ""),
            content=str(d.get("content") or ""),
            created_at=d.get("created_at", d.get("createdAt")),
            embedding=d.get("embedding"),
        )

    def to_dict(self) -> dict[str, Any]:
        emb = self.embedding
        if isinstance(emb, np.ndarray):
            emb = emb.tolist()
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "created_at": _ts(self.created_at),
            "embedding": emb,
        }


@dataclass(frozen=True)
class Node:
    id: str
    title: str
    content: str
    created_at: str | datetime | None
    index: int
    degree: int = 0
    mood: str = "neutral"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "created_at": _ts(self.created_at),
            "index": self.index,
            "degree": self.degree,
            "mood": self.mood,
        }


@dataclass(frozen=True)
class Link:
    source: str
    target: str
    similarity: float
    strength: Strength
    dashed: bool
    # Rendering weight; currently the similarity itself.
    value: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "similarity": self.similarity,
            "strength": self.strength.value,
            "dashed": self.dashed,
            "value": self.value,
        }


@dataclass(frozen=True)
class Graph:
    nodes: list[Node] = field(default_factory=list)
    links: list[Link] = field(default_factory=list)
    # Entries dropped for a missing/invalid embedding or a duplicate id.
    excluded: int = 0

    def node(self, node_id: str) -> Node | None:
        return next((n for n in self.nodes if n.id == node_id), None)

    def neighbors(self, node_id: str) -> list[Link]:
        """Links touching ``node_id``, strongest first."""
        hits = [ln for ln in self.links if ln.source == node_id or ln.target == node_id]
        return sorted(hits, key=lambda ln: ln.similarity, reverse=True)

    def stats(self) -> dict[str, Any]:
        tiers = Counter(ln.strength.value for ln in self.links)
        return {
            "nodes": len(self.nodes),
            "links": len(self.links),
            "excluded": self.excluded,
            "strong": tiers.get(Strength.STRONG.value, 0),
            "medium": tiers.get(Strength.MEDIUM.value, 0),
            "weak": tiers.get(Strength.WEAK.value, 0),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "links": [ln.to_dict() for ln in self.links],
        }


def build_graph(
    entries: Iterable[Entry | Mapping[str, Any]],
    *,
    min_similarity: float = 0.4,
    classifier: LinkClassifier | None = None,
) -> Graph:
    """Build the similarity graph for ``entries``."""
    classifier = classifier or LinkClassifier()
    min_similarity = float(min_similarity)

    by_id: dict[str, tuple[Entry, np.ndarray]] = {}
    total = 0

    for raw in entries:
        total += 1
        e = raw if isinstance(raw, Entry) else Entry.from_dict(raw)
        vec = as_vector(e.embedding)
        if vec is None:
            continue
        prev = by_id.get(e.id)
        if prev is not None:
            logger.warning("Duplicate entry id %r; keeping one copy", e.id)
            # Survivor must not depend on input order.
            if _dedup_key(prev[0], prev[1]) <= _dedup_key(e, vec):
                continue
        by_id[e.id] = (e, vec)

    kept = sorted(by_id.values(), key=lambda item: item[0].id)
    norms = [vector_norm(v) for _, v in kept]

    links: list[Link] = []
    degree = [0] * len(kept)

    for i in range(len(kept)):
        a, va = kept[i]
        for j in range(i + 1, len(kept)):
            b, vb = kept[j]
            if len(va) != len(vb):
                sim = 0.0
            else:
                sim = cosine_from_parts(float(np.dot(va, vb)), norms[i], norms[j])
            if sim < min_similarity:
                continue
            ls = classifier.classify(sim)
            links.append(
                Link(
                    source=a.id,
                    target=b.id,
                    similarity=sim,
                    strength=ls.tier,
                    dashed=ls.dashed,
                    value=sim,
                )
            )
            degree[i] += 1
            degree[j] += 1

    nodes = [
        Node(
            id=e.id,
            title=e.title,
            content=e.content,
            created_at=e.created_at,
            index=idx,
            degree=degree[idx],
            mood=detect_mood(e.title, e.content),
        )
        for idx, (e, _) in enumerate(kept)
    ]

    logger.debug(
        "Built graph: %d nodes, %d links (%d entries excluded, min_similarity=%.3f)",
        len(nodes),
        len(links),
        total - len(kept),
        min_similarity,
    )
    return Graph(nodes=nodes, links=links, excluded=total - len(kept))


def _dedup_key(e: Entry, vec: np.ndarray) -> tuple:
    return (e.title, e.content, str(e.created_at), tuple(vec.tolist()))


def _ts(value: str | datetime | None) -> str | None:
    if isinstance(value, datetime):
        return value.isoformat()
    return value
