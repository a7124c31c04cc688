from __future__ import annotations

from dataclasses import dataclass, replace

import numpy as np

from ..graph.build import Entry


@dataclass(frozen=True)
class EmbeddingResult:
    vectors: np.ndarray  # shape [n, d], float32, L2-normalized


class Embedder:
    def __init__(self, model_name: str):
        # Import here so the graph engine still runs without embedding deps.
        from fastembed import TextEmbedding  # type: ignore

        self.model_name = model_name
        self._model = TextEmbedding(model_name=model_name)

    def embed_texts(self, texts: list[str]) -> EmbeddingResult:
        if not texts:
            return EmbeddingResult(vectors=np.zeros((0, 0), dtype=np.float32))

        vectors = np.array(list(self._model.embed(texts)), dtype=np.float32)
        vectors = _l2_normalize(vectors)
        return EmbeddingResult(vectors=vectors)


def entry_text(e: Entry) -> str:
    # Content carries the meaning; the title is a short hint in front of it.
    return f"{e.title.strip()}\n\n{e.content.strip()}".strip()


def embed_entries(
    entries: list[Entry],
    *,
    embedder: Embedder,
    overwrite: bool = False,
    batch_size: int = 64,
) -> tuple[list[Entry], int]:
    """Fill in embeddings for entries that lack one. Returns (entries, num_embedded)."""
    todo = [i for i, e in enumerate(entries) if overwrite or e.embedding is None]
    out = list(entries)

    for start in range(0, len(todo), batch_size):
        idxs = todo[start : start + batch_size]
        res = embedder.embed_texts([entry_text(out[i]) for i in idxs])
        for i, vec in zip(idxs, res.vectors):
            out[i] = replace(out[i], embedding=[float(x) for x in vec])

    return out, len(todo)


def _l2_normalize(x: np.ndarray, eps: float = 1e-12) -> np.ndarray:
    norm = np.linalg.norm(x, axis=1, keepdims=True)
    return x / np.maximum(norm, eps)
