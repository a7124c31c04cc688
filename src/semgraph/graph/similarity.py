from __future__ import annotations

import math
from numbers import Real
from typing import Any, Sequence

import numpy as np


def as_vector(value: Any) -> np.ndarray | None:
    """Return ``value`` as a 1-D float64 array, or None if it is not a numeric sequence.

    Accepts lists/tuples of real numbers and one-dimensional numeric numpy
    arrays. Strings, mappings, nested sequences and booleans are rejected.
    """
    if value is None:
        return None

    if isinstance(value, np.ndarray):
        if value.ndim != 1 or value.dtype == np.bool_ or not np.issubdtype(value.dtype, np.number):
            return None
        if np.iscomplexobj(value):
            return None
        return value.astype(np.float64)

    if not isinstance(value, (list, tuple)):
        return None
    for x in value:
        # bool is a Real subclass; a list of flags is not an embedding.
        if isinstance(x, bool) or not isinstance(x, Real):
            return None
    return np.asarray(value, dtype=np.float64)


def is_valid_embedding(value: Any) -> bool:
    return as_vector(value) is not None


def cosine_similarity(a: Sequence[float] | np.ndarray | None, b: Sequence[float] | np.ndarray | None) -> float:
    """Cosine similarity of two equal-length vectors.

    Degrades to 0.0 instead of raising: a missing vector, a length mismatch
    or a zero-norm vector all score 0.
    """
    if a is None or b is None:
        return 0.0
    if len(a) != len(b):
        return 0.0

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    return cosine_from_parts(float(np.dot(va, vb)), vector_norm(va), vector_norm(vb))


def vector_norm(v: np.ndarray) -> float:
    return float(np.sqrt(np.dot(v, v)))


def cosine_from_parts(dot: float, norm_a: float, norm_b: float) -> float:
    """Finish a cosine similarity from a dot product and precomputed norms."""
    denom = norm_a * norm_b
    if denom == 0.0:
        return 0.0

    sim = dot / denom
    # NaN/inf components would leak out of [-1, 1].
    if not math.isfinite(sim):
        return 0.0
    return sim
