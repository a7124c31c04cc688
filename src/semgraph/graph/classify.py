from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Strength(str, Enum):
    STRONG = "strong"
    MEDIUM = "medium"
    WEAK = "weak"


@dataclass(frozen=True)
class LinkStrength:
    tier: Strength
    # Rendering hint only: weak links are drawn dashed.
    dashed: bool


@dataclass(frozen=True)
class LinkClassifier:
    """Map a similarity score onto a strength tier.

    ``similarity >= high_cut`` is strong, ``low_cut <= similarity < high_cut``
    is medium, anything lower is weak. Links reaching the classifier have
    already passed the graph's ``min_similarity`` filter, so "weak" still
    means "connected".
    """

    high_cut: float = 0.75
    low_cut: float = 0.5

    def __post_init__(self) -> None:
        if not float(self.high_cut) > float(self.low_cut):
            raise ValueError(f"high_cut ({self.high_cut}) must be greater than low_cut ({self.low_cut})")

    def classify(self, similarity: float) -> LinkStrength:
        s = float(similarity)
        if s >= self.high_cut:
            return LinkStrength(tier=Strength.STRONG, dashed=False)
        if s >= self.low_cut:
            return LinkStrength(tier=Strength.MEDIUM, dashed=False)
        return LinkStrength(tier=Strength.WEAK, dashed=True)
