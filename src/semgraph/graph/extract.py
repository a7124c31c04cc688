from __future__ import annotations

import re

# Keyword -> mood tag, checked in this order; the first hit wins.
# Matching is substring based ("unhappy" counts as happy), which is what the
# graph UI has always done when colouring nodes.
_MOODS: tuple[str, ...] = (
    "happy",
    "sad",
    "angry",
    "sleepy",
    "jealous",
    "royal",
)

NEUTRAL = "neutral"


def norm_text(text: str) -> str:
    # Normalize for stable matching.
    return re.sub(r"\s+", " ", text.strip()).lower()


def detect_mood(title: str | None, content: str | None) -> str:
    """Return the mood tag for an entry, or ``"neutral"`` when no keyword matches."""
    text = norm_text(f"{title or ''} {content or ''}")
    if not text:
        return NEUTRAL
    for mood in _MOODS:
        if mood in text:
            return mood
    return NEUTRAL
