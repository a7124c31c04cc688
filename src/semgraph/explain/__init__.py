"""Lazily fetched, session-cached explanations of graph links."""

from .cache import CachedExplanation, ExplanationCache, canonical_pair

__all__ = ["CachedExplanation", "ExplanationCache", "canonical_pair"]
