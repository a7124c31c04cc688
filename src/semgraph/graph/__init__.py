"""Semantic similarity graph over embedded text entries.

Entries are compared pairwise with cosine similarity; pairs reaching a
threshold become links, each classified into a strength tier. Everything
here is pure and synchronous; the graph is rebuilt from scratch on each call.
"""

from .build import Entry, Graph, Link, Node, build_graph
from .classify import LinkClassifier, LinkStrength, Strength
from .similarity import cosine_similarity, is_valid_embedding

__all__ = [
    "Entry",
    "Graph",
    "Link",
    "LinkClassifier",
    "LinkStrength",
    "Node",
    "Strength",
    "build_graph",
    "cosine_similarity",
    "is_valid_embedding",
]
