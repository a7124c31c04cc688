from __future__ import annotations

from typing import Iterable, Mapping

from ..graph.build import Entry
from .llm import ChatMessage, OllamaChatClient


PROMPT_TEMPLATE = (
    "Analyze the following two journal entries and summarize the top 3 core themes, "
    "emotions, or concepts they share. Be concise and write for a user hover tooltip. "
    'Format your response as a single sentence starting with "These two entries are both about" '
    "or similar phrasing.\n"
    "\n"
    "Entry 1:\n"
    "Title: {title_a}\n"
    "Content: {content_a}\n"
    "\n"
    "Entry 2:\n"
    "Title: {title_b}\n"
    "Content: {content_b}\n"
    "\n"
    "Provide a concise explanation of their shared themes:"
)

# Tooltip-sized; long entries are cut before prompting.
MAX_CONTENT_CHARS = 4000


class LinkExplainer:
    """Explanation fetcher: asks a chat model why two entries are related.

    Instances are async callables ``(id_a, id_b) -> str`` suitable for
    :meth:`semgraph.explain.cache.ExplanationCache.get_or_fetch`.
    """

    def __init__(self, *, entries: Mapping[str, Entry] | Iterable[Entry], llm: OllamaChatClient):
        if isinstance(entries, Mapping):
            self.entries = dict(entries)
        else:
            self.entries = {e.id: e for e in entries}
        self.llm = llm

    def messages(self, id_a: str, id_b: str) -> list[ChatMessage]:
        a = self._lookup(id_a)
        b = self._lookup(id_b)
        prompt = PROMPT_TEMPLATE.format(
            title_a=a.title.strip(),
            content_a=_clip(a.content),
            title_b=b.title.strip(),
            content_b=_clip(b.content),
        )
        return [ChatMessage(role="user", content=prompt)]

    async def __call__(self, id_a: str, id_b: str) -> str:
        return clean_explanation(await self.llm.achat(self.messages(id_a, id_b)))

    def _lookup(self, entry_id: str) -> Entry:
        e = self.entries.get(entry_id)
        if e is None:
            raise KeyError(f"Unknown entry id: {entry_id}")
        return e


def clean_explanation(text: str) -> str:
    """Collapse whitespace and drop wrapping quotes models like to add."""
    out = " ".join(text.split())
    if len(out) >= 2 and out[0] == out[-1] and out[0] in {'"', "'"}:
        out = out[1:-1].strip()
    return out


def _clip(text: str) -> str:
    t = text.strip()
    if len(t) > MAX_CONTENT_CHARS:
        t = t[:MAX_CONTENT_CHARS].rstrip() + "..."
    return t
