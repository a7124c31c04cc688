"""Session-scoped memo of link explanations.

Explanations come from a slow external call, so each unordered pair of entry
ids is fetched at most once per cache instance. Concurrent requests for the
same pair share one in-flight task; different pairs never wait on each other.
The cache is meant to be owned by a session object (a web app, a CLI run) and
lives exactly as long as its owner.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Union


logger = logging.getLogger(__name__)

Pair = tuple[str, str]
Fetcher = Callable[[str, str], Union[Awaitable[str], str]]

DEFAULT_FALLBACK = "Explanation unavailable."


@dataclass(frozen=True)
class CachedExplanation:
    text: str
    failed: bool = False
    # Description of the fetch failure; never shown in place of ``text``.
    error: str | None = None


def canonical_pair(id_a: str, id_b: str) -> Pair:
    a, b = str(id_a), str(id_b)
    return (a, b) if a <= b else (b, a)


class ExplanationCache:
    def __init__(self, *, fallback: str = DEFAULT_FALLBACK):
        self.fallback = fallback
        self._entries: dict[Pair, CachedExplanation] = {}
        self._pending: dict[Pair, asyncio.Task[CachedExplanation]] = {}
        # Fetches orphaned by clear(); held so they can finish and reach their waiters.
        self._detached: set[asyncio.Task[CachedExplanation]] = set()
        self._generation = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, pair: object) -> bool:
        if not isinstance(pair, tuple) or len(pair) != 2:
            return False
        return canonical_pair(*pair) in self._entries

    def peek(self, id_a: str, id_b: str) -> CachedExplanation | None:
        return self._entries.get(canonical_pair(id_a, id_b))

    def is_pending(self, id_a: str, id_b: str) -> bool:
        return canonical_pair(id_a, id_b) in self._pending

    async def get_or_fetch(self, id_a: str, id_b: str, fetcher: Fetcher) -> str:
        """Return the explanation text for a pair, fetching it on first use.

        Never raises for fetch failures: a failed fetch yields (and caches) the
        fallback text. Use :meth:`fetch_entry` to see whether it failed.
        """
        entry = await self.fetch_entry(id_a, id_b, fetcher)
        return entry.text

    async def fetch_entry(self, id_a: str, id_b: str, fetcher: Fetcher) -> CachedExplanation:
        key = canonical_pair(id_a, id_b)

        hit = self._entries.get(key)
        if hit is not None:
            return hit

        task = self._pending.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fetch(key, fetcher, self._generation))
            self._pending[key] = task
            task.add_done_callback(lambda t, key=key: self._forget(key, t))

        # Shielded: a caller that gives up must not cancel the shared fetch.
        return await asyncio.shield(task)

    def clear(self) -> None:
        """Drop every entry. In-flight fetches still answer their waiters but are not cached."""
        self._generation += 1
        self._detached.update(self._pending.values())
        self._pending.clear()
        self._entries.clear()

    async def _fetch(self, key: Pair, fetcher: Fetcher, generation: int) -> CachedExplanation:
        id_a, id_b = key
        try:
            if _is_async(fetcher):
                out = await fetcher(id_a, id_b)
            else:
                out = await asyncio.to_thread(fetcher, id_a, id_b)
                if inspect.isawaitable(out):
                    out = await out
            text = "" if out is None else str(out).strip()
            if not text:
                raise ValueError("fetcher returned an empty explanation")
            entry = CachedExplanation(text=text)
        except Exception as e:
            logger.warning("Explanation fetch failed for %s <-> %s: %s", id_a, id_b, e)
            entry = CachedExplanation(text=self.fallback, failed=True, error=f"{type(e).__name__}: {e}")

        if generation != self._generation:
            return entry
        # Entries are immutable once written.
        self._entries.setdefault(key, entry)
        return self._entries[key]

    def _forget(self, key: Pair, task: asyncio.Task[CachedExplanation]) -> None:
        self._detached.discard(task)
        if self._pending.get(key) is task:
            del self._pending[key]


def _is_async(fn: Fetcher) -> bool:
    return inspect.iscoroutinefunction(fn) or inspect.iscoroutinefunction(getattr(fn, "__call__", None))
