import asyncio
import unittest

from semgraph.explain.cache import ExplanationCache, canonical_pair


class GatedFetcher:
    """Async fetcher that blocks until released and records its calls."""

    def __init__(self, text="shared themes"):
        self.text = text
        self.calls = []
        self.gate = asyncio.Event()

    async def __call__(self, id_a, id_b):
        self.calls.append((id_a, id_b))
        await self.gate.wait()
        return self.text


async def _drain(cache, a, b):
    while cache.is_pending(a, b):
        await asyncio.sleep(0)


class TestCanonicalPair(unittest.TestCase):
    def test_order_independent(self):
        self.assertEqual(canonical_pair("B", "A"), ("A", "B"))
        self.assertEqual(canonical_pair("A", "B"), ("A", "B"))


class TestExplanationCache(unittest.IsolatedAsyncioTestCase):
    async def test_concurrent_reversed_pairs_share_one_fetch(self):
        cache = ExplanationCache()
        fetcher = GatedFetcher()

        t1 = asyncio.create_task(cache.get_or_fetch("A", "B", fetcher))
        t2 = asyncio.create_task(cache.get_or_fetch("B", "A", fetcher))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        self.assertTrue(cache.is_pending("A", "B"))

        fetcher.gate.set()
        r1, r2 = await asyncio.gather(t1, t2)

        self.assertEqual(fetcher.calls, [("A", "B")])
        self.assertEqual(r1, "shared themes")
        self.assertEqual(r1, r2)

    async def test_hit_does_not_call_fetcher(self):
        cache = ExplanationCache()
        fetcher = GatedFetcher("cached text")
        fetcher.gate.set()
        self.assertEqual(await cache.get_or_fetch("x", "y", fetcher), "cached text")

        async def boom(a, b):
            raise AssertionError("fetcher must not be called on a hit")

        self.assertEqual(await cache.get_or_fetch("y", "x", boom), "cached text")
        self.assertEqual(len(cache), 1)
        self.assertIn(("y", "x"), cache)
        self.assertFalse(cache.is_pending("x", "y"))

    async def test_failure_caches_fallback(self):
        cache = ExplanationCache(fallback="unavailable")
        calls = []

        async def failing(a, b):
            calls.append((a, b))
            raise RuntimeError("quota exceeded")

        with self.assertLogs("semgraph.explain.cache", level="WARNING"):
            text = await cache.get_or_fetch("A", "B", failing)
        self.assertEqual(text, "unavailable")

        entry = await cache.fetch_entry("B", "A", failing)
        self.assertTrue(entry.failed)
        self.assertEqual(entry.text, "unavailable")
        self.assertIn("RuntimeError", entry.error)
        self.assertNotIn("quota", entry.text)
        self.assertEqual(calls, [("A", "B")])

    async def test_empty_result_is_a_failure(self):
        cache = ExplanationCache()

        async def empty(a, b):
            return "   "

        with self.assertLogs("semgraph.explain.cache", level="WARNING"):
            entry = await cache.fetch_entry("A", "B", empty)
        self.assertTrue(entry.failed)
        self.assertEqual(entry.text, cache.fallback)

    async def test_cancelled_caller_does_not_cancel_fetch(self):
        cache = ExplanationCache()
        fetcher = GatedFetcher("finished anyway")

        caller = asyncio.create_task(cache.get_or_fetch("A", "B", fetcher))
        await asyncio.sleep(0)
        caller.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await caller

        self.assertTrue(cache.is_pending("A", "B"))
        fetcher.gate.set()
        await _drain(cache, "A", "B")

        self.assertEqual(cache.peek("A", "B").text, "finished anyway")
        self.assertEqual(await cache.get_or_fetch("B", "A", fetcher), "finished anyway")
        self.assertEqual(len(fetcher.calls), 1)

    async def test_different_pairs_do_not_block_each_other(self):
        cache = ExplanationCache()
        slow = GatedFetcher("slow")

        async def fast(a, b):
            return f"{a}+{b}"

        pending = asyncio.create_task(cache.get_or_fetch("A", "B", slow))
        await asyncio.sleep(0)

        out = await asyncio.wait_for(cache.get_or_fetch("D", "C", fast), timeout=1.0)
        self.assertEqual(out, "C+D")
        self.assertFalse(pending.done())

        slow.gate.set()
        self.assertEqual(await pending, "slow")

    async def test_plain_callable_fetcher(self):
        cache = ExplanationCache()

        def sync_fetcher(a, b):
            return f"sync {a} {b}"

        self.assertEqual(await cache.get_or_fetch("b", "a", sync_fetcher), "sync a b")

    async def test_clear(self):
        cache = ExplanationCache()

        async def f(a, b):
            return "x"

        await cache.get_or_fetch("A", "B", f)
        self.assertEqual(len(cache), 1)
        cache.clear()
        self.assertEqual(len(cache), 0)
        self.assertIsNone(cache.peek("A", "B"))

    async def test_clear_lets_pending_waiters_finish(self):
        cache = ExplanationCache()
        fetcher = GatedFetcher("late answer")

        waiter = asyncio.create_task(cache.get_or_fetch("A", "B", fetcher))
        await asyncio.sleep(0)
        self.assertTrue(cache.is_pending("A", "B"))

        cache.clear()
        self.assertFalse(cache.is_pending("A", "B"))

        fetcher.gate.set()
        self.assertEqual(await waiter, "late answer")
        # The orphaned fetch does not repopulate the cleared cache.
        self.assertIsNone(cache.peek("A", "B"))
        self.assertEqual(len(cache), 0)

        again = GatedFetcher("fresh answer")
        again.gate.set()
        self.assertEqual(await cache.get_or_fetch("B", "A", again), "fresh answer")
        self.assertEqual(again.calls, [("A", "B")])


if __name__ == "__main__":
    unittest.main()
