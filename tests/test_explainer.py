import unittest

from semgraph.explain.cache import ExplanationCache
from semgraph.explain.explainer import LinkExplainer, clean_explanation
from semgraph.graph.build import Entry


class FakeLLM:
    def __init__(self, reply):
        self.reply = reply
        self.calls = []

    async def achat(self, messages):
        self.calls.append(messages)
        return self.reply


ENTRIES = [
    Entry(id="a", title="Morning run", content="Ran by the river, felt calm."),
    Entry(id="b", title="Evening walk", content="Walked the dog by the river."),
]


class TestLinkExplainer(unittest.IsolatedAsyncioTestCase):
    async def test_prompt_includes_both_entries(self):
        llm = FakeLLM('"These two entries are both about the river."')
        explainer = LinkExplainer(entries=ENTRIES, llm=llm)

        text = await explainer("a", "b")
        self.assertEqual(text, "These two entries are both about the river.")

        (msgs,) = llm.calls
        self.assertEqual(msgs[0].role, "user")
        self.assertIn("Title: Morning run", msgs[0].content)
        self.assertIn("Content: Walked the dog by the river.", msgs[0].content)

    async def test_unknown_entry_becomes_cached_failure(self):
        llm = FakeLLM("unused")
        cache = ExplanationCache(fallback="n/a")
        explainer = LinkExplainer(entries={e.id: e for e in ENTRIES}, llm=llm)

        with self.assertLogs("semgraph.explain.cache", level="WARNING"):
            entry = await cache.fetch_entry("a", "missing", explainer)
        self.assertTrue(entry.failed)
        self.assertEqual(entry.text, "n/a")
        self.assertEqual(llm.calls, [])

    async def test_cache_calls_model_once_per_pair(self):
        llm = FakeLLM("Both are about the river.")
        cache = ExplanationCache()
        explainer = LinkExplainer(entries=ENTRIES, llm=llm)

        self.assertEqual(await cache.get_or_fetch("b", "a", explainer), "Both are about the river.")
        self.assertEqual(await cache.get_or_fetch("a", "b", explainer), "Both are about the river.")
        self.assertEqual(len(llm.calls), 1)


class TestCleanExplanation(unittest.TestCase):
    def test_collapses_whitespace_and_quotes(self):
        self.assertEqual(clean_explanation("  'Both\n about   rain.' "), "Both about rain.")
        self.assertEqual(clean_explanation("plain"), "plain")


if __name__ == "__main__":
    unittest.main()
