import json
import tempfile
import unittest
from pathlib import Path

from semgraph.entries import EntryLoadError, load_entries, save_entries
from semgraph.graph.build import Entry


class TestEntries(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def test_load_json_array(self):
        p = self.tmp / "entries.json"
        p.write_text(
            json.dumps(
                [
                    {"id": "1", "title": "t", "content": "c", "created_at": "2024-01-01", "embedding": [0.1, 0.2]},
                    {"id": 2, "title": "no embedding", "content": "c", "createdAt": "2024-01-02"},
                ]
            ),
            encoding="utf-8",
        )
        rows = load_entries(p)
        self.assertEqual([e.id for e in rows], ["1", "2"])
        self.assertEqual(rows[0].embedding, [0.1, 0.2])
        self.assertIsNone(rows[1].embedding)
        self.assertEqual(rows[1].created_at, "2024-01-02")

    def test_load_wrapped_object_and_jsonl(self):
        p = self.tmp / "entries.json"
        p.write_text(json.dumps({"entries": [{"id": "a"}]}), encoding="utf-8")
        self.assertEqual([e.id for e in load_entries(p)], ["a"])

        pl = self.tmp / "entries.jsonl"
        pl.write_text('{"id": "a"}\n\n{"id": "b", "embedding": [1, 0]}\n', encoding="utf-8")
        self.assertEqual([e.id for e in load_entries(pl)], ["a", "b"])

    def test_load_errors(self):
        bad = self.tmp / "bad.jsonl"
        bad.write_text('{"id": "a"}\n{oops\n', encoding="utf-8")
        with self.assertRaises(EntryLoadError) as ctx:
            load_entries(bad)
        self.assertIn("bad.jsonl:2", str(ctx.exception))

        no_id = self.tmp / "noid.json"
        no_id.write_text(json.dumps([{"title": "x"}]), encoding="utf-8")
        with self.assertRaises(EntryLoadError):
            load_entries(no_id)

        scalar = self.tmp / "scalar.json"
        scalar.write_text("42", encoding="utf-8")
        with self.assertRaises(EntryLoadError):
            load_entries(scalar)

    def test_save_then_load(self):
        p = self.tmp / "out" / "entries.json"
        save_entries(p, [Entry(id="a", title="t", content="c", created_at="now", embedding=[1.0, 2.0])])
        rows = load_entries(p)
        self.assertEqual(rows, [Entry(id="a", title="t", content="c", created_at="now", embedding=[1.0, 2.0])])


if __name__ == "__main__":
    unittest.main()
