from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Iterable

from .graph.build import Entry


class EntryLoadError(ValueError):
    pass


def load_entries(path: str | os.PathLike[str]) -> list[Entry]:
    """Read entries from a JSON array, a ``{"entries": [...]}`` object, or JSON lines."""
    p = Path(path)
    text = p.read_text(encoding="utf-8")
    if not text.strip():
        return []

    if p.suffix.lower() in {".jsonl", ".ndjson"}:
        records = []
        for lineno, line in enumerate(text.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                records.append(json.loads(line))
            except json.JSONDecodeError as e:
                raise EntryLoadError(f"{p.name}:{lineno}: invalid JSON ({e.msg})") from e
    else:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise EntryLoadError(f"{p.name}:{e.lineno}: invalid JSON ({e.msg})") from e
        if isinstance(data, dict):
            data = data.get("entries")
        if not isinstance(data, list):
            raise EntryLoadError(f"{p.name}: expected a list of entries or an object with an 'entries' list")
        records = data

    return entries_from_records(records, source=p.name)


def entries_from_records(records: Iterable[Any], *, source: str = "<records>") -> list[Entry]:
    out: list[Entry] = []
    for i, rec in enumerate(records):
        if not isinstance(rec, dict):
            raise EntryLoadError(f"{source}: record {i} is not an object")
        try:
            out.append(Entry.from_dict(rec))
        except ValueError as e:
            raise EntryLoadError(f"{source}: record {i}: {e}") from e
    return out


def save_entries(path: str | os.PathLike[str], entries: Iterable[Entry]) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    rows = [e.to_dict() for e in entries]

    if p.suffix.lower() in {".jsonl", ".ndjson"}:
        p.write_text("".join(json.dumps(r, ensure_ascii=False) + "\n" for r in rows), encoding="utf-8")
    else:
        p.write_text(json.dumps(rows, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
