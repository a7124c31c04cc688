from __future__ import annotations

import asyncio
import json
import logging
from collections import Counter
from pathlib import Path

import httpx
import typer
from rich.console import Console
from rich.table import Table
from rich.text import Text

from .config import Settings
from .entries import EntryLoadError, load_entries, save_entries
from .explain.cache import ExplanationCache
from .explain.explainer import LinkExplainer
from .explain.llm import OllamaChatClient
from .graph.build import Entry, build_graph
from .graph.classify import LinkClassifier
from .graph.similarity import as_vector


app = typer.Typer(add_completion=False, help="Semantic similarity graphs over embedded text entries.")
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
):
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _load(path: Path) -> list[Entry]:
    try:
        return load_entries(path)
    except EntryLoadError as e:
        console.print(str(e), style="red", markup=False)
        raise typer.Exit(code=2)


def _classifier(high_cut: float | None, low_cut: float | None, settings: Settings) -> LinkClassifier:
    try:
        return LinkClassifier(
            high_cut=settings.high_cut if high_cut is None else high_cut,
            low_cut=settings.low_cut if low_cut is None else low_cut,
        )
    except ValueError as e:
        raise typer.BadParameter(str(e))


def _preview(text: str, n: int = 60) -> str:
    out = " ".join(text.split())
    if len(out) > n:
        out = out[:n].rstrip() + "..."
    return out


@app.command()
def build(
    entries: Path = typer.Option(..., "--entries", exists=True, file_okay=True, dir_okay=False),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write graph JSON here"),
    min_similarity: float | None = typer.Option(None, "--min-similarity", help="Minimum similarity for a link"),
    high_cut: float | None = typer.Option(None, "--high-cut", help="Similarity at or above which links are strong"),
    low_cut: float | None = typer.Option(None, "--low-cut", help="Similarity at or above which links are medium"),
    as_json: bool = typer.Option(False, "--json", help="Print graph JSON to stdout instead of a summary"),
):
    """Build the similarity graph for an entries file."""
    settings = Settings()
    clf = _classifier(high_cut, low_cut, settings)
    min_sim = settings.min_similarity if min_similarity is None else min_similarity

    graph = build_graph(_load(entries), min_similarity=min_sim, classifier=clf)
    data = graph.to_dict()

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(json.dumps(data, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")

    if as_json:
        # Plain print keeps stdout valid JSON (no rich wrapping).
        print(json.dumps(data, ensure_ascii=False, indent=2))
        return

    st = graph.stats()
    table = Table(title="Graph")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Nodes", str(st["nodes"]))
    table.add_row("Excluded entries", str(st["excluded"]))
    table.add_row("Links", str(st["links"]))
    table.add_row("  strong", str(st["strong"]))
    table.add_row("  medium", str(st["medium"]))
    table.add_row("  weak", str(st["weak"]))
    table.add_row("min_similarity", f"{min_sim:.3f}")
    table.add_row("high_cut / low_cut", f"{clf.high_cut:.3f} / {clf.low_cut:.3f}")
    console.print(table)

    if output is not None:
        console.print(f"Wrote {output}")


@app.command()
def links(
    entries: Path = typer.Option(..., "--entries", exists=True, file_okay=True, dir_okay=False),
    node: str | None = typer.Option(None, "--node", help="Only show links touching this entry id"),
    limit: int = typer.Option(25, help="Max links to show"),
    min_similarity: float | None = typer.Option(None, "--min-similarity"),
    high_cut: float | None = typer.Option(None, "--high-cut"),
    low_cut: float | None = typer.Option(None, "--low-cut"),
):
    """Show the strongest links, optionally for a single entry."""
    settings = Settings()
    clf = _classifier(high_cut, low_cut, settings)
    min_sim = settings.min_similarity if min_similarity is None else min_similarity

    graph = build_graph(_load(entries), min_similarity=min_sim, classifier=clf)
    if node is not None:
        if graph.node(node) is None:
            console.print(f"No node with id {node!r} (missing, or it has no embedding).", style="yellow", markup=False)
            raise typer.Exit(code=2)
        rows = graph.neighbors(node)
    else:
        rows = sorted(graph.links, key=lambda ln: ln.similarity, reverse=True)

    titles = {n.id: n.title for n in graph.nodes}

    table = Table(title=f"Top {min(limit, len(rows))} of {len(rows)} Links")
    table.add_column("#", justify="right", width=4)
    table.add_column("similarity", justify="right", width=10)
    table.add_column("strength")
    table.add_column("source")
    table.add_column("target")

    for i, ln in enumerate(rows[: int(limit)], start=1):
        table.add_row(
            Text(str(i)),
            Text(f"{ln.similarity:.3f}"),
            Text(ln.strength.value + (" (dashed)" if ln.dashed else "")),
            Text(f"{ln.source}: {_preview(titles.get(ln.source, ''), 40)}"),
            Text(f"{ln.target}: {_preview(titles.get(ln.target, ''), 40)}"),
        )

    console.print(table)


@app.command()
def embed(
    entries: Path = typer.Option(..., "--entries", exists=True, file_okay=True, dir_okay=False),
    output: Path | None = typer.Option(None, "--output", "-o", help="Defaults to rewriting --entries in place"),
    embed_model: str | None = typer.Option(None, help="Embedding model name (fastembed)"),
    overwrite: bool = typer.Option(False, "--overwrite", help="Re-embed entries that already have an embedding"),
    batch_size: int = typer.Option(64, help="Embedding batch size"),
):
    """Fill in missing embeddings with a local fastembed model."""
    from .index.embedder import Embedder, embed_entries

    settings = Settings()
    model = embed_model or settings.embed_model

    rows = _load(entries)
    embedder = Embedder(model)
    rows, n = embed_entries(rows, embedder=embedder, overwrite=overwrite, batch_size=batch_size)

    dest = output or entries
    save_entries(dest, rows)
    console.print(f"Embedded {n} of {len(rows)} entries with {model}")
    console.print(f"Wrote {dest}")


@app.command()
def explain(
    source: str = typer.Argument(..., help="First entry id"),
    target: str = typer.Argument(..., help="Second entry id"),
    entries: Path = typer.Option(..., "--entries", exists=True, file_okay=True, dir_okay=False),
    model: str | None = typer.Option(None, "--model", help="Ollama model name"),
    base_url: str | None = typer.Option(None, "--base-url", help="Ollama base URL"),
    temperature: float | None = typer.Option(None, "--temperature", help="Ollama temperature"),
):
    """Ask the model why two entries are related."""
    settings = Settings()
    rows = _load(entries)
    by_id = {e.id: e for e in rows}
    missing = [i for i in (source, target) if i not in by_id]
    if missing:
        console.print(f"Unknown entry id(s): {', '.join(missing)}", style="red", markup=False)
        raise typer.Exit(code=2)

    llm = OllamaChatClient(
        base_url=base_url or settings.ollama_base_url,
        model=model or settings.ollama_model,
        options={"temperature": float(temperature if temperature is not None else settings.ollama_temperature)},
    )
    explainer = LinkExplainer(entries=by_id, llm=llm)
    cache = ExplanationCache(fallback=settings.explain_fallback)

    res = asyncio.run(cache.fetch_entry(source, target, explainer))
    console.print(res.text, markup=False)
    if res.failed:
        console.print(f"({res.error})", style="yellow", markup=False)
        raise typer.Exit(code=1)


@app.command()
def doctor(
    entries: Path | None = typer.Option(None, "--entries", help="Optional entries file to check"),
    model: str | None = typer.Option(None, "--model", help="Ollama model name to check"),
    base_url: str | None = typer.Option(None, "--base-url", help="Ollama base URL"),
):
    """Check the entries file and Ollama, printing actionable fixes."""
    settings = Settings()
    ollama_model = model or settings.ollama_model
    ollama_url = (base_url or settings.ollama_base_url).rstrip("/")

    ok = True

    console.print("Ollama:")
    try:
        r = httpx.get(f"{ollama_url}/api/tags", timeout=5.0)
        r.raise_for_status()
        data = r.json()
        models = [m.get("name") for m in (data.get("models") or []) if isinstance(m, dict)]
        if not models:
            console.print(f"- Server reachable at {ollama_url} but no models are installed.", style="yellow")
            console.print(f"  Fix: `ollama pull {ollama_model}`", style="yellow")
            ok = False
        else:
            console.print(f"- Server reachable at {ollama_url} ({len(models)} model(s) installed).", style="green")
            if ollama_model not in models:
                console.print(f"- Missing model: {ollama_model}", style="yellow")
                console.print(f"  Fix: `ollama pull {ollama_model}`", style="yellow")
                ok = False
            else:
                console.print(f"- Model OK: {ollama_model}", style="green")
    except (httpx.HTTPError, ValueError) as e:
        console.print(f"- Not reachable at {ollama_url}: {e}", style="red")
        console.print("  Fix: start Ollama (`ollama serve`) then retry.", style="yellow")
        ok = False

    if entries is not None:
        console.print("\nEntries:")
        if not entries.exists():
            console.print(f"- Missing entries file: {entries}", style="red")
            ok = False
        else:
            try:
                rows = load_entries(entries)
            except EntryLoadError as e:
                console.print(f"- {e}", style="red", markup=False)
                rows = None
                ok = False

            if rows is not None:
                vecs = [as_vector(e.embedding) for e in rows]
                n_valid = sum(v is not None for v in vecs)
                dims = Counter(len(v) for v in vecs if v is not None)
                console.print(f"- Entries: {len(rows)}", style="green" if rows else "yellow")
                console.print(f"- With embeddings: {n_valid}", style="green" if n_valid == len(rows) else "yellow")
                if n_valid < len(rows):
                    console.print("  Fix: run `semgraph embed --entries ...`", style="yellow")
                    ok = False
                if len(dims) > 1:
                    shown = ", ".join(f"{d} ({c})" for d, c in dims.most_common())
                    console.print(f"- Mixed embedding dimensions: {shown}", style="yellow")
                    console.print("  Mismatched pairs score 0; re-embed with one model (`--overwrite`).", style="yellow")
                    ok = False
                elif dims:
                    console.print(f"- Embedding dim: {next(iter(dims))}", style="green")

    if not ok:
        raise typer.Exit(code=1)


@app.command()
def serve(
    entries: Path | None = typer.Option(None, "--entries", help="Entries file served by the API (default: SEMGRAPH_ENTRIES_PATH)"),
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8000, "--port"),
):
    """Run the graph API (FastAPI)."""
    try:
        import uvicorn
    except ImportError:
        console.print("Missing web dependencies. Install: `pip install -e '.[web]'`", style="red")
        raise typer.Exit(code=2)

    from .web.server import create_app

    app_ = create_app(default_entries_path=str(entries) if entries is not None else None)
    uvicorn.run(app_, host=host, port=int(port))


if __name__ == "__main__":
    app()
