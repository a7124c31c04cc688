from __future__ import annotations

from pathlib import Path
from typing import Any


def create_app(*, default_entries_path: str | None = None, llm=None, cache=None):
    # Lazy import so the core engine and CLI work without web deps.
    from fastapi import FastAPI
    from fastapi.responses import JSONResponse

    from ..config import Settings
    from ..entries import EntryLoadError, entries_from_records, load_entries
    from ..explain.cache import ExplanationCache
    from ..explain.explainer import LinkExplainer
    from ..explain.llm import OllamaChatClient
    from ..graph.build import build_graph
    from ..graph.classify import LinkClassifier

    settings = Settings()
    entries_default = default_entries_path or settings.entries_path

    app = FastAPI(title="semgraph", version="0.1.0")

    # One cache per app instance: explanations live as long as the server.
    app.state.explanations = cache if cache is not None else ExplanationCache(fallback=settings.explain_fallback)
    app.state.llm = llm or OllamaChatClient(
        base_url=settings.ollama_base_url,
        model=settings.ollama_model,
        options={"temperature": settings.ollama_temperature},
    )

    def _error(msg: str, status: int) -> JSONResponse:
        return JSONResponse({"ok": False, "error": msg}, status_code=status)

    def _entries(payload: dict[str, Any]):
        records = payload.get("entries")
        if records is not None:
            if not isinstance(records, list):
                raise EntryLoadError("'entries' must be a list of entry objects")
            return entries_from_records(records, source="request")
        path = Path(str(payload.get("entries_path") or entries_default))
        if not path.exists():
            raise FileNotFoundError(f"entries file not found: {path}")
        return load_entries(path)

    @app.get("/api/health")
    def health(base_url: str | None = None):
        import httpx

        url = (base_url or settings.ollama_base_url).rstrip("/")
        out: dict[str, Any] = {"ollama_base_url": url, "ollama_ok": False, "models": []}
        try:
            r = httpx.get(f"{url}/api/tags", timeout=3.0)
            r.raise_for_status()
            data = r.json()
            models = [m.get("name") for m in (data.get("models") or []) if isinstance(m, dict)]
            out["models"] = models
            out["ollama_ok"] = True
        except (httpx.HTTPError, ValueError) as e:
            out["error"] = str(e)
        out["cached_explanations"] = len(app.state.explanations)
        return out

    @app.post("/api/graph")
    def graph(payload: dict[str, Any]):
        try:
            rows = _entries(payload)
        except (EntryLoadError, FileNotFoundError) as e:
            return _error(str(e), 400)

        try:
            clf = LinkClassifier(
                high_cut=float(payload.get("high_cut", settings.high_cut)),
                low_cut=float(payload.get("low_cut", settings.low_cut)),
            )
            min_sim = float(payload.get("min_similarity", settings.min_similarity))
        except (TypeError, ValueError) as e:
            return _error(str(e), 400)

        g = build_graph(rows, min_similarity=min_sim, classifier=clf)
        return {"ok": True, **g.to_dict(), "stats": g.stats()}

    @app.post("/api/explain-similarity")
    async def explain_similarity(payload: dict[str, Any]):
        source_id = payload.get("sourceId")
        target_id = payload.get("targetId")
        for name, value in (("sourceId", source_id), ("targetId", target_id)):
            if not isinstance(value, str) or not value.strip():
                return _error(f"{name} is required and must be a non-empty string", 400)

        cache = app.state.explanations
        hit = cache.peek(source_id, target_id)
        if hit is not None:
            return {"ok": True, "explanation": hit.text, "cached": True, "failed": hit.failed}

        try:
            rows = _entries(payload)
        except (EntryLoadError, FileNotFoundError) as e:
            return _error(str(e), 400)

        by_id = {e.id: e for e in rows}
        missing = [i for i in (source_id, target_id) if i not in by_id]
        if missing:
            return _error(f"Entry not found: {', '.join(missing)}", 404)

        explainer = LinkExplainer(entries=by_id, llm=app.state.llm)
        res = await cache.fetch_entry(source_id, target_id, explainer)
        return {"ok": True, "explanation": res.text, "cached": False, "failed": res.failed}

    return app
