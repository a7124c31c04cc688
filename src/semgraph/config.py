from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


load_dotenv()


@dataclass(frozen=True)
class Settings:
    # Default entries file used by the web UI and CLI defaults.
    entries_path: str = os.getenv("SEMGRAPH_ENTRIES_PATH", "./data/entries.json")

    # Graph thresholds. Deployments disagree on these; treat them as knobs.
    min_similarity: float = float(os.getenv("SEMGRAPH_MIN_SIMILARITY", "0.4"))
    high_cut: float = float(os.getenv("SEMGRAPH_HIGH_CUT", "0.75"))
    low_cut: float = float(os.getenv("SEMGRAPH_LOW_CUT", "0.5"))

    # Embeddings
    embed_model: str = os.getenv("SEMGRAPH_EMBED_MODEL", "sentence-transformers/all-MiniLM-L6-v2")

    # Ollama
    ollama_base_url: str = os.getenv("SEMGRAPH_OLLAMA_BASE_URL", "http://localhost:11434")
    ollama_model: str = os.getenv("SEMGRAPH_OLLAMA_MODEL", "llama3.2:1b")
    ollama_temperature: float = float(os.getenv("SEMGRAPH_OLLAMA_TEMPERATURE", "0.1"))

    # Text cached in place of an explanation whose fetch failed.
    explain_fallback: str = os.getenv("SEMGRAPH_EXPLAIN_FALLBACK", "Explanation unavailable.")
