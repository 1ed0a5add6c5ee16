# Path: config/settings.py
# Purpose: Provide typed application configuration models.
# Layer: config.
# Details: Centralizes settings for image loading, embedders, the embedding cache, and search fan-out.

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, Field

ENV_PREFIX = "VISUAL_SEARCH_"


class LoaderSettings(BaseModel):
    """Settings controlling how candidate and query images are fetched and decoded."""

    image_size: int = Field(default=224, ge=1, description="Edge length of the square pixel buffer fed to the embedder.")
    timeout_seconds: float = Field(default=10.0, gt=0, description="Request-level deadline for a single image load.")
    max_bytes: int = Field(default=20 * 1024 * 1024, ge=1, description="Largest response body accepted as an image.")
    user_agent: str = Field(default="page-gallery-search/0.1", description="User-Agent header sent with image fetches.")


class EmbedderSettings(BaseModel):
    """Settings describing which embedder implementation to use and how to build it."""

    name: str = Field(default="pooled", description="Identifier of the embedder implementation.")
    dim: int = Field(default=512, ge=1, description="Output dimensionality of the embedder.")
    grid: int = Field(default=4, ge=1, description="Pooling grid size used by the pooled colour embedder.")


class CacheSettings(BaseModel):
    """Settings for the in-process embedding cache."""

    enabled: bool = Field(default=True, description="Reuse candidate embeddings across searches.")
    max_entries: Optional[int] = Field(default=None, ge=1, description="Evict least recently used entries beyond this bound.")


class SearchSettings(BaseModel):
    """Settings for the search orchestrator fan-out."""

    max_concurrency: int = Field(default=16, ge=1, description="Candidate loads/embeddings allowed in flight at once.")
    warmup_batch_size: int = Field(default=8, ge=1, description="Cards embedded per batch while warming the cache.")
    warmup_catalog: Optional[Path] = Field(
        default=None, description="cards.json whose images the API embeds into its cache before serving."
    )


class AppSettings(BaseModel):
    """Top-level application settings shared across services and interfaces."""

    log_level: str = Field(default="INFO", description="Verbosity level for application logs.")
    loader: LoaderSettings = Field(default_factory=LoaderSettings)
    embedder: EmbedderSettings = Field(default_factory=EmbedderSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AppSettings":
        """Instantiate settings from ``VISUAL_SEARCH_*`` environment variables.

        Nested fields use a double underscore, e.g. ``VISUAL_SEARCH_LOADER__TIMEOUT_SECONDS=5``.
        Unset variables keep their defaults; pydantic performs the type coercion.
        """

        environ = os.environ if environ is None else environ
        payload: Dict[str, Any] = {}
        for key, value in environ.items():
            if not key.startswith(ENV_PREFIX):
                continue
            path = key[len(ENV_PREFIX):].lower().split("__")
            target = payload
            for part in path[:-1]:
                target = target.setdefault(part, {})
            target[path[-1]] = value
        return cls.model_validate(payload)

    @classmethod
    def from_file(cls, path: Path | str) -> "AppSettings":
        """Load settings from a JSON file, falling back to defaults when it does not exist."""

        cfg_path = Path(path)
        if not cfg_path.exists():
            return cls()
        return cls.model_validate(json.loads(cfg_path.read_text(encoding="utf-8")))


__all__ = ["AppSettings", "CacheSettings", "EmbedderSettings", "LoaderSettings", "SearchSettings"]
