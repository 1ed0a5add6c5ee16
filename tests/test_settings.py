"""Tests for application settings."""

import json

import pytest
from pydantic import ValidationError

from config.settings import AppSettings


def test_defaults():
    settings = AppSettings()
    assert settings.loader.image_size == 224
    assert settings.embedder.name == "pooled"
    assert settings.cache.enabled is True
    assert settings.cache.max_entries is None


def test_from_env_nested_fields():
    settings = AppSettings.from_env(
        {
            "VISUAL_SEARCH_LOG_LEVEL": "DEBUG",
            "VISUAL_SEARCH_LOADER__TIMEOUT_SECONDS": "2.5",
            "VISUAL_SEARCH_CACHE__MAX_ENTRIES": "100",
            "UNRELATED": "ignored",
        }
    )
    assert settings.log_level == "DEBUG"
    assert settings.loader.timeout_seconds == 2.5
    assert settings.cache.max_entries == 100


def test_from_env_rejects_bad_values():
    with pytest.raises(ValidationError):
        AppSettings.from_env({"VISUAL_SEARCH_SEARCH__MAX_CONCURRENCY": "0"})


def test_from_file(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"embedder": {"dim": 64}, "search": {"max_concurrency": 4}}))
    settings = AppSettings.from_file(path)
    assert settings.embedder.dim == 64
    assert settings.search.max_concurrency == 4


def test_from_missing_file(tmp_path):
    assert AppSettings.from_file(tmp_path / "absent.json") == AppSettings()


def test_warmup_catalog_from_env(tmp_path):
    settings = AppSettings.from_env({"VISUAL_SEARCH_SEARCH__WARMUP_CATALOG": str(tmp_path / "cards.json")})
    assert settings.search.warmup_catalog == tmp_path / "cards.json"
    assert AppSettings().search.warmup_catalog is None
