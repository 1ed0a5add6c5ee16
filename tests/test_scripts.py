"""Tests for the catalog check script."""

import argparse
import asyncio
import json
import sys

import pytest

from config.settings import AppSettings
from scripts.check_catalog import main, positive_int, run
from tests.helpers import BLUE, RED, png_bytes


def write_catalog(tmp_path):
    (tmp_path / "red.png").write_bytes(png_bytes(RED))
    (tmp_path / "blue.png").write_bytes(png_bytes(BLUE))
    catalog = tmp_path / "cards.json"
    catalog.write_text(
        json.dumps(
            [
                {"id": "r", "link": str(tmp_path / "red.png")},
                {"id": "gone", "link": str(tmp_path / "gone.png")},
                {"id": "b", "link": (tmp_path / "blue.png").as_uri()},
            ]
        )
    )
    return catalog


def test_reports_unusable_cards(tmp_path, capsys):
    settings = AppSettings(embedder={"dim": 32}, search={"warmup_batch_size": 2})
    assert asyncio.run(run(write_catalog(tmp_path), settings)) == 1

    output = capsys.readouterr().out
    assert "2 of 3 card images usable" in output
    assert "unusable: id=gone" in output
    assert "id=r " not in output


def test_clean_catalog_exits_zero(tmp_path):
    catalog = tmp_path / "cards.json"
    (tmp_path / "red.png").write_bytes(png_bytes(RED))
    catalog.write_text(json.dumps([{"id": "r", "link": str(tmp_path / "red.png")}]))
    assert asyncio.run(run(catalog, AppSettings())) == 0


@pytest.mark.parametrize("value", ["0", "-3"])
def test_batch_size_must_be_positive(value):
    with pytest.raises(argparse.ArgumentTypeError):
        positive_int(value)


def test_cli_rejects_non_positive_batch_size(monkeypatch):
    monkeypatch.setattr(sys, "argv", ["check_catalog.py", "--batch-size", "-1"])
    with pytest.raises(SystemExit) as excinfo:
        main()
    assert excinfo.value.code == 2
