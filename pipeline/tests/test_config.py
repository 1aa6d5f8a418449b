"""Tests for scivault.config paths and settings."""

import dataclasses
import importlib
from pathlib import Path

import pytest

from scivault.config import PipelineConfig, ensure_directories, load_config


def test_workspace_root_default(monkeypatch):
    monkeypatch.delenv("SCIVAULT_WORKSPACE", raising=False)
    import scivault.config as cfg

    importlib.reload(cfg)
    # Default: project root, resolved from config.py's location
    config_file = Path(cfg.__file__).resolve()
    expected = config_file.parent.parent.parent.parent
    assert expected == cfg.WORKSPACE_ROOT


def test_workspace_root_override(monkeypatch, tmp_path):
    monkeypatch.setenv("SCIVAULT_WORKSPACE", str(tmp_path))
    import scivault.config as cfg

    importlib.reload(cfg)
    assert tmp_path == cfg.WORKSPACE_ROOT


def test_load_config_reads_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("SCIVAULT_WORKSPACE", str(tmp_path))
    monkeypatch.setenv("SCIVAULT_CATALOGUE_URL", "https://example.test/dois")
    monkeypatch.setenv("SCIVAULT_COLLECTION", "physics")
    monkeypatch.setenv("PRIVATE_KEY", "secret")

    config = load_config()
    assert config.workspace == tmp_path
    assert config.catalogue_url == "https://example.test/dois"
    assert config.collection == "physics"
    assert config.private_key == "secret"
    assert "secret" not in repr(config)


def test_config_is_frozen(config):
    with pytest.raises(dataclasses.FrozenInstanceError):
        config.min_valid_size = 1


# ── Paths ────────────────────────────────────────────────────────────


def test_page_paths(tmp_path):
    config = PipelineConfig(workspace=tmp_path)
    assert config.doi_page_path(3) == tmp_path / "doi" / "page_3.json"
    assert config.pdf_page_dir(3) == tmp_path / "pdf" / "page_3"
    assert config.failed_log_path(3) == tmp_path / "pdf" / "page_3" / "failed_log_page_3.txt"
    assert config.metadata_path(3) == tmp_path / "pdf" / "page_3" / "basic_metadata.json"
    assert (
        config.report_path(3, "upload_pdf_report")
        == tmp_path / "pdf" / "page_3" / "upload_pdf_report_page_3.json"
    )


def test_base_tags():
    config = PipelineConfig()
    assert config.base_tags("application/pdf") == [
        ("App-Name", "scivault"),
        ("Content-Type", "application/pdf"),
        ("Version", "2.0.0"),
    ]


def test_ensure_directories(config):
    ensure_directories(config)
    assert config.doi_dir.is_dir()
    assert config.pdf_dir.is_dir()
    assert config.index_dir.is_dir()
