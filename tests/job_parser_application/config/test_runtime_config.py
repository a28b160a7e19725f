from __future__ import annotations

from pathlib import Path

from job_parser_application.config.paths import get_config_env, resolve_config_path, resolve_data_dir
from job_parser_application.config.runtime_config import build_runtime_config


def test_defaults_fill_missing_and_malformed_values():
    config = build_runtime_config({"max_pages": 5, "render_wait_seconds": "soon", "schema_retry_days": True})

    assert config.max_pages == 5
    assert config.render_wait_seconds == 5.0
    assert config.schema_retry_days == 7
    assert config.tracker_retention_days == 90
    assert config.board_tracker_retention_days == 30


def test_prod_overrides_shared_runtime_file():
    prod = resolve_config_path("runtime.yaml", env="prod")
    dev = resolve_config_path("runtime.yaml", env="dev")

    assert prod.parent.name == "prod"
    assert dev.parent.name == "config"
    assert prod.exists() and dev.exists()


def test_unknown_environment_falls_back_to_dev(monkeypatch):
    monkeypatch.setenv("JOB_PARSER_ENV", "staging")

    assert get_config_env() == "dev"


def test_data_dir_resolution(monkeypatch, tmp_path):
    monkeypatch.delenv("JOB_PARSER_DATA_DIR", raising=False)
    assert resolve_data_dir() == Path.home() / ".job_parser"

    monkeypatch.setenv("JOB_PARSER_DATA_DIR", str(tmp_path))
    assert resolve_data_dir() == tmp_path
    assert resolve_data_dir(str(tmp_path / "explicit")) == tmp_path / "explicit"
