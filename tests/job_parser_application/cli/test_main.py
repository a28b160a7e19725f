from __future__ import annotations

import asyncio

import pytest

import job_parser_application.__main__ as cli
from job_parser_application.services.schema_cache import SchemaCache
from job_parser_application.services.storage import FileBlobStore


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch, tmp_path):
    monkeypatch.setenv("JOB_PARSER_DATA_DIR", str(tmp_path))
    monkeypatch.setattr(cli, "setup_logging", lambda *args, **kwargs: None)


def test_requires_a_url_or_cache_command():
    with pytest.raises(SystemExit):
        cli.main([])


def test_force_retry_drops_failed_entry(tmp_path, capsys):
    asyncio.run(SchemaCache(FileBlobStore(tmp_path)).mark_attempt_failed("acme.com"))

    assert cli.main(["--force-retry", "acme.com"]) == 0
    assert "Dropped failed entry for acme.com" in capsys.readouterr().out
    assert cli.main(["--force-retry", "acme.com"]) == 0
    assert "No failed entry for acme.com" in capsys.readouterr().out


def test_clear_cache(tmp_path, capsys):
    asyncio.run(SchemaCache(FileBlobStore(tmp_path)).mark_fast_path_works("acme.com"))

    assert cli.main(["--clear-cache", "acme.com"]) == 0

    assert "Cleared cached schema for acme.com" in capsys.readouterr().out
    state, _ = asyncio.run(SchemaCache(FileBlobStore(tmp_path)).lookup("acme.com"))
    assert state.value == "unknown"
