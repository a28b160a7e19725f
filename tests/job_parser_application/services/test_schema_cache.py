from __future__ import annotations

import json

import pytest

from job_parser_application.services.schema_cache import SCHEMA_CACHE_KEY, SchemaCache
from job_parser_application.services.storage import MemoryBlobStore
from job_parser_application.workflows.models import (
    CacheState,
    JobResponseStructure,
    PaginationInfo,
    PaginationType,
)


@pytest.mark.asyncio
async def test_unknown_domain_has_no_entry(store, clock):
    cache = SchemaCache(store, clock=clock)

    state, schema = await cache.lookup("careers.acme.com")

    assert state == CacheState.UNKNOWN
    assert schema is None
    assert await cache.has_attempted("careers.acme.com") is False


@pytest.mark.asyncio
async def test_failed_twice_within_retry_window_stays_failed(store, clock):
    cache = SchemaCache(store, clock=clock)

    await cache.mark_attempt_failed("acme.com")
    clock.advance(days=3)
    state, _ = await cache.lookup("acme.com")
    assert state == CacheState.FAILED

    await cache.mark_attempt_failed("acme.com")
    clock.advance(days=3)
    state, schema = await cache.lookup("acme.com")

    assert state == CacheState.FAILED
    assert schema is not None and schema.llm_attempted and not schema.schema_discovered


@pytest.mark.asyncio
async def test_failed_entry_expires_after_seven_days(store, clock):
    cache = SchemaCache(store, clock=clock)
    await cache.mark_attempt_failed("acme.com")

    clock.advance(days=7, minutes=1)
    state, schema = await cache.lookup("acme.com")

    assert state == CacheState.UNKNOWN
    assert schema is None
    assert await cache.entries() == []
    assert json.loads(store.read(SCHEMA_CACHE_KEY)) == []


@pytest.mark.asyncio
async def test_fast_path_flags_are_tracked_separately(store, clock):
    cache = SchemaCache(store, clock=clock)

    await cache.mark_fast_path_works("html.example.com")
    await cache.mark_fast_path_works("api.example.com", "https://api.example.com/jobs")

    _, html_schema = await cache.lookup("html.example.com")
    state, api_schema = await cache.lookup("api.example.com")

    assert html_schema.html_extraction_works and not html_schema.api_extraction_works
    assert api_schema.api_extraction_works and not api_schema.html_extraction_works
    assert api_schema.endpoint == "https://api.example.com/jobs"
    assert state == CacheState.FAST_PATH
    assert api_schema.last_fetched_at == clock.now


@pytest.mark.asyncio
async def test_discovered_schema_persists_with_camel_case_keys(store, clock):
    cache = SchemaCache(store, clock=clock)
    structure = JobResponseStructure(jobs_array_path="data.results", title_field="name")

    await cache.record_discovery(
        "acme.com",
        endpoint="https://acme.com/api/search",
        structure=structure,
        method="POST",
        request_body='{"q": ""}',
        pagination=PaginationInfo(type=PaginationType.OFFSET, param_name="offset", page_size_param="limit"),
    )

    raw = json.loads(store.read(SCHEMA_CACHE_KEY))
    assert raw[0]["schemaDiscovered"] is True
    assert raw[0]["responseStructure"]["jobsArrayPath"] == "data.results"

    reloaded = SchemaCache(store, clock=clock)
    state, schema = await reloaded.lookup("acme.com")
    assert state == CacheState.SCHEMA_DISCOVERED
    assert schema.method == "POST"
    assert schema.pagination.type == PaginationType.OFFSET


@pytest.mark.asyncio
async def test_legacy_html_extraction_flag_loads_as_fast_path(clock):
    legacy = [
        {
            "domain": "legacy.example.com",
            "endpoint": "",
            "method": "GET",
            "discoveredAt": "2025-02-01T00:00:00Z",
            "llmAttempted": True,
            "schemaDiscovered": False,
            "lastAttempt": "2025-02-01T00:00:00Z",
            "htmlExtractionWorks": True,
        }
    ]
    store = MemoryBlobStore({SCHEMA_CACHE_KEY: json.dumps(legacy).encode("utf-8")})
    cache = SchemaCache(store, clock=clock)

    state, schema = await cache.lookup("legacy.example.com")

    assert state == CacheState.FAST_PATH
    assert schema.html_extraction_works is True


@pytest.mark.asyncio
async def test_force_retry_only_drops_failed_entries(store, clock):
    cache = SchemaCache(store, clock=clock)
    await cache.mark_attempt_failed("failed.example.com")
    await cache.mark_fast_path_works("fast.example.com")

    assert await cache.force_retry("failed.example.com") is True
    assert await cache.force_retry("fast.example.com") is False
    assert await cache.force_retry("missing.example.com") is False

    state, _ = await cache.lookup("failed.example.com")
    assert state == CacheState.UNKNOWN


@pytest.mark.asyncio
async def test_clear_and_clear_all(store, clock):
    cache = SchemaCache(store, clock=clock)
    await cache.mark_fast_path_works("a.example.com")
    await cache.mark_fast_path_works("b.example.com")

    await cache.clear("a.example.com")
    assert [entry.domain for entry in await cache.entries()] == ["b.example.com"]

    await cache.clear_all()
    assert await cache.entries() == []


def test_corrupt_store_reads_as_empty(clock):
    store = MemoryBlobStore({SCHEMA_CACHE_KEY: b"{not json"})
    cache = SchemaCache(store, clock=clock)

    assert cache._load() == {}
