from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError

from ..workflows.helpers.dates import utcnow
from ..workflows.models import CacheState, DiscoveredAPISchema, JobResponseStructure, PaginationInfo
from .storage import BlobStore, dump_json_list, load_json_list

logger = logging.getLogger("job_parser.cache")

SCHEMA_CACHE_KEY = "api_schema_cache"
DEFAULT_RETRY_AFTER = timedelta(days=7)


class SchemaCache:
    """Per-domain discovery state, persisted as one JSON array.

    States: unknown (no entry), failed (model tried, nothing found),
    schema discovered, and fast path. A failed entry older than
    ``retry_after`` is dropped the next time it is consulted.
    """

    def __init__(
        self,
        store: BlobStore,
        *,
        retry_after: timedelta = DEFAULT_RETRY_AFTER,
        clock: Callable[[], datetime] = utcnow,
        store_key: str = SCHEMA_CACHE_KEY,
    ) -> None:
        self._store = store
        self._store_key = store_key
        self._retry_after = retry_after
        self._clock = clock
        self._lock = asyncio.Lock()
        self._entries: Dict[str, DiscoveredAPISchema] | None = None

    # ---- internal helpers (call with the lock held) ----

    def _load(self) -> Dict[str, DiscoveredAPISchema]:
        if self._entries is not None:
            return self._entries
        entries: Dict[str, DiscoveredAPISchema] = {}
        for raw in load_json_list(self._store, self._store_key):
            try:
                schema = DiscoveredAPISchema.model_validate(raw)
            except ValidationError as exc:
                logger.warning("Skipping malformed cached schema: %s", exc.errors()[:1])
                continue
            entries[schema.domain] = schema
        self._entries = entries
        logger.debug("Loaded %s cached schemas", len(entries))
        return entries

    def _persist(self) -> None:
        entries = self._load()
        dump_json_list(
            self._store,
            self._store_key,
            [schema.model_dump(mode="json", by_alias=True) for schema in entries.values()],
        )

    def _expire_if_stale(self, domain: str) -> Optional[DiscoveredAPISchema]:
        entries = self._load()
        schema = entries.get(domain)
        if schema is None or not schema.is_failed:
            return schema
        age = self._clock() - schema.last_attempt
        if age < self._retry_after:
            return schema
        logger.info("Failed attempt for %s is %s days old; clearing for retry", domain, age.days)
        del entries[domain]
        self._persist()
        return None

    def _get_or_create(self, domain: str) -> DiscoveredAPISchema:
        entries = self._load()
        schema = entries.get(domain)
        if schema is None:
            schema = DiscoveredAPISchema.minimal(domain, self._clock())
            entries[domain] = schema
        return schema

    # ---- public contract ----

    async def get(self, domain: str) -> Optional[DiscoveredAPISchema]:
        async with self._lock:
            schema = self._expire_if_stale(domain)
            return schema.model_copy(deep=True) if schema else None

    async def lookup(self, domain: str) -> Tuple[CacheState, Optional[DiscoveredAPISchema]]:
        async with self._lock:
            schema = self._expire_if_stale(domain)
            if schema is None:
                return CacheState.UNKNOWN, None
            return schema.state, schema.model_copy(deep=True)

    async def save(self, schema: DiscoveredAPISchema) -> None:
        async with self._lock:
            self._load()[schema.domain] = schema.model_copy(deep=True)
            self._persist()
        logger.info("Cached schema for %s (endpoint=%s)", schema.domain, schema.endpoint or "-")

    async def record_discovery(
        self,
        domain: str,
        *,
        endpoint: str,
        structure: JobResponseStructure,
        method: str = "GET",
        request_body: str | None = None,
        headers: Dict[str, str] | None = None,
        pagination: PaginationInfo | None = None,
    ) -> DiscoveredAPISchema:
        """Store a model-discovered recipe, keeping any fast-path flags already known."""

        async with self._lock:
            schema = self._get_or_create(domain)
            now = self._clock()
            schema.endpoint = endpoint
            schema.method = method
            schema.request_body = request_body
            schema.headers = headers
            schema.response_structure = structure
            schema.pagination = pagination
            schema.discovered_at = now
            schema.llm_attempted = True
            schema.schema_discovered = True
            schema.last_attempt = now
            schema.last_fetched_at = now
            self._persist()
            saved = schema.model_copy(deep=True)
        logger.info("Cached discovered schema for %s (endpoint=%s)", domain, endpoint)
        return saved

    async def has_attempted(self, domain: str) -> bool:
        async with self._lock:
            schema = self._expire_if_stale(domain)
            return bool(schema and schema.llm_attempted)

    async def mark_attempt_failed(self, domain: str) -> None:
        async with self._lock:
            schema = self._get_or_create(domain)
            schema.llm_attempted = True
            schema.schema_discovered = False
            schema.last_attempt = self._clock()
            self._persist()
        logger.info("Marked model discovery failed for %s", domain)

    async def mark_fast_path_works(self, domain: str, endpoint: str | None = None) -> None:
        async with self._lock:
            schema = self._get_or_create(domain)
            if endpoint:
                schema.api_extraction_works = True
                schema.endpoint = endpoint
            else:
                schema.html_extraction_works = True
            now = self._clock()
            schema.last_attempt = now
            schema.last_fetched_at = now
            self._persist()
        logger.info("Marked fast path for %s (%s)", domain, "api" if endpoint else "html")

    async def update_last_fetched(self, domain: str) -> None:
        async with self._lock:
            schema = self._get_or_create(domain)
            schema.last_fetched_at = self._clock()
            self._persist()

    async def clear(self, domain: str) -> None:
        async with self._lock:
            if self._load().pop(domain, None) is not None:
                self._persist()

    async def clear_all(self) -> None:
        async with self._lock:
            self._load().clear()
            self._persist()

    async def force_retry(self, domain: str) -> bool:
        """Drop a failed entry regardless of age; other states are left alone."""

        async with self._lock:
            entries = self._load()
            schema = entries.get(domain)
            if schema is None or not schema.is_failed:
                return False
            del entries[domain]
            self._persist()
            return True

    async def entries(self) -> List[DiscoveredAPISchema]:
        async with self._lock:
            return [schema.model_copy(deep=True) for schema in self._load().values()]
