from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional

from pydantic import ValidationError

from ..workflows.helpers.dates import utcnow
from ..workflows.models import Job, JobSource, TrackedJob
from .storage import BlobStore, dump_json_list, load_json_list

logger = logging.getLogger("job_parser.tracker")

JOB_TRACKER_KEY = "job_tracker"
GLOBAL_RETENTION = timedelta(days=90)
BOARD_RETENTION = timedelta(days=30)


class JobTracker:
    """Remembers when each job id was first and last observed."""

    def __init__(
        self,
        store: BlobStore,
        *,
        store_key: str = JOB_TRACKER_KEY,
        retention: timedelta = GLOBAL_RETENTION,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._store_key = store_key
        self._retention = retention
        self._clock = clock
        self._lock = asyncio.Lock()
        self._entries: Dict[str, TrackedJob] | None = None

    @classmethod
    def for_board(
        cls,
        store: BlobStore,
        board_key: str,
        *,
        retention: timedelta = BOARD_RETENTION,
        clock: Callable[[], datetime] = utcnow,
    ) -> "JobTracker":
        return cls(store, store_key=f"board_{board_key}", retention=retention, clock=clock)

    @property
    def store_key(self) -> str:
        return self._store_key

    def _load(self) -> Dict[str, TrackedJob]:
        if self._entries is not None:
            return self._entries
        entries: Dict[str, TrackedJob] = {}
        for raw in load_json_list(self._store, self._store_key):
            try:
                tracked = TrackedJob.model_validate(raw)
            except ValidationError:
                continue
            entries[tracked.id] = tracked
        self._entries = entries
        return entries

    def _persist(self) -> None:
        dump_json_list(
            self._store,
            self._store_key,
            [entry.model_dump(mode="json", by_alias=True) for entry in self._load().values()],
        )

    def _upsert(self, job_id: str, title: str, url: str, source: JobSource, now: datetime) -> TrackedJob:
        entries = self._load()
        existing = entries.get(job_id)
        if existing is None:
            tracked = TrackedJob(
                id=job_id, title=title, url=url, source=source, first_seen=now, last_seen=now
            )
            entries[job_id] = tracked
            return tracked
        existing.last_seen = max(existing.last_seen, now)
        if title:
            existing.title = title
        if url:
            existing.url = url
        return existing

    async def track(self, job_id: str, title: str, url: str, source: JobSource) -> TrackedJob:
        async with self._lock:
            tracked = self._upsert(job_id, title, url, source, self._clock())
            self._persist()
            return tracked.model_copy()

    async def stamp(self, jobs: Iterable[Job]) -> List[Job]:
        """Track every job and return copies carrying the tracker's first-seen date."""

        stamped: List[Job] = []
        async with self._lock:
            now = self._clock()
            for job in jobs:
                tracked = self._upsert(job.id, job.title, job.url, job.source, now)
                stamped.append(job.model_copy(update={"first_seen_date": tracked.first_seen}))
            if stamped:
                self._persist()
        return stamped

    async def first_seen_date(self, job_id: str) -> Optional[datetime]:
        async with self._lock:
            tracked = self._load().get(job_id)
            return tracked.first_seen if tracked else None

    async def has_seen(self, job_id: str) -> bool:
        async with self._lock:
            return job_id in self._load()

    async def jobs_for_source(self, source: JobSource) -> List[TrackedJob]:
        async with self._lock:
            return [entry.model_copy() for entry in self._load().values() if entry.source == source]

    async def cleanup(self) -> int:
        async with self._lock:
            entries = self._load()
            cutoff = self._clock() - self._retention
            stale = [job_id for job_id, entry in entries.items() if entry.last_seen < cutoff]
            for job_id in stale:
                del entries[job_id]
            if stale:
                self._persist()
        if stale:
            logger.info("Pruned %s tracked jobs from %s", len(stale), self._store_key)
        return len(stale)
