from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional
from urllib.parse import urlparse

import httpx

from ...config.config import settings
from ..exceptions import DecodingError, HTTPStatusError, InvalidResponseError, InvalidURLError
from ..filters import apply_filters_non_destructive
from ..models import Job, JobSource

logger = logging.getLogger("job_parser.connectors")


def default_headers(accept: str = "application/json") -> Dict[str, str]:
    return {
        "Accept": accept,
        "Accept-Language": "en-US,en;q=0.9",
        "User-Agent": settings.http_user_agent,
    }


class BaseSiteHandler(ABC):
    """Dedicated connector for one known applicant tracking system."""

    name: str = "base"
    source: JobSource = JobSource.UNKNOWN

    @classmethod
    @abstractmethod
    def matches_url(cls, url: str) -> bool:
        """Return True when this handler is appropriate for the supplied URL."""

    def matches_site(self, source: JobSource | str | None, url: str | None = None) -> bool:
        if source and getattr(source, "value", source) == self.source.value:
            return True
        if url and self.matches_url(url):
            return True
        return False

    def get_listing_api_uri(self, uri: str) -> Optional[str]:
        return None

    def get_company_uri(self, uri: str) -> Optional[str]:
        return None

    def board_slug(self, uri: str) -> Optional[str]:
        return None

    def board_key(self, uri: str) -> str:
        """Key for this board's own first-seen tracker (``<source>_<slug>``)."""

        return f"{self.source.value}_{self.board_slug(uri) or 'unknown'}"

    async def fetch_jobs(
        self,
        url: str,
        title_filter: str = "",
        location_filter: str = "",
        client: httpx.AsyncClient | None = None,
    ) -> List[Job]:
        async with self._client(client) as http:
            jobs = await self._fetch_all(url, http, title_filter=title_filter)
        filtered = apply_filters_non_destructive(jobs, title_filter, location_filter)
        logger.info(
            "%s: fetched %s total, %s after filtering", self.name, len(jobs), len(filtered)
        )
        return filtered

    @abstractmethod
    async def _fetch_all(self, url: str, http: httpx.AsyncClient, *, title_filter: str = "") -> List[Job]:
        """Pull every posting from the board (filters are applied by the caller)."""

    @asynccontextmanager
    async def _client(self, client: httpx.AsyncClient | None) -> AsyncIterator[httpx.AsyncClient]:
        if client is not None:
            yield client
            return
        async with httpx.AsyncClient(
            timeout=settings.http_timeout_seconds, follow_redirects=True
        ) as http:
            yield http

    async def _request_json(
        self,
        http: httpx.AsyncClient,
        method: str,
        url: str,
        *,
        headers: Dict[str, str] | None = None,
        json_body: Any = None,
        params: Dict[str, Any] | None = None,
    ) -> Any:
        try:
            response = await http.request(
                method,
                url,
                headers=headers or default_headers(),
                json=json_body,
                params=params,
            )
        except httpx.InvalidURL as exc:
            raise InvalidURLError(url) from exc
        except httpx.HTTPError as exc:
            raise InvalidResponseError(f"{self.name}: request to {url} failed: {exc}") from exc
        if response.status_code != 200:
            logger.error("%s: HTTP %s from %s", self.name, response.status_code, url)
            raise HTTPStatusError(response.status_code, url)
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise DecodingError(f"{self.name} response from {url} was not JSON") from exc

    @staticmethod
    def _path_parts(url: str) -> List[str]:
        try:
            parsed = urlparse(url)
        except ValueError:
            return []
        return [part for part in parsed.path.split("/") if part]
