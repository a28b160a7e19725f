from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List, Optional

import httpx

from ..config.config import settings
from .exceptions import DecodingError, HTTPStatusError, InvalidResponseError, InvalidURLError
from .extractors import extract_jobs, to_job
from .helpers.link_extractors import company_name_from_host
from .models import (
    DEFAULT_PAGE_SIZE,
    DiscoveredAPISchema,
    Job,
    JobSource,
    PaginationInfo,
    PaginationType,
)
from .site_handlers.base import default_headers

logger = logging.getLogger("job_parser.cached_fetcher")

CACHED_JOB_DEFAULT_LOCATION = "Remote"
_UNREPLAYABLE_HEADERS = {"content-length", "host", "connection", "accept-encoding", "transfer-encoding"}


def replayable_headers(headers: Optional[Dict[str, str]]) -> Dict[str, str]:
    return {key: value for key, value in (headers or {}).items() if key.lower() not in _UNREPLAYABLE_HEADERS}


def page_params(pagination: Optional[PaginationInfo], page: int) -> Dict[str, Any]:
    """Request parameters selecting ``page`` (zero-based) for the given pagination style."""

    if pagination is None:
        return {}
    if pagination.type == PaginationType.OFFSET:
        return {
            pagination.param_name or "offset": page * pagination.page_size,
            pagination.page_size_param or "limit": pagination.page_size,
        }
    if pagination.type == PaginationType.PAGE:
        params: Dict[str, Any] = {pagination.param_name or "page": page + 1}
        if pagination.page_size_param:
            params[pagination.page_size_param] = pagination.page_size
        return params
    return {}


class CachedSchemaFetcher:
    """Replays a cached API recipe for a domain, page by page."""

    def __init__(self, client_factory: Callable[[], httpx.AsyncClient] | None = None) -> None:
        self._client_factory = client_factory or (
            lambda: httpx.AsyncClient(timeout=settings.http_timeout_seconds, follow_redirects=True)
        )

    async def fetch(self, schema: DiscoveredAPISchema, base_url: Optional[str] = None) -> List[Job]:
        if not schema.endpoint:
            raise InvalidURLError(schema.endpoint)
        base_url = base_url or schema.endpoint
        pagination = schema.pagination
        page_size = pagination.page_size if pagination else DEFAULT_PAGE_SIZE
        if pagination is None or pagination.type in (PaginationType.NONE, PaginationType.CURSOR):
            max_pages = 1
        else:
            max_pages = pagination.max_pages

        jobs: List[Job] = []
        seen: set[str] = set()
        async with self._client_factory() as http:
            for page in range(max_pages):
                try:
                    document = await self._fetch_page(http, schema, page)
                except (HTTPStatusError, DecodingError, InvalidResponseError):
                    if page == 0:
                        raise
                    logger.info("Stopping %s pagination at page %s after an error", schema.domain, page)
                    break
                parsed = extract_jobs(document, schema.response_structure, base_url)
                new_jobs = [
                    job
                    for job in (
                        to_job(
                            item,
                            base_url=base_url,
                            source=JobSource.UNKNOWN,
                            company_name=company_name_from_host(f"https://{schema.domain}"),
                            id_prefix=schema.domain,
                            default_location=CACHED_JOB_DEFAULT_LOCATION,
                        )
                        for item in parsed
                    )
                    if job.id not in seen
                ]
                logger.debug("%s page %s: %s parsed, %s new", schema.domain, page, len(parsed), len(new_jobs))
                if not new_jobs:
                    break
                for job in new_jobs:
                    seen.add(job.id)
                jobs.extend(new_jobs)
                if len(parsed) < page_size:
                    break
        logger.info("Cached schema for %s returned %s jobs", schema.domain, len(jobs))
        return jobs

    async def _fetch_page(self, http: httpx.AsyncClient, schema: DiscoveredAPISchema, page: int) -> Any:
        params = page_params(schema.pagination, page)
        if schema.sort is not None:
            params[schema.sort.param] = schema.sort.value
        method = (schema.method or "GET").upper()
        headers = default_headers()
        headers.update(replayable_headers(schema.headers))

        url = httpx.URL(schema.endpoint)
        content: Optional[str] = None
        if method == "GET":
            url = url.copy_merge_params(params)
        else:
            content = self._body_with_params(schema.request_body, params)
            if content is not None and "content-type" not in {key.lower() for key in headers}:
                headers["Content-Type"] = "application/json"
        try:
            response = await http.request(method, url, headers=headers, content=content)
        except httpx.HTTPError as exc:
            raise InvalidResponseError(f"cached endpoint {schema.endpoint} failed: {exc}") from exc
        if response.status_code != 200:
            raise HTTPStatusError(response.status_code, schema.endpoint)
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise DecodingError(f"cached endpoint {schema.endpoint} did not return JSON") from exc

    @staticmethod
    def _body_with_params(body: Optional[str], params: Dict[str, Any]) -> Optional[str]:
        if not body:
            return json.dumps(params) if params else None
        try:
            document = json.loads(body)
        except json.JSONDecodeError:
            return body
        if not isinstance(document, dict):
            return body
        document.update(params)
        return json.dumps(document)
