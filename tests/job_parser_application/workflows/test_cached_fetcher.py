from __future__ import annotations

import json

import httpx
import pytest

from job_parser_application.workflows.cached_schema_fetcher import (
    CachedSchemaFetcher,
    page_params,
    replayable_headers,
)
from job_parser_application.workflows.exceptions import HTTPStatusError
from job_parser_application.workflows.models import (
    DiscoveredAPISchema,
    JobResponseStructure,
    PaginationInfo,
    PaginationType,
)


def _schema(clock, **overrides) -> DiscoveredAPISchema:
    fields = dict(
        domain="acme.com",
        endpoint="https://acme.com/api/jobs",
        response_structure=JobResponseStructure(
            jobs_array_path="data.jobs", title_field="name", id_field="id", url_field="path"
        ),
        discovered_at=clock(),
        last_attempt=clock(),
        llm_attempted=True,
        schema_discovered=True,
    )
    fields.update(overrides)
    return DiscoveredAPISchema(**fields)


def _page(start: int, count: int) -> dict:
    return {
        "data": {
            "jobs": [
                {"id": n, "name": f"Role {n}", "path": f"/jobs/{n}"} for n in range(start, start + count)
            ]
        }
    }


def _factory(handler):
    return lambda: httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_offset_pagination_stops_on_short_page(clock):
    seen_params = []

    def handler(request: httpx.Request) -> httpx.Response:
        offset = int(request.url.params["offset"])
        seen_params.append((offset, int(request.url.params["limit"])))
        return httpx.Response(200, json=_page(offset, 20 if offset == 0 else 5))

    schema = _schema(
        clock,
        pagination=PaginationInfo(type=PaginationType.OFFSET, page_size=20, max_pages=5),
    )

    jobs = await CachedSchemaFetcher(client_factory=_factory(handler)).fetch(
        schema, base_url="https://acme.com/careers"
    )

    assert seen_params == [(0, 20), (20, 20)]
    assert len(jobs) == 25
    assert jobs[0].id == "acme.com-0"
    assert jobs[0].url == "https://acme.com/jobs/0"
    assert jobs[0].location == "Remote"
    assert jobs[0].company_name == "Acme"


@pytest.mark.asyncio
async def test_post_body_carries_page_parameter(clock):
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        assert request.headers["Content-Type"] == "application/json"
        return httpx.Response(200, json=_page(0, 2))

    schema = _schema(
        clock,
        method="POST",
        request_body='{"query": "eng"}',
        pagination=PaginationInfo(type=PaginationType.PAGE, param_name="page"),
    )

    jobs = await CachedSchemaFetcher(client_factory=_factory(handler)).fetch(schema)

    assert bodies == [{"query": "eng", "page": 1}]
    assert len(jobs) == 2


@pytest.mark.asyncio
async def test_first_page_error_propagates(clock):
    fetcher = CachedSchemaFetcher(client_factory=_factory(lambda request: httpx.Response(500)))

    with pytest.raises(HTTPStatusError):
        await fetcher.fetch(_schema(clock))


@pytest.mark.asyncio
async def test_later_page_error_keeps_earlier_results(clock):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params["page"] == "1":
            return httpx.Response(200, json=_page(0, 20))
        return httpx.Response(503)

    schema = _schema(
        clock,
        pagination=PaginationInfo(type=PaginationType.PAGE, param_name="page", max_pages=3),
    )

    jobs = await CachedSchemaFetcher(client_factory=_factory(handler)).fetch(schema)

    assert len(jobs) == 20


def test_page_params_by_pagination_type():
    offset = PaginationInfo(type=PaginationType.OFFSET, param_name="start", page_size_param="rows", page_size=10)
    page = PaginationInfo(type=PaginationType.PAGE)

    assert page_params(offset, 2) == {"start": 20, "rows": 10}
    assert page_params(page, 0) == {"page": 1}
    assert page_params(PaginationInfo(type=PaginationType.CURSOR), 1) == {}
    assert page_params(None, 0) == {}


def test_replayable_headers_drops_transport_headers():
    headers = {"Content-Length": "12", "Host": "acme.com", "X-Api-Key": "k"}

    assert replayable_headers(headers) == {"X-Api-Key": "k"}
