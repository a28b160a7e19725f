from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import httpx

from ..exceptions import DecodingError, InvalidResponseError, InvalidURLError
from ..filters import extract_work_flexibility, parse_filter_keywords
from ..helpers.dates import parse_posted_text
from ..helpers.regex_patterns import LOCALE_SEGMENT_RE
from ..models import LOCATION_NOT_SPECIFIED, Job, JobSource, content_hash
from .base import BaseSiteHandler, default_headers

logger = logging.getLogger("job_parser.connectors.workday")

WORKDAY_HOST_SUFFIX = "myworkdayjobs.com"
PAGE_LIMIT = 20
MAX_PAGES = 5


@dataclass(frozen=True)
class WorkdayConfig:
    company: str
    instance: str
    site: str

    @property
    def origin(self) -> str:
        return f"https://{self.company}.{self.instance}.{WORKDAY_HOST_SUFFIX}"

    @property
    def site_url(self) -> str:
        return f"{self.origin}/{self.site}"

    @property
    def jobs_api_url(self) -> str:
        return f"{self.origin}/wday/cxs/{self.company}/{self.site}/jobs"

    @property
    def cache_key(self) -> str:
        return f"{self.company}.{self.instance}"


@dataclass(frozen=True)
class WorkdaySession:
    cookies: str = ""
    csrf_token: str = ""


def parse_workday_config(url: str) -> WorkdayConfig:
    """``https://acme.wd5.myworkdayjobs.com/en-US/External`` -> (acme, wd5, External)."""

    try:
        parsed = urlparse(url)
    except ValueError as exc:
        raise InvalidURLError(url) from exc
    host_parts = (parsed.hostname or "").lower().split(".")
    if len(host_parts) < 3 or not host_parts[1].startswith("wd"):
        raise InvalidURLError(url)
    company, instance = host_parts[0], host_parts[1]
    segments = [seg for seg in parsed.path.split("/") if seg]
    if "cxs" in segments:
        idx = segments.index("cxs")
        if idx + 2 < len(segments):
            return WorkdayConfig(company, instance, segments[idx + 2])
    segments = [seg for seg in segments if not LOCALE_SEGMENT_RE.match(seg)]
    if not segments:
        raise InvalidURLError(url)
    return WorkdayConfig(company, instance, segments[0])


class WorkdayHandler(BaseSiteHandler):
    name = "workday"
    source = JobSource.WORKDAY

    def __init__(self) -> None:
        self._sessions: Dict[str, WorkdaySession] = {}

    @classmethod
    def matches_url(cls, url: str) -> bool:
        try:
            host = (urlparse(url).hostname or "").lower()
        except ValueError:
            return False
        return host.endswith(WORKDAY_HOST_SUFFIX)

    def board_slug(self, uri: str) -> Optional[str]:
        try:
            return parse_workday_config(uri).company
        except InvalidURLError:
            return None

    def get_listing_api_uri(self, uri: str) -> Optional[str]:
        try:
            return parse_workday_config(uri).jobs_api_url
        except InvalidURLError:
            return None

    def get_company_uri(self, uri: str) -> Optional[str]:
        try:
            return parse_workday_config(uri).site_url
        except InvalidURLError:
            return None

    async def _fetch_all(self, url: str, http: httpx.AsyncClient, *, title_filter: str = "") -> List[Job]:
        config = parse_workday_config(url)
        session = await self._establish_session(http, config)
        search_text = " ".join(parse_filter_keywords(title_filter))

        jobs: List[Job] = []
        seen: set[str] = set()
        offset = 0
        for _ in range(MAX_PAGES):
            payload = await self._fetch_page(http, config, session, offset, search_text)
            postings = payload.get("jobPostings") or []
            if not postings:
                break
            for posting in postings:
                job = self._to_job(posting, config)
                if job is None or job.id in seen:
                    continue
                seen.add(job.id)
                jobs.append(job)
            if len(postings) < PAGE_LIMIT:
                break
            offset += PAGE_LIMIT
        return jobs

    async def _establish_session(self, http: httpx.AsyncClient, config: WorkdayConfig) -> WorkdaySession:
        cached = self._sessions.get(config.cache_key)
        if cached is not None:
            return cached
        try:
            response = await http.get(config.site_url, headers=default_headers("text/html"))
        except httpx.HTTPError as exc:
            raise InvalidResponseError(f"workday: session request failed: {exc}") from exc
        cookies = {name: value for name, value in response.cookies.items()}
        session = WorkdaySession(
            cookies="; ".join(f"{name}={value}" for name, value in cookies.items()),
            csrf_token=cookies.get("CALYPSO_CSRF_TOKEN", ""),
        )
        logger.debug(
            "workday: session for %s has %s cookies (csrf=%s)",
            config.cache_key,
            len(cookies),
            bool(session.csrf_token),
        )
        self._sessions[config.cache_key] = session
        return session

    async def _fetch_page(
        self,
        http: httpx.AsyncClient,
        config: WorkdayConfig,
        session: WorkdaySession,
        offset: int,
        search_text: str,
    ) -> Dict[str, Any]:
        headers = default_headers()
        headers.update(
            {
                "Content-Type": "application/json",
                "Origin": config.origin,
                "Referer": config.site_url,
                "Sec-Fetch-Mode": "cors",
                "Sec-Fetch-Site": "same-origin",
                "Sec-Fetch-Dest": "empty",
            }
        )
        if session.cookies:
            headers["Cookie"] = session.cookies
        if session.csrf_token:
            headers["X-CALYPSO-CSRF-TOKEN"] = session.csrf_token
        body = {"appliedFacets": {}, "limit": PAGE_LIMIT, "offset": offset, "searchText": search_text}
        payload = await self._request_json(http, "POST", config.jobs_api_url, headers=headers, json_body=body)
        if not isinstance(payload, dict):
            raise DecodingError("Workday response was not an object")
        return payload

    def _to_job(self, posting: Any, config: WorkdayConfig) -> Optional[Job]:
        if not isinstance(posting, dict):
            return None
        title = posting.get("title")
        external_path = posting.get("externalPath") or ""
        if not isinstance(title, str) or not title.strip() or not external_path:
            return None
        bullets = [str(item) for item in posting.get("bulletFields") or [] if item]
        last_segment = external_path.rstrip("/").split("/")[-1]
        job_id = bullets[0] if bullets else (last_segment or content_hash(title, external_path))
        title_slug = last_segment.split("_")[0] or title.replace(" ", "-").replace(",", "")
        location = posting.get("locationsText") or LOCATION_NOT_SPECIFIED
        remote_type = posting.get("remoteType")
        return Job(
            id=f"workday-{job_id}",
            title=title.strip(),
            location=location,
            posting_date=parse_posted_text(posting.get("postedOn")),
            url=f"{config.origin}/en-US/{config.site}/details/{title_slug}_{job_id}",
            work_flexibility=extract_work_flexibility(f"{remote_type or ''} {location}"),
            source=self.source,
            company_name=" ".join(part.capitalize() for part in config.company.replace("-", " ").split()),
            category=bullets[1] if len(bullets) > 1 else None,
        )
