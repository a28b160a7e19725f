from __future__ import annotations

from typing import List, Optional
from urllib.parse import parse_qs, urlparse

import httpx
from pydantic import ValidationError

from ..exceptions import DecodingError
from ..filters import extract_work_flexibility
from ..helpers.dates import parse_iso_datetime
from ..helpers.html_cleaner import clean_html
from ..helpers.link_extractors import company_name_from_slug
from ..helpers.regex_patterns import NUMERIC_SEGMENT_RE
from ..models import Job, JobSource, load_greenhouse_board
from .base import BaseSiteHandler

BOARDS_API_TEMPLATE = "https://boards-api.greenhouse.io/v1/boards/{slug}/jobs"
_BOARD_HOSTS = ("boards.greenhouse.io", "job-boards.greenhouse.io", "job-boards.eu.greenhouse.io")


class GreenhouseHandler(BaseSiteHandler):
    name = "greenhouse"
    source = JobSource.GREENHOUSE

    @classmethod
    def matches_url(cls, url: str) -> bool:
        if "gh_jid" in url:
            return True
        try:
            host = (urlparse(url).hostname or "").lower()
        except ValueError:
            return False
        return "greenhouse.io" in host

    def board_slug(self, uri: str) -> Optional[str]:
        try:
            parsed = urlparse(uri)
        except ValueError:
            return None
        query = parse_qs(parsed.query)
        for key in ("board", "for"):
            values = query.get(key)
            if values and values[0].strip():
                return values[0].strip()
        parts = [p for p in parsed.path.split("/") if p]
        if len(parts) >= 3 and parts[0] == "v1" and parts[1] == "boards":
            return parts[2]
        if "boards" in parts:
            idx = parts.index("boards")
            if idx + 1 < len(parts):
                return parts[idx + 1]
        host = (parsed.hostname or "").lower()
        if host in _BOARD_HOSTS or host.endswith(".greenhouse.io"):
            if parts and parts[0] != "embed":
                return parts[0]
            host_parts = host.split(".")
            if len(host_parts) >= 3 and host_parts[0] not in {"boards", "job-boards", "boards-api", "api", "www"}:
                return host_parts[0]
            return None
        return parts[0] if parts else None

    def get_listing_api_uri(self, uri: str) -> Optional[str]:
        slug = self.board_slug(uri)
        if not slug:
            return None
        return BOARDS_API_TEMPLATE.format(slug=slug)

    def get_company_uri(self, uri: str) -> Optional[str]:
        slug = self.board_slug(uri)
        if not slug:
            return None
        return f"https://boards.greenhouse.io/{slug}"

    @staticmethod
    def board_url_from_job_url(absolute_url: str) -> Optional[str]:
        """``.../acme/jobs/12345?gh_jid=1`` -> ``.../acme``."""

        try:
            parsed = urlparse(absolute_url)
        except ValueError:
            return None
        if not parsed.scheme or not parsed.netloc:
            return None
        parts = [p for p in parsed.path.split("/") if p]
        while parts and (NUMERIC_SEGMENT_RE.match(parts[-1]) or parts[-1] == "jobs"):
            parts.pop()
        path = "/" + "/".join(parts) if parts else ""
        return f"{parsed.scheme}://{parsed.netloc}{path}"

    async def _fetch_all(self, url: str, http: httpx.AsyncClient, *, title_filter: str = "") -> List[Job]:
        slug = self.board_slug(url)
        api_url = self.get_listing_api_uri(url)
        if not slug or not api_url:
            raise DecodingError(f"could not find a Greenhouse board in {url}")
        payload = await self._request_json(http, "GET", api_url, params={"content": "true"})
        try:
            board = load_greenhouse_board(payload)
        except (ValidationError, ValueError) as exc:
            raise DecodingError(f"Failed to decode Greenhouse response: {exc}") from exc

        company = company_name_from_slug(slug)
        jobs: List[Job] = []
        for gh_job in board.jobs:
            if not gh_job.title or not gh_job.absolute_url:
                continue
            description = clean_html(gh_job.content)
            location = (gh_job.location.name if gh_job.location else None) or "Not specified"
            department = next((dept.name for dept in gh_job.departments if dept.name), None)
            jobs.append(
                Job(
                    id=f"gh-{gh_job.id}",
                    title=gh_job.title,
                    location=location,
                    posting_date=parse_iso_datetime(gh_job.updated_at),
                    url=gh_job.absolute_url,
                    description=description,
                    work_flexibility=extract_work_flexibility(f"{location} {description}"),
                    source=self.source,
                    company_name=gh_job.company_name or company,
                    department=department,
                )
            )
        return jobs
