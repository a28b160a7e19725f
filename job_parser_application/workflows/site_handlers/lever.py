from __future__ import annotations

from typing import Any, List, Optional
from urllib.parse import urlparse

import httpx

from ..exceptions import DecodingError, NoJobsError
from ..filters import extract_work_flexibility
from ..helpers.dates import parse_epoch_millis
from ..models import LOCATION_NOT_SPECIFIED, Job, JobSource
from .base import BaseSiteHandler

POSTINGS_API_TEMPLATE = "https://api.lever.co/v0/postings/{slug}"


class LeverHandler(BaseSiteHandler):
    name = "lever"
    source = JobSource.LEVER

    @classmethod
    def matches_url(cls, url: str) -> bool:
        try:
            host = (urlparse(url).hostname or "").lower()
        except ValueError:
            return False
        return host.endswith("lever.co")

    def board_slug(self, uri: str) -> Optional[str]:
        if not self.matches_url(uri):
            return None
        parts = self._path_parts(uri)
        if len(parts) >= 3 and parts[0] == "v0" and parts[1] == "postings":
            return parts[2]
        return parts[0] if parts else None

    def get_listing_api_uri(self, uri: str) -> Optional[str]:
        slug = self.board_slug(uri)
        if not slug:
            return None
        return POSTINGS_API_TEMPLATE.format(slug=slug)

    def get_company_uri(self, uri: str) -> Optional[str]:
        slug = self.board_slug(uri)
        if not slug:
            return None
        return f"https://jobs.lever.co/{slug}"

    async def _fetch_all(self, url: str, http: httpx.AsyncClient, *, title_filter: str = "") -> List[Job]:
        slug = self.board_slug(url)
        api_url = self.get_listing_api_uri(url)
        if not slug or not api_url:
            raise DecodingError(f"could not find a Lever board in {url}")
        payload = await self._request_json(http, "GET", api_url, params={"mode": "json"})
        if not isinstance(payload, list):
            raise DecodingError("Lever response was not a list of postings")
        if not payload:
            raise NoJobsError(f"Lever board '{slug}' has no postings")

        company = slug.capitalize()
        jobs: List[Job] = []
        for posting in payload:
            job = self._to_job(posting, company)
            if job is not None:
                jobs.append(job)
        return jobs

    def _to_job(self, posting: Any, company: str) -> Optional[Job]:
        if not isinstance(posting, dict):
            return None
        posting_id = posting.get("id")
        title = posting.get("text")
        hosted_url = posting.get("hostedUrl")
        if not posting_id or not isinstance(title, str) or not title.strip() or not hosted_url:
            return None
        categories = posting.get("categories") or {}
        if not isinstance(categories, dict):
            categories = {}
        location = categories.get("location") or LOCATION_NOT_SPECIFIED
        description = posting.get("descriptionPlain") or ""
        flexibility_hint = " ".join(
            str(value) for value in (location, posting.get("workplaceType"), description) if value
        )
        return Job(
            id=f"lever-{posting_id}",
            title=title.strip(),
            location=location,
            posting_date=parse_epoch_millis(posting.get("createdAt")),
            url=hosted_url,
            description=description,
            work_flexibility=extract_work_flexibility(flexibility_hint),
            source=self.source,
            company_name=company,
            department=categories.get("team"),
            category=categories.get("commitment"),
        )
