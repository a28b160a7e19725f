from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import httpx

from ..exceptions import APIError, DecodingError
from ..filters import extract_work_flexibility
from ..helpers.link_extractors import company_name_from_slug
from ..helpers.regex_patterns import UUID_SEGMENT_RE
from ..models import LOCATION_NOT_SPECIFIED, Job, JobSource
from .base import BaseSiteHandler, default_headers

GRAPHQL_OPERATION = "ApiJobBoardWithTeams"
GRAPHQL_ENDPOINT = f"https://jobs.ashbyhq.com/api/non-user-graphql?op={GRAPHQL_OPERATION}"
JOB_BOARD_QUERY = """
query ApiJobBoardWithTeams($organizationHostedJobsPageName: String!) {
  jobBoard: jobBoardWithTeams(organizationHostedJobsPageName: $organizationHostedJobsPageName) {
    teams { id name parentTeamId }
    jobPostings {
      id
      title
      teamId
      locationId
      locationName
      workplaceType
      employmentType
      secondaryLocations { locationId locationName }
      compensationTierSummary
    }
  }
}
""".strip()


class AshbyHqHandler(BaseSiteHandler):
    name = "ashby"
    source = JobSource.ASHBY

    @classmethod
    def matches_url(cls, url: str) -> bool:
        try:
            host = (urlparse(url).hostname or "").lower()
        except ValueError:
            return False
        return host.endswith("ashbyhq.com")

    def board_slug(self, uri: str) -> Optional[str]:
        if not self.matches_url(uri):
            return None
        segments = self._path_parts(uri)
        if not segments:
            return None
        if len(segments) >= 3 and segments[0] == "posting-api" and segments[1] == "job-board":
            return segments[2]
        return segments[0]

    def get_listing_api_uri(self, uri: str) -> Optional[str]:
        return GRAPHQL_ENDPOINT if self.board_slug(uri) else None

    def get_company_uri(self, uri: str) -> Optional[str]:
        slug = self.board_slug(uri)
        if not slug:
            return None
        return f"https://jobs.ashbyhq.com/{slug}"

    @staticmethod
    def normalize_board_url(url: str) -> str:
        """Drop a trailing posting UUID so a job link points at its board."""

        try:
            parsed = urlparse(url)
        except ValueError:
            return url
        segments = [seg for seg in parsed.path.split("/") if seg]
        while len(segments) > 1 and (UUID_SEGMENT_RE.match(segments[-1]) or segments[-1] == "application"):
            segments.pop()
        path = "/" + "/".join(segments) if segments else ""
        return f"{parsed.scheme or 'https'}://{parsed.netloc}{path}"

    async def _fetch_all(self, url: str, http: httpx.AsyncClient, *, title_filter: str = "") -> List[Job]:
        slug = self.board_slug(url)
        if not slug:
            raise DecodingError(f"could not find an Ashby board in {url}")
        body = {
            "operationName": GRAPHQL_OPERATION,
            "variables": {"organizationHostedJobsPageName": slug},
            "query": JOB_BOARD_QUERY,
        }
        headers = default_headers()
        headers["Content-Type"] = "application/json"
        payload = await self._request_json(http, "POST", GRAPHQL_ENDPOINT, headers=headers, json_body=body)
        if not isinstance(payload, dict):
            raise DecodingError("Ashby response was not an object")
        errors = payload.get("errors")
        if errors:
            raise APIError(f"Ashby GraphQL error for '{slug}': {errors}")
        board = (payload.get("data") or {}).get("jobBoard")
        if not isinstance(board, dict):
            raise DecodingError(f"Ashby board '{slug}' missing from response")

        teams: Dict[str, str] = {
            str(team.get("id")): team.get("name")
            for team in board.get("teams") or []
            if isinstance(team, dict) and team.get("name")
        }
        company = company_name_from_slug(slug)
        jobs: List[Job] = []
        for posting in board.get("jobPostings") or []:
            job = self._to_job(posting, slug, company, teams)
            if job is not None:
                jobs.append(job)
        return jobs

    def _to_job(self, posting: Any, slug: str, company: str, teams: Dict[str, str]) -> Optional[Job]:
        if not isinstance(posting, dict):
            return None
        posting_id = posting.get("id")
        title = posting.get("title")
        if not posting_id or not isinstance(title, str) or not title.strip():
            return None
        location = posting.get("locationName") or LOCATION_NOT_SPECIFIED
        secondary = [
            entry.get("locationName")
            for entry in posting.get("secondaryLocations") or []
            if isinstance(entry, dict) and entry.get("locationName")
        ]
        if secondary:
            location = f"{location} (+ {', '.join(secondary)})"
        workplace = posting.get("workplaceType")
        return Job(
            id=f"ashby-{posting_id}",
            title=title.strip(),
            location=location,
            url=f"https://jobs.ashbyhq.com/{slug}/{posting_id}",
            description=posting.get("compensationTierSummary") or "",
            work_flexibility=extract_work_flexibility(f"{workplace or ''} {location}"),
            source=self.source,
            company_name=company,
            department=teams.get(str(posting.get("teamId"))),
            category=posting.get("employmentType"),
        )
