from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from .models import Job, WorkFlexibility

logger = logging.getLogger("job_parser.filters")

REMOTE_KEYWORDS = ("remote", "work from home", "distributed", "anywhere")
_FLEXIBILITY_KEYWORDS = (
    (WorkFlexibility.REMOTE, ("remote", "work from home")),
    (WorkFlexibility.HYBRID, ("hybrid", "flexible")),
    (WorkFlexibility.ONSITE, ("onsite", "on-site", "in-office")),
)


def parse_filter_keywords(raw: str | None) -> List[str]:
    """``"manager, engineer"`` -> ``["manager", "engineer"]``."""

    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


def including_remote(keywords: Sequence[str]) -> List[str]:
    """Location searches implicitly accept remote postings."""

    keywords = list(keywords)
    if not keywords:
        return keywords
    has_remote = any(remote in keyword.lower() for keyword in keywords for remote in REMOTE_KEYWORDS)
    return keywords if has_remote else keywords + ["remote"]


def _matches_any(keywords: Iterable[str], *values: Optional[str]) -> bool:
    haystacks = [value.lower() for value in values if value]
    return any(keyword.lower() in haystack for keyword in keywords for haystack in haystacks)


def apply_filters(jobs: Sequence[Job], title_filter: str = "", location_filter: str = "") -> List[Job]:
    title_keywords = parse_filter_keywords(title_filter)
    location_keywords = including_remote(parse_filter_keywords(location_filter))
    result = list(jobs)
    if title_keywords:
        result = [
            job
            for job in result
            if _matches_any(title_keywords, job.title, job.department, job.category)
        ]
    if location_keywords:
        result = [job for job in result if _matches_any(location_keywords, job.location)]
    return result


def apply_filters_non_destructive(
    jobs: Sequence[Job], title_filter: str = "", location_filter: str = ""
) -> List[Job]:
    """Filter, unless filtering would turn a non-empty list into nothing."""

    filtered = apply_filters(jobs, title_filter, location_filter)
    if jobs and not filtered:
        logger.info(
            "Filters (title=%r, location=%r) removed all %s jobs; returning unfiltered list",
            title_filter,
            location_filter,
            len(jobs),
        )
        return list(jobs)
    return filtered


def extract_work_flexibility(text: str | None) -> Optional[WorkFlexibility]:
    if not text:
        return None
    lowered = text.lower()
    for flexibility, keywords in _FLEXIBILITY_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return flexibility
    return None
