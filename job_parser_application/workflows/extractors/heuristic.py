from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence, Tuple

from ..models import JobResponseStructure, ParsedJob
from .json_schema import extract_jobs

logger = logging.getLogger("job_parser.extractors.heuristic")

ARRAY_KEYS = (
    "jobs",
    "results",
    "data",
    "items",
    "positions",
    "listings",
    "openings",
    "jobPostings",
    "postings",
    "opportunities",
    "roles",
    "requisitions",
)
TITLE_KEYS = ("title", "text", "name", "position", "jobTitle", "role")
LOCATION_KEYS = ("location", "locations", "office", "city", "cityState", "region", "locationName")
URL_KEYS = (
    "url",
    "link",
    "href",
    "applyURL",
    "applyUrl",
    "jobUrl",
    "originalURL",
    "absolute_url",
    "hostedUrl",
)
ID_KEYS = ("id", "jobId", "requisitionID", "uniqueID", "slug", "req_id")
DESCRIPTION_KEYS = ("description", "descriptionPlain", "summary", "content")
DATE_KEYS = ("postedOn", "postedDate", "datePosted", "createdAt", "updated_at", "publishedAt")

_MAX_SEARCH_DEPTH = 5


def _first_key(item: dict, keys: Sequence[str], *, want_str: bool = True) -> Optional[str]:
    for key in keys:
        value = item.get(key)
        if value is None or isinstance(value, bool):
            continue
        if want_str and isinstance(value, str) and value.strip():
            return key
        if not want_str and value not in ("", [], {}):
            return key
    return None


def _looks_like_job_list(value: Any) -> bool:
    if not isinstance(value, list) or not value:
        return False
    sample = [item for item in value[:5] if isinstance(item, dict)]
    if not sample:
        return False
    return any(_first_key(item, TITLE_KEYS) for item in sample)


def find_jobs_array(document: Any) -> Optional[Tuple[str, List[Any]]]:
    """Locate the most plausible jobs array and return ``(dot_path, items)``."""

    if _looks_like_job_list(document):
        return "", document
    if not isinstance(document, dict):
        return None

    for key in ARRAY_KEYS:
        if _looks_like_job_list(document.get(key)):
            return key, document[key]

    # One level down: ``jobSearch.jobs``, ``data.results`` ...
    for outer_key, outer in document.items():
        if not isinstance(outer, dict):
            continue
        for key in ARRAY_KEYS:
            if _looks_like_job_list(outer.get(key)):
                return f"{outer_key}.{key}", outer[key]

    def _search(node: Any, path: str, depth: int) -> Optional[Tuple[str, List[Any]]]:
        if depth > _MAX_SEARCH_DEPTH:
            return None
        if isinstance(node, dict):
            for key, child in node.items():
                child_path = f"{path}.{key}" if path else str(key)
                if _looks_like_job_list(child):
                    return child_path, child
                found = _search(child, child_path, depth + 1)
                if found:
                    return found
        return None

    return _search(document, "", 0)


def infer_structure(document: Any) -> Optional[JobResponseStructure]:
    """Guess a response structure from common key names, without a model."""

    found = find_jobs_array(document)
    if not found:
        return None
    path, items = found
    sample = next((item for item in items if isinstance(item, dict) and _first_key(item, TITLE_KEYS)), None)
    if sample is None:
        return None
    title_field = _first_key(sample, TITLE_KEYS)
    if not title_field:
        return None
    url_field = _first_key(sample, URL_KEYS)
    id_field = _first_key(sample, ID_KEYS, want_str=False)
    return JobResponseStructure(
        jobs_array_path=path,
        title_field=title_field,
        location_field=_first_key(sample, LOCATION_KEYS, want_str=False),
        url_field=url_field,
        description_field=_first_key(sample, DESCRIPTION_KEYS),
        id_field=id_field,
        posting_date_field=_first_key(sample, DATE_KEYS, want_str=False),
    )


def extract_heuristic(
    document: Any, base_url: str
) -> Tuple[List[ParsedJob], Optional[JobResponseStructure]]:
    structure = infer_structure(document)
    if structure is None:
        return [], None
    jobs = extract_jobs(document, structure, base_url)
    logger.debug("Heuristic extraction found %s jobs at %r", len(jobs), structure.jobs_array_path)
    return jobs, structure if jobs else None
