from __future__ import annotations

import logging
from typing import Any, List, Optional
from urllib.parse import urlparse

from pydantic import ValidationError

from ..models import JobResponseStructure, ParsedJob

logger = logging.getLogger("job_parser.extractors.schema")

_MISSING = object()
_GENERIC_PLACEHOLDERS = ("{id}", "{jobId}")


def navigate_path(document: Any, path: str) -> Any:
    """Walk a dot-separated path; returns ``None`` when any segment is missing.

    Numeric segments index into lists. An empty path returns the document.
    """

    node = document
    for segment in [part for part in (path or "").split(".") if part]:
        if isinstance(node, dict):
            node = node.get(segment, _MISSING)
        elif isinstance(node, list) and segment.isdigit():
            index = int(segment)
            node = node[index] if index < len(node) else _MISSING
        else:
            return None
        if node is _MISSING:
            return None
    return node


def _scalar_text(value: Any) -> Optional[str]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        cleaned = value.strip()
        return cleaned or None
    if isinstance(value, (int, float)):
        return str(int(value)) if float(value).is_integer() else str(value)
    return None


def _location_text(value: Any) -> Optional[str]:
    text = _scalar_text(value)
    if text:
        return text
    if isinstance(value, dict):
        for key in ("name", "city", "label", "text", "locationName"):
            text = _scalar_text(value.get(key))
            if text:
                return text
        return None
    if isinstance(value, list):
        names = [name for name in (_location_text(item) for item in value) if name]
        return "; ".join(dict.fromkeys(names)) or None
    return None


def build_job_url(
    value: Any,
    *,
    base_url: str,
    url_field: Optional[str] = None,
    url_template: Optional[str] = None,
) -> Optional[str]:
    """Absolute values pass through; otherwise fill the template or append to the base URL."""

    text = _scalar_text(value)
    if not text:
        return None
    if text.lower().startswith("http"):
        return text
    if url_template:
        filled = url_template
        placeholders = ([f"{{{url_field}}}"] if url_field else []) + list(_GENERIC_PLACEHOLDERS)
        for placeholder in placeholders:
            filled = filled.replace(placeholder, text)
        if filled != url_template:
            return filled
    if text.startswith("/"):
        parsed = urlparse(base_url)
        if parsed.scheme and parsed.netloc:
            return f"{parsed.scheme}://{parsed.netloc}{text}"
    return f"{base_url.rstrip('/')}/{text.lstrip('/')}"


def extract_jobs(document: Any, structure: JobResponseStructure, base_url: str) -> List[ParsedJob]:
    """Pull job candidates out of ``document`` using a cached response structure.

    Fails closed: a missing path (or a non-list at the end of it) yields ``[]``.
    """

    items = navigate_path(document, structure.jobs_array_path)
    if not isinstance(items, list):
        logger.debug("No array at path %r", structure.jobs_array_path)
        return []

    jobs: List[ParsedJob] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        title = _scalar_text(navigate_path(item, structure.title_field))
        if not title:
            continue
        location = None
        if structure.location_field:
            location = _location_text(navigate_path(item, structure.location_field))
        url = None
        if structure.url_field:
            url = build_job_url(
                navigate_path(item, structure.url_field),
                base_url=base_url,
                url_field=structure.url_field,
                url_template=structure.url_template,
            )
        description = None
        if structure.description_field:
            description = _scalar_text(navigate_path(item, structure.description_field))
        job_id = None
        if structure.id_field:
            job_id = _scalar_text(navigate_path(item, structure.id_field))
        posting_date = None
        if structure.posting_date_field:
            posting_date = _scalar_text(navigate_path(item, structure.posting_date_field))
        try:
            jobs.append(
                ParsedJob(
                    title=title,
                    location=location,
                    url=url or base_url,
                    description=description,
                    id=job_id,
                    posting_date=posting_date,
                )
            )
        except ValidationError:
            continue
    return jobs
