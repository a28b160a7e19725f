from __future__ import annotations

import html as html_lib
import json
import logging
import re
from typing import Any, Iterator, List, Optional

from pydantic import ValidationError

from ..helpers.html_cleaner import clean_html
from ..helpers.regex_patterns import (
    EMBEDDED_STATE_PATTERN_TEMPLATE,
    EMBEDDED_STATE_VARIABLES,
    JSON_LD_SCRIPT_RE,
    NEXT_DATA_RE,
)
from ..models import ParsedJob
from .json_schema import navigate_path

logger = logging.getLogger("job_parser.extractors.structured")

_DECODER = json.JSONDecoder()


def _loads(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    try:
        return json.loads(html_lib.unescape(text))
    except json.JSONDecodeError:
        return None


def _iter_ld_nodes(node: Any) -> Iterator[dict]:
    if isinstance(node, list):
        for child in node:
            yield from _iter_ld_nodes(child)
    elif isinstance(node, dict):
        yield node
        graph = node.get("@graph")
        if isinstance(graph, list):
            yield from _iter_ld_nodes(graph)
        items = node.get("itemListElement")
        if isinstance(items, list):
            for entry in items:
                if isinstance(entry, dict):
                    yield from _iter_ld_nodes(entry.get("item", entry))


def _is_job_posting(node: dict) -> bool:
    kind = node.get("@type")
    if isinstance(kind, list):
        return "JobPosting" in kind
    return kind == "JobPosting"


def _ld_location(node: dict) -> Optional[str]:
    if str(node.get("jobLocationType", "")).upper() == "TELECOMMUTE":
        return "Remote"
    locations = node.get("jobLocation")
    if isinstance(locations, dict):
        locations = [locations]
    if not isinstance(locations, list):
        return None
    names: List[str] = []
    for location in locations:
        if not isinstance(location, dict):
            continue
        address = location.get("address")
        if isinstance(address, dict):
            parts = [
                address.get("addressLocality"),
                address.get("addressRegion"),
                address.get("addressCountry") if isinstance(address.get("addressCountry"), str) else None,
            ]
            label = ", ".join(part for part in parts if isinstance(part, str) and part.strip())
            if label:
                names.append(label)
        elif isinstance(address, str) and address.strip():
            names.append(address.strip())
    return "; ".join(dict.fromkeys(names)) or None


def _ld_identifier(node: dict) -> Optional[str]:
    identifier = node.get("identifier")
    if isinstance(identifier, dict):
        identifier = identifier.get("value")
    if isinstance(identifier, (str, int)) and not isinstance(identifier, bool):
        return str(identifier)
    return None


def extract_json_ld_jobs(html: Optional[str], base_url: str) -> List[ParsedJob]:
    """schema.org ``JobPosting`` objects from ``application/ld+json`` blocks."""

    if not html:
        return []
    jobs: List[ParsedJob] = []
    for match in JSON_LD_SCRIPT_RE.finditer(html):
        payload = _loads(match.group("content").strip())
        for node in _iter_ld_nodes(payload):
            if not _is_job_posting(node):
                continue
            title = node.get("title") or node.get("name")
            if not isinstance(title, str) or not title.strip():
                continue
            url = node.get("url") or node.get("sameAs")
            try:
                jobs.append(
                    ParsedJob(
                        title=html_lib.unescape(title),
                        location=_ld_location(node),
                        url=url if isinstance(url, str) and url.strip() else base_url,
                        description=clean_html(node.get("description")) or None,
                        posting_date=node.get("datePosted"),
                        id=_ld_identifier(node),
                    )
                )
            except ValidationError:
                continue
    return jobs


def extract_next_data(html: Optional[str]) -> Any:
    """``props.pageProps`` of a Next.js ``__NEXT_DATA__`` blob (or the whole blob)."""

    if not html:
        return None
    match = NEXT_DATA_RE.search(html)
    if not match:
        return None
    payload = _loads(match.group("content").strip())
    if payload is None:
        return None
    page_props = navigate_path(payload, "props.pageProps")
    return page_props if page_props is not None else payload


def extract_embedded_state(html: Optional[str]) -> List[Any]:
    """JSON assigned to well-known window state globals, in declaration order."""

    if not html:
        return []
    documents: List[Any] = []
    for name in EMBEDDED_STATE_VARIABLES:
        pattern = re.compile(EMBEDDED_STATE_PATTERN_TEMPLATE.format(name=re.escape(name)))
        for match in pattern.finditer(html):
            try:
                document, _ = _DECODER.raw_decode(html, match.end())
            except json.JSONDecodeError:
                logger.debug("State blob %s is not plain JSON", name)
                continue
            documents.append(document)
            break
    return documents
