from __future__ import annotations

import html as html_lib
import logging
from typing import Callable, List, Optional

from pydantic import ValidationError

from ..helpers.link_extractors import host_of, normalize_url
from ..helpers.regex_patterns import (
    ANCHOR_RE,
    HREF_ATTR_RE,
    HTML_TAG_RE,
    JOB_CLASS_ATTR_RE,
    JOB_ID_ATTR_RE,
    JOB_LINK_PATH_RE,
    NAVIGATION_TITLE_RE,
)
from ..models import ParsedJob

logger = logging.getLogger("job_parser.extractors.html")

MIN_TITLE_LENGTH = 5
MAX_TITLE_LENGTH = 150


def _anchor_text(raw: str) -> str:
    text = html_lib.unescape(HTML_TAG_RE.sub(" ", raw or ""))
    return " ".join(text.split())


def _is_plausible_title(title: str) -> bool:
    if len(title) < MIN_TITLE_LENGTH or len(title) > MAX_TITLE_LENGTH:
        return False
    return not NAVIGATION_TITLE_RE.search(title)


def _collect(
    html: str,
    base_url: str,
    accept: Callable[[str, str], bool],
) -> List[ParsedJob]:
    jobs: List[ParsedJob] = []
    seen: set[str] = set()
    page_host = host_of(base_url)
    for match in ANCHOR_RE.finditer(html):
        attrs = match.group("attrs") or ""
        href_match = HREF_ATTR_RE.search(attrs)
        if not href_match:
            continue
        url = normalize_url(href_match.group("href"), base_url=base_url)
        if not url or url in seen:
            continue
        if not accept(attrs, url):
            continue
        title = _anchor_text(match.group("text"))
        if not _is_plausible_title(title):
            continue
        # Links back to the bare listing page are navigation, not postings.
        if url.rstrip("/") == base_url.rstrip("/"):
            continue
        try:
            jobs.append(ParsedJob(title=title, url=url))
        except ValidationError:
            continue
        seen.add(url)
    logger.debug("Collected %s job links from %s", len(jobs), page_host or base_url)
    return jobs


def extract_attribute_job_links(html: str, base_url: str) -> List[ParsedJob]:
    """Anchors whose id/class/data attributes mark them as job entries."""

    def _accept(attrs: str, url: str) -> bool:
        return bool(JOB_ID_ATTR_RE.search(attrs) or JOB_CLASS_ATTR_RE.search(attrs))

    return _collect(html, base_url, _accept)


def extract_path_job_links(html: str, base_url: str) -> List[ParsedJob]:
    """Anchors whose href path looks like a job/career/position detail page."""

    def _accept(attrs: str, url: str) -> bool:
        return bool(JOB_LINK_PATH_RE.search(url))

    return _collect(html, base_url, _accept)


def extract_job_links(html: Optional[str], base_url: str) -> List[ParsedJob]:
    """Run both link families; the attribute-based one wins when it finds anything."""

    if not html:
        return []
    jobs = extract_attribute_job_links(html, base_url)
    if jobs:
        return jobs
    return extract_path_job_links(html, base_url)
