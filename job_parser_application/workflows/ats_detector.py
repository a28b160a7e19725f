from __future__ import annotations

import json
import logging
import re
from typing import Awaitable, Callable, Dict, List, Optional, Tuple
from urllib.parse import urlparse

import httpx

from ..config.config import settings
from ..config.runtime_config import runtime_config
from .exceptions import DecodingError, InvalidResponseError, InvalidURLError, RenderError
from .helpers.link_extractors import (
    dedupe_str_list,
    host_of,
    normalize_url,
    second_level_label,
    unescape_js_url,
)
from .helpers.regex_patterns import (
    EMBEDDED_ATS_URL_RES,
    GTM_CONTAINER_ID_RE,
    GTM_SCRIPT_URL_TEMPLATE,
    IFRAME_SRC_RE,
    JS_REDIRECT_RES,
    META_REFRESH_RE,
    SCRIPT_BLOCK_RE,
    SRC_ATTR_RE,
    WORKDAY_CONFIG_RE,
    WORKDAY_FRAGMENT_RE,
)
from .models import ATSConfidence, DetectionResult, JobSource, RenderResult
from .render import Renderer
from .site_handlers.ashby import AshbyHqHandler
from .site_handlers.base import default_headers
from .site_handlers.greenhouse import GreenhouseHandler

logger = logging.getLogger("job_parser.ats")

ClientFactory = Callable[[], httpx.AsyncClient]

# Substring checks over the lowercased URL, first hit wins.
URL_SOURCE_PATTERNS: Tuple[Tuple[str, JobSource], ...] = (
    ("myworkdayjobs.com", JobSource.WORKDAY),
    ("greenhouse.io", JobSource.GREENHOUSE),
    ("workable.com", JobSource.WORKABLE),
    ("jobvite.com", JobSource.JOBVITE),
    ("lever.co", JobSource.LEVER),
    ("bamboohr.com", JobSource.BAMBOOHR),
    ("smartrecruiters.com", JobSource.SMARTRECRUITERS),
    ("ashbyhq.com", JobSource.ASHBY),
    ("jazzhr.com", JobSource.JAZZHR),
    ("applytojob.com", JobSource.JAZZHR),
    ("recruitee.com", JobSource.RECRUITEE),
    ("breezy.hr", JobSource.BREEZYHR),
)
_WORKDAY_HOST_RE = re.compile(r"\.wd\d+\.")
_WORKDAY_STRIP_RE = re.compile(r"/(?:job|details)/|/(?:apply|login)(?:/|$)", re.IGNORECASE)

CAREERS_URL_HINTS = ("career", "job", "hiring", "join", "positions")
CAREERS_TEXT_HINTS = (
    "open position",
    "job opening",
    "join our team",
    "we're hiring",
    "apply now",
    "view all jobs",
    "current opening",
)
INDICATOR_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "greenhouse": ("greenhouse.io", "boards.greenhouse", "grnhse", "gh-", "data-gh"),
    "lever": (
        "lever.co",
        "jobs.lever",
        "api.lever",
        "data-lever",
        "lever-application",
        "lever ats",
        "levercareers",
    ),
    "ashby": ("ashbyhq", "jobs.ashbyhq", "ashby.com"),
    "workday": ("myworkdayjobs", "wd1.", "wd5.", "workday.com/careers"),
    "beamery": ("beamery", "pages.beamery.com", "flows.beamery.com", "beamery.referrers"),
}
DYNAMIC_INDICATORS = (
    "graphql",
    "apollo",
    "__apollo",
    "careerspagequery",
    "jobsquery",
    "window.__initial_state__",
    "window.__data",
    "react-root",
    "ng-app",
    "vue-app",
)
SUGGESTED_BOARD_TEMPLATES = {
    "greenhouse": "https://boards.greenhouse.io/{slug}",
    "lever": "https://jobs.lever.co/{slug}",
    "ashby": "https://jobs.ashbyhq.com/{slug}",
}
WORKDAY_PROBE_INSTANCES = ("wd1", "wd3", "wd5")
WORKDAY_PROBE_PATHS = ("careers", "en-US/careers")
PROBE_TIMEOUT_SECONDS = 10.0
WORKDAY_PROBE_TIMEOUT_SECONDS = 5.0


def match_url_pattern(url: str | None) -> Optional[JobSource]:
    """Name the ATS vendor straight from the URL, without fetching anything."""

    if not url:
        return None
    lowered = url.lower()
    host = host_of(lowered)
    if _WORKDAY_HOST_RE.search(host or lowered):
        return JobSource.WORKDAY
    for needle, source in URL_SOURCE_PATTERNS:
        if needle in lowered:
            return source
    return None


def _split(url: str) -> Tuple[str, str, List[str]]:
    parsed = urlparse(url)
    segments = [seg for seg in (parsed.path or "").split("/") if seg]
    return parsed.scheme or "https", parsed.netloc, segments


def normalize_ats_url(url: str, source: JobSource | None = None) -> str:
    """Reduce an ATS job or apply link to the root of its job list.

    Applying it twice gives the same result as applying it once.
    """

    cleaned = (url or "").strip()
    if not cleaned:
        return cleaned
    source = source or match_url_pattern(cleaned)
    try:
        scheme, netloc, segments = _split(cleaned)
    except ValueError:
        return cleaned
    if not netloc:
        return cleaned

    if source == JobSource.WORKDAY:
        path = urlparse(cleaned).path or ""
        match = _WORKDAY_STRIP_RE.search(path)
        if match:
            path = path[: match.start()]
        path = path.rstrip("/")
        return f"{scheme}://{netloc}{path}"
    if source == JobSource.GREENHOUSE:
        slug = GreenhouseHandler().board_slug(cleaned)
        if not slug:
            return f"{scheme}://{netloc}"
        host = netloc.lower()
        if host.startswith(("boards-api.", "api.")) or not host.endswith("greenhouse.io"):
            netloc = "boards.greenhouse.io"
        return f"{scheme}://{netloc}/{slug}"
    if source == JobSource.ASHBY:
        board = AshbyHqHandler.normalize_board_url(cleaned)
        _, _, board_segments = _split(board)
        return f"{scheme}://{netloc}/{board_segments[0]}" if board_segments else f"{scheme}://{netloc}"
    if source == JobSource.LEVER:
        if segments and segments[0] == "v0" and len(segments) >= 3:
            return f"{scheme}://jobs.lever.co/{segments[2]}"
        return f"{scheme}://{netloc}/{segments[0]}" if segments else f"{scheme}://{netloc}"
    path = "/" + "/".join(segments) if segments else ""
    return f"{scheme}://{netloc}{path}"


def looks_like_careers_page(url: str, html: str) -> bool:
    lowered_url = (url or "").lower()
    if any(hint in lowered_url for hint in CAREERS_URL_HINTS):
        return True
    lowered = (html or "").lower()
    return any(hint in lowered for hint in CAREERS_TEXT_HINTS)


def indicator_scores(html: str) -> Dict[str, int]:
    """Keyword hit counts per vendor; every Beamery hit also counts toward Workday."""

    lowered = (html or "").lower()
    scores = {vendor: 0 for vendor in INDICATOR_KEYWORDS}
    for vendor, keywords in INDICATOR_KEYWORDS.items():
        for keyword in keywords:
            if keyword in lowered:
                scores[vendor] += 1
                if vendor == "beamery":
                    scores["workday"] += 1
    return scores


def _workday_url_from_fragment(text: str) -> Optional[str]:
    match = WORKDAY_FRAGMENT_RE.search(text)
    if not match:
        return None
    return (
        f"https://{match.group('company')}.{match.group('instance')}.myworkdayjobs.com/"
        f"{match.group('site')}"
    )


def scan_embedded_ats_urls(text: str | None, message_prefix: str = "Found") -> Optional[DetectionResult]:
    """First known ATS URL in ``text``, literal or backslash-escaped."""

    if not text:
        return None
    candidates = [text]
    unescaped = unescape_js_url(text)
    if unescaped != text:
        candidates.append(unescaped)
    for regex, source_name in EMBEDDED_ATS_URL_RES:
        for candidate in candidates:
            match = regex.search(candidate)
            if not match:
                continue
            source = JobSource(source_name)
            found = match.group(0).rstrip(".")
            normalized = normalize_ats_url(found, source)
            logger.debug("Embedded %s URL %s -> %s", source.value, found, normalized)
            return DetectionResult(
                source=source,
                confidence=ATSConfidence.CERTAIN,
                actual_ats_url=normalized,
                message=f"{message_prefix} {source.display_name} ATS embedded in page: {normalized}",
            )
    return None


def scan_workday_config(text: str | None) -> Optional[DetectionResult]:
    """``workdayConfig`` blobs and bare ``company.wdN.myworkdayjobs.com/site`` fragments."""

    if not text:
        return None
    unescaped = unescape_js_url(text)
    url: Optional[str] = None
    for match in WORKDAY_CONFIG_RE.finditer(unescaped):
        blob = match.group("blob")
        url = _workday_url_from_fragment(blob)
        if url:
            break
        try:
            config = json.loads(blob)
        except json.JSONDecodeError:
            continue
        if isinstance(config, dict):
            company, instance = config.get("company"), config.get("instance")
            site = config.get("siteName") or config.get("site")
            if company and instance and site:
                url = f"https://{company}.{instance}.myworkdayjobs.com/{site}"
                break
    url = url or _workday_url_from_fragment(unescaped)
    if not url:
        return None
    return DetectionResult(
        source=JobSource.WORKDAY,
        confidence=ATSConfidence.CERTAIN,
        actual_ats_url=url,
        message=f"Found Workday configuration: {url}",
    )


def find_redirect_target(html: str, base_url: str) -> Optional[str]:
    match = META_REFRESH_RE.search(html or "")
    if match:
        return normalize_url(match.group("url"), base_url=base_url)
    for regex in JS_REDIRECT_RES:
        match = regex.search(html or "")
        if match:
            return normalize_url(match.group("url"), base_url=base_url)
    return None


def spa_fallback(html: str, url: str, scores: Dict[str, int]) -> DetectionResult:
    lowered = (html or "").lower()
    found = [indicator for indicator in DYNAMIC_INDICATORS if indicator in lowered]
    if len(found) < 2:
        return DetectionResult.not_detected("Could not detect ATS system from this page")
    suggested: Optional[str] = None
    ranked = sorted(
        (vendor for vendor in SUGGESTED_BOARD_TEMPLATES if scores.get(vendor, 0) > 0),
        key=lambda vendor: scores[vendor],
        reverse=True,
    )
    message = "This page loads jobs dynamically via JavaScript."
    if ranked:
        suggested = SUGGESTED_BOARD_TEMPLATES[ranked[0]].format(slug=second_level_label(url))
        message += f" It appears to use {ranked[0].capitalize()}. Try: {suggested}"
    return DetectionResult(
        confidence=ATSConfidence.UNCERTAIN,
        actual_ats_url=suggested,
        message=message,
    )


def _default_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=settings.http_timeout_seconds,
        follow_redirects=True,
        headers=default_headers("text/html,application/xhtml+xml,*/*"),
    )


class ATSDetector:
    """Works out which applicant tracking system actually backs a careers page."""

    def __init__(
        self,
        *,
        client_factory: ClientFactory | None = None,
        renderer: Renderer | None = None,
        max_script_fetches: int | None = None,
        render_wait_seconds: float | None = None,
    ) -> None:
        self._client_factory = client_factory or _default_client
        self._renderer = renderer
        self.max_script_fetches = (
            runtime_config.max_script_fetches if max_script_fetches is None else max_script_fetches
        )
        self.render_wait_seconds = (
            runtime_config.render_wait_seconds if render_wait_seconds is None else render_wait_seconds
        )

    async def detect(self, url: str) -> DetectionResult:
        source = match_url_pattern(url)
        if source is not None:
            normalized = normalize_ats_url(url, source)
            logger.info("Detected %s from URL pattern: %s", source.value, url)
            return DetectionResult(
                source=source,
                confidence=ATSConfidence.CERTAIN,
                actual_ats_url=normalized,
                message=f"Detected {source.display_name} from URL pattern",
            )

        async with self._client_factory() as http:
            html = await self._fetch_page(http, url)
            logger.debug("Fetched %s (%s chars) for ATS detection", url, len(html))

            scores = indicator_scores(html)
            careers = looks_like_careers_page(url, html)
            logger.debug("Indicator scores for %s: %s (careers page: %s)", url, scores, careers)

            result = await self._probe(http, url, scores, careers)
            if result is not None:
                return result

            result = scan_embedded_ats_urls(html)
            if result is not None:
                return result

            result = await self._follow_redirect(http, html, url)
            if result is not None:
                return result

            result = await self._scan_scripts(http, html, url)
            if result is not None:
                return result

        return spa_fallback(html, url, scores)

    async def detect_with_render(self, url: str) -> DetectionResult:
        """``detect`` plus a rendered-DOM pass when the static page gave nothing confident."""

        result = await self.detect(url)
        if result.is_confident or self._renderer is None:
            return result
        try:
            rendered = await self._renderer.render(url, self.render_wait_seconds)
        except RenderError as exc:
            logger.info("Render-based detection for %s failed: %s", url, exc)
            return result

        found = await self.scan_rendered(url, rendered)
        return found or result

    async def scan_rendered(self, url: str, rendered: RenderResult) -> Optional[DetectionResult]:
        """Look for an ATS in a rendered DOM and the calls the page made while rendering."""

        html = rendered.final_html
        found = scan_workday_config(html) or scan_embedded_ats_urls(html)
        if found is None:
            for src in dedupe_str_list(match.group("src") for match in IFRAME_SRC_RE.finditer(html)):
                source = match_url_pattern(src)
                if source is not None:
                    found = self._result_for(source, src, "Found ATS iframe")
                    break
        if found is None:
            for call in rendered.captured_calls:
                source = match_url_pattern(call.url)
                if source is not None:
                    found = self._result_for(source, call.url, "Page called ATS API")
                    break
        if found is None:
            async with self._client_factory() as http:
                found = await self._scan_scripts(http, html, url)
        return found

    @staticmethod
    def _result_for(source: JobSource, url: str, prefix: str) -> DetectionResult:
        normalized = normalize_ats_url(url, source)
        return DetectionResult(
            source=source,
            confidence=ATSConfidence.CERTAIN,
            actual_ats_url=normalized,
            message=f"{prefix}: {source.display_name} at {normalized}",
        )

    async def _fetch_page(self, http: httpx.AsyncClient, url: str) -> str:
        try:
            response = await http.get(url)
        except httpx.InvalidURL as exc:
            raise InvalidURLError(url) from exc
        except httpx.HTTPError as exc:
            raise InvalidResponseError(f"Failed to fetch {url}: {exc}") from exc
        if response.status_code >= 400:
            logger.warning("HTTP %s while fetching %s for ATS detection", response.status_code, url)
        try:
            return response.content.decode(response.encoding or "utf-8")
        except (UnicodeDecodeError, LookupError) as exc:
            raise DecodingError(f"page at {url} could not be decoded") from exc

    async def _try_get(
        self, http: httpx.AsyncClient, url: str, *, timeout: float = PROBE_TIMEOUT_SECONDS
    ) -> Optional[httpx.Response]:
        try:
            return await http.get(url, timeout=timeout)
        except httpx.HTTPError as exc:
            logger.debug("Secondary fetch of %s failed: %s", url, exc)
            return None

    async def _probe(
        self, http: httpx.AsyncClient, url: str, scores: Dict[str, int], careers: bool
    ) -> Optional[DetectionResult]:
        slug = second_level_label(url)
        probes: Dict[str, Callable[[], Awaitable[Optional[DetectionResult]]]] = {
            "greenhouse": lambda: self._probe_greenhouse(http, slug),
            "lever": lambda: self._probe_lever(http, slug),
            "ashby": lambda: self._probe_ashby(http, slug),
            "workday": lambda: self._probe_workday(http, slug, url),
        }
        ranked = [vendor for vendor in probes if scores.get(vendor, 0) > 0]
        ranked.sort(key=lambda vendor: scores[vendor], reverse=True)
        if not ranked and careers and not any(scores.values()):
            logger.debug("No indicators on %s but it looks like a careers page; probing all", url)
            ranked = list(probes)
        for vendor in ranked:
            result = await probes[vendor]()
            if result is not None:
                logger.info("Probe found %s for %s", vendor, url)
                return result
        return None

    async def _probe_greenhouse(self, http: httpx.AsyncClient, slug: str) -> Optional[DetectionResult]:
        api_url = f"https://boards-api.greenhouse.io/v1/boards/{slug}/jobs?content=true"
        response = await self._try_get(http, api_url)
        if response is None or not response.is_success:
            return None
        try:
            payload = response.json()
        except ValueError:
            return None
        jobs = payload.get("jobs") if isinstance(payload, dict) else None
        if not isinstance(jobs, list) or not jobs or not isinstance(jobs[0], dict):
            return None
        absolute_url = jobs[0].get("absolute_url")
        if not isinstance(absolute_url, str) or not absolute_url:
            return None
        board_url = GreenhouseHandler.board_url_from_job_url(absolute_url)
        if not board_url or not GreenhouseHandler.matches_url(board_url):
            board_url = f"https://boards.greenhouse.io/{slug}"
        return DetectionResult(
            source=JobSource.GREENHOUSE,
            confidence=ATSConfidence.LIKELY,
            api_endpoint=api_url,
            actual_ats_url=board_url,
            message=f"Found Greenhouse via API: {board_url}",
        )

    async def _probe_lever(self, http: httpx.AsyncClient, slug: str) -> Optional[DetectionResult]:
        api_url = f"https://api.lever.co/v0/postings/{slug}?mode=json"
        response = await self._try_get(http, api_url)
        if response is None or not response.is_success:
            return None
        try:
            payload = response.json()
        except ValueError:
            return None
        if not isinstance(payload, list) or not payload:
            return None
        board_url = f"https://jobs.lever.co/{slug}"
        return DetectionResult(
            source=JobSource.LEVER,
            confidence=ATSConfidence.LIKELY,
            api_endpoint=api_url,
            actual_ats_url=board_url,
            message=f"Found Lever via API: {board_url}",
        )

    async def _probe_ashby(self, http: httpx.AsyncClient, slug: str) -> Optional[DetectionResult]:
        board_url = f"https://jobs.ashbyhq.com/{slug}"
        response = await self._try_get(http, board_url)
        if response is None or not response.is_success or "ashby" not in response.text.lower():
            return None
        return DetectionResult(
            source=JobSource.ASHBY,
            confidence=ATSConfidence.LIKELY,
            actual_ats_url=board_url,
            message=f"Found Ashby job board: {board_url}",
        )

    async def _probe_workday(
        self, http: httpx.AsyncClient, slug: str, original_url: str
    ) -> Optional[DetectionResult]:
        guesses = [
            f"https://{slug}.{instance}.myworkdayjobs.com/{path}"
            for path in WORKDAY_PROBE_PATHS
            for instance in WORKDAY_PROBE_INSTANCES
        ]
        for guess in guesses:
            response = await self._try_get(http, guess, timeout=WORKDAY_PROBE_TIMEOUT_SECONDS)
            if response is None:
                continue
            if response.is_success or response.status_code in (301, 302):
                if "workday" in response.text.lower():
                    return DetectionResult(
                        source=JobSource.WORKDAY,
                        confidence=ATSConfidence.LIKELY,
                        actual_ats_url=normalize_ats_url(guess, JobSource.WORKDAY),
                        message=f"Found Workday job board: {guess}",
                    )
        if "careers" in host_of(original_url):
            return DetectionResult(
                source=JobSource.WORKDAY,
                confidence=ATSConfidence.LIKELY,
                actual_ats_url=original_url,
                message="Likely Workday/Beamery site with a custom URL structure",
            )
        return None

    async def _follow_redirect(
        self, http: httpx.AsyncClient, html: str, url: str
    ) -> Optional[DetectionResult]:
        target = find_redirect_target(html, url)
        if not target or target.rstrip("/") == url.rstrip("/"):
            return None
        logger.debug("Following redirect from %s to %s", url, target)
        source = match_url_pattern(target)
        if source is not None:
            normalized = normalize_ats_url(target, source)
            return DetectionResult(
                source=source,
                confidence=ATSConfidence.LIKELY,
                actual_ats_url=normalized,
                message=f"Found redirect to {source.display_name}: {normalized}",
            )
        response = await self._try_get(http, target)
        if response is None or not response.is_success:
            return None
        found = scan_embedded_ats_urls(response.text, "Redirect target has")
        if found is not None:
            found.confidence = ATSConfidence.LIKELY
        return found

    def _script_sources(self, html: str, url: str) -> List[str]:
        page_label = second_level_label(url)
        gtm: List[str] = [
            GTM_SCRIPT_URL_TEMPLATE.format(container_id=container_id)
            for container_id in GTM_CONTAINER_ID_RE.findall(html)
        ]
        same_site: List[str] = []
        for match in SCRIPT_BLOCK_RE.finditer(html):
            src_match = SRC_ATTR_RE.search(match.group("attrs") or "")
            if not src_match:
                continue
            src = normalize_url(src_match.group("src"), base_url=url)
            if not src:
                continue
            if "googletagmanager.com" in src or "gtm.js" in src:
                gtm.append(src)
            elif second_level_label(src) == page_label:
                same_site.append(src)
        return dedupe_str_list(gtm + same_site, limit=self.max_script_fetches)

    async def _scan_scripts(
        self, http: httpx.AsyncClient, html: str, url: str
    ) -> Optional[DetectionResult]:
        inline = "\n".join(
            match.group("body") for match in SCRIPT_BLOCK_RE.finditer(html) if match.group("body")
        )
        found = scan_workday_config(inline) or scan_embedded_ats_urls(inline, "Found in inline script:")
        if found is not None:
            return found
        for src in self._script_sources(html, url):
            response = await self._try_get(http, src)
            if response is None or not response.is_success:
                continue
            found = scan_embedded_ats_urls(response.text, "Found in script:") or scan_workday_config(
                response.text
            )
            if found is not None:
                logger.info("Script %s references %s", src, found.actual_ats_url)
                return found
        return None
