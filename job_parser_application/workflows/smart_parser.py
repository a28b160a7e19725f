from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Awaitable, Callable, Dict, List, NamedTuple, Optional, Sequence, Tuple

import httpx

from ..config.config import settings
from ..config.paths import resolve_data_dir
from ..config.runtime_config import runtime_config
from ..services.job_tracker import JobTracker
from ..services.schema_cache import SchemaCache
from ..services.storage import BlobStore, FileBlobStore
from .ats_detector import ATSDetector, match_url_pattern, scan_embedded_ats_urls, scan_workday_config
from .cached_schema_fetcher import CACHED_JOB_DEFAULT_LOCATION, CachedSchemaFetcher, replayable_headers
from .exceptions import FetchError, LLMError, RenderError
from .extractors import (
    extract_embedded_state,
    extract_heuristic,
    extract_job_links,
    extract_jobs,
    extract_json_ld_jobs,
    extract_next_data,
    to_jobs,
)
from .filters import apply_filters_non_destructive
from .helpers.link_extractors import company_name_from_host, host_of, normalize_url, origin_of, upgrade_scheme
from .helpers.regex_patterns import API_ENDPOINT_RE, SPA_ROOT_MARKER_RE, STATIC_LISTING_MARKUP_RE
from .llm import LLMParser
from .models import (
    CacheState,
    DetectedAPICall,
    DetectionResult,
    DiscoveredAPISchema,
    Job,
    JobResponseStructure,
    PaginationInfo,
    PaginationType,
    ParsedJob,
    RenderResult,
)
from .render import PlaywrightRenderer, Renderer
from .site_handlers import BaseSiteHandler, get_site_handler
from .site_handlers.base import default_headers

logger = logging.getLogger("job_parser.smart_parser")

StatusCallback = Callable[[str], None]
HandlerLookup = Callable[..., Optional[BaseSiteHandler]]

SPA_MAX_STATIC_CHARS = 10_000
BOT_PROTECTION_MAX_CHARS = 1_000

JOB_CALL_KEYWORDS = (
    "job",
    "career",
    "position",
    "opening",
    "requisition",
    "posting",
    "vacancy",
    "opportunity",
    "search",
    "api",
    "graphql",
    "hiring",
    "talent",
    "recruit",
    "apply",
    "listing",
    "role",
    "employment",
)
TRACKING_KEYWORDS = (
    "analytics",
    "tracking",
    "telemetry",
    "beacon",
    "pixel",
    "doubleclick",
    "facebook",
    "google-analytics",
    "gtag",
    "hotjar",
    "segment",
)
STATIC_ASSET_EXTENSIONS = (
    ".js",
    ".css",
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".svg",
    ".webp",
    ".ico",
    ".woff",
    ".woff2",
    ".ttf",
    ".map",
)
COMMON_API_PATHS = (
    "/api/jobs",
    "/api/careers",
    "/api/positions",
    "/api/openings",
    "/api/v1/jobs",
    "/api/v2/jobs",
    "/careers/api/jobs",
    "/jobs.json",
    "/careers.json",
    "/api/get-jobs",
)
_OFFSET_PARAM_NAMES = ("offset", "start", "from", "skip")


class Strategy(NamedTuple):
    name: str
    func: Callable[[], Awaitable[Optional[List[Job]]]]


async def run_strategies(strategies: Sequence[Strategy], *, label: str = "") -> Tuple[Optional[str], List[Job]]:
    """Run strategies in order until one yields jobs; a failing strategy counts as no result."""

    for strategy in strategies:
        try:
            jobs = await strategy.func()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Strategy %s failed for %s: %s", strategy.name, label or "-", exc)
            continue
        if jobs:
            logger.info("Strategy %s found %s jobs for %s", strategy.name, len(jobs), label or "-")
            return strategy.name, jobs
        logger.debug("Strategy %s found nothing for %s", strategy.name, label or "-")
    return None, []


def needs_render(html: Optional[str]) -> bool:
    """Static HTML that is a bare SPA shell (or suspiciously tiny) has to be rendered."""

    html = html or ""
    if len(html) < BOT_PROTECTION_MAX_CHARS:
        return True
    if not SPA_ROOT_MARKER_RE.search(html):
        return False
    return len(html) < SPA_MAX_STATIC_CHARS or not STATIC_LISTING_MARKUP_RE.search(html)


def _is_tracking_call(call: DetectedAPICall) -> bool:
    lowered = call.url.lower()
    if any(keyword in lowered for keyword in TRACKING_KEYWORDS):
        return True
    path = lowered.split("?", 1)[0].split("#", 1)[0]
    return path.endswith(STATIC_ASSET_EXTENSIONS)


def _is_job_call(call: DetectedAPICall) -> bool:
    haystack = f"{call.url} {call.body or ''}".lower()
    return any(keyword in haystack for keyword in JOB_CALL_KEYWORDS)


def select_candidate_calls(calls: Sequence[DetectedAPICall], limit: Optional[int] = None) -> List[DetectedAPICall]:
    """Job-looking, non-tracking captured calls, de-duplicated by method and URL."""

    useful = [call for call in calls if not _is_tracking_call(call)]
    job_calls = [call for call in useful if _is_job_call(call)]
    selected: List[DetectedAPICall] = []
    seen: set[str] = set()
    for call in job_calls or useful:
        if call.dedupe_key in seen:
            continue
        seen.add(call.dedupe_key)
        selected.append(call)
        if limit is not None and len(selected) >= limit:
            break
    return selected


def pagination_for(structure: JobResponseStructure, max_pages: int) -> PaginationInfo:
    param = (structure.page_param or "").strip()
    lowered = param.lower()
    if lowered == "cursor":
        return PaginationInfo(type=PaginationType.CURSOR, param_name=param, max_pages=max_pages)
    if "page" in lowered and "size" not in lowered:
        return PaginationInfo(
            type=PaginationType.PAGE,
            param_name=param,
            page_size_param=structure.page_size_param,
            max_pages=max_pages,
        )
    if lowered and lowered not in _OFFSET_PARAM_NAMES:
        logger.debug("Unrecognised pagination parameter %r; assuming offset", param)
    return PaginationInfo(
        type=PaginationType.OFFSET,
        param_name=param or "offset",
        page_size_param=structure.page_size_param or "limit",
        max_pages=max_pages,
    )


@dataclass
class _ParseContext:
    url: str
    domain: str
    title_filter: str
    location_filter: str
    cache_state: CacheState = CacheState.UNKNOWN
    llm_attempted: bool = False
    llm_unavailable: bool = False
    holds_model: bool = False
    status_callback: Optional[StatusCallback] = None

    @property
    def company_name(self) -> str:
        return company_name_from_host(self.url)


class SmartJobParser:
    """Pulls job postings out of any careers page.

    Known applicant tracking systems go through their dedicated connectors.
    Everything else falls through a chain of generic strategies: a cached
    API recipe for the domain, a headless render that intercepts the page's
    own API calls, structured data in the static HTML, link patterns, and
    finally the local model. What worked is remembered per domain in the
    schema cache; every returned job is stamped with its first-seen date.
    """

    def __init__(
        self,
        *,
        store: BlobStore | None = None,
        schema_cache: SchemaCache | None = None,
        tracker: JobTracker | None = None,
        detector: ATSDetector | None = None,
        renderer: Renderer | None = None,
        llm: LLMParser | None = None,
        cached_fetcher: CachedSchemaFetcher | None = None,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
        handler_lookup: HandlerLookup | None = None,
        enable_ai: Optional[bool] = None,
        render_wait_seconds: Optional[float] = None,
        max_candidate_calls: Optional[int] = None,
    ) -> None:
        self._store = store or FileBlobStore(resolve_data_dir(settings.data_dir))
        self._schema_cache = schema_cache or SchemaCache(
            self._store, retry_after=timedelta(days=runtime_config.schema_retry_days)
        )
        self._tracker = tracker or JobTracker(
            self._store, retention=timedelta(days=runtime_config.tracker_retention_days)
        )
        self._client_factory = client_factory or (
            lambda: httpx.AsyncClient(timeout=settings.http_timeout_seconds, follow_redirects=True)
        )
        self._renderer = renderer or PlaywrightRenderer()
        self._detector = detector or ATSDetector(renderer=self._renderer)
        self._llm = llm or LLMParser()
        self._cached_fetcher = cached_fetcher or CachedSchemaFetcher(self._client_factory)
        self._handler_lookup = handler_lookup or get_site_handler
        self.enable_ai = settings.enable_ai_parser if enable_ai is None else enable_ai
        self.render_wait_seconds = (
            runtime_config.render_wait_seconds if render_wait_seconds is None else render_wait_seconds
        )
        self.max_candidate_calls = max_candidate_calls or runtime_config.max_candidate_calls
        self._board_trackers: Dict[str, JobTracker] = {}
        # Most recent status from any call; callbacks only see their own call's messages.
        self.last_status: str = ""

    @property
    def schema_cache(self) -> SchemaCache:
        return self._schema_cache

    @property
    def tracker(self) -> JobTracker:
        return self._tracker

    async def parse_jobs(
        self,
        url: str,
        title_filter: str = "",
        location_filter: str = "",
        status_callback: Optional[StatusCallback] = None,
    ) -> List[Job]:
        """Best-effort job list for ``url``; never raises; progress goes to ``status_callback``."""

        ctx = _ParseContext(
            url=url,
            domain="",
            title_filter=title_filter or "",
            location_filter=location_filter or "",
            status_callback=status_callback,
        )
        try:
            return await self._parse(ctx)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected failure while parsing %s", url)
            self._report(ctx, f"Failed to parse jobs: {exc}")
            return []
        finally:
            await self._release_model(ctx)

    # ---- pipeline ----

    async def _parse(self, ctx: _ParseContext) -> List[Job]:
        normalized = upgrade_scheme(ctx.url)
        domain = host_of(normalized)
        if not domain or "." not in domain:
            self._report(ctx, f"Invalid URL: {ctx.url!r}")
            return []
        ctx.url, ctx.domain = normalized, domain
        self._report(ctx, f"Analyzing {domain}...")

        state, cached = await self._schema_cache.lookup(domain)
        ctx.cache_state = state
        logger.info("Schema cache state for %s: %s", domain, state.value)

        if state == CacheState.FAST_PATH:
            jobs = await self._step(ctx, "fast path", lambda: self._fast_path(ctx, cached))
            if jobs:
                await self._schema_cache.update_last_fetched(domain)
                return await self._finish(ctx, jobs, "fast path")
            logger.info("Fast path found nothing for %s; falling back to full detection", domain)

        jobs = await self._step(ctx, "ats detection", lambda: self._from_ats(ctx))
        if jobs:
            return jobs

        if not self.enable_ai:
            self._report(ctx, "No ATS found and AI-assisted parsing is disabled")
            return []

        if state == CacheState.SCHEMA_DISCOVERED and cached is not None:
            jobs = await self._step(ctx, "cached schema", lambda: self._from_cached_schema(ctx, cached))
            if jobs:
                await self._schema_cache.update_last_fetched(domain)
                return await self._finish(ctx, jobs, "cached schema")

        self._report(ctx, "Checking site structure...")
        html = await self._fetch_text(ctx.url)
        static_html = html
        if needs_render(html):
            self._report(ctx, "Page is rendered client-side; intercepting its API calls...")
            rendered, jobs = await self._step(ctx, "render", lambda: self._render_path(ctx), default=(None, None))
            if jobs:
                return jobs
            if rendered is not None and rendered.final_html:
                static_html = rendered.final_html

        name, jobs = await run_strategies(self._static_strategies(ctx, static_html), label=ctx.url)
        if jobs:
            return await self._finish(ctx, jobs, name or "static html")

        if ctx.llm_attempted:
            await self._schema_cache.mark_attempt_failed(domain)
        self._report(ctx, "No jobs found")
        return []

    async def _fast_path(self, ctx: _ParseContext, cached: Optional[DiscoveredAPISchema]) -> Optional[List[Job]]:
        self._report(ctx, f"Using known fast path for {ctx.domain}")
        rendered = await self._render(ctx)
        if rendered is None:
            return None
        endpoint = cached.endpoint if cached is not None else ""
        calls = select_candidate_calls(rendered.captured_calls, self.max_candidate_calls)
        calls.sort(key=lambda call: call.url != endpoint)
        for call in calls:
            document = await self._replay(call)
            if document is None:
                continue
            parsed, _ = extract_heuristic(document, ctx.url)
            if parsed:
                return self._api_jobs(ctx, parsed)
        parsed = extract_job_links(rendered.final_html, ctx.url)
        if parsed:
            return to_jobs(parsed, base_url=ctx.url, company_name=ctx.company_name, id_prefix=ctx.domain)
        return None

    async def _from_ats(self, ctx: _ParseContext) -> Optional[List[Job]]:
        self._report(ctx, "Trying ATS detection...")
        try:
            detection = await self._detector.detect(ctx.url)
        except FetchError as exc:
            logger.info("ATS detection for %s failed: %s", ctx.url, exc)
            self._report(ctx, "ATS detection failed")
            return None
        logger.info("ATS detection for %s: %s (%s)", ctx.url, detection.confidence.value, detection.message)
        return await self._from_detection(ctx, detection)

    async def _from_detection(self, ctx: _ParseContext, detection: DetectionResult) -> Optional[List[Job]]:
        target = detection.actual_ats_url or ctx.url
        source = detection.source or match_url_pattern(detection.actual_ats_url)
        if source is None:
            return None
        handler = self._handler_lookup(url=target, source=source)
        if handler is None:
            self._report(ctx, f"Detected {source.display_name}, which has no dedicated connector")
            return None
        self._report(ctx, f"Fetching jobs from {source.display_name}...")
        jobs = await self._fetch_with_connector(ctx, handler, target)
        if not jobs:
            return None
        return await self._finish(
            ctx, jobs, source.display_name, board_key=handler.board_key(target), already_filtered=True
        )

    async def _fetch_with_connector(self, ctx: _ParseContext, handler: BaseSiteHandler, url: str) -> List[Job]:
        try:
            return await handler.fetch_jobs(url, ctx.title_filter, ctx.location_filter)
        except FetchError as exc:
            logger.warning("%s connector failed for %s: %s", handler.name, url, exc)
            return []
        except Exception:  # noqa: BLE001
            logger.exception("%s connector crashed on %s", handler.name, url)
            return []

    async def _from_cached_schema(self, ctx: _ParseContext, cached: DiscoveredAPISchema) -> Optional[List[Job]]:
        self._report(ctx, f"Using cached schema for {ctx.domain}")
        try:
            return await self._cached_fetcher.fetch(cached, base_url=ctx.url)
        except FetchError as exc:
            logger.info("Cached schema for %s failed: %s", ctx.domain, exc)
            self._report(ctx, "Cached schema failed, re-analyzing...")
            return None

    async def _render_path(self, ctx: _ParseContext) -> Tuple[Optional[RenderResult], Optional[List[Job]]]:
        rendered = await self._render(ctx)
        if rendered is None:
            return None, None

        calls = select_candidate_calls(rendered.captured_calls, self.max_candidate_calls)
        self._report(ctx, f"Found {len(calls)} candidate API calls")
        for index, call in enumerate(calls, start=1):
            self._report(ctx, f"Analyzing API {index}/{len(calls)}: {host_of(call.url) or call.url}")
            jobs = await self._step(ctx, f"API {call.url}", lambda: self._jobs_from_call(ctx, call))
            if jobs:
                return rendered, await self._finish(ctx, jobs, f"API {call.url}")

        jobs = await self._step(ctx, "rendered ats scan", lambda: self._from_rendered_ats(ctx, rendered))
        if jobs:
            return rendered, jobs

        for endpoint in self._endpoints_in(rendered.final_html, ctx.url):
            document = await self._fetch_json(endpoint)
            if document is None:
                continue
            parsed, _ = extract_heuristic(document, ctx.url)
            if parsed:
                await self._schema_cache.mark_fast_path_works(ctx.domain, endpoint)
                return rendered, await self._finish(ctx, self._api_jobs(ctx, parsed), f"endpoint {endpoint}")

        parsed = extract_job_links(rendered.final_html, ctx.url)
        if parsed:
            await self._schema_cache.mark_fast_path_works(ctx.domain)
            jobs = to_jobs(parsed, base_url=ctx.url, company_name=ctx.company_name, id_prefix=ctx.domain)
            return rendered, await self._finish(ctx, jobs, "rendered html")
        return rendered, None

    async def _from_rendered_ats(self, ctx: _ParseContext, rendered: RenderResult) -> Optional[List[Job]]:
        detection = await self._detector.scan_rendered(ctx.url, rendered)
        if detection is None:
            return None
        return await self._from_detection(ctx, detection)

    async def _jobs_from_call(self, ctx: _ParseContext, call: DetectedAPICall) -> Optional[List[Job]]:
        document = await self._replay(call)
        if document is None:
            return None

        if await self._llm_ready(ctx):
            structure = await self._discover_schema(document)
            if structure is not None:
                parsed = extract_jobs(document, structure, ctx.url)
                if parsed:
                    await self._cache_discovered(ctx, call, structure)
                    self._report(ctx, f"AI discovered schema: {structure.jobs_array_path}")
                    return self._api_jobs(ctx, parsed)

        parsed, structure = extract_heuristic(document, ctx.url)
        if parsed:
            logger.info("Heuristic extraction matched %s at %r", call.url, structure.jobs_array_path if structure else "")
            await self._schema_cache.mark_fast_path_works(ctx.domain, call.url)
            return self._api_jobs(ctx, parsed)
        return None

    async def _cache_discovered(self, ctx: _ParseContext, call: DetectedAPICall, structure: JobResponseStructure) -> None:
        await self._schema_cache.record_discovery(
            ctx.domain,
            endpoint=call.url,
            structure=structure,
            method=call.method,
            request_body=call.body,
            headers=replayable_headers(call.headers) or None,
            pagination=pagination_for(structure, runtime_config.max_pages),
        )

    def _static_strategies(self, ctx: _ParseContext, html: str) -> Tuple[Strategy, ...]:
        strategies = (
            Strategy("json-ld", lambda: self._from_json_ld(ctx, html)),
            Strategy("next data", lambda: self._from_next_data(ctx, html)),
            Strategy("embedded state", lambda: self._from_embedded_state(ctx, html)),
            Strategy("embedded ats", lambda: self._from_embedded_ats(ctx, html)),
            Strategy("api guesses", lambda: self._from_api_guesses(ctx)),
            Strategy("html patterns", lambda: self._from_html_patterns(ctx, html)),
            Strategy("ai pattern detection", lambda: self._from_llm_patterns(ctx, html)),
            Strategy("ai extraction", lambda: self._from_llm_extraction(ctx, html)),
        )
        return strategies

    async def _from_json_ld(self, ctx: _ParseContext, html: str) -> Optional[List[Job]]:
        parsed = extract_json_ld_jobs(html, ctx.url)
        return to_jobs(parsed, base_url=ctx.url, company_name=ctx.company_name, id_prefix=ctx.domain)

    async def _from_next_data(self, ctx: _ParseContext, html: str) -> Optional[List[Job]]:
        document = extract_next_data(html)
        if document is None:
            return None
        parsed, _ = extract_heuristic(document, ctx.url)
        return to_jobs(parsed, base_url=ctx.url, company_name=ctx.company_name, id_prefix=ctx.domain)

    async def _from_embedded_state(self, ctx: _ParseContext, html: str) -> Optional[List[Job]]:
        for document in extract_embedded_state(html):
            parsed, _ = extract_heuristic(document, ctx.url)
            if parsed:
                return to_jobs(parsed, base_url=ctx.url, company_name=ctx.company_name, id_prefix=ctx.domain)
        return None

    async def _from_embedded_ats(self, ctx: _ParseContext, html: str) -> Optional[List[Job]]:
        detection = scan_workday_config(html) or scan_embedded_ats_urls(html)
        if detection is None or detection.source is None or not detection.actual_ats_url:
            return None
        handler = self._handler_lookup(url=detection.actual_ats_url, source=detection.source)
        if handler is None:
            return None
        self._report(ctx, f"Found embedded {detection.source.display_name} board")
        return await handler.fetch_jobs(detection.actual_ats_url, ctx.title_filter, ctx.location_filter)

    async def _from_api_guesses(self, ctx: _ParseContext) -> Optional[List[Job]]:
        origin = origin_of(ctx.url)
        for path in COMMON_API_PATHS:
            document = await self._fetch_json(origin + path, require_json_type=True)
            if document is None:
                continue
            parsed, _ = extract_heuristic(document, ctx.url)
            if parsed:
                logger.info("Found jobs API at %s%s", origin, path)
                return self._api_jobs(ctx, parsed)
        return None

    async def _from_html_patterns(self, ctx: _ParseContext, html: str) -> Optional[List[Job]]:
        parsed = extract_job_links(html, ctx.url)
        return to_jobs(parsed, base_url=ctx.url, company_name=ctx.company_name, id_prefix=ctx.domain)

    async def _from_llm_patterns(self, ctx: _ParseContext, html: str) -> Optional[List[Job]]:
        if not html or not await self._llm_ready(ctx):
            return None
        self._report(ctx, "Asking AI where the jobs come from...")
        try:
            detection = await self._llm.detect_patterns(html, ctx.url)
        except LLMError as exc:
            logger.info("Pattern detection failed for %s: %s", ctx.url, exc)
            return None
        ats_url = normalize_url(detection.ats_url, base_url=ctx.url)
        if ats_url:
            source = match_url_pattern(ats_url)
            handler = self._handler_lookup(url=ats_url, source=source) if source else None
            if handler is not None:
                jobs = await self._fetch_with_connector(ctx, handler, ats_url)
                if jobs:
                    return jobs
        endpoint = normalize_url(detection.api_endpoint, base_url=ctx.url)
        if endpoint:
            document = await self._fetch_json(endpoint)
            if document is not None:
                parsed, _ = extract_heuristic(document, ctx.url)
                if parsed:
                    return self._api_jobs(ctx, parsed)
        return None

    async def _from_llm_extraction(self, ctx: _ParseContext, html: str) -> Optional[List[Job]]:
        if not html or not await self._llm_ready(ctx):
            return None
        self._report(ctx, "Analyzing HTML content with AI...")
        try:
            parsed = await self._llm.extract_jobs(html, ctx.url)
        except LLMError as exc:
            logger.info("AI extraction failed for %s: %s", ctx.url, exc)
            return None
        return to_jobs(parsed, base_url=ctx.url, company_name=ctx.company_name, id_prefix=ctx.domain)

    # ---- shared steps ----

    async def _finish(
        self,
        ctx: _ParseContext,
        jobs: List[Job],
        via: str,
        *,
        board_key: Optional[str] = None,
        already_filtered: bool = False,
    ) -> List[Job]:
        if not already_filtered:
            jobs = apply_filters_non_destructive(jobs, ctx.title_filter, ctx.location_filter)
        stamped = await self._tracker.stamp(jobs)
        if board_key:
            board_stamped = await self._board_tracker(board_key).stamp(jobs)
            stamped = [
                job.model_copy(update={"first_seen_date": min(job.first_seen_date, board.first_seen_date)})
                if job.first_seen_date and board.first_seen_date
                else job
                for job, board in zip(stamped, board_stamped)
            ]
        self._report(ctx, f"Found {len(stamped)} jobs via {via}")
        return stamped

    def _board_tracker(self, board_key: str) -> JobTracker:
        tracker = self._board_trackers.get(board_key)
        if tracker is None:
            tracker = JobTracker.for_board(
                self._store,
                board_key,
                retention=timedelta(days=runtime_config.board_tracker_retention_days),
            )
            self._board_trackers[board_key] = tracker
        return tracker

    def _api_jobs(self, ctx: _ParseContext, parsed: List[ParsedJob]) -> List[Job]:
        return to_jobs(
            parsed,
            base_url=ctx.url,
            company_name=ctx.company_name,
            id_prefix=ctx.domain,
            default_location=CACHED_JOB_DEFAULT_LOCATION,
        )

    async def _render(self, ctx: _ParseContext) -> Optional[RenderResult]:
        try:
            rendered = await self._renderer.render(ctx.url, self.render_wait_seconds)
        except RenderError as exc:
            logger.warning("Render of %s failed: %s", ctx.url, exc)
            self._report(ctx, "Rendering failed")
            return None
        self._report(ctx, f"Rendered page; {len(rendered.captured_calls)} API calls captured")
        return rendered

    async def _llm_ready(self, ctx: _ParseContext) -> bool:
        if not self.enable_ai or ctx.llm_unavailable:
            return False
        if ctx.cache_state == CacheState.FAILED:
            logger.info("Model previously failed for %s; skipping AI steps", ctx.domain)
            return False
        if not ctx.holds_model:
            self._llm.acquire()
            ctx.holds_model = True
        try:
            await self._llm.ensure_loaded()
        except LLMError as exc:
            ctx.llm_unavailable = True
            self._report(ctx, f"AI model unavailable: {exc}")
            return False
        ctx.llm_attempted = True
        return True

    async def _discover_schema(self, document: Any) -> Optional[JobResponseStructure]:
        try:
            return await self._llm.discover_schema(document)
        except LLMError as exc:
            logger.info("Schema discovery failed: %s", exc)
            return None

    async def _release_model(self, ctx: _ParseContext) -> None:
        if not ctx.holds_model:
            return
        ctx.holds_model = False
        try:
            await self._llm.release()
        except LLMError as exc:
            logger.warning("Could not unload model: %s", exc)

    async def _step(
        self,
        ctx: _ParseContext,
        name: str,
        func: Callable[[], Awaitable[Any]],
        *,
        default: Any = None,
    ) -> Any:
        """Run one pipeline step; an unexpected error means "no result" so the next step still runs."""

        try:
            return await func()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Step %s failed for %s: %r", name, ctx.url, exc)
            return default

    async def _replay(self, call: DetectedAPICall) -> Any:
        headers = default_headers()
        headers.update(replayable_headers(call.headers))
        return await self._fetch_json(call.url, method=call.method, headers=headers, body=call.body)

    async def _fetch_json(
        self,
        url: str,
        *,
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
        body: Optional[str] = None,
        require_json_type: bool = False,
    ) -> Any:
        try:
            async with self._client_factory() as http:
                response = await http.request(
                    method.upper(), url, headers=headers or default_headers(), content=body
                )
        except httpx.HTTPError as exc:
            logger.debug("Request to %s failed: %s", url, exc)
            return None
        if response.status_code != 200:
            logger.debug("Request to %s returned HTTP %s", url, response.status_code)
            return None
        if require_json_type and "json" not in response.headers.get("content-type", "").lower():
            return None
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.debug("Response from %s is not JSON", url)
            return None

    async def _fetch_text(self, url: str) -> str:
        try:
            async with self._client_factory() as http:
                response = await http.get(url, headers=default_headers("text/html,application/xhtml+xml,*/*"))
        except httpx.HTTPError as exc:
            logger.info("Fetching %s failed: %s", url, exc)
            return ""
        return response.text

    @staticmethod
    def _endpoints_in(html: str, base_url: str) -> List[str]:
        endpoints: List[str] = []
        for match in API_ENDPOINT_RE.finditer(html or ""):
            endpoint = normalize_url(match.group("url"), base_url=base_url)
            if endpoint and endpoint not in endpoints:
                endpoints.append(endpoint)
        return endpoints[: runtime_config.max_candidate_calls]

    def _report(self, ctx: _ParseContext, message: str) -> None:
        self.last_status = message
        logger.info(message)
        if ctx.status_callback is None:
            return
        try:
            ctx.status_callback(message)
        except Exception:  # noqa: BLE001
            logger.exception("Status callback raised")


async def parse_jobs(
    url: str,
    title_filter: str = "",
    location_filter: str = "",
    status_callback: Optional[StatusCallback] = None,
    *,
    parser: SmartJobParser | None = None,
) -> List[Job]:
    parser = parser or SmartJobParser()
    return await parser.parse_jobs(url, title_filter, location_filter, status_callback)
