from __future__ import annotations

import httpx
import pytest

from job_parser_application.workflows.ats_detector import (
    ATSDetector,
    indicator_scores,
    match_url_pattern,
    normalize_ats_url,
    scan_embedded_ats_urls,
    scan_workday_config,
)
from job_parser_application.workflows.models import (
    ATSConfidence,
    DetectedAPICall,
    JobSource,
    RenderResult,
)


def _unreachable_client() -> httpx.AsyncClient:
    raise AssertionError("URL-pattern detection must not touch the network")


def _client_for(pages):
    def handler(request: httpx.Request) -> httpx.Response:
        body = pages.get(str(request.url).split("?")[0])
        if body is None:
            return httpx.Response(404, text="not found")
        return httpx.Response(200, text=body, headers={"Content-Type": "text/html"})

    return lambda: httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_match_url_pattern():
    assert match_url_pattern("https://acme.wd1.myworkdayjobs.com/External") == JobSource.WORKDAY
    assert match_url_pattern("https://boards.greenhouse.io/acme") == JobSource.GREENHOUSE
    assert match_url_pattern("https://jobs.lever.co/acme") == JobSource.LEVER
    assert match_url_pattern("https://jobs.ashbyhq.com/acme") == JobSource.ASHBY
    assert match_url_pattern("https://acme.com/careers") is None
    assert match_url_pattern(None) is None


@pytest.mark.parametrize(
    "url, expected",
    [
        (
            "https://acme.wd5.myworkdayjobs.com/en-US/External/job/Remote/Engineer_R123",
            "https://acme.wd5.myworkdayjobs.com/en-US/External",
        ),
        ("https://jobs.lever.co/acme/abc-123/apply", "https://jobs.lever.co/acme"),
        (
            "https://jobs.ashbyhq.com/acme/0e9a3c1d-1234-4abc-8def-0123456789ab/application",
            "https://jobs.ashbyhq.com/acme",
        ),
        ("https://boards.greenhouse.io/acme/jobs/123", "https://boards.greenhouse.io/acme"),
        ("https://boards-api.greenhouse.io/v1/boards/acme/jobs", "https://boards.greenhouse.io/acme"),
    ],
)
def test_normalize_ats_url_is_idempotent(url, expected):
    once = normalize_ats_url(url)

    assert once == expected
    assert normalize_ats_url(once) == once


def test_scan_embedded_ats_urls_handles_js_escapes():
    text = r'var cfg = {"board":"https:\/\/boards.greenhouse.io\/acme\/jobs\/42"};'

    result = scan_embedded_ats_urls(text)

    assert result is not None
    assert result.source == JobSource.GREENHOUSE
    assert result.confidence == ATSConfidence.CERTAIN
    assert result.actual_ats_url == "https://boards.greenhouse.io/acme"
    assert scan_embedded_ats_urls("<p>no vendors here</p>") is None


def test_scan_workday_config_builds_site_url():
    text = 'window.workdayConfig = {"company":"acme","instance":"wd5","siteName":"Careers"};'

    result = scan_workday_config(text)

    assert result.source == JobSource.WORKDAY
    assert result.actual_ats_url == "https://acme.wd5.myworkdayjobs.com/Careers"


def test_beamery_hits_count_toward_workday():
    scores = indicator_scores('<script src="https://pages.beamery.com/x.js"></script>')

    assert scores["beamery"] >= 1
    assert scores["workday"] == scores["beamery"]


@pytest.mark.asyncio
async def test_url_pattern_detection_skips_the_network():
    detector = ATSDetector(client_factory=_unreachable_client)

    result = await detector.detect("https://boards.greenhouse.io/acme/jobs/123")

    assert result.source == JobSource.GREENHOUSE
    assert result.confidence == ATSConfidence.CERTAIN
    assert result.actual_ats_url == "https://boards.greenhouse.io/acme"


@pytest.mark.asyncio
async def test_detects_ats_link_embedded_in_static_page():
    page = '<html><body><a href="https://jobs.lever.co/acme/abc-123">Open roles</a></body></html>'
    detector = ATSDetector(client_factory=_client_for({"https://careers.acme.com/": page}))

    result = await detector.detect("https://careers.acme.com/")

    assert result.source == JobSource.LEVER
    assert result.actual_ats_url == "https://jobs.lever.co/acme"
    assert result.is_confident


@pytest.mark.asyncio
async def test_plain_page_is_not_detected():
    page = "<html><body><h1>About us</h1></body></html>"
    detector = ATSDetector(client_factory=_client_for({"https://acme.com/about": page}))

    result = await detector.detect("https://acme.com/about")

    assert result.source is None
    assert result.confidence == ATSConfidence.NOT_DETECTED


@pytest.mark.asyncio
async def test_scan_rendered_uses_captured_calls():
    detector = ATSDetector(client_factory=_client_for({}))
    rendered = RenderResult(
        final_html="<html><body><div id='root'></div></body></html>",
        captured_calls=[
            DetectedAPICall(url="https://www.google-analytics.com/collect"),
            DetectedAPICall(url="https://api.lever.co/v0/postings/acme?mode=json"),
        ],
    )

    result = await detector.scan_rendered("https://acme.com/careers", rendered)

    assert result.source == JobSource.LEVER
    assert result.actual_ats_url == "https://jobs.lever.co/acme"


@pytest.mark.asyncio
async def test_scan_rendered_finds_ats_iframe():
    detector = ATSDetector(client_factory=_client_for({}))
    rendered = RenderResult(
        final_html='<iframe src="https://boards.greenhouse.io/embed/job_board?for=acme"></iframe>',
    )

    result = await detector.scan_rendered("https://acme.com/careers", rendered)

    assert result.source == JobSource.GREENHOUSE
    assert result.actual_ats_url == "https://boards.greenhouse.io/acme"


def _recording_client(routes, seen):
    def handler(request: httpx.Request) -> httpx.Response:
        key = str(request.url).split("?")[0]
        seen.append(key)
        body = routes.get(key)
        if body is None:
            return httpx.Response(404, text="not found")
        if isinstance(body, str):
            return httpx.Response(200, text=body, headers={"Content-Type": "text/html"})
        return httpx.Response(200, json=body)

    return lambda: httpx.AsyncClient(transport=httpx.MockTransport(handler))


GREENHOUSE_API = "https://boards-api.greenhouse.io/v1/boards/acme/jobs"
LEVER_API = "https://api.lever.co/v0/postings/acme"
ASHBY_BOARD = "https://jobs.ashbyhq.com/acme"


class FakeRenderer:
    def __init__(self, result):
        self.result = result
        self.calls = []

    async def render(self, url, wait_time):
        self.calls.append(url)
        return self.result


@pytest.mark.asyncio
async def test_vendor_apis_are_tried_in_descending_indicator_order():
    page = '<div data-lever-widget class="lever ats"></div><span class="grnhse"></span>'
    seen = []
    routes = {
        "https://acme.com/work-with-us": page,
        LEVER_API: [{"id": "abc"}],
        GREENHOUSE_API: {"jobs": [{"absolute_url": "https://boards.greenhouse.io/acme/jobs/1"}]},
    }
    detector = ATSDetector(client_factory=_recording_client(routes, seen))

    result = await detector.detect("https://acme.com/work-with-us")

    assert result.source == JobSource.LEVER
    assert result.confidence == ATSConfidence.LIKELY
    assert result.actual_ats_url == "https://jobs.lever.co/acme"
    assert LEVER_API in seen
    assert GREENHOUSE_API not in seen


@pytest.mark.asyncio
async def test_greenhouse_api_hit_derives_board_from_job_url():
    page = '<span class="grnhse">Jobs</span>'
    routes = {
        "https://acme.com/": page,
        GREENHOUSE_API: {"jobs": [{"absolute_url": "https://job-boards.greenhouse.io/acmeinc/jobs/4012345"}]},
    }
    detector = ATSDetector(client_factory=_recording_client(routes, []))

    result = await detector.detect("https://acme.com/")

    assert result.source == JobSource.GREENHOUSE
    assert result.actual_ats_url == "https://job-boards.greenhouse.io/acmeinc"
    assert result.api_endpoint == GREENHOUSE_API + "?content=true"


@pytest.mark.asyncio
async def test_careers_page_without_indicators_tries_every_vendor():
    seen = []
    routes = {
        "https://acme.com/careers": "<h1>Open positions</h1>",
        ASHBY_BOARD: "<html><title>Acme jobs</title><script src='https://cdn.ashbyhq.com/app.js'></script></html>",
    }
    detector = ATSDetector(client_factory=_recording_client(routes, seen))

    result = await detector.detect("https://acme.com/careers")

    assert result.source == JobSource.ASHBY
    assert result.actual_ats_url == ASHBY_BOARD
    assert seen[1:4] == [GREENHOUSE_API, LEVER_API, ASHBY_BOARD]


@pytest.mark.asyncio
async def test_page_that_is_not_a_careers_page_makes_no_vendor_calls():
    seen = []
    detector = ATSDetector(client_factory=_recording_client({"https://acme.com/about": "<h1>About</h1>"}, seen))

    await detector.detect("https://acme.com/about")

    assert seen == ["https://acme.com/about"]


@pytest.mark.asyncio
async def test_follows_meta_refresh_to_ats_host():
    page = '<html><head><meta http-equiv="refresh" content="0; url=https://acme.bamboohr.com/careers"></head></html>'
    detector = ATSDetector(client_factory=_recording_client({"https://acme.com/": page}, []))

    result = await detector.detect("https://acme.com/")

    assert result.source == JobSource.BAMBOOHR
    assert result.confidence == ATSConfidence.LIKELY
    assert result.actual_ats_url == "https://acme.bamboohr.com/careers"


@pytest.mark.asyncio
async def test_follows_js_redirect_and_scans_target_page():
    routes = {
        "https://acme.com/": '<script>window.location.href = "/open-roles";</script>',
        "https://acme.com/open-roles": '<a href="https://boards.greenhouse.io/acme/jobs/7">Engineer</a>',
    }
    seen = []
    detector = ATSDetector(client_factory=_recording_client(routes, seen))

    result = await detector.detect("https://acme.com/")

    assert "https://acme.com/open-roles" in seen
    assert result.source == JobSource.GREENHOUSE
    assert result.confidence == ATSConfidence.LIKELY
    assert result.actual_ats_url == "https://boards.greenhouse.io/acme"


@pytest.mark.asyncio
async def test_inline_script_workday_config():
    page = '<script>window.workdayConfig = {"company":"acme","instance":"wd5","siteName":"Careers"};</script>'
    detector = ATSDetector(client_factory=_recording_client({"https://acme.com/": page}, []))

    result = await detector.detect("https://acme.com/")

    assert result.source == JobSource.WORKDAY
    assert result.actual_ats_url == "https://acme.wd5.myworkdayjobs.com/Careers"


@pytest.mark.asyncio
async def test_fetches_same_site_scripts_only():
    page = (
        '<script src="https://cdn.other.net/lib.js"></script>'
        '<script src="/static/app.js"></script>'
    )
    routes = {
        "https://acme.com/": page,
        "https://acme.com/static/app.js": 'const board = "https://jobs.lever.co/acme";',
        "https://cdn.other.net/lib.js": 'const board = "https://jobs.lever.co/someone-else";',
    }
    seen = []
    detector = ATSDetector(client_factory=_recording_client(routes, seen))

    result = await detector.detect("https://acme.com/")

    assert result.source == JobSource.LEVER
    assert result.actual_ats_url == "https://jobs.lever.co/acme"
    assert "https://cdn.other.net/lib.js" not in seen


@pytest.mark.asyncio
async def test_scans_google_tag_manager_container():
    page = "<script>(function(w,d,s,l,i){w[l]=w[l]||[];})(window,document,'script','dataLayer','GTM-ABC1234');</script>"
    routes = {
        "https://acme.com/": page,
        "https://www.googletagmanager.com/gtm.js": 'var u="https://acme.wd1.myworkdayjobs.com/External/job/Remote/x_R1";',
    }
    seen = []
    detector = ATSDetector(client_factory=_recording_client(routes, seen))

    result = await detector.detect("https://acme.com/")

    assert "https://www.googletagmanager.com/gtm.js" in seen
    assert result.source == JobSource.WORKDAY
    assert result.actual_ats_url == "https://acme.wd1.myworkdayjobs.com/External"


@pytest.mark.asyncio
async def test_dynamic_page_gets_uncertain_suggestion():
    page = '<div id="react-root" data-lever-board></div><script>fetch("/graphql")</script>'
    detector = ATSDetector(client_factory=_recording_client({"https://acme.com/": page}, []))

    result = await detector.detect("https://acme.com/")

    assert result.confidence == ATSConfidence.UNCERTAIN
    assert result.source is None
    assert result.actual_ats_url == "https://jobs.lever.co/acme"
    assert "https://jobs.lever.co/acme" in result.message


@pytest.mark.asyncio
async def test_single_dynamic_hint_is_not_enough_for_a_suggestion():
    page = '<div id="react-root" data-lever-board></div>'
    detector = ATSDetector(client_factory=_recording_client({"https://acme.com/": page}, []))

    result = await detector.detect("https://acme.com/")

    assert result.confidence == ATSConfidence.NOT_DETECTED


@pytest.mark.asyncio
async def test_custom_workday_site_keeps_the_page_url():
    page = '<script src="https://pages.beamery.com/acme/widget.js"></script>'
    detector = ATSDetector(client_factory=_recording_client({"https://careers.acme.com/": page}, []))

    result = await detector.detect("https://careers.acme.com/")

    assert result.source == JobSource.WORKDAY
    assert result.confidence == ATSConfidence.LIKELY
    assert result.actual_ats_url == "https://careers.acme.com/"


@pytest.mark.asyncio
async def test_detect_with_render_scans_rendered_dom():
    renderer = FakeRenderer(
        RenderResult(final_html='<iframe src="https://boards.greenhouse.io/embed/job_board?for=acme"></iframe>')
    )
    detector = ATSDetector(
        client_factory=_recording_client({"https://acme.com/about": "<h1>About</h1>"}, []),
        renderer=renderer,
        render_wait_seconds=0,
    )

    result = await detector.detect_with_render("https://acme.com/about")

    assert renderer.calls == ["https://acme.com/about"]
    assert result.source == JobSource.GREENHOUSE
    assert result.actual_ats_url == "https://boards.greenhouse.io/acme"


@pytest.mark.asyncio
async def test_detect_with_render_skips_render_when_static_detection_is_certain():
    renderer = FakeRenderer(RenderResult())
    detector = ATSDetector(client_factory=_unreachable_client, renderer=renderer)

    result = await detector.detect_with_render("https://jobs.lever.co/acme/abc-123")

    assert result.source == JobSource.LEVER
    assert renderer.calls == []
