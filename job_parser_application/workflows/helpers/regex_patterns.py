from __future__ import annotations

import re

# Generic
URL_PATTERN = r"https?://[^\s\"'<>]+"
WHITESPACE_PATTERN = r"\s+"
UUID_SEGMENT_PATTERN = r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$"
UUID_SEGMENT_RE = re.compile(UUID_SEGMENT_PATTERN, re.IGNORECASE)
NUMERIC_SEGMENT_RE = re.compile(r"^\d+$")
LOCALE_SEGMENT_RE = re.compile(r"^[a-z]{2}(?:-[A-Za-z]{2})?$")

# LLM output cleanup
CODE_FENCE_START_PATTERN = r"^```[a-zA-Z0-9_-]*\n?"
CODE_FENCE_END_PATTERN = r"\n?```$"
CODE_FENCE_START_RE = re.compile(CODE_FENCE_START_PATTERN)
CODE_FENCE_END_RE = re.compile(CODE_FENCE_END_PATTERN)
THINK_BLOCK_RE = re.compile(r"<think>.*?</think>", re.DOTALL | re.IGNORECASE)

# HTML cleanup
HTML_TAG_PATTERN = r"<[^>]+>"
HTML_TAG_RE = re.compile(HTML_TAG_PATTERN)
HTML_COMMENT_RE = re.compile(r"<!--.*?-->", re.DOTALL)
HTML_SCRIPT_OR_STYLE_BLOCK_PATTERN = r"<(script|style|noscript|svg)[^>]*>.*?</\1>"
HTML_SCRIPT_OR_STYLE_BLOCK_RE = re.compile(
    HTML_SCRIPT_OR_STYLE_BLOCK_PATTERN, re.DOTALL | re.IGNORECASE
)
HTML_LINE_BREAK_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
HTML_BLOCK_CLOSE_RE = re.compile(r"</(p|div|li|h[1-6]|tr|section)\s*>", re.IGNORECASE)
HTML_LIST_ITEM_OPEN_RE = re.compile(r"<li[^>]*>", re.IGNORECASE)
HORIZONTAL_WHITESPACE_RE = re.compile(r"[ \t\r\f\v]+")
LINE_WRAPPED_WHITESPACE_RE = re.compile(r"[ \t]*\n[ \t]*")
MULTI_NEWLINE_RE = re.compile(r"\n{3,}")
HTML_ATTR_NOISE_RE = re.compile(r"\s(?:style|class|data-[\w-]+|aria-[\w-]+)=\"[^\"]*\"", re.IGNORECASE)

# Script and frame discovery
SCRIPT_BLOCK_PATTERN = r"<script\b(?P<attrs>[^>]*)>(?P<body>.*?)</script\s*>"
SCRIPT_BLOCK_RE = re.compile(SCRIPT_BLOCK_PATTERN, re.DOTALL | re.IGNORECASE)
SRC_ATTR_RE = re.compile(r"\bsrc\s*=\s*[\"'](?P<src>[^\"']+)[\"']", re.IGNORECASE)
IFRAME_SRC_RE = re.compile(r"<iframe\b[^>]*\bsrc\s*=\s*[\"'](?P<src>[^\"']+)[\"']", re.IGNORECASE)
GTM_CONTAINER_ID_RE = re.compile(r"\bGTM-[A-Z0-9]{4,10}\b")
GTM_SCRIPT_URL_TEMPLATE = "https://www.googletagmanager.com/gtm.js?id={container_id}"

# Redirects
META_REFRESH_PATTERN = (
    r"<meta[^>]*http-equiv\s*=\s*[\"']?refresh[\"']?[^>]*content\s*=\s*[\"'][^\"']*?url\s*=\s*"
    r"(?P<url>[^\"'\s>]+)"
)
META_REFRESH_RE = re.compile(META_REFRESH_PATTERN, re.IGNORECASE)
JS_REDIRECT_PATTERNS = (
    r"window\.location\.href\s*=\s*[\"'](?P<url>[^\"']+)[\"']",
    r"window\.location\.replace\(\s*[\"'](?P<url>[^\"']+)[\"']\s*\)",
    r"(?<![\w.])location\.href\s*=\s*[\"'](?P<url>[^\"']+)[\"']",
)
JS_REDIRECT_RES = tuple(re.compile(pattern, re.IGNORECASE) for pattern in JS_REDIRECT_PATTERNS)

# Embedded ATS URLs (run against text with JS escapes already undone)
_URL_TAIL = r"[^\s\"'<>()\\,;]*"
WORKDAY_EMBEDDED_URL_PATTERN = r"https?://[\w-]+\.wd\d+\.myworkdayjobs\.com/" + _URL_TAIL
WORKDAY_ANY_EMBEDDED_URL_PATTERN = r"https?://[\w.-]+\.myworkdayjobs\.com/" + _URL_TAIL
GREENHOUSE_BOARD_URL_PATTERN = r"https?://(?:boards|job-boards)\.greenhouse\.io/" + _URL_TAIL
GREENHOUSE_API_URL_PATTERN = r"https?://(?:boards-api|api)\.greenhouse\.io/v1/boards/" + _URL_TAIL
GREENHOUSE_ANY_URL_PATTERN = r"https?://[\w.-]*greenhouse\.io/" + _URL_TAIL
LEVER_BOARD_URL_PATTERN = r"https?://jobs(?:\.eu)?\.lever\.co/" + _URL_TAIL
ASHBY_BOARD_URL_PATTERN = r"https?://jobs\.ashbyhq\.com/" + _URL_TAIL
WORKABLE_URL_PATTERN = r"https?://(?:apply\.)?workable\.com/" + _URL_TAIL
SMARTRECRUITERS_URL_PATTERN = r"https?://(?:jobs|careers)\.smartrecruiters\.com/" + _URL_TAIL
JOBVITE_URL_PATTERN = r"https?://jobs\.jobvite\.com/" + _URL_TAIL

# Ordered: most specific first. Values are JobSource names.
EMBEDDED_ATS_URL_PATTERNS = (
    (WORKDAY_EMBEDDED_URL_PATTERN, "workday"),
    (WORKDAY_ANY_EMBEDDED_URL_PATTERN, "workday"),
    (GREENHOUSE_BOARD_URL_PATTERN, "greenhouse"),
    (GREENHOUSE_API_URL_PATTERN, "greenhouse"),
    (GREENHOUSE_ANY_URL_PATTERN, "greenhouse"),
    (LEVER_BOARD_URL_PATTERN, "lever"),
    (ASHBY_BOARD_URL_PATTERN, "ashby"),
    (WORKABLE_URL_PATTERN, "workable"),
    (SMARTRECRUITERS_URL_PATTERN, "smartrecruiters"),
    (JOBVITE_URL_PATTERN, "jobvite"),
)
EMBEDDED_ATS_URL_RES = tuple(
    (re.compile(pattern, re.IGNORECASE), source) for pattern, source in EMBEDDED_ATS_URL_PATTERNS
)

# (company).(wdN).myworkdayjobs.com/(site), optional locale segment skipped
WORKDAY_FRAGMENT_PATTERN = (
    r"(?P<company>[\w-]+)\.(?P<instance>wd\d+)\.myworkdayjobs\.com/"
    r"(?:[a-z]{2}-[A-Z]{2}/)?(?P<site>[\w-]+)"
)
WORKDAY_FRAGMENT_RE = re.compile(WORKDAY_FRAGMENT_PATTERN)
WORKDAY_CONFIG_RE = re.compile(r"workdayConfig\s*[=:]\s*(?P<blob>\{.{0,2000}?\})", re.DOTALL)
WORKDAY_CXS_PATH_RE = re.compile(r"/wday/cxs/(?P<company>[\w-]+)/(?P<site>[\w-]+)")

# Generic API endpoints mentioned in page source
API_ENDPOINT_PATTERN = (
    r"[\"'](?P<url>(?:https?://[^\"'\s]+)?/(?:api|wp-json|services)/[^\"'\s]*"
    r"(?:job|career|position|opening|posting|requisition|vacanc)[^\"'\s]*)[\"']"
)
API_ENDPOINT_RE = re.compile(API_ENDPOINT_PATTERN, re.IGNORECASE)

# Structured data embedded in HTML
JSON_LD_SCRIPT_PATTERN = (
    r"<script[^>]*type\s*=\s*[\"']application/ld\+json[\"'][^>]*>(?P<content>.*?)</script\s*>"
)
JSON_LD_SCRIPT_RE = re.compile(JSON_LD_SCRIPT_PATTERN, re.DOTALL | re.IGNORECASE)
NEXT_DATA_PATTERN = r"<script[^>]*id\s*=\s*[\"']__NEXT_DATA__[\"'][^>]*>(?P<content>.*?)</script\s*>"
NEXT_DATA_RE = re.compile(NEXT_DATA_PATTERN, re.DOTALL | re.IGNORECASE)
EMBEDDED_STATE_VARIABLES = (
    "__PRELOAD_STATE__",
    "__INITIAL_STATE__",
    "__NUXT__",
    "pageData",
    "_initialData",
)
EMBEDDED_STATE_PATTERN_TEMPLATE = r"(?:window\.)?{name}\s*=\s*(?=[\[{{])"

# Raw HTML job links
ANCHOR_PATTERN = r"<a\b(?P<attrs>[^>]*)>(?P<text>.*?)</a\s*>"
ANCHOR_RE = re.compile(ANCHOR_PATTERN, re.DOTALL | re.IGNORECASE)
HREF_ATTR_RE = re.compile(r"\bhref\s*=\s*[\"'](?P<href>[^\"'#][^\"']*)[\"']", re.IGNORECASE)
JOB_ID_ATTR_RE = re.compile(
    r"\b(?:id|data-(?:job|posting|requisition)[\w-]*)\s*=\s*[\"'][^\"']*(?:job|posting|req)[^\"']*[\"']",
    re.IGNORECASE,
)
JOB_CLASS_ATTR_RE = re.compile(r"\bclass\s*=\s*[\"'][^\"']*job[^\"']*[\"']", re.IGNORECASE)
JOB_LINK_PATH_RE = re.compile(r"/(?:jobs?|careers?|positions?|openings?|vacanc(?:y|ies)|requisitions?)/", re.IGNORECASE)
STATIC_LISTING_MARKUP_RE = re.compile(
    r"<table\b|<ul[^>]*class\s*=\s*[\"'][^\"']*(?:job|position|opening|career)[^\"']*[\"']|"
    r"href\s*=\s*[\"'][^\"']*/(?:jobs?|positions?|openings?)/[^\"']+[\"']",
    re.IGNORECASE,
)
SPA_ROOT_MARKER_RE = re.compile(
    r"id\s*=\s*[\"'](?:root|app|__next|__nuxt)[\"']|\bng-app\b|data-reactroot",
    re.IGNORECASE,
)
NAVIGATION_TITLE_RE = re.compile(
    r"\b(?:next|prev(?:ious)?|page|load more|view all|see all|apply|sign in|log in)\b",
    re.IGNORECASE,
)
