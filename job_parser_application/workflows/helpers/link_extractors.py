from __future__ import annotations

import html as html_lib
import re
from typing import Iterable
from urllib.parse import urljoin, urlparse, urlunparse

_SLASH_RUN_RE = re.compile(r"/{2,}")
_WRAPPER_PAIRS = {
    '"': '"',
    "'": "'",
    "<": ">",
    "(": ")",
    "[": "]",
}
_JS_SLASH_ESCAPES = ("\\\\/", "\\/", "\\u002F", "\\u002f", "\\x2F", "\\x2f", "&#x2F;", "&#47;")
_COMPANY_HOST_PREFIXES = ("www.", "careers.", "jobs.", "career.", "job.", "apply.")


def strip_wrapping_url(candidate: str) -> str:
    cleaned = candidate.strip()
    while cleaned:
        closing = _WRAPPER_PAIRS.get(cleaned[0])
        if not closing or cleaned[-1] != closing:
            break
        cleaned = cleaned[1:-1].strip()
    return cleaned


def fix_scheme_slashes(candidate: str) -> str:
    lower = candidate.lower()
    if lower.startswith("http:/") and not lower.startswith("http://"):
        return "http://" + candidate[len("http:/") :]
    if lower.startswith("https:/") and not lower.startswith("https://"):
        return "https://" + candidate[len("https:/") :]
    return candidate


def unescape_js_url(text: str) -> str:
    """Undo the slash escapes JSON/JS bundles use (``https:\\/\\/...``)."""

    if not text:
        return text
    for escaped in _JS_SLASH_ESCAPES:
        if escaped in text:
            text = text.replace(escaped, "/")
    return text


def upgrade_scheme(url: str) -> str:
    """Add a missing scheme and upgrade insecure http to https."""

    candidate = (url or "").strip()
    if not candidate:
        return candidate
    if candidate.startswith("//"):
        return "https:" + candidate
    lower = candidate.lower()
    if lower.startswith("http://"):
        return "https://" + candidate[len("http://") :]
    if not lower.startswith("https://"):
        return "https://" + candidate.lstrip("/")
    return candidate


def _normalize_http_url(candidate: str) -> str:
    if not candidate.startswith(("http://", "https://")):
        return candidate
    try:
        parsed = urlparse(candidate)
    except ValueError:
        return candidate
    if not parsed.scheme or not parsed.netloc:
        return candidate
    path = _SLASH_RUN_RE.sub("/", parsed.path or "")
    if path and path != "/":
        path = path.rstrip("/")
    return urlunparse((parsed.scheme, parsed.netloc, path, parsed.params, parsed.query, parsed.fragment))


def normalize_url(url: str | None, *, base_url: str | None = None) -> str | None:
    if not isinstance(url, str):
        return None
    candidate = html_lib.unescape(url.strip()).strip()
    if not candidate:
        return None
    candidate = strip_wrapping_url(candidate)
    if not candidate:
        return None
    candidate = fix_scheme_slashes(unescape_js_url(candidate))
    lower = candidate.lower()
    if lower.startswith(("mailto:", "tel:", "javascript:", "#", "data:")):
        return None
    if candidate.startswith(("http://", "https://")):
        return _normalize_http_url(candidate)
    if candidate.startswith("//"):
        if not base_url:
            return None
        scheme = urlparse(base_url).scheme or "https"
        return _normalize_http_url(f"{scheme}:{candidate}")
    if base_url:
        return _normalize_http_url(urljoin(base_url, candidate))
    return None


def dedupe_str_list(values: Iterable[str], *, limit: int | None = None) -> list[str]:
    deduped: list[str] = []
    seen: set[str] = set()
    for value in values:
        if not isinstance(value, str):
            continue
        cleaned = value.strip()
        if not cleaned or cleaned in seen:
            continue
        seen.add(cleaned)
        deduped.append(cleaned)
        if limit is not None and len(deduped) >= limit:
            break
    return deduped


def host_of(url: str) -> str:
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def origin_of(url: str) -> str:
    try:
        parsed = urlparse(url)
    except ValueError:
        return ""
    if not parsed.scheme or not parsed.netloc:
        return ""
    return f"{parsed.scheme}://{parsed.netloc}"


def second_level_label(url: str) -> str:
    """``careers.acme.co.uk`` -> ``acme``-ish slug used for ATS probing."""

    host = host_of(url)
    parts = [part for part in host.split(".") if part]
    if len(parts) >= 3 and len(parts[-1]) == 2 and parts[-2] in {"co", "com", "org", "net", "ac"}:
        return parts[-3]
    if len(parts) >= 2:
        return parts[-2]
    return parts[0] if parts else "company"


def company_name_from_host(url: str) -> str:
    host = host_of(url)
    for prefix in _COMPANY_HOST_PREFIXES:
        if host.startswith(prefix):
            host = host[len(prefix) :]
            break
    label = host.split(".")[0] if host else ""
    return label.replace("-", " ").title() if label else "Unknown"


def company_name_from_slug(slug: str) -> str:
    return " ".join(part.capitalize() for part in re.split(r"[-_]+", slug or "") if part) or "Unknown"
