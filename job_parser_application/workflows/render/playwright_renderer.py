from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from ...config.config import settings
from ...config.runtime_config import runtime_config
from ..exceptions import RenderError, RenderTimeoutError
from ..models import DetectedAPICall, RenderResult

logger = logging.getLogger("job_parser.render")

# Installed before any page script runs; records every fetch/XHR and lets it through untouched.
CAPTURE_INIT_SCRIPT = """
(() => {
  if (window.__capturedApiCalls) { return; }
  window.__capturedApiCalls = [];
  const record = (url, method, body, headers) => {
    try {
      window.__capturedApiCalls.push({
        url: String(url),
        method: String(method || 'GET').toUpperCase(),
        body: typeof body === 'string' ? body : null,
        headers: headers || null,
      });
    } catch (e) {}
  };

  const originalFetch = window.fetch;
  if (originalFetch) {
    window.fetch = function (input, init) {
      try {
        const url = typeof input === 'string' ? input : (input && input.url) || '';
        const method = (init && init.method) || (input && input.method) || 'GET';
        let headers = null;
        if (init && init.headers) {
          headers = {};
          const source = init.headers instanceof Headers ? init.headers : new Headers(init.headers);
          source.forEach((value, key) => { headers[key] = value; });
        }
        record(new URL(url, window.location.href).href, method, init && init.body, headers);
      } catch (e) {}
      return originalFetch.apply(this, arguments);
    };
  }

  const originalOpen = XMLHttpRequest.prototype.open;
  const originalSend = XMLHttpRequest.prototype.send;
  const originalSetHeader = XMLHttpRequest.prototype.setRequestHeader;
  XMLHttpRequest.prototype.open = function (method, url) {
    this.__capture = { method: method, url: url, headers: {} };
    return originalOpen.apply(this, arguments);
  };
  XMLHttpRequest.prototype.setRequestHeader = function (key, value) {
    if (this.__capture) { this.__capture.headers[key] = value; }
    return originalSetHeader.apply(this, arguments);
  };
  XMLHttpRequest.prototype.send = function (body) {
    if (this.__capture) {
      try {
        record(new URL(this.__capture.url, window.location.href).href, this.__capture.method, body,
               this.__capture.headers);
      } catch (e) {}
    }
    return originalSend.apply(this, arguments);
  };
})();
"""


def _to_calls(raw: Any) -> List[DetectedAPICall]:
    calls: List[DetectedAPICall] = []
    if not isinstance(raw, list):
        return calls
    for entry in raw:
        if not isinstance(entry, dict) or not entry.get("url"):
            continue
        headers = entry.get("headers")
        calls.append(
            DetectedAPICall(
                url=str(entry["url"]),
                method=str(entry.get("method") or "GET").upper(),
                body=entry.get("body") if isinstance(entry.get("body"), str) else None,
                headers={str(k): str(v) for k, v in headers.items()} if isinstance(headers, dict) else None,
            )
        )
    return calls


class PlaywrightRenderer:
    """Headless Chromium renderer that intercepts the page's own API traffic."""

    def __init__(
        self,
        *,
        headless: Optional[bool] = None,
        timeout_seconds: Optional[float] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        self.headless = settings.render_headless if headless is None else headless
        self.timeout_seconds = timeout_seconds or runtime_config.render_timeout_seconds
        self.user_agent = user_agent or settings.http_user_agent

    async def render(self, url: str, wait_time: float) -> RenderResult:
        try:
            return await asyncio.wait_for(self._render(url, wait_time), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as exc:
            logger.warning("Render of %s timed out after %ss", url, self.timeout_seconds)
            raise RenderTimeoutError(url, self.timeout_seconds) from exc
        except PlaywrightError as exc:
            raise RenderError(f"Browser failure while rendering {url}: {exc}") from exc

    async def _render(self, url: str, wait_time: float) -> RenderResult:
        async with async_playwright() as playwright:
            browser = await playwright.chromium.launch(headless=self.headless)
            try:
                context = await browser.new_context(user_agent=self.user_agent)
                await context.add_init_script(CAPTURE_INIT_SCRIPT)
                page = await context.new_page()
                try:
                    await page.goto(url, wait_until="domcontentloaded")
                except PlaywrightError as exc:
                    raise RenderError(f"Navigation to {url} failed: {exc}") from exc
                await asyncio.sleep(wait_time)
                html = await page.content()
                try:
                    raw_calls = await page.evaluate("() => window.__capturedApiCalls || []")
                except PlaywrightError as exc:
                    logger.debug("Could not read captured calls for %s: %s", url, exc)
                    raw_calls = []
            finally:
                await browser.close()
        calls = _to_calls(raw_calls)
        logger.info("Rendered %s: %s chars, %s captured calls", url, len(html), len(calls))
        return RenderResult(final_html=html, captured_calls=calls)
