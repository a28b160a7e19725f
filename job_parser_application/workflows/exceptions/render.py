from __future__ import annotations


class RenderError(Exception):
    """Headless render failed before a DOM snapshot could be taken."""

    pass


class RenderTimeoutError(RenderError):
    def __init__(self, url: str, timeout: float) -> None:
        super().__init__(f"Render of {url} exceeded {timeout:.0f}s")
        self.url = url
        self.timeout = timeout
