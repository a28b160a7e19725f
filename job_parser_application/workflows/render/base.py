from __future__ import annotations

from typing import Protocol

from ..models import RenderResult


class Renderer(Protocol):
    """Loads a page in a real browser and reports the DOM plus the API calls it made."""

    async def render(self, url: str, wait_time: float) -> RenderResult:
        ...
