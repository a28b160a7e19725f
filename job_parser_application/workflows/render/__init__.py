"""Headless rendering with fetch/XHR interception."""

from .base import Renderer
from .playwright_renderer import CAPTURE_INIT_SCRIPT, PlaywrightRenderer

__all__ = ["CAPTURE_INIT_SCRIPT", "PlaywrightRenderer", "Renderer"]
