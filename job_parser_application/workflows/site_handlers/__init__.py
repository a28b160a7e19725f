from __future__ import annotations

from .ashby import AshbyHqHandler
from .base import BaseSiteHandler
from .greenhouse import GreenhouseHandler
from .lever import LeverHandler
from .workday import WorkdayConfig, WorkdayHandler, parse_workday_config
from ..models import JobSource

_HANDLER_CLASSES = (GreenhouseHandler, LeverHandler, AshbyHqHandler, WorkdayHandler)


def get_site_handler(
    url: str | None = None, source: JobSource | str | None = None
) -> BaseSiteHandler | None:
    if not url and not source:
        return None
    for handler_cls in _HANDLER_CLASSES:
        handler = handler_cls()
        if handler.matches_site(source, url or ""):
            return handler
    return None


def supported_sources() -> tuple[JobSource, ...]:
    return tuple(handler_cls.source for handler_cls in _HANDLER_CLASSES)


__all__ = [
    "AshbyHqHandler",
    "BaseSiteHandler",
    "GreenhouseHandler",
    "LeverHandler",
    "WorkdayConfig",
    "WorkdayHandler",
    "get_site_handler",
    "parse_workday_config",
    "supported_sources",
]
