from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

import yaml

from .paths import resolve_config_path


@dataclass
class RuntimeConfig:
    render_wait_seconds: float
    render_timeout_seconds: float
    schema_retry_days: int
    tracker_retention_days: int
    board_tracker_retention_days: int
    max_pages: int
    llm_sample_chars: int
    max_script_fetches: int
    max_candidate_calls: int


def _load_runtime_yaml() -> Dict[str, Any]:
    path = resolve_config_path("runtime.yaml")
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except (OSError, yaml.YAMLError):
        return {}
    return data if isinstance(data, dict) else {}


def _coerce_int(config: Dict[str, Any], key: str, default: int) -> int:
    value = config.get(key)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value)
    return default


def _coerce_float(config: Dict[str, Any], key: str, default: float) -> float:
    value = config.get(key)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return default


def build_runtime_config(raw: Dict[str, Any] | None = None) -> RuntimeConfig:
    raw = raw if raw is not None else _load_runtime_yaml()
    return RuntimeConfig(
        render_wait_seconds=_coerce_float(raw, "render_wait_seconds", 5.0),
        render_timeout_seconds=_coerce_float(raw, "render_timeout_seconds", 30.0),
        schema_retry_days=_coerce_int(raw, "schema_retry_days", 7),
        tracker_retention_days=_coerce_int(raw, "tracker_retention_days", 90),
        board_tracker_retention_days=_coerce_int(raw, "board_tracker_retention_days", 30),
        max_pages=_coerce_int(raw, "max_pages", 3),
        llm_sample_chars=_coerce_int(raw, "llm_sample_chars", 3500),
        max_script_fetches=_coerce_int(raw, "max_script_fetches", 5),
        max_candidate_calls=_coerce_int(raw, "max_candidate_calls", 8),
    )


runtime_config = build_runtime_config()
