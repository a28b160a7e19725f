from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


load_dotenv()


def _env_flag(name: str, default: str = "false") -> bool:
    value = os.getenv(name, default)
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)


@dataclass
class Settings:
    # Allows the render/LLM fallbacks once ATS detection comes back empty.
    enable_ai_parser: bool = _env_flag("ENABLE_AI_PARSER", "true")

    # Where the schema cache and job tracker JSON files live.
    data_dir: str | None = os.getenv("JOB_PARSER_DATA_DIR")

    http_timeout_seconds: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "15"))
    http_user_agent: str = os.getenv("HTTP_USER_AGENT", DEFAULT_USER_AGENT)

    # Local OpenAI-compatible inference server (LM Studio by default)
    llm_base_url: str = os.getenv("LLM_BASE_URL", "http://localhost:1234/v1")
    llm_model_name: str = os.getenv("LLM_MODEL_NAME", "qwen2.5-7b-instruct")
    llm_api_key: str = os.getenv("LLM_API_KEY", "lm-studio")
    llm_temperature: float = float(os.getenv("LLM_TEMPERATURE", "0.1"))
    llm_max_tokens: int = int(os.getenv("LLM_MAX_TOKENS", "2048"))
    llm_timeout_seconds: float = float(os.getenv("LLM_TIMEOUT_SECONDS", "120"))

    render_headless: bool = _env_flag("RENDER_HEADLESS", "true")

    log_level: str = os.getenv("JOB_PARSER_LOG_LEVEL", "INFO")
    log_dir: str = os.getenv("JOB_PARSER_LOG_DIR", "logs")


settings = Settings()
