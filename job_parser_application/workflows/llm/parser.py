from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, List, Optional

import httpx
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI
from pydantic import ValidationError

from ...config.config import settings
from ...config.runtime_config import runtime_config
from ..exceptions import InferenceFailedError, ModelNotFoundError, ModelNotLoadedError
from ..helpers.html_cleaner import truncate_html_sample, truncate_json_sample
from ..helpers.regex_patterns import CODE_FENCE_END_RE, CODE_FENCE_START_RE, THINK_BLOCK_RE
from ..models import JobResponseStructure, ParsedJob, PatternDetection
from .prompts import (
    EXTRACT_SYSTEM_PROMPT,
    EXTRACT_USER_PROMPT,
    PATTERN_SYSTEM_PROMPT,
    PATTERN_USER_PROMPT,
    SCHEMA_SYSTEM_PROMPT,
    SCHEMA_USER_PROMPT,
)

logger = logging.getLogger("job_parser.llm")

_NULLISH = {"", "null", "none", "n/a"}


def _clean_response(text: str) -> str:
    cleaned = THINK_BLOCK_RE.sub("", text or "").strip()
    cleaned = CODE_FENCE_START_RE.sub("", cleaned)
    cleaned = CODE_FENCE_END_RE.sub("", cleaned)
    return cleaned.strip()


def parse_json_response(text: str, opener: str = "{", closer: str = "}") -> Any:
    """Decode the JSON between the first ``opener`` and the last ``closer``."""

    cleaned = _clean_response(text)
    start = cleaned.find(opener)
    end = cleaned.rfind(closer)
    if start < 0 or end < start:
        raise InferenceFailedError(f"no JSON {opener}...{closer} in model response")
    try:
        return json.loads(cleaned[start : end + 1])
    except json.JSONDecodeError as exc:
        raise InferenceFailedError(f"model returned invalid JSON: {exc}") from exc


def _optional_field(payload: dict, key: str) -> Optional[str]:
    value = payload.get(key)
    if not isinstance(value, str) or value.strip().lower() in _NULLISH:
        return None
    return value.strip()


def structure_from_response(payload: Any) -> Optional[JobResponseStructure]:
    if not isinstance(payload, dict):
        return None
    jobs_path = payload.get("jobsArrayPath")
    if not isinstance(jobs_path, str) or jobs_path.strip().lower() in _NULLISH - {""}:
        return None
    try:
        return JobResponseStructure(
            jobs_array_path=jobs_path.strip().rstrip("[]"),
            title_field=_optional_field(payload, "titleField") or "title",
            location_field=_optional_field(payload, "locationField"),
            url_field=_optional_field(payload, "urlField"),
            url_template=_optional_field(payload, "urlTemplate"),
            description_field=_optional_field(payload, "descriptionField"),
            id_field=_optional_field(payload, "idField"),
            posting_date_field=_optional_field(payload, "postingDateField"),
            page_param=_optional_field(payload, "paginationParam") or _optional_field(payload, "pageParam"),
            page_size_param=_optional_field(payload, "pageSizeParam"),
        )
    except ValidationError as exc:
        logger.debug("Discovered schema did not validate: %s", exc)
        return None


def _build_chat_model() -> ChatOpenAI:
    return ChatOpenAI(
        base_url=settings.llm_base_url,
        api_key=settings.llm_api_key,
        model=settings.llm_model_name,
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
        timeout=settings.llm_timeout_seconds,
    )


class LLMParser:
    """Local OpenAI-compatible model used for schema discovery and last-resort extraction.

    The model is a single shared resource: it is loaded lazily and guarded by
    one lock. Concurrent users hold it with ``acquire()``/``release()``; the
    last ``release()`` unloads it.
    """

    def __init__(
        self,
        *,
        model_name: Optional[str] = None,
        base_url: Optional[str] = None,
        chat_model_factory: Callable[[], Any] | None = None,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
        sample_chars: Optional[int] = None,
    ) -> None:
        self.model_name = model_name or settings.llm_model_name
        self.base_url = (base_url or settings.llm_base_url).rstrip("/")
        self._chat_model_factory = chat_model_factory or _build_chat_model
        self._client_factory = client_factory or (
            lambda: httpx.AsyncClient(timeout=settings.http_timeout_seconds)
        )
        self.sample_chars = sample_chars or runtime_config.llm_sample_chars
        self._model: Any = None
        self._lock = asyncio.Lock()
        self._users = 0

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    @property
    def active_users(self) -> int:
        return self._users

    def acquire(self) -> None:
        """Register a user; the model stays loaded until every user has released it."""

        self._users += 1

    async def release(self) -> None:
        if self._users == 0:
            return
        self._users -= 1
        if self._users == 0:
            await self.unload()
        else:
            logger.debug("Keeping model %s loaded for %s other user(s)", self.model_name, self._users)

    async def ensure_loaded(self) -> None:
        async with self._lock:
            if self._model is not None:
                return
            await self._check_model_available()
            self._model = self._chat_model_factory()
            logger.info("Loaded model %s from %s", self.model_name, self.base_url)

    async def unload(self) -> None:
        async with self._lock:
            if self._model is None:
                return
            self._model = None
            logger.info("Unloaded model %s", self.model_name)

    async def _check_model_available(self) -> None:
        try:
            async with self._client_factory() as http:
                response = await http.get(f"{self.base_url}/models")
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Inference server at %s is unavailable: %s", self.base_url, exc)
            raise ModelNotFoundError(self.model_name) from exc
        models = payload.get("data") if isinstance(payload, dict) else None
        ids = {entry.get("id") for entry in models or [] if isinstance(entry, dict)}
        if self.model_name not in ids:
            logger.warning("Model %s not served by %s (available: %s)", self.model_name, self.base_url, sorted(ids))
            raise ModelNotFoundError(self.model_name)

    async def _complete(self, system_prompt: str, user_prompt: str) -> str:
        async with self._lock:
            if self._model is None:
                raise ModelNotLoadedError()
            messages = [SystemMessage(content=system_prompt), HumanMessage(content=user_prompt)]
            try:
                response = await self._model.ainvoke(messages)
            except Exception as exc:
                raise InferenceFailedError(str(exc)) from exc
        content = getattr(response, "content", response)
        if isinstance(content, list):
            content = "".join(part if isinstance(part, str) else str(part.get("text", "")) for part in content)
        text = str(content or "")
        logger.debug("Model response (%s chars): %s", len(text), text[:200])
        return text

    async def discover_schema(self, json_sample: Any) -> Optional[JobResponseStructure]:
        """Ask the model where the jobs array lives and which keys hold what."""

        sample = truncate_json_sample(
            json_sample if not isinstance(json_sample, str) else _loads_or_raw(json_sample),
            self.sample_chars,
        )
        text = await self._complete(SCHEMA_SYSTEM_PROMPT, SCHEMA_USER_PROMPT.format(sample=sample))
        structure = structure_from_response(parse_json_response(text))
        if structure is None:
            logger.info("Model could not describe the response structure")
        else:
            logger.info(
                "Discovered schema: jobs at %r, title field %r",
                structure.jobs_array_path,
                structure.title_field,
            )
        return structure

    async def detect_patterns(self, html_sample: str, source_url: str) -> PatternDetection:
        sample = truncate_html_sample(html_sample, self.sample_chars)
        text = await self._complete(
            PATTERN_SYSTEM_PROMPT, PATTERN_USER_PROMPT.format(sample=sample, source_url=source_url)
        )
        payload = parse_json_response(text)
        if not isinstance(payload, dict):
            raise InferenceFailedError("pattern detection did not return an object")
        cleaned = {
            key: value
            for key, value in payload.items()
            if not (isinstance(value, str) and value.strip().lower() in _NULLISH)
        }
        try:
            return PatternDetection.model_validate(cleaned)
        except ValidationError as exc:
            raise InferenceFailedError(f"pattern detection had unexpected shape: {exc}") from exc

    async def extract_jobs(self, html_sample: str, url: str) -> List[ParsedJob]:
        sample = truncate_html_sample(html_sample, self.sample_chars)
        text = await self._complete(
            EXTRACT_SYSTEM_PROMPT, EXTRACT_USER_PROMPT.format(sample=sample, source_url=url)
        )
        payload = parse_json_response(text, "[", "]")
        if not isinstance(payload, list):
            raise InferenceFailedError("job extraction did not return an array")
        jobs: List[ParsedJob] = []
        for entry in payload:
            if not isinstance(entry, dict):
                continue
            try:
                jobs.append(ParsedJob.model_validate(entry))
            except ValidationError:
                continue
        logger.info("Model extracted %s jobs from %s", len(jobs), url)
        return jobs


def _loads_or_raw(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text
