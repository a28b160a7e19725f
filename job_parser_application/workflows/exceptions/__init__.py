from .base import (
    APIError,
    DecodingError,
    FetchError,
    HTTPStatusError,
    InvalidResponseError,
    InvalidURLError,
    NoJobsError,
)
from .llm import InferenceFailedError, LLMError, ModelNotFoundError, ModelNotLoadedError
from .render import RenderError, RenderTimeoutError

__all__ = [
    "APIError",
    "DecodingError",
    "FetchError",
    "HTTPStatusError",
    "InvalidResponseError",
    "InvalidURLError",
    "NoJobsError",
    "InferenceFailedError",
    "LLMError",
    "ModelNotFoundError",
    "ModelNotLoadedError",
    "RenderError",
    "RenderTimeoutError",
]
