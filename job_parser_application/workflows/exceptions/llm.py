from __future__ import annotations


class LLMError(Exception):
    """Base error for the local inference runtime."""

    pass


class ModelNotFoundError(LLMError):
    def __init__(self, model: str) -> None:
        super().__init__(f"Model not found: {model}")
        self.model = model


class ModelNotLoadedError(LLMError):
    def __init__(self) -> None:
        super().__init__("Model is not loaded")


class InferenceFailedError(LLMError):
    def __init__(self, details: str) -> None:
        super().__init__(f"Inference failed: {details}")
        self.details = details
