from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .job import JobSource


class ATSConfidence(str, Enum):
    CERTAIN = "certain"
    LIKELY = "likely"
    UNCERTAIN = "uncertain"
    NOT_DETECTED = "not_detected"


class DetectionResult(BaseModel):
    source: Optional[JobSource] = None
    confidence: ATSConfidence = ATSConfidence.NOT_DETECTED
    api_endpoint: Optional[str] = Field(default=None, alias="apiEndpoint")
    actual_ats_url: Optional[str] = Field(default=None, alias="actualATSUrl")
    message: str = ""

    model_config = ConfigDict(populate_by_name=True)

    @property
    def is_confident(self) -> bool:
        """True for certain/likely results that name a vendor."""

        return self.source is not None and self.confidence in (
            ATSConfidence.CERTAIN,
            ATSConfidence.LIKELY,
        )

    @classmethod
    def not_detected(cls, message: str = "No ATS detected") -> "DetectionResult":
        return cls(confidence=ATSConfidence.NOT_DETECTED, message=message)
