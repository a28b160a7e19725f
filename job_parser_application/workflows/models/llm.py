from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ParsedJob(BaseModel):
    """Job candidate pulled out of a JSON document or proposed by the model."""

    title: str
    location: Optional[str] = None
    description: Optional[str] = None
    posting_date: Optional[str] = Field(default=None, alias="postingDate")
    url: Optional[str] = None
    requirements: Optional[List[str]] = None
    id: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("title must not be empty")
        return cleaned

    @field_validator("requirements", mode="before")
    @classmethod
    def _coerce_requirements(cls, value: object) -> object:
        if isinstance(value, str):
            return [value] if value.strip() else None
        return value

    @field_validator("location", "description", "posting_date", "url", "id", mode="before")
    @classmethod
    def _coerce_scalar(cls, value: object) -> object:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class PatternDetection(BaseModel):
    """The model's opinion about where a page's jobs actually come from."""

    ats_url: Optional[str] = Field(default=None, alias="atsURL")
    ats_type: Optional[str] = Field(default=None, alias="atsType")
    api_endpoint: Optional[str] = Field(default=None, alias="apiEndpoint")
    api_type: Optional[str] = Field(default=None, alias="apiType")
    confidence: str = "low"

    model_config = ConfigDict(populate_by_name=True, extra="ignore")
