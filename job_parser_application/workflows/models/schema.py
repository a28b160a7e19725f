from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_PAGE_SIZE = 20
DEFAULT_MAX_PAGES = 3


class PaginationType(str, Enum):
    OFFSET = "offset"
    PAGE = "page"
    CURSOR = "cursor"
    NONE = "none"


class PaginationInfo(BaseModel):
    type: PaginationType = PaginationType.NONE
    param_name: Optional[str] = Field(default=None, alias="paramName")
    page_size_param: Optional[str] = Field(default=None, alias="pageSizeParam")
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, alias="pageSize", ge=1)
    max_pages: int = Field(default=DEFAULT_MAX_PAGES, alias="maxPages", ge=1, le=20)

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class SortInfo(BaseModel):
    param: str
    value: str

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class JobResponseStructure(BaseModel):
    """Where job records live inside a JSON response and which keys hold what."""

    jobs_array_path: str = Field(default="", alias="jobsArrayPath")
    title_field: str = Field(default="title", alias="titleField")
    location_field: Optional[str] = Field(default=None, alias="locationField")
    url_field: Optional[str] = Field(default=None, alias="urlField")
    url_template: Optional[str] = Field(default=None, alias="urlTemplate")
    description_field: Optional[str] = Field(default=None, alias="descriptionField")
    id_field: Optional[str] = Field(default=None, alias="idField")
    posting_date_field: Optional[str] = Field(default=None, alias="postingDateField")
    page_param: Optional[str] = Field(default=None, alias="pageParam")
    page_size_param: Optional[str] = Field(default=None, alias="pageSizeParam")

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class DetectedAPICall(BaseModel):
    url: str
    method: str = "GET"
    body: Optional[str] = None
    headers: Optional[Dict[str, str]] = None

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    @property
    def dedupe_key(self) -> str:
        return f"{self.method.upper()} {self.url}"


class RenderResult(BaseModel):
    final_html: str = Field(default="", alias="finalHTML")
    captured_calls: List[DetectedAPICall] = Field(default_factory=list, alias="capturedCalls")

    model_config = ConfigDict(populate_by_name=True)


class CacheState(str, Enum):
    UNKNOWN = "unknown"
    FAILED = "failed"
    SCHEMA_DISCOVERED = "schema_discovered"
    FAST_PATH = "fast_path"


class DiscoveredAPISchema(BaseModel):
    """One domain's cached extraction recipe."""

    domain: str
    endpoint: str = ""
    method: str = "GET"
    request_body: Optional[str] = Field(default=None, alias="requestBody")
    headers: Optional[Dict[str, str]] = None
    response_structure: JobResponseStructure = Field(
        default_factory=JobResponseStructure, alias="responseStructure"
    )
    pagination: Optional[PaginationInfo] = None
    sort: Optional[SortInfo] = None
    discovered_at: datetime = Field(alias="discoveredAt")
    llm_attempted: bool = Field(default=False, alias="llmAttempted")
    schema_discovered: bool = Field(default=False, alias="schemaDiscovered")
    last_attempt: datetime = Field(alias="lastAttempt")
    last_fetched_at: Optional[datetime] = Field(default=None, alias="lastFetchedAt")
    # Raw HTML pattern extraction works for this domain.
    html_extraction_works: bool = Field(default=False, alias="htmlExtractionWorks")
    # Heuristic JSON extraction over an intercepted call works for this domain.
    api_extraction_works: bool = Field(default=False, alias="apiExtractionWorks")

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    @classmethod
    def minimal(cls, domain: str, now: datetime) -> "DiscoveredAPISchema":
        return cls(domain=domain, discovered_at=now, last_attempt=now)

    @property
    def fast_path_works(self) -> bool:
        return self.html_extraction_works or self.api_extraction_works

    @property
    def is_failed(self) -> bool:
        return self.llm_attempted and not self.schema_discovered and not self.fast_path_works

    @property
    def state(self) -> CacheState:
        if self.fast_path_works:
            return CacheState.FAST_PATH
        if self.schema_discovered:
            return CacheState.SCHEMA_DISCOVERED
        if self.llm_attempted:
            return CacheState.FAILED
        return CacheState.UNKNOWN
