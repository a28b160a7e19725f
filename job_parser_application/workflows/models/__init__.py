"""Pydantic models shared across the extraction pipeline."""

from .detection import ATSConfidence, DetectionResult
from .greenhouse import (
    GreenhouseBoardResponse,
    GreenhouseDepartment,
    GreenhouseJob,
    GreenhouseJobLocation,
    load_greenhouse_board,
)
from .job import (
    LOCATION_NOT_SPECIFIED,
    Job,
    JobSource,
    WorkFlexibility,
    content_hash,
    make_job_id,
)
from .llm import ParsedJob, PatternDetection
from .schema import (
    DEFAULT_MAX_PAGES,
    DEFAULT_PAGE_SIZE,
    CacheState,
    DetectedAPICall,
    DiscoveredAPISchema,
    JobResponseStructure,
    PaginationInfo,
    PaginationType,
    RenderResult,
    SortInfo,
)
from .tracking import TrackedJob

__all__ = [
    "DEFAULT_MAX_PAGES",
    "DEFAULT_PAGE_SIZE",
    "ATSConfidence",
    "CacheState",
    "DetectedAPICall",
    "DetectionResult",
    "DiscoveredAPISchema",
    "GreenhouseBoardResponse",
    "GreenhouseDepartment",
    "GreenhouseJob",
    "GreenhouseJobLocation",
    "Job",
    "JobResponseStructure",
    "JobSource",
    "LOCATION_NOT_SPECIFIED",
    "PaginationInfo",
    "PaginationType",
    "ParsedJob",
    "PatternDetection",
    "RenderResult",
    "SortInfo",
    "TrackedJob",
    "WorkFlexibility",
    "content_hash",
    "load_greenhouse_board",
    "make_job_id",
]
