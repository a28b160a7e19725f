from __future__ import annotations

import hashlib
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

LOCATION_NOT_SPECIFIED = "Location not specified"


class JobSource(str, Enum):
    """Known applicant tracking systems plus the generic extraction bucket."""

    GREENHOUSE = "greenhouse"
    LEVER = "lever"
    ASHBY = "ashby"
    WORKDAY = "workday"
    WORKABLE = "workable"
    JOBVITE = "jobvite"
    BAMBOOHR = "bamboohr"
    SMARTRECRUITERS = "smartrecruiters"
    JAZZHR = "jazzhr"
    RECRUITEE = "recruitee"
    BREEZYHR = "breezyhr"
    UNKNOWN = "unknown"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES.get(self, self.value.capitalize())


_DISPLAY_NAMES = {
    JobSource.GREENHOUSE: "Greenhouse",
    JobSource.LEVER: "Lever",
    JobSource.ASHBY: "Ashby",
    JobSource.WORKDAY: "Workday",
    JobSource.WORKABLE: "Workable",
    JobSource.JOBVITE: "Jobvite",
    JobSource.BAMBOOHR: "BambooHR",
    JobSource.SMARTRECRUITERS: "SmartRecruiters",
    JobSource.JAZZHR: "JazzHR",
    JobSource.RECRUITEE: "Recruitee",
    JobSource.BREEZYHR: "BreezyHR",
    JobSource.UNKNOWN: "Unknown",
}


class WorkFlexibility(str, Enum):
    REMOTE = "remote"
    HYBRID = "hybrid"
    ONSITE = "onsite"


class Job(BaseModel):
    id: str
    title: str
    location: str = LOCATION_NOT_SPECIFIED
    posting_date: Optional[datetime] = Field(default=None, alias="postingDate")
    url: str
    description: str = ""
    work_flexibility: Optional[WorkFlexibility] = Field(default=None, alias="workFlexibility")
    source: JobSource = JobSource.UNKNOWN
    company_name: str = Field(default="", alias="companyName")
    department: Optional[str] = None
    category: Optional[str] = None
    first_seen_date: Optional[datetime] = Field(default=None, alias="firstSeenDate")
    original_posting_date: Optional[datetime] = Field(default=None, alias="originalPostingDate")
    was_bumped: bool = Field(default=False, alias="wasBumped")

    model_config = ConfigDict(populate_by_name=True)


def content_hash(*parts: str, length: int = 16) -> str:
    digest = hashlib.sha256("|".join(part or "" for part in parts).encode("utf-8")).hexdigest()
    return digest[:length]


def make_job_id(
    prefix: str,
    *,
    native_id: object | None = None,
    title: str = "",
    url: str = "",
) -> str:
    """Build the dedup key: ``<prefix>-<native id>`` or a hash of title and url."""

    if native_id is not None and not isinstance(native_id, bool):
        native = str(native_id).strip()
        if native:
            return f"{prefix}-{native}"
    return f"{prefix}-{content_hash(title.strip().lower(), url.strip())}"
