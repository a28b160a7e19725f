from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .job import JobSource


class TrackedJob(BaseModel):
    id: str
    title: str = ""
    url: str = ""
    source: JobSource = JobSource.UNKNOWN
    first_seen: datetime = Field(alias="firstSeen")
    last_seen: datetime = Field(alias="lastSeen")

    model_config = ConfigDict(populate_by_name=True, extra="allow")
