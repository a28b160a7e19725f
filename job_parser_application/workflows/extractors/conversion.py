from __future__ import annotations

from typing import Iterable, List, Optional

from ..filters import extract_work_flexibility
from ..helpers.dates import parse_any_date
from ..helpers.link_extractors import company_name_from_host, normalize_url
from ..models import LOCATION_NOT_SPECIFIED, Job, JobSource, ParsedJob, make_job_id


def to_job(
    parsed: ParsedJob,
    *,
    base_url: str,
    source: JobSource = JobSource.UNKNOWN,
    company_name: Optional[str] = None,
    id_prefix: Optional[str] = None,
    default_location: str = LOCATION_NOT_SPECIFIED,
) -> Job:
    url = normalize_url(parsed.url, base_url=base_url) or base_url
    description = parsed.description or ""
    if parsed.requirements:
        description = "\n".join([description, *("- " + item for item in parsed.requirements)]).strip()
    location = (parsed.location or "").strip() or default_location
    return Job(
        id=make_job_id(id_prefix or source.value, native_id=parsed.id, title=parsed.title, url=url),
        title=parsed.title,
        location=location,
        posting_date=parse_any_date(parsed.posting_date),
        url=url,
        description=description,
        work_flexibility=extract_work_flexibility(" ".join([location, description])),
        source=source,
        company_name=company_name or company_name_from_host(base_url),
    )


def to_jobs(parsed_jobs: Iterable[ParsedJob], **kwargs) -> List[Job]:
    jobs: List[Job] = []
    seen: set[str] = set()
    for parsed in parsed_jobs:
        job = to_job(parsed, **kwargs)
        if job.id in seen:
            continue
        seen.add(job.id)
        jobs.append(job)
    return jobs
