from __future__ import annotations

import pytest

from job_parser_application.workflows.models import (
    CacheState,
    DetectionResult,
    DiscoveredAPISchema,
    Job,
    ParsedJob,
    load_greenhouse_board,
    make_job_id,
)


def test_greenhouse_board_parsing():
    payload = {
        "jobs": [
            {
                "absolute_url": "https://boards.greenhouse.io/robinhood/jobs/7278362?gh_jid=7278362",
                "id": 7278362,
                "title": "AML Investigator, Crypto",
                "updated_at": "2025-11-24T15:20:56-05:00",
                "location": {"name": "Denver, CO; New York, NY"},
                "departments": [{"name": "Compliance", "id": 9}],
            },
            {"absolute_url": "https://boards.greenhouse.io/robinhood/jobs/2", "id": 2, "title": "Analyst"},
        ]
    }

    board = load_greenhouse_board(payload)

    assert len(board.jobs) == 2
    assert board.jobs[0].location.name.startswith("Denver")
    assert board.jobs[0].departments[0].name == "Compliance"
    assert board.jobs[1].location is None


def test_greenhouse_board_rejects_invalid_json_text():
    with pytest.raises(ValueError):
        load_greenhouse_board("{not json")


def test_job_serializes_with_camel_case_aliases():
    job = Job(id="gh-1", title="Engineer", url="https://acme.com/jobs/1", company_name="Acme")

    dumped = job.model_dump(mode="json", by_alias=True)

    assert dumped["companyName"] == "Acme"
    assert dumped["location"] == "Location not specified"
    assert dumped["firstSeenDate"] is None
    assert Job.model_validate(dumped) == job


def test_make_job_id_prefers_native_id():
    assert make_job_id("acme.com", native_id=0) == "acme.com-0"
    assert make_job_id("acme.com", native_id=True, title="A", url="u") != "acme.com-True"
    hashed = make_job_id("acme.com", title=" Engineer ", url="https://acme.com/1")
    assert hashed == make_job_id("acme.com", title="engineer", url="https://acme.com/1")


def test_parsed_job_coerces_scalars_and_rejects_blank_titles():
    parsed = ParsedJob.model_validate({"title": " Engineer ", "id": 12, "requirements": "Python"})

    assert parsed.title == "Engineer"
    assert parsed.id == "12"
    assert parsed.requirements == ["Python"]
    with pytest.raises(ValueError):
        ParsedJob(title="   ")


def test_cache_state_precedence(clock):
    schema = DiscoveredAPISchema.minimal("acme.com", clock())
    assert schema.state == CacheState.UNKNOWN

    schema.llm_attempted = True
    assert schema.state == CacheState.FAILED and schema.is_failed

    schema.schema_discovered = True
    assert schema.state == CacheState.SCHEMA_DISCOVERED

    schema.html_extraction_works = True
    assert schema.state == CacheState.FAST_PATH


def test_detection_confidence():
    assert DetectionResult.not_detected().is_confident is False
