from __future__ import annotations

import json

from job_parser_application.workflows.extractors import (
    extract_embedded_state,
    extract_job_links,
    extract_json_ld_jobs,
    extract_next_data,
)


def test_json_ld_job_postings_inside_graph():
    ld = {
        "@context": "https://schema.org",
        "@graph": [
            {"@type": "Organization", "name": "Acme"},
            {
                "@type": "JobPosting",
                "title": "Platform Engineer",
                "url": "https://acme.com/jobs/platform-engineer",
                "datePosted": "2025-02-10",
                "identifier": {"@type": "PropertyValue", "value": "R-1"},
                "description": "<p>Run the platform.</p>",
                "jobLocation": {
                    "@type": "Place",
                    "address": {"addressLocality": "Denver", "addressRegion": "CO", "addressCountry": "US"},
                },
            },
            {"@type": "JobPosting", "title": "Support Lead", "jobLocationType": "TELECOMMUTE"},
        ],
    }
    html = f'<html><script type="application/ld+json">{json.dumps(ld)}</script></html>'

    jobs = extract_json_ld_jobs(html, "https://acme.com/careers")

    assert [job.title for job in jobs] == ["Platform Engineer", "Support Lead"]
    first, second = jobs
    assert first.location == "Denver, CO, US"
    assert first.id == "R-1"
    assert first.description == "Run the platform."
    assert second.location == "Remote"
    assert second.url == "https://acme.com/careers"


def test_json_ld_ignores_broken_blocks():
    html = '<script type="application/ld+json">{broken</script>'

    assert extract_json_ld_jobs(html, "https://acme.com") == []
    assert extract_json_ld_jobs(None, "https://acme.com") == []


def test_next_data_returns_page_props():
    blob = {"props": {"pageProps": {"jobs": [{"title": "Analyst"}]}}, "page": "/careers"}
    html = f'<script id="__NEXT_DATA__" type="application/json">{json.dumps(blob)}</script>'

    assert extract_next_data(html) == {"jobs": [{"title": "Analyst"}]}
    assert extract_next_data("<html></html>") is None


def test_embedded_state_globals():
    html = (
        "<script>window.__INITIAL_STATE__ = "
        '{"careers": {"jobs": [{"title": "Recruiter"}]}};</script>'
        "<script>pageData = {not json};</script>"
    )

    documents = extract_embedded_state(html)

    assert documents == [{"careers": {"jobs": [{"title": "Recruiter"}]}}]


def test_job_links_prefer_marked_anchors():
    html = (
        '<a class="job-link" href="/jobs/123">Senior Data Engineer</a>'
        '<a href="/about">About us</a>'
        '<a class="job-link" href="/jobs/?page=2">Next page</a>'
    )

    jobs = extract_job_links(html, "https://careers.acme.com/openings")

    assert [(job.title, job.url) for job in jobs] == [
        ("Senior Data Engineer", "https://careers.acme.com/jobs/123")
    ]


def test_job_links_fall_back_to_path_shape():
    html = (
        '<a href="/positions/77/">Staff Product Designer</a>'
        '<a href="/blog/culture">Our culture blog</a>'
    )

    jobs = extract_job_links(html, "https://acme.com/careers")

    assert [job.url for job in jobs] == ["https://acme.com/positions/77"]
