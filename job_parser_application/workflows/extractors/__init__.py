"""Stateless extractors that turn JSON documents or HTML into job candidates."""

from .conversion import to_job, to_jobs
from .heuristic import extract_heuristic, find_jobs_array, infer_structure
from .html_patterns import extract_attribute_job_links, extract_job_links, extract_path_job_links
from .json_schema import build_job_url, extract_jobs, navigate_path
from .structured_data import extract_embedded_state, extract_json_ld_jobs, extract_next_data

__all__ = [
    "build_job_url",
    "extract_attribute_job_links",
    "extract_embedded_state",
    "extract_heuristic",
    "extract_job_links",
    "extract_jobs",
    "extract_json_ld_jobs",
    "extract_next_data",
    "extract_path_job_links",
    "find_jobs_array",
    "infer_structure",
    "navigate_path",
    "to_job",
    "to_jobs",
]
