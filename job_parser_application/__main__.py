from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import List, Optional, Sequence

from .services.logging_setup import setup_logging
from .workflows.models import Job
from .workflows.smart_parser import SmartJobParser


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="job-parser",
        description="Extract job postings from a careers page or ATS board.",
    )
    parser.add_argument("url", nargs="?", help="Careers page or job board URL.")
    parser.add_argument("--title", default="", help="Comma-separated title keywords.")
    parser.add_argument("--location", default="", help="Comma-separated location keywords.")
    parser.add_argument("--no-ai", action="store_true", help="Disable the render/model fallbacks.")
    parser.add_argument("--json", action="store_true", help="Print jobs as a JSON array.")
    parser.add_argument("--clear-cache", metavar="DOMAIN", help="Forget the cached schema for DOMAIN.")
    parser.add_argument("--force-retry", metavar="DOMAIN", help="Drop a failed discovery entry for DOMAIN.")
    parser.add_argument("--log-level", default=None, help="Override JOB_PARSER_LOG_LEVEL.")
    return parser


def _format_job(job: Job) -> str:
    first_seen = job.first_seen_date.date().isoformat() if job.first_seen_date else ""
    return "\t".join([job.title, job.location, job.company_name, job.url, first_seen])


async def _run(args: argparse.Namespace) -> int:
    parser = SmartJobParser(enable_ai=False if args.no_ai else None)

    if args.clear_cache:
        await parser.schema_cache.clear(args.clear_cache)
        print(f"Cleared cached schema for {args.clear_cache}")
    if args.force_retry:
        dropped = await parser.schema_cache.force_retry(args.force_retry)
        print(f"{'Dropped' if dropped else 'No'} failed entry for {args.force_retry}")
    if not args.url:
        return 0

    jobs: List[Job] = await parser.parse_jobs(
        args.url,
        title_filter=args.title,
        location_filter=args.location,
        status_callback=lambda message: print(message, file=sys.stderr),
    )
    if args.json:
        print(json.dumps([job.model_dump(mode="json", by_alias=True) for job in jobs], indent=2))
    else:
        for job in jobs:
            print(_format_job(job))
    return 0 if jobs else 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    if not args.url and not args.clear_cache and not args.force_retry:
        raise SystemExit("Provide a URL, --clear-cache or --force-retry.")
    # stdout carries the job listing itself
    setup_logging(args.log_level, stream=sys.stderr)
    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
