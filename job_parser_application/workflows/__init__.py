"""Job extraction pipeline.

Given a careers page URL this package:
- Detects the applicant tracking system behind it and uses its public API when one is known
- Otherwise replays a cached per-domain API recipe, or renders the page and intercepts its API calls
- Falls back to structured data, link patterns and a local model over the HTML
"""
