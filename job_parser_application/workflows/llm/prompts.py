SCHEMA_SYSTEM_PROMPT = "You are an expert at analyzing JSON API structures. /no_think"

SCHEMA_USER_PROMPT = """Analyze this JSON API response and tell me how to extract job listings.

Return ONLY a JSON object with this exact structure:
{{
  "jobsArrayPath": "path.to.jobs.array",
  "titleField": "fieldName",
  "locationField": "fieldName",
  "urlField": "fieldName",
  "idField": "fieldName",
  "descriptionField": "fieldName",
  "postingDateField": "fieldName",
  "paginationParam": "offset|page|cursor|null",
  "pageSizeParam": "limit|size|pageSize|null"
}}

For example, if jobs are at data.results[] with offset pagination:
{{"jobsArrayPath":"data.results","titleField":"title","locationField":"location","urlField":"jobUrl","idField":"id","paginationParam":"offset","pageSizeParam":"limit"}}

Use null for any field you cannot find.

JSON Response:
{sample}

Schema:"""

PATTERN_SYSTEM_PROMPT = "You find where a careers page really loads its job listings from. /no_think"

PATTERN_USER_PROMPT = """This HTML comes from a careers page at {source_url}.
Identify the applicant tracking system or API that serves its job listings.

Return ONLY a JSON object:
{{"atsURL": "https://... job board URL or null", "atsType": "greenhouse|lever|ashby|workday|workable|smartrecruiters|jobvite|other|null", "apiEndpoint": "https://... JSON endpoint or null", "apiType": "rest|graphql|null", "confidence": "high|medium|low"}}

HTML:
{sample}

JSON:"""

EXTRACT_SYSTEM_PROMPT = "You are a helpful assistant that extracts job listings from HTML. /no_think"

EXTRACT_USER_PROMPT = """Extract job listings from this HTML page ({source_url}).

CRITICAL: Return ONLY a JSON array, nothing else. No explanations, no markdown.

HTML:
{sample}

If you find jobs, return this format with real data:
[{{"title":"Software Engineer","location":"Seattle, WA","url":"https://example.com/job/123"}}]

If NO jobs found in the HTML, return:
[]

JSON:"""
