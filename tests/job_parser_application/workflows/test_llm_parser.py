from __future__ import annotations

import httpx
import pytest

from job_parser_application.workflows.exceptions import (
    InferenceFailedError,
    ModelNotFoundError,
    ModelNotLoadedError,
)
from job_parser_application.workflows.llm import (
    LLMParser,
    parse_json_response,
    structure_from_response,
)

MODEL = "test-model"


class FakeReply:
    def __init__(self, content):
        self.content = content


class FakeChatModel:
    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    async def ainvoke(self, messages):
        self.calls.append(messages)
        return FakeReply(self.replies.pop(0))


def _models_endpoint(*served):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path.endswith("/models")
        return httpx.Response(200, json={"data": [{"id": name} for name in served]})

    return lambda: httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _parser(chat_model, *served) -> LLMParser:
    return LLMParser(
        model_name=MODEL,
        base_url="http://llm.test/v1",
        chat_model_factory=lambda: chat_model,
        client_factory=_models_endpoint(*(served or (MODEL,))),
    )


def test_parse_json_response_strips_think_blocks_and_fences():
    text = '<think>looking at the sample</think>\n```json\n{"jobsArrayPath": "jobs"}\n```'

    assert parse_json_response(text) == {"jobsArrayPath": "jobs"}
    assert parse_json_response('Here you go: [{"title": "A"}] done', "[", "]") == [{"title": "A"}]


def test_parse_json_response_rejects_non_json():
    with pytest.raises(InferenceFailedError):
        parse_json_response("I could not find anything")
    with pytest.raises(InferenceFailedError):
        parse_json_response("{not: json}")


def test_structure_from_response_treats_null_strings_as_missing():
    structure = structure_from_response(
        {
            "jobsArrayPath": "data.results[]",
            "titleField": "name",
            "locationField": "null",
            "urlField": "N/A",
            "paginationParam": "offset",
        }
    )

    assert structure.jobs_array_path == "data.results"
    assert structure.title_field == "name"
    assert structure.location_field is None
    assert structure.url_field is None
    assert structure.page_param == "offset"
    assert structure_from_response({"jobsArrayPath": "null"}) is None
    assert structure_from_response(["not", "a", "dict"]) is None


@pytest.mark.asyncio
async def test_completion_requires_a_loaded_model():
    parser = _parser(FakeChatModel([]))

    with pytest.raises(ModelNotLoadedError):
        await parser.discover_schema({"jobs": []})


@pytest.mark.asyncio
async def test_missing_model_is_reported():
    parser = _parser(FakeChatModel([]), "some-other-model")

    with pytest.raises(ModelNotFoundError):
        await parser.ensure_loaded()
    assert parser.is_loaded is False


@pytest.mark.asyncio
async def test_unreachable_server_is_reported_as_missing_model():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    parser = LLMParser(
        model_name=MODEL,
        base_url="http://llm.test/v1",
        chat_model_factory=lambda: FakeChatModel([]),
        client_factory=lambda: httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )

    with pytest.raises(ModelNotFoundError):
        await parser.ensure_loaded()


@pytest.mark.asyncio
async def test_discover_schema_and_unload():
    chat = FakeChatModel(['```json\n{"jobsArrayPath": "data.jobs", "titleField": "title", "idField": "id"}\n```'])
    parser = _parser(chat)

    await parser.ensure_loaded()
    structure = await parser.discover_schema({"data": {"jobs": [{"id": 1, "title": "Engineer"}]}})
    await parser.unload()

    assert structure.jobs_array_path == "data.jobs"
    assert structure.id_field == "id"
    assert parser.is_loaded is False
    system, human = chat.calls[0]
    assert "Engineer" in human.content


@pytest.mark.asyncio
async def test_model_stays_loaded_until_last_user_releases():
    parser = _parser(FakeChatModel([]))
    parser.acquire()
    parser.acquire()
    await parser.ensure_loaded()

    await parser.release()
    assert parser.is_loaded is True
    assert parser.active_users == 1

    await parser.release()
    assert parser.is_loaded is False
    assert parser.active_users == 0

    await parser.release()
    assert parser.active_users == 0


@pytest.mark.asyncio
async def test_extract_jobs_skips_invalid_entries():
    reply = '[{"title": "Data Engineer", "location": "Remote", "url": "/jobs/1"}, {"title": ""}, "junk"]'
    parser = _parser(FakeChatModel([reply]))
    await parser.ensure_loaded()

    jobs = await parser.extract_jobs("<html><a href='/jobs/1'>Data Engineer</a></html>", "https://acme.com")

    assert [job.title for job in jobs] == ["Data Engineer"]
    assert jobs[0].url == "/jobs/1"


@pytest.mark.asyncio
async def test_detect_patterns_drops_null_values():
    reply = '{"atsURL": "https://boards.greenhouse.io/acme", "atsType": "greenhouse", "apiEndpoint": "null", "confidence": "high"}'
    parser = _parser(FakeChatModel([reply]))
    await parser.ensure_loaded()

    detection = await parser.detect_patterns("<html>careers</html>", "https://acme.com/careers")

    assert detection.ats_url == "https://boards.greenhouse.io/acme"
    assert detection.api_endpoint is None
    assert detection.confidence == "high"
