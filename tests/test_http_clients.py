"""Tests for the OpenAI gateway adapter."""

import asyncio

import httpx
import openai
import pytest

from recipe_ingest.adapters.openai_recipe_client import OpenAIRecipeClient
from recipe_ingest.domain.recipes import ImagePart, PromptPayload, TextPart
from recipe_ingest.errors import ConfigurationError, UpstreamError
from tests.conftest import PNG_BYTES

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/responses")


class _FakeResponses:
    def __init__(self, output_text: str = "[]", error: Exception | None = None) -> None:
        self.output_text = output_text
        self.error = error
        self.status = "completed"
        self.incomplete_reason: str | None = None
        self.last_payload: dict[str, object] | None = None

    async def create(self, **kwargs):  # type: ignore[no-untyped-def]
        self.last_payload = kwargs
        if self.error is not None:
            raise self.error
        details = type("Details", (), {"reason": self.incomplete_reason})()
        return type(
            "Resp",
            (),
            {
                "output_text": self.output_text,
                "status": self.status,
                "incomplete_details": details,
            },
        )()


class _FakeOpenAI:
    def __init__(self, responses: _FakeResponses) -> None:
        self.responses = responses


def _payload() -> PromptPayload:
    return PromptPayload(
        parts=(
            TextPart("instructions"),
            ImagePart(data=PNG_BYTES, mime_type="image/png"),
            TextPart("user text"),
        )
    )


def _client(responses: _FakeResponses) -> OpenAIRecipeClient:
    return OpenAIRecipeClient(client=_FakeOpenAI(responses), model="gpt-4o-mini")


def test_invoke_sends_parts_in_order_and_returns_text() -> None:
    responses = _FakeResponses(output_text='[{"name": "flour", "weight": 1}]')

    result = asyncio.run(_client(responses).invoke(_payload()))

    assert result == '[{"name": "flour", "weight": 1}]'
    assert responses.last_payload is not None
    assert responses.last_payload["model"] == "gpt-4o-mini"
    assert responses.last_payload["store"] is False
    assert "reasoning" not in responses.last_payload
    content = responses.last_payload["input"][0]["content"]
    assert [item["type"] for item in content] == [
        "input_text",
        "input_image",
        "input_text",
    ]
    assert content[1]["image_url"].startswith("data:image/png;base64,")


def test_invoke_passes_reasoning_effort_when_set() -> None:
    responses = _FakeResponses()
    client = OpenAIRecipeClient(
        client=_FakeOpenAI(responses), model="o4-mini", reasoning_effort="low"
    )

    asyncio.run(client.invoke(_payload()))

    assert responses.last_payload["reasoning"] == {"effort": "low"}


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (openai.APITimeoutError(request=_REQUEST), "timed out"),
        (openai.APIConnectionError(request=_REQUEST), "unreachable"),
        (
            openai.AuthenticationError(
                "bad key sk-secret",
                response=httpx.Response(401, request=_REQUEST),
                body=None,
            ),
            "credentials",
        ),
        (
            openai.InternalServerError(
                "upstream exploded",
                response=httpx.Response(503, request=_REQUEST),
                body=None,
            ),
            "HTTP 503",
        ),
    ],
)
def test_invoke_wraps_backend_errors(error: Exception, expected: str) -> None:
    client = _client(_FakeResponses(error=error))

    with pytest.raises(UpstreamError) as exc_info:
        asyncio.run(client.invoke(_payload()))

    assert expected in exc_info.value.message
    assert "sk-secret" not in exc_info.value.message
    assert exc_info.value.__cause__ is None


def test_invoke_content_filter_is_upstream_error() -> None:
    responses = _FakeResponses(output_text="")
    responses.status = "incomplete"
    responses.incomplete_reason = "content_filter"

    with pytest.raises(UpstreamError) as exc_info:
        asyncio.run(_client(responses).invoke(_payload()))

    assert "content filtering" in exc_info.value.message


def test_invoke_empty_output_is_upstream_error() -> None:
    with pytest.raises(UpstreamError):
        asyncio.run(_client(_FakeResponses(output_text="")).invoke(_payload()))


def test_missing_api_key_fails_on_first_use() -> None:
    client = OpenAIRecipeClient.create(None, model="gpt-4o-mini", timeout_seconds=5)

    with pytest.raises(ConfigurationError):
        asyncio.run(client.invoke(_payload()))


def test_create_with_key_builds_async_client() -> None:
    client = OpenAIRecipeClient.create("sk-test", model="gpt-4o-mini", timeout_seconds=5)

    assert client.client is not None
    asyncio.run(client.client.close())
