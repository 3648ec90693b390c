"""OpenAI Responses API gateway for ingredient extraction."""

import base64
import logging
from dataclasses import dataclass

import openai
from openai import AsyncOpenAI

from recipe_ingest.domain.recipes import ImagePart, PromptPart, PromptPayload
from recipe_ingest.errors import ConfigurationError, UpstreamError
from recipe_ingest.services.gateway import ModelGateway

_logger = logging.getLogger(__name__)


@dataclass
class OpenAIRecipeClient(ModelGateway):
    """Model gateway backed by the OpenAI Responses API."""

    client: AsyncOpenAI | None
    model: str
    reasoning_effort: str | None = None
    store: bool = False

    @classmethod
    def create(  # noqa: PLR0913
        cls,
        api_key: str | None,
        *,
        model: str,
        timeout_seconds: float,
        reasoning_effort: str | None = None,
        store: bool = False,
    ) -> "OpenAIRecipeClient":
        """Create a gateway; a missing key is reported on first use."""
        client = (
            AsyncOpenAI(api_key=api_key, timeout=timeout_seconds, max_retries=0)
            if api_key
            else None
        )
        return cls(
            client=client,
            model=model,
            reasoning_effort=reasoning_effort,
            store=store,
        )

    async def invoke(self, payload: PromptPayload) -> str:
        """Call the Responses API with all prompt parts in one user turn."""
        if self.client is None:
            raise ConfigurationError("OPENAI_API_KEY is not configured")

        request_payload: dict[str, object] = {
            "model": self.model,
            "input": [
                {
                    "role": "user",
                    "content": [_to_content(part) for part in payload.parts],
                }
            ],
            "store": self.store,
        }
        if self.reasoning_effort:
            request_payload["reasoning"] = {"effort": self.reasoning_effort}

        try:
            response = await self.client.responses.create(**request_payload)
        except openai.OpenAIError as exc:
            _logger.warning(
                "OpenAI request failed: %s: %s", type(exc).__name__, exc
            )
            raise UpstreamError(_describe_failure(exc)) from None

        status = getattr(response, "status", None)
        if status == "incomplete":
            details = getattr(response, "incomplete_details", None)
            reason = getattr(details, "reason", None) or "unknown"
            _logger.warning("OpenAI response incomplete: reason=%s", reason)
            if reason == "content_filter":
                raise UpstreamError("The request was rejected by content filtering")
            raise UpstreamError(f"The model response was incomplete ({reason})")

        output_text = response.output_text
        if not output_text:
            raise UpstreamError("The model returned an empty response")
        return output_text


def _to_content(part: PromptPart) -> dict[str, str]:
    if isinstance(part, ImagePart):
        return {
            "type": "input_image",
            "image_url": _to_data_url(part.data, part.mime_type),
        }
    return {"type": "input_text", "text": part.text}


def _to_data_url(data: bytes, mime_type: str) -> str:
    """Convert bytes to a base64 data URL for image input."""
    encoded = base64.b64encode(data).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def _describe_failure(exc: openai.OpenAIError) -> str:
    """Return a short description without echoing the backend message."""
    if isinstance(exc, openai.APITimeoutError):
        return "The model backend timed out"
    if isinstance(exc, openai.APIConnectionError):
        return "The model backend is unreachable"
    if isinstance(exc, openai.AuthenticationError | openai.PermissionDeniedError):
        return "The model backend rejected the credentials"
    if isinstance(exc, openai.RateLimitError):
        return "The model backend is over capacity"
    if isinstance(exc, openai.APIStatusError):
        return f"The model backend returned HTTP {exc.status_code}"
    return "The model backend request failed"
