"""Generative backend capability."""

from typing import Protocol

from recipe_ingest.domain.recipes import PromptPayload


class ModelGateway(Protocol):
    """Single-call interface to the generative backend.

    Implementations raise ``UpstreamError`` for any backend failure and
    ``ConfigurationError`` when credentials are missing. No retries happen here.
    """

    async def invoke(self, payload: PromptPayload) -> str:
        """Send the prompt and return the raw text output."""
