"""Recipe ingestion pipeline: prompt, backend call, extraction."""

import logging
import time
from dataclasses import dataclass

from recipe_ingest.domain.recipes import ExtractionRequest, Ingredient
from recipe_ingest.services.extraction import ResponseExtractor
from recipe_ingest.services.gateway import ModelGateway
from recipe_ingest.services.prompts import PromptAssembler

_logger = logging.getLogger(__name__)


@dataclass
class IngestionService:
    """Runs a normalized request through the backend and parses the result."""

    assembler: PromptAssembler
    gateway: ModelGateway
    extractor: ResponseExtractor

    async def extract(self, request: ExtractionRequest) -> list[Ingredient]:
        """Return the ingredients found in the request's text and images."""
        payload = self.assembler.build(request)
        started = time.perf_counter()
        raw_output = await self.gateway.invoke(payload)
        elapsed = time.perf_counter() - started
        ingredients = self.extractor.extract(raw_output)
        _logger.info(
            "Extracted ingredients: count=%s images=%s backend_seconds=%.2f",
            len(ingredients),
            payload.image_count,
            elapsed,
        )
        return ingredients
