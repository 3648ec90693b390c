"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from recipe_ingest.adapters.openai_recipe_client import OpenAIRecipeClient
from recipe_ingest.config import Settings
from recipe_ingest.services.extraction import ResponseExtractor
from recipe_ingest.services.gateway import ModelGateway
from recipe_ingest.services.ingestion import IngestionService
from recipe_ingest.services.normalizer import RequestNormalizer
from recipe_ingest.services.prompts import PromptAssembler
from recipe_ingest.services.rate_limit import RateLimiter, SlidingWindowRateLimiter


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    rate_limiter: RateLimiter
    normalizer: RequestNormalizer
    gateway: ModelGateway
    ingestion_service: IngestionService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    rate_limiter = SlidingWindowRateLimiter(
        per_client_limit=resolved_settings.rate_limit_per_client,
        global_limit=resolved_settings.rate_limit_global,
        window_seconds=resolved_settings.rate_limit_window_seconds,
    )
    normalizer = RequestNormalizer(
        max_image_bytes=resolved_settings.max_image_bytes,
        max_images=resolved_settings.max_images,
    )
    gateway = OpenAIRecipeClient.create(
        resolved_settings.openai_api_key,
        model=resolved_settings.openai_model,
        timeout_seconds=resolved_settings.openai_timeout_seconds,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
        store=resolved_settings.openai_store,
    )
    ingestion_service = IngestionService(
        assembler=PromptAssembler(
            weight_policy=resolved_settings.missing_weight_policy
        ),
        gateway=gateway,
        extractor=ResponseExtractor(
            weight_policy=resolved_settings.missing_weight_policy
        ),
    )

    async def close_resources() -> None:
        if gateway.client is not None:
            await gateway.client.close()

    return AppContainer(
        settings=resolved_settings,
        rate_limiter=rate_limiter,
        normalizer=normalizer,
        gateway=gateway,
        ingestion_service=ingestion_service,
        close_resources=close_resources,
    )
