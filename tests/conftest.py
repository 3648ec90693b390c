"""Shared test fixtures."""

from dataclasses import dataclass, field

import httpx
import pytest
from starlette.requests import Request

from recipe_ingest.config import Settings
from recipe_ingest.containers import AppContainer
from recipe_ingest.domain.recipes import PromptPayload
from recipe_ingest.services.extraction import ResponseExtractor
from recipe_ingest.services.gateway import ModelGateway
from recipe_ingest.services.ingestion import IngestionService
from recipe_ingest.services.normalizer import RequestNormalizer
from recipe_ingest.services.prompts import PromptAssembler
from recipe_ingest.services.rate_limit import SlidingWindowRateLimiter

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 32


@dataclass
class FakeModelGateway(ModelGateway):
    """Fake gateway returning canned output and recording prompts."""

    output: str = '[{"name": "bread flour", "weight": 500}, {"name": "water", "weight": 350}]'
    error: Exception | None = None
    calls: list[PromptPayload] = field(default_factory=list)

    async def invoke(self, payload: PromptPayload) -> str:
        self.calls.append(payload)
        if self.error is not None:
            raise self.error
        return self.output


@dataclass
class FakeClock:
    """Manually advanced monotonic clock."""

    now: float = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_request(body: bytes, content_type: str | None) -> Request:
    """Build a Starlette request with a fixed body."""
    headers = [(b"content-length", str(len(body)).encode())]
    if content_type is not None:
        headers.append((b"content-type", content_type.encode()))
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/api/analyze",
        "query_string": b"",
        "headers": headers,
    }
    messages = [{"type": "http.request", "body": body, "more_body": False}]

    async def receive() -> dict[str, object]:
        if messages:
            return messages.pop(0)
        return {"type": "http.disconnect"}

    return Request(scope, receive)


def make_multipart(
    data: dict[str, str] | None = None,
    files: list[tuple[str, tuple[str, bytes, str]]] | None = None,
) -> tuple[bytes, str]:
    """Encode a multipart body with httpx and return it with its content type."""
    request = httpx.Request(
        "POST", "http://testserver/api/analyze", data=data, files=files
    )
    return request.read(), request.headers["content-type"]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        openai_api_key="openai-key",
        environment="local",
        max_image_bytes=1024,
        rate_limit_per_client=5,
        rate_limit_global=100,
    )


@pytest.fixture
def gateway() -> FakeModelGateway:
    return FakeModelGateway()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def container(
    settings: Settings, gateway: FakeModelGateway, clock: FakeClock
) -> AppContainer:
    rate_limiter = SlidingWindowRateLimiter(
        per_client_limit=settings.rate_limit_per_client,
        global_limit=settings.rate_limit_global,
        window_seconds=settings.rate_limit_window_seconds,
        clock=clock,
    )
    normalizer = RequestNormalizer(
        max_image_bytes=settings.max_image_bytes,
        max_images=settings.max_images,
    )
    ingestion_service = IngestionService(
        assembler=PromptAssembler(weight_policy=settings.missing_weight_policy),
        gateway=gateway,
        extractor=ResponseExtractor(weight_policy=settings.missing_weight_policy),
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        rate_limiter=rate_limiter,
        normalizer=normalizer,
        gateway=gateway,
        ingestion_service=ingestion_service,
        close_resources=close_resources,
    )
