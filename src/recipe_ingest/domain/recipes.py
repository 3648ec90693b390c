"""Domain models for recipe ingestion."""

from dataclasses import dataclass, field

from pydantic import BaseModel

UNKNOWN_INGREDIENT = "unknown ingredient"


@dataclass(frozen=True)
class ImageBlob:
    """Single uploaded image."""

    data: bytes = field(repr=False)
    mime_type: str

    @property
    def size_bytes(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class ExtractionRequest:
    """Canonical request: free text plus zero or more images, in upload order."""

    text: str = ""
    images: tuple[ImageBlob, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.text.strip() and not self.images


@dataclass(frozen=True)
class TextPart:
    """Plain text segment of a prompt."""

    text: str


@dataclass(frozen=True)
class ImagePart:
    """Inlined image segment of a prompt."""

    data: bytes = field(repr=False)
    mime_type: str


PromptPart = TextPart | ImagePart


@dataclass(frozen=True)
class PromptPayload:
    """Ordered prompt parts sent to the generative backend."""

    parts: tuple[PromptPart, ...]

    @property
    def image_count(self) -> int:
        return sum(1 for part in self.parts if isinstance(part, ImagePart))


class Ingredient(BaseModel):
    """Ingredient name with its weight in grams."""

    name: str
    weight: float | None
