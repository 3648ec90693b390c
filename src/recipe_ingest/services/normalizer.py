"""Decode incoming HTTP requests into canonical extraction requests."""

import base64
import binascii
import logging
from collections.abc import Awaitable, Callable

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException
from starlette.requests import Request

from recipe_ingest.domain.recipes import ExtractionRequest, ImageBlob
from recipe_ingest.errors import InputValidationError, ValidationReason

_logger = logging.getLogger(__name__)

_IMAGE_FIELDS = ("image", "images", "image[]")
_GENERIC_MIME_TYPES = {"", "application/octet-stream", "binary/octet-stream"}
# room for the text field, the data URI prefix and JSON punctuation
_BODY_OVERHEAD_BYTES = 256 * 1024


class _JsonBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    text: str | None = None
    image: str | None = None


class RequestNormalizer:
    """Turn multipart or JSON request bodies into an ``ExtractionRequest``."""

    def __init__(self, *, max_image_bytes: int, max_images: int = 10) -> None:
        self.max_image_bytes = max_image_bytes
        self.max_images = max_images
        self._decoders: dict[str, Callable[[Request], Awaitable[ExtractionRequest]]] = {
            "multipart/form-data": self._parse_form,
            "application/x-www-form-urlencoded": self._parse_form,
            "application/json": self._parse_json,
        }

    async def parse(self, request: Request) -> ExtractionRequest:
        """Decode the request body, rejecting empty or oversized input."""
        media_type = _media_type(request.headers.get("content-type"))
        if not media_type:
            media_type = "application/json"
        elif media_type.endswith("+json"):
            media_type = "application/json"
        decoder = self._decoders.get(media_type)
        if decoder is None:
            raise InputValidationError(
                ValidationReason.UNSUPPORTED_MEDIA_TYPE,
                "Send the recipe as multipart form data or JSON.",
                {"content_type": media_type},
            )

        extraction_request = await decoder(request)
        if extraction_request.is_empty:
            raise InputValidationError(
                ValidationReason.EMPTY_INPUT,
                "Please enter recipe text or choose a photo.",
            )
        _logger.info(
            "Normalized request: text_chars=%s images=%s",
            len(extraction_request.text),
            len(extraction_request.images),
        )
        return extraction_request

    async def _parse_form(self, request: Request) -> ExtractionRequest:
        self._check_content_length(
            request, self.max_images * self.max_image_bytes + _BODY_OVERHEAD_BYTES
        )
        try:
            form = await request.form(max_files=self.max_images)
        except (MultiPartException, HTTPException) as exc:
            raise InputValidationError(
                ValidationReason.MALFORMED_BODY,
                "The uploaded form could not be read.",
                {"error": str(exc)},
            ) from exc

        try:
            raw_text = form.get("text")
            text = raw_text.strip() if isinstance(raw_text, str) else ""
            uploads = [
                value
                for field_name in _IMAGE_FIELDS
                for value in form.getlist(field_name)
                if isinstance(value, UploadFile)
            ]
            images: list[ImageBlob] = []
            for upload in uploads:
                image = await self._read_upload(upload)
                if image is not None:
                    images.append(image)
        finally:
            await form.close()
        return ExtractionRequest(text=text, images=tuple(images))

    async def _read_upload(self, upload: UploadFile) -> ImageBlob | None:
        # size is known from the spooled part before it is read into memory
        if upload.size is not None:
            self._check_image_size(upload.size, upload.filename)
            if upload.size == 0:
                return None
        data = await upload.read()
        if not data:
            return None
        self._check_image_size(len(data), upload.filename)
        return ImageBlob(data=data, mime_type=_resolve_mime_type(upload.content_type, data))

    async def _parse_json(self, request: Request) -> ExtractionRequest:
        self._check_content_length(
            request, _base64_length(self.max_image_bytes) + _BODY_OVERHEAD_BYTES
        )
        body = await request.body()
        if not body.strip():
            return ExtractionRequest()
        try:
            payload = _JsonBody.model_validate_json(body)
        except PydanticValidationError as exc:
            raise InputValidationError(
                ValidationReason.MALFORMED_BODY,
                "The request body is not valid JSON.",
                {"errors": exc.error_count()},
            ) from exc

        text = (payload.text or "").strip()
        images: tuple[ImageBlob, ...] = ()
        if payload.image and payload.image.strip():
            images = (self._decode_base64_image(payload.image.strip()),)
        return ExtractionRequest(text=text, images=images)

    def _decode_base64_image(self, value: str) -> ImageBlob:
        declared_mime, encoded = _split_data_uri(value)
        encoded = "".join(encoded.split())
        self._check_image_size(_decoded_length(encoded), None)
        try:
            data = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise InputValidationError(
                ValidationReason.MALFORMED_BODY,
                "The image could not be decoded.",
            ) from exc
        self._check_image_size(len(data), None)
        return ImageBlob(data=data, mime_type=_resolve_mime_type(declared_mime, data))

    def _check_image_size(self, size: int, filename: str | None) -> None:
        if size > self.max_image_bytes:
            limit_mb = self.max_image_bytes / (1024 * 1024)
            raise InputValidationError(
                ValidationReason.PAYLOAD_TOO_LARGE,
                f"Image is too large. Please use images under {limit_mb:g} MB.",
                {
                    "size_bytes": size,
                    "max_bytes": self.max_image_bytes,
                    "filename": filename,
                },
            )

    def _check_content_length(self, request: Request, ceiling: int) -> None:
        raw = request.headers.get("content-length")
        if raw is None or not raw.isdigit():
            return
        if int(raw) > ceiling:
            limit_mb = self.max_image_bytes / (1024 * 1024)
            raise InputValidationError(
                ValidationReason.PAYLOAD_TOO_LARGE,
                f"Request is too large. Please use images under {limit_mb:g} MB.",
                {"content_length": int(raw), "max_bytes": ceiling},
            )


def sniff_image_type(data: bytes) -> str:
    """Infer an image MIME type from file signatures, defaulting to JPEG."""
    if data.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    if data[:6] in {b"GIF87a", b"GIF89a"}:
        return "image/gif"
    if data[4:8] == b"ftyp" and data[8:12] in {b"heic", b"heix", b"mif1", b"msf1"}:
        return "image/heic"
    return "image/jpeg"


def _resolve_mime_type(declared: str | None, data: bytes) -> str:
    mime_type = _media_type(declared)
    if mime_type in _GENERIC_MIME_TYPES:
        return sniff_image_type(data)
    return mime_type


def _split_data_uri(value: str) -> tuple[str | None, str]:
    """Split ``data:<mime>;base64,<payload>`` into mime type and payload."""
    if not value.startswith("data:"):
        return None, value
    header, separator, payload = value.partition(",")
    if not separator or ";base64" not in header:
        raise InputValidationError(
            ValidationReason.MALFORMED_BODY,
            "The image must be base64 encoded.",
        )
    mime_type = header[len("data:") :].split(";", maxsplit=1)[0]
    return mime_type or None, payload


def _media_type(content_type: str | None) -> str:
    if not content_type:
        return ""
    return content_type.split(";", maxsplit=1)[0].strip().lower()


def _base64_length(size: int) -> int:
    return 4 * ((size + 2) // 3)


def _decoded_length(encoded: str) -> int:
    padding = len(encoded) - len(encoded.rstrip("="))
    return max(0, len(encoded) * 3 // 4 - padding)
