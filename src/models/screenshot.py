"""Screenshot image handle for the extraction pipeline.

A ``ScreenshotImage`` is what the caller hands to the pipeline.  It may
carry raw bytes (an upload, a file on disk, a decoded data URI) or only a
remote URL.  Providers inspect it and fail with a format error when they
cannot consume what they were given, e.g. local Tesseract handed a URL.

The raw bytes live in a private attribute so ``model_dump()`` stays small
and never serializes image payloads into logs or API responses.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import re
from datetime import datetime, timezone
from pathlib import Path
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from src.utils.errors import ImageFormatError

_DATA_URI = re.compile(r"^data:(?P<media>image/[\w.+-]+)?(?P<params>(;[\w=.+-]+)*?)(?P<b64>;base64)?,(?P<data>.*)$", re.DOTALL)

_EXTENSION_MEDIA_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".gif": "image/gif",
    ".bmp": "image/bmp",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
}


def detect_media_type(image_bytes: bytes) -> str | None:
    """Detect the MIME type of an image from its magic bytes.

    Returns ``None`` when the signature is not a recognised image format.
    """
    if image_bytes[:8] == b"\x89PNG\r\n\x1a\n":
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    if image_bytes[:3] == b"\xff\xd8\xff":
        return "image/jpeg"
    if image_bytes[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    if image_bytes[:2] == b"BM":
        return "image/bmp"
    if image_bytes[:4] in (b"II*\x00", b"MM\x00*"):
        return "image/tiff"
    return None


class ImageDescriptor(BaseModel):
    """Metadata about an input image, used when no text could be read."""

    model_config = ConfigDict(frozen=True)

    filename: str | None = None
    content_type: str | None = None
    file_size: int | None = None
    source_url: str | None = None

    @property
    def size_kb(self) -> int | None:
        if self.file_size is None:
            return None
        return round(self.file_size / 1024)


class ScreenshotImage(BaseModel):
    """A chat screenshot submitted for text extraction."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    filename: str | None = None
    # Declared or sniffed MIME type; None when neither is available.
    content_type: str | None = None
    file_size: int | None = Field(default=None, ge=0)
    # SHA-256 of the raw bytes; None for URL-only handles.
    image_hash: str | None = None
    # Remote location for URL-only handles.
    source_url: str | None = None
    received_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )
    _image_data: bytes | None = PrivateAttr(default=None)

    @property
    def image_data(self) -> bytes | None:
        """Raw image bytes, or ``None`` for a URL-only handle."""
        return self._image_data

    @property
    def has_bytes(self) -> bool:
        return bool(self._image_data)

    def require_bytes(self, provider_name: str) -> bytes:
        """Return the raw bytes or raise a format error naming *provider_name*."""
        if not self._image_data:
            raise ImageFormatError(
                "Provider needs raw image bytes but was given a URL-only or unreadable handle",
                provider_name=provider_name,
            )
        return self._image_data

    def describe(self) -> ImageDescriptor:
        return ImageDescriptor(
            filename=self.filename,
            content_type=self.content_type,
            file_size=self.file_size,
            source_url=self.source_url,
        )

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_bytes(
        cls,
        data: bytes,
        *,
        filename: str | None = None,
        content_type: str | None = None,
    ) -> ScreenshotImage:
        """Wrap raw image bytes, sniffing the media type when not declared."""
        if not data:
            raise ImageFormatError("Image data is empty")
        image = cls(
            filename=filename,
            content_type=content_type or detect_media_type(data),
            file_size=len(data),
            image_hash=hashlib.sha256(data).hexdigest(),
        )
        image.__pydantic_private__["_image_data"] = data
        return image

    @classmethod
    def from_path(cls, path: str | Path) -> ScreenshotImage:
        """Read an image file from disk."""
        file_path = Path(path)
        try:
            data = file_path.read_bytes()
        except OSError as exc:
            raise ImageFormatError(f"Cannot read image file {file_path}: {exc}") from exc
        declared = _EXTENSION_MEDIA_TYPES.get(file_path.suffix.lower())
        return cls.from_bytes(
            data,
            filename=file_path.name,
            content_type=detect_media_type(data) or declared,
        )

    @classmethod
    def from_data_uri(cls, uri: str, *, filename: str | None = None) -> ScreenshotImage:
        """Decode a base64 ``data:image/...`` URI."""
        match = _DATA_URI.match(uri.strip()) if isinstance(uri, str) else None
        if match is None or not match.group("media"):
            raise ImageFormatError("Unsupported image format: expected a data:image/... URI")
        if not match.group("b64"):
            raise ImageFormatError("Unsupported image format: data URI is not base64-encoded")
        try:
            data = base64.b64decode(match.group("data"), validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ImageFormatError(f"Invalid base64 payload in data URI: {exc}") from exc
        return cls.from_bytes(data, filename=filename, content_type=match.group("media"))

    @classmethod
    def from_url(cls, url: str, *, content_type: str | None = None) -> ScreenshotImage:
        """Create a URL-only handle; only remote providers can consume it."""
        if not url.startswith(("http://", "https://")):
            raise ImageFormatError(f"Unsupported image URL scheme: {url[:32]}")
        filename = url.rsplit("/", 1)[-1].split("?", 1)[0] or None
        return cls(filename=filename, content_type=content_type, source_url=url)

    @classmethod
    def coerce(cls, source: ScreenshotImage | bytes | str | Path) -> ScreenshotImage:
        """Build a handle from whatever the caller passed in.

        Strings are interpreted as a data URI, an http(s) URL, or a file
        path, in that order.
        """
        if isinstance(source, ScreenshotImage):
            return source
        if isinstance(source, (bytes, bytearray)):
            return cls.from_bytes(bytes(source))
        if isinstance(source, Path):
            return cls.from_path(source)
        if isinstance(source, str):
            if source.startswith("data:"):
                return cls.from_data_uri(source)
            if source.startswith(("http://", "https://")):
                return cls.from_url(source)
            return cls.from_path(source)
        raise ImageFormatError(f"Unsupported image handle type: {type(source).__name__}")

    @classmethod
    def unreadable(cls, source: object) -> ScreenshotImage:
        """Metadata-only handle for input that :meth:`coerce` rejected.

        Carries whatever can be salvaged (declared media type of a data
        URI, file name of a path) and neither bytes nor URL, so every
        provider records a format failure and the pipeline falls back.
        """
        filename: str | None = None
        content_type: str | None = None
        if isinstance(source, Path):
            filename = source.name or None
        elif isinstance(source, str):
            if source.startswith("data:"):
                match = _DATA_URI.match(source.strip())
                content_type = match.group("media") if match else None
            else:
                filename = source.rsplit("/", 1)[-1].split("?", 1)[0] or None
        if filename is not None:
            content_type = _EXTENSION_MEDIA_TYPES.get(Path(filename).suffix.lower())
        return cls(filename=filename, content_type=content_type)
