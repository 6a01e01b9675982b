"""
Base image ingestion for nanobanana.

Validates a user-selected file (size, then type) and turns it into an
UploadedImage: the media type plus a base64 payload, usable both as a data URL
for previews and as inline data for the Gemini request.
"""

import base64
import binascii
import io
import time
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from nanobanana.core.config import Config, get_config
from nanobanana.logging_config import get_logger
from nanobanana.utils.exceptions import (
    ImageReadError,
    SizeLimitExceededError,
    ValidationError,
)

logger = get_logger(__name__)

ACCEPTED_MIME_TYPES = ("image/jpeg", "image/png")
DEFAULT_DATA_URL_MIME = "image/jpeg"

_FORMAT_TO_MIME = {
    "JPEG": "image/jpeg",
    "JPG": "image/jpeg",
    "PNG": "image/png",
    # Multi-picture JPEG (camera and phone output)
    "MPO": "image/jpeg",
}


@dataclass(frozen=True)
class UploadedImage:
    """An image embedded inline: media type plus standard base64 payload."""

    mime_type: str
    data: str

    @property
    def data_url(self) -> str:
        """The image as a data URL (data:<mime>;base64,<data>)."""
        return f"data:{self.mime_type};base64,{self.data}"

    @property
    def raw_bytes(self) -> bytes:
        """Decoded image bytes."""
        return base64.b64decode(self.data)

    @property
    def extension(self) -> str:
        """File extension matching the media type (e.g. 'png', 'jpg')."""
        subtype = self.mime_type.split("/", 1)[-1].lower()
        return "jpg" if subtype == "jpeg" else subtype or "png"

    def to_pil(self) -> Image.Image:
        """Decode into a PIL Image (fully loaded, detached from the buffer)."""
        try:
            return Image.open(io.BytesIO(self.raw_bytes)).copy()
        except (
            UnidentifiedImageError,
            Image.DecompressionBombError,
            OSError,
            binascii.Error,
        ) as e:
            raise ImageReadError(f"Failed to decode image: {e}") from e

    @classmethod
    def from_data_url(cls, data_url: str) -> "UploadedImage":
        """
        Split a data URL into media type and payload.

        The media type is read between ':' and ';'; a header without one
        falls back to image/jpeg.

        Raises:
            ValidationError: If the string has no payload part
        """
        header, sep, payload = data_url.strip().partition(",")
        if not sep or not payload:
            raise ValidationError("Error processing image data.", field="image")
        mime_type = DEFAULT_DATA_URL_MIME
        if ":" in header and ";" in header:
            candidate = header.split(":", 1)[1].split(";", 1)[0].strip()
            if candidate:
                mime_type = candidate.lower()
        return cls(mime_type=mime_type, data=payload)

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: str) -> "UploadedImage":
        """Build from raw bytes and a media type."""
        return cls(mime_type=mime_type, data=base64.b64encode(data).decode("ascii"))


def _size_error(size: int, limit: int) -> SizeLimitExceededError:
    limit_mb = limit / (1024 * 1024)
    return SizeLimitExceededError(
        f"Image size exceeds {limit_mb:g}MB limit!", size=size, limit=limit
    )


def _read_source(source: str | Path | bytes, limit: int) -> tuple[bytes, str]:
    """
    Check the size of source, then read it fully.

    Returns:
        (raw bytes, path string or "" for in-memory sources)
    """
    if isinstance(source, bytes):
        if len(source) > limit:
            raise _size_error(len(source), limit)
        return source, ""

    path = Path(source)
    try:
        size = path.stat().st_size
    except FileNotFoundError as e:
        raise ImageReadError(f"Image file not found: {path}", image_path=str(path)) from e
    except OSError as e:
        raise ImageReadError(f"Error reading file: {e}", image_path=str(path)) from e
    if size > limit:
        raise _size_error(size, limit)

    try:
        return path.read_bytes(), str(path)
    except OSError as e:
        raise ImageReadError(f"Error reading file: {e}", image_path=str(path)) from e


def _detect_mime(data: bytes, image_path: str) -> str:
    """
    Identify and verify the image with Pillow; return its media type.

    Raises:
        ValidationError: If the data is not a JPEG or PNG image, or its
            declared dimensions exceed Pillow's decompression bomb limit
        ImageReadError: If the image is recognised but corrupt
    """
    try:
        with Image.open(io.BytesIO(data)) as image:
            fmt = (image.format or "").upper()
            image.verify()
    except UnidentifiedImageError as e:
        raise ValidationError(
            "Unsupported image format. Please upload a JPG or PNG image.",
            field="image_format",
        ) from e
    except Image.DecompressionBombError as e:
        raise ValidationError(
            "Image dimensions are too large. Please upload a smaller photo.",
            field="image",
        ) from e
    except (OSError, SyntaxError, ValueError) as e:
        raise ImageReadError(f"Error reading file: {e}", image_path=image_path) from e

    mime_type = _FORMAT_TO_MIME.get(fmt)
    if mime_type not in ACCEPTED_MIME_TYPES:
        raise ValidationError(
            f"Unsupported image format: {fmt or 'unknown'}. Please upload a JPG or PNG image.",
            field="image_format",
        )
    return mime_type


def ingest(source: str | Path | bytes, *, config: Config | None = None) -> UploadedImage:
    """
    Validate a base image and convert it to an embedded representation.

    This function:
    1. Rejects sources larger than config.max_upload_bytes (checked before reading paths)
    2. Reads the file fully
    3. Checks with Pillow that it is a decodable JPEG or PNG
    4. Base64-encodes it

    Args:
        source: Path to the image, raw image bytes, or a data URL
        config: Optional config for the size limit; if None, uses get_config()

    Returns:
        UploadedImage with media type and base64 payload

    Raises:
        SizeLimitExceededError: If the file is larger than the upload limit
        ValidationError: If the file is not a JPEG or PNG image
        ImageReadError: If the file cannot be read or decoded
    """
    cfg = config or get_config()
    limit = cfg.max_upload_bytes
    start_time = time.time()

    if isinstance(source, str) and source.strip().startswith("data:"):
        embedded = UploadedImage.from_data_url(source)
        try:
            source = base64.b64decode(embedded.data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ImageReadError(f"Invalid base64 in data URL: {e}") from e

    data, image_path = _read_source(source, limit)
    if not data:
        raise ImageReadError("Image data is empty", image_path=image_path)

    mime_type = _detect_mime(data, image_path)

    image = UploadedImage.from_bytes(data, mime_type)
    logger.info(
        "Ingested image mime=%s size=%d bytes in %.2fs",
        mime_type,
        len(data),
        time.time() - start_time,
    )
    return image
