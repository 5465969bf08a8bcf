from __future__ import annotations

import io
from pathlib import Path

from PIL import Image

from classroom.helpers.logging_helper import log_module_import

log_module_import(__name__)


ALLOWED_EXTENSIONS: set[str] = {".png", ".jpg", ".jpeg", ".webp", ".gif", ".bmp"}


class DecodeError(ValueError):
    """Image bytes could not be decoded."""


def is_allowed_extension(filename: str | None) -> bool:
    if not filename:
        return False
    return Path(filename).suffix.lower() in ALLOWED_EXTENSIONS


def read_upload(file_storage) -> bytes:
    """Return the raw bytes of an uploaded image after validating its name."""

    if file_storage is None or not getattr(file_storage, "filename", None):
        raise ValueError("No file provided")

    if not is_allowed_extension(file_storage.filename):
        raise ValueError("Unsupported image format")

    stream = file_storage.stream
    if hasattr(stream, "seek"):
        stream.seek(0)
    return stream.read()


def decode_image(data: bytes | None) -> Image.Image:
    """Decode ``data`` fully into an RGBA image or raise DecodeError."""

    if not data:
        raise DecodeError("Image data is empty")
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            decoded = img.convert("RGBA")
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        raise DecodeError(f"Unable to decode image: {exc}") from exc
    if decoded.width <= 0 or decoded.height <= 0:
        raise DecodeError("Image has no pixels")
    return decoded
