"""Upload checks that run before any byte reaches storage."""

from __future__ import annotations

import io
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from medcontract.common.enums import ImageOrientation
from medcontract.common.logging import get_logger

logger = get_logger("documents.validation")

IMAGE_TYPES = {
    ".jpeg": {"image/jpeg", "image/jpg"},
    ".jpg": {"image/jpeg", "image/jpg"},
    ".png": {"image/png"},
    ".gif": {"image/gif"},
}
OFFICE_TYPES = {
    ".pdf": {"application/pdf"},
    ".doc": {"application/msword"},
    ".docx": {"application/vnd.openxmlformats-officedocument.wordprocessingml.document"},
}
ALLOWED_TYPES: dict[str, set[str]] = {**IMAGE_TYPES, **OFFICE_TYPES}
ALLOWED_EXTENSIONS = frozenset(ALLOWED_TYPES)
ALLOWED_CONTENT_TYPES = frozenset(ct for types in ALLOWED_TYPES.values() for ct in types)

# Matches Document.original_name
MAX_FILENAME_LENGTH = 255


def file_type_errors(filename: str, content_type: str | None) -> list[str]:
    """Both the extension and the declared content type must be allowed."""
    errors = []
    ext = Path(filename).suffix.lower()
    ctype = (content_type or "").split(";")[0].strip().lower()

    if ext not in ALLOWED_EXTENSIONS:
        errors.append(f"File extension '{ext or filename}' is not allowed")
    if ctype not in ALLOWED_CONTENT_TYPES:
        errors.append(f"File type '{ctype or 'unknown'}' is not allowed")
    elif ext in ALLOWED_TYPES and ctype not in ALLOWED_TYPES[ext]:
        errors.append(f"File type '{ctype}' does not match extension '{ext}'")
    return errors


def file_size_error(size: int, max_size: int) -> str | None:
    if size == 0:
        return "File is empty"
    if size > max_size:
        return f"File exceeds max size of {max_size // (1024 * 1024)} MB"
    return None


def is_image(content_type: str) -> bool:
    return content_type.lower().startswith("image/")


def read_image_metadata(content: bytes) -> dict | None:
    """Width, height and orientation of an image, or None if it cannot be read."""
    try:
        with Image.open(io.BytesIO(content)) as img:
            width, height = img.size
    except (UnidentifiedImageError, OSError) as exc:
        logger.debug("Could not read image metadata: %s", exc)
        return None

    if width > height:
        orientation = ImageOrientation.LANDSCAPE
    elif height > width:
        orientation = ImageOrientation.PORTRAIT
    else:
        orientation = ImageOrientation.SQUARE
    return {"width": width, "height": height, "orientation": orientation.value}
