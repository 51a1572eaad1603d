"""Filename and content-type helpers."""
import mimetypes
from typing import Optional

from chunkstore.core.exceptions import InvalidRequestException
from chunkstore.utils.keys import is_transient_key

# S3 object keys are limited to 1024 bytes of UTF-8
MAX_KEY_BYTES = 1024


def is_valid_filename(filename: Optional[str]) -> bool:
    """Check whether ``filename`` can be used as the key of a final object."""
    if not filename or not filename.strip():
        return False
    if len(filename.encode("utf-8")) > MAX_KEY_BYTES:
        return False
    if filename.startswith("/") or "\\" in filename:
        return False
    if any(ord(char) < 32 or ord(char) == 127 for char in filename):
        return False
    if any(segment in (".", "..") for segment in filename.split("/")):
        return False
    return not is_transient_key(filename)


def validate_filename(filename: Optional[str]) -> str:
    """Return ``filename`` unchanged or raise InvalidRequestException."""
    if filename is None or not filename.strip():
        raise InvalidRequestException("Filename is required", field="filename")
    if is_transient_key(filename):
        raise InvalidRequestException(
            "Filename collides with a reserved upload key",
            field="filename",
            details={"filename": filename}
        )
    if not is_valid_filename(filename):
        raise InvalidRequestException(
            f"Invalid filename: {filename!r}",
            field="filename",
            details={"filename": filename}
        )
    return filename


def guess_content_type(filename: str, fallback: str = "application/octet-stream") -> str:
    ctype, _ = mimetypes.guess_type(filename)
    return ctype or fallback
