"""Object key scheme for transient upload state.

Session metadata lives at ``{upload_id}.meta`` and chunks at
``{upload_id}.chunk.{index}``. Upload ids are 32 lowercase hex characters, so
the patterns below never match a key that was not produced here.
"""
import re
import uuid
from typing import Optional

UPLOAD_ID_PATTERN = r"[0-9a-f]{32}"

_UPLOAD_ID_RE = re.compile(rf"^{UPLOAD_ID_PATTERN}$")
_TRANSIENT_KEY_RE = re.compile(rf"^{UPLOAD_ID_PATTERN}\.(?:meta|chunk\.\d+)$")


def new_upload_id() -> str:
    """Return a fresh 128-bit random upload id."""
    return uuid.uuid4().hex


def is_valid_upload_id(upload_id: str) -> bool:
    return bool(upload_id) and _UPLOAD_ID_RE.match(upload_id) is not None


def meta_key(upload_id: str) -> str:
    return f"{upload_id}.meta"


def chunk_prefix(upload_id: str) -> str:
    return f"{upload_id}.chunk."


def chunk_key(upload_id: str, part_index: int) -> str:
    return f"{chunk_prefix(upload_id)}{part_index}"


def parse_chunk_index(upload_id: str, key: str) -> Optional[int]:
    """Return the part index encoded in ``key``, or None if it is not a chunk of ``upload_id``."""
    prefix = chunk_prefix(upload_id)
    if not key.startswith(prefix):
        return None
    suffix = key[len(prefix):]
    if not suffix.isdigit():
        return None
    return int(suffix)


def is_transient_key(key: str) -> bool:
    """True for chunk and session metadata keys."""
    return _TRANSIENT_KEY_RE.match(key) is not None
