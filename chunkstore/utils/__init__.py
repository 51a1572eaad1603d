"""Utility modules - provide common utility functions and classes."""
from chunkstore.utils.file_utils import guess_content_type, is_valid_filename, validate_filename
from chunkstore.utils.keys import (
    chunk_key,
    chunk_prefix,
    is_transient_key,
    is_valid_upload_id,
    meta_key,
    new_upload_id,
    parse_chunk_index,
)
from chunkstore.utils.logger import get_logger, setup_logger

__all__ = [
    "is_valid_filename",
    "validate_filename",
    "guess_content_type",
    "new_upload_id",
    "is_valid_upload_id",
    "meta_key",
    "chunk_prefix",
    "chunk_key",
    "parse_chunk_index",
    "is_transient_key",
    "setup_logger",
    "get_logger"
]
