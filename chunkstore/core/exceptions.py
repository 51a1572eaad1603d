"""Centralized exception definitions and error taxonomy."""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Describes severity for surfaced errors."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Categorization used for error routing and HTTP status mapping."""
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    STORAGE = "storage"
    SYSTEM = "system"


class ChunkStoreException(Exception):
    """Base exception type for the application."""

    def __init__(
        self,
        message: str,
        error_code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        self.message = message
        self.error_code = error_code
        self.category = category
        self.severity = severity
        self.details = details or {}
        self.original_error = original_error
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception metadata into a dict."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "details": self.details,
            "type": self.__class__.__name__
        }


# Request validation
class InvalidRequestException(ChunkStoreException):
    """Raised for malformed caller input. No state is created."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        validation_details = details or {}
        if field:
            validation_details["field"] = field
        super().__init__(
            message=message,
            error_code="INVALID_REQUEST",
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.LOW,
            details=validation_details
        )


# Upload lifecycle
class SessionNotFoundException(ChunkStoreException):
    """Raised when an upload id is unknown, expired or already completed."""

    def __init__(self, upload_id: str):
        super().__init__(
            message=f"Upload session not found: {upload_id}",
            error_code="SESSION_NOT_FOUND",
            category=ErrorCategory.NOT_FOUND,
            severity=ErrorSeverity.MEDIUM,
            details={"upload_id": upload_id}
        )


class MissingChunkException(ChunkStoreException):
    """Raised when completion is attempted before every chunk has arrived."""

    def __init__(self, upload_id: str, chunk_index: int, chunk_count: int):
        self.chunk_index = chunk_index
        super().__init__(
            message=f"Chunk {chunk_index} of {chunk_count} has not been uploaded",
            error_code="MISSING_CHUNK",
            category=ErrorCategory.CONFLICT,
            severity=ErrorSeverity.MEDIUM,
            details={
                "upload_id": upload_id,
                "chunk_index": chunk_index,
                "chunk_count": chunk_count,
            }
        )


class ReassemblyFailedException(ChunkStoreException):
    """Raised when the store fails while the final object is being built."""

    def __init__(
        self,
        message: str,
        upload_id: str,
        strategy: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        reassembly_details = details or {}
        reassembly_details["upload_id"] = upload_id
        if strategy:
            reassembly_details["strategy"] = strategy
        super().__init__(
            message=message,
            error_code="REASSEMBLY_FAILED",
            category=ErrorCategory.STORAGE,
            severity=ErrorSeverity.HIGH,
            details=reassembly_details,
            original_error=original_error
        )


class CleanupFailedException(ChunkStoreException):
    """Recorded when transient objects could not be deleted. Never fatal."""

    def __init__(self, upload_id: str, failed_keys: Dict[str, str]):
        super().__init__(
            message=f"Failed to delete {len(failed_keys)} transient object(s) for {upload_id}",
            error_code="CLEANUP_FAILED",
            category=ErrorCategory.STORAGE,
            severity=ErrorSeverity.LOW,
            details={"upload_id": upload_id, "failed_keys": failed_keys}
        )


# Storage exceptions
class StorageException(ChunkStoreException):
    """Raised for object store failures."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        key: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        storage_details = details or {}
        if operation:
            storage_details["operation"] = operation
        if key:
            storage_details["key"] = key
        super().__init__(
            message=message,
            error_code="STORAGE_ERROR",
            category=ErrorCategory.STORAGE,
            severity=ErrorSeverity.HIGH,
            details=storage_details,
            original_error=original_error
        )


class FileNotFoundException(ChunkStoreException):
    """Raised when a completed file cannot be located."""

    def __init__(self, filename: str):
        super().__init__(
            message=f"File not found: {filename}",
            error_code="FILE_NOT_FOUND",
            category=ErrorCategory.NOT_FOUND,
            severity=ErrorSeverity.LOW,
            details={"filename": filename}
        )


# System exceptions
class ConfigurationException(ChunkStoreException):
    """Raised for configuration/initialization failures."""

    def __init__(self, message: str, config_key: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        config_details = details or {}
        if config_key:
            config_details["config_key"] = config_key
        super().__init__(
            message=message,
            error_code="CONFIG_ERROR",
            category=ErrorCategory.SYSTEM,
            severity=ErrorSeverity.CRITICAL,
            details=config_details
        )
