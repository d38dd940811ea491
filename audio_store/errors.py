"""Audio Store - Error taxonomy.

Every failure raised by the ingestion pipeline, the filter engine or the
metadata store carries an error code. The HTTP layer maps codes to status
classes: client mistakes are 4xx, storage failures are 5xx.
"""

from enum import StrEnum


class ErrorCode(StrEnum):
    """Error codes surfaced in API error bodies."""

    MALFORMED_REQUEST = "MALFORMED_REQUEST"
    INCOMPLETE_UPLOAD = "INCOMPLETE_UPLOAD"
    IO_ERROR = "IO_ERROR"
    STORE_ERROR = "STORE_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


CLIENT_ERROR_CODES = frozenset(
    {
        ErrorCode.MALFORMED_REQUEST,
        ErrorCode.INCOMPLETE_UPLOAD,
        ErrorCode.VALIDATION_ERROR,
    }
)


class AudioStoreError(Exception):
    """Base exception for audio store errors."""

    def __init__(self, error_code: str, message: str):
        self.error_code = error_code
        self.message = message
        super().__init__(f"{error_code}: {message}")

    @property
    def is_client_error(self) -> bool:
        return self.error_code in CLIENT_ERROR_CODES


class MalformedRequest(AudioStoreError):
    """Multipart body or upload fields could not be understood."""

    def __init__(self, reason: str):
        super().__init__(ErrorCode.MALFORMED_REQUEST, f"Malformed request: {reason}")


class IncompleteUpload(AudioStoreError):
    """Request body ended before all required parts arrived."""

    def __init__(self, reason: str):
        super().__init__(ErrorCode.INCOMPLETE_UPLOAD, f"Incomplete upload: {reason}")


class IoError(AudioStoreError):
    """Filesystem failure while writing content."""

    def __init__(self, reason: str):
        super().__init__(ErrorCode.IO_ERROR, f"I/O failure: {reason}")


class StoreError(AudioStoreError):
    """Metadata store read or write failed."""

    def __init__(self, reason: str):
        super().__init__(ErrorCode.STORE_ERROR, f"Metadata store failure: {reason}")


class QueryValidationError(AudioStoreError):
    """A query parameter could not be parsed."""

    def __init__(self, field: str, value: str, expected: str):
        self.field = field
        super().__init__(
            ErrorCode.VALIDATION_ERROR,
            f"Invalid value for '{field}': {value!r} (expected {expected})",
        )


__all__ = [
    "ErrorCode",
    "AudioStoreError",
    "MalformedRequest",
    "IncompleteUpload",
    "IoError",
    "StoreError",
    "QueryValidationError",
]
