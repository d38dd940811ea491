"""Audio Store - Pydantic models for API validation.

Request models validate the dynamic multipart field set and query string
against fixed shapes; response models define the JSON bodies.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from audio_store.errors import QueryValidationError
from audio_store.utils.paths import validate_file_name

# --- Request Models ---


class UploadRequest(BaseModel):
    """Scalar fields of a multipart upload (the file part is separate).

    Unknown fields are ignored, so a client-sent file_upload_date never
    reaches the stored record.
    """

    model_config = ConfigDict(extra="ignore", strict=True)

    file_name: str = Field(..., min_length=1, description="Name the file is stored under")
    file_type: str | None = Field(default=None, description="Optional type tag, e.g. 'wav'")

    @field_validator("file_name")
    @classmethod
    def _safe_file_name(cls, value: str) -> str:
        return validate_file_name(value)

    @field_validator("file_type")
    @classmethod
    def _empty_file_type_is_none(cls, value: str | None) -> str | None:
        # Matches FilterQuery, where an empty value means "not supplied"
        return value or None


class FilterQuery(BaseModel):
    """Optional equality predicates, combined with AND."""

    model_config = ConfigDict(extra="forbid")

    file_name: str | None = None
    file_type: str | None = None
    file_upload_date: int | None = None

    @classmethod
    def from_params(
        cls,
        file_name: str | None = None,
        file_type: str | None = None,
        file_upload_date: str | None = None,
    ) -> "FilterQuery":
        """Build a query from raw query-string values.

        Empty strings count as "not supplied".

        Raises:
            QueryValidationError: If file_upload_date is not an integer.
        """
        date_value = None
        if file_upload_date:
            try:
                date_value = int(file_upload_date)
            except ValueError:
                raise QueryValidationError(
                    "file_upload_date", file_upload_date, "an integer"
                ) from None
        return cls(
            file_name=file_name or None,
            file_type=file_type or None,
            file_upload_date=date_value,
        )

    def predicates(self) -> list[tuple[str, str | int]]:
        """Supplied predicates in the fixed order name, type, date."""
        pairs = [
            ("file_name", self.file_name),
            ("file_type", self.file_type),
            ("file_upload_date", self.file_upload_date),
        ]
        return [(attr, value) for attr, value in pairs if value is not None]


# --- Response Models ---


class FileRecord(BaseModel):
    """A persisted file record, also the POST /audio response body."""

    model_config = ConfigDict(from_attributes=True)

    file_name: str = Field(..., min_length=1)
    file_type: str | None = None
    file_upload_date: int = Field(..., description="Unix epoch seconds")


class ErrorResponse(BaseModel):
    """Response for failed operations."""

    model_config = ConfigDict(extra="forbid")

    status: str = Field(default="error", description="Operation status")
    error_code: str = Field(..., description="Error taxonomy code")
    error_message: str = Field(..., description="Human-readable error description")


__all__ = [
    "UploadRequest",
    "FilterQuery",
    "FileRecord",
    "ErrorResponse",
]
