"""Audio Store - SQLAlchemy ORM models.

A single table, ``files``, holds one row per ingested upload.
"""

from sqlalchemy import Integer, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class FileRow(Base):
    """Metadata row for an uploaded file.

    file_name is deliberately NOT unique: uploading the same name twice
    appends a second row (and overwrites the file on disk).
    """

    __tablename__ = "files"

    # Surrogate key; gives rows a stable insertion order
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    file_name: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    file_type: Mapped[str | None] = mapped_column(Text, nullable=True, index=True)

    # Unix epoch seconds, stamped server-side at ingestion
    file_upload_date: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
