"""Audio Store - Ingestion pipeline.

Turns a streamed multipart upload into a stored file plus one metadata row:
1. Collect scalar parts (UTF-8 text) until the "file" part arrives
2. Validate the scalar fields against UploadRequest
3. Stream the "file" part into a staged temp file
4. Stamp the upload date and insert the metadata row
5. Publish the staged file under its final name

Write and insert are not one transaction. Staging narrows the gap: a
failed insert leaves no file behind, and a crash before publish leaves only
a temp file that the startup sweep removes. A crash between insert and
publish leaves a row without a file; that window is logged, not repaired.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable

from pydantic import ValidationError

from audio_store.db import MetadataStore
from audio_store.errors import IncompleteUpload, IoError, MalformedRequest, StoreError
from audio_store.schemas import FileRecord, UploadRequest
from audio_store.utils.failpoints import maybe_fail
from audio_store.utils.file_writer import FileWriter
from audio_store.utils.multipart import MultipartReader, Part

logger = logging.getLogger(__name__)

# Name of the multipart part carrying the binary payload
FILE_FIELD = "file"


def parse_upload_request(fields: dict[str, str]) -> UploadRequest:
    """Validate collected scalar fields into an UploadRequest.

    The fields go through a JSON document so that validation is the same
    strict, schema-driven step regardless of which parts the client sent.

    Raises:
        MalformedRequest: One message per missing or invalid field.
    """
    document = json.dumps(fields)
    try:
        return UploadRequest.model_validate_json(document)
    except ValidationError as e:
        problems = []
        for error in e.errors():
            field = ".".join(str(loc) for loc in error["loc"]) or "request"
            problems.append(f"{field}: {error['msg']}")
        raise MalformedRequest("; ".join(problems)) from e


class IngestionPipeline:
    """Runs one upload from multipart stream to committed record.

    Args:
        store: Metadata store the record is inserted into.
        writer: File writer rooted at the content directory.
        clock: Returns the current Unix time; injectable for tests.
    """

    def __init__(
        self,
        store: MetadataStore,
        writer: FileWriter,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self._writer = writer
        self._clock = clock

    async def ingest(self, reader: MultipartReader) -> FileRecord:
        """Ingest one multipart upload.

        Returns:
            The stored FileRecord.

        Raises:
            IncompleteUpload: Body ended before the file part or inside it.
            MalformedRequest: Bad multipart framing or invalid fields.
            IoError: The file could not be written or published.
            StoreError: The metadata insert failed.
        """
        fields, file_part = await self._collect_fields(reader)
        request = parse_upload_request(fields)

        try:
            staged = await self._writer.stage(request.file_name, file_part.iter_chunks())
        except ValueError as e:
            raise MalformedRequest(f"file_name: {e}") from e
        except OSError as e:
            raise IoError(f"could not write {request.file_name!r}: {e}") from e

        maybe_fail("INGEST_AFTER_STAGE")

        record = FileRecord(
            file_name=request.file_name,
            file_type=request.file_type,
            file_upload_date=int(self._clock()),
        )
        try:
            await self._store.insert(record)
        except StoreError:
            await staged.discard()
            raise

        maybe_fail("INGEST_AFTER_INSERT_BEFORE_PUBLISH")

        try:
            await staged.publish()
        except OSError as e:
            await staged.discard()
            logger.error(
                "Metadata for %s committed but the file was not published",
                record.file_name,
            )
            raise IoError(f"could not publish {record.file_name!r}: {e}") from e

        logger.info(
            "Ingested file_name=%s file_type=%s bytes=%d",
            record.file_name,
            record.file_type,
            staged.bytes_written,
        )
        return record

    async def _collect_fields(self, reader: MultipartReader) -> tuple[dict[str, str], Part]:
        """Read scalar parts up to (not including) the file part's payload."""
        fields: dict[str, str] = {}
        while (part := await reader.next_part()) is not None:
            if part.name == FILE_FIELD:
                return fields, part
            raw = await part.read()
            try:
                # Last write wins for repeated names
                fields[part.name] = raw.decode("utf-8")
            except UnicodeDecodeError as e:
                raise MalformedRequest(f"field {part.name!r} is not valid UTF-8") from e
        raise IncompleteUpload(f"request body has no {FILE_FIELD!r} part")
