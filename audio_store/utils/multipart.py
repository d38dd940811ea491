"""Audio Store - Streaming multipart/form-data reader.

Wraps the callback-driven ``python_multipart.MultipartParser`` in a pull
interface: parts are returned one at a time in arrival order, and a part's
payload is yielded chunk by chunk. A new chunk is read from the request
body only after everything parsed from the previous one has been consumed,
so a slow consumer (e.g. a disk write) throttles the upload instead of
buffering it.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import AsyncIterable, AsyncIterator

from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header

from audio_store.errors import IncompleteUpload, MalformedRequest

logger = logging.getLogger(__name__)

# Parser event kinds
_HEADERS = "headers"
_DATA = "data"
_PART_END = "part_end"
_END = "end"


def parse_boundary(content_type: str | None) -> bytes:
    """Extract the boundary from a multipart/form-data Content-Type header.

    Raises:
        MalformedRequest: If the header is missing, not multipart/form-data,
            or has no boundary parameter.
    """
    if not content_type:
        raise MalformedRequest("missing Content-Type header")
    ctype, params = parse_options_header(content_type)
    if ctype.strip() != b"multipart/form-data":
        raise MalformedRequest(f"expected multipart/form-data, got {ctype.decode('latin-1')!r}")
    boundary = params.get(b"boundary")
    if not boundary:
        raise MalformedRequest("multipart Content-Type has no boundary")
    return boundary


class Part:
    """One named segment of a multipart body.

    Obtained from MultipartReader.next_part(). The payload can be read once,
    either streamed with iter_chunks() or buffered with read().
    """

    def __init__(
        self,
        reader: MultipartReader,
        name: str,
        filename: str | None,
        content_type: str | None,
    ):
        self.name = name
        self.filename = filename
        self.content_type = content_type
        self._reader = reader
        self._started = False
        self._done = False

    def __repr__(self) -> str:
        return f"Part(name={self.name!r}, filename={self.filename!r})"

    async def iter_chunks(self) -> AsyncIterator[bytes]:
        """Yield the payload in the order it arrives.

        Raises:
            RuntimeError: If the payload was already read.
            IncompleteUpload: If the body ends inside this part.
        """
        if self._started:
            raise RuntimeError(f"payload of part {self.name!r} was already read")
        self._started = True
        async for chunk in self._chunks():
            yield chunk

    async def read(self) -> bytes:
        """Buffer the whole payload. Meant for small scalar fields."""
        return b"".join([chunk async for chunk in self.iter_chunks()])

    async def _chunks(self) -> AsyncIterator[bytes]:
        while not self._done:
            kind, payload = await self._reader._next_event()
            if kind == _DATA:
                yield payload
            elif kind == _PART_END:
                self._done = True

    async def _drain(self) -> None:
        async for _ in self._chunks():
            pass


class MultipartReader:
    """Pull-based reader over a streamed multipart/form-data body.

    Args:
        chunks: The raw request body as an async iterable of byte chunks.
        boundary: Boundary from the Content-Type header (see parse_boundary).
    """

    def __init__(self, chunks: AsyncIterable[bytes], boundary: bytes):
        self._source = chunks.__aiter__()
        self._events: deque[tuple[str, object]] = deque()
        self._source_done = False
        self._body_done = False
        self._current: Part | None = None

        # Header accumulation state (fields/values may arrive split)
        self._header_field = b""
        self._header_value = b""
        self._headers: dict[bytes, bytes] = {}

        self._parser = MultipartParser(
            boundary,
            callbacks={
                "on_part_begin": self._on_part_begin,
                "on_header_field": self._on_header_field,
                "on_header_value": self._on_header_value,
                "on_header_end": self._on_header_end,
                "on_headers_finished": self._on_headers_finished,
                "on_part_data": self._on_part_data,
                "on_part_end": self._on_part_end,
                "on_end": self._on_end,
            },
        )

    async def next_part(self) -> Part | None:
        """Return the next part, or None once the closing boundary was read.

        Any unread payload of the previous part is skipped first.

        Raises:
            IncompleteUpload: If the body ends before the closing boundary.
            MalformedRequest: If the body is not valid multipart data or a
                part has no usable name.
        """
        if self._current is not None:
            await self._current._drain()
            self._current = None

        while not self._body_done:
            kind, payload = await self._next_event()
            if kind == _END:
                self._body_done = True
            elif kind == _HEADERS:
                self._current = self._make_part(payload)
                return self._current
        return None

    def _make_part(self, headers: dict[bytes, bytes]) -> Part:
        disposition = headers.get(b"content-disposition")
        if disposition is None:
            raise MalformedRequest("part without Content-Disposition header")
        _, options = parse_options_header(disposition)
        raw_name = options.get(b"name")
        if not raw_name:
            raise MalformedRequest("part without a field name")
        try:
            name = raw_name.decode("utf-8")
            raw_filename = options.get(b"filename")
            filename = raw_filename.decode("utf-8") if raw_filename is not None else None
        except UnicodeDecodeError as e:
            raise MalformedRequest("part name is not valid UTF-8") from e
        content_type = headers.get(b"content-type")
        return Part(
            self,
            name=name,
            filename=filename,
            content_type=content_type.decode("latin-1") if content_type else None,
        )

    async def _next_event(self) -> tuple[str, object]:
        while not self._events:
            if self._source_done:
                raise IncompleteUpload("request body ended before the closing boundary")
            await self._pull()
        return self._events.popleft()

    async def _pull(self) -> None:
        try:
            chunk = await self._source.__anext__()
        except StopAsyncIteration:
            self._source_done = True
            self._parser.finalize()
            return
        if not chunk:
            return
        try:
            self._parser.write(chunk)
        except MultipartParseError as e:
            raise MalformedRequest(f"invalid multipart body: {e}") from e

    # --- Parser callbacks ---

    def _on_part_begin(self) -> None:
        self._headers = {}

    def _on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field += data[start:end]

    def _on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def _on_header_end(self) -> None:
        self._headers[self._header_field.lower()] = self._header_value
        self._header_field = b""
        self._header_value = b""

    def _on_headers_finished(self) -> None:
        self._events.append((_HEADERS, self._headers))

    def _on_part_data(self, data: bytes, start: int, end: int) -> None:
        if end > start:
            self._events.append((_DATA, bytes(data[start:end])))

    def _on_part_end(self) -> None:
        self._events.append((_PART_END, None))

    def _on_end(self) -> None:
        logger.debug("Multipart body complete")
        self._events.append((_END, None))
