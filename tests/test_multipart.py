"""Tests for audio_store.utils.multipart module."""

import asyncio

import pytest

from audio_store.errors import IncompleteUpload, MalformedRequest
from audio_store.utils.multipart import MultipartReader, parse_boundary


async def _collect(reader: MultipartReader) -> list[tuple[str, str | None, bytes]]:
    parts = []
    while (part := await reader.next_part()) is not None:
        parts.append((part.name, part.filename, await part.read()))
    return parts


class TestParseBoundary:
    """Tests for parse_boundary function."""

    def test_extracts_boundary(self):
        assert parse_boundary("multipart/form-data; boundary=abc123") == b"abc123"

    def test_quoted_boundary(self):
        assert parse_boundary('multipart/form-data; boundary="abc123"') == b"abc123"

    def test_missing_header(self):
        with pytest.raises(MalformedRequest, match="Content-Type"):
            parse_boundary(None)

    def test_wrong_content_type(self):
        with pytest.raises(MalformedRequest, match="multipart/form-data"):
            parse_boundary("application/x-www-form-urlencoded")

    def test_missing_boundary(self):
        with pytest.raises(MalformedRequest, match="boundary"):
            parse_boundary("multipart/form-data")


class TestMultipartReader:
    """Tests for MultipartReader and Part."""

    @pytest.mark.parametrize("chunk_size", [1, 3, 7, 64, 65536])
    def test_parts_in_arrival_order(self, make_reader, chunk_size):
        """Parts come back in order with intact payloads for any chunking."""
        reader = make_reader(
            [
                ("file_name", b"clip.wav", None),
                ("file_type", b"wav", None),
                ("file", b"RIFF\r\n--not-a-boundary\r\nDATA", "clip.wav"),
            ],
            chunk_size=chunk_size,
        )

        parts = asyncio.run(_collect(reader))

        assert parts == [
            ("file_name", None, b"clip.wav"),
            ("file_type", None, b"wav"),
            ("file", "clip.wav", b"RIFF\r\n--not-a-boundary\r\nDATA"),
        ]

    def test_file_part_streams_in_chunks(self, make_reader):
        """iter_chunks yields the payload piecewise, not as one buffer."""
        payload = bytes(range(256)) * 8
        reader = make_reader([("file", payload, "blob.bin")], chunk_size=100)

        async def run():
            part = await reader.next_part()
            return [chunk async for chunk in part.iter_chunks()]

        chunks = asyncio.run(run())

        assert len(chunks) > 1
        assert b"".join(chunks) == payload

    def test_body_is_pulled_lazily(self, multipart_body):
        """The first part is available before the rest of the body is read."""
        body = multipart_body(
            [("file_name", b"clip.wav", None), ("file", b"x" * 10000, "clip.wav")],
            boundary=b"lazy-boundary",
        )
        pulled = []

        async def source():
            for start in range(0, len(body), 100):
                pulled.append(start)
                yield body[start : start + 100]

        async def run():
            reader = MultipartReader(source(), b"lazy-boundary")
            part = await reader.next_part()
            assert part.name == "file_name"
            return len(pulled)

        total_chunks = (len(body) + 99) // 100
        assert asyncio.run(run()) < total_chunks

    def test_unread_part_is_skipped(self, make_reader):
        """next_part drains whatever the caller did not read."""
        reader = make_reader(
            [("ignored", b"some text", None), ("file", b"payload", "f.bin")]
        )

        async def run():
            first = await reader.next_part()
            second = await reader.next_part()
            return first.name, second.name, await second.read()

        assert asyncio.run(run()) == ("ignored", "file", b"payload")

    def test_payload_can_only_be_read_once(self, make_reader):
        reader = make_reader([("file_name", b"clip.wav", None)])

        async def run():
            part = await reader.next_part()
            await part.read()
            await part.read()

        with pytest.raises(RuntimeError, match="already read"):
            asyncio.run(run())

    def test_truncated_body_raises_incomplete(self, make_reader, multipart_body):
        """A body cut inside a part payload is an incomplete upload."""
        parts = [("file_name", b"clip.wav", None), ("file", b"A" * 500, "clip.wav")]
        full_length = len(multipart_body(parts))
        reader = make_reader(parts, truncate_at=full_length - 100)

        with pytest.raises(IncompleteUpload):
            asyncio.run(_collect(reader))

    def test_empty_body_raises_incomplete(self, make_reader):
        reader = make_reader([], truncate_at=0)

        with pytest.raises(IncompleteUpload):
            asyncio.run(reader.next_part())

    def test_garbage_body_is_malformed(self):
        async def source():
            yield b"this is not a multipart body"

        reader = MultipartReader(source(), b"boundary")

        with pytest.raises(MalformedRequest):
            asyncio.run(reader.next_part())

    def test_part_without_name_is_malformed(self):
        body = (
            b"--b0undary\r\n"
            b"Content-Disposition: form-data\r\n\r\n"
            b"value\r\n"
            b"--b0undary--\r\n"
        )

        async def source():
            yield body

        reader = MultipartReader(source(), b"b0undary")

        with pytest.raises(MalformedRequest, match="field name"):
            asyncio.run(reader.next_part())
