"""Shared pytest fixtures for Audio Store tests.

Common fixtures for database, content directory, multipart bodies and the
API test client.
"""

import tempfile
import wave
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from audio_store.db import MetadataStore, init_db
from audio_store.utils.multipart import MultipartReader
from services.audio_api.main import app

BOUNDARY = b"audiostore-test-boundary-7MA4YWxk"


def encode_multipart(parts, boundary: bytes = BOUNDARY) -> bytes:
    """Encode (name, payload, filename) triples as a multipart/form-data body."""
    body = b""
    for name, payload, filename in parts:
        disposition = f'form-data; name="{name}"'
        if filename is not None:
            disposition += f'; filename="{filename}"'
        body += b"--" + boundary + b"\r\n"
        body += f"Content-Disposition: {disposition}\r\n".encode()
        if filename is not None:
            body += b"Content-Type: application/octet-stream\r\n"
        body += b"\r\n" + payload + b"\r\n"
    body += b"--" + boundary + b"--\r\n"
    return body


async def iter_body(body: bytes, chunk_size: int):
    """Yield ``body`` in fixed-size chunks, like a network stream."""
    for start in range(0, len(body), chunk_size):
        yield body[start : start + chunk_size]


@pytest.fixture
def multipart_body():
    """Factory fixture: encode parts into a multipart body."""
    return encode_multipart


@pytest.fixture
def make_reader():
    """Factory fixture: MultipartReader over an encoded body.

    Args (of the returned callable):
        parts: list of (name, payload bytes, filename or None).
        chunk_size: size of the simulated network chunks.
        truncate_at: cut the body after this many bytes.
    """

    def _make(parts, chunk_size: int = 7, truncate_at: int | None = None):
        body = encode_multipart(parts)
        if truncate_at is not None:
            body = body[:truncate_at]
        return MultipartReader(iter_body(body, chunk_size), BOUNDARY)

    return _make


@pytest.fixture
def temp_db():
    """Create a temporary database for testing.

    Yields:
        tuple: (db_path, engine, SessionFactory)
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        engine, SessionFactory = init_db(db_path)
        yield db_path, engine, SessionFactory
        engine.dispose()


@pytest.fixture
def store(temp_db):
    """MetadataStore over the temporary database."""
    _, _, SessionFactory = temp_db
    return MetadataStore(SessionFactory)


@pytest.fixture
def content_dir():
    """Empty content directory, removed after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        audio_dir = Path(tmpdir) / "audio"
        audio_dir.mkdir()
        yield audio_dir


@pytest.fixture
def client(monkeypatch):
    """FastAPI test client backed by a temporary database and content dir.

    Yields:
        tuple: (test_client, SessionFactory, content_dir)
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "api.db"
        audio_dir = Path(tmpdir) / "audio"
        monkeypatch.setenv("AUDIO_STORE_DB_PATH", str(db_path))
        monkeypatch.setenv("AUDIO_STORE_CONTENT_DIR", str(audio_dir))

        engine, SessionFactory = init_db(db_path)
        with TestClient(app) as test_client:
            yield test_client, SessionFactory, audio_dir

        app.dependency_overrides.clear()
        engine.dispose()


@pytest.fixture
def sample_wav_bytes():
    """A minimal valid WAV file (0.1 s of silence, mono, 22050 Hz)."""
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "sample.wav"
        with wave.open(str(path), "wb") as wf:
            wf.setnchannels(1)
            wf.setsampwidth(2)
            wf.setframerate(22050)
            wf.writeframes(b"\x00\x01" * 2205)
        yield path.read_bytes()
