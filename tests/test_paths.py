"""Tests for audio_store.utils.paths module."""

from pathlib import Path

import pytest

from audio_store.utils.paths import resolve_content_path, validate_file_name


class TestValidateFileName:
    """Tests for validate_file_name function."""

    @pytest.mark.parametrize("name", ["clip.wav", "take 2.mp3", "no_extension", "über.flac"])
    def test_accepts_plain_names(self, name):
        """Plain single-segment names pass through unchanged."""
        assert validate_file_name(name) == name

    @pytest.mark.parametrize(
        "name",
        [
            "",
            ".",
            "..",
            "../escape.wav",
            "nested/clip.wav",
            "/etc/passwd",
            "..\\windows.wav",
            "nul\x00byte.wav",
        ],
    )
    def test_rejects_unsafe_names(self, name):
        """Empty names, dot segments and separators are rejected."""
        with pytest.raises(ValueError):
            validate_file_name(name)

    def test_rejects_overlong_name(self):
        """Names longer than 255 characters are rejected."""
        with pytest.raises(ValueError, match="longer than"):
            validate_file_name("a" * 256)

    def test_rejects_temp_suffix(self):
        """Names that look like staged uploads are rejected."""
        with pytest.raises(ValueError, match=".part"):
            validate_file_name("clip.wav.part")


class TestResolveContentPath:
    """Tests for resolve_content_path function."""

    def test_basic_path(self, tmp_path):
        """Should return content_dir/name."""
        path = resolve_content_path(tmp_path, "clip.wav")
        assert path == tmp_path.resolve() / "clip.wav"

    def test_returns_path_object(self, tmp_path):
        """Should return a Path object."""
        assert isinstance(resolve_content_path(str(tmp_path), "clip.wav"), Path)

    def test_rejects_traversal(self, tmp_path):
        """Should never build a path outside the content directory."""
        with pytest.raises(ValueError):
            resolve_content_path(tmp_path, "../outside.wav")
