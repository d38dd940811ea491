"""Audio Store - Content path utilities.

File names come straight from clients, so every name is checked before a
filesystem path is built from it. Does NOT create directories.
"""

from pathlib import Path

from audio_store.config import MAX_FILE_NAME_LENGTH, TEMP_SUFFIX

_FORBIDDEN_CHARS = ("/", "\\", "\x00")


def validate_file_name(name: str) -> str:
    """Check that a client-supplied name is a single, plain path segment.

    Args:
        name: The requested file name.

    Returns:
        The name, unchanged.

    Raises:
        ValueError: If the name is empty, a dot segment, contains a path
            separator or NUL byte, is too long, or collides with the staging
            suffix.
    """
    if not name:
        raise ValueError("file name must not be empty")
    if name in (".", ".."):
        raise ValueError("file name must not be a relative directory reference")
    for char in _FORBIDDEN_CHARS:
        if char in name:
            raise ValueError(f"file name must not contain {char!r}")
    if len(name) > MAX_FILE_NAME_LENGTH:
        raise ValueError(f"file name longer than {MAX_FILE_NAME_LENGTH} characters")
    if name.endswith(TEMP_SUFFIX):
        raise ValueError(f"file name must not end with {TEMP_SUFFIX!r}")
    return name


def resolve_content_path(content_dir: str | Path, name: str) -> Path:
    """Get the path a file named ``name`` is stored at.

    Args:
        content_dir: The content root directory.
        name: Client-supplied file name.

    Returns:
        Path: {content_dir}/{name}

    Raises:
        ValueError: If the name is unsafe or the path escapes content_dir.
    """
    validate_file_name(name)
    root = Path(content_dir).resolve()
    path = (root / name).resolve()
    if path.parent != root:
        raise ValueError(f"file name {name!r} resolves outside the content directory")
    return path
