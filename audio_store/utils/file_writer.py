"""Audio Store - Streaming file writer with staged publish.

Uploads are written in two steps:
1. Stream chunks into a temp file in the content directory
2. Rename temp -> final (the publish boundary)

The final path either holds a complete upload or its previous content.
The caller decides when to publish, so metadata can be committed between
the two steps. Orphaned temp files are swept on startup.
"""

import asyncio
import logging
import os
import uuid
from collections.abc import AsyncIterable
from dataclasses import dataclass
from pathlib import Path

import aiofiles
import aiofiles.os

from audio_store.config import TEMP_SUFFIX
from audio_store.utils.paths import resolve_content_path

logger = logging.getLogger(__name__)


@dataclass
class StagedFile:
    """A fully written upload waiting to be published."""

    temp_path: Path
    final_path: Path
    bytes_written: int

    async def publish(self) -> Path:
        """Atomically move the staged file onto its final path.

        Overwrites any existing file of the same name.

        Raises:
            OSError: If the rename fails.
        """
        await aiofiles.os.replace(self.temp_path, self.final_path)
        await asyncio.to_thread(_fsync_directory, self.final_path.parent)
        return self.final_path

    async def discard(self) -> None:
        """Remove the staged file (best-effort)."""
        try:
            await aiofiles.os.remove(self.temp_path)
        except OSError:
            pass


class FileWriter:
    """Writes uploaded byte streams under a content directory.

    No lock is taken: concurrent uploads write to distinct temp files.
    """

    def __init__(self, content_dir: str | Path):
        self.content_dir = Path(content_dir)

    def target_path(self, relative_name: str) -> Path:
        """Resolve the final path for ``relative_name``.

        Raises:
            ValueError: If the name is not a safe single path segment.
        """
        return resolve_content_path(self.content_dir, relative_name)

    async def stage(
        self,
        relative_name: str,
        chunks: AsyncIterable[bytes],
    ) -> StagedFile:
        """Stream ``chunks`` into a temp file next to the final path.

        Each chunk is written before the next one is requested. On any
        failure (including an exception raised by the chunk source) the temp
        file is removed and the exception propagates.

        Args:
            relative_name: Client-supplied file name.
            chunks: Async iterable of byte chunks, consumed in order.

        Returns:
            StagedFile ready to be published or discarded.

        Raises:
            ValueError: If the name is unsafe.
            OSError: If directory creation or a write fails.
        """
        final_path = self.target_path(relative_name)
        await aiofiles.os.makedirs(final_path.parent, exist_ok=True)
        temp_path = final_path.parent / f".upload-{uuid.uuid4().hex}{TEMP_SUFFIX}"

        total_bytes = 0
        completed = False
        try:
            async with aiofiles.open(temp_path, "wb") as f:
                async for chunk in chunks:
                    if chunk:
                        await f.write(chunk)
                        total_bytes += len(chunk)
                await f.flush()
                await asyncio.to_thread(os.fsync, f.fileno())
            completed = True
        finally:
            if not completed:
                try:
                    await aiofiles.os.remove(temp_path)
                except OSError:
                    pass  # Best-effort cleanup

        logger.debug("Staged %d bytes for %s at %s", total_bytes, relative_name, temp_path)
        return StagedFile(temp_path=temp_path, final_path=final_path, bytes_written=total_bytes)


def _fsync_directory(dir_path: Path) -> None:
    """Best-effort fsync on a directory so the rename survives a crash."""
    try:
        fd = os.open(dir_path, os.O_RDONLY | os.O_DIRECTORY)
        try:
            os.fsync(fd)
        finally:
            os.close(fd)
    except (OSError, AttributeError):
        # O_DIRECTORY is not available on every platform
        pass


def cleanup_orphan_temp_files(directory: str | Path, temp_suffix: str = TEMP_SUFFIX) -> int:
    """Remove staged uploads left behind by a crash.

    Scans ``directory`` recursively. Client file names may not end with the
    temp suffix, so only staging files match.

    Args:
        directory: Directory to scan.
        temp_suffix: Suffix to match (default: TEMP_SUFFIX).

    Returns:
        Number of files removed.
    """
    directory = Path(directory)
    removed = 0

    if not directory.exists():
        return 0

    for temp_file in directory.rglob(f"*{temp_suffix}"):
        if not temp_file.is_file():
            continue
        try:
            temp_file.unlink()
            removed += 1
        except OSError:
            pass  # Best-effort cleanup

    return removed
