"""Audio Store - Utility modules."""

from audio_store.utils.file_writer import FileWriter, StagedFile, cleanup_orphan_temp_files
from audio_store.utils.multipart import MultipartReader, Part, parse_boundary
from audio_store.utils.paths import resolve_content_path, validate_file_name

__all__ = [
    # file_writer
    "FileWriter",
    "StagedFile",
    "cleanup_orphan_temp_files",
    # multipart
    "MultipartReader",
    "Part",
    "parse_boundary",
    # paths
    "resolve_content_path",
    "validate_file_name",
]
