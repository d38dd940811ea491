"""Audio Store - Configuration constants.

No external config libraries. Every value can be overridden through an
environment variable; paths default to the process working directory.
"""

import os
from pathlib import Path

# Suffix for staged uploads awaiting publish (see utils.file_writer)
TEMP_SUFFIX = ".part"

# Longest file name accepted from clients (common filesystem limit)
MAX_FILE_NAME_LENGTH = 255


def get_db_path() -> Path:
    """Get the SQLite database path.

    AUDIO_STORE_DB_PATH takes precedence. DATABASE_URL is honoured for
    deployments configured for the previous service; a leading
    "sqlite:///" is stripped.

    Returns:
        Path to the database file.
    """
    env_val = os.environ.get("AUDIO_STORE_DB_PATH") or os.environ.get("DATABASE_URL")
    if env_val:
        if env_val.startswith("sqlite:///"):
            env_val = env_val[len("sqlite:///") :]
        return Path(env_val)
    return Path.cwd() / "audio_store.db"


def get_content_dir() -> Path:
    """Get the content root where uploaded files are written.

    Defaults to ``audio/`` under the working directory at call time, so the
    service resolves it once at startup.
    """
    env_val = os.environ.get("AUDIO_STORE_CONTENT_DIR")
    if env_val:
        return Path(env_val)
    return Path.cwd() / "audio"


def get_log_level() -> str:
    """Get the log level name from AUDIO_STORE_LOG_LEVEL.

    Returns:
        Upper-cased level name, "INFO" when unset or not a known level.
    """
    env_val = os.environ.get("AUDIO_STORE_LOG_LEVEL", "").upper()
    if env_val in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        return env_val
    return "INFO"


def get_bind_address() -> tuple[str, int]:
    """Get the (host, port) the API listens on.

    AUDIO_STORE_HOST defaults to 127.0.0.1, AUDIO_STORE_PORT to 8080.
    An invalid port falls back to the default.
    """
    host = os.environ.get("AUDIO_STORE_HOST") or "127.0.0.1"
    port = 8080
    env_val = os.environ.get("AUDIO_STORE_PORT")
    if env_val:
        try:
            parsed = int(env_val)
            if 0 < parsed < 65536:
                port = parsed
        except ValueError:
            pass
    return host, port
