"""Audio Store - Failpoint injection for crash testing.

Simulates a hard crash at a named point in the ingest path so tests can
check what the content directory and the metadata table look like after a
process dies between the file write and the metadata insert.

Safety gate: failpoints are only active when AUDIO_STORE_ENABLE_FAILPOINTS=1.
The default is a complete no-op.

Environment variables:
- AUDIO_STORE_ENABLE_FAILPOINTS: "1" enables the failpoint system
- AUDIO_STORE_FAILPOINT: name of the failpoint to trigger
- AUDIO_STORE_FAILPOINT_EXIT_CODE: exit code used when crashing (default: 42)
- AUDIO_STORE_FAILPOINT_ONCE: "1" clears the failpoint after it fires once

Failpoints in use:
- INGEST_AFTER_STAGE: upload fully staged, metadata not yet inserted
- INGEST_AFTER_INSERT_BEFORE_PUBLISH: metadata committed, file not yet renamed
"""

from __future__ import annotations

import os

_PREFIX = "FAILPOINT_"


def _normalize(name: str) -> str:
    name = name.upper()
    if name.startswith(_PREFIX):
        name = name[len(_PREFIX) :]
    return name


def maybe_fail(point: str) -> None:
    """Crash the process if ``point`` is the active failpoint.

    Uses os._exit() so that no finally blocks, context managers or atexit
    hooks run, which is what a power failure looks like.

    Args:
        point: The failpoint name (with or without the FAILPOINT_ prefix).
    """
    target = get_active_failpoint()
    if target is None or _normalize(point) != target:
        return

    try:
        exit_code = int(os.environ.get("AUDIO_STORE_FAILPOINT_EXIT_CODE", "42"))
    except ValueError:
        exit_code = 42

    if os.environ.get("AUDIO_STORE_FAILPOINT_ONCE") == "1":
        # Only affects the current process
        os.environ.pop("AUDIO_STORE_FAILPOINT", None)
        os.environ.pop("AUDIO_STORE_FAILPOINT_ONCE", None)

    os._exit(exit_code)


def is_failpoint_enabled() -> bool:
    """Check if the failpoint system is enabled."""
    return os.environ.get("AUDIO_STORE_ENABLE_FAILPOINTS") == "1"


def get_active_failpoint() -> str | None:
    """Get the currently active failpoint name (prefix stripped), if any."""
    if not is_failpoint_enabled():
        return None
    target = os.environ.get("AUDIO_STORE_FAILPOINT", "")
    if not target:
        return None
    return _normalize(target)
