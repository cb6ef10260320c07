#!/usr/bin/env python3
"""
Shared utilities for the continuous-learning hooks.

Filesystem helpers, timestamp formatting, stderr/debug logging and the
top-level error boundary used by every hook entry point.
"""

from __future__ import annotations

import fcntl
import functools
import json
import os
import re
import sys
import tempfile
from datetime import datetime
from pathlib import Path

# Debug log location - shared across all hooks
DEBUG_LOG = Path(tempfile.gettempdir()) / "claude-hooks-debug.log"


# ============================================================================
# Paths
# ============================================================================


def get_claude_dir() -> Path:
    """User-level Claude directory (~/.claude)."""
    return Path.home() / ".claude"


def get_sessions_dir() -> Path:
    return get_claude_dir() / "sessions"


def get_learned_skills_dir() -> Path:
    return get_claude_dir() / "skills" / "learned"


# ============================================================================
# Timestamps
# ============================================================================


def get_date_time_string(now: datetime | None = None) -> str:
    """Local time as 'YYYY-MM-DD HH:MM:SS'."""
    return (now or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")


def get_time_string(now: datetime | None = None) -> str:
    """Local time as 'HH:MM'."""
    return (now or datetime.now()).strftime("%H:%M")


# ============================================================================
# Filesystem
# ============================================================================


def ensure_dir(path: Path) -> Path:
    """Create a directory (and parents) if missing. No error if it exists."""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def read_file(path: Path | str | None) -> str | None:
    """Read a text file, returning None if unset, missing or unreadable."""
    if not path:
        return None
    try:
        return Path(path).read_text(encoding="utf-8", errors="replace")
    except (IOError, OSError):
        return None


def append_file(path: Path, content: str) -> None:
    """Append text to a file, creating parent directories as needed."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        f.write(content)


def find_files(directory: Path, pattern: str) -> list[Path]:
    """Files in `directory` matching a glob, most recently modified first.

    Missing directories yield an empty list.
    """
    entries = []
    try:
        candidates = list(Path(directory).glob(pattern))
    except OSError:
        return []
    for f in candidates:
        try:
            if f.is_file():
                entries.append((f.stat().st_mtime, f))
        except OSError:
            continue
    entries.sort(key=lambda item: item[0], reverse=True)
    return [f for _, f in entries]


def count_in_file(path: Path | str, pattern: str | re.Pattern) -> int:
    """Count regex matches across the whole content of a file.

    Plain text scan, so malformed JSON lines are irrelevant.
    Returns 0 if the file cannot be read.
    """
    content = read_file(path)
    if content is None:
        return 0
    return len(re.findall(pattern, content))


def atomic_write_json(path: Path, data: dict) -> None:
    """Write JSON atomically using write-temp-fsync-rename pattern.

    The file at `path` is either absent/old or fully written, never partial.
    Uses F_FULLFSYNC on macOS for true durability.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent),
        prefix=f".{path.stem}.",
        suffix=".part",
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
            f.write("\n")
            f.flush()
            # macOS fsync() doesn't flush disk write cache; F_FULLFSYNC does
            if hasattr(fcntl, "F_FULLFSYNC"):
                fcntl.fcntl(f.fileno(), fcntl.F_FULLFSYNC)
            else:
                os.fsync(f.fileno())
        os.replace(tmp_path, str(path))
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


# ============================================================================
# Hook I/O
# ============================================================================


def read_hook_input() -> dict:
    """Parse the JSON payload the runtime pipes to a hook on stdin.

    Returns {} for a TTY, empty input, invalid JSON or a non-object payload.
    """
    try:
        if sys.stdin is None or sys.stdin.isatty():
            return {}
        raw = sys.stdin.read()
    except (OSError, ValueError):
        return {}
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        log_debug("Invalid hook payload on stdin", raw_input=raw, error=e)
        return {}
    return data if isinstance(data, dict) else {}


# ============================================================================
# Logging
# ============================================================================


def log(message: str) -> None:
    """User-visible hook output (stderr, shown in the transcript view)."""
    print(message, file=sys.stderr)


def log_debug(
    message: str,
    hook_name: str = "unknown",
    raw_input: str = "",
    parsed_data: dict | None = None,
    error: Exception | None = None,
) -> None:
    """Log diagnostic info for debugging hook issues.

    Args:
        message: Description of what happened
        hook_name: Name of the calling hook
        raw_input: Raw stdin content (optional)
        parsed_data: Parsed JSON data (optional)
        error: Exception that occurred (optional)
    """
    try:
        with open(DEBUG_LOG, "a", encoding="utf-8") as f:
            f.write(f"\n{'=' * 60}\n")
            f.write(f"Timestamp: {datetime.now().isoformat()}\n")
            f.write(f"Hook: {hook_name}\n")
            f.write(f"Message: {message}\n")
            if error:
                f.write(f"Error: {type(error).__name__}: {error}\n")
            if raw_input:
                f.write(
                    f"Raw stdin ({len(raw_input)} bytes): {repr(raw_input[:500])}\n"
                )
            if parsed_data is not None:
                f.write(f"Parsed data: {json.dumps(parsed_data, indent=2, default=str)}\n")
            f.write(f"{'=' * 60}\n")
    except Exception:
        pass  # Never fail on logging


# ============================================================================
# Error Boundary
# ============================================================================


def hook_boundary(label: str, hook_name: str = "unknown"):
    """Wrap a hook entry point so it never fails the host runtime.

    Any exception raised by the wrapped function is logged to stderr as
    `[label] Error: <message>` and to the debug log. The wrapper always
    returns exit status 0.
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> int:
            try:
                func(*args, **kwargs)
            except Exception as e:
                log(f"[{label}] Error: {e}")
                log_debug("Unhandled hook error", hook_name=hook_name, error=e)
            return 0

        return wrapper

    return decorator
