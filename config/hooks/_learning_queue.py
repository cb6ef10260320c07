#!/usr/bin/env python3
"""
Learning queue hand-off.

A queue entry is a verbatim transcript copy plus a sidecar metadata record
sharing one base name:

    <timestamp>-<session suffix>.jsonl
    <timestamp>-<session suffix>.meta.json

Entries are written once by the PreCompact hook and left for the
/auto-learn consumer to process and remove. Nothing here deletes them.

Used by:
- pre-compact.py (PreCompact: dump transcript into the queue)
- evaluate-session.py (Stop: report pending transcripts)
"""

from __future__ import annotations

import json
import re
import shutil
from pathlib import Path

from _common import append_file, atomic_write_json, count_in_file, ensure_dir, log, log_debug
from _config import LearningConfig
from _repo_info import GitRepositoryInfoProvider, RepositoryInfoProvider, resolve_git_info

USER_TURN_RE = re.compile(r'"type"\s*:\s*"user"')

TRANSCRIPT_SUFFIX = ".jsonl"
METADATA_SUFFIX = ".meta.json"


# ============================================================================
# Transcript Inspection
# ============================================================================


def count_user_turns(transcript_path: Path | str | None) -> int:
    """Number of user-turn markers in a transcript (0 if unreadable)."""
    if not transcript_path:
        return 0
    return count_in_file(transcript_path, USER_TURN_RE)


def resolve_working_dir(transcript_path: Path | str | None, default: str) -> str:
    """Working directory of the session that produced a transcript.

    Uses the `cwd` of the first record that has one. Malformed lines are
    skipped. Falls back to `default` when no record carries a cwd or the
    transcript cannot be read.
    """
    if not transcript_path:
        return default
    try:
        with open(transcript_path, encoding="utf-8", errors="replace") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    record = json.loads(line)
                except json.JSONDecodeError:
                    continue
                if not isinstance(record, dict):
                    continue
                cwd = record.get("cwd")
                if isinstance(cwd, str) and cwd:
                    return cwd
    except (IOError, OSError):
        pass
    return default


# ============================================================================
# Queue Naming
# ============================================================================


def queue_base_name(timestamp: str, session_id: str | None) -> str:
    """'2026-01-05 14:03:22' + '…abcdef12' ⇒ '2026-01-05-14-03-22-abcdef12'."""
    short_id = (session_id or "unknown")[-8:]
    return f"{re.sub(r'[: ]', '-', timestamp)}-{short_id}"


def queue_paths(queue_dir: Path, base: str) -> tuple[Path, Path]:
    return queue_dir / f"{base}{TRANSCRIPT_SUFFIX}", queue_dir / f"{base}{METADATA_SUFFIX}"


def build_metadata(
    timestamp: str,
    session_id: str,
    message_count: int,
    cwd: str,
    git: dict,
    transcript_file: str,
) -> dict:
    return {
        "timestamp": timestamp,
        "sessionId": session_id,
        "messageCount": message_count,
        "cwd": cwd,
        "git": git,
        "transcriptFile": transcript_file,
    }


# ============================================================================
# Queue Operations
# ============================================================================


def write_queue_entry(
    config: LearningConfig,
    timestamp: str,
    message_count: int,
    repo_info: RepositoryInfoProvider | None = None,
) -> Path | None:
    """Copy the transcript into the learning queue and write its metadata.

    The transcript copy must succeed before metadata is written. A failed
    copy is logged and abandoned (returns None, no metadata). A failed
    metadata write is logged; the transcript copy is kept and returned.
    Either way one summary line is appended to the compaction log.

    Same-second dumps from sessions sharing an id suffix overwrite each
    other.
    """
    base = queue_base_name(timestamp, config.session_id)
    dump_file, meta_file = queue_paths(config.queue_dir, base)

    try:
        ensure_dir(config.queue_dir)
        shutil.copy2(config.transcript_path, dump_file)
    except (IOError, OSError, shutil.Error) as e:
        log(f"[PreCompact] Failed to dump transcript: {e}")
        log_debug("Transcript dump failed", hook_name="pre-compact", error=e)
        append_file(config.compaction_log, f"  -> Transcript dump failed: {e}\n")
        return None

    log(f"[PreCompact] Transcript dumped for learning: {dump_file}")
    log(f"[PreCompact] Messages saved: {message_count}")
    append_file(
        config.compaction_log,
        f"  -> Dumped {message_count} messages to {dump_file.name}\n",
    )

    cwd = resolve_working_dir(config.transcript_path, config.cwd)
    git_info = resolve_git_info(repo_info or GitRepositoryInfoProvider(), cwd)
    metadata = build_metadata(
        timestamp=timestamp,
        session_id=config.session_id,
        message_count=message_count,
        cwd=cwd,
        git=git_info.to_dict(),
        transcript_file=dump_file.name,
    )
    try:
        atomic_write_json(meta_file, metadata)
    except (IOError, OSError, TypeError, ValueError) as e:
        log(f"[PreCompact] Failed to write queue metadata: {e}")
        log_debug(
            "Queue metadata write failed",
            hook_name="pre-compact",
            parsed_data=metadata,
            error=e,
        )

    return dump_file


def list_pending_transcripts(queue_dir: Path) -> list[Path]:
    """Queued transcripts awaiting /auto-learn. Read errors ⇒ []."""
    try:
        return sorted(
            p for p in Path(queue_dir).iterdir()
            if p.name.endswith(TRANSCRIPT_SUFFIX) and p.is_file()
        )
    except (IOError, OSError):
        return []
