#!/usr/bin/env python3
"""
PreCompact Hook - Queue Transcript for Learning

Runs before Claude compacts context, giving a chance to preserve state
that would otherwise be lost in summarization:

  1. Logs the compaction event to ~/.claude/sessions/compaction-log.txt
  2. Marks the active session scratch file (*.tmp) with a compaction note
  3. If the live transcript has at least LEARN_MIN_MESSAGES user turns
     (default 8), copies it into ~/.claude/sessions/learning-queue/ with a
     .meta.json sidecar for /auto-learn

Exit codes:
- 0: Always (never block compaction)
"""

from __future__ import annotations

import sys
from pathlib import Path

# Add hooks directory to path for shared imports
sys.path.insert(0, str(Path(__file__).parent))

from _common import (
    append_file,
    ensure_dir,
    find_files,
    get_date_time_string,
    get_time_string,
    hook_boundary,
    log,
    log_debug,
    read_hook_input,
)
from _config import (
    DEFAULT_CONFIG_FILE,
    MIN_MESSAGES_ENV,
    PRECOMPACT_MIN_MESSAGES,
    LearningConfig,
    load_learning_config,
)
from _learning_queue import count_user_turns, write_queue_entry
from _repo_info import RepositoryInfoProvider


def annotate_active_session(sessions_dir: Path) -> Path | None:
    """Append a compaction note to the most recently modified *.tmp file."""
    sessions = find_files(sessions_dir, "*.tmp")
    if not sessions:
        return None
    append_file(
        sessions[0],
        f"\n---\n**[Compaction occurred at {get_time_string()}]** - Context was summarized\n",
    )
    return sessions[0]


def record_compaction(config: LearningConfig, timestamp: str) -> None:
    """Log the compaction and annotate the active session scratch file.

    The learned-skills directory and the scratch-file note are optional;
    failures there are logged and skipped.
    """
    ensure_dir(config.sessions_dir)
    append_file(config.compaction_log, f"[{timestamp}] Context compaction triggered\n")

    try:
        ensure_dir(config.learned_skills_dir)
    except (IOError, OSError) as e:
        log_debug(
            f"Cannot create learned skills dir {config.learned_skills_dir}",
            hook_name="pre-compact",
            error=e,
        )

    try:
        annotate_active_session(config.sessions_dir)
    except (IOError, OSError) as e:
        log_debug("Session scratch file annotation failed", hook_name="pre-compact", error=e)


def dump_transcript(
    config: LearningConfig,
    timestamp: str,
    repo_info: RepositoryInfoProvider | None = None,
) -> Path | None:
    """Queue the transcript if it is long enough. Returns the queued copy."""
    transcript = config.transcript_path
    if not transcript or not transcript.exists():
        return None

    message_count = count_user_turns(transcript)
    if message_count < config.min_messages:
        return None

    return write_queue_entry(config, timestamp, message_count, repo_info=repo_info)


def handle_pre_compact(
    config: LearningConfig,
    repo_info: RepositoryInfoProvider | None = None,
) -> Path | None:
    timestamp = get_date_time_string()
    # Bookkeeping must not cost the learning-queue write
    try:
        record_compaction(config, timestamp)
    except (IOError, OSError) as e:
        log_debug("Compaction bookkeeping failed", hook_name="pre-compact", error=e)
    dumped = dump_transcript(config, timestamp, repo_info=repo_info)
    log("[PreCompact] State saved before compaction")
    return dumped


@hook_boundary("PreCompact", hook_name="pre-compact")
def main():
    config = load_learning_config(
        hook_input=read_hook_input(),
        config_file=DEFAULT_CONFIG_FILE,
        default_min_messages=PRECOMPACT_MIN_MESSAGES,
        min_messages_env=MIN_MESSAGES_ENV,
        file_threshold=False,
    )
    handle_pre_compact(config)


if __name__ == "__main__":
    sys.exit(main())
