#!/usr/bin/env python3
"""
Stop Hook - Continuous Learning Session Evaluator

Runs once at session end (lighter than UserPromptSubmit, which fires on
every message). If the session had at least `min_session_length` user
turns (config/skills/continuous-learning/config.json, default 10), it
recommends running /auto-learn and reports how many transcripts are
already waiting in the learning queue.

Advisory only: nothing is written.

Exit codes:
- 0: Always (never block session end)
"""

from __future__ import annotations

import sys
from pathlib import Path

# Add hooks directory to path for shared imports
sys.path.insert(0, str(Path(__file__).parent))

from _common import hook_boundary, log, read_hook_input
from _config import DEFAULT_CONFIG_FILE, SESSION_END_MIN_MESSAGES, LearningConfig, load_learning_config
from _learning_queue import count_user_turns, list_pending_transcripts


def report_pending(queue_dir: Path) -> int:
    """Log the learning-queue backlog. Returns the number pending."""
    pending = len(list_pending_transcripts(queue_dir))
    if pending > 0:
        log(f"[ContinuousLearning] {pending} transcript(s) pending in learning-queue")
        log("[ContinuousLearning] Run /auto-learn to process them")
    return pending


def evaluate_session(config: LearningConfig) -> int | None:
    """Decide whether the finished session is worth a learning pass.

    Returns the user-turn count, or None when there is no transcript.
    """
    transcript = config.transcript_path
    if not transcript or not transcript.exists():
        return None

    message_count = count_user_turns(transcript)
    if message_count < config.min_messages:
        log(f"[ContinuousLearning] Session too short ({message_count} messages), skipping")
        return message_count

    log(f"[ContinuousLearning] Session has {message_count} messages - evaluate for extractable patterns")
    log("[ContinuousLearning] Run /auto-learn to extract patterns from this session")

    report_pending(config.queue_dir)
    return message_count


@hook_boundary("ContinuousLearning", hook_name="evaluate-session")
def main():
    config = load_learning_config(
        hook_input=read_hook_input(),
        config_file=DEFAULT_CONFIG_FILE,
        default_min_messages=SESSION_END_MIN_MESSAGES,
    )
    evaluate_session(config)


if __name__ == "__main__":
    sys.exit(main())
