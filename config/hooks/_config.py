#!/usr/bin/env python3
"""
Configuration for the continuous-learning hooks.

Everything a hook needs from its environment is resolved once at startup
into a LearningConfig and passed down explicitly.

Minimum message count precedence:
    1. Environment override (only when the hook names one)
    2. `min_session_length` in the config file (only when a file is given)
    3. Built-in default for the hook
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

from _common import get_learned_skills_dir, get_sessions_dir, log_debug

HOOKS_DIR = Path(__file__).parent
DEFAULT_CONFIG_FILE = HOOKS_DIR.parent / "skills" / "continuous-learning" / "config.json"

TRANSCRIPT_PATH_ENV = "CLAUDE_TRANSCRIPT_PATH"
SESSION_ID_ENV = "CLAUDE_SESSION_ID"
MIN_MESSAGES_ENV = "LEARN_MIN_MESSAGES"

PRECOMPACT_MIN_MESSAGES = 8
SESSION_END_MIN_MESSAGES = 10

UNKNOWN_SESSION = "unknown"
QUEUE_DIR_NAME = "learning-queue"
COMPACTION_LOG_NAME = "compaction-log.txt"


@dataclass
class LearningConfig:
    """Resolved inputs for one hook invocation."""

    transcript_path: Path | None
    session_id: str
    min_messages: int
    sessions_dir: Path
    learned_skills_dir: Path
    # Fallback working directory when the transcript names none
    cwd: str

    @property
    def queue_dir(self) -> Path:
        return self.sessions_dir / QUEUE_DIR_NAME

    @property
    def compaction_log(self) -> Path:
        return self.sessions_dir / COMPACTION_LOG_NAME

    @property
    def short_session_id(self) -> str:
        return (self.session_id or UNKNOWN_SESSION)[-8:]


def read_config_file(path: Path | str | None) -> dict:
    """Load the JSON config file. Missing, malformed or non-object ⇒ {}."""
    if not path:
        return {}
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except (json.JSONDecodeError, UnicodeDecodeError, IOError, OSError) as e:
        log_debug(f"Ignoring unreadable config {path}", hook_name="config", error=e)
        return {}
    return data if isinstance(data, dict) else {}


def _non_negative_int(value) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value.lstrip("+").isdigit():
            return None
        value = int(value)
    if isinstance(value, int) and value >= 0:
        return value
    return None


def resolve_min_messages(env_value=None, file_value=None, default: int = 8) -> int:
    """Environment override > config file value > default.

    The env override accepts any non-negative integer, so "0" queues every
    transcript. A zero or missing file value means "use the default".
    Anything non-numeric is skipped.
    """
    parsed = _non_negative_int(env_value)
    if parsed is not None:
        return parsed
    parsed = _non_negative_int(file_value)
    if parsed:
        return parsed
    return default


def resolve_learned_skills_dir(file_value) -> Path:
    if isinstance(file_value, str) and file_value.strip():
        return Path(file_value.strip()).expanduser()
    return get_learned_skills_dir()


def load_learning_config(
    hook_input: dict | None = None,
    environ: dict | None = None,
    config_file: Path | str | None = None,
    default_min_messages: int = PRECOMPACT_MIN_MESSAGES,
    min_messages_env: str | None = None,
    file_threshold: bool = True,
    sessions_dir: Path | None = None,
    cwd: str | None = None,
) -> LearningConfig:
    """Build a LearningConfig from env vars, hook payload and config file.

    Args:
        hook_input: JSON payload from stdin (used when an env var is unset)
        environ: Environment mapping (defaults to os.environ)
        config_file: JSON config to consult, or None to skip the file
        default_min_messages: Built-in threshold for this hook
        min_messages_env: Env var allowed to override the threshold
        file_threshold: Whether the file's min_session_length applies
        sessions_dir: Override for ~/.claude/sessions
        cwd: Fallback working directory (defaults to payload cwd, then os.getcwd())
    """
    hook_input = hook_input or {}
    environ = os.environ if environ is None else environ
    file_config = read_config_file(config_file)

    transcript = environ.get(TRANSCRIPT_PATH_ENV) or hook_input.get("transcript_path")
    session_id = environ.get(SESSION_ID_ENV) or hook_input.get("session_id")

    env_min = environ.get(min_messages_env) if min_messages_env else None
    file_min = file_config.get("min_session_length") if file_threshold else None
    min_messages = resolve_min_messages(env_min, file_min, default_min_messages)

    payload_cwd = hook_input.get("cwd")
    if not cwd:
        cwd = payload_cwd if isinstance(payload_cwd, str) and payload_cwd else os.getcwd()

    return LearningConfig(
        transcript_path=Path(transcript) if isinstance(transcript, str) and transcript else None,
        session_id=str(session_id) if session_id else UNKNOWN_SESSION,
        min_messages=min_messages,
        sessions_dir=Path(sessions_dir) if sessions_dir else get_sessions_dir(),
        learned_skills_dir=resolve_learned_skills_dir(file_config.get("learned_skills_path")),
        cwd=cwd,
    )
