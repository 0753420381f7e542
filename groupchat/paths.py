"""State directory and paths. Config, credentials and cron state live in
~/.groupchat (or wherever GROUPCHAT_STATE_DIR points)."""

from __future__ import annotations

import os

from groupchat.config import STATE_DIR_ENV, STATE_DIRNAME


def get_state_dir() -> str:
    """Resolve the state directory.

    Relative overrides are resolved from home, not cwd, so the bot sees the
    same state whether it runs from a terminal or a daemon.
    """
    override = (os.environ.get(STATE_DIR_ENV) or "").strip()
    home = os.path.expanduser("~")
    if override:
        return override if os.path.isabs(override) else os.path.join(home, override)
    return os.path.join(home, STATE_DIRNAME)


def get_default_state_dir() -> str:
    """The state dir ignoring any override (where real credentials live)."""
    return os.path.join(os.path.expanduser("~"), STATE_DIRNAME)


def get_config_path(state_dir: str | None = None) -> str:
    return os.path.join(state_dir or get_state_dir(), "config.json")


def get_env_path(state_dir: str | None = None) -> str:
    return os.path.join(state_dir or get_state_dir(), ".env")


def get_cron_dir(state_dir: str | None = None) -> str:
    return os.path.join(state_dir or get_state_dir(), "cron")


def ensure_state_dir(state_dir: str | None = None) -> str:
    """Create the state dir and its cron/ subdir. Returns the state dir."""
    base = state_dir or get_state_dir()
    os.makedirs(get_cron_dir(base), exist_ok=True)
    return base
