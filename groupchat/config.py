"""Centralized configuration: all tunable constants in one place.

Each setting reads from an env variable with a default.
Import from here instead of hardcoding values.
"""

from __future__ import annotations

import os


def _int(key: str, default: int) -> int:
    return int(os.environ.get(key, default))


def _float(key: str, default: float) -> float:
    return float(os.environ.get(key, default))


# ── State directory ──────────────────────────────────────────────────────────
STATE_DIR_ENV = "GROUPCHAT_STATE_DIR"
STATE_DIRNAME = ".groupchat"

# ── Display names ────────────────────────────────────────────────────────────
DISPLAY_NAMES_FILENAME = "group-display-names.json"

# ── Store I/O ────────────────────────────────────────────────────────────────
WRITE_MAX_RETRIES = _int("WRITE_MAX_RETRIES", 3)
WRITE_BACKOFF_BASE = _float("WRITE_BACKOFF_BASE", 0.5)

# ── E2E agent runner ─────────────────────────────────────────────────────────
E2E_REPLY_START = "E2E_REPLY_START"
E2E_REPLY_END = "E2E_REPLY_END"
E2E_AGENT_CMD = os.environ.get("E2E_AGENT_CMD", "")  # empty: python -m groupchat.agent
E2E_TIMEOUT_SECONDS = _int("E2E_TIMEOUT_SECONDS", 0)  # 0 = wait forever

# ── Logging ──────────────────────────────────────────────────────────────────
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
