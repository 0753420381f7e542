"""Per-user preferred display names in group chats.

Each user can set only their own preferred name ("call me Bob", "/myname Bob");
other users cannot set it for them. The mapping lives in one JSON file in the
state dir and is used when building "Message from <name> in the group" so the
bot addresses people the way they asked.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
import threading
import time

from groupchat.config import DISPLAY_NAMES_FILENAME, WRITE_BACKOFF_BASE, WRITE_MAX_RETRIES

logger = logging.getLogger(__name__)

PLATFORMS = ("whatsapp", "telegram")
DEFAULT_SENDER_LABEL = "A group member"

# Checked in order; the first match wins. Single line only.
NAME_COMMAND_PATTERNS = (
    re.compile(r"^/myname\s+(.+)$", re.IGNORECASE),
    re.compile(r"^call\s+me\s+(.+)$", re.IGNORECASE),
)


def display_name_key(platform: str, sender_id) -> str | None:
    """Storage key for a sender, or None if the sender id is blank.

    WhatsApp passes the full participant JID (123@s.whatsapp.net), Telegram the
    user id. Trimmed and lowercased so both transports map one person to one key.
    """
    if sender_id is None:
        return None
    sid = str(sender_id).strip().lower()
    if not sid:
        return None
    return f"{platform}:{sid}"


def parse_set_display_name_message(text) -> str | None:
    """Return the requested name if text is a set-my-name command, else None."""
    if not text or not isinstance(text, str):
        return None
    t = text.strip()
    for pattern in NAME_COMMAND_PATTERNS:
        m = pattern.match(t)
        if m:
            name = m.group(1).strip()
            return name or None
    return None


def format_group_message(sender_name: str | None, text: str, greeting_hint: str = "") -> str:
    if not sender_name:
        return text
    return f"Message from {sender_name} in the group:{greeting_hint}\n\n{text}"


class DisplayNameStore:
    def __init__(self, state_dir: str):
        self.state_dir = state_dir
        self._lock = threading.Lock()

    @property
    def path(self) -> str:
        return os.path.join(self.state_dir, DISPLAY_NAMES_FILENAME)

    # ── File I/O ──────────────────────────────────────────────────────

    def _load(self) -> dict:
        """Read the mapping. Anything unreadable counts as no preferences."""
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = f.read()
        except FileNotFoundError:
            logger.debug("Display names file not found: %s", self.path)
            return {}
        except OSError as e:
            logger.warning("Cannot read %s: %s", self.path, e)
            return {}
        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Invalid JSON in %s, treating as empty", self.path)
            return {}
        if not isinstance(data, dict):
            logger.warning("Unexpected %s at top level of %s, treating as empty", type(data).__name__, self.path)
            return {}
        return data

    def _save(self, data: dict) -> None:
        """Write the whole mapping via temp file + rename (with retry)."""
        serialized = json.dumps(data, ensure_ascii=False, separators=(",", ":"))

        def _do():
            os.makedirs(self.state_dir, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.state_dir, prefix=".tmp_", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(serialized)
                os.replace(tmp, self.path)
            except Exception:
                try:
                    os.unlink(tmp)
                except OSError:
                    pass
                raise

        for attempt in range(1, WRITE_MAX_RETRIES + 1):
            try:
                _do()
                return
            except OSError as e:
                if attempt < WRITE_MAX_RETRIES:
                    delay = WRITE_BACKOFF_BASE * (2 ** (attempt - 1))
                    logger.warning(
                        "I/O error on %s (attempt %d/%d), retrying in %.1fs: %s",
                        self.path, attempt, WRITE_MAX_RETRIES, delay, e,
                    )
                    time.sleep(delay)
                else:
                    logger.error("I/O error on %s after %d attempts: %s", self.path, WRITE_MAX_RETRIES, e)
                    raise

    # ── Preferences ───────────────────────────────────────────────────

    def get(self, platform: str, sender_id) -> str | None:
        """Preferred display name for a sender, or None if they never set one."""
        key = display_name_key(platform, sender_id)
        if key is None:
            return None
        value = self._load().get(key)
        if not isinstance(value, str):
            return None
        return value.strip() or None

    def set(self, platform: str, sender_id, name) -> None:
        """Set the preferred display name for a sender; blank name clears it.

        Only call this when the message author is setting their own name.
        """
        key = display_name_key(platform, sender_id)
        if key is None:
            logger.debug("Ignoring display name update for blank %s sender id", platform)
            return
        self._put(key, name.strip() if isinstance(name, str) else "")

    def _put(self, key: str, trimmed: str) -> None:
        with self._lock:
            data = self._load()
            if trimmed:
                data[key] = trimmed
            else:
                data.pop(key, None)
            self._save(data)
        logger.info("Display name %s for %s", "set" if trimmed else "cleared", key)

    # ── Group message helpers ─────────────────────────────────────────

    def resolve_sender_name(self, platform: str, sender_id, fallback: str | None = None) -> str:
        """Preferred name, else the transport's name, else a generic label."""
        preferred = self.get(platform, sender_id)
        if preferred:
            return preferred
        if isinstance(fallback, str) and fallback.strip():
            return fallback.strip()
        return DEFAULT_SENDER_LABEL

    def handle_name_command(self, platform: str, sender_id, text) -> str | None:
        """Store the name if text is a set-my-name command and return a confirmation.

        Returns None when the text is not a name command (or the sender is
        unknown) so the caller carries on with normal processing.
        """
        name = parse_set_display_name_message(text)
        key = display_name_key(platform, sender_id)
        if name is None or key is None:
            return None
        self._put(key, name)
        return f"Got it, I'll call you {name}."
