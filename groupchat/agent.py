"""Minimal agent entry point for end-to-end smoke runs.

    python -m groupchat.agent --test "call me Bob"

Handles the message the way the group handler would for a single test sender
and prints the reply between E2E markers so the runner can pick it out of the
rest of the output.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from dotenv import load_dotenv

from groupchat.config import E2E_REPLY_END, E2E_REPLY_START, LOG_DATEFMT, LOG_FORMAT, LOG_LEVEL
from groupchat.display_names import DisplayNameStore, format_group_message
from groupchat.paths import ensure_state_dir, get_env_path, get_state_dir

logger = logging.getLogger(__name__)

TEST_PLATFORM = "whatsapp"
TEST_SENDER = "test@s.whatsapp.net"


def reply_to(store: DisplayNameStore, message: str) -> str:
    confirmation = store.handle_name_command(TEST_PLATFORM, TEST_SENDER, message)
    if confirmation:
        return confirmation
    prompt = format_group_message(store.resolve_sender_name(TEST_PLATFORM, TEST_SENDER), message)
    logger.debug("Prompt for agent:\n%s", prompt)
    preferred = store.get(TEST_PLATFORM, TEST_SENDER)
    return f"Hi {preferred}, got it: {message}" if preferred else f"Got it: {message}"


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--test", metavar="MESSAGE", help="Run one message through the agent and exit")
    args = ap.parse_args(argv)

    # Log to stderr; stdout carries the reply
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
        stream=sys.stderr,
    )

    message = args.test or os.environ.get("TEST_MESSAGE")
    if not message:
        ap.print_usage(sys.stderr)
        return 2

    state_dir = ensure_state_dir(get_state_dir())
    load_dotenv(get_env_path(state_dir))
    logger.info("[test] Running with message: %s", message[:60])

    reply = reply_to(DisplayNameStore(state_dir), message)
    print(E2E_REPLY_START)
    print(reply)
    print(E2E_REPLY_END)
    return 0


if __name__ == "__main__":
    sys.exit(main())
