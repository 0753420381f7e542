"""Smoke test for the agent: send each message, print what came back, done.

No fake tools, no injected memory, no prompt tweaks: the agent runs on its own
prompt, skills and memory. State goes to an isolated dir (~/.groupchat-test) so
cron can write without touching the real state; config.json and .env are
copied from the real state dir so credentials still work.

Usage:
    python -m groupchat.sim.run_agent_scenarios               # all scenarios
    python -m groupchat.sim.run_agent_scenarios "one message" # single message
    TEST_MESSAGE="..." python -m groupchat.sim.run_agent_scenarios
"""

from __future__ import annotations

import argparse
import logging
import os
import re
import shlex
import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from groupchat.config import (
    E2E_AGENT_CMD,
    E2E_REPLY_END,
    E2E_REPLY_START,
    E2E_TIMEOUT_SECONDS,
    LOG_DATEFMT,
    LOG_FORMAT,
    LOG_LEVEL,
    STATE_DIR_ENV,
)
from groupchat.paths import get_default_state_dir

logger = logging.getLogger(__name__)

NO_REPLY = "(no reply or markers not found)"
DIVIDER = "─" * 60

_REPLY_RE = re.compile(
    re.escape(E2E_REPLY_START) + r"\s*\n(.*)\n" + re.escape(E2E_REPLY_END),
    re.DOTALL,
)


@dataclass
class Scenario:
    name: str
    message: str


@dataclass
class RunResult:
    status: int
    reply: str
    stderr: str


SCENARIOS = [
    Scenario("cron add (clear)", "Remind me to call Bishwas tomorrow at 5:30 p.m."),
    Scenario("cron list", "List my reminders"),
    Scenario("cron unclear (blue moon)", "Remind me next week on the blue moon"),
    Scenario("search (time)", "What's the current time?"),
    Scenario("search (weather)", "Weather in Tokyo"),
    Scenario("chat", "Hello, what is 2+2?"),
]


def default_agent_cmd() -> list[str]:
    if E2E_AGENT_CMD.strip():
        return shlex.split(E2E_AGENT_CMD)
    return [sys.executable, "-m", "groupchat.agent"]


def default_test_state_dir() -> Path:
    """Sibling of the real state dir, so it never lands inside the install."""
    return Path(get_default_state_dir() + "-test")


def ensure_test_state_dir(test_state_dir: Path, default_state_dir: Path) -> None:
    """Create the isolated state dir and copy real config/credentials into it."""
    (test_state_dir / "cron").mkdir(parents=True, exist_ok=True)
    for fname in ("config.json", ".env"):
        src = default_state_dir / fname
        if src.exists():
            shutil.copyfile(src, test_state_dir / fname)


def extract_reply(stdout: str) -> str:
    out = stdout or ""
    m = _REPLY_RE.search(out)
    if m:
        return m.group(1).strip()
    return out.strip() or NO_REPLY


def preview(message: str, limit: int = 60) -> str:
    return message[:limit] + ("…" if len(message) > limit else "")


def run_one(
    message: str,
    *,
    agent_cmd: list[str],
    test_state_dir: Path,
    default_state_dir: Path,
    cwd: Path | None = None,
    timeout: float | None = None,
) -> RunResult:
    ensure_test_state_dir(test_state_dir, default_state_dir)
    env = {**os.environ, STATE_DIR_ENV: str(test_state_dir)}
    try:
        p = subprocess.run(
            agent_cmd + ["--test", message],
            cwd=str(cwd) if cwd else None,
            env=env,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        partial = e.stdout.decode("utf-8", "replace") if isinstance(e.stdout, bytes) else (e.stdout or "")
        logger.warning("Agent timed out after %ss", timeout)
        return RunResult(status=124, reply=extract_reply(partial), stderr=f"timed out after {timeout}s")
    except OSError as e:
        logger.error("Failed to start agent %s: %s", agent_cmd, e)
        return RunResult(status=127, reply="", stderr=str(e))

    return RunResult(status=p.returncode, reply=extract_reply(p.stdout), stderr=(p.stderr or "").strip())


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("message", nargs="?", help="Run only this message (scenario 'single')")
    ap.add_argument("--agent-cmd", help="Agent command line (default: E2E_AGENT_CMD or python -m groupchat.agent)")
    ap.add_argument("--state-dir", help="Isolated state dir (default: ~/.groupchat-test)")
    ap.add_argument("--timeout", type=float, default=E2E_TIMEOUT_SECONDS, help="Per-scenario timeout in seconds, 0 = none")
    args = ap.parse_args(argv)

    load_dotenv()
    load_dotenv("env.local")
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
    )

    single = args.message or os.environ.get("TEST_MESSAGE")
    runs = [Scenario("single", single)] if single else SCENARIOS

    agent_cmd = shlex.split(args.agent_cmd) if args.agent_cmd else default_agent_cmd()
    test_state_dir = Path(args.state_dir) if args.state_dir else default_test_state_dir()
    default_state_dir = Path(get_default_state_dir())
    timeout = args.timeout or None

    failed = 0
    for sc in runs:
        print("\n" + DIVIDER)
        print("Scenario:", sc.name)
        print("Message:", preview(sc.message))
        print(DIVIDER)
        result = run_one(
            sc.message,
            agent_cmd=agent_cmd,
            test_state_dir=test_state_dir,
            default_state_dir=default_state_dir,
            timeout=timeout,
        )
        print("Reply:", result.reply or "(empty)")
        if result.stderr.strip():
            print("Logs:", " ".join(result.stderr.strip().split("\n")[-3:]))
        if result.status != 0:
            failed += 1

    print("\n" + DIVIDER)
    print("Done. Scenarios:", len(runs), "Failed:", failed)
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
