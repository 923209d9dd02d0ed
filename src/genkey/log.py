"""Timestamped output, severity levels + GitHub Actions formatting."""

import os
import sys
import threading
from datetime import datetime
from enum import IntEnum

from genkey.errors import ConfigurationError


class Severity(IntEnum):
    """Message priorities, most severe first."""

    ERROR = 0
    WARN = 1
    INFO = 2
    VERBOSE = 3
    DEBUG = 4


def parse_severity(name: str | int | Severity) -> Severity:
    """Accept ``"warn"``, ``"WARNING"``, ``1`` or a Severity."""
    if isinstance(name, Severity):
        return name
    if isinstance(name, int):
        return Severity(name)
    key = name.strip().upper()
    if key == "WARNING":
        key = "WARN"
    try:
        return Severity[key]
    except KeyError:
        choices = ", ".join(s.name.lower() for s in Severity)
        raise ValueError(f"Unknown log level {name!r} (expected one of: {choices})") from None


def _timestamp() -> str:
    return datetime.now().strftime("%H:%M:%S")


def _is_github_actions() -> bool:
    return os.environ.get("GITHUB_ACTIONS") == "true"


def _threshold_from_env() -> Severity:
    try:
        return parse_severity(os.environ.get("GENKEY_LOG_LEVEL", "info"))
    except ValueError as e:
        raise ConfigurationError(f"GENKEY_LOG_LEVEL: {e}", fields=["GENKEY_LOG_LEVEL"]) from None


def info(msg: str) -> None:
    print(f"[{_timestamp()}] {msg}", flush=True)


def header(title: str) -> None:
    line = f"── {title} " + "─" * max(0, 45 - len(title))
    if _is_github_actions():
        print(f"::group::{title}", flush=True)
    info(line)


def footer(title: str) -> None:
    line = f"── {title} " + "─" * max(0, 45 - len(title))
    info(line)
    if _is_github_actions():
        print("::endgroup::", flush=True)


def step(msg: str) -> None:
    info(f"  {msg}")


def success(msg: str) -> None:
    info(f"  ✓ {msg}")


def warning(msg: str) -> None:
    if _is_github_actions():
        print(f"::warning::{msg}", flush=True)
    print(f"[{_timestamp()}] WARNING: {msg}", file=sys.stderr, flush=True)


def error(msg: str) -> None:
    if _is_github_actions():
        print(f"::error::{msg}", flush=True)
    print(f"[{_timestamp()}] ERROR: {msg}", file=sys.stderr, flush=True)


class ConsoleSink:
    """Log sink for subprocess output: ``write(level, line)``.

    Lines less severe than *threshold* are dropped. Called from both pump
    threads, so each line is written under a lock to keep lines whole.
    """

    def __init__(self, threshold: Severity | None = None, prefix: str = ""):
        self.threshold = _threshold_from_env() if threshold is None else threshold
        self.prefix = prefix
        self._lock = threading.Lock()

    def enabled(self, level: Severity) -> bool:
        return level <= self.threshold

    def write(self, level: Severity, line: str) -> None:
        if not self.enabled(level):
            return
        text = f"{self.prefix}{line}"
        with self._lock:
            if level == Severity.ERROR:
                error(text)
            elif level == Severity.WARN:
                warning(text)
            else:
                step(text)
