# Where: itest/runner/logging.py
# What: Log sink, step printer and subprocess streaming helpers for the test run.
# Why: Ensure full logs are always persisted while keeping console output readable.
from __future__ import annotations

import os
import subprocess
import sys
import threading
from pathlib import Path
from typing import Callable, TextIO

_OUTPUT_LOCK = threading.Lock()
_SECRET_KEY_PARTS = ("SECRET", "PASSWORD", "TOKEN")
_REDACTED = "***"
_CHILD_STOP_TIMEOUT = 10.0
_STEP_MARK = "▶"
_COLOR_STEP = "\033[34;1m"
_COLOR_RESET = "\033[0m"


def safe_print(message: str = "", *, prefix: str | None = None, stream: TextIO | None = None) -> None:
    target = stream or sys.stdout
    with _OUTPUT_LOCK:
        if prefix:
            print(f"{prefix} {message}", file=target, flush=True)
        else:
            print(message, file=target, flush=True)


def color_enabled(flag: bool | None = None) -> bool:
    if flag is not None:
        return bool(flag)
    if not sys.stdout.isatty():
        return False
    if os.environ.get("TERM", "").lower() == "dumb":
        return False
    return not os.environ.get("NO_COLOR")


class LogSink:
    def __init__(self, path: Path) -> None:
        self.path = path
        self._file: TextIO | None = None
        self._lock = threading.Lock()

    def open(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file = self.path.open("w", encoding="utf-8")

    def close(self) -> None:
        if self._file:
            self._file.close()
            self._file = None

    def write_line(self, line: str) -> None:
        if self._file is None:
            raise RuntimeError("LogSink is not open")
        with self._lock:
            self._file.write(f"{line}\n")
            self._file.flush()

    def tail(self, lines: int = 40) -> list[str]:
        if not self.path.exists():
            return []
        content = self.path.read_text(encoding="utf-8", errors="replace").splitlines()
        return content[-lines:] if len(content) > lines else content


def make_step_printer(*, color: bool | None = None) -> Callable[[str], None]:
    """Return a printer rendering lines as "▶ message" steps."""
    use_color = color_enabled(color)
    mark = f"{_COLOR_STEP}{_STEP_MARK}{_COLOR_RESET}" if use_color else _STEP_MARK

    def _printer(line: str) -> None:
        safe_print(line, prefix=mark)

    return _printer


def make_plain_printer() -> Callable[[str], None]:
    def _printer(line: str) -> None:
        safe_print(line)

    return _printer


def run_and_stream(
    cmd: list[str],
    *,
    cwd: Path,
    env: dict[str, str] | None = None,
    log: LogSink,
    printer: Callable[[str], None] | None = None,
    on_line: Callable[[str], None] | None = None,
) -> int:
    display_cmd = redact_cmd(cmd)
    rendered_cmd = f"$ {' '.join(display_cmd)}"
    log.write_line(rendered_cmd)
    if printer:
        printer(rendered_cmd)
    proc = subprocess.Popen(
        cmd,
        cwd=str(cwd),
        env=env,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        bufsize=1,
        errors="replace",
    )
    assert proc.stdout is not None
    try:
        for raw_line in proc.stdout:
            line = raw_line.rstrip("\n")
            log.write_line(line)
            if on_line:
                on_line(line)
            if printer:
                printer(line)
    except BaseException:
        _stop_child(proc)
        raise
    finally:
        proc.stdout.close()
    return proc.wait()


def _stop_child(proc: subprocess.Popen, timeout: float = _CHILD_STOP_TIMEOUT) -> None:
    """Terminate an abandoned child, escalating to kill if it ignores SIGTERM."""
    if proc.poll() is not None:
        return
    proc.terminate()
    try:
        proc.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        proc.kill()
        proc.wait()


def run_and_capture(
    cmd: list[str],
    *,
    cwd: Path,
    env: dict[str, str] | None = None,
    log: LogSink,
    printer: Callable[[str], None] | None = None,
) -> tuple[int, str]:
    """Like run_and_stream, but also return the collected output."""
    lines: list[str] = []
    rc = run_and_stream(cmd, cwd=cwd, env=env, log=log, printer=printer, on_line=lines.append)
    return rc, "\n".join(lines)


def child_env(extra: dict[str, str] | None = None) -> dict[str, str]:
    env = os.environ.copy()
    if extra:
        env.update(extra)
    return env


def redact_cmd(cmd: list[str]) -> list[str]:
    return [_redact_token(token) for token in cmd]


def _redact_token(token: str) -> str:
    if "=" not in token:
        return token
    key, value = token.split("=", 1)
    canonical_key = key.strip("\"'").upper()
    if value and any(part in canonical_key for part in _SECRET_KEY_PARTS):
        return f"{key}={_REDACTED}"
    return token
