# Where: itest/runner/ui.py
# What: Plain reporter for scenario progress and the final matrix summary.
# Why: Keep output deterministic and separate from orchestration.
from __future__ import annotations

import os
import sys
import time

from itest.runner.events import (
    EVENT_PHASE_END,
    EVENT_PHASE_START,
    EVENT_RUN_END,
    EVENT_RUN_START,
    EVENT_SCENARIO_END,
    EVENT_SCENARIO_START,
    SCENARIO_PHASES,
    STATUS_FAILED,
    STATUS_PASSED,
    Event,
)
from itest.runner.logging import safe_print
from itest.runner.models import ScenarioResult

_COLOR_RESET = "\033[0m"
_COLOR_GREEN = "\033[32m"
_COLOR_RED = "\033[31m"
_COLOR_BOLD = "\033[1m"


def _resolve_feature(flag: bool | None, default: bool) -> bool:
    if flag is None:
        return default
    return bool(flag)


def _format_duration(seconds: float) -> str:
    if seconds < 60:
        return f"{seconds:.1f}s"
    total = int(seconds)
    mins = total // 60
    secs = total % 60
    return f"{mins}m{secs:02d}s"


class Reporter:
    def start(self) -> None:
        return None

    def emit(self, event: Event) -> None:
        raise NotImplementedError

    def close(self) -> None:
        return None


class PlainReporter(Reporter):
    def __init__(
        self,
        *,
        verbose: bool,
        color: bool | None = None,
        emoji: bool | None = None,
    ) -> None:
        self._verbose = verbose
        is_tty = sys.stdout.isatty()
        term = os.environ.get("TERM", "").lower()
        color_default = is_tty and term != "dumb" and not os.environ.get("NO_COLOR")
        emoji_default = is_tty and term != "dumb" and not os.environ.get("NO_EMOJI")
        self._color = _resolve_feature(color, color_default)
        self._emoji = _resolve_feature(emoji, emoji_default)
        self._phase_width = max(len(phase) for phase in SCENARIO_PHASES)
        self._started: dict[str, float] = {}

    def _emoji_prefix(self, emoji: str) -> str:
        if not self._emoji or not emoji:
            return ""
        return f"{emoji} "

    def _colorize(self, text: str, color: str) -> str:
        if not self._color:
            return text
        return f"{color}{text}{_COLOR_RESET}"

    def _status_word(self, status: str) -> str:
        if status == STATUS_PASSED:
            return self._colorize("PASS", _COLOR_GREEN)
        if status == STATUS_FAILED:
            return self._colorize("FAIL", _COLOR_RED)
        return status

    def emit(self, event: Event) -> None:
        if event.event_type == EVENT_RUN_START:
            total = event.data.get("total", 0)
            safe_print(f"[matrix] {self._emoji_prefix('🧪')}{total} scenario(s) queued")
            return

        if event.event_type == EVENT_SCENARIO_START and event.scenario:
            self._started[event.scenario] = time.monotonic()
            title = event.message or ""
            header = self._colorize(f"{title}", _COLOR_BOLD) if title else ""
            safe_print(f"[{event.scenario}] {self._emoji_prefix('🚀')}started {header}".rstrip())
            return

        if event.event_type == EVENT_PHASE_START and event.scenario and event.phase:
            if self._verbose:
                label = event.phase.ljust(self._phase_width)
                safe_print(f"[{event.scenario}] {label} ... start")
            return

        if event.event_type == EVENT_PHASE_END and event.scenario and event.phase:
            status = event.data.get("status", "")
            duration = event.data.get("duration")
            suffix = f" ({_format_duration(duration)})" if duration is not None else ""
            label = event.phase.ljust(self._phase_width)
            safe_print(f"[{event.scenario}] {label} ... {self._status_word(status)}{suffix}")
            return

        if event.event_type == EVENT_SCENARIO_END and event.scenario:
            status = event.data.get("status", "")
            started = self._started.pop(event.scenario, None)
            duration = _format_duration(time.monotonic() - started) if started else ""
            suffix = f" ({duration})" if duration else ""
            safe_print(
                f"[{event.scenario}] {self._emoji_prefix('🏁')}done ... "
                f"{self._status_word(status)}{suffix}"
            )
            return

        if event.event_type == EVENT_RUN_END:
            self._print_summary(event)

    def _print_summary(self, event: Event) -> None:
        results: list[ScenarioResult] = list(event.data.get("results", []))
        status = event.data.get("status", "")
        safe_print("")
        safe_print("[matrix] summary")
        for result in results:
            word = self._status_word(STATUS_PASSED if result.passed else STATUS_FAILED)
            http = "ok" if result.http_assertions_passed else "failed"
            safe_print(
                f"  {word}  {result.config.label:<28} http={http:<6} "
                f"markers={result.log_evidence_count} ({_format_duration(result.duration)})"
            )
        if status == STATUS_PASSED:
            safe_print(f"[matrix] {self._emoji_prefix('✅')}All integration tests complete")
        else:
            failed = event.data.get("failed")
            detail = f": {failed}" if failed else ""
            safe_print(f"[matrix] {self._emoji_prefix('❌')}Integration tests failed{detail}")
