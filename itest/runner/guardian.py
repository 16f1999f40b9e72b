# Where: itest/runner/guardian.py
# What: Guaranteed teardown of the compose project on success, error and termination signals.
# Why: No exit path may leave containers behind, and cleanup must never mask the original outcome.
from __future__ import annotations

import logging
import signal
from types import FrameType
from typing import Any, Callable

from itest.runner import constants, lifecycle
from itest.runner.errors import OrchestratorError
from itest.runner.models import RunContext

logger = logging.getLogger(__name__)

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def exit_status_for(exc: BaseException | None) -> int:
    if exc is None:
        return constants.EXIT_SUCCESS
    if isinstance(exc, OrchestratorError):
        return exc.exit_code
    if isinstance(exc, SystemExit):
        if exc.code is None:
            return constants.EXIT_SUCCESS
        if isinstance(exc.code, int):
            return exc.code
        return constants.EXIT_UNEXPECTED
    if isinstance(exc, KeyboardInterrupt):
        return 128 + signal.SIGINT
    return constants.EXIT_UNEXPECTED


class CleanupGuardian:
    """Context manager that stops and removes the environment exactly once on exit.

    SIGINT/SIGTERM are turned into ``SystemExit(128 + signum)`` so the same
    exit path runs for signals as for errors. The original
    exception propagates unchanged after cleanup.
    """

    def __init__(self, ctx: RunContext) -> None:
        self.ctx = ctx
        self.exit_status: int | None = None
        self._previous: dict[int, Any] = {}
        self._cleaned = False

    def __enter__(self) -> CleanupGuardian:
        self.install()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            try:
                self.cleanup(exit_status_for(exc))
            except SystemExit as interrupted:
                # Signal landed before the handlers were switched to SIG_IGN.
                self.cleanup(exit_status_for(interrupted))
                raise
        finally:
            self.uninstall()
        return False

    def install(self) -> None:
        for signum in HANDLED_SIGNALS:
            self._previous[signum] = signal.signal(signum, self._on_signal)

    def uninstall(self) -> None:
        for signum, handler in self._previous.items():
            signal.signal(signum, handler)
        self._previous.clear()

    def _on_signal(self, signum: int, _frame: FrameType | None) -> None:
        logger.warning("Received %s - cleaning up before exit", signal.Signals(signum).name)
        raise SystemExit(128 + signum)

    def cleanup(self, status: int) -> None:
        if self._cleaned:
            return
        for signum in self._previous:
            signal.signal(signum, signal.SIG_IGN)
        self._cleaned = True
        self.exit_status = status

        if status != constants.EXIT_SUCCESS:
            logger.error("Error running tests - outputting container logs")
            self._best_effort("logs", lambda: lifecycle.logs(self.ctx, echo=True))

        self.ctx.emit("Cleaning up Docker compose environment")
        self._best_effort("stop", lambda: lifecycle.stop(self.ctx))
        self._best_effort("remove", lambda: lifecycle.remove(self.ctx))

    def _best_effort(self, step: str, fn: Callable[[], object]) -> None:
        try:
            fn()
        except Exception as exc:
            logger.warning("Cleanup step '%s' failed: %s", step, exc)
