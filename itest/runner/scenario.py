# Where: itest/runner/scenario.py
# What: Drives the configuration matrix: bring-up, HTTP assertions, log verification per scenario.
# Why: Keep per-scenario state transitions and pass/fail attribution in one place.
from __future__ import annotations

import logging
import sys
import time
from typing import Callable, TypeVar

from itest.runner import constants, lifecycle, readiness
from itest.runner.errors import AssertionFailure, LogVerificationFailure
from itest.runner.events import (
    EVENT_PHASE_END,
    EVENT_PHASE_START,
    EVENT_RUN_END,
    EVENT_RUN_START,
    EVENT_SCENARIO_END,
    EVENT_SCENARIO_START,
    PHASE_ASSERTIONS_RUN,
    PHASE_DONE,
    PHASE_ENV_READY,
    PHASE_FAILED,
    PHASE_LOG_VERIFIED,
    STATUS_FAILED,
    STATUS_PASSED,
    Event,
)
from itest.runner.logging import child_env, run_and_stream, safe_print
from itest.runner.models import RunContext, ScenarioConfig, ScenarioResult
from itest.runner.ui import Reporter

logger = logging.getLogger(__name__)

T = TypeVar("T")


def signature_markers(version: int) -> list[str]:
    return [fmt.format(version=version) for fmt in constants.SIGNATURE_MARKER_FORMATS]


def count_signature_markers(log_text: str, version: int) -> int:
    """Count log lines mentioning signature version `version` in either phrasing."""
    markers = signature_markers(version)
    return sum(1 for line in log_text.splitlines() if any(marker in line for marker in markers))


def assertion_cmd(ctx: RunContext, config: ScenarioConfig) -> list[str]:
    settings = ctx.settings
    return [
        "bash",
        str(settings.assertion_script),
        settings.gateway_url,
        str(settings.test_dir),
        *config.as_args(),
    ]


def run_assertions(ctx: RunContext, config: ScenarioConfig, name: str) -> None:
    ctx.emit(f"Starting HTTP API tests (v{config.signature_version} signatures)")
    rc = run_and_stream(
        assertion_cmd(ctx, config),
        cwd=ctx.settings.root,
        env=child_env(),
        log=ctx.log,
        printer=ctx.printer,
    )
    if rc != 0:
        raise AssertionFailure(f"{name} ({config.label})", rc)


def verify_signature_logs(ctx: RunContext, config: ScenarioConfig, name: str) -> int:
    gateway_logs = lifecycle.logs(ctx, ctx.settings.environment.gateway_service)
    found = count_signature_markers(gateway_logs, config.signature_version)
    if found < constants.MIN_SIGNATURE_MARKERS:
        logger.error(
            "NGINX was not detected as using the correct signatures version - examine logs "
            "(scenario %s, AWS_SIGS_VERSION=%s, markers found=%d)",
            name,
            config.signature_version,
            found,
        )
        for line in gateway_logs.splitlines():
            safe_print(line, stream=sys.stderr)
        raise LogVerificationFailure(
            f"{name} ({config.label})", found, constants.MIN_SIGNATURE_MARKERS
        )
    return found


class ScenarioRunner:
    """Runs the matrix strictly in order, aborting the whole run on the first failure."""

    def __init__(self, ctx: RunContext, reporter: Reporter) -> None:
        self.ctx = ctx
        self.reporter = reporter
        self.state: str | None = None
        self.transitions: list[tuple[str, str]] = []

    def run_matrix(self, matrix: list[ScenarioConfig]) -> list[ScenarioResult]:
        self.reporter.emit(Event(EVENT_RUN_START, data={"total": len(matrix)}))
        failed: str | None = None
        completed = False
        try:
            for index, config in enumerate(matrix, start=1):
                if index > 1:
                    # Only the gateway restarts; the backend keeps its fixture data.
                    lifecycle.stop(self.ctx, self.ctx.settings.environment.gateway_service)
                self.run_scenario(index, config)
            completed = True
        except Exception as exc:
            failed = str(exc)
            raise
        finally:
            self.reporter.emit(
                Event(
                    EVENT_RUN_END,
                    data={
                        "status": STATUS_PASSED if completed else STATUS_FAILED,
                        "results": list(self.ctx.results),
                        "failed": failed,
                    },
                )
            )
        return list(self.ctx.results)

    def run_scenario(self, index: int, config: ScenarioConfig) -> ScenarioResult:
        name = f"scenario-{index}"
        self._announce(config)
        self.reporter.emit(Event(EVENT_SCENARIO_START, scenario=name, message=config.title))
        started = time.monotonic()
        http_passed = False
        found = 0
        try:
            self._phase(name, PHASE_ENV_READY, lambda: self._bring_up(config))
            self._phase(name, PHASE_ASSERTIONS_RUN, lambda: run_assertions(self.ctx, config, name))
            http_passed = True
            found = self._phase(
                name,
                PHASE_LOG_VERIFIED,
                lambda: verify_signature_logs(self.ctx, config, name),
            )
        except Exception as exc:
            self._transition(name, PHASE_FAILED)
            logger.error("%s failed [%s]: %s", name, config.label, exc)
            self._record(config, http_passed, found, passed=False, started=started)
            self.reporter.emit(
                Event(EVENT_SCENARIO_END, scenario=name, data={"status": STATUS_FAILED})
            )
            raise

        self._transition(name, PHASE_DONE)
        result = self._record(config, http_passed, found, passed=True, started=started)
        self.reporter.emit(Event(EVENT_SCENARIO_END, scenario=name, data={"status": STATUS_PASSED}))
        return result

    def _bring_up(self, config: ScenarioConfig) -> None:
        lifecycle.ensure_running(self.ctx, config)
        readiness.await_environment(self.ctx)

    def _announce(self, config: ScenarioConfig) -> None:
        if config.title:
            self.ctx.emit(config.title)
        self.ctx.emit(f"Integration test suite for v{config.signature_version} signatures")
        self.ctx.emit(
            f"Integration test suite with {constants.ENV_ALLOW_DIRECTORY_LIST}="
            f"{config.allow_directory_listing}"
        )
        self.ctx.emit(
            f"Integration test suite with {constants.ENV_PROVIDE_INDEX_PAGE}="
            f"{config.provide_index_page}"
        )
        self.ctx.emit(
            f"Integration test suite with {constants.ENV_APPEND_SLASH}="
            f"{config.append_slash_for_directory}"
        )

    def _phase(self, name: str, phase: str, fn: Callable[[], T]) -> T:
        self.reporter.emit(Event(EVENT_PHASE_START, scenario=name, phase=phase))
        started = time.monotonic()
        try:
            value = fn()
        except Exception:
            duration = time.monotonic() - started
            self.reporter.emit(
                Event(
                    EVENT_PHASE_END,
                    scenario=name,
                    phase=phase,
                    data={"status": STATUS_FAILED, "duration": duration},
                )
            )
            raise
        duration = time.monotonic() - started
        self._transition(name, phase)
        self.reporter.emit(
            Event(
                EVENT_PHASE_END,
                scenario=name,
                phase=phase,
                data={"status": STATUS_PASSED, "duration": duration},
            )
        )
        return value

    def _transition(self, name: str, state: str) -> None:
        self.state = state
        self.transitions.append((name, state))

    def _record(
        self,
        config: ScenarioConfig,
        http_passed: bool,
        found: int,
        *,
        passed: bool,
        started: float,
    ) -> ScenarioResult:
        result = ScenarioResult(
            config=config,
            http_assertions_passed=http_passed,
            log_evidence_count=found,
            passed=passed,
            duration=time.monotonic() - started,
        )
        self.ctx.results.append(result)
        return result
