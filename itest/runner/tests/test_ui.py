from __future__ import annotations

from itest.runner.events import (
    EVENT_PHASE_END,
    EVENT_PHASE_START,
    EVENT_RUN_END,
    EVENT_RUN_START,
    PHASE_ASSERTIONS_RUN,
    STATUS_FAILED,
    STATUS_PASSED,
    Event,
)
from itest.runner.models import ScenarioConfig, ScenarioResult
from itest.runner.ui import PlainReporter


def _result(passed: bool, http: bool = True, markers: int = 3) -> ScenarioResult:
    return ScenarioResult(
        config=ScenarioConfig(4, 1, 0, 0),
        http_assertions_passed=http,
        log_evidence_count=markers,
        passed=passed,
        duration=1.25,
    )


def test_summary_lists_each_scenario(capsys) -> None:
    reporter = PlainReporter(verbose=False, color=False, emoji=False)

    reporter.emit(Event(EVENT_RUN_START, data={"total": 6}))
    reporter.emit(
        Event(EVENT_RUN_END, data={"status": STATUS_PASSED, "results": [_result(True)]})
    )

    out = capsys.readouterr().out
    assert "[matrix] 6 scenario(s) queued" in out
    assert "PASS" in out
    assert "markers=3" in out
    assert "All integration tests complete" in out


def test_summary_reports_failure_detail(capsys) -> None:
    reporter = PlainReporter(verbose=False, color=False, emoji=False)

    reporter.emit(
        Event(
            EVENT_RUN_END,
            data={
                "status": STATUS_FAILED,
                "results": [_result(False, http=False, markers=0)],
                "failed": "HTTP assertions failed for scenario-1",
            },
        )
    )

    out = capsys.readouterr().out
    assert "FAIL" in out
    assert "http=failed" in out
    assert "Integration tests failed: HTTP assertions failed for scenario-1" in out


def test_phase_start_only_printed_when_verbose(capsys) -> None:
    quiet = PlainReporter(verbose=False, color=False, emoji=False)
    loud = PlainReporter(verbose=True, color=False, emoji=False)
    start = Event(EVENT_PHASE_START, scenario="scenario-1", phase=PHASE_ASSERTIONS_RUN)

    quiet.emit(start)
    assert capsys.readouterr().out == ""

    loud.emit(start)
    loud.emit(
        Event(
            EVENT_PHASE_END,
            scenario="scenario-1",
            phase=PHASE_ASSERTIONS_RUN,
            data={"status": STATUS_PASSED, "duration": 0.5},
        )
    )
    lines = capsys.readouterr().out.splitlines()
    assert lines[0].startswith("[scenario-1] assertions_run")
    assert lines[0].endswith("... start")
    assert lines[1].endswith("PASS (0.5s)")
