# Where: itest/runner/tests/test_scenario.py
# What: Unit tests for the scenario matrix driver and log-based verification.
# Why: Pin per-scenario ordering, the marker threshold and abort-on-first-failure behaviour.
from __future__ import annotations

import pytest

from itest.runner import lifecycle, readiness, scenario
from itest.runner.config import CANONICAL_MATRIX
from itest.runner.errors import AssertionFailure, LogVerificationFailure
from itest.runner.events import (
    EVENT_RUN_END,
    PHASE_ASSERTIONS_RUN,
    PHASE_DONE,
    PHASE_ENV_READY,
    PHASE_FAILED,
    PHASE_LOG_VERIFIED,
    STATUS_FAILED,
    STATUS_PASSED,
)
from itest.runner.models import ScenarioConfig
from itest.runner.ui import Reporter


class _RecordingReporter(Reporter):
    def __init__(self) -> None:
        self.events = []

    def emit(self, event) -> None:
        self.events.append(event)


def _gateway_log(version: int, count: int) -> str:
    lines = ["nginx: [notice] start worker processes"]
    for i in range(count):
        if i % 2:
            lines.append(f"js: AWS v{version} Auth header built")
        else:
            lines.append(f"js: AWS Signatures Version: v{version}")
    return "\n".join(lines) + "\n"


@pytest.fixture
def env_state(run_ctx, commands, monkeypatch):
    """Wire fakes so the gateway logs follow the most recent `up -d` configuration."""
    state = {"exists": False, "markers": 3}

    def fake_exists(_ctx) -> bool:
        return state["exists"]

    def fake_logs() -> str:
        up_calls = commands.find("up", "-d")
        version = int(commands.envs[up_calls[-1]]["AWS_SIGS_VERSION"])
        return _gateway_log(version, state["markers"])

    def on_created() -> str:
        state["exists"] = True
        return ""

    monkeypatch.setattr(lifecycle, "backend_container_exists", fake_exists)
    monkeypatch.setattr(readiness, "health_status", lambda _curl, _url: "200")
    commands.respond("up", "--no-start", output=on_created)
    commands.respond("logs", "nginx-s3-gateway", output=fake_logs)
    return state


def _matrix() -> list[ScenarioConfig]:
    return [ScenarioConfig(*key) for key in CANONICAL_MATRIX]


def test_count_signature_markers_accepts_either_phrasing() -> None:
    text = "\n".join(
        [
            "AWS Signatures Version: v4",
            "x AWS v4 Auth y",
            "AWS Signatures Version: v2",
            "AWS v2 Auth",
            "AWS Signatures Version: v4 and AWS v4 Auth on one line",
        ]
    )

    assert scenario.count_signature_markers(text, 4) == 3
    assert scenario.count_signature_markers(text, 2) == 2
    assert scenario.count_signature_markers("", 4) == 0


def test_verify_signature_logs_passes_at_threshold(run_ctx, commands) -> None:
    commands.respond("logs", output=_gateway_log(4, 3))

    found = scenario.verify_signature_logs(run_ctx, ScenarioConfig(4, 0, 0, 0), "scenario-4")

    assert found == 3


def test_verify_signature_logs_fails_below_threshold(run_ctx, commands, capsys) -> None:
    commands.respond("logs", output=_gateway_log(2, 2))

    with pytest.raises(LogVerificationFailure) as excinfo:
        scenario.verify_signature_logs(run_ctx, ScenarioConfig(2, 0, 0, 0), "scenario-1")

    assert excinfo.value.exit_code == 2
    assert excinfo.value.found == 2
    assert "AWS Signatures Version: v2" in capsys.readouterr().err


def test_wrong_version_markers_do_not_count(run_ctx, commands) -> None:
    commands.respond("logs", output=_gateway_log(2, 5))

    with pytest.raises(LogVerificationFailure):
        scenario.verify_signature_logs(run_ctx, ScenarioConfig(4, 0, 0, 0), "scenario-4")


def test_assertion_cmd_passes_base_url_fixture_dir_and_axes(run_ctx) -> None:
    cmd = scenario.assertion_cmd(run_ctx, ScenarioConfig(4, 1, 0, 1))

    assert cmd == [
        "bash",
        str(run_ctx.settings.assertion_script),
        "http://localhost:8989",
        str(run_ctx.settings.test_dir),
        "4",
        "1",
        "0",
        "1",
    ]


def test_run_matrix_runs_all_scenarios_in_order(run_ctx, commands, env_state) -> None:
    reporter = _RecordingReporter()
    runner = scenario.ScenarioRunner(run_ctx, reporter)

    results = runner.run_matrix(_matrix())

    assert [r.config.key for r in results] == list(CANONICAL_MATRIX)
    assert all(r.passed and r.http_assertions_passed for r in results)
    assert all(r.log_evidence_count == 3 for r in results)

    ups = commands.find("up", "-d")
    assertions = commands.find("bash")
    stops = commands.find("stop", "nginx-s3-gateway")
    assert len(ups) == len(assertions) == 6
    assert len(stops) == 5
    assert len(commands.find("up", "--no-start")) == 1
    for i in range(6):
        # each scenario's bring-up completes before its own assertions start
        assert ups[i] < assertions[i]
        assert commands.envs[ups[i]]["AWS_SIGS_VERSION"] == str(CANONICAL_MATRIX[i][0])
        assert commands.calls[assertions[i]][-4:] == [str(v) for v in CANONICAL_MATRIX[i]]
        if i < 5:
            assert assertions[i] < stops[i] < ups[i + 1]
    assert not commands.find("rm", "-f")

    assert runner.transitions[:4] == [
        ("scenario-1", PHASE_ENV_READY),
        ("scenario-1", PHASE_ASSERTIONS_RUN),
        ("scenario-1", PHASE_LOG_VERIFIED),
        ("scenario-1", PHASE_DONE),
    ]
    assert runner.state == PHASE_DONE
    run_end = [e for e in reporter.events if e.event_type == EVENT_RUN_END]
    assert run_end[0].data["status"] == STATUS_PASSED


def test_assertion_failure_aborts_matrix(run_ctx, commands, env_state) -> None:
    commands.respond("bash", rc=1)
    reporter = _RecordingReporter()
    runner = scenario.ScenarioRunner(run_ctx, reporter)

    with pytest.raises(AssertionFailure) as excinfo:
        runner.run_matrix(_matrix())

    assert excinfo.value.exit_code == 2
    assert "scenario-1" in str(excinfo.value)
    assert len(commands.find("bash")) == 1
    assert not commands.find("logs")
    assert runner.state == PHASE_FAILED
    assert len(run_ctx.results) == 1
    assert run_ctx.results[0].http_assertions_passed is False
    assert run_ctx.results[0].passed is False
    run_end = [e for e in reporter.events if e.event_type == EVENT_RUN_END]
    assert run_end[0].data["status"] == STATUS_FAILED


def test_log_verification_failure_aborts_matrix(run_ctx, commands, env_state) -> None:
    env_state["markers"] = 2
    runner = scenario.ScenarioRunner(run_ctx, _RecordingReporter())

    with pytest.raises(LogVerificationFailure):
        runner.run_matrix(_matrix())

    assert len(commands.find("bash")) == 1
    assert not commands.find("stop")
    result = run_ctx.results[0]
    assert result.http_assertions_passed is True
    assert result.passed is False
    assert runner.transitions[-1] == ("scenario-1", PHASE_FAILED)


def test_unhealthy_backend_does_not_block_assertions(run_ctx, commands, env_state, monkeypatch) -> None:
    monkeypatch.setattr(readiness, "health_status", lambda _curl, _url: "503")
    monkeypatch.setattr(readiness.time, "sleep", lambda _sec: None)
    runner = scenario.ScenarioRunner(run_ctx, _RecordingReporter())

    result = runner.run_scenario(1, ScenarioConfig(2, 0, 0, 0))

    assert result.passed is True
    assert len(commands.find("bash")) == 1
