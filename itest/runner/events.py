# Where: itest/runner/events.py
# What: Event and status definitions for run reporting.
# Why: Provide a stable, decoupled contract between execution and UI.
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

EVENT_RUN_START = "run_start"
EVENT_RUN_END = "run_end"
EVENT_SCENARIO_START = "scenario_start"
EVENT_SCENARIO_END = "scenario_end"
EVENT_PHASE_START = "phase_start"
EVENT_PHASE_END = "phase_end"

STATUS_PASSED = "passed"
STATUS_FAILED = "failed"

# Scenario states, in order.
PHASE_ENV_READY = "env_ready"
PHASE_ASSERTIONS_RUN = "assertions_run"
PHASE_LOG_VERIFIED = "log_verified"
PHASE_DONE = "done"
PHASE_FAILED = "failed"

SCENARIO_PHASES = (PHASE_ENV_READY, PHASE_ASSERTIONS_RUN, PHASE_LOG_VERIFIED)


@dataclass(frozen=True)
class Event:
    event_type: str
    scenario: str | None = None
    phase: str | None = None
    message: str | None = None
    data: dict[str, Any] = field(default_factory=dict)
    ts: float = field(default_factory=time.monotonic)
