# Where: itest/runner/errors.py
# What: Exception taxonomy for the orchestrator and its exit codes.
# Why: Components raise at the failing call site; run_tests maps them to exit codes once.
from __future__ import annotations

from itest.runner import constants


class OrchestratorError(RuntimeError):
    """Base error carrying the process exit code it should produce."""

    exit_code = constants.EXIT_UNEXPECTED

    def __init__(self, message: str, *, exit_code: int | None = None) -> None:
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(OrchestratorError):
    """Raised when the harness configuration file is missing or invalid."""


class MissingDependency(OrchestratorError):
    exit_code = constants.EXIT_MISSING_DEPENDENCY


class UnexpectedToolFailure(OrchestratorError):
    """A docker/compose/helper call exited non-zero; its code is propagated as-is."""

    def __init__(self, command: list[str], returncode: int) -> None:
        self.command = list(command)
        self.returncode = returncode
        super().__init__(
            f"command failed with exit code {returncode}: {' '.join(self.command)}",
            exit_code=returncode if returncode > 0 else constants.EXIT_UNEXPECTED,
        )


class BuildFailure(UnexpectedToolFailure):
    """An image build step failed. Builds are never retried."""

    def __init__(self, step: str, command: list[str], returncode: int) -> None:
        super().__init__(command, returncode)
        self.step = step
        self.args = (f"build step '{step}' failed with exit code {returncode}",)


class TestFailure(OrchestratorError):
    __test__ = False
    exit_code = constants.EXIT_TEST_FAILURE


class ModuleValidationFailure(TestFailure):
    pass


class AssertionFailure(TestFailure):
    """The HTTP assertion script returned non-zero for a scenario."""

    def __init__(self, scenario: str, returncode: int) -> None:
        super().__init__(f"HTTP assertions failed for {scenario} (exit code {returncode})")
        self.scenario = scenario
        self.returncode = returncode


class LogVerificationFailure(TestFailure):
    """The gateway did not log the configured signature version often enough."""

    def __init__(self, scenario: str, found: int, required: int) -> None:
        super().__init__(
            f"NGINX was not detected as using the correct signatures version for {scenario}: "
            f"found {found} marker(s), expected at least {required}"
        )
        self.scenario = scenario
        self.found = found
        self.required = required
