from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from itest.runner import build, lifecycle, readiness, scenario
from itest.runner import logging as runner_logging
from itest.runner.config import build_settings
from itest.runner.logging import LogSink
from itest.runner.models import RunContext, Toolchain, Variant


def contains_seq(cmd: list[str], tokens: list[str]) -> bool:
    if not tokens:
        return True
    size = len(tokens)
    return any(cmd[i : i + size] == tokens for i in range(len(cmd) - size + 1))


class CommandRecorder:
    """Stands in for run_and_stream: records commands and replays canned output."""

    def __init__(self) -> None:
        self.calls: list[list[str]] = []
        self.envs: list[dict[str, str]] = []
        self._rules: list[tuple[list[str], int, str | Callable[[], str]]] = []

    def respond(self, *tokens: str, rc: int = 0, output: str | Callable[[], str] = "") -> None:
        self._rules.append((list(tokens), rc, output))

    def __call__(self, cmd, *, cwd, env=None, log, printer=None, on_line=None) -> int:
        cmd = list(cmd)
        self.calls.append(cmd)
        self.envs.append(dict(env or {}))
        log.write_line(f"$ {' '.join(cmd)}")
        for tokens, rc, output in self._rules:
            if not contains_seq(cmd, tokens):
                continue
            text = output() if callable(output) else output
            if on_line:
                for line in text.splitlines():
                    on_line(line)
            return rc
        return 0

    def find(self, *tokens: str) -> list[int]:
        return [i for i, cmd in enumerate(self.calls) if contains_seq(cmd, list(tokens))]


@pytest.fixture
def run_ctx(tmp_path: Path):
    settings = build_settings({}, tmp_path)
    log = LogSink(tmp_path / "run.log")
    log.open()
    ctx = RunContext(
        settings=settings,
        tools=Toolchain(
            docker="/usr/bin/docker",
            compose=("/usr/local/bin/docker-compose",),
            curl="/usr/bin/curl",
            wait_for_it=None,
        ),
        variant=Variant(),
        log=log,
    )
    try:
        yield ctx
    finally:
        log.close()


@pytest.fixture
def commands(monkeypatch) -> CommandRecorder:
    recorder = CommandRecorder()
    for module in (runner_logging, lifecycle, build, readiness, scenario):
        monkeypatch.setattr(module, "run_and_stream", recorder)
    return recorder
