# Where: itest/runner/lifecycle.py
# What: Lifecycle operations (ensure/stop/remove/logs) for the compose test environment.
# Why: Separate environment orchestration from scenario execution logic.
from __future__ import annotations

import subprocess

from itest.runner.errors import UnexpectedToolFailure
from itest.runner.logging import child_env, run_and_capture, run_and_stream
from itest.runner.models import RunContext, ScenarioConfig


def backend_container_exists(ctx: RunContext) -> bool:
    name = ctx.settings.environment.backend_container
    cmd = [ctx.tools.docker, "ps", "-a", "-q", "--filter", f"name=^/?{name}$"]
    result = subprocess.run(cmd, capture_output=True, text=True)
    if result.returncode != 0:
        raise UnexpectedToolFailure(cmd, result.returncode)
    return bool(result.stdout.strip())


def ensure_running(ctx: RunContext, config: ScenarioConfig) -> None:
    """Bring the environment up with `config`, creating and seeding it on first use.

    `compose up -d` recreates only the containers whose environment changed, so
    calling this repeatedly with the same configuration leaves one environment
    and never re-copies the fixture data.
    """
    scenario_env = config.to_env()
    if not backend_container_exists(ctx):
        ctx.emit("Building Docker Compose environment")
        _compose(ctx, "up", "--no-start", extra_env=scenario_env)
        seed_fixture_data(ctx)

    ctx.emit("Starting Docker Compose Environment")
    _compose(ctx, "up", "-d", extra_env=scenario_env)


def seed_fixture_data(ctx: RunContext) -> None:
    settings = ctx.settings
    container = settings.environment.backend_container
    ctx.emit("Adding test data to container")
    ctx.log.write_line(f"Copying contents of {settings.fixture_data_dir} to {container}:/")
    _docker(ctx, "cp", str(settings.fixture_data_dir), f"{container}:/")
    ctx.log.write_line("Docker diff output:")
    _docker(ctx, "diff", container)


def stop(ctx: RunContext, service: str | None = None) -> None:
    args = ["stop"]
    if service:
        args.append(service)
    _compose(ctx, *args)


def remove(ctx: RunContext) -> None:
    _compose(ctx, "rm", "-f")


def logs(ctx: RunContext, service: str | None = None, *, echo: bool = False) -> str:
    args = ["logs"]
    if service:
        args.append(service)
    rc, output = run_and_capture(
        ctx.compose_cmd(*args),
        cwd=ctx.settings.root,
        env=child_env(),
        log=ctx.log,
        printer=ctx.printer if echo else None,
    )
    if rc != 0:
        raise UnexpectedToolFailure(ctx.compose_cmd(*args), rc)
    return output


def _compose(ctx: RunContext, *args: str, extra_env: dict[str, str] | None = None) -> None:
    cmd = ctx.compose_cmd(*args)
    rc = run_and_stream(
        cmd,
        cwd=ctx.settings.root,
        env=child_env(extra_env),
        log=ctx.log,
        printer=ctx.printer,
    )
    if rc != 0:
        raise UnexpectedToolFailure(cmd, rc)


def _docker(ctx: RunContext, *args: str) -> None:
    cmd = [ctx.tools.docker, *args]
    rc = run_and_stream(cmd, cwd=ctx.settings.root, env=child_env(), log=ctx.log, printer=ctx.printer)
    if rc != 0:
        raise UnexpectedToolFailure(cmd, rc)
