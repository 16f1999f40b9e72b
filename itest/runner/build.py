# Where: itest/runner/build.py
# What: Gateway image builds (OSS/Plus, BuildKit secrets, latest NJS layer) and the njs module check.
# Why: Keep build strategy selection isolated from scenario orchestration.
from __future__ import annotations

import logging
import subprocess

from itest.runner import constants
from itest.runner.errors import BuildFailure, ModuleValidationFailure
from itest.runner.logging import child_env, run_and_stream
from itest.runner.models import RunContext, Variant

logger = logging.getLogger(__name__)


def parse_variant(value: str | None) -> Variant:
    if not value:
        return Variant()
    nginx_type = constants.VARIANT_PLUS if value.endswith("plus") else constants.VARIANT_OSS
    return Variant(nginx_type=nginx_type, latest_njs=value.startswith(constants.LATEST_NJS_PREFIX))


def buildkit_available(docker: str) -> bool:
    try:
        result = subprocess.run(
            [docker, "info"],
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            text=True,
            check=False,
        )
    except OSError:
        return False
    return constants.BUILDKIT_MARKER in (result.stdout or "")


def base_build_cmd(ctx: RunContext, *, buildkit: bool) -> list[str]:
    settings = ctx.settings
    nginx_type = ctx.variant.nginx_type
    tags = ["--tag", settings.image_name, "--tag", f"{settings.image_name}:{nginx_type}"]
    if ctx.variant.is_plus and buildkit:
        return [
            ctx.tools.docker,
            "build",
            "-f",
            f"Dockerfile.buildkit.{nginx_type}",
            "--secret",
            f"id=nginx-crt,src={settings.license_cert}",
            "--secret",
            f"id=nginx-key,src={settings.license_key}",
            "--no-cache",
            "--squash",
            *tags,
            ".",
        ]
    return [ctx.tools.docker, "build", "-f", f"Dockerfile.{nginx_type}", *tags, "."]


def latest_njs_build_cmd(ctx: RunContext) -> list[str]:
    image = ctx.settings.image_name
    return [
        ctx.tools.docker,
        "build",
        "-f",
        "Dockerfile.latest-njs",
        "--tag",
        image,
        "--tag",
        f"{image}:latest-njs-{ctx.variant.nginx_type}",
        ".",
    ]


def build_images(ctx: RunContext) -> None:
    ctx.emit("Building NGINX S3 gateway Docker image")
    extra_env: dict[str, str] = {}
    buildkit = False
    if ctx.variant.is_plus:
        buildkit = buildkit_available(ctx.tools.docker)
        if buildkit:
            ctx.emit("Building using BuildKit")
            extra_env["DOCKER_BUILDKIT"] = "1"
    _run_build(ctx, "base", base_build_cmd(ctx, buildkit=buildkit), extra_env)

    if ctx.variant.latest_njs:
        ctx.emit("Layering in latest NJS build")
        _run_build(ctx, "latest-njs", latest_njs_build_cmd(ctx), {})


def module_check_cmd(ctx: RunContext) -> list[str]:
    settings = ctx.settings
    cmd = [
        ctx.tools.docker,
        "run",
        "--rm",
        "-v",
        f"{settings.unit_test_dir}:/var/tmp",
        "--workdir",
        "/var/tmp",
    ]
    for key, value in constants.UNIT_TEST_ENV:
        cmd.extend(["-e", f"{key}={value}"])
    cmd.extend(
        [
            "--entrypoint",
            "/usr/bin/njs",
            settings.image_name,
            "-t",
            "module",
            "-p",
            "/etc/nginx",
            f"/var/tmp/{settings.unit_test_script}",
        ]
    )
    return cmd


def validate_modules(ctx: RunContext) -> None:
    """Run the njs unit test script once inside the freshly built image."""
    ctx.emit("Running unit tests in Docker image")
    # Stops Git Bash on Windows from rewriting the container-side paths.
    env = child_env({"MSYS_NO_PATHCONV": "1"})
    rc = run_and_stream(
        module_check_cmd(ctx),
        cwd=ctx.settings.root,
        env=env,
        log=ctx.log,
        printer=ctx.printer,
    )
    if rc != 0:
        raise ModuleValidationFailure(f"njs module unit tests failed with exit code {rc}")


def _run_build(ctx: RunContext, step: str, cmd: list[str], extra_env: dict[str, str]) -> None:
    rc = run_and_stream(
        cmd,
        cwd=ctx.settings.root,
        env=child_env(extra_env),
        log=ctx.log,
        printer=ctx.printer,
    )
    if rc != 0:
        logger.error("Image build step '%s' failed with exit code %s", step, rc)
        raise BuildFailure(step, cmd, rc)
