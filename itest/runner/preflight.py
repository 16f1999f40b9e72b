# Where: itest/runner/preflight.py
# What: Dependency probing for docker, compose, curl and the wait-for-it helper.
# Why: Fail fast with a distinct exit code before any build or container work starts.
from __future__ import annotations

import logging
import os
import re
import shutil
import subprocess

from itest.runner import constants
from itest.runner.errors import MissingDependency
from itest.runner.models import Settings, ToolDependency, Toolchain, Variant

logger = logging.getLogger(__name__)

_COMPOSE_VERSION_RE = re.compile(constants.COMPOSE_VERSION_PATTERN)


def resolve_tool(name: str) -> ToolDependency:
    resolved = shutil.which(name)
    if resolved and os.path.isfile(resolved) and os.access(resolved, os.X_OK):
        return ToolDependency(name=name, path=os.path.abspath(resolved))
    return ToolDependency(name=name, path=None)


def require_tool(name: str) -> str:
    tool = resolve_tool(name)
    if not tool.available:
        raise MissingDependency(
            f"required dependency not found: {name} not found in the path or not executable"
        )
    return tool.path or ""


def resolve_compose(docker_path: str) -> tuple[str, ...]:
    """Prefer standalone docker-compose, else accept a working `docker compose` plugin."""
    standalone = resolve_tool("docker-compose")
    if standalone.available:
        return (standalone.path or "",)

    if plugin_compose_available(docker_path):
        logger.warning("Using built-in compose instead of standalone docker-compose")
        return (docker_path, "compose")

    raise MissingDependency(
        "required dependency not found: docker-compose not found in the path or not executable"
    )


def plugin_compose_available(docker_path: str) -> bool:
    try:
        probe = subprocess.run(
            [docker_path, "compose", "version"],
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            text=True,
            check=False,
        )
    except OSError as exc:
        logger.debug("docker compose probe failed: %s", exc)
        return False
    if probe.returncode != 0:
        return False
    return bool(_COMPOSE_VERSION_RE.match((probe.stdout or "").strip()))


def check_license_files(settings: Settings) -> None:
    if not settings.license_cert.is_file():
        raise MissingDependency(f"NGINX Plus certificate file not found: {settings.license_cert}")
    if not settings.license_key.is_file():
        raise MissingDependency(f"NGINX Plus key file not found: {settings.license_key}")


def probe_dependencies(settings: Settings, variant: Variant) -> Toolchain:
    docker = require_tool("docker")
    compose = resolve_compose(docker)
    curl = require_tool("curl")

    wait_for_it = resolve_tool("wait-for-it")
    if not wait_for_it.available:
        logger.warning(
            "wait-for-it command not available, consider installing to prevent race conditions"
        )

    if variant.is_plus:
        check_license_files(settings)

    return Toolchain(docker=docker, compose=compose, curl=curl, wait_for_it=wait_for_it.path)
