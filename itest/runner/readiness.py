# Where: itest/runner/readiness.py
# What: Bounded health polling of the storage backend and TCP wait on the gateway.
# Why: Reduce start-order races without turning readiness into a hard gate.
from __future__ import annotations

import logging
import subprocess
import time

from itest.runner import constants
from itest.runner.errors import UnexpectedToolFailure
from itest.runner.logging import child_env, run_and_stream
from itest.runner.models import RunContext

logger = logging.getLogger(__name__)


def health_status(curl: str, url: str) -> str:
    result = subprocess.run(
        [curl, "-s", "-o", "/dev/null", "-w", "%{http_code}", url],
        capture_output=True,
        text=True,
    )
    return (result.stdout or "").strip()


def poll_health(
    ctx: RunContext,
    url: str,
    *,
    attempts: int = constants.HEALTH_ATTEMPTS,
    delay: float = constants.HEALTH_DELAY_SECONDS,
) -> bool:
    """Return True once `url` answers 200; False after `attempts` tries.

    Exhausting the attempts is not fatal: the assertion step reports the real
    failure if the backend never came up.
    """
    for attempt in range(1, attempts + 1):
        ctx.log.write_line("Querying minio server to see if it is ready")
        status = health_status(ctx.tools.curl, url)
        if status == constants.HEALTH_READY_STATUS:
            return True
        ctx.log.write_line(f"  attempt {attempt}/{attempts}: status {status or '<none>'}")
        if attempt < attempts:
            time.sleep(delay)
    logger.warning("%s not healthy after %d attempts; continuing", url, attempts)
    return False


def wait_for_port(ctx: RunContext, host: str, port: int) -> None:
    helper = ctx.tools.wait_for_it
    if not helper:
        return
    cmd = [helper, "-h", host, "-p", str(port)]
    rc = run_and_stream(cmd, cwd=ctx.settings.root, env=child_env(), log=ctx.log, printer=ctx.printer)
    if rc != 0:
        raise UnexpectedToolFailure(cmd, rc)


def await_environment(ctx: RunContext) -> bool:
    settings = ctx.settings
    ready = poll_health(ctx, settings.backend_health_url)
    wait_for_port(ctx, settings.gateway_host, settings.gateway_port)
    return ready
