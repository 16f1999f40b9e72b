# Where: itest/runner/models.py
# What: Dataclasses for the gateway test run: scenarios, results, tools and run context.
# Why: Keep execution inputs explicit and avoid implicit global state.
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from itest.runner import constants
from itest.runner.logging import LogSink


class ExitOutcome(enum.IntEnum):
    SUCCESS = constants.EXIT_SUCCESS
    UNEXPECTED_ERROR = constants.EXIT_UNEXPECTED
    TEST_FAILURE = constants.EXIT_TEST_FAILURE
    MISSING_DEPENDENCY = constants.EXIT_MISSING_DEPENDENCY


@dataclass(frozen=True)
class ToolDependency:
    name: str
    path: str | None = None

    @property
    def available(self) -> bool:
        return bool(self.path)


@dataclass(frozen=True)
class ScenarioConfig:
    signature_version: int
    allow_directory_listing: int
    provide_index_page: int
    append_slash_for_directory: int
    title: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        if self.signature_version not in (2, 4):
            raise ValueError(f"signature_version must be 2 or 4, got {self.signature_version!r}")
        for name in ("allow_directory_listing", "provide_index_page", "append_slash_for_directory"):
            value = getattr(self, name)
            if value not in (0, 1):
                raise ValueError(f"{name} must be 0 or 1, got {value!r}")

    @property
    def key(self) -> tuple[int, int, int, int]:
        return (
            self.signature_version,
            self.allow_directory_listing,
            self.provide_index_page,
            self.append_slash_for_directory,
        )

    @property
    def label(self) -> str:
        return "v{}/list={}/index={}/slash={}".format(*self.key)

    def as_args(self) -> list[str]:
        return [str(value) for value in self.key]

    def to_env(self) -> dict[str, str]:
        return {
            constants.ENV_COMPOSE_COMPATIBILITY: "true",
            constants.ENV_SIGS_VERSION: str(self.signature_version),
            constants.ENV_ALLOW_DIRECTORY_LIST: str(self.allow_directory_listing),
            constants.ENV_PROVIDE_INDEX_PAGE: str(self.provide_index_page),
            constants.ENV_APPEND_SLASH: str(self.append_slash_for_directory),
        }


@dataclass(frozen=True)
class ScenarioResult:
    config: ScenarioConfig
    http_assertions_passed: bool
    log_evidence_count: int
    passed: bool
    duration: float = 0.0


@dataclass(frozen=True)
class Variant:
    nginx_type: str = constants.VARIANT_OSS
    latest_njs: bool = False

    @property
    def is_plus(self) -> bool:
        return self.nginx_type == constants.VARIANT_PLUS


@dataclass(frozen=True)
class EnvironmentHandle:
    """The compose project under test.

    The backend container is created once and keeps its fixture data for the
    whole run; the gateway service is recreated for every scenario.
    """

    project: str
    compose_file: Path
    backend_service: str
    gateway_service: str

    @property
    def backend_container(self) -> str:
        # COMPOSE_COMPATIBILITY=true keeps v1 style "<project>_<service>_1" names.
        return f"{self.project}_{self.backend_service}_1"

    def compose_args(self, *args: str) -> list[str]:
        return ["-f", str(self.compose_file), "-p", self.project, *args]


@dataclass(frozen=True)
class Settings:
    root: Path
    compose_project: str = constants.COMPOSE_PROJECT
    compose_file: Path = Path(constants.COMPOSE_FILE)
    test_dir: Path = Path(constants.TEST_DIR)
    gateway_proto: str = constants.GATEWAY_PROTO
    gateway_host: str = constants.GATEWAY_HOST
    gateway_port: int = constants.GATEWAY_PORT
    gateway_service: str = constants.GATEWAY_SERVICE
    backend_url: str = constants.BACKEND_URL
    backend_health_path: str = constants.BACKEND_HEALTH_PATH
    backend_service: str = constants.BACKEND_SERVICE
    image_name: str = constants.IMAGE_NAME
    assertion_script: Path = Path(constants.ASSERTION_SCRIPT)
    unit_test_dir: Path = Path(constants.UNIT_TEST_DIR)
    unit_test_script: str = constants.UNIT_TEST_SCRIPT
    license_cert: Path = Path(constants.LICENSE_CERT)
    license_key: Path = Path(constants.LICENSE_KEY)

    @property
    def gateway_url(self) -> str:
        return f"{self.gateway_proto}://{self.gateway_host}:{self.gateway_port}"

    @property
    def backend_health_url(self) -> str:
        return f"{self.backend_url.rstrip('/')}{self.backend_health_path}"

    @property
    def environment(self) -> EnvironmentHandle:
        return EnvironmentHandle(
            project=self.compose_project,
            compose_file=self.compose_file,
            backend_service=self.backend_service,
            gateway_service=self.gateway_service,
        )

    @property
    def fixture_data_dir(self) -> Path:
        return self.test_dir / constants.FIXTURE_DATA_SUBDIR


@dataclass(frozen=True)
class Toolchain:
    docker: str
    compose: tuple[str, ...]
    curl: str
    wait_for_it: str | None = None


@dataclass
class RunContext:
    settings: Settings
    tools: Toolchain
    variant: Variant
    log: LogSink
    printer: Callable[[str], None] | None = None
    step_printer: Callable[[str], None] | None = None
    results: list[ScenarioResult] = field(default_factory=list)

    def compose_cmd(self, *args: str) -> list[str]:
        return [*self.tools.compose, *self.settings.environment.compose_args(*args)]

    def emit(self, message: str) -> None:
        self.log.write_line(message)
        if self.step_printer:
            self.step_printer(message)
