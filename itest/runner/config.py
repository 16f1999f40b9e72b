from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from itest.runner.errors import ConfigError
from itest.runner.models import ScenarioConfig, Settings

PACKAGE_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG_FILE = PACKAGE_ROOT / "config" / "harness.yaml"

# Hand-picked pairings: both signature versions, each boolean axis on at least once.
CANONICAL_MATRIX = (
    (2, 0, 0, 0),
    (2, 1, 0, 0),
    (2, 0, 1, 0),
    (4, 0, 0, 0),
    (4, 1, 0, 1),
    (4, 0, 1, 1),
)

_PATH_FIELDS = (
    "compose_file",
    "test_dir",
    "assertion_script",
    "unit_test_dir",
    "license_cert",
    "license_key",
)
_STR_FIELDS = (
    "compose_project",
    "gateway_proto",
    "gateway_host",
    "gateway_service",
    "backend_url",
    "backend_health_path",
    "backend_service",
    "image_name",
    "unit_test_script",
)
_MATRIX_FIELDS = (
    "signature_version",
    "allow_directory_listing",
    "provide_index_page",
    "append_slash_for_directory",
)


def load_harness_config(path: Path | None = None) -> dict[str, Any]:
    config_file = path or DEFAULT_CONFIG_FILE
    if not config_file.exists():
        raise ConfigError(f"Harness config not found: {config_file}")
    with open(config_file, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid harness config {config_file}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Harness config must be a map: {config_file}")
    return data


def build_settings(raw: dict[str, Any] | None, root: Path) -> Settings:
    raw = raw or {}
    if not isinstance(raw, dict):
        raise ConfigError("'settings' must be a map")
    root = root.resolve()
    values: dict[str, Any] = {"root": root}
    for name in _STR_FIELDS:
        if name in raw:
            values[name] = _require_non_empty(raw, name)
    for name in _PATH_FIELDS:
        value = _require_non_empty(raw, name) if name in raw else str(getattr(Settings, name))
        values[name] = _resolve_path(root, value)
    if "gateway_port" in raw:
        try:
            values["gateway_port"] = int(raw["gateway_port"])
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"settings field 'gateway_port' must be an integer: {exc}") from exc
    return Settings(**values)


def build_matrix(entries: Any) -> list[ScenarioConfig]:
    if not isinstance(entries, list):
        raise ConfigError("'matrix' must be a list")
    matrix: list[ScenarioConfig] = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise ConfigError(f"matrix entry #{index + 1} must be a map")
        missing = [name for name in _MATRIX_FIELDS if name not in entry]
        if missing:
            raise ConfigError(f"matrix entry #{index + 1} is missing {', '.join(missing)}")
        try:
            values = {name: int(entry[name]) for name in _MATRIX_FIELDS}
            matrix.append(ScenarioConfig(title=str(entry.get("title", "")).strip(), **values))
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"matrix entry #{index + 1} is invalid: {exc}") from exc

    keys = tuple(config.key for config in matrix)
    if keys != CANONICAL_MATRIX:
        raise ConfigError(
            f"matrix must list exactly the canonical scenarios in order {list(CANONICAL_MATRIX)}, "
            f"got {list(keys)}"
        )
    return matrix


def load_run_config(path: Path | None, root: Path) -> tuple[Settings, list[ScenarioConfig]]:
    data = load_harness_config(path)
    settings = build_settings(data.get("settings"), root)
    matrix = build_matrix(data.get("matrix", []))
    return settings, matrix


def _require_non_empty(raw: dict[str, Any], field: str) -> str:
    value = raw.get(field)
    normalized = "" if value is None else str(value).strip()
    if normalized == "":
        raise ConfigError(f"settings field '{field}' must be non-empty")
    return normalized


def _resolve_path(root: Path, value: str) -> Path:
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = root / path
    return path

