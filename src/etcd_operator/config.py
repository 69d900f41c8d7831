"""Config file loading and auto-discovery for the etcd operator.

Searches for ``etcd-operator.yaml`` in the current directory and parent
directories and parses it into an immutable OperatorConfig. The config
value is passed explicitly to the watch stream and the platform client;
nothing is stored at module level.
"""

from __future__ import annotations

import dataclasses
import enum
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from etcd_operator.controller import ErrorPolicy
from etcd_operator.manifests import DEFAULT_IMAGE
from etcd_operator.provisioner import RollbackPolicy
from etcd_operator.watch.stream import DecodeErrorPolicy

CONFIG_FILENAME = "etcd-operator.yaml"
DEFAULT_MASTER = "http://127.0.0.1:8080"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class OperatorConfig:
    """Parsed operator configuration."""

    config_path: Path | None = None
    master: str = DEFAULT_MASTER
    namespace: str = "default"
    group: str = "coreos.com"
    image: str = DEFAULT_IMAGE
    decode_errors: DecodeErrorPolicy = DecodeErrorPolicy.ABORT
    on_error: ErrorPolicy = ErrorPolicy.ABORT
    rollback: RollbackPolicy = RollbackPolicy.LEAVE
    log_level: str = "INFO"

    def with_overrides(self, **overrides: Any) -> OperatorConfig:
        """Return a copy with every non-None override applied and validated."""
        data = {k: v for k, v in overrides.items() if v is not None}
        if not data:
            return self
        return dataclasses.replace(self, **_coerce(data, self.config_path))


def find_config(start: Path | None = None) -> Path | None:
    """Walk from *start* (default ``cwd()``) up to the filesystem root.

    Returns the first ``etcd-operator.yaml`` found, or ``None``.
    """
    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent


def load_config(
    path: str | Path | None = None,
    *,
    auto_discover: bool = True,
) -> OperatorConfig:
    """Load an operator config file.

    Resolution order:

    1. Explicit *path* (error if it doesn't exist).
    2. Auto-discover by walking parent directories.
    3. Return an empty ``OperatorConfig`` (all defaults).
    """
    config_path: Path | None = None

    if path is not None:
        config_path = Path(path).resolve()
        if not config_path.is_file():
            msg = f"Config file not found: {config_path}"
            raise FileNotFoundError(msg)
    elif auto_discover:
        config_path = find_config()

    if config_path is None:
        return OperatorConfig()

    return _parse_config(config_path)


def _parse_config(config_path: Path) -> OperatorConfig:
    """Read and parse a YAML config file."""
    text = config_path.read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}

    if not isinstance(data, dict):
        msg = f"Expected a YAML mapping in {config_path}, got {type(data).__name__}"
        raise ValueError(msg)

    known = {f.name for f in dataclasses.fields(OperatorConfig)} - {"config_path"}
    unknown = sorted(set(data) - known)
    if unknown:
        msg = f"Unknown keys in {config_path}: {', '.join(unknown)}"
        raise ValueError(msg)

    return OperatorConfig(config_path=config_path, **_coerce(data, config_path))


def _coerce(data: dict[str, Any], source: Path | None) -> dict[str, Any]:
    """Validate raw values and convert policy names to their enums."""
    where = f" in {source}" if source else ""
    out: dict[str, Any] = {}
    enums: dict[str, type[enum.StrEnum]] = {
        "decode_errors": DecodeErrorPolicy,
        "on_error": ErrorPolicy,
        "rollback": RollbackPolicy,
    }
    for key, value in data.items():
        if key in enums:
            try:
                out[key] = enums[key](str(value).lower())
            except ValueError:
                choices = ", ".join(m.value for m in enums[key])
                msg = f"Invalid {key} {value!r}{where}; expected one of: {choices}"
                raise ValueError(msg) from None
        elif key == "log_level":
            level = str(value).upper()
            if level not in _LOG_LEVELS:
                msg = f"Invalid log_level {value!r}{where}"
                raise ValueError(msg)
            out[key] = level
        elif key == "master":
            out[key] = str(value).rstrip("/")
        else:
            out[key] = str(value)
    return out


def configure_logging(level: str) -> None:
    """Send operator logs to stderr at *level*."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
