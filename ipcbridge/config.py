"""Project configuration support for ipcbridge."""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigError

SUPPORTED_EXTENSIONS = ("ts", "js", "mts", "cts", "mjs", "cjs", "tsx", "jsx")
CONFIG_FILE_NAME = "ipcbridge.toml"
PYPROJECT_FILE_NAME = "pyproject.toml"


class BridgeConfig(BaseModel):
    """Settings shared by every file transform of one build."""

    model_config = ConfigDict(
        extra="forbid",
        str_strip_whitespace=True,
        frozen=True,
    )

    host_module: str = Field(
        "electron",
        description="Module the host IPC objects are imported from",
    )
    extensions: List[str] = Field(
        default_factory=lambda: ["ts", "js"],
        description="File extensions recognized after the '.ipc.' marker",
    )
    default_export_name: str = Field(
        "_defaultExport",
        description="Synthetic name given to anonymous default-exported functions",
    )
    broadcast_timeout_ms: Optional[int] = Field(
        None,
        gt=0,
        description="Reject broadcaster stubs after this many milliseconds without a reply",
    )
    type_annotations: bool = Field(
        True,
        description="Annotate generated stub parameters in TypeScript files",
    )
    fail_on_channel_collision: bool = Field(
        True,
        description="Raise when two functions in one file derive the same channel",
    )

    @field_validator("host_module")
    @classmethod
    def _validate_host_module(cls, value: str) -> str:
        if not value or any(ch in value for ch in "'\"`\n"):
            raise ValueError(f"invalid host module name: {value!r}")
        return value

    @field_validator("extensions")
    @classmethod
    def _validate_extensions(cls, value: List[str]) -> List[str]:
        normalized: List[str] = []
        for entry in value:
            ext = entry.strip().lstrip(".").lower()
            if ext not in SUPPORTED_EXTENSIONS:
                raise ValueError(
                    f"unsupported extension {entry!r}; expected one of {', '.join(SUPPORTED_EXTENSIONS)}"
                )
            if ext not in normalized:
                normalized.append(ext)
        if not normalized:
            raise ValueError("at least one extension is required")
        return normalized

    @field_validator("default_export_name")
    @classmethod
    def _validate_default_export_name(cls, value: str) -> str:
        if not value.replace("$", "_").isidentifier():
            raise ValueError(f"{value!r} is not a valid identifier")
        return value

    def with_overrides(self, overrides: Optional[Mapping[str, Any]]) -> BridgeConfig:
        """Return a copy with ``overrides`` applied; ``None`` values are ignored."""

        if not overrides:
            return self
        data = self.model_dump()
        data.update({key: value for key, value in overrides.items() if value is not None})
        return _validate(data, source=None)


def _validate(data: Mapping[str, Any], source: Optional[Path]) -> BridgeConfig:
    try:
        return BridgeConfig.model_validate(dict(data))
    except ValidationError as exc:
        details = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'config'}: {error['msg']}"
            for error in exc.errors()
        )
        raise ConfigError(
            f"Invalid ipcbridge configuration: {details}",
            path=str(source) if source else None,
        ) from exc


def _read_toml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Malformed TOML: {exc}", path=str(path)) from exc


def _section_for(path: Path, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    if path.name == PYPROJECT_FILE_NAME:
        section = (data.get("tool") or {}).get("ipcbridge")
    else:
        section = data.get("ipcbridge", data)
    if section is None:
        return None
    if not isinstance(section, dict):
        raise ConfigError("ipcbridge configuration must be a table", path=str(path))
    return section


def locate_config_file(root: Path, explicit: Optional[Path] = None) -> Optional[Path]:
    if explicit is not None:
        return explicit if explicit.exists() else None
    candidate = root / CONFIG_FILE_NAME
    if candidate.exists():
        return candidate
    pyproject = root / PYPROJECT_FILE_NAME
    if pyproject.exists() and _section_for(pyproject, _read_toml(pyproject)) is not None:
        return pyproject
    return None


def load_config(
    root: Path,
    explicit: Optional[Path] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> BridgeConfig:
    """Resolve the configuration for ``root``.

    An explicit path that does not exist is an error; a missing implicit file
    simply yields the defaults.
    """

    root = root.resolve()
    if explicit is not None and not explicit.exists():
        raise ConfigError("Configuration file not found", path=str(explicit))
    config_path = locate_config_file(root, explicit)
    data: Dict[str, Any] = {}
    if config_path is not None:
        data = _section_for(config_path, _read_toml(config_path)) or {}
    config = _validate(data, source=config_path)
    return config.with_overrides(overrides)


__all__ = [
    "BridgeConfig",
    "SUPPORTED_EXTENSIONS",
    "locate_config_file",
    "load_config",
]
