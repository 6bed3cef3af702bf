"""Project configuration read from zxx.toml."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, TypeVar

CONFIG_NAME = "zxx.toml"

_Section = TypeVar("_Section")


@dataclass
class PackageConfig:
    name: str = "untitled"
    version: str = "0.0.0"


@dataclass
class CheckConfig:
    source_dir: str = "src"
    deny_warnings: bool = False


@dataclass
class DiagnosticsConfig:
    color: bool = True


@dataclass
class ZxxConfig:
    package: PackageConfig = field(default_factory=PackageConfig)
    check: CheckConfig = field(default_factory=CheckConfig)
    diagnostics: DiagnosticsConfig = field(default_factory=DiagnosticsConfig)


def _section(cls: type[_Section], table: dict[str, Any]) -> _Section:
    """Build a section dataclass from a TOML table, ignoring unknown keys."""
    known = {f.name for f in fields(cls)}
    return cls(**{key: value for key, value in table.items() if key in known})


def find_config(start_path: Path | None = None) -> Path:
    """Nearest zxx.toml at or above *start_path*. Raises FileNotFoundError."""
    here = (start_path or Path.cwd()).resolve()
    if here.is_file():
        here = here.parent
    for directory in (here, *here.parents):
        candidate = directory / CONFIG_NAME
        if candidate.is_file():
            return candidate
    raise FileNotFoundError(f"No {CONFIG_NAME} found in any parent directory")


def load_config(path: Path) -> ZxxConfig:
    """Parse a zxx.toml file; absent sections and keys keep their defaults."""
    data = tomllib.loads(path.read_text(encoding="utf-8"))
    return ZxxConfig(
        package=_section(PackageConfig, data.get("package", {})),
        check=_section(CheckConfig, data.get("check", {})),
        diagnostics=_section(DiagnosticsConfig, data.get("diagnostics", {})),
    )


def load_config_for(path: Path) -> tuple[ZxxConfig, Path | None]:
    """Config governing *path*, or defaults when no zxx.toml is found."""
    try:
        config_path = find_config(path)
    except FileNotFoundError:
        return ZxxConfig(), None
    return load_config(config_path), config_path
