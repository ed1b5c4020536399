"""Configuration loading from pyproject.toml."""

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, cast


class ConfigError(Exception):
    """Error in fimbul configuration."""


@dataclass(slots=True, frozen=True)
class ScriptSource:
    """Script path with optional variable name."""

    script: Path
    name: str | None = None


@dataclass(slots=True, frozen=True)
class ModuleSource:
    """Module path with variable name (e.g., 'examples.inheritance:fimbul')."""

    module_path: str


RegistrySource = ScriptSource | ModuleSource


@dataclass(slots=True, frozen=True)
class FimbulConfig:
    """Configuration loaded from the [tool.fimbul] section of pyproject.toml.

    Relative script paths are resolved from the project root (directory containing pyproject.toml).
    """

    registry: RegistrySource | None = None
    params: dict[str, Any] = field(default_factory=dict)
    project_root: Path | None = None


def find_pyproject_toml(start_dir: Path | None = None) -> Path | None:
    """Find pyproject.toml by walking up from start_dir.

    Args:
        start_dir: Starting directory. Defaults to current working directory.

    Returns:
        Path to pyproject.toml if found, None otherwise.

    """
    current = (Path.cwd() if start_dir is None else start_dir).resolve()

    for directory in (current, *current.parents):
        candidate = directory / "pyproject.toml"
        if candidate.is_file():
            return candidate
    return None


def parse_registry_source(value: object, project_root: Path) -> RegistrySource:
    """Parse a registry reference.

    Accepts ``"module.path:variable"`` or a table ``{ script = "path.py", name = "variable" }``.

    Args:
        value: The raw value from TOML (string or dict)
        project_root: Directory that relative script paths are resolved from

    Returns:
        Parsed RegistrySource

    Raises:
        ConfigError: If the value format is invalid

    """
    if isinstance(value, str):
        if ":" not in value:
            msg = f"Invalid module path '{value}'. Expected format: 'module.path:variable_name'"
            raise ConfigError(msg)
        return ModuleSource(module_path=value)

    if not isinstance(value, dict) or "script" not in value:
        msg = "Invalid [tool.fimbul].registry configuration. Expected string or table with 'script' key."
        raise ConfigError(msg)

    value_dict = cast("dict[str, object]", value)
    script_value = value_dict["script"]
    if not isinstance(script_value, str):
        msg = "Invalid [tool.fimbul].registry.script: expected string path"
        raise ConfigError(msg)
    script_path = Path(script_value)
    if not script_path.is_absolute():
        script_path = project_root / script_path

    name = value_dict.get("name")
    if name is not None and not isinstance(name, str):
        msg = "Invalid [tool.fimbul].registry.name: expected string"
        raise ConfigError(msg)

    return ScriptSource(script=script_path, name=name)


def load_config(pyproject_path: Path) -> FimbulConfig:
    """Load and validate [tool.fimbul] config from pyproject.toml.

    Args:
        pyproject_path: Path to pyproject.toml

    Returns:
        Parsed FimbulConfig

    Raises:
        ConfigError: If the configuration is invalid

    """
    project_root = pyproject_path.parent

    with pyproject_path.open("rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            msg = f"Invalid TOML in {pyproject_path}: {e}"
            raise ConfigError(msg) from e

    section = data.get("tool", {}).get("fimbul", {})
    if not section:
        return FimbulConfig(project_root=project_root)

    registry: RegistrySource | None = None
    if "registry" in section:
        registry = parse_registry_source(section["registry"], project_root)

    params = section.get("params", {})
    if not isinstance(params, dict):
        msg = "Invalid [tool.fimbul].params: expected a table"
        raise ConfigError(msg)

    return FimbulConfig(registry=registry, params=params, project_root=project_root)


def get_config() -> FimbulConfig:
    """Get config from pyproject.toml in current directory or parents.

    Returns:
        FimbulConfig (may be empty if no pyproject.toml or no [tool.fimbul] section)

    """
    pyproject_path = find_pyproject_toml()
    if pyproject_path is None:
        return FimbulConfig()
    return load_config(pyproject_path)
