"""Utilities to discover fimbul computation managers in modules and scripts.

The module path resolution was adapted from `fastapi_cli.discover` of package `fastapi-cli` version 0.0.8 (77e6d1f).
"""

from __future__ import annotations

import importlib
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from fimbul._fimbul import Fimbul, FimbulAsync

from .config import ModuleSource, ScriptSource

if TYPE_CHECKING:
    from types import ModuleType

    from .config import RegistrySource

logger = logging.getLogger(__name__)

type Manager = Fimbul | FimbulAsync


@dataclass
class ModuleData:
    """Module data for a Python module."""

    module_import_str: str
    extra_sys_path: Path
    module_paths: list[Path]


def get_module_data_from_path(path: Path) -> ModuleData:
    """Get module data from a file path.

    Args:
        path: Path to a Python file or package

    Returns:
        ModuleData containing module import information

    """
    use_path = path.resolve()
    module_path = use_path
    if use_path.is_file() and use_path.stem == "__init__":
        module_path = use_path.parent
    module_paths = [module_path]
    extra_sys_path = module_path.parent
    for parent in module_path.parents:
        if not (parent / "__init__.py").is_file():
            break
        module_paths.insert(0, parent)
        extra_sys_path = parent.parent

    return ModuleData(
        module_import_str=".".join(p.stem for p in module_paths),
        extra_sys_path=extra_sys_path.resolve(),
        module_paths=module_paths,
    )


def parse_registry_argument(value: str) -> RegistrySource:
    """Parse a registry reference given on the command line.

    Accepted forms are ``path/to/script.py``, ``path/to/script.py:variable``
    and ``module.path:variable``.

    Args:
        value: The command line value.

    Returns:
        The parsed RegistrySource.

    """
    head, sep, tail = value.rpartition(":")
    if sep and head.endswith(".py"):
        return ScriptSource(script=Path(head), name=tail or None)
    if value.endswith(".py") or not sep:
        return ScriptSource(script=Path(value))
    return ModuleSource(module_path=value)


def _pick_manager(module: ModuleType, name: str | None) -> Manager:
    module_name = module.__name__
    if name:
        if not hasattr(module, name):
            msg = f"Could not find '{name}' in {module_name}"
            raise ValueError(msg)
        manager = getattr(module, name)
        if not isinstance(manager, (Fimbul, FimbulAsync)):
            msg = f"'{name}' in {module_name} is not a Fimbul or FimbulAsync instance"
            raise TypeError(msg)
        return manager

    for attr in dir(module):
        obj = getattr(module, attr)
        if isinstance(obj, (Fimbul, FimbulAsync)):
            logger.debug("Found computation manager: %s", attr)
            return obj

    msg = f"Could not find a Fimbul or FimbulAsync instance in {module_name}, name it explicitly"
    raise ValueError(msg)


def load_registry_from_script(script_path: Path, name: str | None = None) -> Manager:
    """Load a computation manager from a Python script path.

    Args:
        script_path: Path to the Python script defining the manager
        name: Name of the manager variable. If None, the first one found is used

    Returns:
        The loaded Fimbul or FimbulAsync instance

    Raises:
        FileNotFoundError: If the script does not exist
        ImportError: If the module cannot be imported
        ValueError: If no manager is found or the named variable doesn't exist
        TypeError: If the named variable is not a computation manager

    """
    if not script_path.exists():
        msg = f"Script not found: {script_path}"
        raise FileNotFoundError(msg)

    module_data = get_module_data_from_path(script_path)
    sys.path.insert(0, str(module_data.extra_sys_path))

    try:
        module = importlib.import_module(module_data.module_import_str)
    except (ImportError, ValueError):
        logger.exception("Import error")
        logger.warning("Ensure all the package directories have an __init__.py file")
        raise

    return _pick_manager(module, name)


def load_registry_from_module_path(module_path: str) -> Manager:
    """Load a computation manager from a module path (e.g., 'examples.inheritance:fimbul').

    Raises:
        ValueError: If module path format is invalid
        TypeError: If the named variable is not a computation manager

    """
    if ":" not in module_path:
        msg = "Module path must be in format 'module.path:variable_name'"
        raise ValueError(msg)

    module_name, name = module_path.split(":", 1)
    module = importlib.import_module(module_name)
    return _pick_manager(module, name)


def load_registry_from_source(source: RegistrySource) -> Manager:
    """Load a computation manager from a RegistrySource (script or module)."""
    match source:
        case ScriptSource(script=script, name=name):
            return load_registry_from_script(script, name)
        case ModuleSource(module_path=module_path):
            return load_registry_from_module_path(module_path)
