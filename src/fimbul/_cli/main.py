import asyncio
import json
import logging
from typing import Annotated, Any

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from fimbul._errors import FimbulError
from fimbul._fimbul import FimbulAsync

from .config import ConfigError, ModuleSource, RegistrySource, ScriptSource, get_config
from .discover import Manager, load_registry_from_source, parse_registry_argument
from .graph_query import get_dependency_tree, get_evaluation_plan, list_nodes
from .graph_render import render_node_table, render_plan, render_tree, render_values_table, values_to_json

app = typer.Typer()

logger = logging.getLogger(__name__)
# Console for stderr (info/errors)
err_console = Console(stderr=True)
# Console for stdout (results)
out_console = Console()

RegistryOption = Annotated[
    str | None,
    typer.Option(
        "-r",
        "--registry",
        help="Script path or module path of the computation manager (e.g., examples.inheritance:fimbul). "
        "Defaults to [tool.fimbul].registry in pyproject.toml",
    ),
]


@app.callback()
def callback(
    *,
    verbose: bool = typer.Option(default=False, help="Enable verbose output"),
) -> None:
    """Fimbul CLI."""
    log_level = logging.DEBUG if verbose else logging.INFO

    # Configure rich logging handler to output to stderr
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[
            RichHandler(
                console=err_console,
                show_time=False,
                show_path=verbose,
                rich_tracebacks=True,
            ),
        ],
    )


def _fail(message: str) -> typer.Exit:
    err_console.print(f"[red]✗ {escape(message)}[/red]")
    return typer.Exit(code=1)


def _load_manager(registry: str | None) -> Manager:
    try:
        if registry is not None:
            source = parse_registry_argument(registry)
        else:
            source = get_config().registry
            if source is None:
                msg = "No registry given. Pass --registry or set [tool.fimbul].registry in pyproject.toml"
                raise _fail(msg)
        err_console.print(f"[cyan]Loading registry from:[/cyan] {escape(_describe(source))}")
        return load_registry_from_source(source)
    except (ConfigError, FileNotFoundError, ImportError, ValueError, TypeError) as e:
        raise _fail(str(e)) from e


def _describe(source: RegistrySource) -> str:
    match source:
        case ScriptSource(script=script, name=name):
            return f"{script}:{name}" if name else str(script)
        case ModuleSource(module_path=module_path):
            return module_path


def _default_params() -> dict[str, Any]:
    try:
        return dict(get_config().params)
    except ConfigError as e:
        raise _fail(str(e)) from e


def _parse_value(raw: str) -> Any:
    """Parse a parameter value as JSON, falling back to the plain string."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def _parse_params(assignments: list[str]) -> dict[str, Any]:
    params: dict[str, Any] = {}
    for assignment in assignments:
        name, sep, raw = assignment.partition("=")
        if not sep or not name.strip():
            msg = f"Invalid parameter '{assignment}'. Expected format: name=value"
            raise _fail(msg)
        params[name.strip()] = _parse_value(raw)
    return params


@app.command()
def get(
    keys: Annotated[list[str], typer.Argument(help="Keys of the nodes to compute")],
    *,
    registry: RegistryOption = None,
    param: Annotated[
        list[str] | None,
        typer.Option("-p", "--param", help="Parameter as name=value (value parsed as JSON if possible)"),
    ] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print the values as JSON on stdout")] = False,
) -> None:
    """Compute node values."""
    manager = _load_manager(registry)

    params = {**_default_params(), **_parse_params(param or [])}
    logger.debug("Parameters: %r", params)

    try:
        if isinstance(manager, FimbulAsync):
            values = asyncio.run(manager.get_many(keys, params))
        else:
            values = manager.get_many(keys, params)
    except (FimbulError, ValidationError) as e:
        raise _fail(str(e)) from e
    except Exception as e:
        logger.debug("Computation failed", exc_info=True)
        raise _fail(f"{type(e).__name__}: {e}") from e

    if as_json:
        typer.echo(values_to_json(values))
    else:
        render_values_table(values, out_console)


@app.command()
def nodes(
    *,
    registry: RegistryOption = None,
    leaves: Annotated[bool, typer.Option("--leaves", help="Only list nodes that nothing depends on")] = False,
) -> None:
    """List the defined nodes."""
    manager = _load_manager(registry)
    render_node_table(list_nodes(manager, leaves_only=leaves), out_console)


@app.command()
def tree(
    key: Annotated[str, typer.Argument(help="Key of the root node")],
    *,
    registry: RegistryOption = None,
    invert: Annotated[bool, typer.Option("--invert", help="Show the nodes that depend on KEY instead")] = False,
    depth: Annotated[int | None, typer.Option("--depth", min=1, help="Maximum depth to show")] = None,
) -> None:
    """Show the dependency tree of a node."""
    manager = _load_manager(registry)
    try:
        tree_node = get_dependency_tree(manager, key, invert=invert, max_depth=depth)
    except FimbulError as e:
        raise _fail(str(e)) from e
    render_tree(tree_node, out_console)


@app.command()
def plan(
    keys: Annotated[list[str], typer.Argument(help="Keys of the nodes to compute")],
    *,
    registry: RegistryOption = None,
) -> None:
    """Show the order in which node functions run for the given keys."""
    manager = _load_manager(registry)
    try:
        evaluation_plan = get_evaluation_plan(manager, keys)
    except FimbulError as e:
        raise _fail(str(e)) from e
    render_plan(evaluation_plan, out_console)


def main() -> None:
    app()
