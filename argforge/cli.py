"""Command-line launcher for argforge."""

from __future__ import annotations

import importlib
import importlib.util
import inspect
import json
import logging
import sys
import uuid
from enum import Enum
from pathlib import Path
from typing import Any

import click
import typer
from pydantic import ValidationError

from argforge.compiler import compile as compile_schema
from argforge.config import ArgforgeConfig
from argforge.derive import schema_of
from argforge.emitter import GeneratedSpec  # noqa: TC001
from argforge.errors import CompileError
from argforge.exit_codes import ExitCode
from argforge.render import render_python
from argforge.schema import Schema

logger = logging.getLogger(__name__)

cli = typer.Typer(no_args_is_help=True, help="argforge schema compiler")


class OutputFormat(str, Enum):
    JSON = "json"
    PYTHON = "python"
    CALLS = "calls"


class SourceError(RuntimeError):
    """The schema source could not be located or loaded."""


@cli.callback()
def _launcher_callback() -> None:
    """Top-level argforge launcher entrypoint."""


def _normalize_source_spec(raw: str) -> tuple[str, str | None]:
    """Split `<source>[:object]` into a path/module and an optional object name."""
    if raw.endswith(".json"):
        return raw.strip(), None
    if ":" in raw:
        source, object_name = raw.rsplit(":", 1)
        return source.strip(), object_name.strip() or None
    return raw.strip(), None


def _load_module_from_path(path: Path) -> Any:
    # Keep the file stem as module name so parser references stay importable.
    module_name = path.stem
    if not module_name.isidentifier() or module_name in sys.modules:
        module_name = f"argforge_loader_{uuid.uuid4().hex}"
    spec = importlib.util.spec_from_file_location(module_name, str(path))
    if spec is None or spec.loader is None:
        raise SourceError(f"Failed to create import spec for {path}.")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    spec.loader.exec_module(module)
    return module


def _load_module(source: str) -> Any:
    """Load a module from a ``.py`` file or a dotted import path.

    A missing module named by ``source`` is a :class:`SourceError`; an import
    that fails inside the module propagates.
    """
    source_path = Path(source)
    if source_path.suffix == ".py" or source_path.exists():
        if not source_path.is_file():
            raise SourceError(f"Schema module not found: {source_path}")
        return _load_module_from_path(source_path)

    try:
        return importlib.import_module(source)
    except ModuleNotFoundError as exc:
        if exc.name is not None and not (source == exc.name or source.startswith(f"{exc.name}.")):
            raise
        raise SourceError(f"Could not import module '{source}'.") from exc


def _resolve_schema_object(module: Any, object_name: str | None) -> Schema:
    if object_name is not None:
        value = getattr(module, object_name, None)
        if value is None:
            raise SourceError(f"Module '{module.__name__}' has no '{object_name}' attribute.")
        return value if isinstance(value, Schema) else schema_of(value)

    schema_attr = getattr(module, "schema", None)
    if isinstance(schema_attr, Schema):
        return schema_attr

    candidates = [
        value
        for value in vars(module).values()
        if inspect.isclass(value) and "__argforge_attrs__" in vars(value) and value.__module__ == module.__name__
    ]
    if len(candidates) == 1:
        return schema_of(candidates[0])
    if len(candidates) > 1:
        raise SourceError(
            "Module declares multiple command classes. Pass an explicit class via <module>:<Class>."
        )
    raise SourceError("Module does not define a schema (expected `schema` or an explicit `:<Class>` selector).")


def load_schema(raw: str) -> Schema:
    """Load a schema from a JSON file or from a Python module object."""
    source, object_name = _normalize_source_spec(raw)
    if source.endswith(".json"):
        path = Path(source)
        if not path.is_file():
            raise SourceError(f"Schema file not found: {path}")
        return Schema.model_validate_json(path.read_text(encoding="utf-8"))
    return _resolve_schema_object(_load_module(source), object_name)


def _render(spec: GeneratedSpec, output_format: OutputFormat) -> str:
    if output_format is OutputFormat.PYTHON:
        return render_python(spec)
    if output_format is OutputFormat.CALLS:
        return "\n".join(call.describe() for call in spec.calls)
    return json.dumps(spec.model_dump(mode="json"), indent=2)


def _configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), stream=sys.stderr, format="%(levelname)s %(name)s: %(message)s")


def _compile_or_exit(source: str, config: ArgforgeConfig, *, structured: bool) -> GeneratedSpec:
    """Load and compile ``source``, mapping failures onto exit codes."""
    try:
        return compile_schema(load_schema(source), config.package_environment())
    except SourceError as exc:
        click.echo(f"Failed to load schema: {exc}", err=True)
        raise SystemExit(int(ExitCode.INPUT_MISSING)) from exc
    except ValidationError as exc:
        click.echo(f"Invalid schema: {exc}", err=True)
        raise SystemExit(int(ExitCode.INVALID_INPUT)) from exc
    except CompileError as exc:
        if structured:
            click.echo(json.dumps({"error": exc.to_dict()}), err=True)
        else:
            click.echo(f"error[{exc.code}]: {exc}", err=True)
        raise SystemExit(int(ExitCode.COMPILE_ERROR)) from exc
    except Exception as exc:
        logger.debug("Unexpected failure while compiling %s", source, exc_info=True)
        click.echo(f"Internal error: {exc.__class__.__name__}: {exc}", err=True)
        raise SystemExit(int(ExitCode.INTERNAL_ERROR)) from exc


@cli.command("compile")
def compile_command(
    source: str = typer.Argument(
        ...,
        help="Schema JSON file, or a .py module / import path with an optional :<Class> selector.",
    ),
    output_format: OutputFormat | None = typer.Option(None, "--format", help="Output format."),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write the result to a file."),
    log_level: str | None = typer.Option(None, help="Logging level for compiler diagnostics."),
) -> None:
    """Compile a schema into parser builder calls."""
    config = ArgforgeConfig()
    _configure_logging(log_level or str(config.get("log_level", "WARNING")))

    fmt = output_format
    if fmt is None:
        configured = str(config.get("format", "json"))
        try:
            fmt = OutputFormat(configured)
        except ValueError as exc:
            choices = "|".join(item.value for item in OutputFormat)
            raise click.UsageError(f"Configured format {configured!r} must be one of {choices}.") from exc

    spec = _compile_or_exit(source, config, structured=True)
    rendered = _render(spec, fmt)
    if output is not None:
        output.write_text(rendered if rendered.endswith("\n") else rendered + "\n", encoding="utf-8")
        return
    click.echo(rendered)


@cli.command("check")
def check_command(
    source: str = typer.Argument(..., help="Schema JSON file or Python module (see `compile`)."),
) -> None:
    """Validate a schema without printing the generated calls."""
    spec = _compile_or_exit(source, ArgforgeConfig(), structured=False)
    commands = sum(1 for call in spec.calls if call.scope.value == "app" and call.method == "new")
    click.echo(f"ok: {spec.root or '<unnamed>'} ({commands} command(s), {len(spec.calls)} builder calls)")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
