import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from strata._capability import LocalCapability
from strata._compile import compile_path
from strata._errors import StrataError
from strata._eval import build_scope
from strata._eval_engine import declaration_dependencies, resolve_order
from strata._functions import default_registry
from strata._io import load_document
from strata._value import Value, from_native

from .config import ConfigError, StrataConfig, get_config

app = typer.Typer()

logger = logging.getLogger(__name__)
# Console for stderr (info/errors)
err_console = Console(stderr=True)
# Console for stdout (results)
out_console = Console()


@app.callback()
def callback(
    *,
    verbose: bool = typer.Option(default=False, help="Enable verbose output"),
) -> None:
    """Strata CLI."""
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


def _report_error(error: StrataError) -> None:
    err_console.print(
        Panel(
            escape(error.detail()),
            title=f"[bold red]{error.kind}[/bold red]",
            border_style="red",
        ),
    )


def _load_config() -> StrataConfig:
    try:
        return get_config()
    except ConfigError as e:
        err_console.print(f"[red]Configuration error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e


def parse_override(text: str) -> tuple[str, Value]:
    """Parse a ``name=value`` override; the value is read as JSON when possible.

    Raises:
        typer.BadParameter: If the text has no ``=`` or an empty name.

    """
    name, sep, raw = text.partition("=")
    name = name.strip()
    if not sep or not name:
        msg = f"Invalid override '{text}'. Expected format: 'name=value'"
        raise typer.BadParameter(msg)
    try:
        value = json.loads(raw, parse_float=Decimal)
    except json.JSONDecodeError:
        return name, raw
    return name, from_native(value)


def _split_document_path(path: Path, storage: Path | None) -> tuple[Path, str]:
    """Split a document path into a storage root and a request path inside it."""
    resolved = path.resolve()
    if storage is None:
        if resolved.is_dir():
            return resolved, ""
        return resolved.parent, resolved.name
    root = storage.resolve()
    if not resolved.is_relative_to(root):
        msg = f"Document '{path}' is outside the storage directory '{storage}'"
        raise typer.BadParameter(msg)
    return root, resolved.relative_to(root).as_posix()


@app.command(name="compile")
def compile_command(  # noqa: PLR0913
    path: Annotated[
        Path,
        typer.Argument(help="Path to a document, or a directory containing index.hcl"),
    ],
    *,
    output_format: Annotated[
        str | None,
        typer.Option("-f", "--format", help="Output language: json, yml/yaml or toml"),
    ] = None,
    variables: Annotated[
        list[str] | None,
        typer.Option("--var", help="Variable override as name=value (repeatable)"),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("-o", "--output", help="Output file or directory (default: stdout)"),
    ] = None,
    storage: Annotated[
        Path | None,
        typer.Option("--storage", help="Storage root that file reads are confined to"),
    ] = None,
) -> None:
    """Evaluate a document and render it as JSON, YAML or TOML."""
    config = _load_config()

    try:
        overrides = dict(parse_override(item) for item in variables or [])
        root, request_path = _split_document_path(path, storage or config.storage)
    except typer.BadParameter as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e

    capability = LocalCapability(
        root,
        vault_url=config.vault_url,
        vault_token=config.vault_token,
        timeout=config.http_timeout,
    )
    err_console.print(f"[cyan]Compiling:[/cyan] {path}")
    try:
        compiled = compile_path(
            root,
            request_path,
            language=output_format,
            default_language=config.format,
            overrides=overrides,
            capability=capability,
        )
    except StrataError as e:
        _report_error(e)
        raise typer.Exit(code=1) from e

    if output is None:
        typer.echo(compiled.body, nl=False)
        raise typer.Exit(code=0)

    target = output / compiled.filename if output.is_dir() else output
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(compiled.body, encoding="utf-8")
    err_console.print(f"[cyan]Wrote {compiled.output_format} output to:[/cyan] {target}")
    err_console.print("[green]✓ Compilation complete[/green]")
    raise typer.Exit(code=0)


@app.command()
def check(
    path: Annotated[
        Path,
        typer.Argument(help="Path to a document"),
    ],
) -> None:
    """Check declarations and their evaluation order without evaluating the document."""
    err_console.print()
    err_console.print(f"[cyan]Loading document from:[/cyan] {path}")

    try:
        document = load_document(path)
        scope = build_scope(document)
        order = resolve_order(scope)
    except StrataError as e:
        _report_error(e)
        raise typer.Exit(code=1) from e
    except OSError as e:
        err_console.print(f"[red]Error: Cannot read {path}: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Declaration", style="bold")
    table.add_column("Kind", style="yellow")
    table.add_column("Depends on", style="green")

    for position, name in enumerate(order, start=1):
        declaration = scope.lookup(name)
        dependencies = declaration_dependencies(scope, declaration)
        table.add_row(str(position), escape(name), str(declaration.kind), escape(", ".join(dependencies)))

    out_console.print(
        Panel(
            table,
            title=f"[bold]Document: {escape(str(path))}[/bold]",
            subtitle=f"[dim]{len(order)} declarations, {len(scope.meta_declarations())} meta[/dim]",
            border_style="cyan",
        ),
    )

    err_console.print()
    err_console.print("[green]✓ Document is valid[/green]")
    err_console.print()


@app.command()
def functions(
    *,
    effectful: Annotated[
        bool,
        typer.Option("--effectful", help="Only list functions that perform I/O"),
    ] = False,
) -> None:
    """List the built-in functions."""
    registry = default_registry()

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Signature", style="bold")
    table.add_column("Aliases", style="dim")
    table.add_column("Arity", justify="right", style="yellow")
    table.add_column("Summary")

    for spec in registry.specs:
        if effectful and not spec.effectful:
            continue
        table.add_row(escape(spec.signature()), escape(", ".join(spec.aliases)), spec.arity_text(), escape(spec.summary))

    out_console.print(table)


def main() -> None:
    app()
