"""Z++ compiler CLI."""

from __future__ import annotations

from dataclasses import fields, is_dataclass
from enum import Enum
from pathlib import Path
from typing import get_args

import click

from zxx import __version__
from zxx.ast_nodes import TypedValue, value_text
from zxx.config import ZxxConfig, load_config_for
from zxx.errors import CompileError
from zxx.frontend import FrontendResult, compile_bytes, decode_source
from zxx.lexer import Lexer
from zxx.project import scaffold

_VALUE_TYPES = get_args(TypedValue)


class _EchoStream:
    """Text stream that forwards rendered diagnostics to click's stderr."""

    def write(self, text: str) -> int:
        click.echo(text, err=True, nl=False)
        return len(text)


def _collect_sources(target: Path, config: ZxxConfig, config_path: Path | None) -> list[Path]:
    """The .zpp files a check of *target* covers."""
    if target.is_file():
        return [target]
    src_dir = target
    if config_path is not None and config_path.parent == target.resolve():
        configured = target / config.check.source_dir
        if configured.is_dir():
            src_dir = configured
    return sorted(src_dir.rglob("*.zpp"))


def _use_color(ctx: click.Context, config: ZxxConfig) -> bool:
    return config.diagnostics.color and not ctx.obj["no_color"]


def _compile_file(path: Path, *, color: bool) -> FrontendResult:
    return compile_bytes(str(path), path.read_bytes(), stream=_EchoStream(), color=color)


@click.group()
@click.version_option(__version__, prog_name="zxx")
@click.option("--no-color", is_flag=True, help="Disable colored diagnostics.")
@click.pass_context
def main(ctx: click.Context, no_color: bool) -> None:
    """The Z++ programming language compiler."""
    ctx.ensure_object(dict)
    ctx.obj["no_color"] = no_color


@main.command()
@click.argument("path", default=".", type=click.Path(exists=True))
@click.pass_context
def check(ctx: click.Context, path: str) -> None:
    """Lex and parse Z++ sources, reporting diagnostics."""
    target = Path(path)
    config, config_path = load_config_for(target)
    files = _collect_sources(target, config, config_path)
    if not files:
        click.echo("warning: no .zpp files found", err=True)
        return

    color = _use_color(ctx, config)
    errors = warnings = 0
    for zpp_file in files:
        result = _compile_file(zpp_file, color=color)
        errors += len(result.errors)
        warnings += len(result.warnings)

    summary = f"checked {len(files)} file(s): {errors} error(s), {warnings} warning(s)"
    if errors or (warnings and config.check.deny_warnings):
        click.echo(summary, err=True)
        raise SystemExit(1)
    click.echo(summary)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def tokens(ctx: click.Context, file: str) -> None:
    """Print the token stream of a Z++ source file."""
    config, _ = load_config_for(Path(file))
    color = _use_color(ctx, config)
    source, reporter = decode_source(
        file, Path(file).read_bytes(), stream=_EchoStream(), color=color,
    )
    if reporter.has_errors():
        raise SystemExit(1)
    try:
        token_list = Lexer(source.content, source.name, reporter).lex()
    except CompileError:
        raise SystemExit(1)
    for tok in token_list:
        payload = "" if tok.payload is None else repr(tok.payload)
        click.echo(f"{tok.kind.name:<14} {payload:<16} {tok.span}")


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def view(ctx: click.Context, file: str) -> None:
    """View the AST of a Z++ source file."""
    config, _ = load_config_for(Path(file))
    color = _use_color(ctx, config)
    result = _compile_file(Path(file), color=color)
    if result.document is None:
        raise SystemExit(1)
    _dump_ast(result.document)


@main.command()
@click.argument("name")
def new(name: str) -> None:
    """Create a new Z++ project."""
    try:
        project_dir = scaffold(name)
    except FileExistsError as e:
        click.echo(f"error: {e}", err=True)
        raise SystemExit(1)
    click.echo(f"created project '{name}' at {project_dir}")


@main.command()
def lsp() -> None:
    """Start the Z++ language server."""
    from zxx.lsp import main as lsp_main

    lsp_main()


def _dump_ast(node: object, depth: int = 0) -> None:
    """Print *node* and its fields as an indented tree, spans omitted."""
    pad = "  " * depth
    if isinstance(node, _VALUE_TYPES):
        click.echo(f"{pad}{value_text(node)}")
        return
    click.echo(f"{pad}{type(node).__name__}")
    for f in fields(node):
        value = getattr(node, f.name)
        if f.name == "span" or value is None:
            continue
        leaf = _leaf(value)
        if leaf is not None:
            click.echo(f"{pad}  {f.name}: {leaf}")
            continue
        click.echo(f"{pad}  {f.name}:")
        for child in value if isinstance(value, list) else [value]:
            _dump_ast(child, depth + 2)


def _leaf(value: object) -> str | None:
    """One-line rendering of a field, or None if it needs its own subtree."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, _VALUE_TYPES):
        return value_text(value)
    if isinstance(value, dict):
        return "{" + ", ".join(f"{k}: {_leaf(v)}" for k, v in value.items()) + "}"
    if isinstance(value, list) and not value:
        return "[]"
    if isinstance(value, list) or is_dataclass(value):
        return None
    return repr(value)
