"""
Command line interface for ipcbridge.

Commands:
    - transform: transform one IPC module and print or write the result
    - build: transform a whole source tree into an output directory
    - channels: list the exported functions of a module and their channels
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import sys
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from . import __version__
from .codegen.matrix import policy_for
from .config import BridgeConfig, load_config
from .errors import IpcBridgeError
from .extractor import extract_exported_functions
from .naming import Side, TransformContext, channel_name, file_base_name, infer_file_role
from .parser import parse_source
from .transform import transform_file, transform_include

console = Console()
err_console = Console(stderr=True)
logger = logging.getLogger(__name__)

_CONTEXT_CHOICE = click.Choice([side.value for side in Side])


def _env_flag(name: str) -> bool:
    val = os.getenv(name)
    if val is None:
        return False
    return val.strip().lower() in {"1", "true", "yes", "on"}


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _fail(exc: BaseException, verbose: bool = False) -> None:
    """Print ``exc`` for humans and exit; ``IPCBRIDGE_DEBUG=1`` re-raises instead."""

    if _env_flag("IPCBRIDGE_DEBUG"):
        raise exc
    if isinstance(exc, IpcBridgeError):
        err_console.print(f"[red]Error:[/red] {escape(exc.format())}", highlight=False, soft_wrap=True)
    else:
        err_console.print(f"[red]Error:[/red] {exc.__class__.__name__}: {escape(str(exc))}", highlight=False)
    if verbose:
        err_console.print_exception()
    sys.exit(1)


@click.group()
@click.version_option(__version__, prog_name="ipcbridge")
@click.option("--config", "config_path", type=click.Path(path_type=Path), help="Configuration file")
@click.option("--host-module", default=None, help="Module the host IPC objects are imported from")
@click.option("--broadcast-timeout", type=int, default=None, help="Broadcast stub timeout in milliseconds")
@click.option("--verbose", "-v", is_flag=True, help="Verbose logging and tracebacks")
@click.pass_context
def main(ctx, config_path, host_module, broadcast_timeout, verbose):
    """Generate main/renderer IPC glue from plain exported functions."""
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    try:
        ctx.obj["config"] = load_config(
            Path.cwd(),
            config_path,
            overrides={"host_module": host_module, "broadcast_timeout_ms": broadcast_timeout},
        )
    except IpcBridgeError as exc:
        _fail(exc, verbose)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--context", "context", type=_CONTEXT_CHOICE, required=True, help="Process context being compiled")
@click.option("--out", "out_path", type=click.Path(dir_okay=False, path_type=Path), help="Write the result here")
@click.option("--map", "write_map", is_flag=True, help="Also write <out>.map (requires --out)")
@click.pass_context
def transform(ctx, file, context, out_path, write_map):
    """Transform a single IPC module."""
    config: BridgeConfig = ctx.obj["config"]
    try:
        result = transform_file(file, context, config)
    except IpcBridgeError as exc:
        _fail(exc, ctx.obj["verbose"])
        return

    code = result.code if result is not None else file.read_text(encoding="utf-8")
    if out_path is None:
        click.echo(code, nl=False)
        return
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(code, encoding="utf-8")
    if write_map and result is not None:
        map_path = out_path.with_name(out_path.name + ".map")
        map_path.write_text(json.dumps(result.source_map(out_path.name)), encoding="utf-8")
    status = "transformed" if result is not None else "unchanged"
    err_console.print(f"[green]✓[/green] {file} {status} -> {out_path}", highlight=False)


@dataclass
class _BuildOutcome:
    source: Path
    target: Path
    status: str
    functions: int = 0


def _build_one(source: Path, target: Path, context: str, config: BridgeConfig, write_map: bool) -> _BuildOutcome:
    target.parent.mkdir(parents=True, exist_ok=True)
    if not transform_include(str(source), config):
        logger.debug("Copying %s unchanged", source)
        shutil.copy2(source, target)
        return _BuildOutcome(source, target, "copied")
    result = transform_file(source, context, config)
    if result is None:
        shutil.copy2(source, target)
        return _BuildOutcome(source, target, "unchanged")
    target.write_text(result.code, encoding="utf-8")
    if write_map:
        map_path = target.with_name(target.name + ".map")
        map_path.write_text(json.dumps(result.source_map(target.name)), encoding="utf-8")
    return _BuildOutcome(source, target, "transformed", len(result.channels))


@main.command()
@click.argument("src_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.argument("out_dir", type=click.Path(file_okay=False, path_type=Path))
@click.option("--context", "context", type=_CONTEXT_CHOICE, required=True, help="Process context being compiled")
@click.option("--jobs", "-j", type=click.IntRange(min=1), default=4, show_default=True, help="Parallel workers")
@click.option("--map", "write_map", is_flag=True, help="Write source maps next to transformed files")
@click.pass_context
def build(ctx, src_dir, out_dir, context, jobs, write_map):
    """Transform every IPC module under SRC_DIR into OUT_DIR."""
    config: BridgeConfig = ctx.obj["config"]
    src_root = src_dir.resolve()
    out_root = out_dir.resolve()
    sources = sorted(
        path for path in src_root.rglob("*")
        if path.is_file() and out_root not in path.parents
    )

    outcomes: List[_BuildOutcome] = []
    try:
        with ThreadPoolExecutor(max_workers=jobs) as pool:
            futures = [
                pool.submit(_build_one, path, out_root / path.relative_to(src_root), context, config, write_map)
                for path in sources
            ]
            for future in futures:
                outcomes.append(future.result())
    except IpcBridgeError as exc:
        _fail(exc, ctx.obj["verbose"])
        return

    table = Table(title=f"ipcbridge build ({context} context)")
    table.add_column("File")
    table.add_column("Status")
    table.add_column("Functions", justify="right")
    for outcome in outcomes:
        if outcome.status == "copied":
            continue
        table.add_row(str(outcome.source.relative_to(src_root)), outcome.status, str(outcome.functions))
    if table.row_count:
        console.print(table)
    transformed = sum(1 for outcome in outcomes if outcome.status == "transformed")
    console.print(f"[green]✓[/green] {transformed} transformed, {len(outcomes) - transformed} copied to {out_root}")


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of a table")
@click.pass_context
def channels(ctx, file, as_json):
    """List exported functions of FILE with their channels."""
    config: BridgeConfig = ctx.obj["config"]
    role: Optional[Side] = infer_file_role(str(file), config.extensions)
    if role is None:
        _fail(click.UsageError(f"{file.name} is not a *.main.ipc.* or *.renderer.ipc.* module"))
        return
    try:
        parsed = parse_source(file.read_bytes(), str(file))
    except IpcBridgeError as exc:
        _fail(exc, ctx.obj["verbose"])
        return

    rows = []
    for fn in extract_exported_functions(parsed, config.default_export_name):
        rows.append(
            {
                "name": fn.name,
                "channel": channel_name(file_base_name(str(file)), fn.name_segment, fn.body),
                "async": fn.is_async,
                "main": policy_for(TransformContext(Side.MAIN, role)).strategy.value,
                "renderer": policy_for(TransformContext(Side.RENDERER, role)).strategy.value,
            }
        )

    if as_json:
        click.echo(json.dumps(rows, indent=2))
        return
    table = Table(title=f"{file.name} ({role.value} role)")
    table.add_column("Function")
    table.add_column("Channel")
    table.add_column("Async")
    table.add_column("main context")
    table.add_column("renderer context")
    for row in rows:
        table.add_row(row["name"], row["channel"], "yes" if row["async"] else "no", row["main"], row["renderer"])
    console.print(table)


if __name__ == "__main__":  # pragma: no cover
    main()
