"""Typer-based CLI for inspecting a codenav fact snapshot."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from . import __version__, config
from .config_manager import DEFAULT_LIMITS, load_limits, save_limits
from .graph import analyze_change_impact
from .keyword_index import build_keyword_index, tokenize_query
from .navigator import resolve_all_targets
from .prefilter import pre_filter
from .resolver import build_cross_file_call_graph
from .snapshot import Snapshot, SnapshotError, load_snapshot
from .targets import parse_navigator_response, target_to_dict

console = Console()

DEFAULT_SNAPSHOT = Path("codenav-snapshot.json")

app = typer.Typer(
    help="codenav: cross-file call graph and query navigation over extracted code facts.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"codenav v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    snapshot: Path = typer.Option(
        DEFAULT_SNAPSHOT,
        "--snapshot",
        "-s",
        envvar="CODENAV_SNAPSHOT",
        help="Fact snapshot JSON file (a node list, or an object with a nodes list).",
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Log resolution details to stderr."),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
):
    """Inspect call graphs, change impact and query candidates of a snapshot."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    ctx.obj = {"snapshot": snapshot}


def _open_snapshot(ctx: typer.Context) -> Snapshot:
    path: Path = ctx.obj["snapshot"]
    try:
        snapshot = load_snapshot(path)
    except SnapshotError as exc:
        raise typer.BadParameter(str(exc), param_hint="--snapshot") from exc
    for error in snapshot.errors:
        console.print(f"[yellow]skipped {error}[/yellow]")
    return snapshot


@app.command("calls")
def show_calls(
    ctx: typer.Context,
    function: Optional[str] = typer.Option(None, "--function", "-f", help="Only calls from this function id (path:name)."),
):
    """Show the cross-file call graph."""
    snapshot = _open_snapshot(ctx)
    graph = build_cross_file_call_graph(snapshot.file_nodes)

    table = Table(title="Cross-file calls", title_style="bold cyan")
    table.add_column("Caller", style="cyan")
    table.add_column("Callee", style="green")
    table.add_column("Imported as", style="dim")

    rows = 0
    for caller, calls in graph.items():
        if function and caller != function:
            continue
        for call in calls:
            table.add_row(call.caller, call.callee, call.imported_as or "")
            rows += 1

    if rows == 0:
        typer.echo("No cross-file calls found.")
        return
    console.print(table)


@app.command("impact")
def show_impact(
    ctx: typer.Context,
    file_path: str = typer.Argument(..., help="Changed file (node id or path)."),
    depth: int = typer.Option(config.IMPACT_MAX_DEPTH, "--depth", "-d", min=1, help="Maximum propagation depth."),
    as_json: bool = typer.Option(False, "--json", help="Print the raw impact record."),
):
    """Show which files depend on a changed file, and the tests to run."""
    snapshot = _open_snapshot(ctx)
    impact = analyze_change_impact(file_path, snapshot.nodes, max_depth=depth)

    if as_json:
        typer.echo(json.dumps(impact.to_dict(), indent=2))
        return

    tree = impact.tree
    if tree.total_affected_files == 0:
        typer.echo(f"No files depend on {file_path}.")
    else:
        table = Table(title=f"Impact of {file_path}", title_style="bold cyan")
        table.add_column("Depth", justify="right")
        table.add_column("File", style="cyan")
        for level in sorted(tree.dependents_by_depth):
            for dependent in tree.dependents_by_depth[level]:
                table.add_row(str(level), dependent)
        console.print(table)
        typer.echo(
            f"Direct: {len(tree.direct_dependents)} | "
            f"Transitive: {len(tree.transitive_dependents)} | "
            f"Total: {tree.total_affected_files}"
        )

    for test in impact.test_files:
        typer.echo(f"test: {test.test_command}")


@app.command("query")
def run_query(
    ctx: typer.Context,
    text: str = typer.Argument(..., help="Natural-language question."),
    limit: int = typer.Option(config.MAX_CANDIDATES, "--limit", "-k", min=1, help="Maximum candidates."),
):
    """Rank candidate files for a question using the keyword index."""
    snapshot = _open_snapshot(ctx)
    index = build_keyword_index(snapshot.nodes)
    tokens = tokenize_query(text)
    candidates = pre_filter(text, index, snapshot.nodes, max_candidates=limit)

    typer.echo(f"Tokens: {', '.join(tokens) if tokens else '(none)'}")
    if not candidates:
        typer.echo("No candidates.")
        return

    table = Table(title="Candidates", title_style="bold cyan")
    table.add_column("Score", justify="right")
    table.add_column("Path", style="cyan")
    table.add_column("Reasons")
    table.add_column("Flags", style="dim")
    for candidate in candidates:
        flags = []
        if candidate.is_module:
            flags.append("module")
        if candidate.is_high_fan_in:
            flags.append("high fan-in")
        table.add_row(
            f"{candidate.score:g}",
            candidate.path,
            "; ".join(candidate.match_reasons),
            ", ".join(flags),
        )
    console.print(table)


@app.command("navigate")
def navigate(
    ctx: typer.Context,
    response_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="File holding a navigator response."),
):
    """Parse a navigator response and resolve its targets."""
    parsed = parse_navigator_response(response_file.read_text(encoding="utf-8"))
    if not parsed.success:
        typer.echo(f"Error: {parsed.error}", err=True)
        raise typer.Exit(code=1)

    snapshot = _open_snapshot(ctx)
    if parsed.reasoning:
        typer.echo(f"Reasoning: {parsed.reasoning}")
    for target in parsed.targets:
        typer.echo(f"target: {json.dumps(target_to_dict(target))}")

    context = resolve_all_targets(parsed.targets, snapshot.nodes)
    for node in context.nodes:
        typer.echo(f"file: {node.path}")
    for detail in context.function_details:
        typer.echo(f"function: {detail.path}:{detail.name} ({detail.start_line}-{detail.end_line})")
    for match in context.grep_matches:
        typer.echo(f"match: {match.path} [{match.match_type}] {match.name or ''}".rstrip())
    for error in context.errors:
        typer.echo(f"error: {error}")


@app.command("limits")
def show_limits():
    """Show the active limits from the config file."""
    limits = load_limits(config.CONFIG_FILE)
    table = Table(title=f"Limits ({config.CONFIG_FILE})", title_style="bold cyan")
    table.add_column("Key", style="cyan")
    table.add_column("Value", justify="right")
    for key, value in limits.items():
        table.add_row(key, str(value))
    console.print(table)


@app.command("set-limit")
def set_limit(
    key: str = typer.Argument(..., help=f"One of: {', '.join(DEFAULT_LIMITS)}."),
    value: int = typer.Argument(..., min=1, help="Positive integer."),
):
    """Persist a limit override to the config file."""
    if key not in DEFAULT_LIMITS:
        raise typer.BadParameter(f"Unknown limit '{key}'.")
    if not save_limits(config.CONFIG_FILE, **{key: value}):
        typer.echo(f"Could not write {config.CONFIG_FILE}.", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Set {key} = {value} (takes effect on next run).")
