"""Typer-based CLI for goscope."""

from __future__ import annotations

import logging
import webbrowser
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.tree import Tree

from . import __version__, config
from .config_manager import ScanConfig, create_default, load_config
from .graph_export import export_dot, export_json
from .orchestrator import AnalysisError, AnalysisResult, GoscopeOrchestrator
from .report import report_hotspots, write_report

app = typer.Typer(
    help="🔭 goscope — architecture map, hotspots and dependency graphs for Go codebases.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"goscope v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    )
):
    """goscope: static analysis of Go and protobuf service trees."""
    pass


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load(config_path: Optional[Path]) -> ScanConfig:
    if config_path is not None and not config_path.exists():
        raise typer.BadParameter(f"Config file '{config_path}' does not exist.")
    return load_config(config_path)


def _run_analysis(path: Path, cfg: ScanConfig, quiet: bool = False) -> AnalysisResult:
    progress = (lambda message: None) if quiet else console.print
    try:
        return GoscopeOrchestrator(cfg, progress=progress).run(path)
    except AnalysisError as exc:
        console.print(f"[red]✗[/red] {exc}")
        raise typer.Exit(code=1)


def _relative(path: str, root: Path) -> str:
    try:
        return str(Path(path).relative_to(root))
    except ValueError:
        return path


def _print_codebase_map(result: AnalysisResult) -> None:
    tree = Tree(f"[bold cyan]🗺️  {result.root.name}[/bold cyan]")
    if result.scan.root_subdirs:
        console.print(f"[dim]Top-level directories: {', '.join(result.scan.root_subdirs)}[/dim]")
    if result.scan.services_root:
        console.print(f"[dim]Services root: {result.scan.services_root}/[/dim]")
    for component in result.components:
        tree.add(
            f"[green]{component.name}[/green] "
            f"[dim]{len(component.files)} files, {component.total_lines} lines[/dim]"
        )
    for svc in result.scan.foreign_services:
        tree.add(f"[yellow]{svc.name}[/yellow] [dim]{svc.language}, {svc.file_count} files[/dim]")
    console.print(tree)

    hotspots = report_hotspots(result)
    if hotspots:
        console.print("\n[bold]🔥 Top hotspots[/bold]")
        for i, entry in enumerate(hotspots, start=1):
            console.print(f"  {i:>2}. {_relative(entry.path, result.root)} [dim]{entry.score:.4f}[/dim]")


@app.command("analyze")
def analyze(
    path: Path = typer.Argument(Path("."), exists=True, file_okay=False, help="Root of the codebase."),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Enable debug logging."),
    open_report: bool = typer.Option(False, "--open", help="Open the report in a browser."),
    output: Path = typer.Option(config.DEFAULT_OUTPUT_DIR, "--output", "-o", help="Report output directory."),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to a .goscope.toml file."),
):
    """Run the full analysis and write an HTML report.

    Example:
      goscope analyze ./services --open
    """
    _configure_logging(verbose)
    cfg = _load(config_path)

    console.print(f"\n[bold cyan]🔭 Analyzing {path.resolve()}[/bold cyan]\n")
    result = _run_analysis(path, cfg)

    console.print()
    _print_codebase_map(result)

    report_path = write_report(result, output, config.REPORT_FILE_NAME)
    console.print(f"\n[green]✓[/green] Report written to [cyan]{report_path}[/cyan]")

    if open_report:
        webbrowser.open(report_path.resolve().as_uri())


@app.command("hotspots")
def hotspots(
    path: Path = typer.Argument(Path("."), exists=True, file_okay=False, help="Root of the codebase."),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Number of files to show."),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to a .goscope.toml file."),
):
    """Print the most central files by PageRank."""
    _configure_logging(False)
    cfg = _load(config_path)
    result = _run_analysis(path, cfg, quiet=True)

    count = cfg.hotspot_count if limit is None else limit
    entries = result.graph.top_hotspots(count)
    if not entries:
        console.print("[yellow]No hotspots found.[/yellow]")
        raise typer.Exit(code=0)

    table = Table(title="🔥 Hotspots", show_header=True, show_lines=False)
    table.add_column("#", justify="right", style="dim", width=4)
    table.add_column("File", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("In", justify="right")
    table.add_column("Out", justify="right")
    for i, entry in enumerate(entries, start=1):
        table.add_row(
            str(i),
            _relative(entry.path, result.root),
            f"{entry.score:.4f}",
            str(result.graph.in_degree(entry.path)),
            str(result.graph.out_degree(entry.path)),
        )
    console.print(table)


@app.command("export-graph")
def export_graph(
    path: Path = typer.Argument(Path("."), exists=True, file_okay=False, help="Root of the codebase."),
    format: str = typer.Option("dot", "--format", "-f", help="Export format: dot or json."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output file."),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to a .goscope.toml file."),
):
    """Export the file dependency graph."""
    fmt = format.lower()
    if fmt not in {"dot", "json"}:
        raise typer.BadParameter("Format must be one of: dot, json")

    _configure_logging(False)
    cfg = _load(config_path)
    result = _run_analysis(path, cfg, quiet=True)

    target = output or Path(f"goscope-graph.{fmt}")
    target.parent.mkdir(parents=True, exist_ok=True)
    if fmt == "dot":
        export_dot(result.graph, target, root=str(result.root))
    else:
        export_json(result.graph, target, root=str(result.root))

    typer.echo(f"Exported {len(result.graph.vertices)} nodes and {len(result.graph.edges)} edges to {target}")


@app.command("init")
def init(
    path: Path = typer.Option(config.DEFAULT_CONFIG_PATH, "--path", help="Where to write the config file."),
):
    """Write a default .goscope.toml."""
    if not create_default(path):
        console.print(f"[yellow]Config already exists at {path}; not overwriting.[/yellow]")
        raise typer.Exit(code=1)
    console.print(f"[green]✓[/green] Wrote default config to [cyan]{path}[/cyan]")


if __name__ == "__main__":
    app()
