"""Command line interface for building the PLFA site."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from plfa_site.core.config import SiteConfig
from plfa_site.core.config_loader import ConfigLoader
from plfa_site.core.exceptions import ConfigLoadError, RouteError, ShadowedRuleError
from plfa_site.core.logging import configure_logging
from plfa_site.engine.build import BuildReport, Toolchain
from plfa_site.engine.watch import SiteWatcher
from plfa_site.infra.sinks.filesystem import FileSystemSink
from plfa_site.site.rules import create_build

app = typer.Typer(
    name="plfa-site",
    help="Build the Programming Language Foundations in Agda website",
    add_completion=False,
)

console = Console()
logger = logging.getLogger(__name__)

SiteRootOption = Annotated[
    Path,
    typer.Option("--site-root", "-C", help="Directory containing the site sources", file_okay=False),
]
OutputOption = Annotated[
    Path | None,
    typer.Option("--output", "-o", help="Output directory (default: paths.output_dir from the config)"),
]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Log every compiled item")]


def _load_config(site_root: Path, output: Path | None = None) -> SiteConfig:
    try:
        config = ConfigLoader(site_root.resolve()).load()
    except ConfigLoadError as exc:
        console.print(f"[bold red]Configuration error:[/bold red] {exc}")
        raise typer.Exit(1) from exc
    if output is not None:
        config.paths = config.paths.model_copy(update={"output_dir": output})
    return config


def _print_report(report: BuildReport) -> None:
    if report.failures:
        table = Table(title="Failed documents", show_lines=False)
        table.add_column("Document", style="cyan")
        table.add_column("Error", style="red")
        for failure in report.failures:
            table.add_row(failure.identifier, failure.message)
        console.print(table)

    status = "[bold green]Build complete[/bold green]" if report.ok else "[bold red]Build failed[/bold red]"
    console.print(
        f"{status}: {len(report.outputs)} written, {len(report.failures)} failed, "
        f"{len(report.unmatched)} unmatched ({report.duration_seconds:.2f}s)"
    )


def _run_build(config: SiteConfig, tools: Toolchain | None = None) -> BuildReport | None:
    build = create_build(config, tools)
    try:
        report = build.run()
    except ShadowedRuleError as exc:
        console.print(f"[bold red]Rule order error:[/bold red] {exc}")
        return None
    _print_report(report)
    return report


@app.command()
def build(
    site_root: SiteRootOption = Path(),
    output: OutputOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Build the whole site once."""
    configure_logging("DEBUG" if verbose else None)
    config = _load_config(site_root, output)
    report = _run_build(config)
    if report is None or not report.ok:
        raise typer.Exit(1)


@app.command()
def rules(
    site_root: SiteRootOption = Path(),
    verbose: VerboseOption = False,
) -> None:
    """Show which rule and route every source file gets."""
    configure_logging("DEBUG" if verbose else "WARNING")
    config = _load_config(site_root)
    config.build = config.build.model_copy(update={"fail_on_shadowed_rules": False})
    site_build = create_build(config)
    assignments = site_build.assignments

    table = Table(title="Rule assignments")
    table.add_column("Identifier", style="cyan")
    table.add_column("Rule")
    table.add_column("Route", style="green")
    for identifier, rule in sorted(assignments.items()):
        try:
            route = site_build.route_of(identifier)
        except RouteError as exc:
            route_text = f"[red]{exc.reason}[/red]"
        else:
            route_text = route if route is not None else "[dim]-[/dim]"
        table.add_row(identifier, rule.name, route_text)
    console.print(table)

    console.print(f"{len(assignments)} matched, {len(site_build.unmatched)} unmatched")
    for name, identifiers in site_build.shadowed.items():
        console.print(f"[yellow]Shadowed rule:[/yellow] {name} (e.g. {identifiers[0]})")


@app.command()
def clean(site_root: SiteRootOption = Path()) -> None:
    """Remove the output directory."""
    configure_logging()
    config = _load_config(site_root)
    FileSystemSink(config.paths.abs_output_dir).clean()
    console.print(f"Removed {config.paths.abs_output_dir}")


@app.command()
def watch(
    site_root: SiteRootOption = Path(),
    output: OutputOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Build the site, then rebuild it whenever a source file changes."""
    configure_logging("DEBUG" if verbose else None)
    config = _load_config(site_root, output)
    _run_build(config)

    watcher = SiteWatcher(
        config.paths.site_root,
        config.paths.abs_output_dir,
        rebuild=lambda: _run_build(config),
        debounce=config.build.watch_debounce,
    )
    try:
        watcher.run()
    except KeyboardInterrupt:
        console.print("Stopped watching")
