"""CLI entry point for the PCI repository processor."""

from __future__ import annotations

import asyncio
from contextlib import closing
from pathlib import Path
from typing import Annotated

import typer
import yaml
from rich import print as rprint
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.tree import Tree

from pci_repository.config import RepositoryConfig, load_config
from pci_repository.config.loader import DEFAULT_CONFIG_TEMPLATE
from pci_repository.errors import RepositoryError
from pci_repository.ingest import (
    HIERARCHIES,
    Pipeline,
    RunReport,
    RunStatus,
    extract_version,
    scan_section,
    split_lines,
    split_sections,
)
from pci_repository.interfaces.store import AggregateStore
from pci_repository.log import configure_logging
from pci_repository.models import RootEntity, Section
from pci_repository.scheduler import Scheduler, locked_run
from pci_repository.sources import create_source
from pci_repository.storage import create_store

app = typer.Typer(
    name="pci-repository",
    help="Ingest the PCI ID registry into an aggregate store, writing only what changed.",
)

config_app = typer.Typer(help="Manage configuration.")
app.add_typer(config_app, name="config")

# Global state
_config: RepositoryConfig | None = None


def _get_config() -> RepositoryConfig:
    if _config is None:
        return load_config()
    return _config


@app.callback()
def main(
    config: Annotated[
        str | None, typer.Option("--config", "-c", help="Path to pci_repository.yaml")
    ] = None,
) -> None:
    """Global options."""
    global _config
    try:
        _config = load_config(config)
    except ValueError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    configure_logging(_config.log_level, _config.log_format)


def _with_source(cfg: RepositoryConfig, source: str | None) -> RepositoryConfig:
    if source is None:
        return cfg
    return cfg.model_copy(update={"source": cfg.source.model_copy(update={"url": source})})


def _build_pipeline(cfg: RepositoryConfig, store: AggregateStore) -> Pipeline:
    try:
        text_source = create_source(cfg.source)
    except ValueError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    return Pipeline(text_source, store, cfg.ingest, version_line=cfg.source.version_line)


def _display_report(report: RunReport) -> None:
    if report.status is RunStatus.up_to_date:
        rprint(f"[green]Up to date:[/green] registry version {report.version} already processed.")
        return

    table = Table(title=f"Registry {report.version}")
    table.add_column("Section", style="cyan")
    table.add_column("Inserted", justify="right", style="green")
    table.add_column("Replaced", justify="right", style="yellow")
    table.add_column("Unchanged", justify="right", style="dim")
    for s in report.sections:
        table.add_row(s.section.value, str(s.inserted), str(s.replaced), str(s.skipped))
    rprint(table)
    if report.violations:
        rprint(
            f"[yellow]{report.violations} invalid line(s) skipped, "
            f"{report.dropped_lines} dependent line(s) dropped.[/yellow]"
        )
    elapsed = (report.finished_at - report.started_at).total_seconds()
    previous = report.previous_version or "none"
    rprint(f"[dim]Version {previous} -> {report.version} in {elapsed:.1f}s[/dim]")


@app.command()
def run(
    source: Annotated[
        str | None, typer.Option("--source", "-s", help="Override the registry URL or path")
    ] = None,
) -> None:
    """Fetch the registry once and reconcile it into the store."""
    cfg = _with_source(_get_config(), source)
    with closing(create_store(cfg.store)) as store:
        pipeline = _build_pipeline(cfg, store)
        try:
            report = asyncio.run(locked_run(pipeline, store))
        except RepositoryError as e:
            rprint(f"[red]Error:[/red] {e}")
            raise typer.Exit(1)
    _display_report(report)


@app.command()
def schedule(
    max_runs: Annotated[
        int | None, typer.Option("--max-runs", help="Stop after this many runs")
    ] = None,
) -> None:
    """Run the pipeline periodically according to the schedule settings."""
    cfg = _get_config()
    with closing(create_store(cfg.store)) as store:
        pipeline = _build_pipeline(cfg, store)
        scheduler = Scheduler(
            lambda: locked_run(pipeline, store),
            interval_seconds=cfg.schedule.interval_seconds,
            run_on_startup=cfg.schedule.run_on_startup,
            run_timeout=cfg.schedule.run_timeout,
        )
        rprint(
            f"[bold]Scheduling[/bold] {cfg.source.url} every {cfg.schedule.interval_seconds}s "
            "(Ctrl+C to stop)"
        )
        try:
            results = asyncio.run(scheduler.serve(max_runs=max_runs))
        except KeyboardInterrupt:
            rprint("[dim]Scheduler stopped.[/dim]")
            return
    for report in results:
        if report is not None:
            _display_report(report)


@app.command()
def validate(
    source: Annotated[
        str | None, typer.Option("--source", "-s", help="Override the registry URL or path")
    ] = None,
) -> None:
    """Check the registry's version marker and every record line without writing."""
    cfg = _with_source(_get_config(), source)
    try:
        text = asyncio.run(create_source(cfg.source).fetch())
        lines = split_lines(text)
        version = extract_version(lines, cfg.source.version_line)
    except (RepositoryError, ValueError) as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    sections = split_sections(lines)
    table = Table(title=f"Registry {version}")
    table.add_column("Section", style="cyan")
    table.add_column("Lines", justify="right")
    table.add_column("Invalid", justify="right")
    table.add_column("Dropped", justify="right")
    problems = []
    for section, numbered in ((Section.vendors, sections.vendors), (Section.classes, sections.classes)):
        scan = scan_section(numbered, HIERARCHIES[section], strict=False)
        table.add_row(
            section.value, str(len(numbered)), str(len(scan.violations)), str(scan.dropped)
        )
        problems.extend(scan.violations)
    rprint(table)

    for violation in problems:
        rprint(f"  [red]error:[/red] {violation}")
    if problems:
        raise typer.Exit(1)
    rprint("[green]Registry is valid.[/green]")


@app.command()
def status() -> None:
    """Show the stored registry version and aggregate counts."""
    cfg = _get_config()

    async def _collect(store: AggregateStore):
        marker = await store.get_marker()
        counts = {s: await store.count_aggregates(s) for s in Section}
        return marker, counts

    with closing(create_store(cfg.store)) as store:
        try:
            marker, counts = asyncio.run(_collect(store))
        except RepositoryError as e:
            rprint(f"[red]Error:[/red] {e}")
            raise typer.Exit(1)

    if marker is None:
        version_text = "[yellow]never processed[/yellow]"
        updated_text = "-"
    else:
        version_text = marker.version.strftime("%Y.%m.%d")
        updated_text = marker.last_update.isoformat(timespec="seconds")
    panel_text = (
        f"[dim]Version:[/dim]     {version_text}\n"
        f"[dim]Last update:[/dim] {updated_text}\n"
        f"[dim]Vendors:[/dim]     {counts[Section.vendors]}\n"
        f"[dim]Classes:[/dim]     {counts[Section.classes]}\n"
        f"[dim]Source:[/dim]      {cfg.source.url}"
    )
    rprint(Panel(panel_text, title="Repository", border_style="blue"))


def _render_aggregate(section: Section, root: RootEntity) -> Tree:
    hierarchy = HIERARCHIES[section]
    tree = Tree(
        f"[bold]{hierarchy.root.kind} {root.id}[/bold] {root.name} [dim]({root.hash})[/dim]"
    )
    for child in root.children:
        branch = tree.add(f"[cyan]{child.id}[/cyan] {child.name}")
        for d in child.descendants:
            prefix = f"{d.aux}:{d.id}" if d.aux is not None else d.id
            branch.add(f"[green]{prefix}[/green] {d.name}")
    return tree


@app.command()
def show(
    section: Annotated[Section, typer.Argument(help="classes or vendors")],
    root_id: Annotated[
        str | None, typer.Argument(help="Class or vendor id; omit to list all")
    ] = None,
) -> None:
    """List stored aggregates of a section, or show one in full."""
    with closing(create_store(_get_config().store)) as store:
        try:
            if root_id is None:
                roots = asyncio.run(store.list_aggregates(section))
            else:
                root = asyncio.run(store.get_aggregate(section, root_id))
        except RepositoryError as e:
            rprint(f"[red]Error:[/red] {e}")
            raise typer.Exit(1)

    if root_id is not None:
        if root is None:
            rprint(f"[red]Not found:[/red] {section.value} {root_id}")
            raise typer.Exit(1)
        rprint(_render_aggregate(section, root))
        return

    table = Table(title=f"{section.value.capitalize()} ({len(roots)})")
    table.add_column("Id", style="cyan")
    table.add_column("Name")
    table.add_column("Children", justify="right")
    table.add_column("Hash", style="dim")
    for r in roots:
        table.add_row(r.id, r.name, str(len(r.children)), r.hash)
    rprint(table)


@config_app.command("show")
def config_show() -> None:
    """Show current resolved configuration."""
    cfg = _get_config()
    rprint(Syntax(yaml.dump(cfg.model_dump(), default_flow_style=False), "yaml"))


@config_app.command("init")
def config_init(
    force: bool = typer.Option(False, "--force", help="Overwrite existing config"),
) -> None:
    """Create default pci_repository.yaml in current directory."""
    target = Path("pci_repository.yaml")
    if target.exists() and not force:
        rprint("[yellow]pci_repository.yaml already exists.[/yellow] Use --force to overwrite.")
        raise typer.Exit(1)
    target.write_text(DEFAULT_CONFIG_TEMPLATE)
    rprint(f"[green]Created[/green] {target}")
