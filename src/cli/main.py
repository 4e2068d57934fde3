"""beesync command line."""

import asyncio
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from cli.config import load_config_model
from cli.logging_config import setup_logging
from shared_types import JobStatus
from sync.errors import SyncError
from sync.jobs import JOB_ORDER
from sync.runner import JobResult, configured_jobs, run_jobs, select_jobs

console = Console()

_STATUS_STYLE = {
    JobStatus.SUCCESS: "green",
    JobStatus.PARTIAL: "yellow",
    JobStatus.ERROR: "red",
}


def _result_line(result: JobResult) -> str:
    if result.summary is None:
        return f"❌ {result.name}: {escape(result.error or '')}"
    s = result.summary
    icon = "✅" if result.ok else "❌"
    parts = [f"{s.created} created"]
    if s.deleted:
        parts.append(f"{s.deleted} deleted")
    if s.skipped:
        parts.append(f"{s.skipped} already synced")
    if s.unchanged:
        parts.append(f"{s.unchanged} unchanged")
    if s.errors:
        parts.append(f"{len(s.errors)} errors")
    return f"{icon} {result.name} → {s.goal}: {', '.join(parts)}"


def _summary_table(results: list[JobResult], dry_run: bool) -> Table:
    title = "Sync summary (dry run)" if dry_run else "Sync summary"
    table = Table(title=title, show_header=True)
    table.add_column("Job")
    table.add_column("Goal")
    table.add_column("Fetched", justify="right")
    table.add_column("Created", justify="right")
    table.add_column("Deleted", justify="right")
    table.add_column("Skipped", justify="right")
    table.add_column("Status", justify="center")

    for r in results:
        style = _STATUS_STYLE[r.status]
        s = r.summary
        if s is None:
            table.add_row(r.name.value, "-", "-", "-", "-", "-", f"[{style}]{r.status}[/]")
            continue
        table.add_row(
            r.name.value,
            s.goal,
            str(s.fetched),
            str(s.created),
            str(s.deleted),
            str(s.skipped),
            f"[{style}]{r.status}[/]",
        )
    return table


@click.group()
@click.version_option(version="0.1.0")
def cli():
    """beesync - mirror activity from other services into Beeminder goals."""


@cli.command()
@click.option(
    "-c", "--config", "config_path", type=click.Path(path_type=Path), help="Config file path"
)
@click.option(
    "-j", "--job", "job_names", multiple=True, help="Run only this job (repeatable)"
)
@click.option("--dry-run", is_flag=True, help="Log what would change without writing")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON lines")
def run(config_path: Path, job_names: tuple, dry_run: bool, verbose: bool, json_logs: bool):
    """Run every configured sync job (or only those given with --job)."""
    try:
        config = load_config_model(config_path)
    except SyncError as e:
        console.print(f"[red]Config error:[/] {escape(str(e))}")
        sys.exit(1)

    level = "DEBUG" if verbose else config.logging.level
    setup_logging(json_mode=json_logs or config.logging.json_mode, level=level)

    try:
        names = select_jobs(config, list(job_names))
    except SyncError as e:
        console.print(f"[red]Config error:[/] {escape(str(e))}")
        sys.exit(1)

    if not names:
        console.print("[yellow]No jobs configured.[/] Add a job section to your config file.")
        return

    try:
        results = asyncio.run(run_jobs(config, names, dry_run=dry_run))
    except SyncError as e:
        console.print(f"[red]Error:[/] {escape(str(e))}")
        sys.exit(1)

    for result in results:
        console.print(_result_line(result))
        if result.summary is not None:
            for error in result.summary.errors:
                console.print(f"   [dim]{escape(error)}[/]")
    console.print()
    console.print(_summary_table(results, dry_run))

    failed = [r for r in results if not r.ok]
    if failed:
        console.print(f"\n[red]{len(failed)} of {len(results)} job(s) failed[/]")
        sys.exit(1)


@cli.command()
@click.option(
    "-c", "--config", "config_path", type=click.Path(path_type=Path), help="Config file path"
)
def jobs(config_path: Path):
    """List known jobs and whether each is configured."""
    try:
        config = load_config_model(config_path)
    except SyncError as e:
        console.print(f"[red]Config error:[/] {escape(str(e))}")
        sys.exit(1)

    enabled = set(configured_jobs(config))
    table = Table(title="Sync jobs", show_header=True)
    table.add_column("Job")
    table.add_column("Goal")
    table.add_column("Configured", justify="center")

    for name in JOB_ORDER:
        section = getattr(config, name.value)
        goal = getattr(section, "goal_name", "-") if section else "-"
        mark = "[green]yes[/]" if name in enabled else "[dim]no[/]"
        table.add_row(name.value, goal, mark)

    console.print(table)


if __name__ == "__main__":
    cli()
