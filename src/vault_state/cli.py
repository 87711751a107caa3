"""CLI for vault-state."""

import logging
import os
import re
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from .context import VaultContext
from .core import HashPolicy, RunOutcome, VaultStateConfig
from .errors import ConfigError, RunInProgressError, VaultStateError
from .notify import ConsoleNotifier
from .ops import (
    consolidate_now,
    load_config,
    load_history,
    run as ops_run,
    save_config,
    state_at,
)
from .utils import humanize_date, humanize_size
from .working_state import compute_status


app = typer.Typer(help="""\
Track the state of a file vault over time. Records a full base snapshot,
then one delta per day with added, modified and removed files, and folds
the deltas back into the base once enough accumulate.""")

console = Console()

_PERIOD = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Configure logging before any command runs."""
    level = logging.DEBUG if verbose or os.environ.get("DEBUG") else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def require_vault_context() -> VaultContext:
    """Ensure vault is initialized and return context.

    Raises:
        typer.Exit: If not inside a vault
    """
    try:
        return VaultContext()
    except ValueError as e:
        console.print(f"[red]✗[/red] {e}")
        console.print()
        console.print("To initialize a vault here, run:")
        console.print("  [cyan]vault-state init[/cyan]")
        raise typer.Exit(1)


def require_config(ctx: VaultContext) -> VaultStateConfig:
    """Load config and make sure a snapshot folder is set."""
    try:
        config = load_config(ctx)
    except ConfigError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)

    if not config.enabled:
        console.print("[yellow]No snapshot folder configured.[/yellow]")
        console.print("Set one with:")
        console.print("  [cyan]vault-state config --snapshot-folder <folder>[/cyan]")
        raise typer.Exit(1)
    return config


@app.command()
def init(
    path: Optional[str] = typer.Argument(None, help="Vault directory (default: current directory)"),
    snapshot_folder: str = typer.Option("snapshots", "--snapshot-folder", "-s", help="Vault-relative folder for snapshot files"),
    ignore: str = typer.Option("", "--ignore", "-i", help="Comma-separated path prefixes to ignore ('*' wildcard)"),
):
    """Initialize snapshot tracking for a vault."""
    target = Path(path).resolve() if path else Path.cwd()
    if not target.is_dir():
        console.print(f"[red]error:[/red] `{target}` is not a directory")
        raise typer.Exit(1)
    if VaultContext.is_initialized(target):
        console.print(f"[red]error:[/red] Vault already initialized in `{target}` (.vault-state exists)")
        raise typer.Exit(1)

    ctx = VaultContext.init(target)
    config = VaultStateConfig(snapshot_folder=snapshot_folder, ignored_folders=ignore)
    save_config(config, ctx)

    console.print(f"[green]✓[/green] Initialized vault at {ctx.root}")
    if config.enabled:
        console.print(f"  Snapshots: [cyan]{config.snapshot_folder}/[/cyan]")
    if config.ignored_folders:
        console.print(f"  Ignoring:  [cyan]{config.ignored_folders}[/cyan]")
    console.print()
    console.print("Take the first snapshot with:")
    console.print("  [cyan]vault-state run[/cyan]")


@app.command()
def run(
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only report warnings and errors"),
):
    """Take today's snapshot if it hasn't been taken yet."""
    ctx = require_vault_context()
    require_config(ctx)

    result = ops_run(ctx, notifier=ConsoleNotifier(console, quiet=quiet))

    if result.outcome == RunOutcome.FAILED:
        raise typer.Exit(1)
    if not quiet and result.outcome not in (RunOutcome.BASE_CREATED, RunOutcome.DELTA_CREATED):
        console.print(f"[dim]{result.summary()}[/dim]")


@app.command()
def status():
    """Show recorded snapshots and changes the next run would record."""
    ctx = require_vault_context()
    config = require_config(ctx)

    try:
        st = compute_status(ctx, config)
    except VaultStateError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)

    console.print(f"[bold]Vault:[/bold] {ctx.root}")
    console.print(f"[bold]Snapshots:[/bold] {config.snapshot_folder}/")

    if not st.has_base:
        console.print()
        console.print("[yellow]No base snapshot yet.[/yellow] Run [cyan]vault-state run[/cyan] to create one.")
        return

    console.print(f"[bold]Base:[/bold] {st.base_created} ({humanize_date(st.base_created)})")
    console.print(
        f"[bold]Deltas:[/bold] {st.delta_count} "
        f"[dim]({st.deltas_until_consolidation} until consolidation)[/dim]"
    )
    console.print(f"[bold]Today ({st.period}):[/bold] {'recorded' if st.ran_today else 'not recorded'}")
    console.print(
        f"[bold]Tracked:[/bold] {st.total_tracked} files, {humanize_size(st.total_size)} "
        f"[dim]({st.hashed} hashed)[/dim]"
    )
    console.print()

    if not st.has_changes:
        console.print("[green]✓ No changes since last snapshot[/green]")
        return

    table = Table(title="Pending changes")
    table.add_column("Change", style="bold")
    table.add_column("Path")
    for entry in st.pending.added:
        table.add_row("[green]added[/green]", entry.path)
    for entry in st.pending.modified:
        table.add_row("[yellow]modified[/yellow]", entry.path)
    for path in st.pending.removed:
        table.add_row("[red]removed[/red]", path)
    console.print(table)


@app.command()
def history():
    """List stored deltas in replay order."""
    ctx = require_vault_context()
    require_config(ctx)

    try:
        records = load_history(ctx)
    except VaultStateError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)

    if not records:
        console.print("[dim]No deltas recorded since the last base.[/dim]")
        return

    table = Table(title="Deltas")
    table.add_column("Period")
    table.add_column("Created")
    table.add_column("Added", justify="right", style="green")
    table.add_column("Modified", justify="right", style="yellow")
    table.add_column("Removed", justify="right", style="red")
    for handle, delta in records:
        table.add_row(
            handle.period,
            delta.createdAt,
            str(len(delta.added)),
            str(len(delta.modified)),
            str(len(delta.removed)),
        )
    console.print(table)


@app.command()
def show(
    at: Optional[str] = typer.Option(None, "--at", help="Reconstruct as of this day (YYYY-MM-DD)"),
    prefix: str = typer.Option("", "--prefix", "-p", help="Only show paths starting with this prefix"),
):
    """Show the recorded file state, optionally as of an earlier day."""
    ctx = require_vault_context()
    require_config(ctx)

    if at is not None and not _PERIOD.match(at):
        console.print(f"[red]error:[/red] --at must be YYYY-MM-DD, got {at!r}")
        raise typer.Exit(1)

    try:
        state = state_at(ctx, at)
    except VaultStateError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)

    paths = [p for p in sorted(state) if p.startswith(prefix)]
    table = Table(title=f"Recorded state{f' as of {at}' if at else ''} ({len(paths)} files)")
    table.add_column("Path")
    table.add_column("Size", justify="right")
    table.add_column("Modified")
    table.add_column("Hash", style="dim")
    for path in paths:
        fs = state[path]
        table.add_row(path, humanize_size(fs.size), str(fs.mtime), (fs.hash or "")[:12])
    console.print(table)


@app.command()
def consolidate():
    """Fold every stored delta into a new base now."""
    ctx = require_vault_context()
    require_config(ctx)

    try:
        result = consolidate_now(ctx, notifier=ConsoleNotifier(console))
    except RunInProgressError as e:
        console.print(f"[yellow]⚠[/yellow] {e}")
        raise typer.Exit(1)
    except (VaultStateError, OSError) as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)

    if not result.consolidated:
        console.print("[dim]Nothing to consolidate.[/dim]")
    else:
        console.print(f"  Folded {result.deltas_folded} deltas, {result.files} files in base")


@app.command("config")
def config_cmd(
    snapshot_folder: Optional[str] = typer.Option(None, "--snapshot-folder", "-s", help="Vault-relative snapshot folder"),
    ignore: Optional[str] = typer.Option(None, "--ignore", "-i", help="Comma-separated ignore prefixes"),
    threshold: Optional[int] = typer.Option(None, "--threshold", help="Deltas before consolidation"),
    hash_policy: Optional[HashPolicy] = typer.Option(None, "--hash-policy", help="raw or normalized"),
    workers: Optional[int] = typer.Option(None, "--workers", help="Parallel hashing threads"),
):
    """Show or update the vault configuration."""
    ctx = require_vault_context()
    try:
        config = load_config(ctx)
    except ConfigError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)

    updates = {
        "snapshot_folder": snapshot_folder,
        "ignored_folders": ignore,
        "consolidation_threshold": threshold,
        "hash_policy": hash_policy,
        "max_workers": workers,
    }
    updates = {k: v for k, v in updates.items() if v is not None}

    if updates:
        try:
            config = VaultStateConfig(**{**config.model_dump(), **updates})
        except ValueError as e:
            console.print(f"[red]✗[/red] Invalid configuration: {e}")
            raise typer.Exit(1)
        save_config(config, ctx)
        console.print("[green]✓[/green] Configuration saved")

    table = Table(show_header=False, box=None)
    for key, value in config.model_dump(mode="json").items():
        table.add_row(f"[bold]{key}[/bold]", str(value) if value != "" else "[dim](not set)[/dim]")
    console.print(table)


if __name__ == "__main__":
    app()
