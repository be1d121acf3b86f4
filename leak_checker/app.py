"""Typer CLI entrypoint for the leak checker."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from .config import ConfigRepository, DownloaderConfig
from .exceptions import ConfigurationError, StoreError
from .infra import PasswordStore, hash_password
from .logging_conf import configure_logging, tail_log
from .orchestrator import DownloadOrchestrator, RunSummary
from .ui import ProgressReporter

app = typer.Typer(
    help="Mirror the Pwned Passwords range API into a local SQLite store.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
config_app = typer.Typer(
    name="config",
    help="Configuration file commands.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
log_app = typer.Typer(
    name="log",
    help="Log file commands.",
    no_args_is_help=True,
    rich_markup_mode=None,
)

console = Console()


@dataclass
class CliOptions:
    config_path: Path | None
    verbose: bool
    state: "AppState | None" = None


@dataclass
class AppState:
    repository: ConfigRepository
    config: DownloaderConfig
    store: PasswordStore


def build_state(config_path: Path | None, verbose: bool) -> AppState:
    repository = ConfigRepository()
    config = repository.load(config_path)
    configure_logging(repository.log_path(config), verbose=verbose)
    store = PasswordStore.open(
        repository.database_path(config), busy_timeout_ms=config.busy_timeout_ms
    )
    return AppState(repository=repository, config=config, store=store)


def build_orchestrator(state: AppState, workers: int | None, limit: int | None) -> DownloadOrchestrator:
    overrides: dict[str, int] = {}
    if workers is not None:
        overrides["parallelism"] = workers
    if limit is not None:
        overrides["range_limit"] = limit
    config = state.config.model_copy(update=overrides) if overrides else state.config
    return DownloadOrchestrator(config, state.store)


def _get_state(ctx: typer.Context) -> AppState:
    options: CliOptions = ctx.obj
    if options.state is None:
        try:
            options.state = build_state(options.config_path, options.verbose)
        except (ConfigurationError, StoreError) as exc:
            console.print(f"Startup failed: {exc}", style="red")
            raise typer.Exit(code=1) from exc
    return options.state


def _progress_default_enabled() -> bool:
    return bool(getattr(sys.stdout, "isatty", lambda: False)())


def _render_summary(summary: RunSummary) -> Table:
    table = Table(title="Download summary", box=box.SIMPLE_HEAD)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")
    table.add_row("Ranges", str(summary.total))
    table.add_row("Ingested", str(summary.ingested))
    table.add_row("Fetch failed", str(summary.fetch_failed))
    table.add_row("Ingest failed", str(summary.ingest_failed))
    table.add_row("Hashes written", str(summary.hashes_written))
    table.add_row("Malformed lines", str(summary.malformed_lines))
    table.add_row("Elapsed (s)", f"{summary.elapsed:.1f}")
    return table


app.add_typer(config_app, name="config")
app.add_typer(log_app, name="log")


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        help="Path to the configuration file (JSON or YAML).",
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging.", is_flag=True),
) -> None:
    ctx.obj = CliOptions(config_path=config, verbose=verbose)


@app.command("download", help="Fetch every hash range and store it locally.")
def download(
    ctx: typer.Context,
    workers: Optional[int] = typer.Option(None, "--workers", min=1, help="Parallel workers."),
    limit: Optional[int] = typer.Option(
        None, "--limit", min=1, help="Only process the first N ranges."
    ),
    quiet: bool = typer.Option(False, "--quiet", help="Only print a one-line result.", is_flag=True),
) -> None:
    state = _get_state(ctx)
    orchestrator = build_orchestrator(state, workers, limit)
    console.print("Starting downloader...")
    progress = ProgressReporter(enabled=_progress_default_enabled() and not quiet, console=console)
    try:
        summary = orchestrator.run(progress=progress)
    finally:
        orchestrator.close()
    if quiet:
        console.print(
            f"Download complete: {summary.ingested}/{summary.total} ranges ingested, "
            f"{summary.failed} failed"
        )
        return
    console.print(_render_summary(summary))
    if summary.failed_prefixes:
        shown = ", ".join(sorted(summary.failed_prefixes)[:20])
        console.print(f"Failed ranges: {shown}", style="yellow")


@app.command("check", help="Check whether a password appears in the local store.")
def check(
    ctx: typer.Context,
    password: Optional[str] = typer.Option(
        None, "--password", help="Password to check (prompted when omitted)."
    ),
    as_json: bool = typer.Option(False, "--json", help="Print a JSON response.", is_flag=True),
) -> None:
    if password is None:
        password = typer.prompt("Password", hide_input=True)
    if not password:
        raise typer.BadParameter("password cannot be empty", param_hint="--password")
    state = _get_state(ctx)
    try:
        leaked = state.store.contains(hash_password(password))
    except StoreError as exc:
        console.print(f"Lookup failed: {exc}", style="red")
        raise typer.Exit(code=1) from exc
    if as_json:
        typer.echo(json.dumps({"result": "success", "has_been_leaked": leaked}))
    elif leaked:
        console.print("This password has been leaked.", style="red")
    else:
        console.print("This password was not found in the store.", style="green")


@app.command("stats", help="Show store location and size.")
def stats(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    table = Table(title="Store", box=box.SIMPLE_HEAD, show_header=False)
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Database", str(state.store.path))
    table.add_row("Hashes", str(state.store.count()))
    console.print(table)


@config_app.command("init", help="Write a configuration file with default values.")
def config_init(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file.", is_flag=True),
) -> None:
    options: CliOptions = ctx.obj
    repository = ConfigRepository()
    path = repository.resolve_path(options.config_path)
    if path.exists() and not force:
        console.print(f"{path} already exists; use --force to overwrite.", style="yellow")
        raise typer.Exit(code=1)
    repository.save(DownloaderConfig(), path)
    console.print(f"Configuration written to {path}", style="green")


@config_app.command("show", help="Print the effective configuration.")
def config_show(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    typer.echo(json.dumps(state.config.model_dump(mode="json"), indent=2))


@log_app.command("show", help="Print the last lines of the downloader log.")
def log_show(
    ctx: typer.Context,
    tail: int = typer.Option(100, "--tail", min=1, help="Number of lines to show."),
) -> None:
    state = _get_state(ctx)
    lines = tail_log(state.repository.log_path(state.config), tail)
    if not lines:
        console.print("No log entries yet.", style="dim")
        return
    console.print("".join(lines), end="", markup=False, highlight=False)


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
