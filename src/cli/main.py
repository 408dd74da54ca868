"""unraid-sync command line (Typer).

Commands:
- `run`: mirror the server into the state file, cycle after cycle.
- `plan`: effective selection and query text, offline.
- `domains`: the selectable domain tree.
- `show`: values currently persisted in the state file.
- `doctor`: diagnostics and interactive setup.
"""

from __future__ import annotations

import asyncio
import signal
from pathlib import Path
from typing import Optional

import typer
from loguru import logger
from rich.console import Console

from adapters.graphql_client import GraphQLClient
from adapters.state_store import JsonStateStore
from cli import doctor
from cli.ui_components import (
    build_domain_tree,
    build_query_panel,
    build_state_table,
    build_statistics_table,
    print_banner,
)
from core.config import AppSettings, RuntimeConfig, load_runtime_config, split_domain_list
from core.interfaces.data_source import RemoteDataSource
from core.interfaces.state_store import StateStoreError
from core.logger import setup_logger
from core.services.query_plan import build_query
from core.services.selection import definitions_for, expand_selection, normalize_selection
from core.services.sync_engine import EngineStatistics, SyncEngine

app = typer.Typer(no_args_is_help=True, help="Mirror an Unraid GraphQL API into a local state tree.")
app.add_typer(doctor.app, name="doctor")

_console = Console()


def _install_stop_handlers(engine: SyncEngine) -> list[signal.Signals]:
    """Route SIGINT/SIGTERM to `engine.stop()` so the running cycle can finish.

    Platforms without loop signal handlers keep the default Ctrl-C behaviour.
    """

    loop = asyncio.get_running_loop()
    installed: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, engine.stop)
        except (NotImplementedError, RuntimeError, ValueError):
            continue
        installed.append(sig)
    return installed


async def _run_session(
    config: RuntimeConfig,
    store: JsonStateStore,
    *,
    domains: list[str] | None,
    once: bool,
    source: RemoteDataSource | None = None,
) -> EngineStatistics:
    engine = SyncEngine(config, source or GraphQLClient(config), store)
    engine.configure(domains)
    installed = _install_stop_handlers(engine)
    try:
        await engine.initialize()
        await engine.run(once=once)
    finally:
        loop = asyncio.get_running_loop()
        for sig in installed:
            loop.remove_signal_handler(sig)
        await engine.aclose()
    return engine.statistics()


@app.command(name="run")
def run_command(
    once: bool = typer.Option(False, "--once", help="Run a single cycle and exit."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
    domains: Optional[str] = typer.Option(None, "--domains", "-d", help="Comma separated domain ids."),
    state_file: Optional[Path] = typer.Option(None, "--state-file", help="JSON state file."),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Also log to this file."),
) -> None:
    """Poll the server and keep the state file in sync."""

    settings = AppSettings()
    setup_logger(verbose=verbose, log_file=log_file, secrets=[settings.api_token or ""])

    config = load_runtime_config(settings)
    if config is None:
        _console.print("[yellow]Nothing to do:[/yellow] configure the server with `unraid-sync doctor setup`.")
        raise typer.Exit(code=1)

    print_banner(_console)

    path = state_file or settings.state_file
    try:
        store = JsonStateStore.open(path, namespace=settings.namespace)
    except StateStoreError as exc:
        logger.error(str(exc))
        raise typer.Exit(code=1) from exc

    try:
        stats = asyncio.run(_run_session(config, store, domains=split_domain_list(domains), once=once))
    except KeyboardInterrupt:
        logger.info("Interrupted, stopping")
        return

    _console.print(build_statistics_table(stats))


@app.command()
def plan(
    domains: Optional[str] = typer.Option(None, "--domains", "-d", help="Comma separated domain ids."),
) -> None:
    """Show the effective selection and the query it produces."""

    raw = split_domain_list(domains)
    if raw is None:
        raw = AppSettings().enabled_domains
    selection = expand_selection(normalize_selection(raw))

    _console.print(build_domain_tree(selection))
    _console.print(build_query_panel(build_query(definitions_for(selection))))


@app.command(name="domains")
def list_domains() -> None:
    """List the selectable domains (defaults are marked)."""

    _console.print(build_domain_tree())


@app.command()
def show(
    state_file: Optional[Path] = typer.Option(None, "--state-file", help="JSON state file."),
    prefix: Optional[str] = typer.Option(None, "--prefix", "-p", help="Only ids under this prefix."),
) -> None:
    """Print the values persisted in the state file."""

    settings = AppSettings()
    path = state_file or settings.state_file
    if not path.exists():
        _console.print(f"[yellow]No state file at[/yellow] {path}")
        raise typer.Exit(code=1)

    try:
        store = JsonStateStore.open(path, namespace=settings.namespace)
    except StateStoreError as exc:
        _console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc

    objects = asyncio.run(store.get_objects())
    rows = [
        (object_id, value, objects[object_id].common.unit)
        for object_id, value in store.snapshot().items()
        if prefix is None or object_id == prefix or object_id.startswith(f"{prefix}.")
    ]
    _console.print(build_state_table(rows, title=str(path)))


def run() -> None:
    app()
