"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from adapters.graphql_client import GraphQLClient, GraphQLError
from core.config import AppSettings, RuntimeConfig, load_runtime_config, write_user_env_vars
from core.services.selection import expand_selection

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()

PROBE_QUERY = "query { __typename }"


async def _check_graphql(config: RuntimeConfig) -> tuple[bool, str]:
    client = GraphQLClient(config)
    try:
        data = await client.query(PROBE_QUERY)
        return True, f"{config.endpoint} answered ({', '.join(sorted(data)) or 'empty'})"
    except GraphQLError as exc:
        return False, str(exc)
    finally:
        await client.aclose()


def _check_state_file(path: Path) -> tuple[bool, str]:
    """Make sure the state file directory exists and accepts writes."""

    probe = path.with_name(f".{path.name}.doctor")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        probe.write_text("ok", encoding="utf-8")
        probe.unlink(missing_ok=True)
        return True, str(path)
    except OSError as exc:
        return False, f"{path}: {exc}"


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()

    table = Table(title="unraid-sync Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    # Config
    table.add_row("Base URL", "OK" if settings.base_url else "MISSING", settings.base_url or "UNRAID_SYNC_BASE_URL")
    table.add_row("API token", "OK" if settings.api_token else "MISSING", "set" if settings.api_token else "UNRAID_SYNC_API_TOKEN")
    table.add_row("Poll interval", "OK", f"{settings.poll_interval_seconds:g}s")
    table.add_row(
        "TLS",
        "RELAXED" if settings.allow_self_signed else "OK",
        "self-signed certificates accepted" if settings.allow_self_signed else "certificates verified",
    )

    config = load_runtime_config(settings)
    if config is not None:
        selection = expand_selection(config.enabled_domains)
        table.add_row("Domains", "OK", ", ".join(sorted(selection)))

        # Connectivity (best-effort)
        ok_gql, detail_gql = asyncio.run(_check_graphql(config))
        table.add_row("GraphQL", "OK" if ok_gql else "FAIL", detail_gql)
    else:
        table.add_row("GraphQL", "SKIPPED", "configuration incomplete")

    ok_state, detail_state = _check_state_file(settings.state_file)
    table.add_row("State file", "OK" if ok_state else "FAIL", detail_state)

    _console.print(table)

    if config is None:
        _console.print("\n[yellow]Note:[/yellow] run `unraid-sync doctor setup` to store the connection settings.")


@app.command(name="setup")
def setup() -> None:
    """Interactive setup (stores config in the user config .env)."""

    settings = AppSettings()

    base_url = typer.prompt("Server base URL", default=settings.base_url or "", show_default=True).strip()
    api_token = typer.prompt("API key", hide_input=True, confirmation_prompt=False).strip()
    allow_self_signed = typer.confirm("Accept self-signed certificates?", default=settings.allow_self_signed)
    interval = typer.prompt(
        "Poll interval (seconds)",
        default=f"{settings.poll_interval_seconds:g}",
        show_default=True,
    ).strip()
    domains = typer.prompt(
        "Domains (comma separated, empty for defaults)",
        default=",".join(settings.enabled_domains or []),
        show_default=False,
    ).strip()

    if not base_url or not api_token:
        raise typer.BadParameter("base URL and API key are required")

    env_path = write_user_env_vars(
        {
            "UNRAID_SYNC_BASE_URL": base_url,
            "UNRAID_SYNC_API_TOKEN": api_token,
            "UNRAID_SYNC_ALLOW_SELF_SIGNED": "true" if allow_self_signed else "false",
            "UNRAID_SYNC_POLL_INTERVAL_SECONDS": interval,
            "UNRAID_SYNC_ENABLED_DOMAINS": domains,
        }
    )

    _console.print(f"[green]Saved config to:[/green] {env_path}")
