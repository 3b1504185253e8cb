"""``peeplab config`` — show the effective configuration."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from peeplab.config import default_config_path, load_settings
from peeplab.errors import ConfigurationError

console = Console()


def _mask(token: str) -> str:
    if not token:
        return "[red](not set)[/red]"
    if len(token) <= 8:
        return "*" * len(token)
    return f"{token[:4]}…{token[-4:]}"


def config_cmd(
    config_path: Path = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config.toml.",
    ),
) -> None:
    """Print the config file location and the settings peeplab would use."""
    path = config_path or default_config_path()
    try:
        settings = load_settings(path)
    except ConfigurationError as exc:
        console.print(f"[bold red]Configuration error:[/bold red] {exc}")
        raise typer.Exit(code=1)

    state = "[green]found[/green]" if path.exists() else "[yellow]missing[/yellow]"
    console.print(f"[bold]Config file:[/bold] {path} ({state})")

    table = Table(title="Effective settings", show_header=True, header_style="bold cyan")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    table.add_row("gitlab.token", _mask(settings.gitlab.token.get_secret_value()))
    table.add_row("gitlab.instance_url", settings.gitlab.instance_url)
    table.add_row("gitlab.default_project_id", str(settings.gitlab.default_project_id))
    table.add_row("gitlab.request_timeout", f"{settings.gitlab.request_timeout}s")
    table.add_row("app.refresh_interval", f"{settings.app.refresh_interval}s")
    table.add_row("app.max_tracked_mrs", str(settings.app.max_tracked_mrs))
    table.add_row("app.focus_current_branch", str(settings.app.focus_current_branch))
    table.add_row("app.max_workers", str(settings.app.max_workers))
    table.add_row("ui.relative_timestamps", str(settings.ui.relative_timestamps))
    table.add_row("log_level", settings.log_level)
    table.add_row("log_file", str(settings.log_file))
    console.print(table)
