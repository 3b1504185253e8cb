"""``peeplab watch`` — launch the live dashboard.

Resolves settings and the target project before touching the terminal,
so every configuration problem is reported on a normal screen.
"""

from __future__ import annotations

import logging
import queue
from pathlib import Path

import typer
from rich.console import Console

from peeplab.config import RuntimeOptions, Settings, load_settings
from peeplab.core.dispatcher import EffectDispatcher
from peeplab.core.orchestrator import Orchestrator
from peeplab.core.store import Store, initial_state
from peeplab.errors import ConfigurationError, PeeplabError
from peeplab.gitlab.client import GitLabClient
from peeplab.gitlab.detect import RemoteProject, current_branch, detect_project
from peeplab.logging_setup import configure_logging
from peeplab.monitor.keymap import map_key
from peeplab.monitor.renderer import DashboardRenderer
from peeplab.monitor.terminal import KeyReader, TerminalSession, TerminalSetupError

logger = logging.getLogger(__name__)

console = Console()


def resolve_project_id(
    settings: Settings,
    client: GitLabClient,
    project_id: int | None,
    remote: RemoteProject | None,
) -> int:
    """Pick the project: explicit option, then config, then git remote.

    Raises
    ------
    ConfigurationError
        If no source names a project.
    """
    if project_id is not None:
        return project_id
    if settings.gitlab.default_project_id is not None:
        return settings.gitlab.default_project_id
    if remote is None:
        raise ConfigurationError(
            "No project configured. Set [gitlab] default_project_id, pass "
            "--project-id, or run inside a git repository with a GitLab remote."
        )
    instance_host = settings.api_base_url.split("://", 1)[-1]
    if remote.host not in instance_host and instance_host not in remote.host:
        console.print(
            f"[yellow]Warning:[/yellow] remote host '{remote.host}' does not match "
            f"configured instance '{instance_host}'"
        )
    project = client.get_project_by_path(remote.path)
    console.print(f"[dim]Resolved {project.path_with_namespace} to project {project.id}[/dim]")
    return project.id


def run_dashboard(options: RuntimeOptions, client: GitLabClient, *, relative_timestamps: bool) -> None:
    """Wire store, dispatcher, terminal and loop together and run them."""
    channel: queue.Queue = queue.Queue()
    store = Store(initial_state(options))
    dispatcher = EffectDispatcher(client, channel.put, max_workers=options.max_workers)
    renderer = DashboardRenderer(console, relative_timestamps=relative_timestamps)

    with TerminalSession(console) as session:
        reader = KeyReader(session.fd, channel)
        reader.start()
        orchestrator = Orchestrator(
            store,
            dispatcher,
            channel,
            lambda state: session.update(renderer.render(state)),
            map_key,
        )
        try:
            orchestrator.run()
        finally:
            reader.stop()


def watch_cmd(
    project_id: int = typer.Option(
        None,
        "--project-id",
        "-p",
        help="GitLab project ID (overrides config and git detection).",
    ),
    base_url: str = typer.Option(
        None,
        "--base-url",
        "-u",
        help="GitLab instance URL, e.g. https://gitlab.example.com.",
    ),
    all_branches: bool = typer.Option(
        False,
        "--all-branches",
        "-a",
        help="Track all open merge requests instead of the current branch's.",
    ),
    refresh: int = typer.Option(
        None,
        "--refresh",
        "-r",
        help="Seconds between automatic refreshes.",
    ),
    config_path: Path = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config.toml.",
    ),
) -> None:
    """Show the live pipeline dashboard for open merge requests.

    Press [bold]?[/bold] inside the dashboard for key bindings.
    """
    overrides: dict = {}
    if base_url:
        overrides["gitlab"] = {"instance_url": base_url}
    if refresh is not None:
        overrides["app"] = {"refresh_interval": refresh}

    try:
        settings = load_settings(config_path, **overrides)
        token = settings.require_token()
    except ConfigurationError as exc:
        console.print(f"[bold red]Configuration error:[/bold red] {exc}")
        raise typer.Exit(code=1)

    configure_logging(settings.log_level, settings.log_file)
    cwd = Path.cwd()
    branch = current_branch(cwd)
    focus_branch = branch if settings.app.focus_current_branch and not all_branches else None

    with GitLabClient(
        settings.api_base_url,
        token,
        timeout=settings.gitlab.request_timeout,
    ) as client:
        try:
            resolved = resolve_project_id(settings, client, project_id, detect_project(cwd))
        except PeeplabError as exc:
            console.print(f"[bold red]{exc.kind.value}:[/bold red] {exc}")
            raise typer.Exit(code=1)

        options = settings.runtime_options(resolved, focus_branch)
        logger.info("Watching project %s (branch filter: %s)", resolved, focus_branch)
        try:
            run_dashboard(options, client, relative_timestamps=settings.ui.relative_timestamps)
        except TerminalSetupError as exc:
            console.print(f"[bold red]Terminal error:[/bold red] {exc}")
            raise typer.Exit(code=1)
        except KeyboardInterrupt:
            pass
