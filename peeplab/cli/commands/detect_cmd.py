"""``peeplab detect`` — show what would be watched from this directory."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from peeplab.gitlab.detect import current_branch, detect_project, remote_url

console = Console()


def detect_cmd(
    path: Path = typer.Argument(
        None,
        help="Working copy to inspect (defaults to the current directory).",
    ),
    remote: str = typer.Option(
        "origin",
        "--remote",
        "-R",
        help="Git remote to read.",
    ),
) -> None:
    """Print the GitLab project and branch detected from a git working copy."""
    cwd = path or Path.cwd()
    project = detect_project(cwd, remote)
    if project is None:
        console.print(f"[bold red]No GitLab project detected[/bold red] in {cwd}")
        url = remote_url(cwd, remote)
        if url:
            console.print(f"[dim]Remote '{remote}' points at {url}[/dim]")
        raise typer.Exit(code=1)

    table = Table(show_header=False, box=None)
    table.add_column("Field", style="bold cyan")
    table.add_column("Value")
    table.add_row("Host", project.host)
    table.add_row("Project", project.path)
    table.add_row("Encoded", project.url_encoded_path)
    table.add_row("Branch", current_branch(cwd) or "[dim](detached or unknown)[/dim]")
    console.print(table)
