"""Main Typer application — registers all CLI commands.

Entry point: ``peeplab`` (configured via pyproject.toml project.scripts).
"""

from __future__ import annotations

import typer

from peeplab.cli.commands.config_cmd import config_cmd
from peeplab.cli.commands.detect_cmd import detect_cmd
from peeplab.cli.commands.watch_cmd import watch_cmd

app = typer.Typer(
    name="peeplab",
    help="peeplab: read-only terminal dashboard for GitLab merge request pipelines.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="watch", help="Show the live pipeline dashboard.")(watch_cmd)
app.command(name="detect", help="Show the project detected from the git remote.")(detect_cmd)
app.command(name="config", help="Show the effective configuration.")(config_cmd)


@app.command(name="version", help="Print the peeplab version.")
def version_cmd() -> None:
    """Print the installed version."""
    from peeplab import __version__

    typer.echo(f"peeplab {__version__}")


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
