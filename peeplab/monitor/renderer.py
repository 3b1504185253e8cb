"""Rich renderer for the peeplab dashboard.

Turns ``ApplicationState`` into a single Rich renderable per frame.  The
renderer reads state only; the log view is built from the cached
``ProcessedLine`` window produced by ``projection.log_viewport``.

Color scheme
------------
- green   : success
- red     : failed
- yellow  : running
- cyan    : pending / waiting
- dim     : created, skipped, canceled
- magenta : manual
"""

from __future__ import annotations

from datetime import datetime

from rich.console import Console, Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from peeplab.models.gitlab import JobStatus, PipelineStatus
from peeplab.models.state import ApplicationState, Mode, TimestampMode
from peeplab.monitor.keymap import HELP_ENTRIES
from peeplab.monitor.projection import (
    LogViewport,
    format_age,
    format_duration,
    latest_status,
    log_viewport,
)

# ---------------------------------------------------------------------------
# Status -> Rich style mapping
# ---------------------------------------------------------------------------

_STATUS_STYLES: dict[str, str] = {
    "success": "bold green",
    "failed": "bold red",
    "running": "bold yellow",
    "pending": "cyan",
    "waiting_for_resource": "cyan",
    "preparing": "cyan",
    "scheduled": "cyan",
    "created": "dim",
    "skipped": "dim",
    "canceled": "dim",
    "manual": "magenta",
}

_MATCH_STYLE = "black on yellow"
_CURRENT_MATCH_STYLE = "bold black on bright_yellow"

# Rows taken by the header, panel borders and status line.
_CHROME_ROWS = 7


def status_text(status: PipelineStatus | JobStatus) -> Text:
    """Symbol plus status name, colored by status."""
    return Text(f"{status.symbol} {status.value}", style=_STATUS_STYLES.get(status.value, ""))


class DashboardRenderer:
    """Renders ``ApplicationState`` as Rich renderables.

    Parameters
    ----------
    console:
        Rich Console used for sizing.  A new one is created if not provided.
    relative_timestamps:
        Show pipeline ages as ``"5m ago"`` instead of absolute times.
    """

    def __init__(self, console: Console | None = None, *, relative_timestamps: bool = True) -> None:
        self.console = console or Console()
        self.relative_timestamps = relative_timestamps

    @property
    def log_height(self) -> int:
        return max(3, self.console.size.height - _CHROME_ROWS)

    # ------------------------------------------------------------------
    # Frame
    # ------------------------------------------------------------------

    def render(self, state: ApplicationState, now: datetime | None = None) -> RenderableType:
        """Build the whole frame for *state*."""
        if state.mode is Mode.VIEWING_LOG:
            body = self._render_log(state)
        elif state.mode is Mode.VIEWING_COMMENTS:
            body = self._render_comments(state)
        elif state.mode is Mode.SELECTING_ITEM:
            body = self._render_selector(state)
        elif state.mode is Mode.SHOWING_HELP:
            body = self._render_help()
        else:
            body = self._render_overview(state, now)
        return Group(self._render_tabs(state), body, self._render_status(state))

    def _render_tabs(self, state: ApplicationState) -> Text:
        tabs = Text()
        if not state.items:
            tabs.append("peeplab", style="bold")
            tabs.append("  no merge requests tracked", style="dim")
            return tabs
        for index, item in enumerate(state.items):
            status = latest_status(item)
            symbol = status.symbol if status else "…"
            label = f" {symbol} !{item.merge_request.iid} "
            style = _STATUS_STYLES.get(status.value, "") if status else "dim"
            if index == state.selected_item:
                style = f"{style} reverse".strip()
            tabs.append(label, style=style)
            tabs.append(" ")
        return tabs

    def _render_status(self, state: ApplicationState) -> Text:
        if state.error_message:
            return Text(state.error_message, style="bold red")
        if state.mode is Mode.VIEWING_LOG and state.log.editing_query:
            return Text(f"/{state.log.draft}", style="bold")
        if state.status_message:
            return Text(state.status_message, style="cyan")
        return Text("? help  q quit", style="dim")

    # ------------------------------------------------------------------
    # Overview
    # ------------------------------------------------------------------

    def _render_overview(self, state: ApplicationState, now: datetime | None) -> RenderableType:
        item = state.current_item
        if item is None:
            return Panel(Text("Waiting for merge requests...", style="dim"), border_style="blue")

        mr = item.merge_request
        pipelines = Table(show_header=True, header_style="bold cyan", expand=True, pad_edge=True)
        pipelines.add_column("", width=2)
        pipelines.add_column("Pipeline", width=12)
        pipelines.add_column("Status", min_width=14)
        pipelines.add_column("Ref", min_width=16)
        pipelines.add_column("Created", justify="right", width=18)
        for index, pipeline in enumerate(item.pipelines):
            marker = "▶" if index == item.selected_pipeline else ""
            if self.relative_timestamps:
                created = format_age(pipeline.created_at, now)
            else:
                created = pipeline.created_at.strftime("%Y-%m-%d %H:%M")
            pipelines.add_row(marker, f"#{pipeline.id}", status_text(pipeline.status), pipeline.ref, created)
        if not item.pipelines_loaded:
            pipelines.add_row("", "[dim]loading...[/dim]", "", "", "")

        jobs = Table(show_header=True, header_style="bold cyan", expand=True, pad_edge=True)
        jobs.add_column("", width=2)
        jobs.add_column("Job", min_width=20)
        jobs.add_column("Stage", min_width=10)
        jobs.add_column("Status", min_width=14)
        jobs.add_column("Duration", justify="right", width=10)
        for index, job in enumerate(item.current_jobs):
            selected = index == state.selected_job
            jobs.add_row(
                "▶" if selected else "",
                Text(job.name, style="bold" if selected else ""),
                job.stage,
                status_text(job.status),
                format_duration(job.duration),
            )

        return Panel(
            Group(pipelines, Text(""), jobs),
            title=Text.assemble((f"!{mr.iid}", "bold"), f" {mr.title}"),
            subtitle=Text(f"{mr.author.username}  {mr.source_branch} → {mr.target_branch}"),
            border_style="blue",
        )

    # ------------------------------------------------------------------
    # Log view
    # ------------------------------------------------------------------

    def _render_log(self, state: ApplicationState) -> RenderableType:
        viewport = log_viewport(state, self.log_height)
        if viewport is None:
            return Panel(Text("Log not loaded", style="dim"), border_style="yellow")
        body = Group(*(self._log_line(viewport, offset) for offset in range(len(viewport.lines))))
        position = f"{viewport.start + 1}-{viewport.end}/{viewport.total}" if viewport.total else "empty"
        subtitle = f"{position}  timestamps: {timestamp_mode_label(state.log.timestamp_mode)}"
        if state.log.query:
            subtitle += f"  search: {state.log.query}"
        return Panel(
            body,
            title=Text(viewport.job_name, style="bold"),
            subtitle=Text(subtitle),
            border_style="yellow",
        )

    def _log_line(self, viewport: LogViewport, offset: int) -> Text:
        index = viewport.start + offset
        line = viewport.lines[offset]
        text = Text(no_wrap=True, overflow="ellipsis")
        if line.label:
            text.append(line.label, style="dim")
            text.append(" ")
        base = len(text)
        text.append(line.text)
        for span in line.spans:
            text.stylize(span.style, base + span.start, base + span.end)
        for match in viewport.matches.get(index, []):
            style = _CURRENT_MATCH_STYLE if match == viewport.current_match else _MATCH_STYLE
            text.stylize(style, base + match.column, base + match.column + match.length)
        return text

    # ------------------------------------------------------------------
    # Comments, selector, help
    # ------------------------------------------------------------------

    def _render_comments(self, state: ApplicationState) -> RenderableType:
        item = state.current_item
        if item is None:
            return Panel(Text("No merge request selected", style="dim"))
        if not item.notes:
            body: RenderableType = Text("No comments", style="dim")
        else:
            rows = []
            for index, note in enumerate(item.notes):
                header = Text(f"{note.author.username}  ", style="bold")
                header.append(note.created_at.strftime("%Y-%m-%d %H:%M"), style="dim")
                if note.system:
                    header.append("  system", style="dim italic")
                style = "on grey15" if index == item.note_index else ""
                rows.append(Group(header, Text(note.body, style=style), Text("")))
            body = Group(*rows[item.note_index :])
        return Panel(
            body,
            title=f"[bold]Comments on !{item.merge_request.iid}[/bold]",
            subtitle=f"{item.note_index + 1 if item.notes else 0}/{len(item.notes)}",
            border_style="magenta",
        )

    def _render_selector(self, state: ApplicationState) -> RenderableType:
        table = Table(show_header=True, header_style="bold cyan", expand=True)
        table.add_column("#", style="dim", width=3, justify="right")
        table.add_column("MR", width=8)
        table.add_column("Title", min_width=30)
        table.add_column("Branch", min_width=16)
        table.add_column("Pipeline", min_width=14)
        for index, item in enumerate(state.items):
            status = latest_status(item)
            row_style = "reverse" if index == state.selector_index else ""
            table.add_row(
                str(index + 1),
                f"!{item.merge_request.iid}",
                Text(item.merge_request.title),
                Text(item.merge_request.source_branch),
                status_text(status) if status else Text("-", style="dim"),
                style=row_style,
            )
        return Panel(table, title="[bold]Select merge request[/bold]", border_style="cyan")

    def _render_help(self) -> RenderableType:
        table = Table(show_header=False, box=None, pad_edge=False)
        table.add_column("Keys", style="bold cyan", min_width=16)
        table.add_column("Action")
        for keys, description in HELP_ENTRIES:
            table.add_row(keys, description)
        return Panel(table, title="[bold]Keys[/bold]", border_style="cyan")

    # ------------------------------------------------------------------
    # Standalone print
    # ------------------------------------------------------------------

    def print_frame(self, state: ApplicationState) -> None:
        """Print a single frame to the console."""
        self.console.print(self.render(state))


def timestamp_mode_label(mode: TimestampMode) -> str:
    return mode.value.replace("_", " ")
