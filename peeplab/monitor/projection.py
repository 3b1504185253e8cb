"""Pure read-only projections of ``ApplicationState`` for rendering.

Nothing here mutates state or touches the log cache; the log viewport
only slices the cached lines and looks up the precomputed match index.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict

from peeplab.models.gitlab import PipelineStatus
from peeplab.models.state import ApplicationState, ProcessedLine, SearchMatch, TrackedItem


class LogViewport(BaseModel):
    """The visible window of the active log."""

    model_config = ConfigDict(frozen=True)

    job_name: str
    start: int
    total: int
    lines: list[ProcessedLine] = []
    matches: dict[int, list[SearchMatch]] = {}
    current_match: SearchMatch | None = None

    @property
    def end(self) -> int:
        return self.start + len(self.lines)


def window_start(scroll: int, total: int, height: int) -> int:
    """First visible line so that *scroll* is shown and the window stays full."""
    if total <= height:
        return 0
    return max(0, min(scroll, total - height))


def log_viewport(state: ApplicationState, height: int) -> LogViewport | None:
    """Project the active log cache onto a window of *height* lines."""
    item = state.current_item
    if item is None or item.log_cache is None or not item.log_cache.loaded:
        return None
    cache = item.log_cache
    height = max(1, height)
    total = len(cache.lines)
    start = window_start(state.log.scroll, total, height)
    end = min(total, start + height)

    current: SearchMatch | None = None
    cursor = state.log.match_cursor
    if cursor is not None and 0 <= cursor < len(cache.matches):
        current = cache.matches[cursor]

    return LogViewport(
        job_name=cache.job_name,
        start=start,
        total=total,
        lines=cache.lines[start:end],
        matches={i: cache.by_line[i] for i in range(start, end) if i in cache.by_line},
        current_match=current,
    )


def latest_status(item: TrackedItem) -> PipelineStatus | None:
    """Status of the newest pipeline, or ``None`` before pipelines load."""
    if not item.pipelines:
        return None
    return item.pipelines[0].status


def format_age(moment: datetime | None, now: datetime | None = None) -> str:
    """Relative age such as ``"5m ago"``."""
    if moment is None:
        return "-"
    now = now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    seconds = int((now - moment).total_seconds())
    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    return f"{seconds // 86400}d ago"


def format_duration(seconds: float | None) -> str:
    if seconds is None:
        return "-"
    total = int(seconds)
    minutes, secs = divmod(total, 60)
    if minutes >= 60:
        hours, minutes = divmod(minutes, 60)
        return f"{hours}h {minutes}m"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"
