"""Application state — the single model owned by the event-loop thread.

``ApplicationState`` and ``TrackedItem`` are mutable and are only ever
touched by ``peeplab.core.transitions.update``.  Everything a background
task can hand over (``LogCache``, ``ProcessedLine``, provider models) is
frozen and replaced wholesale.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from peeplab.models.gitlab import ItemKey, Job, MergeRequest, Note, Pipeline


class Mode(str, Enum):
    """Interaction context; decides which actions are meaningful."""

    NORMAL = "normal"
    VIEWING_LOG = "viewing_log"
    VIEWING_COMMENTS = "viewing_comments"
    SELECTING_ITEM = "selecting_item"
    SHOWING_HELP = "showing_help"


class TimestampMode(str, Enum):
    """How extracted log timestamps are displayed."""

    HIDDEN = "hidden"
    DATE_ONLY = "date_only"
    FULL = "full"

    def next(self) -> TimestampMode:
        """Cycle HIDDEN -> DATE_ONLY -> FULL -> HIDDEN."""
        order = list(TimestampMode)
        return order[(order.index(self) + 1) % len(order)]


# ---------------------------------------------------------------------------
# Processed log data
# ---------------------------------------------------------------------------


class StyleSpan(BaseModel):
    """A styled range of a processed line, in Rich style syntax."""

    model_config = ConfigDict(frozen=True)

    start: int
    end: int
    style: str


class ProcessedLine(BaseModel):
    """One display-ready log line.

    ``timestamp`` is the raw extracted value and survives mode changes;
    ``label`` is what the current timestamp mode renders from it.
    """

    model_config = ConfigDict(frozen=True)

    text: str
    timestamp: str | None = None
    label: str | None = None
    spans: list[StyleSpan] = []
    length: int = 0


class SearchMatch(BaseModel):
    """One case-insensitive occurrence of the search query."""

    model_config = ConfigDict(frozen=True)

    line: int
    column: int
    length: int


class LogCache(BaseModel):
    """Raw trace of one job plus everything derived from it.

    ``lines`` is valid for ``(raw, mode)`` and ``matches``/``by_line`` for
    ``(lines, query)``.  Instances are never edited; the log processor
    returns a new cache whenever one of the inputs changes.
    """

    model_config = ConfigDict(frozen=True)

    job_id: int
    job_name: str
    raw: bytes | None = None
    mode: TimestampMode = TimestampMode.HIDDEN
    lines: list[ProcessedLine] = []
    query: str = ""
    matches: list[SearchMatch] = []
    by_line: dict[int, list[SearchMatch]] = {}

    @property
    def loaded(self) -> bool:
        return self.raw is not None


# ---------------------------------------------------------------------------
# Mutable model
# ---------------------------------------------------------------------------


class LogViewerState(BaseModel):
    """Scroll position, timestamp display and search state of the log view."""

    scroll: int = 0
    timestamp_mode: TimestampMode = TimestampMode.HIDDEN
    query: str = ""
    draft: str = ""
    editing_query: bool = False
    match_cursor: int | None = None


class TrackedItem(BaseModel):
    """One monitored merge request and everything fetched for it.

    ``jobs`` is keyed by pipeline ID; presence of a key is the "jobs
    loaded" flag for that pipeline.
    """

    merge_request: MergeRequest
    pipelines: list[Pipeline] = []
    jobs: dict[int, list[Job]] = {}
    notes: list[Note] = []
    pipelines_loaded: bool = False
    notes_loaded: bool = False
    selected_pipeline: int = 0
    note_index: int = 0
    log_cache: LogCache | None = None

    @property
    def key(self) -> ItemKey:
        return self.merge_request.key

    @property
    def current_pipeline(self) -> Pipeline | None:
        if 0 <= self.selected_pipeline < len(self.pipelines):
            return self.pipelines[self.selected_pipeline]
        return None

    @property
    def current_jobs(self) -> list[Job]:
        pipeline = self.current_pipeline
        if pipeline is None:
            return []
        return self.jobs.get(pipeline.id, [])


class ApplicationState(BaseModel):
    """The whole dashboard model.

    Parameters
    ----------
    project_id:
        Provider project whose merge requests are tracked.
    focus_branch:
        When set, only merge requests from this source branch are tracked
        and every refresh replaces the item list.
    max_tracked_items:
        Upper bound on ``items``.
    refresh_interval:
        Seconds between automatic refresh ticks.
    """

    project_id: int
    focus_branch: str | None = None
    max_tracked_items: int = 5
    refresh_interval: float = 30.0

    items: list[TrackedItem] = []
    mode: Mode = Mode.NORMAL
    selected_item: int = 0
    selected_job: int = 0
    selector_index: int = 0
    status_message: str | None = None
    error_message: str | None = None
    log: LogViewerState = Field(default_factory=LogViewerState)
    should_quit: bool = False
    last_refresh: datetime | None = None

    @property
    def current_item(self) -> TrackedItem | None:
        if 0 <= self.selected_item < len(self.items):
            return self.items[self.selected_item]
        return None

    @property
    def current_job(self) -> Job | None:
        item = self.current_item
        if item is None:
            return None
        jobs = item.current_jobs
        if 0 <= self.selected_job < len(jobs):
            return jobs[self.selected_job]
        return None

    def find_item(self, key: ItemKey) -> TrackedItem | None:
        """Return the tracked item with *key*, or ``None`` if it is gone."""
        for item in self.items:
            if item.key == key:
                return item
        return None
