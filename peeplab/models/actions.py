"""Action vocabulary — every trigger the update function understands.

Actions are frozen Pydantic models discriminated by ``kind``.  Input
actions without a payload are plain ``Action(kind=...)`` instances; the
ones carrying data have their own subclass, registered in
``ACTION_TYPE_MAP``.

Result actions name their target by item key, never by list index: an
index can be reused by a different merge request after a removal, a key
cannot.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from peeplab.errors import ErrorKind
from peeplab.models.gitlab import ItemKey, Job, MergeRequest, Note, Pipeline


class ActionKind(str, Enum):
    """Every action the update function handles."""

    # Navigation
    NEXT_ITEM = "next_item"
    PREV_ITEM = "prev_item"
    NEXT_PIPELINE = "next_pipeline"
    PREV_PIPELINE = "prev_pipeline"
    NEXT_JOB = "next_job"
    PREV_JOB = "prev_job"

    # Views
    OPEN_LOG = "open_log"
    CLOSE_LOG = "close_log"
    TOGGLE_COMMENTS = "toggle_comments"
    NEXT_NOTE = "next_note"
    PREV_NOTE = "prev_note"
    SCROLL_COMMENTS = "scroll_comments"
    SHOW_HELP = "show_help"
    HIDE_HELP = "hide_help"
    OPEN_ITEM_SELECTOR = "open_item_selector"
    SELECT_ITEM = "select_item"
    CANCEL_SELECTION = "cancel_selection"

    # Item management
    REFRESH = "refresh"
    REMOVE_ITEM = "remove_item"
    QUIT = "quit"

    # Log viewer
    SCROLL_LOG = "scroll_log"
    SCROLL_LOG_TOP = "scroll_log_top"
    SCROLL_LOG_BOTTOM = "scroll_log_bottom"
    TOGGLE_TIMESTAMPS = "toggle_timestamps"
    START_SEARCH = "start_search"
    SEARCH_INPUT = "search_input"
    SEARCH_BACKSPACE = "search_backspace"
    SUBMIT_SEARCH = "submit_search"
    CANCEL_SEARCH = "cancel_search"
    NEXT_MATCH = "next_match"
    PREV_MATCH = "prev_match"

    # Timer
    REFRESH_TICK = "refresh_tick"

    # Effect results
    MERGE_REQUESTS_LOADED = "merge_requests_loaded"
    PIPELINES_LOADED = "pipelines_loaded"
    JOBS_LOADED = "jobs_loaded"
    TRACE_LOADED = "trace_loaded"
    NOTES_LOADED = "notes_loaded"
    FETCH_FAILED = "fetch_failed"


# Valid in every mode, whatever the user is looking at.
GLOBAL_ACTIONS: frozenset[ActionKind] = frozenset(
    {
        ActionKind.QUIT,
        ActionKind.REFRESH_TICK,
        ActionKind.MERGE_REQUESTS_LOADED,
        ActionKind.PIPELINES_LOADED,
        ActionKind.JOBS_LOADED,
        ActionKind.TRACE_LOADED,
        ActionKind.NOTES_LOADED,
        ActionKind.FETCH_FAILED,
    }
)


class Action(BaseModel):
    """Base action.  Payload-free actions are instances of this class."""

    model_config = ConfigDict(frozen=True)

    kind: ActionKind


# ---------------------------------------------------------------------------
# Input actions with a payload
# ---------------------------------------------------------------------------


class SelectItem(Action):
    """Confirm the item selector.  ``index=None`` picks the highlighted row."""

    kind: ActionKind = ActionKind.SELECT_ITEM
    index: int | None = None


class ScrollLog(Action):
    kind: ActionKind = ActionKind.SCROLL_LOG
    delta: int


class ScrollComments(Action):
    kind: ActionKind = ActionKind.SCROLL_COMMENTS
    delta: int


class SearchInput(Action):
    kind: ActionKind = ActionKind.SEARCH_INPUT
    text: str


# ---------------------------------------------------------------------------
# Result actions, produced by the effect dispatcher
# ---------------------------------------------------------------------------


class MergeRequestsLoaded(Action):
    """Open merge requests for a project, optionally filtered by branch."""

    kind: ActionKind = ActionKind.MERGE_REQUESTS_LOADED
    project_id: int
    merge_requests: list[MergeRequest] = []
    source_branch: str | None = None
    fetched_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class PipelinesLoaded(Action):
    kind: ActionKind = ActionKind.PIPELINES_LOADED
    item_key: ItemKey
    pipelines: list[Pipeline] = []


class JobsLoaded(Action):
    kind: ActionKind = ActionKind.JOBS_LOADED
    item_key: ItemKey
    pipeline_id: int
    jobs: list[Job] = []


class TraceLoaded(Action):
    kind: ActionKind = ActionKind.TRACE_LOADED
    item_key: ItemKey
    job_id: int
    job_name: str
    trace: bytes


class NotesLoaded(Action):
    kind: ActionKind = ActionKind.NOTES_LOADED
    item_key: ItemKey
    notes: list[Note] = []


class FetchFailed(Action):
    """Any non-fatal failure of an effect.

    ``item_key`` is ``None`` for failures not tied to a tracked item,
    such as the merge request list itself.
    """

    kind: ActionKind = ActionKind.FETCH_FAILED
    item_key: ItemKey | None = None
    error_kind: ErrorKind
    message: str


# Registry of the action kinds that carry a payload.
ACTION_TYPE_MAP: dict[ActionKind, type[Action]] = {
    ActionKind.SELECT_ITEM: SelectItem,
    ActionKind.SCROLL_LOG: ScrollLog,
    ActionKind.SCROLL_COMMENTS: ScrollComments,
    ActionKind.SEARCH_INPUT: SearchInput,
    ActionKind.MERGE_REQUESTS_LOADED: MergeRequestsLoaded,
    ActionKind.PIPELINES_LOADED: PipelinesLoaded,
    ActionKind.JOBS_LOADED: JobsLoaded,
    ActionKind.TRACE_LOADED: TraceLoaded,
    ActionKind.NOTES_LOADED: NotesLoaded,
    ActionKind.FETCH_FAILED: FetchFailed,
}


class KeyPress(BaseModel):
    """A decoded key from the terminal, before it is mapped to an action.

    Special keys use lowercase names (``"up"``, ``"pagedown"``, ``"esc"``,
    ``"enter"``, ``"backspace"``, ``"ctrl-c"``); printable keys are the
    character itself.
    """

    model_config = ConfigDict(frozen=True)

    key: str
