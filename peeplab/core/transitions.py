"""Pure update function — the only code that mutates ``ApplicationState``.

``update(state, action)`` applies one action in place and returns at most
one ``Effect``.  It performs no I/O and never blocks.

Enforces:
- Mode gating via the MODE_ACTIONS table (invalid actions are no-ops)
- Index clamping: navigation never wraps and never leaves ``[0, len-1]``
- Lazy fetching of traces and notes on first view
- Stale-result dropping: results for removed items or pipelines are ignored
- Loaded flags set in the same step as the data they describe
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from peeplab.core.log_processor import load_trace, with_mode, with_query
from peeplab.models.actions import (
    GLOBAL_ACTIONS,
    Action,
    ActionKind,
    FetchFailed,
    JobsLoaded,
    MergeRequestsLoaded,
    NotesLoaded,
    PipelinesLoaded,
    ScrollComments,
    ScrollLog,
    SearchInput,
    SelectItem,
    TraceLoaded,
)
from peeplab.models.effects import (
    Batch,
    Effect,
    FetchJobs,
    FetchMergeRequests,
    FetchNotes,
    FetchPipelines,
    FetchTrace,
    ScheduleRefresh,
)
from peeplab.models.gitlab import sort_jobs
from peeplab.models.state import ApplicationState, LogCache, Mode, TrackedItem

logger = logging.getLogger(__name__)

# Input actions accepted in each mode.  GLOBAL_ACTIONS are accepted everywhere.
MODE_ACTIONS: dict[Mode, frozenset[ActionKind]] = {
    Mode.NORMAL: frozenset(
        {
            ActionKind.NEXT_ITEM,
            ActionKind.PREV_ITEM,
            ActionKind.NEXT_PIPELINE,
            ActionKind.PREV_PIPELINE,
            ActionKind.NEXT_JOB,
            ActionKind.PREV_JOB,
            ActionKind.OPEN_LOG,
            ActionKind.TOGGLE_COMMENTS,
            ActionKind.REMOVE_ITEM,
            ActionKind.REFRESH,
            ActionKind.SHOW_HELP,
            ActionKind.OPEN_ITEM_SELECTOR,
        }
    ),
    Mode.VIEWING_LOG: frozenset(
        {
            ActionKind.SCROLL_LOG,
            ActionKind.SCROLL_LOG_TOP,
            ActionKind.SCROLL_LOG_BOTTOM,
            ActionKind.TOGGLE_TIMESTAMPS,
            ActionKind.START_SEARCH,
            ActionKind.SEARCH_INPUT,
            ActionKind.SEARCH_BACKSPACE,
            ActionKind.SUBMIT_SEARCH,
            ActionKind.CANCEL_SEARCH,
            ActionKind.NEXT_MATCH,
            ActionKind.PREV_MATCH,
            ActionKind.CLOSE_LOG,
        }
    ),
    Mode.VIEWING_COMMENTS: frozenset(
        {
            ActionKind.NEXT_NOTE,
            ActionKind.PREV_NOTE,
            ActionKind.SCROLL_COMMENTS,
            ActionKind.TOGGLE_COMMENTS,
        }
    ),
    Mode.SELECTING_ITEM: frozenset(
        {
            ActionKind.NEXT_ITEM,
            ActionKind.PREV_ITEM,
            ActionKind.SELECT_ITEM,
            ActionKind.CANCEL_SELECTION,
        }
    ),
    Mode.SHOWING_HELP: frozenset({ActionKind.HIDE_HELP}),
}


def is_valid(mode: Mode, kind: ActionKind) -> bool:
    """Whether an action of *kind* has any effect in *mode*."""
    return kind in GLOBAL_ACTIONS or kind in MODE_ACTIONS[mode]


def update(state: ApplicationState, action: Action) -> Effect | None:
    """Apply *action* to *state* in place and return the requested effect."""
    if not is_valid(state.mode, action.kind):
        logger.debug("Ignoring %s in mode %s", action.kind.value, state.mode.value)
        return None
    return _HANDLERS[action.kind](state, action)


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _clamp(index: int, length: int) -> int:
    if length <= 0:
        return 0
    return max(0, min(index, length - 1))


def _stale(action: Action, reason: str) -> None:
    logger.debug("Dropping stale %s: %s", action.kind.value, reason)


def _refresh_effect(state: ApplicationState) -> FetchMergeRequests:
    return FetchMergeRequests(project_id=state.project_id, source_branch=state.focus_branch)


def _active_log(state: ApplicationState) -> tuple[TrackedItem, LogCache] | None:
    item = state.current_item
    if item is None or item.log_cache is None or not item.log_cache.loaded:
        return None
    return item, item.log_cache


def _enter_log_view(state: ApplicationState, item: TrackedItem, cache: LogCache) -> None:
    item.log_cache = with_query(with_mode(cache, state.log.timestamp_mode), "")
    state.mode = Mode.VIEWING_LOG
    state.log.scroll = 0
    state.log.query = ""
    state.log.draft = ""
    state.log.editing_query = False
    state.log.match_cursor = None


def _jobs_effect(item: TrackedItem) -> FetchJobs | None:
    pipeline = item.current_pipeline
    if pipeline is None:
        return None
    return FetchJobs(item_key=item.key, pipeline_id=pipeline.id)


# ------------------------------------------------------------------
# Navigation
# ------------------------------------------------------------------


def _move_item(state: ApplicationState, delta: int) -> Effect | None:
    if not state.items:
        return None
    if state.mode is Mode.SELECTING_ITEM:
        state.selector_index = _clamp(state.selector_index + delta, len(state.items))
        return None
    target = _clamp(state.selected_item + delta, len(state.items))
    if target != state.selected_item:
        state.selected_item = target
        state.selected_job = 0
    return None


def _move_pipeline(state: ApplicationState, delta: int) -> Effect | None:
    item = state.current_item
    if item is None or not item.pipelines:
        return None
    target = _clamp(item.selected_pipeline + delta, len(item.pipelines))
    if target == item.selected_pipeline:
        return None
    item.selected_pipeline = target
    state.selected_job = 0
    pipeline = item.pipelines[target]
    if pipeline.id in item.jobs:
        return None
    state.status_message = f"Loading jobs for pipeline #{pipeline.id}..."
    return FetchJobs(item_key=item.key, pipeline_id=pipeline.id)


def _move_job(state: ApplicationState, delta: int) -> Effect | None:
    item = state.current_item
    if item is None or not item.current_jobs:
        return None
    state.selected_job = _clamp(state.selected_job + delta, len(item.current_jobs))
    return None


def _next_item(state: ApplicationState, action: Action) -> Effect | None:
    return _move_item(state, 1)


def _prev_item(state: ApplicationState, action: Action) -> Effect | None:
    return _move_item(state, -1)


def _next_pipeline(state: ApplicationState, action: Action) -> Effect | None:
    return _move_pipeline(state, 1)


def _prev_pipeline(state: ApplicationState, action: Action) -> Effect | None:
    return _move_pipeline(state, -1)


def _next_job(state: ApplicationState, action: Action) -> Effect | None:
    return _move_job(state, 1)


def _prev_job(state: ApplicationState, action: Action) -> Effect | None:
    return _move_job(state, -1)


# ------------------------------------------------------------------
# Views and item management
# ------------------------------------------------------------------


def _open_log(state: ApplicationState, action: Action) -> Effect | None:
    item = state.current_item
    job = state.current_job
    if item is None or job is None:
        return None
    cache = item.log_cache
    if cache is not None and cache.job_id == job.id and cache.loaded:
        _enter_log_view(state, item, cache)
        return None
    item.log_cache = LogCache(job_id=job.id, job_name=job.name)
    state.status_message = f"Fetching log for job '{job.name}'..."
    state.error_message = None
    return FetchTrace(item_key=item.key, job_id=job.id, job_name=job.name)


def _close_log(state: ApplicationState, action: Action) -> Effect | None:
    state.mode = Mode.NORMAL
    state.log.editing_query = False
    state.log.draft = ""
    return None


def _toggle_comments(state: ApplicationState, action: Action) -> Effect | None:
    if state.mode is Mode.VIEWING_COMMENTS:
        state.mode = Mode.NORMAL
        return None
    item = state.current_item
    if item is None:
        return None
    if item.notes_loaded:
        item.note_index = _clamp(item.note_index, len(item.notes))
        state.mode = Mode.VIEWING_COMMENTS
        return None
    state.status_message = "Loading comments..."
    state.error_message = None
    return FetchNotes(item_key=item.key)


def _move_note(state: ApplicationState, delta: int) -> Effect | None:
    item = state.current_item
    if item is None or not item.notes:
        return None
    item.note_index = _clamp(item.note_index + delta, len(item.notes))
    return None


def _next_note(state: ApplicationState, action: Action) -> Effect | None:
    return _move_note(state, 1)


def _prev_note(state: ApplicationState, action: Action) -> Effect | None:
    return _move_note(state, -1)


def _scroll_comments(state: ApplicationState, action: ScrollComments) -> Effect | None:
    return _move_note(state, action.delta)


def _show_help(state: ApplicationState, action: Action) -> Effect | None:
    state.mode = Mode.SHOWING_HELP
    return None


def _hide_help(state: ApplicationState, action: Action) -> Effect | None:
    state.mode = Mode.NORMAL
    return None


def _open_item_selector(state: ApplicationState, action: Action) -> Effect | None:
    if not state.items:
        return None
    state.selector_index = state.selected_item
    state.mode = Mode.SELECTING_ITEM
    return None


def _select_item(state: ApplicationState, action: SelectItem) -> Effect | None:
    index = state.selector_index if action.index is None else action.index
    if not 0 <= index < len(state.items):
        return None
    if index != state.selected_item:
        state.selected_item = index
        state.selected_job = 0
    state.mode = Mode.NORMAL
    return None


def _cancel_selection(state: ApplicationState, action: Action) -> Effect | None:
    state.mode = Mode.NORMAL
    return None


def _remove_item(state: ApplicationState, action: Action) -> Effect | None:
    item = state.current_item
    if item is None:
        return None
    del state.items[state.selected_item]
    state.selected_item = _clamp(state.selected_item, len(state.items))
    state.selected_job = 0
    state.status_message = f"Stopped tracking !{item.merge_request.iid}"
    return None


def _refresh(state: ApplicationState, action: Action) -> Effect | None:
    for item in state.items:
        item.notes = []
        item.notes_loaded = False
        item.note_index = 0
    state.status_message = "Refreshing..."
    state.error_message = None
    return _refresh_effect(state)


def _refresh_tick(state: ApplicationState, action: Action) -> Effect | None:
    state.status_message = "Refreshing..."
    return Batch(
        effects=[
            _refresh_effect(state),
            ScheduleRefresh(after=state.refresh_interval),
        ]
    )


def _quit(state: ApplicationState, action: Action) -> Effect | None:
    state.should_quit = True
    return None


# ------------------------------------------------------------------
# Log viewer
# ------------------------------------------------------------------


def _scroll_log(state: ApplicationState, action: ScrollLog) -> Effect | None:
    active = _active_log(state)
    if active is None:
        return None
    _, cache = active
    state.log.scroll = _clamp(state.log.scroll + action.delta, len(cache.lines))
    return None


def _scroll_log_top(state: ApplicationState, action: Action) -> Effect | None:
    state.log.scroll = 0
    return None


def _scroll_log_bottom(state: ApplicationState, action: Action) -> Effect | None:
    active = _active_log(state)
    if active is None:
        return None
    state.log.scroll = _clamp(len(active[1].lines) - 1, len(active[1].lines))
    return None


def _toggle_timestamps(state: ApplicationState, action: Action) -> Effect | None:
    state.log.timestamp_mode = state.log.timestamp_mode.next()
    active = _active_log(state)
    if active is not None:
        item, cache = active
        item.log_cache = with_mode(cache, state.log.timestamp_mode)
    return None


def _start_search(state: ApplicationState, action: Action) -> Effect | None:
    state.log.editing_query = True
    state.log.draft = state.log.query
    return None


def _search_input(state: ApplicationState, action: SearchInput) -> Effect | None:
    if state.log.editing_query:
        state.log.draft += action.text
    return None


def _search_backspace(state: ApplicationState, action: Action) -> Effect | None:
    if state.log.editing_query:
        state.log.draft = state.log.draft[:-1]
    return None


def _submit_search(state: ApplicationState, action: Action) -> Effect | None:
    if not state.log.editing_query:
        return None
    state.log.editing_query = False
    state.log.query = state.log.draft
    state.log.match_cursor = None
    active = _active_log(state)
    if active is None:
        return None
    item, cache = active
    cache = with_query(cache, state.log.query)
    item.log_cache = cache
    if not state.log.query:
        state.status_message = None
        return None
    if not cache.matches:
        state.status_message = f"No matches for '{state.log.query}'"
        return None
    # First match at or below the current scroll position, else wrap to the top.
    cursor = next(
        (i for i, match in enumerate(cache.matches) if match.line >= state.log.scroll),
        0,
    )
    state.log.match_cursor = cursor
    state.log.scroll = cache.matches[cursor].line
    state.status_message = f"{len(cache.matches)} matches for '{state.log.query}'"
    return None


def _cancel_search(state: ApplicationState, action: Action) -> Effect | None:
    state.log.editing_query = False
    state.log.draft = ""
    return None


def _step_match(state: ApplicationState, delta: int) -> Effect | None:
    active = _active_log(state)
    if active is None or not active[1].matches:
        return None
    matches = active[1].matches
    if state.log.match_cursor is None:
        cursor = 0 if delta > 0 else len(matches) - 1
    else:
        cursor = (state.log.match_cursor + delta) % len(matches)
    state.log.match_cursor = cursor
    state.log.scroll = matches[cursor].line
    return None


def _next_match(state: ApplicationState, action: Action) -> Effect | None:
    return _step_match(state, 1)


def _prev_match(state: ApplicationState, action: Action) -> Effect | None:
    return _step_match(state, -1)


# ------------------------------------------------------------------
# Effect results
# ------------------------------------------------------------------


def _merge_requests_loaded(state: ApplicationState, action: MergeRequestsLoaded) -> Effect | None:
    if action.project_id != state.project_id or action.source_branch != state.focus_branch:
        _stale(action, "project or branch filter changed")
        return None

    incoming = []
    seen: set[int] = set()
    for mr in action.merge_requests:
        if mr.iid not in seen:
            seen.add(mr.iid)
            incoming.append(mr)

    existing = {item.key: item for item in state.items}
    if state.focus_branch is not None:
        replaced: list[TrackedItem] = []
        for mr in incoming[: state.max_tracked_items]:
            item = existing.get(mr.key) or TrackedItem(merge_request=mr)
            item.merge_request = mr
            replaced.append(item)
        state.items = replaced
    else:
        for mr in incoming:
            if mr.key in existing:
                existing[mr.key].merge_request = mr
            elif len(state.items) < state.max_tracked_items:
                state.items.append(TrackedItem(merge_request=mr))

    state.selected_item = _clamp(state.selected_item, len(state.items))
    state.last_refresh = action.fetched_at
    if state.items:
        state.status_message = f"Loaded {len(state.items)} merge requests"
    elif state.focus_branch is not None:
        state.status_message = f"No open merge request for branch '{state.focus_branch}'"
    else:
        state.status_message = "No open merge requests"

    if not state.items:
        return None
    return Batch(effects=[FetchPipelines(item_key=item.key) for item in state.items])


def _pipelines_loaded(state: ApplicationState, action: PipelinesLoaded) -> Effect | None:
    item = state.find_item(action.item_key)
    if item is None:
        _stale(action, f"item {action.item_key} no longer tracked")
        return None
    item.pipelines = list(action.pipelines)
    item.pipelines_loaded = True
    live_ids = {pipeline.id for pipeline in item.pipelines}
    item.jobs = {pid: jobs for pid, jobs in item.jobs.items() if pid in live_ids}
    item.selected_pipeline = _clamp(item.selected_pipeline, len(item.pipelines))
    return _jobs_effect(item)


def _jobs_loaded(state: ApplicationState, action: JobsLoaded) -> Effect | None:
    item = state.find_item(action.item_key)
    if item is None:
        _stale(action, f"item {action.item_key} no longer tracked")
        return None
    if all(pipeline.id != action.pipeline_id for pipeline in item.pipelines):
        _stale(action, f"pipeline {action.pipeline_id} no longer listed")
        return None
    item.jobs[action.pipeline_id] = sort_jobs(list(action.jobs))
    if item is state.current_item:
        state.selected_job = _clamp(state.selected_job, len(item.current_jobs))
        if state.status_message and state.status_message.startswith("Loading jobs"):
            state.status_message = None
    return None


def _trace_loaded(state: ApplicationState, action: TraceLoaded) -> Effect | None:
    item = state.find_item(action.item_key)
    if item is None:
        _stale(action, f"item {action.item_key} no longer tracked")
        return None
    cache = item.log_cache
    if cache is None or cache.job_id != action.job_id:
        _stale(action, f"trace for job {action.job_id} was superseded")
        return None
    cache = load_trace(cache, action.trace, state.log.timestamp_mode)
    item.log_cache = cache
    job = state.current_job
    if (
        state.mode is Mode.NORMAL
        and item is state.current_item
        and job is not None
        and job.id == action.job_id
    ):
        _enter_log_view(state, item, cache)
        state.status_message = None
    return None


def _notes_loaded(state: ApplicationState, action: NotesLoaded) -> Effect | None:
    item = state.find_item(action.item_key)
    if item is None:
        _stale(action, f"item {action.item_key} no longer tracked")
        return None
    item.notes = list(action.notes)
    item.notes_loaded = True
    item.note_index = 0
    if state.mode is Mode.NORMAL and item is state.current_item:
        state.mode = Mode.VIEWING_COMMENTS
        state.status_message = None
    return None


def _fetch_failed(state: ApplicationState, action: FetchFailed) -> Effect | None:
    logger.warning("%s: %s", action.error_kind.value, action.message)
    state.error_message = f"{action.error_kind.value}: {action.message}"
    state.status_message = None
    return None


_HANDLERS: dict[ActionKind, Callable[[ApplicationState, Any], Effect | None]] = {
    ActionKind.NEXT_ITEM: _next_item,
    ActionKind.PREV_ITEM: _prev_item,
    ActionKind.NEXT_PIPELINE: _next_pipeline,
    ActionKind.PREV_PIPELINE: _prev_pipeline,
    ActionKind.NEXT_JOB: _next_job,
    ActionKind.PREV_JOB: _prev_job,
    ActionKind.OPEN_LOG: _open_log,
    ActionKind.CLOSE_LOG: _close_log,
    ActionKind.TOGGLE_COMMENTS: _toggle_comments,
    ActionKind.NEXT_NOTE: _next_note,
    ActionKind.PREV_NOTE: _prev_note,
    ActionKind.SCROLL_COMMENTS: _scroll_comments,
    ActionKind.SHOW_HELP: _show_help,
    ActionKind.HIDE_HELP: _hide_help,
    ActionKind.OPEN_ITEM_SELECTOR: _open_item_selector,
    ActionKind.SELECT_ITEM: _select_item,
    ActionKind.CANCEL_SELECTION: _cancel_selection,
    ActionKind.REFRESH: _refresh,
    ActionKind.REMOVE_ITEM: _remove_item,
    ActionKind.QUIT: _quit,
    ActionKind.SCROLL_LOG: _scroll_log,
    ActionKind.SCROLL_LOG_TOP: _scroll_log_top,
    ActionKind.SCROLL_LOG_BOTTOM: _scroll_log_bottom,
    ActionKind.TOGGLE_TIMESTAMPS: _toggle_timestamps,
    ActionKind.START_SEARCH: _start_search,
    ActionKind.SEARCH_INPUT: _search_input,
    ActionKind.SEARCH_BACKSPACE: _search_backspace,
    ActionKind.SUBMIT_SEARCH: _submit_search,
    ActionKind.CANCEL_SEARCH: _cancel_search,
    ActionKind.NEXT_MATCH: _next_match,
    ActionKind.PREV_MATCH: _prev_match,
    ActionKind.REFRESH_TICK: _refresh_tick,
    ActionKind.MERGE_REQUESTS_LOADED: _merge_requests_loaded,
    ActionKind.PIPELINES_LOADED: _pipelines_loaded,
    ActionKind.JOBS_LOADED: _jobs_loaded,
    ActionKind.TRACE_LOADED: _trace_loaded,
    ActionKind.NOTES_LOADED: _notes_loaded,
    ActionKind.FETCH_FAILED: _fetch_failed,
}
