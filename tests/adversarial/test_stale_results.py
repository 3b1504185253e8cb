"""Adversarial tests — results arriving after the model has moved on.

These tests verify that:
1. Results for removed items never write into the model
2. A removed item is never resurrected by its late results
3. Superseded traces do not overwrite the newer request's cache
4. Results are applied by key, so a reused list index cannot be hit
"""

from __future__ import annotations

import pytest

from peeplab.core.transitions import update
from peeplab.errors import ErrorKind
from peeplab.models.actions import (
    Action,
    ActionKind,
    FetchFailed,
    JobsLoaded,
    NotesLoaded,
    PipelinesLoaded,
    TraceLoaded,
)
from peeplab.models.effects import FetchNotes, FetchTrace
from peeplab.models.state import ApplicationState, Mode


def act(kind: ActionKind) -> Action:
    return Action(kind=kind)


class TestRemovedItemResults:
    """Fetch for an item, remove the item, then complete the fetch."""

    @pytest.fixture
    def removed(self, make_state) -> tuple[ApplicationState, tuple[int, int]]:
        state = make_state(items=3)
        key = state.items[0].key
        update(state, act(ActionKind.REMOVE_ITEM))
        return state, key

    def test_late_pipelines(self, removed, make_pipeline):
        state, key = removed
        snapshot = state.model_copy(deep=True)
        assert update(state, PipelinesLoaded(item_key=key, pipelines=[make_pipeline(1)])) is None
        assert state == snapshot

    def test_late_jobs(self, removed, make_job):
        state, key = removed
        snapshot = state.model_copy(deep=True)
        update(state, JobsLoaded(item_key=key, pipeline_id=101, jobs=[make_job()]))
        assert state == snapshot

    def test_late_notes(self, removed, make_note):
        state, key = removed
        snapshot = state.model_copy(deep=True)
        update(state, NotesLoaded(item_key=key, notes=[make_note()]))
        assert state == snapshot
        assert state.mode is Mode.NORMAL

    def test_late_trace(self, removed):
        state, key = removed
        snapshot = state.model_copy(deep=True)
        update(state, TraceLoaded(item_key=key, job_id=1010, job_name="job-0", trace=b"x\n"))
        assert state == snapshot

    def test_removed_item_is_not_resurrected(self, removed, make_pipeline):
        state, key = removed
        update(state, PipelinesLoaded(item_key=key, pipelines=[make_pipeline(1)]))
        assert state.find_item(key) is None
        assert len(state.items) == 2

    def test_in_flight_fetch_then_removal(self, make_state, make_note):
        state = make_state(items=2)
        effect = update(state, act(ActionKind.TOGGLE_COMMENTS))
        assert isinstance(effect, FetchNotes)
        update(state, act(ActionKind.REMOVE_ITEM))
        snapshot = state.model_copy(deep=True)

        update(state, NotesLoaded(item_key=effect.item_key, notes=[make_note()]))

        assert state == snapshot
        # The item that slid into index 0 is untouched.
        assert not state.items[0].notes_loaded

    def test_failure_for_removed_item_is_harmless(self, removed):
        state, key = removed
        update(state, FetchFailed(item_key=key, error_kind=ErrorKind.NETWORK, message="late"))
        assert len(state.items) == 2
        assert state.error_message == "NetworkError: late"


class TestSupersededTrace:
    def test_older_trace_is_dropped(self, state: ApplicationState):
        item = state.items[0]
        first = update(state, act(ActionKind.OPEN_LOG))
        assert isinstance(first, FetchTrace)
        update(state, act(ActionKind.NEXT_JOB))
        second = update(state, act(ActionKind.OPEN_LOG))
        assert isinstance(second, FetchTrace)
        assert second.job_id != first.job_id

        update(
            state,
            TraceLoaded(item_key=item.key, job_id=first.job_id, job_name=first.job_name, trace=b"old\n"),
        )
        assert item.log_cache is not None
        assert item.log_cache.job_id == second.job_id
        assert not item.log_cache.loaded
        assert state.mode is Mode.NORMAL

    def test_trace_for_background_item_is_cached_without_switching(self, state: ApplicationState):
        item = state.items[0]
        fetch = update(state, act(ActionKind.OPEN_LOG))
        assert isinstance(fetch, FetchTrace)
        update(state, act(ActionKind.NEXT_ITEM))

        update(
            state,
            TraceLoaded(item_key=item.key, job_id=fetch.job_id, job_name=fetch.job_name, trace=b"done\n"),
        )

        assert item.log_cache is not None and item.log_cache.loaded
        assert state.mode is Mode.NORMAL
        assert state.selected_item == 1


class TestKeyedDelivery:
    def test_results_follow_the_key_not_the_index(self, make_state, make_pipeline):
        state = make_state(items=3)
        target = state.items[2]
        update(state, act(ActionKind.REMOVE_ITEM))
        update(state, PipelinesLoaded(item_key=target.key, pipelines=[make_pipeline(777)]))
        assert [p.id for p in target.pipelines] == [777]
        assert all(p.id != 777 for item in state.items if item is not target for p in item.pipelines)
