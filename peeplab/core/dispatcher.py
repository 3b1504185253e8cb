"""EffectDispatcher — runs effects off the event-loop thread.

Every leaf effect is submitted to a thread pool and answered with exactly
one action, handed to the ``sink`` (in production ``queue.Queue.put`` on
the channel the orchestrator reads).  Tasks never see the application
state.  Failures become ``FetchFailed`` actions; there is no automatic
retry.  ``ScheduleRefresh`` is armed on a ``threading.Timer`` rather than
the pool, so a pending tick never holds a worker.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Protocol

from peeplab.errors import ErrorKind, PeeplabError
from peeplab.models.actions import (
    Action,
    ActionKind,
    FetchFailed,
    JobsLoaded,
    MergeRequestsLoaded,
    NotesLoaded,
    PipelinesLoaded,
    TraceLoaded,
)
from peeplab.models.effects import (
    Batch,
    Effect,
    EffectKind,
    FetchJobs,
    FetchMergeRequests,
    FetchNotes,
    FetchPipelines,
    FetchTrace,
    ItemEffect,
    ScheduleRefresh,
)
from peeplab.models.gitlab import Job, MergeRequest, Note, Pipeline

logger = logging.getLogger(__name__)

ActionSink = Callable[[Action], None]


class GitLabApi(Protocol):
    """The slice of ``GitLabClient`` the dispatcher depends on."""

    def list_merge_requests(
        self, project_id: int, source_branch: str | None = None
    ) -> list[MergeRequest]: ...

    def list_pipelines(self, project_id: int, mr_iid: int) -> list[Pipeline]: ...

    def list_jobs(self, project_id: int, pipeline_id: int) -> list[Job]: ...

    def get_job_trace(self, project_id: int, job_id: int) -> bytes: ...

    def list_notes(self, project_id: int, mr_iid: int) -> list[Note]: ...


class EffectDispatcher:
    """Executes effects concurrently and feeds their results back.

    Parameters
    ----------
    api:
        Provider client.  Shared by all worker threads.
    sink:
        Receives each result action.  Must be thread-safe.
    max_workers:
        Size of the worker pool.
    """

    def __init__(self, api: GitLabApi, sink: ActionSink, *, max_workers: int = 8) -> None:
        self._api = api
        self._sink = sink
        self._stopped = threading.Event()
        self._timers_lock = threading.Lock()
        self._timers: set[threading.Timer] = set()
        self._pool = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="peeplab-effect",
        )
        self._runners: dict[EffectKind, Callable[[Any], Action]] = {
            EffectKind.FETCH_MERGE_REQUESTS: self._fetch_merge_requests,
            EffectKind.FETCH_PIPELINES: self._fetch_pipelines,
            EffectKind.FETCH_JOBS: self._fetch_jobs,
            EffectKind.FETCH_TRACE: self._fetch_trace,
            EffectKind.FETCH_NOTES: self._fetch_notes,
            EffectKind.SCHEDULE_REFRESH: self._refresh_tick,
        }

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def dispatch(self, effect: Effect) -> None:
        """Submit *effect* (every leaf of it, for a batch) and return at once."""
        leaves = effect.leaves() if isinstance(effect, Batch) else [effect]
        for leaf in leaves:
            if self._stopped.is_set():
                logger.debug("Dispatcher stopped, dropping %s", leaf.kind.value)
                return
            if isinstance(leaf, ScheduleRefresh):
                self._arm_timer(leaf)
                continue
            logger.debug("Submitting %s", leaf.kind.value)
            self._pool.submit(self._run, leaf)

    def shutdown(self) -> None:
        """Stop accepting work and release pending timers.

        In-flight requests are not awaited; their results are discarded.
        """
        self._stopped.set()
        with self._timers_lock:
            timers, self._timers = self._timers, set()
        for timer in timers:
            timer.cancel()
        self._pool.shutdown(wait=False, cancel_futures=True)

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute(self, effect: Effect) -> Action:
        """Run one leaf effect synchronously and return its result action.

        Never raises: every failure is converted into ``FetchFailed``.
        """
        item_key = effect.item_key if isinstance(effect, ItemEffect) else None
        try:
            return self._runners[effect.kind](effect)
        except PeeplabError as exc:
            logger.warning("%s failed: %s", effect.kind.value, exc)
            return FetchFailed(item_key=item_key, error_kind=exc.kind, message=str(exc))
        except Exception as exc:
            logger.exception("Unexpected failure while running %s", effect.kind.value)
            return FetchFailed(
                item_key=item_key,
                error_kind=ErrorKind.PARSE,
                message=f"{type(exc).__name__}: {exc}",
            )

    def _run(self, effect: Effect) -> None:
        action = self.execute(effect)
        if self._stopped.is_set():
            logger.debug("Discarding %s after shutdown", action.kind.value)
            return
        self._sink(action)

    def _arm_timer(self, effect: ScheduleRefresh) -> None:
        timer = threading.Timer(effect.after, self._fire_timer)
        timer.name = "peeplab-refresh"
        timer.daemon = True
        with self._timers_lock:
            self._timers.add(timer)
        logger.debug("Refresh tick armed in %.1fs", effect.after)
        timer.start()

    def _fire_timer(self) -> None:
        with self._timers_lock:
            self._timers = {t for t in self._timers if t is not threading.current_thread()}
        if self._stopped.is_set():
            return
        self._sink(Action(kind=ActionKind.REFRESH_TICK))

    def _fetch_merge_requests(self, effect: FetchMergeRequests) -> Action:
        merge_requests = self._api.list_merge_requests(effect.project_id, effect.source_branch)
        return MergeRequestsLoaded(
            project_id=effect.project_id,
            merge_requests=merge_requests,
            source_branch=effect.source_branch,
        )

    def _fetch_pipelines(self, effect: FetchPipelines) -> Action:
        pipelines = self._api.list_pipelines(effect.project_id, effect.mr_iid)
        return PipelinesLoaded(item_key=effect.item_key, pipelines=pipelines)

    def _fetch_jobs(self, effect: FetchJobs) -> Action:
        jobs = self._api.list_jobs(effect.project_id, effect.pipeline_id)
        return JobsLoaded(item_key=effect.item_key, pipeline_id=effect.pipeline_id, jobs=jobs)

    def _fetch_trace(self, effect: FetchTrace) -> Action:
        trace = self._api.get_job_trace(effect.project_id, effect.job_id)
        return TraceLoaded(
            item_key=effect.item_key,
            job_id=effect.job_id,
            job_name=effect.job_name,
            trace=trace,
        )

    def _fetch_notes(self, effect: FetchNotes) -> Action:
        notes = self._api.list_notes(effect.project_id, effect.mr_iid)
        return NotesLoaded(item_key=effect.item_key, notes=notes)

    def _refresh_tick(self, effect: ScheduleRefresh) -> Action:
        return Action(kind=ActionKind.REFRESH_TICK)
