"""Shared test fixtures for peeplab."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import pytest

from peeplab.models.gitlab import (
    Job,
    JobStatus,
    MergeRequest,
    Note,
    Pipeline,
    PipelineStatus,
    User,
)
from peeplab.models.state import ApplicationState, TrackedItem

PROJECT_ID = 42
CREATED = datetime(2026, 1, 12, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def project_id() -> int:
    """Provide the project ID every factory defaults to."""
    return PROJECT_ID


# ---------------------------------------------------------------------------
# Provider model factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_mr() -> Callable[..., MergeRequest]:
    """Factory fixture: build a MergeRequest with sensible defaults."""

    def _factory(iid: int = 1, **overrides: Any) -> MergeRequest:
        defaults: dict[str, Any] = {
            "id": 1000 + iid,
            "iid": iid,
            "project_id": PROJECT_ID,
            "title": f"Change number {iid}",
            "author": User(id=7, username="dev"),
            "source_branch": f"feature-{iid}",
            "target_branch": "main",
            "created_at": CREATED,
            "updated_at": CREATED,
        }
        defaults.update(overrides)
        return MergeRequest(**defaults)

    return _factory


@pytest.fixture
def make_pipeline() -> Callable[..., Pipeline]:
    """Factory fixture: build a Pipeline with sensible defaults."""

    def _factory(
        pipeline_id: int = 500,
        status: PipelineStatus = PipelineStatus.SUCCESS,
        **overrides: Any,
    ) -> Pipeline:
        defaults: dict[str, Any] = {
            "id": pipeline_id,
            "status": status,
            "ref": "feature-1",
            "sha": "abc123",
            "created_at": CREATED,
        }
        defaults.update(overrides)
        return Pipeline(**defaults)

    return _factory


@pytest.fixture
def make_job() -> Callable[..., Job]:
    """Factory fixture: build a Job with sensible defaults."""

    def _factory(
        job_id: int = 900,
        name: str = "build",
        status: JobStatus = JobStatus.SUCCESS,
        **overrides: Any,
    ) -> Job:
        defaults: dict[str, Any] = {
            "id": job_id,
            "name": name,
            "status": status,
            "stage": "build",
            "created_at": CREATED,
            "duration": 12.5,
        }
        defaults.update(overrides)
        return Job(**defaults)

    return _factory


@pytest.fixture
def make_note() -> Callable[..., Note]:
    """Factory fixture: build a Note with sensible defaults."""

    def _factory(note_id: int = 1, body: str = "Looks good", **overrides: Any) -> Note:
        defaults: dict[str, Any] = {
            "id": note_id,
            "body": body,
            "author": User(id=8, username="reviewer"),
            "created_at": CREATED,
        }
        defaults.update(overrides)
        return Note(**defaults)

    return _factory


# ---------------------------------------------------------------------------
# State factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_item(
    make_mr: Callable[..., MergeRequest],
    make_pipeline: Callable[..., Pipeline],
    make_job: Callable[..., Job],
) -> Callable[..., TrackedItem]:
    """Factory fixture: a TrackedItem with loaded pipelines and jobs.

    Pipeline IDs are ``iid * 100 + n`` and job IDs ``pipeline_id * 10 + n``
    so that every object in a multi-item state has a distinct ID.
    """

    def _factory(iid: int = 1, pipelines: int = 1, jobs: int = 2, **overrides: Any) -> TrackedItem:
        pipeline_list = [
            make_pipeline(pipeline_id=iid * 100 + n) for n in range(pipelines, 0, -1)
        ]
        job_map = {
            pipeline.id: [
                make_job(job_id=pipeline.id * 10 + n, name=f"job-{n}") for n in range(jobs)
            ]
            for pipeline in pipeline_list
        }
        defaults: dict[str, Any] = {
            "merge_request": make_mr(iid=iid),
            "pipelines": pipeline_list,
            "jobs": job_map,
            "pipelines_loaded": True,
        }
        defaults.update(overrides)
        return TrackedItem(**defaults)

    return _factory


@pytest.fixture
def make_state(make_item: Callable[..., TrackedItem]) -> Callable[..., ApplicationState]:
    """Factory fixture: an ApplicationState tracking ``items`` merge requests."""

    def _factory(items: int = 2, pipelines: int = 1, jobs: int = 2, **overrides: Any) -> ApplicationState:
        defaults: dict[str, Any] = {
            "project_id": PROJECT_ID,
            "items": [make_item(iid=n, pipelines=pipelines, jobs=jobs) for n in range(1, items + 1)],
        }
        defaults.update(overrides)
        return ApplicationState(**defaults)

    return _factory


@pytest.fixture
def state(make_state: Callable[..., ApplicationState]) -> ApplicationState:
    """Convenience: two tracked items, one pipeline with two jobs each."""
    return make_state()


# ---------------------------------------------------------------------------
# Provider double
# ---------------------------------------------------------------------------


class FakeGitLab:
    """In-memory stand-in for ``GitLabClient``.

    Each attribute holds the canned response; an exception instance is
    raised instead of returned.
    """

    def __init__(self) -> None:
        self.merge_requests: list[MergeRequest] | Exception = []
        self.pipelines: dict[int, list[Pipeline]] = {}
        self.jobs: dict[int, list[Job]] = {}
        self.traces: dict[int, bytes | Exception] = {}
        self.notes: list[Note] | Exception = []
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    @staticmethod
    def _answer(value: Any) -> Any:
        if isinstance(value, Exception):
            raise value
        return value

    def list_merge_requests(self, project_id: int, source_branch: str | None = None) -> list[MergeRequest]:
        self.calls.append(("list_merge_requests", (project_id, source_branch)))
        return self._answer(self.merge_requests)

    def list_pipelines(self, project_id: int, mr_iid: int) -> list[Pipeline]:
        self.calls.append(("list_pipelines", (project_id, mr_iid)))
        return self._answer(self.pipelines.get(mr_iid, []))

    def list_jobs(self, project_id: int, pipeline_id: int) -> list[Job]:
        self.calls.append(("list_jobs", (project_id, pipeline_id)))
        return self._answer(self.jobs.get(pipeline_id, []))

    def get_job_trace(self, project_id: int, job_id: int) -> bytes:
        self.calls.append(("get_job_trace", (project_id, job_id)))
        return self._answer(self.traces.get(job_id, b""))

    def list_notes(self, project_id: int, mr_iid: int) -> list[Note]:
        self.calls.append(("list_notes", (project_id, mr_iid)))
        return self._answer(self.notes)


@pytest.fixture
def fake_gitlab() -> FakeGitLab:
    """Provide an empty FakeGitLab."""
    return FakeGitLab()
