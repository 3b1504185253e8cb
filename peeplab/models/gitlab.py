"""Provider data models — validated from GitLab REST API JSON.

Only the fields the dashboard displays are declared; unknown keys in the
API payload are ignored.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict

ItemKey = tuple[int, int]  # (project_id, merge request iid)


class PipelineStatus(str, Enum):
    """Pipeline states reported by GitLab."""

    CREATED = "created"
    WAITING_FOR_RESOURCE = "waiting_for_resource"
    PREPARING = "preparing"
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELED = "canceled"
    SKIPPED = "skipped"
    MANUAL = "manual"
    SCHEDULED = "scheduled"

    @property
    def symbol(self) -> str:
        return _PIPELINE_SYMBOLS[self]


class JobStatus(str, Enum):
    """Job states reported by GitLab."""

    CREATED = "created"
    WAITING_FOR_RESOURCE = "waiting_for_resource"
    PREPARING = "preparing"
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELED = "canceled"
    SKIPPED = "skipped"
    MANUAL = "manual"
    SCHEDULED = "scheduled"

    @property
    def symbol(self) -> str:
        return _JOB_SYMBOLS[self]


_PIPELINE_SYMBOLS: dict[PipelineStatus, str] = {
    PipelineStatus.SUCCESS: "✓",
    PipelineStatus.FAILED: "✗",
    PipelineStatus.RUNNING: "⟳",
    PipelineStatus.PENDING: "○",
    PipelineStatus.WAITING_FOR_RESOURCE: "○",
    PipelineStatus.PREPARING: "○",
    PipelineStatus.SCHEDULED: "○",
    PipelineStatus.CANCELED: "⊘",
    PipelineStatus.SKIPPED: "⊝",
    PipelineStatus.CREATED: "•",
    PipelineStatus.MANUAL: "⊙",
}

_JOB_SYMBOLS: dict[JobStatus, str] = {
    JobStatus.SUCCESS: "✓",
    JobStatus.FAILED: "✗",
    JobStatus.RUNNING: "⟳",
    JobStatus.PENDING: "○",
    JobStatus.WAITING_FOR_RESOURCE: "○",
    JobStatus.PREPARING: "○",
    JobStatus.SCHEDULED: "○",
    JobStatus.CANCELED: "⊘",
    JobStatus.SKIPPED: "⊝",
    JobStatus.CREATED: "•",
    JobStatus.MANUAL: "⊙",
}

# Display order for a pipeline's jobs: problems first, noise last.
JOB_STATUS_ORDER: dict[JobStatus, int] = {
    JobStatus.FAILED: 0,
    JobStatus.RUNNING: 1,
    JobStatus.PENDING: 2,
    JobStatus.WAITING_FOR_RESOURCE: 2,
    JobStatus.PREPARING: 2,
    JobStatus.SCHEDULED: 2,
    JobStatus.CANCELED: 3,
    JobStatus.CREATED: 4,
    JobStatus.MANUAL: 5,
    JobStatus.SUCCESS: 6,
    JobStatus.SKIPPED: 7,
}


class User(BaseModel):
    """A GitLab user as embedded in MR and note payloads."""

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    name: str = ""


class Project(BaseModel):
    """A GitLab project, used to resolve a namespace path to an ID."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    path: str
    path_with_namespace: str
    web_url: str = ""


class MergeRequest(BaseModel):
    """An open merge request being tracked on the dashboard."""

    model_config = ConfigDict(frozen=True)

    id: int
    iid: int
    project_id: int
    title: str
    author: User
    state: str = "opened"
    source_branch: str = ""
    target_branch: str = ""
    web_url: str = ""
    created_at: datetime
    updated_at: datetime

    @property
    def key(self) -> ItemKey:
        return (self.project_id, self.iid)


class Pipeline(BaseModel):
    """A pipeline attached to a merge request."""

    model_config = ConfigDict(frozen=True)

    id: int
    iid: int | None = None
    status: PipelineStatus
    ref: str = ""
    sha: str = ""
    web_url: str = ""
    created_at: datetime
    updated_at: datetime | None = None


class Job(BaseModel):
    """A single job within a pipeline."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    status: JobStatus
    stage: str = ""
    created_at: datetime
    started_at: datetime | None = None
    finished_at: datetime | None = None
    duration: float | None = None
    web_url: str = ""


class Note(BaseModel):
    """A merge request comment or system note."""

    model_config = ConfigDict(frozen=True)

    id: int
    body: str
    author: User
    created_at: datetime
    updated_at: datetime | None = None
    system: bool = False


def sort_jobs(jobs: list[Job]) -> list[Job]:
    """Return *jobs* ordered by ``JOB_STATUS_ORDER``, stable within a status."""
    return sorted(jobs, key=lambda job: JOB_STATUS_ORDER[job.status])
