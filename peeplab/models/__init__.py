"""peeplab data models — all Pydantic v2."""

from peeplab.models.actions import (
    ACTION_TYPE_MAP,
    GLOBAL_ACTIONS,
    Action,
    ActionKind,
    FetchFailed,
    JobsLoaded,
    KeyPress,
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
    EFFECT_TYPE_MAP,
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
from peeplab.models.gitlab import (
    JOB_STATUS_ORDER,
    ItemKey,
    Job,
    JobStatus,
    MergeRequest,
    Note,
    Pipeline,
    PipelineStatus,
    Project,
    User,
    sort_jobs,
)
from peeplab.models.state import (
    ApplicationState,
    LogCache,
    LogViewerState,
    Mode,
    ProcessedLine,
    SearchMatch,
    StyleSpan,
    TimestampMode,
    TrackedItem,
)

__all__ = [
    # provider
    "ItemKey",
    "User",
    "Project",
    "MergeRequest",
    "Pipeline",
    "PipelineStatus",
    "Job",
    "JobStatus",
    "JOB_STATUS_ORDER",
    "Note",
    "sort_jobs",
    # actions
    "ActionKind",
    "Action",
    "GLOBAL_ACTIONS",
    "ACTION_TYPE_MAP",
    "SelectItem",
    "ScrollLog",
    "ScrollComments",
    "SearchInput",
    "MergeRequestsLoaded",
    "PipelinesLoaded",
    "JobsLoaded",
    "TraceLoaded",
    "NotesLoaded",
    "FetchFailed",
    "KeyPress",
    # effects
    "EffectKind",
    "Effect",
    "EFFECT_TYPE_MAP",
    "FetchMergeRequests",
    "ItemEffect",
    "FetchPipelines",
    "FetchJobs",
    "FetchTrace",
    "FetchNotes",
    "ScheduleRefresh",
    "Batch",
    # state
    "Mode",
    "TimestampMode",
    "StyleSpan",
    "ProcessedLine",
    "SearchMatch",
    "LogCache",
    "LogViewerState",
    "TrackedItem",
    "ApplicationState",
]
