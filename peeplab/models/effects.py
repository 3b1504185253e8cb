"""Effect vocabulary — requests for work the update function cannot do.

Effects are immutable requests; they own no state and are executed by
``peeplab.core.dispatcher.EffectDispatcher``, which answers every leaf
effect with exactly one action.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from peeplab.models.gitlab import ItemKey


class EffectKind(str, Enum):
    """The closed set of asynchronous work units."""

    FETCH_MERGE_REQUESTS = "fetch_merge_requests"
    FETCH_PIPELINES = "fetch_pipelines"
    FETCH_JOBS = "fetch_jobs"
    FETCH_TRACE = "fetch_trace"
    FETCH_NOTES = "fetch_notes"
    SCHEDULE_REFRESH = "schedule_refresh"
    BATCH = "batch"


class Effect(BaseModel):
    """Base effect."""

    model_config = ConfigDict(frozen=True)

    kind: EffectKind


class FetchMergeRequests(Effect):
    """List open merge requests, restricted to one source branch if given."""

    kind: EffectKind = EffectKind.FETCH_MERGE_REQUESTS
    project_id: int
    source_branch: str | None = None


class ItemEffect(Effect):
    """An effect aimed at one tracked merge request."""

    item_key: ItemKey

    @property
    def project_id(self) -> int:
        return self.item_key[0]

    @property
    def mr_iid(self) -> int:
        return self.item_key[1]


class FetchPipelines(ItemEffect):
    kind: EffectKind = EffectKind.FETCH_PIPELINES


class FetchJobs(ItemEffect):
    kind: EffectKind = EffectKind.FETCH_JOBS
    pipeline_id: int


class FetchTrace(ItemEffect):
    kind: EffectKind = EffectKind.FETCH_TRACE
    job_id: int
    job_name: str


class FetchNotes(ItemEffect):
    kind: EffectKind = EffectKind.FETCH_NOTES


class ScheduleRefresh(Effect):
    """Emit a ``REFRESH_TICK`` action once ``after`` seconds have passed.

    The timer is one-shot; the tick handler re-arms it, so the refresh
    cadence flows through the same action stream as everything else.
    """

    kind: EffectKind = EffectKind.SCHEDULE_REFRESH
    after: float = Field(ge=0)


class Batch(Effect):
    """Several independent effects requested by a single transition."""

    kind: EffectKind = EffectKind.BATCH
    effects: list[Effect] = []

    def leaves(self) -> list[Effect]:
        """Flatten nested batches into their leaf effects, in order."""
        flat: list[Effect] = []
        for effect in self.effects:
            if isinstance(effect, Batch):
                flat.extend(effect.leaves())
            else:
                flat.append(effect)
        return flat


EFFECT_TYPE_MAP: dict[EffectKind, type[Effect]] = {
    EffectKind.FETCH_MERGE_REQUESTS: FetchMergeRequests,
    EffectKind.FETCH_PIPELINES: FetchPipelines,
    EffectKind.FETCH_JOBS: FetchJobs,
    EffectKind.FETCH_TRACE: FetchTrace,
    EffectKind.FETCH_NOTES: FetchNotes,
    EffectKind.SCHEDULE_REFRESH: ScheduleRefresh,
    EffectKind.BATCH: Batch,
}
