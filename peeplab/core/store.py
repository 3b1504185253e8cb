"""Store — owner of the application state for one dashboard session."""

from __future__ import annotations

import logging

from peeplab.config import RuntimeOptions
from peeplab.core.transitions import update
from peeplab.models.actions import Action
from peeplab.models.effects import Batch, Effect, FetchMergeRequests, ScheduleRefresh
from peeplab.models.state import ApplicationState

logger = logging.getLogger(__name__)


def initial_state(options: RuntimeOptions) -> ApplicationState:
    """Build the empty model for a session."""
    if options.focus_branch:
        status = f"Loading MR for branch '{options.focus_branch}'..."
    else:
        status = "Loading merge requests..."
    return ApplicationState(
        project_id=options.project_id,
        focus_branch=options.focus_branch or None,
        max_tracked_items=options.max_tracked_items,
        refresh_interval=options.refresh_interval,
        status_message=status,
    )


class Store:
    """Holds the single ``ApplicationState`` and applies actions to it.

    Must only be used from the event-loop thread.

    Parameters
    ----------
    state:
        The model to own.  Mutated in place by every ``apply`` call.
    """

    def __init__(self, state: ApplicationState) -> None:
        self.state = state

    def start(self) -> Effect:
        """Effects that bootstrap a session: first load and the refresh timer."""
        return Batch(
            effects=[
                FetchMergeRequests(
                    project_id=self.state.project_id,
                    source_branch=self.state.focus_branch,
                ),
                ScheduleRefresh(after=self.state.refresh_interval),
            ]
        )

    def apply(self, action: Action) -> Effect | None:
        """Apply one action and return the effect it requests, if any."""
        mode_before = self.state.mode
        effect = update(self.state, action)
        if self.state.mode is not mode_before:
            logger.debug(
                "Mode %s -> %s on %s",
                mode_before.value,
                self.state.mode.value,
                action.kind.value,
            )
        if effect is not None:
            logger.debug("%s requested %s", action.kind.value, effect.kind.value)
        return effect
