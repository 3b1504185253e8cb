"""Event-loop orchestrator — the single driver of a dashboard session.

One ``queue.Queue`` carries both decoded key presses (from the terminal
reader thread) and result actions (from dispatcher workers).  The loop
is the only consumer and the only code that touches the state, so
actions are applied strictly in arrival order.
"""

from __future__ import annotations

import logging
import queue
from collections.abc import Callable

from peeplab.core.dispatcher import EffectDispatcher
from peeplab.core.store import Store
from peeplab.models.actions import Action, KeyPress
from peeplab.models.state import ApplicationState

logger = logging.getLogger(__name__)

KeyMapper = Callable[[str, ApplicationState], Action | None]
Renderer = Callable[[ApplicationState], None]

Channel = queue.Queue  # of KeyPress | Action


class Orchestrator:
    """Drives one session from startup to quit.

    Parameters
    ----------
    store:
        Owner of the application state.
    dispatcher:
        Runs the effects ``update`` returns.  Its sink must feed *channel*.
    channel:
        The ordered inbox of key presses and result actions.
    render:
        Called with the state after every iteration, including idle ones.
    keymap:
        Maps a key name to zero or one action for the current state.
    poll_interval:
        Upper bound, in seconds, on how long one iteration waits for input.
    """

    def __init__(
        self,
        store: Store,
        dispatcher: EffectDispatcher,
        channel: Channel,
        render: Renderer,
        keymap: KeyMapper,
        *,
        poll_interval: float = 0.05,
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self._channel = channel
        self._render = render
        self._keymap = keymap
        self._poll_interval = poll_interval

    @property
    def state(self) -> ApplicationState:
        return self._store.state

    def run(self) -> ApplicationState:
        """Run until a quit action; always shuts the dispatcher down."""
        try:
            self._dispatcher.dispatch(self._store.start())
            self._render(self.state)
            while not self.state.should_quit:
                try:
                    item = self._channel.get(timeout=self._poll_interval)
                except queue.Empty:
                    self._render(self.state)
                    continue
                self.handle(item)
                self._render(self.state)
        finally:
            self._dispatcher.shutdown()
            logger.info("Event loop stopped")
        return self.state

    def handle(self, item: KeyPress | Action) -> None:
        """Apply one inbox item and dispatch the effect it produces."""
        if isinstance(item, KeyPress):
            action = self._keymap(item.key, self.state)
            if action is None:
                return
        elif isinstance(item, Action):
            action = item
        else:
            logger.warning("Ignoring unexpected channel item: %r", item)
            return
        effect = self._store.apply(action)
        if effect is not None:
            self._dispatcher.dispatch(effect)
