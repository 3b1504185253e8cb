"""Key bindings — maps decoded key names to actions per mode."""

from __future__ import annotations

from peeplab.models.actions import (
    Action,
    ActionKind,
    ScrollComments,
    ScrollLog,
    SearchInput,
    SelectItem,
)
from peeplab.models.state import ApplicationState, Mode

PAGE_SIZE = 10


def _a(kind: ActionKind) -> Action:
    return Action(kind=kind)


_QUIT = _a(ActionKind.QUIT)

BINDINGS: dict[Mode, dict[str, Action]] = {
    Mode.NORMAL: {
        "q": _QUIT,
        "h": _a(ActionKind.PREV_ITEM),
        "left": _a(ActionKind.PREV_ITEM),
        "l": _a(ActionKind.NEXT_ITEM),
        "right": _a(ActionKind.NEXT_ITEM),
        "tab": _a(ActionKind.NEXT_ITEM),
        "[": _a(ActionKind.PREV_PIPELINE),
        "]": _a(ActionKind.NEXT_PIPELINE),
        "k": _a(ActionKind.PREV_JOB),
        "up": _a(ActionKind.PREV_JOB),
        "j": _a(ActionKind.NEXT_JOB),
        "down": _a(ActionKind.NEXT_JOB),
        "enter": _a(ActionKind.OPEN_LOG),
        "c": _a(ActionKind.TOGGLE_COMMENTS),
        "s": _a(ActionKind.OPEN_ITEM_SELECTOR),
        "r": _a(ActionKind.REFRESH),
        "d": _a(ActionKind.REMOVE_ITEM),
        "?": _a(ActionKind.SHOW_HELP),
    },
    Mode.VIEWING_LOG: {
        "q": _a(ActionKind.CLOSE_LOG),
        "esc": _a(ActionKind.CLOSE_LOG),
        "j": ScrollLog(delta=1),
        "down": ScrollLog(delta=1),
        "k": ScrollLog(delta=-1),
        "up": ScrollLog(delta=-1),
        "pagedown": ScrollLog(delta=PAGE_SIZE),
        " ": ScrollLog(delta=PAGE_SIZE),
        "pageup": ScrollLog(delta=-PAGE_SIZE),
        "g": _a(ActionKind.SCROLL_LOG_TOP),
        "home": _a(ActionKind.SCROLL_LOG_TOP),
        "G": _a(ActionKind.SCROLL_LOG_BOTTOM),
        "end": _a(ActionKind.SCROLL_LOG_BOTTOM),
        "t": _a(ActionKind.TOGGLE_TIMESTAMPS),
        "/": _a(ActionKind.START_SEARCH),
        "n": _a(ActionKind.NEXT_MATCH),
        "N": _a(ActionKind.PREV_MATCH),
    },
    Mode.VIEWING_COMMENTS: {
        "c": _a(ActionKind.TOGGLE_COMMENTS),
        "q": _a(ActionKind.TOGGLE_COMMENTS),
        "esc": _a(ActionKind.TOGGLE_COMMENTS),
        "j": _a(ActionKind.NEXT_NOTE),
        "down": _a(ActionKind.NEXT_NOTE),
        "k": _a(ActionKind.PREV_NOTE),
        "up": _a(ActionKind.PREV_NOTE),
        "pagedown": ScrollComments(delta=PAGE_SIZE),
        "pageup": ScrollComments(delta=-PAGE_SIZE),
    },
    Mode.SELECTING_ITEM: {
        "j": _a(ActionKind.NEXT_ITEM),
        "down": _a(ActionKind.NEXT_ITEM),
        "k": _a(ActionKind.PREV_ITEM),
        "up": _a(ActionKind.PREV_ITEM),
        "enter": SelectItem(),
        "q": _a(ActionKind.CANCEL_SELECTION),
        "esc": _a(ActionKind.CANCEL_SELECTION),
    },
    Mode.SHOWING_HELP: {
        "?": _a(ActionKind.HIDE_HELP),
        "q": _a(ActionKind.HIDE_HELP),
        "esc": _a(ActionKind.HIDE_HELP),
    },
}

_SEARCH_BINDINGS: dict[str, Action] = {
    "enter": _a(ActionKind.SUBMIT_SEARCH),
    "esc": _a(ActionKind.CANCEL_SEARCH),
    "backspace": _a(ActionKind.SEARCH_BACKSPACE),
}

# Shown by the help overlay, in display order.
HELP_ENTRIES: list[tuple[str, str]] = [
    ("h / l, ← / →", "Previous / next merge request"),
    ("[ / ]", "Previous / next pipeline"),
    ("j / k, ↓ / ↑", "Next / previous job"),
    ("Enter", "Open job log"),
    ("c", "Toggle comments"),
    ("s", "Select merge request"),
    ("r", "Refresh"),
    ("d", "Stop tracking merge request"),
    ("t", "Cycle log timestamps (log view)"),
    ("/ , n / N", "Search log, next / previous match"),
    ("g / G", "Log top / bottom"),
    ("?", "Toggle help"),
    ("q", "Back / quit"),
]


def map_key(key: str, state: ApplicationState) -> Action | None:
    """Return the action bound to *key* in the current state, if any."""
    if key == "ctrl-c":
        return _QUIT
    if state.mode is Mode.VIEWING_LOG and state.log.editing_query:
        if key in _SEARCH_BINDINGS:
            return _SEARCH_BINDINGS[key]
        if len(key) == 1 and key.isprintable():
            return SearchInput(text=key)
        return None
    if state.mode is Mode.SELECTING_ITEM and key in "123456789" and len(key) == 1:
        return SelectItem(index=int(key) - 1)
    return BINDINGS[state.mode].get(key)
