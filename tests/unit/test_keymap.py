"""Tests for key decoding and per-mode key bindings."""

from __future__ import annotations

import pytest

from peeplab.core.transitions import is_valid
from peeplab.models.actions import ActionKind, ScrollLog, SearchInput, SelectItem
from peeplab.models.state import ApplicationState, Mode
from peeplab.monitor.keymap import BINDINGS, PAGE_SIZE, map_key
from peeplab.monitor.terminal import decode_keys


class TestDecodeKeys:
    def test_printable_characters(self):
        assert decode_keys(b"jk?") == ["j", "k", "?"]

    @pytest.mark.parametrize(
        ("data", "key"),
        [
            (b"\x1b[A", "up"),
            (b"\x1b[B", "down"),
            (b"\x1bOC", "right"),
            (b"\x1b[5~", "pageup"),
            (b"\x1b[6~", "pagedown"),
            (b"\x1b[H", "home"),
            (b"\x1b[4~", "end"),
            (b"\r", "enter"),
            (b"\x7f", "backspace"),
            (b"\x03", "ctrl-c"),
            (b"\t", "tab"),
        ],
    )
    def test_special_keys(self, data, key):
        assert decode_keys(data) == [key]

    def test_lone_escape(self):
        assert decode_keys(b"\x1b") == ["esc"]

    def test_sequences_in_one_chunk(self):
        assert decode_keys(b"\x1b[Bq\x1b[A") == ["down", "q", "up"]

    def test_unknown_csi_is_skipped(self):
        assert decode_keys(b"\x1b[1;5Cx") == ["x"]

    def test_multibyte_character(self):
        assert decode_keys("é".encode()) == ["é"]


class TestBindings:
    def test_every_binding_is_valid_in_its_mode(self):
        for mode, table in BINDINGS.items():
            for key, action in table.items():
                assert is_valid(mode, action.kind), f"{key!r} in {mode.value}"

    def test_every_mode_has_a_way_out(self):
        for mode in Mode:
            kinds = {action.kind for action in BINDINGS[mode].values()}
            assert kinds & {
                ActionKind.QUIT,
                ActionKind.CLOSE_LOG,
                ActionKind.TOGGLE_COMMENTS,
                ActionKind.CANCEL_SELECTION,
                ActionKind.HIDE_HELP,
            }

    def test_normal_mode(self, state: ApplicationState):
        assert map_key("j", state).kind is ActionKind.NEXT_JOB
        assert map_key("enter", state).kind is ActionKind.OPEN_LOG
        assert map_key("q", state).kind is ActionKind.QUIT
        assert map_key("x", state) is None

    def test_ctrl_c_quits_everywhere(self, state: ApplicationState):
        for mode in Mode:
            state.mode = mode
            assert map_key("ctrl-c", state).kind is ActionKind.QUIT

    def test_log_mode_paging(self, state: ApplicationState):
        state.mode = Mode.VIEWING_LOG
        assert map_key("pagedown", state) == ScrollLog(delta=PAGE_SIZE)
        assert map_key("q", state).kind is ActionKind.CLOSE_LOG

    def test_search_editing_captures_text(self, state: ApplicationState):
        state.mode = Mode.VIEWING_LOG
        state.log.editing_query = True
        assert map_key("q", state) == SearchInput(text="q")
        assert map_key("enter", state).kind is ActionKind.SUBMIT_SEARCH
        assert map_key("backspace", state).kind is ActionKind.SEARCH_BACKSPACE
        assert map_key("up", state) is None

    def test_selector_digits(self, state: ApplicationState):
        state.mode = Mode.SELECTING_ITEM
        assert map_key("2", state) == SelectItem(index=1)
        assert map_key("enter", state) == SelectItem()
