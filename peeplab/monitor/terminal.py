"""Terminal session and keyboard reader.

``TerminalSession`` puts the terminal in cbreak mode and switches to the
alternate screen through ``rich.live.Live``; leaving the ``with`` block
restores both, whether the loop quit normally, raised, was interrupted
or received SIGTERM.

``KeyReader`` is a daemon thread that decodes stdin bytes into key names
and posts them to the event-loop channel as ``KeyPress`` items.
"""

from __future__ import annotations

import logging
import os
import queue
import select
import signal
import sys
import termios
import threading
import tty
from types import FrameType
from typing import IO, Any

from rich.console import Console, RenderableType
from rich.live import Live

from peeplab.models.actions import KeyPress

logger = logging.getLogger(__name__)


class TerminalSetupError(RuntimeError):
    """Raised when stdin is not an interactive terminal."""


# Longest sequences first so prefixes do not shadow them.
_ESCAPE_SEQUENCES: list[tuple[str, str]] = sorted(
    [
        ("\x1b[A", "up"),
        ("\x1b[B", "down"),
        ("\x1b[C", "right"),
        ("\x1b[D", "left"),
        ("\x1bOA", "up"),
        ("\x1bOB", "down"),
        ("\x1bOC", "right"),
        ("\x1bOD", "left"),
        ("\x1b[H", "home"),
        ("\x1b[F", "end"),
        ("\x1bOH", "home"),
        ("\x1bOF", "end"),
        ("\x1b[1~", "home"),
        ("\x1b[4~", "end"),
        ("\x1b[5~", "pageup"),
        ("\x1b[6~", "pagedown"),
        ("\x1b[3~", "delete"),
        ("\x1b[Z", "backtab"),
    ],
    key=lambda pair: len(pair[0]),
    reverse=True,
)

_CONTROL_KEYS: dict[str, str] = {
    "\r": "enter",
    "\n": "enter",
    "\t": "tab",
    "\x7f": "backspace",
    "\x08": "backspace",
    "\x03": "ctrl-c",
}


def decode_keys(data: bytes) -> list[str]:
    """Split a chunk read from stdin into key names."""
    text = data.decode("utf-8", errors="ignore")
    keys: list[str] = []
    i = 0
    while i < len(text):
        char = text[i]
        if char == "\x1b":
            for sequence, name in _ESCAPE_SEQUENCES:
                if text.startswith(sequence, i):
                    keys.append(name)
                    i += len(sequence)
                    break
            else:
                if text.startswith("\x1b[", i):
                    # Unknown CSI sequence: skip through its final byte.
                    end = i + 2
                    while end < len(text) and not ("@" <= text[end] <= "~"):
                        end += 1
                    i = end + 1
                else:
                    keys.append("esc")
                    i += 1
            continue
        if char in _CONTROL_KEYS:
            keys.append(_CONTROL_KEYS[char])
        elif char.isprintable():
            keys.append(char)
        i += 1
    return keys


def _raise_system_exit(signum: int, frame: FrameType | None) -> None:
    raise SystemExit(128 + signum)


class TerminalSession:
    """Scoped raw-ish terminal plus alternate screen.

    Parameters
    ----------
    console:
        Rich console that owns the output stream.
    stdin:
        Input stream; must be a TTY.
    """

    def __init__(self, console: Console, stdin: IO[str] | None = None) -> None:
        self.console = console
        self._stdin = stdin or sys.stdin
        self._fd: int | None = None
        self._saved_attrs: list[Any] | None = None
        self._saved_sigterm: Any = None
        self._live: Live | None = None

    @property
    def fd(self) -> int:
        if self._fd is None:
            raise TerminalSetupError("Terminal session is not active")
        return self._fd

    def __enter__(self) -> TerminalSession:
        if not self._stdin.isatty():
            raise TerminalSetupError("stdin is not a terminal")
        self._fd = self._stdin.fileno()
        try:
            self._saved_attrs = termios.tcgetattr(self._fd)
            tty.setcbreak(self._fd)
        except termios.error as exc:
            raise TerminalSetupError(f"Cannot configure terminal: {exc}") from exc
        self._saved_sigterm = signal.signal(signal.SIGTERM, _raise_system_exit)
        try:
            self._live = Live(
                console=self.console,
                screen=True,
                auto_refresh=False,
                transient=True,
            )
            self._live.start()
        except BaseException:
            self._restore()
            raise
        return self

    def __exit__(self, *exc_info: object) -> None:
        try:
            if self._live is not None:
                self._live.stop()
        finally:
            self._restore()

    def _restore(self) -> None:
        if self._fd is not None and self._saved_attrs is not None:
            termios.tcsetattr(self._fd, termios.TCSADRAIN, self._saved_attrs)
            self._saved_attrs = None
        if self._saved_sigterm is not None:
            signal.signal(signal.SIGTERM, self._saved_sigterm)
            self._saved_sigterm = None
        self._live = None

    def update(self, renderable: RenderableType) -> None:
        """Replace the screen contents with *renderable*."""
        if self._live is not None:
            self._live.update(renderable, refresh=True)


class KeyReader(threading.Thread):
    """Daemon thread posting ``KeyPress`` items from *fd* to *channel*."""

    def __init__(self, fd: int, channel: queue.Queue, *, poll_interval: float = 0.1) -> None:
        super().__init__(name="peeplab-keys", daemon=True)
        self._fd = fd
        self._channel = channel
        self._poll_interval = poll_interval
        self._stop_event = threading.Event()

    def stop(self) -> None:
        self._stop_event.set()

    def run(self) -> None:
        while not self._stop_event.is_set():
            ready, _, _ = select.select([self._fd], [], [], self._poll_interval)
            if not ready:
                continue
            data = os.read(self._fd, 64)
            if not data:
                logger.info("stdin closed, key reader exiting")
                return
            for key in decode_keys(data):
                self._channel.put(KeyPress(key=key))
