"""File logging for interactive sessions.

The dashboard owns stdout, so log records go to a file instead of the
console.
"""

from __future__ import annotations

import logging
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(threadName)s %(name)s: %(message)s"


def configure_logging(level: str, path: Path) -> logging.Handler:
    """Attach a file handler to the ``peeplab`` logger and return it.

    Parameters
    ----------
    level:
        Level name such as ``"DEBUG"`` or ``"WARNING"``.
    path:
        Log file.  Parent directories are created as needed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger("peeplab")
    root.setLevel(level.upper())
    root.addHandler(handler)
    root.propagate = False
    return handler
