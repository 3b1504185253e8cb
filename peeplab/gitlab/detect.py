"""Project auto-detection from the local git working copy.

Absence of git, of a remote, or of a branch is a normal outcome and
yields ``None``; callers fall back to explicit configuration.
"""

from __future__ import annotations

import logging
import re
import subprocess
from pathlib import Path
from urllib.parse import quote, urlsplit

from pydantic import BaseModel, ConfigDict

from peeplab.errors import ConfigurationError

logger = logging.getLogger(__name__)

# git@gitlab.com:group/sub/project.git
_SCP_LIKE_RE = re.compile(r"^(?:[\w.\-]+@)?(?P<host>[\w.\-]+):(?P<path>[^/\\].*)$")

_URL_SCHEMES = {"http", "https", "ssh", "git"}


class RemoteProject(BaseModel):
    """Provider project parsed from a remote URL."""

    model_config = ConfigDict(frozen=True)

    host: str
    namespace: str
    name: str

    @property
    def path(self) -> str:
        """``namespace/name``, as used in the provider's web UI."""
        return f"{self.namespace}/{self.name}"

    @property
    def url_encoded_path(self) -> str:
        return quote(self.path, safe="")


def parse_remote_url(url: str) -> RemoteProject:
    """Parse an SSH-style or HTTP(S)-style git remote URL.

    Raises
    ------
    ConfigurationError
        If the URL is not in a recognised form or lacks a namespace.
    """
    url = url.strip()
    if "://" in url:
        parts = urlsplit(url)
        if parts.scheme not in _URL_SCHEMES or not parts.hostname:
            raise ConfigurationError(f"Unsupported remote URL: {url}")
        host, path = parts.hostname, parts.path
    else:
        match = _SCP_LIKE_RE.match(url)
        if match is None:
            raise ConfigurationError(f"Unsupported remote URL: {url}")
        host, path = match.group("host"), match.group("path")

    path = path.strip("/").removesuffix(".git")
    namespace, _, name = path.rpartition("/")
    if not namespace or not name:
        raise ConfigurationError(f"Remote URL has no namespace/project path: {url}")
    return RemoteProject(host=host, namespace=namespace, name=name)


# ------------------------------------------------------------------
# git queries
# ------------------------------------------------------------------


def _git(args: list[str], cwd: Path | None) -> str | None:
    try:
        completed = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=5,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        logger.debug("git %s failed: %s", " ".join(args), exc)
        return None
    if completed.returncode != 0:
        return None
    output = completed.stdout.strip()
    return output or None


def remote_url(cwd: Path | None = None, remote: str = "origin") -> str | None:
    return _git(["remote", "get-url", remote], cwd)


def current_branch(cwd: Path | None = None) -> str | None:
    """Name of the checked-out branch, or ``None`` when detached or outside git."""
    branch = _git(["rev-parse", "--abbrev-ref", "HEAD"], cwd)
    if branch == "HEAD":
        return None
    return branch


def detect_project(cwd: Path | None = None, remote: str = "origin") -> RemoteProject | None:
    """Project named by *remote* in the working copy at *cwd*, if any."""
    url = remote_url(cwd, remote)
    if url is None:
        return None
    try:
        return parse_remote_url(url)
    except ConfigurationError as exc:
        logger.warning("Ignoring remote '%s': %s", remote, exc)
        return None
