"""GitLab integration — REST client and working-copy project detection."""

from peeplab.gitlab.client import GitLabClient
from peeplab.gitlab.detect import RemoteProject, current_branch, detect_project, parse_remote_url

__all__ = [
    "GitLabClient",
    "RemoteProject",
    "current_branch",
    "detect_project",
    "parse_remote_url",
]
