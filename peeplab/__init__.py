"""peeplab: read-only terminal dashboard for GitLab merge request pipelines.

Tracks open merge requests, their latest pipelines and jobs, and shows
job logs in a searchable viewer, refreshing on a fixed interval.
"""

__version__ = "0.1.0"
__description__ = "Read-only terminal dashboard for GitLab merge request pipelines"

__all__ = ["__version__"]
