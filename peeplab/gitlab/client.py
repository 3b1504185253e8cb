"""GitLab REST API client — read-only, synchronous, thread-safe.

Contract:
- Every call authenticates with the ``PRIVATE-TOKEN`` header
- Every call is bounded by the configured timeout
- List endpoints follow ``X-Next-Page`` up to ``max_pages``
- Failures raise the typed errors from ``peeplab.errors``; nothing is
  silently defaulted

One instance is shared by all dispatcher workers; ``httpx.Client`` is
safe to use from several threads.
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from peeplab.errors import (
    AuthenticationError,
    NetworkError,
    NotFoundError,
    ParseError,
)
from peeplab.models.gitlab import Job, MergeRequest, Note, Pipeline, Project

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

API_PREFIX = "/api/v4"


class GitLabClient:
    """HTTP client for the GitLab v4 API.

    Parameters
    ----------
    base_url:
        Instance URL, e.g. ``https://gitlab.com``.  ``/api/v4`` is appended.
    token:
        Personal or project access token.
    timeout:
        Per-request timeout in seconds.
    per_page:
        Page size for paginated list endpoints.
    max_pages:
        Upper bound on pages fetched per list call.
    transport:
        Optional httpx transport, used by tests to avoid the network.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        timeout: float = 10.0,
        per_page: int = 100,
        max_pages: int = 10,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.per_page = per_page
        self.max_pages = max_pages
        self._client = httpx.Client(
            base_url=f"{self.base_url}{API_PREFIX}",
            headers={"PRIVATE-TOKEN": token, "Accept": "application/json"},
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> GitLabClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    def get_project_by_path(self, path: str) -> Project:
        """GET /projects/:namespace%2Fname"""
        data = self._get_json(f"/projects/{quote(path, safe='')}")
        return self._parse_one(Project, data)

    def list_merge_requests(
        self,
        project_id: int,
        source_branch: str | None = None,
    ) -> list[MergeRequest]:
        """GET /projects/:id/merge_requests?state=opened"""
        params: dict[str, Any] = {"state": "opened", "order_by": "updated_at"}
        if source_branch:
            params["source_branch"] = source_branch
        data = self._get_pages(f"/projects/{project_id}/merge_requests", params)
        return self._parse_list(MergeRequest, data)

    def list_pipelines(self, project_id: int, mr_iid: int, limit: int = 10) -> list[Pipeline]:
        """GET /projects/:id/merge_requests/:iid/pipelines, newest first."""
        data = self._get_json(
            f"/projects/{project_id}/merge_requests/{mr_iid}/pipelines",
            {"per_page": limit},
        )
        pipelines = self._parse_list(Pipeline, data)
        return sorted(pipelines, key=lambda pipeline: pipeline.id, reverse=True)

    def list_jobs(self, project_id: int, pipeline_id: int) -> list[Job]:
        """GET /projects/:id/pipelines/:pipeline_id/jobs"""
        data = self._get_pages(f"/projects/{project_id}/pipelines/{pipeline_id}/jobs", {})
        return self._parse_list(Job, data)

    def get_job_trace(self, project_id: int, job_id: int) -> bytes:
        """GET /projects/:id/jobs/:job_id/trace as raw bytes."""
        response = self._request(f"/projects/{project_id}/jobs/{job_id}/trace")
        return response.content

    def list_notes(self, project_id: int, mr_iid: int) -> list[Note]:
        """GET /projects/:id/merge_requests/:iid/notes, newest first."""
        data = self._get_pages(
            f"/projects/{project_id}/merge_requests/{mr_iid}/notes",
            {"sort": "desc", "order_by": "created_at"},
        )
        return self._parse_list(Note, data)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(self, path: str, params: dict[str, Any] | None = None) -> httpx.Response:
        try:
            response = self._client.get(path, params=params)
        except httpx.TimeoutException as exc:
            raise NetworkError(f"Request to {path} timed out") from exc
        except httpx.TransportError as exc:
            raise NetworkError(f"Request to {path} failed: {exc}") from exc
        self._raise_for_status(response, path)
        logger.debug("GET %s -> %d", path, response.status_code)
        return response

    @staticmethod
    def _raise_for_status(response: httpx.Response, path: str) -> None:
        status = response.status_code
        if status < 400:
            return
        if status in (401, 403):
            raise AuthenticationError(f"Access denied for {path} (HTTP {status}); check the token")
        if status == 404:
            raise NotFoundError(f"Not found: {path}")
        if status == 429:
            raise NetworkError("API rate limit exceeded, try again later")
        raise NetworkError(f"HTTP {status} from {path}")

    def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return self._decode(self._request(path, params), path)

    def _get_pages(self, path: str, params: dict[str, Any]) -> list[Any]:
        items: list[Any] = []
        page = 1
        for _ in range(self.max_pages):
            response = self._request(path, {**params, "per_page": self.per_page, "page": page})
            data = self._decode(response, path)
            if not isinstance(data, list):
                raise ParseError(f"Expected a JSON list from {path}")
            items.extend(data)
            next_page = response.headers.get("X-Next-Page", "").strip()
            if not next_page.isdigit():
                break
            page = int(next_page)
        else:
            logger.warning("Stopped paging %s after %d pages", path, self.max_pages)
        return items

    @staticmethod
    def _decode(response: httpx.Response, path: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise ParseError(f"Invalid JSON from {path}") from exc

    @staticmethod
    def _parse_one(model: type[ModelT], data: Any) -> ModelT:
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise ParseError(f"Unexpected {model.__name__} payload: {exc}") from exc

    @staticmethod
    def _parse_list(model: type[ModelT], data: Any) -> list[ModelT]:
        try:
            return TypeAdapter(list[model]).validate_python(data)  # type: ignore[valid-type]
        except ValidationError as exc:
            raise ParseError(f"Unexpected {model.__name__} payload: {exc}") from exc
