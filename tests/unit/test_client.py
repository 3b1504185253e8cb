"""Tests for GitLabClient — requests, pagination and error mapping.

All HTTP goes through ``httpx.MockTransport``; no network is used.
"""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest

from peeplab.errors import AuthenticationError, NetworkError, NotFoundError, ParseError
from peeplab.gitlab.client import GitLabClient
from peeplab.models.gitlab import JobStatus, PipelineStatus

Handler = Callable[[httpx.Request], httpx.Response]

USER = {"id": 7, "username": "dev", "name": "Dev"}
MR = {
    "id": 1001,
    "iid": 1,
    "project_id": 42,
    "title": "Add feature",
    "author": USER,
    "state": "opened",
    "source_branch": "feature",
    "target_branch": "main",
    "web_url": "https://gitlab.example.com/g/p/-/merge_requests/1",
    "created_at": "2026-01-12T10:00:00.000Z",
    "updated_at": "2026-01-12T11:00:00.000Z",
    "labels": ["ignored"],
}


def pipeline(pid: int, status: str = "success") -> dict:
    return {
        "id": pid,
        "iid": pid,
        "status": status,
        "ref": "feature",
        "sha": "abc",
        "created_at": "2026-01-12T10:00:00Z",
    }


def job(jid: int, status: str = "success") -> dict:
    return {
        "id": jid,
        "name": f"job-{jid}",
        "status": status,
        "stage": "test",
        "created_at": "2026-01-12T10:00:00Z",
        "duration": 1.5,
    }


@pytest.fixture
def make_client() -> Callable[[Handler], GitLabClient]:
    clients: list[GitLabClient] = []

    def _factory(handler: Handler, **kwargs) -> GitLabClient:
        client = GitLabClient(
            "https://gitlab.example.com/",
            "glpat-test",
            transport=httpx.MockTransport(handler),
            **kwargs,
        )
        clients.append(client)
        return client

    yield _factory
    for client in clients:
        client.close()


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


class TestEndpoints:
    def test_merge_requests_request_shape(self, make_client):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[MR])

        mrs = make_client(handler).list_merge_requests(42, source_branch="feature")

        assert [mr.iid for mr in mrs] == [1]
        assert mrs[0].author.username == "dev"
        request = seen[0]
        assert request.url.path == "/api/v4/projects/42/merge_requests"
        assert request.url.params["state"] == "opened"
        assert request.url.params["source_branch"] == "feature"
        assert request.headers["PRIVATE-TOKEN"] == "glpat-test"

    def test_no_branch_filter_by_default(self, make_client):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[])

        assert make_client(handler).list_merge_requests(42) == []
        assert "source_branch" not in seen[0].url.params

    def test_pipelines_sorted_newest_first(self, make_client):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/v4/projects/42/merge_requests/1/pipelines"
            return httpx.Response(200, json=[pipeline(5), pipeline(9, "running"), pipeline(7)])

        pipelines = make_client(handler).list_pipelines(42, 1)
        assert [p.id for p in pipelines] == [9, 7, 5]
        assert pipelines[0].status is PipelineStatus.RUNNING

    def test_trace_is_raw_bytes(self, make_client):
        body = b"\x1b[32mok\x1b[0m \xff\n"

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/v4/projects/42/jobs/70/trace"
            return httpx.Response(200, content=body)

        assert make_client(handler).get_job_trace(42, 70) == body

    def test_project_path_is_encoded(self, make_client):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={"id": 42, "name": "p", "path": "p", "path_with_namespace": "g/sub/p"},
            )

        project = make_client(handler).get_project_by_path("g/sub/p")
        assert project.id == 42
        assert seen[0].url.raw_path.startswith(b"/api/v4/projects/g%2Fsub%2Fp")

    def test_notes(self, make_client):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["sort"] == "desc"
            return httpx.Response(
                200,
                json=[
                    {
                        "id": 3,
                        "body": "LGTM",
                        "author": USER,
                        "created_at": "2026-01-12T10:00:00Z",
                        "system": False,
                    }
                ],
            )

        notes = make_client(handler).list_notes(42, 1)
        assert [n.body for n in notes] == ["LGTM"]


class TestPagination:
    def test_follows_next_page(self, make_client):
        pages = {"1": ([job(1, "failed")], "2"), "2": ([job(2)], "")}

        def handler(request: httpx.Request) -> httpx.Response:
            data, next_page = pages[request.url.params["page"]]
            return httpx.Response(200, json=data, headers={"X-Next-Page": next_page})

        jobs = make_client(handler).list_jobs(42, 500)
        assert [j.id for j in jobs] == [1, 2]
        assert jobs[0].status is JobStatus.FAILED

    def test_stops_at_max_pages(self, make_client):
        calls: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            page = request.url.params["page"]
            calls.append(page)
            return httpx.Response(200, json=[job(int(page))], headers={"X-Next-Page": str(int(page) + 1)})

        jobs = make_client(handler, max_pages=3).list_jobs(42, 500)
        assert calls == ["1", "2", "3"]
        assert len(jobs) == 3


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


class TestErrors:
    @pytest.mark.parametrize(
        ("status", "error"),
        [
            (401, AuthenticationError),
            (403, AuthenticationError),
            (404, NotFoundError),
            (429, NetworkError),
            (500, NetworkError),
            (502, NetworkError),
        ],
    )
    def test_status_codes(self, make_client, status, error):
        client = make_client(lambda request: httpx.Response(status, json={"message": "x"}))
        with pytest.raises(error):
            client.list_notes(42, 1)

    def test_rate_limit_message(self, make_client):
        client = make_client(lambda request: httpx.Response(429))
        with pytest.raises(NetworkError, match="rate limit"):
            client.list_merge_requests(42)

    def test_timeout_is_network_error(self, make_client):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("too slow", request=request)

        with pytest.raises(NetworkError, match="timed out"):
            make_client(handler).get_job_trace(42, 70)

    def test_connection_failure_is_network_error(self, make_client):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(NetworkError):
            make_client(handler).list_merge_requests(42)

    def test_invalid_json_is_parse_error(self, make_client):
        client = make_client(lambda request: httpx.Response(200, content=b"<html>"))
        with pytest.raises(ParseError):
            client.list_pipelines(42, 1)

    def test_wrong_shape_is_parse_error(self, make_client):
        client = make_client(lambda request: httpx.Response(200, json=[{"id": "not-a-number"}]))
        with pytest.raises(ParseError):
            client.list_pipelines(42, 1)

    def test_non_list_page_is_parse_error(self, make_client):
        client = make_client(lambda request: httpx.Response(200, json={"message": "odd"}))
        with pytest.raises(ParseError):
            client.list_jobs(42, 500)
