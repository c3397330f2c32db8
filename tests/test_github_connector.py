import base64
import json
from types import SimpleNamespace

import pytest

from todobot.connectors.base import FetchError, TrackerError
from todobot.connectors.github_gh import (
    GithubApiError,
    GithubGhClient,
    GithubGhContentFetcher,
    GithubGhIssueTracker,
    GithubRateLimitError,
    build_title_query,
    push_event_from_payload,
)
from todobot.models import IssueState, TrackedIssue


class FakeGhClient:
    def __init__(self, responses: dict[str, object] | None = None, errors: dict[str, GithubApiError] | None = None) -> None:
        self.repo = "JasonEtco/test"
        self.responses = dict(responses or {})
        self.errors = dict(errors or {})
        self.calls: list[tuple[str, str, dict | None]] = []

    def api_json(self, endpoint: str, method: str = "GET", body: dict | None = None):
        self.calls.append((endpoint, method, body))
        for prefix, error in self.errors.items():
            if endpoint.startswith(prefix):
                raise error
        for prefix, response in self.responses.items():
            if endpoint.startswith(prefix):
                return response
        return None


def _fetcher(client: FakeGhClient) -> GithubGhContentFetcher:
    fetcher = GithubGhContentFetcher(repo="JasonEtco/test")
    fetcher.client = client
    return fetcher


def _tracker(client: FakeGhClient, dry_run: bool = False) -> GithubGhIssueTracker:
    tracker = GithubGhIssueTracker(repo="JasonEtco/test", dry_run=dry_run)
    tracker.client = client
    return tracker


PUSH_PAYLOAD = {
    "ref": "refs/heads/master",
    "after": "e06c237a0c041f5a0a61f1c361f7a1d6f3d669af",
    "repository": {"full_name": "JasonEtco/test", "default_branch": "master", "master_branch": "master"},
    "pusher": {"name": "JasonEtco", "email": "jason@example.com"},
    "head_commit": {"id": "e06c237a0c041f5a0a61f1c361f7a1d6f3d669af", "message": "Add todo"},
    "commits": [
        {
            "id": "e06c237a0c041f5a0a61f1c361f7a1d6f3d669af",
            "message": "Add todo",
            "author": {"name": "Bex", "username": "hiimbex"},
            "added": ["index.js"],
        }
    ],
}


def test_push_event_from_payload_normalizes_fields() -> None:
    event = push_event_from_payload(PUSH_PAYLOAD)

    assert event.repo == "JasonEtco/test"
    assert event.targets_default_branch
    assert event.head_sha == "e06c237a0c041f5a0a61f1c361f7a1d6f3d669af"
    assert event.pusher == "JasonEtco"
    assert [commit.author for commit in event.commits] == ["hiimbex"]
    assert event.commits[0].files is None


def test_push_event_falls_back_to_head_commit() -> None:
    payload = {**PUSH_PAYLOAD, "commits": [], "repository": {"full_name": "JasonEtco/test"}}

    event = push_event_from_payload(payload)

    assert [commit.sha for commit in event.commits] == ["e06c237a0c041f5a0a61f1c361f7a1d6f3d669af"]
    assert event.default_branch == "main"
    assert not event.targets_default_branch


def test_get_commit_maps_parents_and_files() -> None:
    client = FakeGhClient(
        {
            "commits/abc": {
                "sha": "abc",
                "parents": [{"sha": "p1"}, {"sha": "p2"}],
                "author": {"login": "hiimbex"},
                "commit": {"message": "Merge branch"},
                "files": [{"filename": "index.js", "status": "modified", "patch": "@@ -1 +1 @@\n-a\n+b"}, {"filename": "logo.png"}],
            }
        }
    )

    commit = _fetcher(client).get_commit("abc")

    assert commit.is_merge
    assert commit.author == "hiimbex"
    assert [change.path for change in commit.files] == ["index.js", "logo.png"]
    assert commit.files[1].patch is None


def test_get_commit_wraps_api_errors() -> None:
    client = FakeGhClient(errors={"commits/": GithubApiError("boom", status=500)})

    with pytest.raises(FetchError):
        _fetcher(client).get_commit("abc")


def test_get_file_text_decodes_base64_and_handles_missing() -> None:
    encoded = base64.b64encode(b"line one\nline two\n").decode()
    client = FakeGhClient(
        {"contents/index.js": {"type": "file", "encoding": "base64", "content": encoded}},
        errors={"contents/missing.js": GithubApiError("Not Found (HTTP 404)", status=404)},
    )
    fetcher = _fetcher(client)

    assert fetcher.get_file_text("index.js", "abc") == "line one\nline two\n"
    assert fetcher.get_file_text("missing.js", "abc") is None
    assert client.calls[0][0] == "contents/index.js?ref=abc"


def test_get_file_text_raises_on_other_errors() -> None:
    client = FakeGhClient(errors={"contents/": GithubApiError("server error", status=502)})

    with pytest.raises(FetchError):
        _fetcher(client).get_file_text("index.js", "abc")


def test_search_excludes_pull_requests_and_maps_state() -> None:
    client = FakeGhClient(
        {
            "search/issues": {
                "total_count": 3,
                "items": [
                    {"number": 1, "title": "I am an example title", "state": "closed"},
                    {"number": 2, "title": "I am an example title", "state": "open", "pull_request": {"url": "x"}},
                    {"number": 3, "title": "I am an example", "state": "open"},
                ],
            }
        }
    )

    issues = _tracker(client).search_by_title("I am an example title")

    assert [(issue.number, issue.state) for issue in issues] == [(1, IssueState.CLOSED), (3, IssueState.OPEN)]
    endpoint = client.calls[0][0]
    assert endpoint.startswith("search/issues?q=")
    assert "repo%3AJasonEtco%2Ftest" in endpoint


def test_search_failure_raises_tracker_error() -> None:
    client = FakeGhClient(errors={"search/": GithubApiError("nope", status=422)})

    with pytest.raises(TrackerError):
        _tracker(client).search_by_title("x")


def test_dry_run_tracker_makes_no_write_calls() -> None:
    client = FakeGhClient()
    tracker = _tracker(client, dry_run=True)

    created = tracker.create("Title", "Body", ["hiimbex"], ["todo"])
    tracker.reopen_and_comment(TrackedIssue(title="Title", number=5, state=IssueState.CLOSED), "again")

    assert created.title == "Title"
    assert client.calls == []


def test_live_tracker_creates_and_reopens() -> None:
    client = FakeGhClient({"issues": {"number": 12, "title": "Title", "state": "open", "html_url": "https://github.com/x/12"}})
    tracker = _tracker(client)

    created = tracker.create("Title", "Body", ["hiimbex"], ["todo"])
    tracker.reopen_and_comment(TrackedIssue(title="Title", number=5, state=IssueState.CLOSED), "again")

    assert created.number == 12
    assert client.calls[0] == ("issues", "POST", {"title": "Title", "body": "Body", "assignees": ["hiimbex"], "labels": ["todo"]})
    assert client.calls[1] == ("issues/5", "PATCH", {"state": "open"})
    assert client.calls[2] == ("issues/5/comments", "POST", {"body": "again"})


def test_reopen_requires_issue_number() -> None:
    with pytest.raises(TrackerError):
        _tracker(FakeGhClient()).reopen_and_comment(TrackedIssue(title="Title"), "again")


def test_build_title_query_strips_quotes() -> None:
    assert build_title_query('Handle "quoted" input') == '"Handle  quoted  input"'


def test_client_resolves_repo_relative_endpoints() -> None:
    client = GithubGhClient(repo="JasonEtco/test")

    assert client.resolve_endpoint("issues") == "repos/JasonEtco/test/issues"
    assert client.resolve_endpoint("/search/issues?q=x") == "search/issues?q=x"


def test_client_sends_body_on_stdin(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: dict[str, object] = {}

    def _fake_run(cmd, text=True, capture_output=True, check=False, input=None):  # noqa: ANN001,ARG001
        seen["cmd"] = cmd
        seen["input"] = input
        return SimpleNamespace(returncode=0, stdout='{"number": 1}', stderr="")

    monkeypatch.setattr("subprocess.run", _fake_run)
    client = GithubGhClient(repo="JasonEtco/test")

    assert client.api_json("issues", method="POST", body={"title": "x"}) == {"number": 1}
    assert seen["cmd"][2] == "repos/JasonEtco/test/issues"
    assert "--input" in seen["cmd"]
    assert json.loads(seen["input"]) == {"title": "x"}


def test_client_parses_http_status(monkeypatch: pytest.MonkeyPatch) -> None:
    def _fake_run(cmd, text=True, capture_output=True, check=False, input=None):  # noqa: ANN001,ARG001
        return SimpleNamespace(returncode=1, stdout="", stderr="gh: Not Found (HTTP 404)")

    monkeypatch.setattr("subprocess.run", _fake_run)

    with pytest.raises(GithubApiError) as exc:
        GithubGhClient(repo="JasonEtco/test").api_json("contents/x")
    assert exc.value.status == 404


def test_client_raises_rate_limit_error_when_retries_exhausted(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = {"api": 0}

    def _fake_run(cmd, text=True, capture_output=True, check=False, input=None):  # noqa: ANN001,ARG001
        calls["api"] += 1
        return SimpleNamespace(returncode=1, stdout="", stderr="gh: API rate limit exceeded for user ID 1 (HTTP 403)")

    monkeypatch.setattr("subprocess.run", _fake_run)
    client = GithubGhClient(repo="JasonEtco/test", rate_limit_retries=0, secondary_backoff_base_seconds=2.0)

    with pytest.raises(GithubRateLimitError) as exc:
        client.api_json("issues")
    assert exc.value.retry_after_seconds == 2.0
    assert calls["api"] == 1


def test_client_retries_after_secondary_rate_limit(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = {"api": 0}

    def _fake_run(cmd, text=True, capture_output=True, check=False, input=None):  # noqa: ANN001,ARG001
        calls["api"] += 1
        if calls["api"] == 1:
            return SimpleNamespace(returncode=1, stdout="", stderr="gh: secondary rate limit. please wait")
        return SimpleNamespace(returncode=0, stdout="[]", stderr="")

    monkeypatch.setattr("subprocess.run", _fake_run)
    client = GithubGhClient(repo="JasonEtco/test", rate_limit_retries=1, secondary_backoff_base_seconds=1.0)
    monkeypatch.setattr(client, "_wait_for_global_backoff", lambda: None)

    assert client.api_json("issues") == []
    assert calls["api"] == 2


def test_client_wraps_non_json_output(monkeypatch: pytest.MonkeyPatch) -> None:
    def _fake_run(cmd, text=True, capture_output=True, check=False, input=None):  # noqa: ANN001,ARG001
        return SimpleNamespace(returncode=0, stdout="<html>proxy error</html>", stderr="")

    monkeypatch.setattr("subprocess.run", _fake_run)

    with pytest.raises(GithubApiError):
        GithubGhClient(repo="JasonEtco/test").api_json("issues")


def test_unexpected_payload_shapes_become_connector_errors() -> None:
    client = FakeGhClient(
        {
            "commits/abc": {"parents": []},
            "contents/index.js": {"type": ["file"]},
            "search/issues": {"items": [{"title": "missing number"}]},
            "issues": {"title": "no number either"},
        }
    )

    with pytest.raises(FetchError):
        _fetcher(client).get_commit("abc")
    with pytest.raises(FetchError):
        _fetcher(client).get_file_text("index.js", "abc")
    with pytest.raises(TrackerError):
        _tracker(client).search_by_title("missing number")
    with pytest.raises(TrackerError):
        _tracker(client).create("Title", "Body", [])
