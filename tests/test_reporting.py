import json
from pathlib import Path

from todobot.models import (
    EventReport,
    Marker,
    MarkerOutcome,
    ReconcileAction,
    ReconcileDecision,
    TrackedIssue,
)
from todobot.reporting import render_markdown_report, report_summary, write_report_bundle


def _marker(title: str, line: int) -> Marker:
    return Marker(path="src/app.py", line_number=line, keyword="TODO", title=title, raw_title=title)


def _report() -> EventReport:
    created = _marker("Split | the handler", 3)
    skipped = _marker("Already tracked", 9)
    failed = _marker("Search broke", 12)
    return EventReport(
        repo="acme/repo",
        ref="refs/heads/main",
        commits_scanned=1,
        files_scanned=1,
        markers_found=3,
        outcomes=[
            MarkerOutcome(
                commit_sha="abc",
                marker=created,
                decision=ReconcileDecision(action=ReconcileAction.CREATE, marker=created),
                issue=TrackedIssue(title=created.title, number=5, html_url="https://github.com/acme/repo/issues/5"),
            ),
            MarkerOutcome(
                commit_sha="abc",
                marker=skipped,
                decision=ReconcileDecision(action=ReconcileAction.SKIP, marker=skipped),
                issue=TrackedIssue(title=skipped.title, number=2),
            ),
            MarkerOutcome(commit_sha="abc", marker=failed, error="search failed"),
        ],
        errors=["def: commit not found"],
    )


def test_markdown_report_lists_outcomes() -> None:
    markdown = render_markdown_report(_report())

    assert "- Created: 1" in markdown
    assert "- Failed: 1" in markdown
    assert "| create | Split \\| the handler | `src/app.py:3` | [#5](https://github.com/acme/repo/issues/5) |" in markdown
    assert "| skip | Already tracked | `src/app.py:9` | #2 |" in markdown
    assert "| failed | Search broke | `src/app.py:12` | - |" in markdown
    assert "- def: commit not found" in markdown


def test_skipped_event_report_is_short() -> None:
    report = EventReport(repo="acme/repo", ref="refs/heads/dev", skipped_reason="refs/heads/dev is not refs/heads/main")

    markdown = render_markdown_report(report)

    assert "Skipped: refs/heads/dev is not refs/heads/main" in markdown
    assert "| Result |" not in markdown


def test_write_report_bundle_and_summary(tmp_path: Path) -> None:
    report = _report()

    write_report_bundle(report, tmp_path / "out")

    payload = json.loads((tmp_path / "out" / "todo_report.json").read_text())
    assert payload["outcomes"][0]["marker"]["title"] == "Split | the handler"
    assert (tmp_path / "out" / "todo_report.md").exists()
    assert report_summary(report) == {
        "repo": "acme/repo",
        "ref": "refs/heads/main",
        "skipped_reason": None,
        "commits_scanned": 1,
        "merge_commits_skipped": 0,
        "files_scanned": 1,
        "markers": 3,
        "created": 1,
        "reopened": 0,
        "skipped": 1,
        "failed": 1,
    }
