"""Report generation for processed push events."""

from __future__ import annotations

import json
from pathlib import Path

from todobot.models import EventReport, MarkerOutcome, ReconcileAction


def _issue_ref(outcome: MarkerOutcome) -> str:
    if outcome.issue is None:
        return "-"
    if outcome.issue.html_url:
        return f"[#{outcome.issue.number}]({outcome.issue.html_url})"
    if outcome.issue.number is not None:
        return f"#{outcome.issue.number}"
    return "(dry-run)"


def _outcome_label(outcome: MarkerOutcome) -> str:
    if outcome.error is not None:
        return "failed"
    return outcome.action.value if outcome.action else "-"


def render_markdown_report(report: EventReport) -> str:
    lines = [
        "# TODO Sync Report",
        "",
        f"- Repository: `{report.repo}`",
        f"- Ref: `{report.ref}`",
        f"- Generated: {report.generated_at.isoformat()}",
    ]
    if report.skipped_reason:
        lines.extend(["", f"Skipped: {report.skipped_reason}", ""])
        return "\n".join(lines)

    lines.extend(
        [
            f"- Commits scanned: {report.commits_scanned} (merge commits skipped: {report.merge_commits_skipped})",
            f"- Files scanned: {report.files_scanned} (excluded: {report.files_excluded}, unparseable: {report.files_unparseable})",
            f"- Markers: {report.markers_found}",
            f"- Created: {report.count(ReconcileAction.CREATE)}",
            f"- Reopened: {report.count(ReconcileAction.REOPEN)}",
            f"- Skipped: {report.count(ReconcileAction.SKIP)}",
            f"- Failed: {report.failed}",
            "",
        ]
    )

    if report.outcomes:
        lines.extend(["| Result | Title | Location | Issue |", "|---|---|---|---|"])
        for outcome in report.outcomes:
            marker = outcome.marker
            title = marker.title.replace("|", "\\|")
            lines.append(f"| {_outcome_label(outcome)} | {title} | `{marker.path}:{marker.line_number}` | {_issue_ref(outcome)} |")
        lines.append("")

    if report.errors:
        lines.append("## Errors")
        lines.extend(f"- {error}" for error in report.errors)
        lines.append("")

    return "\n".join(lines)


def write_report_bundle(report: EventReport, output_dir: str | Path) -> None:
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    (out / "todo_report.json").write_text(json.dumps(report.model_dump(mode="json"), indent=2))
    (out / "todo_report.md").write_text(render_markdown_report(report))


def report_summary(report: EventReport) -> dict[str, object]:
    return {
        "repo": report.repo,
        "ref": report.ref,
        "skipped_reason": report.skipped_reason,
        "commits_scanned": report.commits_scanned,
        "merge_commits_skipped": report.merge_commits_skipped,
        "files_scanned": report.files_scanned,
        "markers": report.markers_found,
        "created": report.count(ReconcileAction.CREATE),
        "reopened": report.count(ReconcileAction.REOPEN),
        "skipped": report.count(ReconcileAction.SKIP),
        "failed": report.failed,
    }
