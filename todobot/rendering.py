"""Markdown rendering for created issues and reopen comments."""

from __future__ import annotations

from todobot.models import BlobContext, Commit, Marker

GITHUB_WEB_URL = "https://github.com"


def blob_url(repo: str, sha: str, path: str, start: int, end: int | None = None, *, base_url: str = GITHUB_WEB_URL) -> str:
    anchor = f"L{start}" if end is None or end == start else f"L{start}-L{end}"
    return f"{base_url}/{repo}/blob/{sha}/{path}#{anchor}"


def commit_url(repo: str, sha: str, *, base_url: str = GITHUB_WEB_URL) -> str:
    return f"{base_url}/{repo}/commit/{sha}"


def _fence_for(blob: BlobContext) -> str:
    fence = "```"
    while any(fence in line.text for line in blob.lines):
        fence += "`"
    return fence


def render_snippet(blob: BlobContext) -> str:
    width = len(str(blob.end))
    fence = _fence_for(blob)
    rows = [f"{line.line_number:>{width}}{'>' if line.is_marker else ' '} {line.text}" for line in blob.lines]
    return "\n".join([fence, *rows, fence])


def render_issue_body(
    marker: Marker,
    *,
    repo: str,
    commit: Commit,
    blob: BlobContext | None = None,
    assignees: list[str] | None = None,
    base_url: str = GITHUB_WEB_URL,
) -> str:
    sections: list[str] = []
    if marker.body:
        sections.append(marker.body)
    if marker.truncated:
        sections.append(f"> {marker.raw_title}")

    location = f"`{marker.path}` line {marker.line_number}"
    if blob is not None and blob.lines:
        link = blob_url(repo, commit.sha, marker.path, blob.start, blob.end, base_url=base_url)
        sections.append(f"{location}: {link}\n\n{render_snippet(blob)}")
    else:
        link = blob_url(repo, commit.sha, marker.path, marker.line_number, base_url=base_url)
        sections.append(f"{location}: {link}")

    footer = f"###### This issue was generated from a `{marker.keyword}` marker added in {commit_url(repo, commit.sha, base_url=base_url)}."
    if assignees:
        footer += " Assigned to " + ", ".join(f"@{login}" for login in assignees) + "."
    sections.append(footer)
    return "\n\n---\n\n".join(sections)


def render_reopen_comment(marker: Marker, *, repo: str, commit: Commit, base_url: str = GITHUB_WEB_URL) -> str:
    link = blob_url(repo, commit.sha, marker.path, marker.line_number, base_url=base_url)
    return (
        f"This issue has been reopened because the `{marker.keyword}` marker was added again "
        f"in {commit_url(repo, commit.sha, base_url=base_url)}.\n\n"
        f"`{marker.path}` line {marker.line_number}: {link}"
    )
