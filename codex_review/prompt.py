"""Review prompt assembly.

The prompt is a series of sections separated by a horizontal rule:
pull-request context, existing feedback, then the per-file diff.
"""

from __future__ import annotations

from collections.abc import Sequence

from .diff.parse import FileDiff
from .models import ExistingCommentSummary, PullRequestMetadata

EXISTING_FEEDBACK_HEADER = (
    "Existing PR feedback already posted, you MUST NOT report issues that are "
    "already covered by existing feedback, if there are no findings then you "
    "SHOULD not post at all:"
)
PR_CONTEXT_HEADER = "Pull request context (from Azure DevOps):"
SECTION_SEPARATOR = "\n\n---\n\n"

MAX_FEEDBACK_ENTRIES = 20
MAX_FEEDBACK_ENTRY_CHARS = 280
MAX_PR_DESCRIPTION_CHARS = 2000


def build_diff_prompt(files: Sequence[FileDiff]) -> str:
    return "\n\n".join(f"File: {f.path}\n```\n{f.diff}\n```" for f in files)


def _feedback_location(summary: ExistingCommentSummary) -> str:
    if not summary.file_path:
        return "General"
    if not summary.start_line:
        return summary.file_path
    loc = f"{summary.file_path}:{summary.start_line}"
    if summary.end_line and summary.end_line != summary.start_line:
        loc = f"{loc}-{summary.end_line}"
    return loc


def build_existing_feedback_context(
    summaries: Sequence[ExistingCommentSummary],
    last_reviewed_sha: str | None = None,
) -> str | None:
    displayable = [s for s in summaries if s.content]
    if not last_reviewed_sha and not displayable:
        return None

    lines: list[str] = []
    if last_reviewed_sha:
        lines.append(f"Last reviewed commit: {last_reviewed_sha[:12]}")

    for summary in displayable[:MAX_FEEDBACK_ENTRIES]:
        text = " ".join(summary.content.split())
        if len(text) > MAX_FEEDBACK_ENTRY_CHARS:
            text = f"{text[: MAX_FEEDBACK_ENTRY_CHARS - 3]}…"
        if text:
            lines.append(f"- {_feedback_location(summary)}: {text}")

    if len(displayable) > MAX_FEEDBACK_ENTRIES:
        extra = len(displayable) - MAX_FEEDBACK_ENTRIES
        lines.append(f"- …plus {extra} more existing comment(s).")

    if not lines:
        return None
    return "\n".join([EXISTING_FEEDBACK_HEADER, *lines])


def build_pull_request_context(metadata: PullRequestMetadata | None) -> str | None:
    if metadata is None:
        return None

    title = (metadata.title or "").strip()
    description = (metadata.description or "").strip()
    source = (metadata.source_ref_name or "").strip()
    target = (metadata.target_ref_name or "").strip()

    sections: list[str] = []
    if title:
        sections.append(f"Title: {title}")
    if source or target:
        sections.append(f"Branches: {source or '<unknown>'} -> {target or '<unknown>'}")
    if description:
        text = description.replace("\r\n", "\n").strip()
        if len(text) > MAX_PR_DESCRIPTION_CHARS:
            text = f"{text[:MAX_PR_DESCRIPTION_CHARS]}…"
        sections.append(f"Description:\n{text}")

    if not sections:
        return None
    return "\n\n".join([PR_CONTEXT_HEADER, *sections])


def assemble_review_prompt(
    diff_prompt: str,
    existing: Sequence[ExistingCommentSummary] = (),
    previous_review_sha: str | None = None,
    metadata: PullRequestMetadata | None = None,
) -> str:
    sections: list[str] = []
    pr_context = build_pull_request_context(metadata)
    if pr_context:
        sections.append(pr_context)
    feedback = build_existing_feedback_context(existing, previous_review_sha)
    if feedback:
        sections.append(feedback)
    sections.append(diff_prompt)
    return SECTION_SEPARATOR.join(sections)
