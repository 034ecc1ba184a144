"""Pick the commit the previous review covered."""

from __future__ import annotations

from collections.abc import Iterable

from ..models import ExistingCommentSummary


def _posting_order(summary: ExistingCommentSummary) -> tuple[int, int]:
    # Azure DevOps comment ids restart at 1 in each thread; the thread id
    # breaks ties between first comments of different threads.
    return (summary.comment_id or 0, summary.thread_id or 0)


def last_reviewed_sha(summaries: Iterable[ExistingCommentSummary]) -> str | None:
    """Return the review-head SHA of the most recently posted marker comment."""

    candidates = [s for s in summaries if s.review_head_sha]
    if not candidates:
        return None
    latest = max(candidates, key=_posting_order)
    return latest.review_head_sha


def is_already_reviewed(previous_sha: str | None, head_sha: str) -> bool:
    """True when the previous review already covered `head_sha`.

    Short SHAs in markers match by prefix.
    """

    prev = (previous_sha or "").strip().lower()
    head = (head_sha or "").strip().lower()
    if not prev or not head:
        return False
    return head.startswith(prev) or prev.startswith(head)
