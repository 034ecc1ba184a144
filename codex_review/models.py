"""Review records shared between parsing, rendering and posting."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class OriginFinding:
    """Rationale context a suggestion inherits from the finding it came from."""

    severity: str | None = None
    title: str | None = None
    details: str | None = None


@dataclass(frozen=True)
class ReviewSuggestion:
    """A literal replacement for lines `start_line..end_line` (1-based, inclusive)."""

    file: str
    start_line: int
    end_line: int
    comment: str
    replacement: str
    origin_finding: OriginFinding | None = None


@dataclass(frozen=True)
class SuggestionDetails:
    file: str | None
    start_line: int | None
    end_line: int | None
    comment: str
    replacement: str


@dataclass(frozen=True)
class Finding:
    """A model finding.

    Known fields are typed; any other keys the model emitted are kept in
    `extra` and forwarded untouched.
    """

    severity: str | None = None
    file: str | None = None
    line: int | None = None
    title: str | None = None
    details: str | None = None
    suggestion: SuggestionDetails | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def effective_file(self) -> str | None:
        if self.file:
            return self.file
        if self.suggestion is not None and self.suggestion.file:
            return self.suggestion.file
        return None


@dataclass(frozen=True)
class ReviewResult:
    summary: str
    findings: list[Finding]
    suggestions: list[ReviewSuggestion]


@dataclass(frozen=True)
class RenderedSuggestion:
    """Final wire comment. Never built with an empty `sanitized_replacement`."""

    body: str
    sanitized_replacement: str


@dataclass(frozen=True)
class ExistingCommentSummary:
    """First text comment of a thread already posted on the pull request.

    `content` has review-head markers stripped; `raw_content` is the body as
    fetched.
    """

    content: str
    raw_content: str
    review_head_sha: str | None = None
    file_path: str | None = None
    start_line: int | None = None
    end_line: int | None = None
    thread_id: int | None = None
    comment_id: int | None = None


@dataclass(frozen=True)
class PullRequestMetadata:
    title: str | None = None
    description: str | None = None
    source_ref_name: str | None = None
    target_ref_name: str | None = None
    repository_id: str | None = None
