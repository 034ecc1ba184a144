from __future__ import annotations

from ..models import RenderedSuggestion, ReviewSuggestion
from .sanitize import sanitize_suggestion
from .segment import SegmentReader

SUGGESTION_FENCE = "```suggestion"


def build_context_lines(suggestion: ReviewSuggestion) -> list[str]:
    lines: list[str] = []
    origin = suggestion.origin_finding
    if origin is not None:
        if origin.title:
            lines.append(origin.title)
        if origin.details:
            lines.append(origin.details)
    lines.append(suggestion.comment)
    return lines


def render_replacement_for_host(replacement: str) -> str:
    # Azure DevOps applies suggestion blocks with CRLF line endings.
    return replacement.replace("\n", "\r\n")


def render_suggestion(
    suggestion: ReviewSuggestion, reader: SegmentReader
) -> RenderedSuggestion | None:
    """Build the wire comment for a suggestion.

    Returns None when sanitizing leaves nothing to suggest; callers skip
    posting in that case.
    """

    sanitized = sanitize_suggestion(suggestion, reader)
    if not sanitized:
        return None

    context = "\n\n".join(
        line for line in build_context_lines(suggestion) if line and line.strip()
    )
    block = f"{SUGGESTION_FENCE}\n{render_replacement_for_host(sanitized)}\n```"
    body = f"{context}\n\n{block}" if context else block
    return RenderedSuggestion(body=body, sanitized_replacement=sanitized)
