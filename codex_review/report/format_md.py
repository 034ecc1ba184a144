from __future__ import annotations

from collections.abc import Sequence

from ..models import Finding, ReviewResult

DEFAULT_SUMMARY = "Automated review completed."


def _finding_entry(f: Finding) -> str:
    path = f.effective_file() or "unknown"
    if f.line is not None:
        line: object = f.line
    elif f.suggestion is not None and f.suggestion.start_line is not None:
        line = f.suggestion.start_line
    else:
        line = "?"

    heading = f"- {path}:{line}"
    if f.title:
        heading = f"{heading} - {f.title}"

    lines = [heading]
    if f.details and f.details.strip():
        lines.append(f"  {f.details}")
    s = f.suggestion
    start = s.start_line if s is not None and s.start_line is not None else f.line
    if s is not None and start is not None:
        span = str(start)
        if s.end_line and s.end_line != start:
            span = f"{start}-{s.end_line}"
        lines.append(f"  Suggested fix for lines {span}.")
    return "\n".join(lines)


def format_findings_summary(findings: Sequence[Finding]) -> list[str]:
    return [_finding_entry(f) for f in findings]


def format_overall_comment(review: ReviewResult) -> str:
    """Overall review comment text, without any review-head marker."""

    lines: list[str] = [review.summary or DEFAULT_SUMMARY]
    if review.findings:
        lines.append("")
        lines.append("### Findings")
        lines.extend(format_findings_summary(review.findings))
    return "\n".join(lines).strip()


def format_review_log(review: ReviewResult) -> list[str]:
    """Human-readable lines describing a parsed review, for the run log."""

    lines = ["Review summary:", review.summary or "<no summary provided>"]
    if review.findings:
        lines.append("Findings:")
        for f in review.findings:
            loc = f.effective_file() or "unknown"
            if f.line is not None:
                loc = f"{loc}:{f.line}"
            suffix = " (with suggestion)" if f.suggestion is not None else ""
            lines.append(f"- {loc} {f.title or ''}".rstrip() + suffix)
    if review.suggestions:
        lines.append("Suggestions:")
        for s in review.suggestions:
            comment = " ".join(s.comment.split())[:80]
            lines.append(f"- {s.file}:{s.start_line}-{s.end_line} -> {comment}")
    return lines
