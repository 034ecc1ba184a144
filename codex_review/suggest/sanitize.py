"""Strip original code the model echoed back into a suggested replacement.

Models often repeat the code being replaced: appended verbatim after the new
code, or interleaved on the same line as the new code (an old and a new
value for the same attribute side by side). Posting that text as-is would
corrupt the suggested change.

The rules are line/fragment based and only remove text that can be matched
against the original segment; anything unmatched is kept.

1. Normalize line endings to "\\n" and strip trailing whitespace.
2. If the original segment is unavailable or blank, stop here.
3. If the replacement ends with the whole original segment, drop that tail
   (unless nothing would be left).
4. Per replacement line, comparing trimmed text:
   - a line equal to an original line is dropped, unless it is a comment
     line (`//`, `/*`, `* `, `*`, `*/`), which is kept verbatim;
   - otherwise every original line's text is removed where it appears as a
     fragment bounded by whitespace/start on the left and whitespace, end
     of line, `,`, `;` or `)` on the right, after runs of spaces collapse;
   - lines left empty are dropped.
5. Immediately repeated lines are collapsed.
6. If no line survives, the result is "" (nothing new to suggest).

Steps 3 to 5 repeat until a pass leaves the text unchanged, so sanitizing
an already sanitized replacement returns it as is.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from ..models import ReviewSuggestion
from .segment import SegmentReader

_LINE_ENDING_RE = re.compile(r"\r\n?")
_MULTI_SPACE_RE = re.compile(r"\s{2,}")


def normalize_line_endings(content: str) -> str:
    return _LINE_ENDING_RE.sub("\n", content or "")


def is_comment_line(value: str) -> bool:
    s = value.lstrip()
    return (
        s.startswith("//")
        or s.startswith("/*")
        or s.startswith("* ")
        or s == "*"
        or s.startswith("*/")
    )


def _fragment_pattern(fragment: str) -> re.Pattern[str]:
    return re.compile(rf"(^|\s){re.escape(fragment)}(?=\s|$|,|;|\))")


def strip_original_fragments(line: str, original_lines: Sequence[str]) -> str:
    """Remove original-line fragments from a single replacement line.

    Returns "" when nothing of the line should survive.
    """

    trimmed_line = line.strip()
    if not trimmed_line:
        return ""

    for original in original_lines:
        trimmed_original = original.strip()
        if trimmed_original and trimmed_line == trimmed_original:
            return line if is_comment_line(trimmed_original) else ""

    stripped = line.lstrip()
    leading = line[: len(line) - len(stripped)]
    content = _MULTI_SPACE_RE.sub(" ", stripped)

    for original in original_lines:
        trimmed_original = original.strip()
        if not trimmed_original:
            continue
        content = _fragment_pattern(trimmed_original).sub(
            lambda m: m.group(1), content
        )

    content = _MULTI_SPACE_RE.sub(" ", content).strip()
    if not content:
        return ""
    return f"{leading}{content}"


def _is_preserved_comment(trimmed_line: str, original_lines: Sequence[str]) -> bool:
    return any(
        o.strip() == trimmed_line and is_comment_line(o.strip())
        for o in original_lines
    )


def filter_replacement_lines(
    replacement_lines: Sequence[str], original_lines: Sequence[str]
) -> list[str]:
    """Apply the per-line rules (steps 4 and 5) to already-normalized lines."""

    kept: list[str] = []
    for raw in replacement_lines:
        line = strip_original_fragments(raw, original_lines)
        trimmed = line.strip()
        if not trimmed:
            continue
        if not _is_preserved_comment(trimmed, original_lines) and any(
            o.strip() == trimmed for o in original_lines
        ):
            continue
        kept.append(line)

    deduped: list[str] = []
    for line in kept:
        if not deduped or deduped[-1] != line:
            deduped.append(line)
    return deduped


def _sanitize_pass(
    text: str, trimmed_original: str, original_lines: Sequence[str]
) -> str:
    tail = re.search(rf"{re.escape(trimmed_original)}\s*\Z", text)
    if tail is not None:
        candidate = text[: tail.start()].rstrip()
        if candidate:
            text = candidate

    lines = filter_replacement_lines(text.split("\n"), original_lines)
    return "\n".join(lines).rstrip()


def sanitize_text(replacement: str, original_segment: str | None) -> str:
    """Sanitize `replacement` against the original text it replaces.

    `original_segment` is None when the original could not be read; only
    whitespace normalization is applied then.
    """

    normalized = normalize_line_endings(replacement).rstrip()
    if not normalized:
        return ""

    if original_segment is None:
        return normalized

    trimmed_original = normalize_line_endings(original_segment).strip()
    if not trimmed_original:
        return normalized

    original_lines = [line.rstrip() for line in trimmed_original.split("\n")]
    # Each pass only removes text, so this stops once a pass changes nothing.
    current = normalized
    while True:
        cleaned = _sanitize_pass(current, trimmed_original, original_lines)
        if not cleaned or cleaned == current:
            return cleaned
        current = cleaned


def sanitize_suggestion(suggestion: ReviewSuggestion, reader: SegmentReader) -> str:
    """Sanitize a suggestion's replacement against the file's current content."""

    normalized = normalize_line_endings(suggestion.replacement).rstrip()
    if not normalized:
        return ""
    segment = reader.read(suggestion.file, suggestion.start_line, suggestion.end_line)
    return sanitize_text(normalized, segment)
