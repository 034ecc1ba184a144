"""Parse and validate the model's review JSON.

The schema lives in `codex_review/schemas/review.schema.json` and is more
lenient than the schema handed to the model: line numbers may arrive as
integer strings and findings may carry extra keys.
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

import jsonschema

from ..errors import ExecFailureError, ReviewSchemaError
from ..models import (
    Finding,
    OriginFinding,
    ReviewResult,
    ReviewSuggestion,
    SuggestionDetails,
)

_RAW_OUTPUT_MAX_CHARS = 2000
_FINDING_KEYS = frozenset({"severity", "file", "line", "title", "details", "suggestion"})


def schemas_dir() -> Path:
    # codex_review/validate/review_json.py -> codex_review/schemas
    return Path(__file__).resolve().parents[1] / "schemas"


def _truncate(s: str, max_chars: int = _RAW_OUTPUT_MAX_CHARS) -> str:
    if len(s) <= max_chars:
        return s
    return s[: max_chars - 20] + "... [truncated]"


def load_schema(name: str) -> dict[str, Any]:
    path = schemas_dir() / name
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ExecFailureError(f"Failed to read JSON schema: {str(path)!r}") from exc

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ExecFailureError(f"Invalid JSON schema: {str(path)!r}: {exc}") from exc

    if not isinstance(data, dict):
        raise ExecFailureError(
            f"Invalid JSON schema: {str(path)!r}: root must be object"
        )
    return data


@lru_cache(maxsize=None)
def _review_validator() -> Any:
    schema = load_schema("review.schema.json")
    try:
        validator_cls = jsonschema.validators.validator_for(schema)
        validator_cls.check_schema(schema)
    except jsonschema.SchemaError as exc:
        raise ExecFailureError(f"Invalid JSON schema: review.schema.json: {exc}") from exc
    return validator_cls(schema)


def _format_path(error: jsonschema.ValidationError) -> str:
    if not error.path:
        return "$"
    parts = []
    for p in error.path:
        if isinstance(p, int):
            parts.append(f"[{p}]")
        else:
            parts.append("." + str(p))
    return "$" + "".join(parts)


def validate_review_payload(payload: object, *, raw: str) -> dict[str, Any]:
    errors = sorted(_review_validator().iter_errors(payload), key=lambda e: list(e.path))
    if errors:
        rendered = "; ".join(f"{_format_path(e)}: {e.message}" for e in errors[:8])
        more = "" if len(errors) <= 8 else f" (+{len(errors) - 8} more)"
        raise ReviewSchemaError(
            f"Model response failed validation: {rendered}{more}\n"
            f"Output: {_truncate(raw)}"
        )
    if not isinstance(payload, dict):
        raise ReviewSchemaError(
            f"Model response must be a JSON object\nOutput: {_truncate(raw)}"
        )
    return payload


def _to_line(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip():
        return int(value.strip())
    return None


def _opt_str(value: object) -> str | None:
    return value if isinstance(value, str) else None


def _suggestion_details(raw: object) -> SuggestionDetails | None:
    if not isinstance(raw, dict):
        return None
    return SuggestionDetails(
        file=_opt_str(raw.get("file")),
        start_line=_to_line(raw.get("start_line")),
        end_line=_to_line(raw.get("end_line")),
        comment=str(raw.get("comment", "")),
        replacement=str(raw.get("replacement", "")),
    )


def _finding(raw: dict[str, Any]) -> Finding:
    return Finding(
        severity=_opt_str(raw.get("severity")),
        file=_opt_str(raw.get("file")),
        line=_to_line(raw.get("line")),
        title=_opt_str(raw.get("title")),
        details=_opt_str(raw.get("details")),
        suggestion=_suggestion_details(raw.get("suggestion")),
        extra={k: v for k, v in raw.items() if k not in _FINDING_KEYS},
    )


class _SuggestionCollector:
    """Collects suggestions in order, dropping exact repeats.

    Entries without a file, or whose range is not `1 <= start <= end`, are
    dropped.
    """

    def __init__(self) -> None:
        self.items: list[ReviewSuggestion] = []
        self._seen: set[str] = set()

    def add(
        self,
        *,
        file: str | None,
        start_line: int | None,
        end_line: int | None,
        comment: str,
        replacement: str,
        origin: OriginFinding | None = None,
    ) -> None:
        if not file or start_line is None or start_line < 1:
            return
        end = end_line if end_line is not None else start_line
        if end < start_line:
            return
        key = f"{file}:{start_line}:{end}:{comment}:{replacement}"
        if key in self._seen:
            return
        self._seen.add(key)
        self.items.append(
            ReviewSuggestion(
                file=file,
                start_line=start_line,
                end_line=end,
                comment=comment.strip(),
                replacement=replacement.rstrip(),
                origin_finding=origin,
            )
        )


def parse_review(raw_json: str) -> ReviewResult:
    """Parse model output into a `ReviewResult`.

    Suggestions come from the top-level `suggestions` list first, then from
    findings that carry one. Repeats (same file, lines, comment and
    replacement) are kept once.

    Raises ReviewSchemaError for non-JSON or schema-invalid output.
    """

    raw = raw_json or ""
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ReviewSchemaError(
            f"Model response was not valid JSON: {exc}\nOutput: {_truncate(raw)}"
        ) from exc

    data = validate_review_payload(payload, raw=raw)

    collector = _SuggestionCollector()
    for item in data.get("suggestions") or []:
        collector.add(
            file=item.get("file"),
            start_line=_to_line(item.get("start_line")),
            end_line=_to_line(item.get("end_line")),
            comment=str(item.get("comment", "")),
            replacement=str(item.get("replacement", "")),
        )

    findings: list[Finding] = []
    for item in data.get("findings") or []:
        finding = _finding(item)
        findings.append(finding)

        s = finding.suggestion
        if s is None:
            continue
        collector.add(
            file=s.file or finding.file,
            start_line=s.start_line if s.start_line is not None else finding.line,
            end_line=s.end_line,
            comment=s.comment,
            replacement=s.replacement,
            origin=OriginFinding(
                severity=finding.severity,
                title=finding.title,
                details=finding.details,
            ),
        )

    summary = data.get("summary")
    return ReviewResult(
        summary=summary.strip() if isinstance(summary, str) else "",
        findings=findings,
        suggestions=collector.items,
    )
