"""Bound the per-file diff list before it is sent to the model.

This module is pure (no I/O). Limits:

- max_files: keep only the first N files, in diff order (never re-sorted).
- max_chars: total character budget across the kept files.

Overflow semantics:
- Whole files are kept greedily while they fit the remaining budget.
- The first file that does not fit is sliced to the remaining budget and
  marked with TRUNCATION_MARKER; every later file is dropped.
"""

from __future__ import annotations

from collections.abc import Sequence

from ..errors import DiffBudgetError
from .parse import FileDiff

TRUNCATION_MARKER = "[... diff truncated ...]"


def truncate_files(
    files: Sequence[FileDiff],
    *,
    max_files: int,
    max_chars: int,
) -> list[FileDiff]:
    trimmed = list(files[: max(0, max_files)])
    total_chars = sum(len(f.diff) for f in trimmed)
    if trimmed and total_chars <= max_chars:
        return trimmed

    result: list[FileDiff] = []
    remaining = max_chars
    for f in trimmed:
        if remaining <= 0:
            break
        if len(f.diff) <= remaining:
            result.append(f)
            remaining -= len(f.diff)
            continue

        result.append(
            FileDiff(path=f.path, diff=f"{f.diff[:remaining]}\n{TRUNCATION_MARKER}")
        )
        remaining = 0

    if not result:
        raise DiffBudgetError(
            "Diff too large to include in prompt. Increase --max-diff-chars."
        )
    return result
