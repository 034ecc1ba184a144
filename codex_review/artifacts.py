"""Local output files written by a run."""

from __future__ import annotations

import os
import tempfile

from .errors import ExecFailureError


def atomic_write_text(path: str, content: str) -> None:
    """Write `content` to `path` verbatim via a temp file in the same directory."""

    dir_name = os.path.dirname(path) or "."
    base = os.path.basename(path)
    try:
        os.makedirs(dir_name, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            delete=False,
            dir=dir_name,
            prefix=f".{base}.tmp.",
        ) as fh:
            tmp = fh.name
            fh.write(content)
        os.replace(tmp, path)
    except OSError as exc:
        raise ExecFailureError(f"Failed to write {path!r}: {exc}") from exc


def write_raw_review_json(path: str, raw_json: str) -> str:
    out = os.path.abspath(path)
    atomic_write_text(out, raw_json)
    return out
