"""Read the current text of a suggestion's target line range."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

_LINE_SPLIT_RE = re.compile(r"\r?\n")


class SegmentReader(Protocol):
    def read(self, path: str, start_line: int, end_line: int) -> str | None: ...


@dataclass(frozen=True)
class FileSegmentReader:
    """Reads line ranges from the checked-out working tree under `root`.

    Returns None when the file is missing or unreadable (renamed, deleted,
    not checked out, binary) or when the range falls outside the file.
    """

    root: Path

    def read(self, path: str, start_line: int, end_line: int) -> str | None:
        rel = (path or "").replace("\\", "/").lstrip("/")
        if not rel:
            return None
        target = self.root / rel
        if not target.is_file():
            return None
        try:
            content = target.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return None

        lines = _LINE_SPLIT_RE.split(content)
        if lines and lines[-1] == "":
            lines.pop()
        if start_line < 1 or end_line < start_line or start_line > len(lines):
            return None
        return "\n".join(lines[start_line - 1 : min(end_line, len(lines))])
