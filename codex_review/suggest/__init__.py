"""Suggestion sanitizing and rendering.

A suggestion's replacement is cleaned against the current text of the lines
it replaces, then rendered into the host's suggestion comment format.
"""

from .render import render_suggestion
from .sanitize import sanitize_suggestion, sanitize_text
from .segment import FileSegmentReader, SegmentReader

__all__ = [
    "FileSegmentReader",
    "SegmentReader",
    "render_suggestion",
    "sanitize_suggestion",
    "sanitize_text",
]
