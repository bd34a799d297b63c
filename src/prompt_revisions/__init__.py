"""
prompt-revisions: Version prompts as immutable revisions and diff them.

A workspace for prompt revisions with line-anchored comments and a
word-level revision differ that numbers old and new lines independently.
"""

__version__ = "0.1.0"

from .tokens import ChangeSpan, ChangeType, diff_words
from .differ import (
    DiffLine,
    DiffResult,
    DiffToken,
    build_diff_lines,
    diff_revisions,
    normalize_line_endings,
    raw_lines,
    segment_lines,
)
from .store import RevisionStore

__all__ = [
    "ChangeSpan",
    "ChangeType",
    "diff_words",
    "DiffLine",
    "DiffResult",
    "DiffToken",
    "build_diff_lines",
    "diff_revisions",
    "normalize_line_endings",
    "raw_lines",
    "segment_lines",
    "RevisionStore",
]
