"""
Revision differ producing display-ready diff lines.

Takes the word-level change spans between two revisions and re-segments
them into lines, numbering the old and new sides independently.
"""

import difflib
from dataclasses import dataclass, field
from typing import Optional

from .tokens import ChangeSpan, ChangeType, TokenDiffer, diff_words


def normalize_line_endings(text: str) -> str:
    """Convert CRLF and lone CR line endings to LF."""
    return text.replace('\r\n', '\n').replace('\r', '\n')


def raw_lines(content: str) -> list[str]:
    """
    Split revision content into display lines.

    Comment line numbers refer to positions in this list (1-based).
    """
    return normalize_line_endings(content).split('\n')


@dataclass(frozen=True)
class DiffToken:
    """A newline-free fragment of a change span."""
    id: str
    change_type: ChangeType
    value: str  # May be empty: a blank segment of its line


@dataclass
class DiffLine:
    """One row of a rendered diff."""
    id: str
    old_line_number: Optional[int] = None
    new_line_number: Optional[int] = None
    tokens: list[DiffToken] = field(default_factory=list)
    has_addition: bool = False
    has_removal: bool = False

    @property
    def is_empty(self) -> bool:
        return (
            not self.tokens
            and self.old_line_number is None
            and self.new_line_number is None
        )

    @property
    def has_old_content(self) -> bool:
        return any(t.change_type != ChangeType.ADDED for t in self.tokens)

    @property
    def has_new_content(self) -> bool:
        return any(t.change_type != ChangeType.REMOVED for t in self.tokens)

    @property
    def text(self) -> str:
        return ''.join(t.value for t in self.tokens)


class LineSegmenter:
    """
    Accumulates tokens into lines while walking change spans in order.

    Old and new line counters advance independently: a line counts toward
    the old side when it holds any non-added token and toward the new side
    when it holds any non-removed token.
    """

    def __init__(self):
        self.lines: list[DiffLine] = []
        self.old_line_number = 1
        self.new_line_number = 1
        self.line_index = 0
        self.current = self._new_line()

    def _new_line(self) -> DiffLine:
        return DiffLine(id=f"line-{self.line_index}")

    def append(self, span_index: int, part_index: int, change_type: ChangeType, value: str):
        line = self.current

        # First claim wins; later spans on the same line never overwrite it
        if change_type != ChangeType.ADDED and line.old_line_number is None:
            line.old_line_number = self.old_line_number
        if change_type != ChangeType.REMOVED and line.new_line_number is None:
            line.new_line_number = self.new_line_number
        if change_type == ChangeType.ADDED:
            line.has_addition = True
        if change_type == ChangeType.REMOVED:
            line.has_removal = True

        line.tokens.append(DiffToken(
            id=f"{span_index}-{part_index}-{len(line.tokens)}",
            change_type=change_type,
            value=value,
        ))

    def close_line(self):
        line = self.current
        if not line.is_empty:
            self.lines.append(line)
            if line.has_old_content:
                self.old_line_number += 1
            if line.has_new_content:
                self.new_line_number += 1
        self.line_index += 1
        self.current = self._new_line()

    def feed(self, span_index: int, span: ChangeSpan):
        parts = span.value.split('\n')
        for part_index, part in enumerate(parts):
            is_last = part_index == len(parts) - 1
            # A value ending in a newline leaves an empty trailing part
            if is_last and part == '':
                continue
            self.append(span_index, part_index, span.change_type, part)
            if not is_last:
                self.close_line()

    def finish(self) -> list[DiffLine]:
        if not self.current.is_empty:
            self.close_line()
        return self.lines


def segment_lines(spans: list[ChangeSpan]) -> list[DiffLine]:
    """Convert ordered change spans into numbered diff lines."""
    segmenter = LineSegmenter()
    for span_index, span in enumerate(spans):
        segmenter.feed(span_index, span)
    return segmenter.finish()


def build_diff_lines(
    previous: str,
    current: str,
    differ: TokenDiffer = diff_words,
) -> list[DiffLine]:
    """
    Diff two revision texts into display lines.

    Args:
        previous: Content of the compare revision (may be empty)
        current: Content of the selected revision (may be empty)
        differ: Word-diff primitive returning ordered change spans

    Returns:
        List of DiffLine; empty when both texts are empty
    """
    spans = differ(normalize_line_endings(previous), normalize_line_endings(current))
    return segment_lines(spans)


def compute_similarity(old_text: str, new_text: str) -> float:
    """Compute similarity ratio between two texts."""
    if not old_text and not new_text:
        return 1.0
    if not old_text or not new_text:
        return 0.0
    return difflib.SequenceMatcher(None, old_text, new_text).ratio()


@dataclass
class DiffResult:
    """Result of comparing two revisions."""
    old_label: str
    new_label: str
    lines: list[DiffLine]
    similarity: float  # 0.0 to 1.0

    @property
    def has_changes(self) -> bool:
        return any(line.has_addition or line.has_removal for line in self.lines)

    @property
    def summary(self) -> dict:
        """Get a summary of changed lines."""
        added = sum(1 for line in self.lines if line.has_addition and not line.has_removal)
        removed = sum(1 for line in self.lines if line.has_removal and not line.has_addition)
        modified = sum(1 for line in self.lines if line.has_addition and line.has_removal)
        return {
            'added': added,
            'removed': removed,
            'modified': modified,
            'unchanged': len(self.lines) - added - removed - modified,
            'total_changes': added + removed + modified,
            'similarity': self.similarity,
        }


def diff_revisions(
    previous: str,
    current: str,
    old_label: str = "old",
    new_label: str = "new",
) -> DiffResult:
    """Compare two revision texts and return lines plus summary data."""
    lines = build_diff_lines(previous, current)
    return DiffResult(
        old_label=old_label,
        new_label=new_label,
        lines=lines,
        similarity=compute_similarity(
            normalize_line_endings(previous), normalize_line_endings(current)
        ),
    )


def diff_result_to_dict(result: DiffResult) -> dict:
    """Convert a DiffResult into JSON-serializable data."""
    return {
        'old_label': result.old_label,
        'new_label': result.new_label,
        'summary': result.summary,
        'lines': [
            {
                'id': line.id,
                'old_line_number': line.old_line_number,
                'new_line_number': line.new_line_number,
                'has_addition': line.has_addition,
                'has_removal': line.has_removal,
                'tokens': [
                    {'id': t.id, 'type': t.change_type.value, 'value': t.value}
                    for t in line.tokens
                ],
            }
            for line in result.lines
        ],
    }
