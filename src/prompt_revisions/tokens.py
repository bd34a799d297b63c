"""
Word-level change detection between two prompt texts.

Splits text into word, whitespace, newline and punctuation tokens and
matches the token sequences to produce ordered change spans.
"""

import difflib
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable


class ChangeType(Enum):
    """Tag carried by a change span and every token derived from it."""
    ADDED = "added"
    REMOVED = "removed"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class ChangeSpan:
    """A maximal run of text sharing one change tag."""
    change_type: ChangeType
    value: str

    @property
    def added(self) -> bool:
        return self.change_type == ChangeType.ADDED

    @property
    def removed(self) -> bool:
        return self.change_type == ChangeType.REMOVED


# Words, runs of horizontal whitespace, single newlines, single punctuation.
# Every character of the input lands in exactly one token.
TOKEN_PATTERN = re.compile(r"\w+|[^\S\n]+|\n|[^\w\s]")

# Lines including their newline; a final line without one is kept as-is
LINE_PATTERN = re.compile(r"[^\n]*\n|[^\n]+")

OPCODE_TYPES = {
    'equal': (ChangeType.UNCHANGED,),
    'delete': (ChangeType.REMOVED,),
    'insert': (ChangeType.ADDED,),
    # Removals are reported before additions for replaced runs
    'replace': (ChangeType.REMOVED, ChangeType.ADDED),
}

# Signature of a word-diff primitive: (previous, current) -> spans
TokenDiffer = Callable[[str, str], list[ChangeSpan]]


def tokenize(text: str) -> list[str]:
    """Split text into diffable tokens; ''.join(tokenize(t)) == t."""
    return TOKEN_PATTERN.findall(text)


def merge_spans(spans: list[ChangeSpan]) -> list[ChangeSpan]:
    """Join neighbouring spans with the same tag and drop empty ones."""
    merged: list[ChangeSpan] = []
    for span in spans:
        if not span.value:
            continue
        if merged and merged[-1].change_type == span.change_type:
            merged[-1] = ChangeSpan(span.change_type, merged[-1].value + span.value)
        else:
            merged.append(span)
    return merged


def split_lines(text: str) -> list[str]:
    """Split text into lines that keep their trailing newline."""
    return LINE_PATTERN.findall(text)


def _match_spans(old_items: list[str], new_items: list[str], refine=None) -> list[ChangeSpan]:
    # autojunk would treat frequent items such as single spaces as noise
    matcher = difflib.SequenceMatcher(None, old_items, new_items, autojunk=False)
    spans = []

    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        old_value = ''.join(old_items[i1:i2])
        new_value = ''.join(new_items[j1:j2])
        if tag == 'replace' and refine is not None:
            spans.extend(refine(old_value, new_value))
            continue
        for change_type in OPCODE_TYPES[tag]:
            spans.append(ChangeSpan(
                change_type, new_value if change_type == ChangeType.ADDED else old_value,
            ))

    return spans


def diff_tokens(previous: str, current: str) -> list[ChangeSpan]:
    """Match the token sequences of two texts directly, without a line pass."""
    return merge_spans(_match_spans(tokenize(previous), tokenize(current)))


def diff_words(previous: str, current: str) -> list[ChangeSpan]:
    """
    Compute word-level change spans between two texts.

    Lines are matched first; only runs of replaced lines are compared
    token by token, so unchanged stretches of long prompts cost one
    line comparison each.

    Concatenating the values of all non-added spans gives ``previous``;
    concatenating all non-removed spans gives ``current``. Newlines stay
    inside span values.

    Args:
        previous: Text of the older revision
        current: Text of the newer revision

    Returns:
        Ordered list of ChangeSpan
    """
    spans = _match_spans(split_lines(previous), split_lines(current), refine=diff_tokens)
    return merge_spans(spans)
