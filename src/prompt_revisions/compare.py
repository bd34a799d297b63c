"""
Selection of the revision pair shown in a diff.

Revisions are always handled newest first, as the store returns them.
"""

from dataclasses import dataclass
from typing import Optional

from .differ import DiffResult, diff_revisions
from .exceptions import NotFoundError
from .models import Prompt, Revision


def revision_label(revision: Optional[Revision]) -> str:
    return f"v{revision.version}" if revision else "empty"


def select_revision(revisions: list[Revision], revision_id: Optional[str] = None) -> Revision:
    """Return the requested revision, falling back to the newest one."""
    if not revisions:
        raise NotFoundError("prompt has no revisions")
    for revision in revisions:
        if revision.id == revision_id:
            return revision
    return revisions[0]


def find_previous_revision(revisions: list[Revision], current: Revision) -> Optional[Revision]:
    """Return the revision directly below ``current`` in version order."""
    for index, revision in enumerate(revisions):
        if revision.id == current.id:
            return revisions[index + 1] if index + 1 < len(revisions) else None
    return None


def compare_options(revisions: list[Revision], selected: Revision) -> list[Revision]:
    """Revisions the selected one may be compared against."""
    return [revision for revision in revisions if revision.id != selected.id]


def resolve_compare_revision(
    revisions: list[Revision],
    selected: Revision,
    compare_revision_id: Optional[str] = None,
) -> Optional[Revision]:
    """
    Pick the revision to diff the selected one against.

    An explicit choice wins when it names another known revision; otherwise
    the previous version is used. None means there is nothing earlier and
    the diff should start from empty text.
    """
    if compare_revision_id:
        for revision in compare_options(revisions, selected):
            if revision.id == compare_revision_id:
                return revision
    return find_previous_revision(revisions, selected)


@dataclass
class RevisionComparison:
    """A selected revision, what it is compared against and their diff."""
    selected: Revision
    compare: Optional[Revision]
    result: DiffResult


def compare_prompt_revisions(
    prompt: Prompt,
    revision_id: Optional[str] = None,
    compare_revision_id: Optional[str] = None,
) -> RevisionComparison:
    """Resolve both sides for a prompt and diff them."""
    selected = select_revision(prompt.revisions, revision_id)
    compare = resolve_compare_revision(prompt.revisions, selected, compare_revision_id)
    result = diff_revisions(
        compare.content if compare else "",
        selected.content,
        old_label=revision_label(compare),
        new_label=revision_label(selected),
    )
    return RevisionComparison(selected=selected, compare=compare, result=result)
