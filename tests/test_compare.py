"""Tests for choosing the revisions to diff."""

import pytest

from prompt_revisions.compare import (
    compare_options,
    compare_prompt_revisions,
    find_previous_revision,
    resolve_compare_revision,
    revision_label,
    select_revision,
)
from prompt_revisions.exceptions import NotFoundError
from prompt_revisions.models import Prompt, PromptType, Revision


def make_revision(version, content=None):
    return Revision(
        id=f"rev-{version}",
        prompt_id="prompt-1",
        version=version,
        content=content if content is not None else f"Version {version}",
        change_log=None,
        created_at=f"2024-01-0{version}T00:00:00+00:00",
    )


@pytest.fixture
def revisions():
    return [make_revision(3), make_revision(2), make_revision(1)]


def make_prompt(revisions):
    return Prompt(
        id="prompt-1",
        project_id="project-1",
        title="Greeter",
        prompt_type=PromptType.SYSTEM,
        summary=None,
        model=None,
        created_at="2024-01-01T00:00:00+00:00",
        updated_at="2024-01-03T00:00:00+00:00",
        revisions=revisions,
    )


def test_select_revision_by_id(revisions):
    assert select_revision(revisions, "rev-2").version == 2


def test_select_revision_falls_back_to_latest(revisions):
    assert select_revision(revisions, None).version == 3
    assert select_revision(revisions, "unknown").version == 3


def test_select_revision_without_revisions():
    with pytest.raises(NotFoundError):
        select_revision([])


def test_previous_revision(revisions):
    assert find_previous_revision(revisions, revisions[0]).version == 2
    assert find_previous_revision(revisions, revisions[1]).version == 1
    assert find_previous_revision(revisions, revisions[2]) is None


def test_compare_options_exclude_selected(revisions):
    options = compare_options(revisions, revisions[1])
    assert [r.version for r in options] == [3, 1]


def test_explicit_compare_overrides_default(revisions):
    assert resolve_compare_revision(revisions, revisions[0], "rev-1").version == 1


def test_compare_can_target_newer_revision(revisions):
    assert resolve_compare_revision(revisions, revisions[2], "rev-3").version == 3


def test_selecting_self_or_unknown_uses_previous(revisions):
    assert resolve_compare_revision(revisions, revisions[0], "rev-3").version == 2
    assert resolve_compare_revision(revisions, revisions[0], "missing").version == 2


def test_revision_label():
    assert revision_label(make_revision(2)) == "v2"
    assert revision_label(None) == "empty"


def test_first_revision_diffs_against_empty_text():
    prompt = make_prompt([make_revision(1, "Hello\nworld")])
    comparison = compare_prompt_revisions(prompt)
    assert comparison.compare is None
    assert comparison.result.old_label == "empty"
    assert comparison.result.new_label == "v1"
    lines = comparison.result.lines
    assert len(lines) == 2
    assert all(l.has_addition and l.old_line_number is None for l in lines)


def test_compare_prompt_revisions_uses_resolved_pair():
    prompt = make_prompt([
        make_revision(3, "Be brief and kind."),
        make_revision(2, "Be brief."),
        make_revision(1, "Be."),
    ])
    comparison = compare_prompt_revisions(prompt, "rev-3", "rev-1")
    assert comparison.selected.version == 3
    assert comparison.compare.version == 1
    assert comparison.result.old_label == "v1"
    assert comparison.result.has_changes
