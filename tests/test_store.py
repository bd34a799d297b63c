"""Tests for the SQLite workspace store."""

import logging
import sqlite3

import pytest

from prompt_revisions.exceptions import NotFoundError
from prompt_revisions.models import (
    CommentInput,
    ProjectInput,
    PromptInput,
    PromptType,
    RevisionInput,
)
from prompt_revisions.store import RevisionStore


class TestProjects:

    def test_create_and_get(self, store):
        created = store.create_project(ProjectInput(name="Support", description="Help desk"))
        fetched = store.get_project(created.id)
        assert fetched.name == "Support"
        assert fetched.description == "Help desk"
        assert fetched.created_at == fetched.updated_at

    def test_missing_project(self, store):
        with pytest.raises(NotFoundError):
            store.get_project("missing")

    def test_list_counts_prompts_and_revisions(self, store, project, prompt_with_history):
        store.create_project(ProjectInput(name="Empty"))
        counts = {p.name: (p.prompt_count, p.revision_count) for p in store.list_projects()}
        assert counts == {"Support bot": (1, 3), "Empty": (0, 0)}

    def test_delete_cascades(self, store, project, prompt_with_history):
        revision_id = prompt_with_history.revisions[0].id
        store.add_comment(CommentInput(revision_id=revision_id, body="Nice"))

        store.delete_project(project.id)

        with pytest.raises(NotFoundError):
            store.get_prompt(prompt_with_history.id)
        with pytest.raises(NotFoundError):
            store.get_revision(revision_id)
        assert store.list_comments(revision_id) == []


class TestPrompts:

    def test_create_prompt_adds_first_revision(self, store, project):
        prompt, revision = store.create_prompt(PromptInput(
            project_id=project.id,
            title="Router",
            prompt_type=PromptType.SYSTEM,
            model="gpt-4o",
            content="Route the request.",
            change_log="Initial draft",
        ))
        assert prompt.prompt_type == PromptType.SYSTEM
        assert prompt.model == "gpt-4o"
        assert revision.version == 1
        assert revision.prompt_id == prompt.id
        assert revision.change_log == "Initial draft"
        assert [r.id for r in prompt.revisions] == [revision.id]

    def test_create_prompt_touches_project(self, store, project):
        store.create_prompt(PromptInput(project_id=project.id, title="T", content="c"))
        assert store.get_project(project.id).updated_at >= project.updated_at

    def test_create_prompt_in_missing_project(self, store):
        with pytest.raises(NotFoundError):
            store.create_prompt(PromptInput(project_id="missing", title="T", content="c"))

    def test_list_prompts(self, store, project, prompt_with_history):
        prompts = store.list_prompts(project.id)
        assert [p.id for p in prompts] == [prompt_with_history.id]
        assert [r.version for r in prompts[0].revisions] == [3, 2, 1]
        assert store.list_prompts("other") == []

    def test_delete_prompt_removes_revisions_and_comments(self, store, prompt_with_history):
        revision_id = prompt_with_history.revisions[-1].id
        store.add_comment(CommentInput(revision_id=revision_id, body="First draft"))

        store.delete_prompt(prompt_with_history.id)

        with pytest.raises(NotFoundError):
            store.get_prompt(prompt_with_history.id)
        assert store.list_revisions(prompt_with_history.id) == []
        assert store.list_comments(revision_id) == []

    def test_delete_missing_prompt(self, store):
        with pytest.raises(NotFoundError):
            store.delete_prompt("missing")


class TestRevisions:

    def test_versions_are_sequential(self, prompt_with_history):
        assert [r.version for r in prompt_with_history.revisions] == [3, 2, 1]
        assert prompt_with_history.revisions[1].change_log == "Ask for brevity"
        assert prompt_with_history.revisions[0].change_log is None

    def test_versions_are_per_prompt(self, store, project, prompt_with_history):
        other, first = store.create_prompt(PromptInput(
            project_id=project.id, title="Other", content="Hi",
        ))
        assert first.version == 1
        second = store.append_revision(RevisionInput(prompt_id=other.id, content="Hi there"))
        assert second.version == 2

    def test_append_to_missing_prompt(self, store):
        with pytest.raises(NotFoundError):
            store.append_revision(RevisionInput(prompt_id="missing", content="x"))

    def test_append_touches_prompt(self, store, prompt_with_history):
        before = prompt_with_history.updated_at
        store.append_revision(RevisionInput(prompt_id=prompt_with_history.id, content="v4"))
        assert store.get_prompt(prompt_with_history.id).updated_at >= before

    def test_version_uniqueness_is_enforced(self, store, prompt_with_history):
        with pytest.raises(sqlite3.IntegrityError):
            with store.conn:
                store.conn.execute(
                    "INSERT INTO prompt_revisions (id, prompt_id, version, content, created_at) "
                    "VALUES ('dup', ?, 1, 'copy', '2024-01-01')",
                    (prompt_with_history.id,),
                )

    def test_content_is_stored_verbatim(self, store, prompt_with_history):
        content = "Line one\r\nLine two\r\n"
        revision = store.append_revision(RevisionInput(
            prompt_id=prompt_with_history.id, content=content,
        ))
        assert store.get_revision(revision.id).content == content

    def test_append_logs(self, store, prompt_with_history, caplog):
        with caplog.at_level(logging.INFO, logger="prompt_revisions.store"):
            store.append_revision(RevisionInput(prompt_id=prompt_with_history.id, content="v4"))
        assert "Appended revision v4" in caplog.text


class TestComments:

    def test_add_and_list_in_order(self, store, prompt_with_history):
        revision_id = prompt_with_history.revisions[0].id
        first = store.add_comment(CommentInput(revision_id=revision_id, line_number=2, body="Tone?"))
        second = store.add_comment(CommentInput(revision_id=revision_id, body="Ship it"))

        comments = store.list_comments(revision_id)
        assert [c.id for c in comments] == [first.id, second.id]
        assert comments[0].line_number == 2
        assert comments[1].line_number is None
        assert not comments[0].resolved

    def test_comment_counts_per_revision(self, store, prompt_with_history):
        latest, middle, _ = prompt_with_history.revisions
        store.add_comment(CommentInput(revision_id=middle.id, body="a"))
        store.add_comment(CommentInput(revision_id=middle.id, body="b"))

        counts = [r.comment_count for r in store.list_revisions(prompt_with_history.id)]
        assert counts == [0, 2, 0]
        assert store.get_revision(middle.id).comment_count == 2

    def test_comment_on_missing_revision(self, store):
        with pytest.raises(NotFoundError):
            store.add_comment(CommentInput(revision_id="missing", body="x"))

    def test_resolve_comment(self, store, prompt_with_history):
        revision_id = prompt_with_history.revisions[0].id
        created = store.add_comment(CommentInput(revision_id=revision_id, body="Fix typo"))

        resolved = store.resolve_comment(created.id, resolved_by="sam")

        assert resolved.resolved is True
        assert resolved.resolved_by == "sam"
        assert resolved.resolved_at is not None

    def test_resolve_missing_comment(self, store):
        with pytest.raises(NotFoundError):
            store.resolve_comment("missing")


def test_store_persists_to_file(tmp_path):
    path = tmp_path / "workspace.db"
    with RevisionStore(path) as store:
        project = store.create_project(ProjectInput(name="Persisted"))

    with RevisionStore(path) as store:
        assert store.get_project(project.id).name == "Persisted"
