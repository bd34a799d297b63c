import pytest

from prompt_revisions.models import ProjectInput, PromptInput, RevisionInput
from prompt_revisions.store import RevisionStore


@pytest.fixture
def store():
    with RevisionStore(":memory:") as s:
        yield s


@pytest.fixture
def project(store):
    return store.create_project(ProjectInput(name="Support bot"))


@pytest.fixture
def prompt_with_history(store, project):
    """A prompt with three revisions: v1, v2, v3."""
    prompt, _ = store.create_prompt(PromptInput(
        project_id=project.id,
        title="System prompt",
        content="You are a helpful assistant.",
    ))
    store.append_revision(RevisionInput(
        prompt_id=prompt.id,
        content="You are a helpful assistant.\nAnswer briefly.",
        change_log="Ask for brevity",
    ))
    store.append_revision(RevisionInput(
        prompt_id=prompt.id,
        content="You are a helpful assistant.\nAnswer briefly and politely.",
    ))
    return store.get_prompt(prompt.id)
