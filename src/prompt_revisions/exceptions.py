"""Exceptions raised by the revision workspace."""


class PromptRevisionsError(Exception):
    """Base exception for all workspace operations."""


class InputValidationError(PromptRevisionsError):
    """Raised when user input fails validation."""

    def __init__(self, message: str, issues: list[str] | None = None):
        super().__init__(message)
        self.message = message
        self.issues = issues or []


class NotFoundError(PromptRevisionsError):
    """Raised when a project, prompt, revision or comment does not exist."""


class DuplicateVersionError(PromptRevisionsError):
    """Raised when a revision version already exists for its prompt."""
