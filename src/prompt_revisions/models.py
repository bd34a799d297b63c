"""
Workspace records and validated inputs.

Records are plain dataclasses read back from the store. Inputs are
pydantic models that check and clean user-supplied values before they
reach the store.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .exceptions import InputValidationError


class PromptType(str, Enum):
    """Role a prompt plays in a conversation."""

    SYSTEM = "SYSTEM"
    USER = "USER"
    TOOL = "TOOL"


@dataclass
class Project:
    id: str
    name: str
    description: Optional[str]
    created_at: str
    updated_at: str
    prompt_count: int = 0
    revision_count: int = 0


@dataclass
class Comment:
    id: str
    revision_id: str
    line_number: Optional[int]
    body: str
    created_at: str
    resolved: bool = False
    resolved_at: Optional[str] = None
    resolved_by: Optional[str] = None


@dataclass
class Revision:
    """An immutable snapshot of a prompt's content."""
    id: str
    prompt_id: str
    version: int
    content: str
    change_log: Optional[str]
    created_at: str
    comment_count: int = 0


@dataclass
class Prompt:
    id: str
    project_id: str
    title: str
    prompt_type: PromptType
    summary: Optional[str]
    model: Optional[str]
    created_at: str
    updated_at: str
    revisions: list[Revision] = field(default_factory=list)  # Newest first


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _require_text(value: str, message: str) -> str:
    if not value:
        raise ValueError(message)
    return value


class ProjectInput(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        _require_text(value, "Project name is required.")
        if len(value) > 80:
            raise ValueError("Keep project names under 80 characters.")
        return value

    @field_validator("description", mode="before")
    @classmethod
    def clean_description(cls, value: Any) -> Any:
        return _blank_to_none(value)


class PromptInput(BaseModel):
    model_config = ConfigDict(frozen=True)

    project_id: str
    title: str
    prompt_type: PromptType = PromptType.USER
    summary: Optional[str] = None
    model: Optional[str] = None
    content: str
    change_log: Optional[str] = None

    @field_validator("project_id")
    @classmethod
    def check_project_id(cls, value: str) -> str:
        return _require_text(value, "Project id is required.")

    @field_validator("title")
    @classmethod
    def check_title(cls, value: str) -> str:
        _require_text(value, "Prompt title is required.")
        if len(value) > 120:
            raise ValueError("Keep prompt titles under 120 characters.")
        return value

    @field_validator("content")
    @classmethod
    def check_content(cls, value: str) -> str:
        return _require_text(value, "Prompt content cannot be empty.")

    @field_validator("model", mode="before")
    @classmethod
    def clean_model(cls, value: Any) -> Any:
        value = _blank_to_none(value)
        return value.strip() if isinstance(value, str) else value

    @field_validator("summary", "change_log", mode="before")
    @classmethod
    def clean_optional(cls, value: Any) -> Any:
        return _blank_to_none(value)


class RevisionInput(BaseModel):
    model_config = ConfigDict(frozen=True)

    prompt_id: str
    content: str
    change_log: Optional[str] = None

    @field_validator("prompt_id")
    @classmethod
    def check_prompt_id(cls, value: str) -> str:
        return _require_text(value, "Prompt id is required.")

    @field_validator("content")
    @classmethod
    def check_content(cls, value: str) -> str:
        return _require_text(value, "Please provide the updated prompt text.")

    @field_validator("change_log", mode="before")
    @classmethod
    def clean_change_log(cls, value: Any) -> Any:
        return _blank_to_none(value)


class CommentInput(BaseModel):
    model_config = ConfigDict(frozen=True)

    revision_id: str
    line_number: Optional[int] = None
    body: str

    @field_validator("revision_id")
    @classmethod
    def check_revision_id(cls, value: str) -> str:
        return _require_text(value, "Revision id missing.")

    @field_validator("line_number", mode="before")
    @classmethod
    def parse_line_number(cls, value: Any) -> Optional[int]:
        value = _blank_to_none(value)
        if value is None:
            return None
        if isinstance(value, bool):
            raise ValueError("Line number must be a positive integer.")
        try:
            number = int(value.strip()) if isinstance(value, str) else int(value)
        except (TypeError, ValueError):
            raise ValueError("Line number must be a positive integer.") from None
        if number < 0 or (isinstance(value, float) and not value.is_integer()):
            raise ValueError("Line number must be a positive integer.")
        return number

    @field_validator("body")
    @classmethod
    def check_body(cls, value: str) -> str:
        return _require_text(value, "Comment text cannot be empty.")


InputModel = TypeVar("InputModel", bound=BaseModel)

ERROR_MESSAGES = {
    ProjectInput: "Please fix the highlighted fields.",
    PromptInput: "We couldn't save the prompt yet.",
    RevisionInput: "Please review the revision details.",
    CommentInput: "Could not add the comment.",
}


def _issue_message(error: dict) -> str:
    if error["type"] == "value_error":
        return str(error["ctx"]["error"])
    location = ".".join(str(part) for part in error["loc"])
    return f"{location}: {error['msg']}" if location else error["msg"]


def validate_input(model: Type[InputModel], data: dict) -> InputModel:
    """
    Validate raw input data against an input model.

    Raises:
        InputValidationError: with one issue message per failing field
    """
    try:
        return model.model_validate(data)
    except ValidationError as e:
        issues = [_issue_message(error) for error in e.errors()]
        raise InputValidationError(
            ERROR_MESSAGES.get(model, "Invalid input."), issues
        ) from e
