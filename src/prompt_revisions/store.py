"""
SQLite-backed workspace store.

Holds projects, prompts, their append-only revisions and the comments
attached to individual revisions.
"""

import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .exceptions import DuplicateVersionError, NotFoundError
from .models import (
    Comment,
    CommentInput,
    Project,
    ProjectInput,
    Prompt,
    PromptInput,
    PromptType,
    Revision,
    RevisionInput,
)

logger = logging.getLogger("prompt_revisions.store")

SCHEMA = """
CREATE TABLE IF NOT EXISTS projects (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS prompts (
    id TEXT PRIMARY KEY,
    project_id TEXT NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    title TEXT NOT NULL,
    prompt_type TEXT NOT NULL DEFAULT 'USER',
    summary TEXT,
    model TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS prompts_project_id_idx ON prompts(project_id);

CREATE TABLE IF NOT EXISTS prompt_revisions (
    id TEXT PRIMARY KEY,
    prompt_id TEXT NOT NULL REFERENCES prompts(id) ON DELETE CASCADE,
    version INTEGER NOT NULL,
    content TEXT NOT NULL,
    change_log TEXT,
    created_at TEXT NOT NULL
);

CREATE UNIQUE INDEX IF NOT EXISTS prompt_revisions_prompt_version_idx
ON prompt_revisions(prompt_id, version);

CREATE INDEX IF NOT EXISTS prompt_revisions_prompt_created_at_idx
ON prompt_revisions(prompt_id, created_at);

CREATE TABLE IF NOT EXISTS prompt_comments (
    id TEXT PRIMARY KEY,
    revision_id TEXT NOT NULL REFERENCES prompt_revisions(id) ON DELETE CASCADE,
    line_number INTEGER,
    body TEXT NOT NULL,
    created_at TEXT NOT NULL,
    resolved INTEGER NOT NULL DEFAULT 0,
    resolved_at TEXT,
    resolved_by TEXT
);

CREATE INDEX IF NOT EXISTS prompt_comments_revision_idx ON prompt_comments(revision_id);
"""


def now() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_id() -> str:
    return str(uuid.uuid4())


def _project_from_row(row: sqlite3.Row) -> Project:
    keys = row.keys()
    return Project(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        prompt_count=row["prompt_count"] if "prompt_count" in keys else 0,
        revision_count=row["revision_count"] if "revision_count" in keys else 0,
    )


def _prompt_from_row(row: sqlite3.Row) -> Prompt:
    return Prompt(
        id=row["id"],
        project_id=row["project_id"],
        title=row["title"],
        prompt_type=PromptType(row["prompt_type"]),
        summary=row["summary"],
        model=row["model"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _revision_from_row(row: sqlite3.Row) -> Revision:
    return Revision(
        id=row["id"],
        prompt_id=row["prompt_id"],
        version=row["version"],
        content=row["content"],
        change_log=row["change_log"],
        created_at=row["created_at"],
        comment_count=row["comment_count"] if "comment_count" in row.keys() else 0,
    )


def _comment_from_row(row: sqlite3.Row) -> Comment:
    return Comment(
        id=row["id"],
        revision_id=row["revision_id"],
        line_number=row["line_number"],
        body=row["body"],
        created_at=row["created_at"],
        resolved=bool(row["resolved"]),
        resolved_at=row["resolved_at"],
        resolved_by=row["resolved_by"],
    )


class RevisionStore:
    """
    Workspace persistence on a single SQLite connection.

    Revisions are append-only: they are never updated, and only disappear
    when their prompt (or its project) is deleted.
    """

    def __init__(self, path: str | Path = ":memory:"):
        self.path = str(path)
        self.conn = sqlite3.connect(self.path)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON")
        self._init_schema()

    def _init_schema(self) -> None:
        with self.conn:
            self.conn.executescript(SCHEMA)

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "RevisionStore":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # Projects

    def create_project(self, data: ProjectInput) -> Project:
        timestamp = now()
        project_id = new_id()
        with self.conn:
            self.conn.execute(
                "INSERT INTO projects (id, name, description, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (project_id, data.name, data.description, timestamp, timestamp),
            )
        logger.info("Created project %s (%s)", project_id, data.name)
        return self.get_project(project_id)

    def get_project(self, project_id: str) -> Project:
        row = self.conn.execute(
            "SELECT * FROM projects WHERE id = ?", (project_id,)
        ).fetchone()
        if row is None:
            raise NotFoundError(f"Project {project_id} not found")
        return _project_from_row(row)

    def list_projects(self) -> list[Project]:
        """Projects with prompt and revision counts, most recently updated first."""
        rows = self.conn.execute(
            """
            SELECT projects.*,
                   COUNT(DISTINCT prompts.id) AS prompt_count,
                   COUNT(DISTINCT prompt_revisions.id) AS revision_count
            FROM projects
            LEFT JOIN prompts ON prompts.project_id = projects.id
            LEFT JOIN prompt_revisions ON prompt_revisions.prompt_id = prompts.id
            GROUP BY projects.id
            ORDER BY projects.updated_at DESC, projects.rowid DESC
            """
        ).fetchall()
        return [_project_from_row(row) for row in rows]

    def delete_project(self, project_id: str) -> None:
        self.get_project(project_id)
        with self.conn:
            self.conn.execute("DELETE FROM projects WHERE id = ?", (project_id,))
        logger.info("Deleted project %s", project_id)

    def _touch_project(self, project_id: str, timestamp: str) -> None:
        self.conn.execute(
            "UPDATE projects SET updated_at = ? WHERE id = ?", (timestamp, project_id)
        )

    # Prompts

    def create_prompt(self, data: PromptInput) -> tuple[Prompt, Revision]:
        """Create a prompt together with its first revision."""
        self.get_project(data.project_id)
        timestamp = now()
        prompt_id = new_id()
        revision_id = new_id()
        with self.conn:
            self.conn.execute(
                "INSERT INTO prompts (id, project_id, title, prompt_type, summary, model, "
                "created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    prompt_id, data.project_id, data.title, data.prompt_type.value,
                    data.summary, data.model, timestamp, timestamp,
                ),
            )
            self.conn.execute(
                "INSERT INTO prompt_revisions (id, prompt_id, version, content, change_log, "
                "created_at) VALUES (?, ?, 1, ?, ?, ?)",
                (revision_id, prompt_id, data.content, data.change_log, timestamp),
            )
            self._touch_project(data.project_id, timestamp)
        logger.info("Created prompt %s in project %s", prompt_id, data.project_id)
        return self.get_prompt(prompt_id), self.get_revision(revision_id)

    def get_prompt(self, prompt_id: str) -> Prompt:
        """Fetch a prompt with its revisions, newest version first."""
        row = self.conn.execute(
            "SELECT * FROM prompts WHERE id = ?", (prompt_id,)
        ).fetchone()
        if row is None:
            raise NotFoundError(f"Prompt {prompt_id} not found")
        prompt = _prompt_from_row(row)
        prompt.revisions = self.list_revisions(prompt_id)
        return prompt

    def list_prompts(self, project_id: str) -> list[Prompt]:
        rows = self.conn.execute(
            "SELECT * FROM prompts WHERE project_id = ? "
            "ORDER BY updated_at DESC, rowid DESC",
            (project_id,),
        ).fetchall()
        prompts = []
        for row in rows:
            prompt = _prompt_from_row(row)
            prompt.revisions = self.list_revisions(prompt.id)
            prompts.append(prompt)
        return prompts

    def delete_prompt(self, prompt_id: str) -> None:
        prompt = self.get_prompt(prompt_id)
        with self.conn:
            self.conn.execute("DELETE FROM prompts WHERE id = ?", (prompt_id,))
            self._touch_project(prompt.project_id, now())
        logger.info("Deleted prompt %s", prompt_id)

    # Revisions

    def append_revision(self, data: RevisionInput) -> Revision:
        """
        Append a revision with the next version number for its prompt.

        Raises:
            NotFoundError: if the prompt does not exist
            DuplicateVersionError: if another writer claimed the version first
        """
        prompt = self.get_prompt(data.prompt_id)
        timestamp = now()
        revision_id = new_id()
        version = None
        try:
            with self.conn:
                row = self.conn.execute(
                    "SELECT COALESCE(MAX(version), 0) + 1 FROM prompt_revisions "
                    "WHERE prompt_id = ?",
                    (data.prompt_id,),
                ).fetchone()
                version = row[0]
                self.conn.execute(
                    "INSERT INTO prompt_revisions (id, prompt_id, version, content, "
                    "change_log, created_at) VALUES (?, ?, ?, ?, ?, ?)",
                    (revision_id, data.prompt_id, version, data.content,
                     data.change_log, timestamp),
                )
                self.conn.execute(
                    "UPDATE prompts SET updated_at = ? WHERE id = ?",
                    (timestamp, data.prompt_id),
                )
                self._touch_project(prompt.project_id, timestamp)
        except sqlite3.IntegrityError as e:
            raise DuplicateVersionError(
                f"Version {version} already exists for prompt {data.prompt_id}"
            ) from e
        logger.info("Appended revision v%d to prompt %s", version, data.prompt_id)
        return self.get_revision(revision_id)

    def get_revision(self, revision_id: str) -> Revision:
        row = self.conn.execute(
            """
            SELECT prompt_revisions.*, COUNT(prompt_comments.id) AS comment_count
            FROM prompt_revisions
            LEFT JOIN prompt_comments ON prompt_comments.revision_id = prompt_revisions.id
            WHERE prompt_revisions.id = ?
            GROUP BY prompt_revisions.id
            """,
            (revision_id,),
        ).fetchone()
        if row is None:
            raise NotFoundError(f"Revision {revision_id} not found")
        return _revision_from_row(row)

    def list_revisions(self, prompt_id: str) -> list[Revision]:
        """Revisions of a prompt with comment counts, newest version first."""
        rows = self.conn.execute(
            """
            SELECT prompt_revisions.*, COUNT(prompt_comments.id) AS comment_count
            FROM prompt_revisions
            LEFT JOIN prompt_comments ON prompt_comments.revision_id = prompt_revisions.id
            WHERE prompt_revisions.prompt_id = ?
            GROUP BY prompt_revisions.id
            ORDER BY prompt_revisions.version DESC
            """,
            (prompt_id,),
        ).fetchall()
        return [_revision_from_row(row) for row in rows]

    # Comments

    def add_comment(self, data: CommentInput) -> Comment:
        self.get_revision(data.revision_id)
        comment_id = new_id()
        with self.conn:
            self.conn.execute(
                "INSERT INTO prompt_comments (id, revision_id, line_number, body, created_at, "
                "resolved) VALUES (?, ?, ?, ?, ?, 0)",
                (comment_id, data.revision_id, data.line_number, data.body, now()),
            )
        logger.debug("Added comment %s to revision %s", comment_id, data.revision_id)
        return self.get_comment(comment_id)

    def get_comment(self, comment_id: str) -> Comment:
        row = self.conn.execute(
            "SELECT * FROM prompt_comments WHERE id = ?", (comment_id,)
        ).fetchone()
        if row is None:
            raise NotFoundError(f"Comment {comment_id} not found")
        return _comment_from_row(row)

    def list_comments(self, revision_id: str) -> list[Comment]:
        """Comments on a revision, oldest first."""
        rows = self.conn.execute(
            "SELECT * FROM prompt_comments WHERE revision_id = ? "
            "ORDER BY created_at ASC, rowid ASC",
            (revision_id,),
        ).fetchall()
        return [_comment_from_row(row) for row in rows]

    def resolve_comment(self, comment_id: str, resolved_by: Optional[str] = None) -> Comment:
        self.get_comment(comment_id)
        with self.conn:
            self.conn.execute(
                "UPDATE prompt_comments SET resolved = 1, resolved_at = ?, resolved_by = ? "
                "WHERE id = ?",
                (now(), resolved_by, comment_id),
            )
        logger.debug("Resolved comment %s", comment_id)
        return self.get_comment(comment_id)
