"""
Command-line interface for prompt-revisions.
"""

import sys
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import NoReturn, Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from rich.panel import Panel
from rich.text import Text

from .compare import compare_options, compare_prompt_revisions, revision_label, select_revision
from .differ import DiffLine, DiffResult, diff_result_to_dict, diff_revisions, raw_lines
from .exceptions import InputValidationError, PromptRevisionsError
from .models import (
    CommentInput, ProjectInput, PromptInput, PromptType, RevisionInput, validate_input,
)
from .store import RevisionStore
from .tokens import ChangeType

console = Console()
err_console = Console(stderr=True)

DEFAULT_DB = "prompt-revisions.db"

TOKEN_STYLES = {
    ChangeType.ADDED: "bold green",
    ChangeType.REMOVED: "red strike",
    ChangeType.UNCHANGED: "",
}


def format_timestamp(timestamp: str) -> str:
    return datetime.fromisoformat(timestamp).strftime("%Y-%m-%d %H:%M")


def line_style(line: DiffLine) -> str:
    if line.has_addition and not line.has_removal:
        return "green"
    if line.has_removal and not line.has_addition:
        return "red"
    return ""


def format_tokens(line: DiffLine) -> Text:
    """Render a line's tokens; empty values still occupy a cell."""
    text = Text()
    if not line.tokens:
        text.append(" ")
    for token in line.tokens:
        text.append(token.value or " ", style=TOKEN_STYLES[token.change_type])
    return text


def print_diff(result: DiffResult):
    """Print diff lines with old/new gutters."""
    console.print(Panel(
        f"[bold]Comparing:[/bold]\n"
        f"  [red]- {escape(result.old_label)}[/red]\n"
        f"  [green]+ {escape(result.new_label)}[/green]\n\n"
        f"Similarity: [cyan]{result.similarity:.1%}[/cyan]",
        title="Revision Diff",
        border_style="blue",
    ))

    table = Table(show_header=True, header_style="bold", show_lines=False)
    table.add_column("Old", justify="right", style="dim", width=5)
    table.add_column("New", justify="right", style="dim", width=5)
    table.add_column("Diff", overflow="fold")

    for line in result.lines:
        table.add_row(
            str(line.old_line_number or ""),
            str(line.new_line_number or ""),
            format_tokens(line),
            style=line_style(line),
        )
    console.print(table)

    summary = result.summary
    console.print(f"\n[bold]Summary:[/bold] "
                  f"[green]+{summary['added']}[/green] "
                  f"[red]-{summary['removed']}[/red] "
                  f"[yellow]~{summary['modified']}[/yellow]")


def emit_diff(result: DiffResult, output_format: str):
    if output_format == "json":
        console.print_json(json.dumps(diff_result_to_dict(result), indent=2))
    elif not result.lines:
        console.print("[dim]No differences detected.[/dim]")
    else:
        print_diff(result)


def fail(error: PromptRevisionsError) -> NoReturn:
    """Report a workspace error and exit with status 1."""
    err_console.print(f"[red]Error:[/red] {error}")
    if isinstance(error, InputValidationError):
        for issue in error.issues:
            err_console.print(f"  [red]-[/red] {issue}")
    sys.exit(1)


def read_content(file: Optional[str], content: Optional[str]) -> str:
    if file and content is not None:
        raise click.UsageError("Use either --file or --content, not both.")
    if file:
        return Path(file).read_text()
    if content is not None:
        return content
    raise click.UsageError("Provide the prompt text with --file or --content.")


def get_store(ctx: click.Context) -> RevisionStore:
    root = ctx.find_root()
    if "store" not in root.obj:
        root.obj["store"] = root.with_resource(RevisionStore(root.obj["db"]))
    return root.obj["store"]


@click.group()
@click.option("--db", default=DEFAULT_DB, envvar="PROMPT_REVISIONS_DB",
              show_default=True, help="Workspace database file")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, db: str, verbose: bool):
    """
    Version prompts as immutable revisions and diff them word by word.

    Examples:

        prompt-revisions diff v1/system.txt v2/system.txt

        prompt-revisions project create "Support bot"

        prompt-revisions revision add PROMPT_ID --file system.txt

        prompt-revisions compare PROMPT_ID --against REVISION_ID
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )
    ctx.ensure_object(dict)
    ctx.obj["db"] = db


@main.command()
@click.argument("old_file", type=click.Path(exists=True))
@click.argument("new_file", type=click.Path(exists=True))
@click.option("--format", "-f", "output_format",
              type=click.Choice(["table", "json"]), default="table", help="Output format")
def diff(old_file: str, new_file: str, output_format: str):
    """
    Diff two prompt files word by word.
    """
    old_text = Path(old_file).read_text()
    new_text = Path(new_file).read_text()
    emit_diff(diff_revisions(old_text, new_text, old_file, new_file), output_format)


@main.group()
def project():
    """Manage projects."""


@project.command("create")
@click.argument("name")
@click.option("--description", "-d", default=None, help="Project description")
@click.pass_context
def project_create(ctx: click.Context, name: str, description: Optional[str]):
    """Create a project."""
    try:
        data = validate_input(ProjectInput, {"name": name, "description": description})
        created = get_store(ctx).create_project(data)
    except PromptRevisionsError as e:
        fail(e)
    console.print(f"[green]Project created.[/green] {created.id}")


@project.command("list")
@click.pass_context
def project_list(ctx: click.Context):
    """List projects, most recently updated first."""
    projects = get_store(ctx).list_projects()
    if not projects:
        console.print("[dim]No projects yet[/dim]")
        return

    table = Table(title="Projects")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Name", style="cyan")
    table.add_column("Prompts", justify="right")
    table.add_column("Revisions", justify="right")
    table.add_column("Updated", style="dim")
    for item in projects:
        table.add_row(item.id, Text(item.name), str(item.prompt_count),
                      str(item.revision_count), format_timestamp(item.updated_at))
    console.print(table)


@project.command("delete")
@click.argument("project_id")
@click.pass_context
def project_delete(ctx: click.Context, project_id: str):
    """Delete a project with all its prompts."""
    try:
        get_store(ctx).delete_project(project_id)
    except PromptRevisionsError as e:
        fail(e)
    console.print("[green]Project deleted.[/green]")


@main.group()
def prompt():
    """Manage prompts."""


@prompt.command("create")
@click.argument("project_id")
@click.argument("title")
@click.option("--file", "file", type=click.Path(exists=True), help="Read content from a file")
@click.option("--content", default=None, help="Prompt content")
@click.option("--type", "prompt_type", type=click.Choice([t.value for t in PromptType]),
              default=PromptType.USER.value, show_default=True)
@click.option("--summary", default=None)
@click.option("--model", default=None, help="Target model name")
@click.option("--change-log", default=None, help="Notes for the first revision")
@click.pass_context
def prompt_create(ctx: click.Context, project_id: str, title: str, file: Optional[str],
                  content: Optional[str], prompt_type: str, summary: Optional[str],
                  model: Optional[str], change_log: Optional[str]):
    """Create a prompt and its first revision."""
    text = read_content(file, content)
    try:
        data = validate_input(PromptInput, {
            "project_id": project_id,
            "title": title,
            "prompt_type": prompt_type,
            "summary": summary,
            "model": model,
            "content": text,
            "change_log": change_log,
        })
        created, revision = get_store(ctx).create_prompt(data)
    except PromptRevisionsError as e:
        fail(e)
    console.print(f"[green]Prompt captured.[/green] {created.id} (revision {revision.id})")


@prompt.command("list")
@click.argument("project_id")
@click.pass_context
def prompt_list(ctx: click.Context, project_id: str):
    """List the prompts of a project."""
    prompts = get_store(ctx).list_prompts(project_id)
    if not prompts:
        console.print("[dim]No prompts in this project[/dim]")
        return

    table = Table(title="Prompts")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Title", style="cyan")
    table.add_column("Type", style="magenta")
    table.add_column("Latest", justify="right")
    for item in prompts:
        latest = revision_label(item.revisions[0]) if item.revisions else "-"
        table.add_row(item.id, Text(item.title), item.prompt_type.value.lower(), latest)
    console.print(table)


@prompt.command("show")
@click.argument("prompt_id")
@click.option("--revision", "revision_id", default=None, help="Revision to display")
@click.pass_context
def prompt_show(ctx: click.Context, prompt_id: str, revision_id: Optional[str]):
    """
    Show a prompt revision with line numbers and its comments.
    """
    store = get_store(ctx)
    try:
        item = store.get_prompt(prompt_id)
        selected = select_revision(item.revisions, revision_id)
    except PromptRevisionsError as e:
        fail(e)

    console.print(Panel(
        f"[bold]{escape(item.title)}[/bold] [magenta]{item.prompt_type.value.lower()}[/magenta]\n"
        + (f"{escape(item.summary)}\n" if item.summary else "")
        + f"\nModel: {escape(item.model or '-')}\n"
        f"Total Revisions: {len(item.revisions)}\n"
        f"Viewing version {selected.version} (created {format_timestamp(selected.created_at)})",
        title="Prompt",
        border_style="blue",
    ))

    table = Table(show_header=False, box=None)
    table.add_column("Line", justify="right", style="dim")
    table.add_column("Content", overflow="fold")
    for number, line in enumerate(raw_lines(selected.content), start=1):
        table.add_row(str(number), Text(line or " "))
    console.print(table)

    comments = store.list_comments(selected.id)
    console.print("\n[bold]Discussion[/bold]")
    if not comments:
        console.print("[dim]No comments yet.[/dim]")
    for comment in comments:
        status = " [green]Resolved[/green]" if comment.resolved else ""
        line = comment.line_number if comment.line_number is not None else "-"
        console.print(f"  [dim]Line {line} • {format_timestamp(comment.created_at)}[/dim]{status}")
        console.print(Text(f"  {comment.body}"))


@prompt.command("delete")
@click.argument("prompt_id")
@click.pass_context
def prompt_delete(ctx: click.Context, prompt_id: str):
    """Delete a prompt with its revisions and comments."""
    try:
        get_store(ctx).delete_prompt(prompt_id)
    except PromptRevisionsError as e:
        fail(e)
    console.print("[green]Prompt deleted.[/green]")


@main.group()
def revision():
    """Manage revisions."""


@revision.command("add")
@click.argument("prompt_id")
@click.option("--file", "file", type=click.Path(exists=True), help="Read content from a file")
@click.option("--content", default=None, help="Revision content")
@click.option("--change-log", default=None, help="What changed in this revision")
@click.pass_context
def revision_add(ctx: click.Context, prompt_id: str, file: Optional[str],
                 content: Optional[str], change_log: Optional[str]):
    """Append a new revision to a prompt."""
    text = read_content(file, content)
    try:
        data = validate_input(RevisionInput, {
            "prompt_id": prompt_id, "content": text, "change_log": change_log,
        })
        created = get_store(ctx).append_revision(data)
    except PromptRevisionsError as e:
        fail(e)
    console.print(f"[green]New revision created.[/green] v{created.version} {created.id}")


@revision.command("list")
@click.argument("prompt_id")
@click.pass_context
def revision_list(ctx: click.Context, prompt_id: str):
    """Show the revision history of a prompt, newest first."""
    revisions = get_store(ctx).list_revisions(prompt_id)
    if not revisions:
        console.print("[dim]No revisions found[/dim]")
        return

    table = Table(title="Revision History")
    table.add_column("Version", style="cyan", justify="right")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Created", style="dim")
    table.add_column("Change Log")
    table.add_column("Comments", justify="right")
    for item in revisions:
        table.add_row(f"v{item.version}", item.id, format_timestamp(item.created_at),
                      Text(item.change_log or "-"), str(item.comment_count))
    console.print(table)


@main.command()
@click.argument("prompt_id")
@click.option("--revision", "revision_id", default=None,
              help="Revision to inspect (default: latest)")
@click.option("--against", "compare_revision_id", default=None,
              help="Revision to compare to (default: previous version)")
@click.option("--format", "-f", "output_format",
              type=click.Choice(["table", "json"]), default="table", help="Output format")
@click.pass_context
def compare(ctx: click.Context, prompt_id: str, revision_id: Optional[str],
            compare_revision_id: Optional[str], output_format: str):
    """
    Diff a prompt revision against another revision of the same prompt.
    """
    try:
        item = get_store(ctx).get_prompt(prompt_id)
        comparison = compare_prompt_revisions(item, revision_id, compare_revision_id)
    except PromptRevisionsError as e:
        fail(e)

    if output_format == "table":
        against = (f"version {comparison.compare.version}"
                   if comparison.compare else "previous snapshot")
        console.print(f"Comparing version {comparison.selected.version} with {against}")
        options = compare_options(item.revisions, comparison.selected)
        if options:
            console.print("[dim]Other versions: "
                          + ", ".join(revision_label(r) for r in options) + "[/dim]")
    emit_diff(comparison.result, output_format)


@main.group()
def comment():
    """Annotate revisions."""


@comment.command("add")
@click.argument("revision_id")
@click.argument("body")
@click.option("--line", "line_number", default=None, help="Line number the comment refers to")
@click.pass_context
def comment_add(ctx: click.Context, revision_id: str, body: str, line_number: Optional[str]):
    """Comment on a revision, optionally anchored to a line."""
    try:
        data = validate_input(CommentInput, {
            "revision_id": revision_id, "line_number": line_number, "body": body,
        })
        created = get_store(ctx).add_comment(data)
    except PromptRevisionsError as e:
        fail(e)
    console.print(f"[green]Comment added.[/green] {created.id}")


@comment.command("list")
@click.argument("revision_id")
@click.option("--json-output", is_flag=True, help="Output as JSON")
@click.pass_context
def comment_list(ctx: click.Context, revision_id: str, json_output: bool):
    """List the comments on a revision."""
    store = get_store(ctx)
    try:
        store.get_revision(revision_id)
    except PromptRevisionsError as e:
        fail(e)
    comments = store.list_comments(revision_id)

    if json_output:
        output = [
            {
                'id': c.id,
                'line_number': c.line_number,
                'body': c.body,
                'created_at': c.created_at,
                'resolved': c.resolved,
                'resolved_by': c.resolved_by,
            }
            for c in comments
        ]
        console.print_json(json.dumps(output, indent=2))
    elif comments:
        table = Table(title="Comments")
        table.add_column("Line", justify="right", style="dim")
        table.add_column("Comment")
        table.add_column("Status", style="green")
        for c in comments:
            table.add_row(
                str(c.line_number) if c.line_number is not None else "-",
                Text(c.body),
                "resolved" if c.resolved else "",
            )
        console.print(table)
    else:
        console.print("[dim]No comments yet.[/dim]")


@comment.command("resolve")
@click.argument("comment_id")
@click.option("--by", "resolved_by", default=None, help="Who resolved the comment")
@click.pass_context
def comment_resolve(ctx: click.Context, comment_id: str, resolved_by: Optional[str]):
    """Mark a comment as resolved."""
    try:
        get_store(ctx).resolve_comment(comment_id, resolved_by)
    except PromptRevisionsError as e:
        fail(e)
    console.print("[green]Comment resolved.[/green]")


if __name__ == "__main__":
    main()
