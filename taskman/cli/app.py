"""Task CLI: local task list backed by a SQLite file."""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Annotated

import typer
from typer import Abort

from taskman.cli import output
from taskman.cli.errors import error_feedback
from taskman.cli.format import format_task, format_task_detail, format_task_list, task_to_dict
from taskman.engine import TaskStore
from taskman.models import DeleteResult
from taskman.service import TaskService

logger = logging.getLogger(__name__)

main_app = typer.Typer(
    invoke_without_command=True,
    add_completion=False,
    help="""Personal task list. Tasks live in tasks.db in the current directory.""",
)


def prompt_confirm(action: str) -> bool:
    """Ask on stdin, prompting on stderr so stdout stays parseable. End of input counts as no."""
    try:
        return typer.confirm(action, default=False, err=True)
    except Abort:
        return False


def _configure_logging(verbose: bool, level: str) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level, logging.WARNING),
        format="[taskman] %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


@contextmanager
def open_service(ctx: typer.Context, assume_yes: bool = False) -> Iterator[TaskService]:
    """Open the store for one command and close it on every exit path."""
    settings = output.settings(ctx)
    logger.debug(f"Using database {settings.db_path}")
    confirm = (lambda _action: True) if assume_yes else prompt_confirm
    with TaskStore.from_settings(settings) as store:
        store.initialize()
        yield TaskService(store, confirm=confirm)


@main_app.callback(context_settings={"help_option_names": ["-h", "--help"]})
def main_callback(
    ctx: typer.Context,
    db: Annotated[str | None, typer.Option("--db", help="Database file (default: tasks.db).")] = None,
    json_output: bool = typer.Option(False, "--json", "-j", help="Output in JSON format."),
    quiet_output: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging to stderr."),
):
    state = output.init_context(ctx, json_output, quiet_output, db)

    if ctx.resilient_parsing:
        return

    try:
        level = state.settings.log_level
    except ValueError:
        level = "WARNING"
    _configure_logging(verbose, level)

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


@main_app.command("help")
def help_cmd(ctx: typer.Context):
    """Show usage."""
    typer.echo(ctx.parent.get_help() if ctx.parent else ctx.get_help())


@main_app.command("add")
@error_feedback
def add(
    ctx: typer.Context,
    description: list[str] = typer.Argument(..., help="Task description"),
):
    """Create new task."""
    with open_service(ctx) as service:
        task = service.add(" ".join(description))

    if output.echo_json(task_to_dict(task), ctx):
        return
    output.echo_text(f"Added: {format_task(task)}", ctx)


def _list(ctx: typer.Context, include_completed: bool) -> None:
    with open_service(ctx) as service:
        tasks = list(service.list(include_completed=include_completed))

    if output.echo_json([task_to_dict(t) for t in tasks], ctx):
        return
    typer.echo(format_task_list(tasks))


@main_app.command("list")
@error_feedback
def list_cmd(ctx: typer.Context):
    """List open tasks."""
    _list(ctx, include_completed=False)


@main_app.command("list-all")
@error_feedback
def list_all(ctx: typer.Context):
    """List all tasks, including completed ones."""
    _list(ctx, include_completed=True)


@main_app.command("show")
@error_feedback
def show(
    ctx: typer.Context,
    task_id: int = typer.Argument(..., help="Task ID"),
):
    """Show task details."""
    with open_service(ctx) as service:
        task = service.get(task_id)

    if output.echo_json(task_to_dict(task), ctx):
        return
    typer.echo(format_task_detail(task))


@main_app.command("done")
@error_feedback
def done(
    ctx: typer.Context,
    task_id: int = typer.Argument(..., help="Task ID to complete"),
):
    """Mark task as complete."""
    with open_service(ctx) as service:
        task = service.done(task_id)

    if output.echo_json(task_to_dict(task), ctx):
        return
    output.echo_text(f"Completed: {format_task(task)}", ctx)


@main_app.command("edit")
@error_feedback
def edit(
    ctx: typer.Context,
    task_id: int = typer.Argument(..., help="Task ID to edit"),
    description: list[str] = typer.Argument(..., help="New description"),
):
    """Replace task description."""
    with open_service(ctx) as service:
        task = service.edit(task_id, " ".join(description))

    if output.echo_json(task_to_dict(task), ctx):
        return
    output.echo_text(f"Updated: {format_task(task)}", ctx)


@main_app.command("delete")
@error_feedback
def delete(
    ctx: typer.Context,
    task_id: int = typer.Argument(..., help="Task ID to delete"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation."),
):
    """Delete task permanently (asks for confirmation)."""
    with open_service(ctx, assume_yes=yes) as service:
        result = service.delete(task_id)

    if output.echo_json({"id": task_id, "result": result.value}, ctx):
        return
    if result is DeleteResult.CANCELLED:
        output.echo_text("Cancelled", ctx)
    else:
        output.echo_text(f"Deleted: {task_id}", ctx)


@main_app.command("check")
@error_feedback
def check(ctx: typer.Context):
    """Verify database integrity."""
    with open_service(ctx) as service:
        total = service.check()

    if output.echo_json({"status": "ok", "tasks": total}, ctx):
        return
    typer.echo(f"ok ({total} tasks)")


def main() -> None:
    """Entry point for taskman command."""
    try:
        main_app()
    except SystemExit:
        raise
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        raise SystemExit(1) from e


app = main_app

__all__ = ["app", "main", "prompt_confirm"]
