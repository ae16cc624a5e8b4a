"""Task CLI commands."""

import sys
from datetime import datetime

import click
from rich.console import Console
from rich.table import Table

from cli.utils import get_components
from shared_types import Category, Priority, RecurrenceInterval, TaskSource
from tasks.models import format_due_absolute, format_due_relative
from tasks.urgency import is_due_soon, is_overdue, urgency_score

console = Console()

_PRIORITY_STYLE = {
    Priority.HIGH: "red",
    Priority.MEDIUM: "yellow",
    Priority.LOW: "cyan",
    Priority.NONE: "dim",
}


def parse_due(value: str, tz) -> datetime:
    """Parse a due date typed by the user. Naive input is local wall-clock time."""
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        raise click.BadParameter(f"Not an ISO date/time: {value}") from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


def _due_cell(task, now, tz) -> str:
    if not task.due:
        return ""
    text = f"{format_due_absolute(task.due, tz)} ({format_due_relative(task.due, now)})"
    if is_overdue(task, now):
        return f"[red]{text}[/]"
    if is_due_soon(task, now):
        return f"[yellow]{text}[/]"
    return text


def _task_table(items, now, tz, title: str | None = None) -> Table:
    table = Table(title=title, show_header=True)
    table.add_column("ID", style="dim")
    table.add_column("Title")
    table.add_column("Due")
    table.add_column("Priority")
    table.add_column("Category", style="green")
    table.add_column("Score", justify="right", style="dim")

    for t in items:
        category = t.effective_category.display_name
        if t.subcategory:
            category += f" - {t.subcategory}"
        title_cell = t.title[:50] + (" ↻" if t.is_recurring else "")
        if t.completed:
            title_cell = f"[strike]{title_cell}[/]"
        table.add_row(
            t.id,
            title_cell,
            _due_cell(t, now, tz),
            f"[{_PRIORITY_STYLE[t.priority]}]{t.priority.display_name}[/]",
            category,
            str(int(urgency_score(t, now))),
        )
    return table


@click.group()
def tasks():
    """Manage tasks and reminders."""
    pass


@tasks.command("add")
@click.argument("title")
@click.option("--notes", help="Extra notes")
@click.option("--due", help="Due date/time, ISO 8601 (local time unless an offset is given)")
@click.option("-p", "--priority", type=click.Choice([p.value for p in Priority]), default="none")
@click.option("-c", "--category", type=click.Choice([c.value for c in Category]))
@click.option("-s", "--subcategory", help="Free-text subcategory (e.g. CS101)")
@click.option("--repeat", type=click.Choice([i.value for i in RecurrenceInterval]), help="Repeat interval")
def tasks_add(title, notes, due, priority, category, subcategory, repeat):
    """Add a task."""
    c = get_components(skip_assistant=True)
    tz = c["tz"]
    if repeat and not due:
        console.print("[red]Error:[/] repeating tasks need --due")
        sys.exit(1)

    try:
        task = c["tasks"].create_task(
            title=title,
            notes=notes,
            due=parse_due(due, tz) if due else None,
            is_recurring=bool(repeat),
            recurrence_interval=repeat,
            priority=priority,
            category=category,
            subcategory=subcategory,
            source=TaskSource.CLI,
        )
    except ValueError as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)

    when = f" for {format_due_absolute(task.due, tz)}" if task.due else ""
    console.print(f"[green]Added:[/] {task.title}{when} [dim]({task.id})[/]")


@tasks.command("list")
@click.option(
    "--view",
    type=click.Choice(["active", "overdue", "due-soon", "completed", "archived", "all"]),
    default="active",
    help="Which tasks to show",
)
@click.option("-p", "--priority", type=click.Choice([p.value for p in Priority]), help="Filter active by priority")
@click.option("-c", "--category", type=click.Choice([c.value for c in Category]), help="Filter active by category")
def tasks_list(view: str, priority: str, category: str):
    """List tasks, most urgent first."""
    c = get_components(skip_assistant=True)
    service, tz = c["tasks"], c["tz"]
    now = service.clock()

    if priority:
        items = service.with_priority(Priority(priority), now)
    elif category:
        items = service.in_category(Category(category), now)
    else:
        items = {
            "active": lambda: service.active(now),
            "overdue": lambda: service.overdue(now),
            "due-soon": lambda: service.due_soon(now),
            "completed": service.completed,
            "archived": service.archived,
            "all": service.list_tasks,
        }[view]()

    if not items:
        console.print("[yellow]No tasks found.[/]")
        return
    console.print(_task_table(items, now, tz))


@tasks.command("groups")
def tasks_groups():
    """Show active tasks grouped by category."""
    c = get_components(skip_assistant=True)
    now = c["tasks"].clock()
    groups = c["tasks"].grouped(now)
    if not groups:
        console.print("[yellow]No active tasks.[/]")
        return
    for group in groups:
        console.print(_task_table(group.tasks, now, c["tz"], title=group.display_name))


@tasks.command("done")
@click.argument("task_id")
def tasks_done(task_id: str):
    """Mark a task complete. Recurring tasks get their next occurrence."""
    c = get_components(skip_assistant=True)
    result = c["tasks"].complete_task(task_id)
    if result is None:
        console.print(f"[red]Not found:[/] {task_id}")
        sys.exit(1)

    console.print(f"[green]Completed:[/] {result.task.title}")
    if result.successor:
        due = format_due_absolute(result.successor.due, c["tz"])
        console.print(f"Next occurrence: {due} [dim]({result.successor.id})[/]")
    elif result.recurrence_error:
        console.print(f"[yellow]Could not schedule next occurrence:[/] {result.recurrence_error}")


@tasks.command("undo")
@click.argument("task_id")
def tasks_undo(task_id: str):
    """Mark a completed task open again."""
    c = get_components(skip_assistant=True)
    task = c["tasks"].uncomplete_task(task_id)
    if task is None:
        console.print(f"[red]Not found:[/] {task_id}")
        sys.exit(1)
    console.print(f"[green]Reopened:[/] {task.title}")


@tasks.command("archive")
@click.argument("task_ids", nargs=-1, required=True)
def tasks_archive(task_ids: tuple[str, ...]):
    """Archive one or more tasks."""
    c = get_components(skip_assistant=True)
    count = c["tasks"].archive_tasks(task_ids)
    console.print(f"Archived {count} task(s)")


@tasks.command("unarchive")
@click.argument("task_id")
def tasks_unarchive(task_id: str):
    """Restore an archived task."""
    c = get_components(skip_assistant=True)
    task = c["tasks"].unarchive_task(task_id)
    if task is None:
        console.print(f"[red]Not found:[/] {task_id}")
        sys.exit(1)
    console.print(f"[green]Restored:[/] {task.title}")


@tasks.command("delete")
@click.argument("task_ids", nargs=-1, required=True)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
def tasks_delete(task_ids: tuple[str, ...], yes: bool):
    """Delete tasks permanently."""
    if not yes and not click.confirm(f"Delete {len(task_ids)} task(s)?"):
        console.print("[yellow]Cancelled.[/]")
        return
    c = get_components(skip_assistant=True)
    count = c["tasks"].delete_tasks(task_ids)
    console.print(f"Deleted {count} task(s)")


@tasks.command("clear-archived")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
def tasks_clear_archived(yes: bool):
    """Delete every archived task."""
    if not yes and not click.confirm("Delete all archived tasks?"):
        console.print("[yellow]Cancelled.[/]")
        return
    c = get_components(skip_assistant=True)
    count = c["tasks"].delete_all_archived()
    console.print(f"Deleted {count} archived task(s)")


@tasks.command("archive-completed")
def tasks_archive_completed():
    """Archive every completed task."""
    c = get_components(skip_assistant=True)
    count = c["tasks"].archive_all_completed()
    console.print(f"Archived {count} completed task(s)")
