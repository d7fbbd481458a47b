"""Single-task tools: list, get, complete, delete."""

import logging
from typing import Optional

from .bulk import filter_tasks_by_criteria
from .cache import TaskCache
from .models import BulkFilterCriteria, Task, from_api_priority

logger = logging.getLogger("todoist-mcp.tasks")

PRIORITY_NAMES = {1: "P1 (urgent)", 2: "P2 (high)", 3: "P3 (medium)", 4: "P4 (normal)"}


def format_task(task: Task, detailed: bool = False) -> str:
    mark = "✓" if task.is_completed else "○"
    line = f"{mark} {task.content} (ID: {task.id})"

    priority = from_api_priority(task.priority)
    if priority and priority < 4:
        line += f" [{PRIORITY_NAMES[priority]}]"
    if task.due:
        line += f" (due: {task.due.string or task.due.date})"
    if not detailed:
        return line

    lines = [line]
    if task.project_id:
        lines.append(f"  Project: {task.project_id}")
    if task.section_id:
        lines.append(f"  Section: {task.section_id}")
    if task.labels:
        lines.append(f"  Labels: {', '.join(task.labels)}")
    if task.description:
        lines.append(f"  Description: {task.description}")
    return "\n".join(lines)


def list_tasks(
    client,
    cache: TaskCache,
    project_id: Optional[str] = None,
    content_contains: Optional[str] = None,
    limit: int = 50,
) -> str:
    tasks = cache.get_tasks(client, project_id=project_id)
    if content_contains:
        tasks = filter_tasks_by_criteria(tasks, BulkFilterCriteria(content_contains=content_contains))

    total = len(tasks)
    if limit > 0:
        tasks = tasks[:limit]

    if not tasks:
        return "No tasks found."

    header = f"Found {total} task(s)"
    if len(tasks) < total:
        header += f", showing {len(tasks)}"
    return header + ":\n" + "\n".join(format_task(task) for task in tasks)


def get_task(client, task_id: str) -> str:
    return format_task(client.get_task(task_id), detailed=True)


def complete_task(client, cache: TaskCache, task_id: str) -> str:
    task = client.get_task(task_id)
    client.close_task(task_id)
    cache.invalidate()
    prefix = "[DRY-RUN] " if client.dry_run else ""
    return f'{prefix}Completed task "{task.content}" (ID: {task.id})'


def delete_task(client, cache: TaskCache, task_id: str) -> str:
    task = client.get_task(task_id)
    client.delete_task(task_id)
    cache.invalidate()
    prefix = "[DRY-RUN] " if client.dry_run else ""
    return f'{prefix}Deleted task "{task.content}" (ID: {task.id})'
