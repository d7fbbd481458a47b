"""
Bulk task operations.

Tasks are selected with a conjunctive filter (project, priority, content
substring, strict due-date window) and then updated, completed or deleted one
at a time. A failure on one task is reported and the rest of the batch still
runs.
"""

import logging
from typing import Callable, Optional

from .cache import TaskCache
from .errors import ExternalAPIError, error_message
from .models import BulkFilterCriteria, BulkUpdates, Task, due_date_only, from_api_priority

logger = logging.getLogger("todoist-mcp.bulk")


# ============================================================================
# FILTER MATCHING
# ============================================================================

def matches_criteria(task: Task, criteria: BulkFilterCriteria) -> bool:
    if criteria.project_id is not None and task.project_id != criteria.project_id:
        return False

    if criteria.priority is not None and task.priority != criteria.priority:
        return False

    if criteria.content_contains is not None:
        term = criteria.content_contains.strip()
        # a blank search term matches nothing rather than everything
        if not term:
            return False
        if term.lower() not in task.content.lower():
            return False

    if criteria.due_before is not None or criteria.due_after is not None:
        due = due_date_only(task)
        if due is None:
            return False
        if criteria.due_before is not None and not due < criteria.due_before:
            return False
        if criteria.due_after is not None and not due > criteria.due_after:
            return False

    return True


def filter_tasks_by_criteria(tasks: list[Task], criteria: BulkFilterCriteria) -> list[Task]:
    return [task for task in tasks if matches_criteria(task, criteria)]


# ============================================================================
# HANDLERS
# ============================================================================

def _fetch_matching(client, criteria: BulkFilterCriteria) -> tuple[list[Task], int]:
    try:
        tasks = client.get_tasks(project_id=criteria.project_id)
    except Exception as e:
        raise ExternalAPIError(
            f"Failed to fetch tasks: {error_message(e)}", status_code=getattr(e, "status_code", None)
        )
    return filter_tasks_by_criteria(tasks, criteria), len(tasks)


def _no_match_report(criteria: BulkFilterCriteria, searched: int) -> str:
    lines = ["No tasks found matching the search criteria.", "Search criteria used:"]
    if criteria.project_id is not None:
        lines.append(f"  - Project ID: {criteria.project_id}")
    if criteria.content_contains is not None:
        lines.append(f'  - Content contains: "{criteria.content_contains}"')
    if criteria.priority is not None:
        lines.append(f"  - Priority: P{from_api_priority(criteria.priority)}")
    if criteria.due_before is not None:
        lines.append(f"  - Due before: {criteria.due_before.isoformat()}")
    if criteria.due_after is not None:
        lines.append(f"  - Due after: {criteria.due_after.isoformat()}")
    lines.append("")
    lines.append(f"Total tasks searched: {searched}")
    return "\n".join(lines)


def _summary(
    client, operation: str, verb: str, done: list[Task], errors: list[str]
) -> str:
    prefix = "[DRY-RUN] " if client.dry_run else ""
    sections = [f"{prefix}Bulk {operation} completed: {len(done)} {verb}, {len(errors)} failed."]
    if done:
        sections.append(
            f"{verb.capitalize()} tasks:\n"
            + "\n".join(f"- {task.content} (ID: {task.id})" for task in done)
        )
    if errors:
        sections.append("Errors:\n" + "\n".join(errors))
    return "\n\n".join(sections)


def _run_batch(
    client,
    cache: TaskCache,
    criteria: BulkFilterCriteria,
    operation: str,
    verb: str,
    apply: Callable[[Task], Optional[Task]],
) -> str:
    tasks, searched = _fetch_matching(client, criteria)
    if not tasks:
        return _no_match_report(criteria, searched)

    done: list[Task] = []
    errors: list[str] = []
    try:
        for task in tasks:
            try:
                done.append(apply(task) or task)
            except Exception as e:
                message = error_message(e)
                logger.warning(f"Bulk {operation} failed for task {task.id}: {message}")
                errors.append(f'Failed to {operation} task "{task.content}": {message}')
    finally:
        cache.invalidate()

    logger.info(f"Bulk {operation}: {len(done)} {verb}, {len(errors)} failed")
    return _summary(client, operation, verb, done, errors)


def bulk_update_tasks(client, cache: TaskCache, criteria: BulkFilterCriteria, updates: BulkUpdates) -> str:
    fields = updates.update_fields()

    def apply(task: Task) -> Task:
        latest = client.update_task(task.id, fields) if fields else task
        if updates.project_id and updates.project_id != latest.project_id:
            latest = client.move_task(task.id, project_id=updates.project_id, task=latest)
        if updates.section_id and updates.section_id != latest.section_id:
            latest = client.move_task(task.id, section_id=updates.section_id, task=latest)
        return latest

    return _run_batch(client, cache, criteria, "update", "updated", apply)


def bulk_complete_tasks(client, cache: TaskCache, criteria: BulkFilterCriteria) -> str:
    return _run_batch(
        client, cache, criteria, "complete", "completed", lambda task: client.close_task(task.id)
    )


def bulk_delete_tasks(client, cache: TaskCache, criteria: BulkFilterCriteria) -> str:
    return _run_batch(
        client, cache, criteria, "delete", "deleted", lambda task: client.delete_task(task.id)
    )
