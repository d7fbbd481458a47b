"""
Duplicate task detection and merging.

Tasks are compared pairwise by normalized Levenshtein similarity. Pairs at or
above the threshold are linked, and each connected set of linked tasks forms
one duplicate group, so near-duplicate chains end up together. Merging keeps
one task and completes or deletes the others, one at a time, recording each
failure without stopping the batch.
"""

import logging
from typing import Optional

from rapidfuzz.distance import Levenshtein

from .bulk import filter_tasks_by_criteria
from .cache import TaskCache
from .errors import ExternalAPIError, TaskNotFoundError, TodoistMCPError, error_message
from .models import (
    BulkFilterCriteria,
    DuplicateGroup,
    MergeAction,
    MergeItem,
    MergeOutcome,
    MergeRequest,
    Task,
    parse_merge_request,
    validate_threshold,
)

logger = logging.getLogger("todoist-mcp.duplicates")

DEFAULT_THRESHOLD = 80
NOT_ENOUGH_TASKS = "Not enough tasks to compare for duplicates."


# ============================================================================
# SCORING AND GROUPING
# ============================================================================

def similarity(a: str, b: str) -> int:
    """Case-insensitive similarity of two strings as an integer percentage."""
    a, b = a.lower(), b.lower()
    longest = max(len(a), len(b))
    if longest == 0:
        return 100
    distance = Levenshtein.distance(a, b)
    # round half up: 100 * (longest - distance) / longest
    return (200 * (longest - distance) + longest) // (2 * longest)


def find_duplicate_groups(tasks: list[Task], threshold: float) -> Optional[list[DuplicateGroup]]:
    """Group tasks whose content is linked, directly or through a chain, by similarity.

    Returns None when there are fewer than two tasks to compare, and an empty
    list when nothing reaches the threshold. Each group reports the lowest
    similarity among the links that joined it; groups are ordered by that
    value, highest first.
    """
    validate_threshold(threshold)
    if len(tasks) < 2:
        return None

    parent = list(range(len(tasks)))

    def root(i: int) -> int:
        while parent[i] != i:
            parent[i] = parent[parent[i]]
            i = parent[i]
        return i

    links = []
    for i in range(len(tasks)):
        for j in range(i + 1, len(tasks)):
            score = similarity(tasks[i].content, tasks[j].content)
            if score < threshold:
                continue
            links.append((i, score))
            ri, rj = root(i), root(j)
            if ri != rj:
                parent[max(ri, rj)] = min(ri, rj)

    members: dict[int, list[int]] = {}
    for i in range(len(tasks)):
        members.setdefault(root(i), []).append(i)

    lowest: dict[int, int] = {}
    for i, score in links:
        r = root(i)
        lowest[r] = min(lowest.get(r, score), score)

    groups = [
        DuplicateGroup(tasks=[tasks[i] for i in indexes], similarity=lowest[r])
        for r, indexes in members.items()
        if len(indexes) > 1
    ]
    groups.sort(key=lambda g: g.similarity, reverse=True)
    return groups


# ============================================================================
# FORMATTING
# ============================================================================

def _pct(value: float) -> str:
    return f"{value:g}%"


def _format_member(task: Task, project_names: dict[str, str]) -> str:
    line = f'  - "{task.content}" (ID: {task.id})'
    project_name = project_names.get(task.project_id or "")
    if project_name:
        line += f" [{project_name}]"
    if task.due:
        line += f" (due: {task.due.string or task.due.date})"
    return line


def format_duplicate_report(
    groups: Optional[list[DuplicateGroup]],
    threshold: float,
    total_scanned: int,
    project_names: Optional[dict[str, str]] = None,
) -> str:
    if groups is None:
        return NOT_ENOUGH_TASKS

    if not groups:
        return (
            f"No duplicate tasks found with similarity threshold of {_pct(threshold)}. "
            f"Scanned {total_scanned} task(s)."
        )

    project_names = project_names or {}
    lines = [
        f"Found {len(groups)} group(s) of potential duplicates (threshold: {_pct(threshold)}):",
        f"Scanned {total_scanned} task(s).",
        "",
    ]
    for number, group in enumerate(groups, start=1):
        lines.append(f"--- Group {number} ({group.similarity}% similar) ---")
        lines.extend(_format_member(task, project_names) for task in group.tasks)
        lines.append("")

    lines.append(
        "Use merge_duplicates to combine duplicates by keeping one and "
        "completing or deleting the others."
    )
    return "\n".join(lines)


# ============================================================================
# MERGING
# ============================================================================

def resolve_merge(
    request: MergeRequest, client, known_contents: Optional[dict[str, str]] = None
) -> tuple[Task, MergeOutcome]:
    """Keep one task and complete or delete each duplicate in order.

    Fails before touching any duplicate if the task to keep cannot be fetched.
    After that, every id is attempted; failures are recorded in the outcome
    and nothing already applied is rolled back.
    """
    try:
        keep_task = client.get_task(request.keep_task_id)
    except Exception as e:
        logger.debug(f"Keep task lookup failed: {error_message(e)}")
        raise TaskNotFoundError(f"Task to keep not found: {request.keep_task_id}")

    known_contents = known_contents or {}
    outcome = MergeOutcome()

    for task_id in request.duplicate_task_ids:
        content = known_contents.get(task_id)

        if task_id == request.keep_task_id:
            outcome.failed.append(
                MergeItem(id=task_id, content=keep_task.content,
                          error="Cannot remove the task you are keeping")
            )
            continue

        try:
            if request.action is MergeAction.COMPLETE:
                client.close_task(task_id)
            else:
                client.delete_task(task_id)
        except Exception as e:
            message = error_message(e)
            logger.warning(f"Failed to {request.action.value} duplicate {task_id}: {message}")
            outcome.failed.append(MergeItem(id=task_id, content=content, error=message))
            continue

        outcome.succeeded.append(MergeItem(id=task_id, content=content))

    return keep_task, outcome


def format_merge_summary(
    keep_task: Task, action: MergeAction, outcome: MergeOutcome, dry_run: bool = False
) -> str:
    prefix = "[DRY-RUN] " if dry_run else ""
    lines = [
        f'{prefix}Merge complete: kept "{keep_task.content}" (ID: {keep_task.id})',
        f"{len(outcome.succeeded)} duplicate(s) {action.past_tense}, {len(outcome.failed)} failed",
    ]

    if outcome.failed:
        lines.append("")
        lines.append("Failed operations:")
        for item in outcome.failed:
            label = f'ID {item.id} ("{item.content}")' if item.content else f"ID {item.id}"
            lines.append(f"  - {label}: {item.error}")

    return "\n".join(lines)


# ============================================================================
# HANDLERS
# ============================================================================

def _project_names(client) -> dict[str, str]:
    """Best-effort project lookup; reports still render without names."""
    try:
        return {str(p["id"]): p.get("name", "") for p in client.get_projects()}
    except TodoistMCPError as e:
        logger.debug(f"Project lookup failed, continuing without names: {e.message}")
        return {}


def _task_contents(client, cache: TaskCache, task_ids: list[str]) -> dict[str, str]:
    """id -> content for display, loading the task list when the cache is cold."""
    contents = cache.known_contents()
    if all(task_id in contents for task_id in task_ids):
        return contents
    try:
        cache.get_tasks(client)
    except Exception as e:
        logger.debug(f"Task list lookup failed, merge summary shows ids only: {error_message(e)}")
        return contents
    return cache.known_contents()


def find_duplicates(
    client,
    cache: TaskCache,
    threshold: float = DEFAULT_THRESHOLD,
    project_id: Optional[str] = None,
    include_completed: bool = False,
) -> str:
    validate_threshold(threshold)

    try:
        tasks = cache.get_tasks(client, project_id=project_id)
    except Exception as e:
        raise ExternalAPIError(
            f"Failed to fetch tasks: {error_message(e)}", status_code=getattr(e, "status_code", None)
        )

    if project_id:
        tasks = filter_tasks_by_criteria(tasks, BulkFilterCriteria(project_id=project_id))
    if not include_completed:
        tasks = [t for t in tasks if not t.is_completed]

    groups = find_duplicate_groups(tasks, threshold)
    project_names = _project_names(client) if groups else {}
    logger.info(
        f"Duplicate scan: {len(tasks)} tasks, "
        f"{len(groups) if groups is not None else 0} group(s) at {_pct(threshold)}"
    )
    return format_duplicate_report(groups, threshold, len(tasks), project_names)


def merge_duplicates(
    client, cache: TaskCache, keep_task_id: str, duplicate_task_ids: list[str], action: str
) -> str:
    request = parse_merge_request(keep_task_id, duplicate_task_ids, action)
    contents = _task_contents(client, cache, request.duplicate_task_ids)
    keep_task, outcome = resolve_merge(request, client, contents)
    cache.invalidate()
    return format_merge_summary(keep_task, request.action, outcome, dry_run=client.dry_run)
