"""
Todoist MCP Server

MCP server that gives Claude access to your Todoist tasks, with duplicate
detection/merging and criteria-based bulk operations.

Configuration (in order of priority):
1. Config file: ~/.todoist-mcp/config.yaml
2. Environment: TODOIST_API_TOKEN (plus TODOIST_API_URL, TODOIST_CACHE_TTL,
   TODOIST_DRY_RUN)

Set TODOIST_DEBUG=1 for debug logging (stderr).
"""

import logging
import os
from typing import Callable, Optional

from fastmcp import FastMCP
from pydantic import Field

from . import bulk, duplicates, tasks
from .cache import TaskCache
from .client import TodoistClient
from .config import get_settings
from .errors import TodoistMCPError, format_error
from .models import parse_search_criteria, parse_updates

# ============================================================================
# LOGGING
# ============================================================================

logger = logging.getLogger("todoist-mcp")
logger.setLevel(logging.DEBUG if os.environ.get("TODOIST_DEBUG") else logging.INFO)

if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    ))
    logger.addHandler(handler)

# ============================================================================
# MCP SERVER
# ============================================================================

mcp = FastMCP(
    "Todoist MCP",
    instructions="""Manage Todoist tasks.

Duplicates:
- find_duplicates() - Groups of similar tasks (Levenshtein similarity)
- merge_duplicates() - Keep one task, complete or delete the rest

Bulk operations (select by project, priority, text, due-date window):
- bulk_update_tasks() / bulk_complete_tasks() / bulk_delete_tasks()

Priorities are user-facing: 1 = P1 (urgent) ... 4 = P4 (normal).
Dates are YYYY-MM-DD; due_before/due_after are exclusive.
"""
)

# ============================================================================
# SESSION
# ============================================================================

_client: Optional[TodoistClient] = None
_cache: Optional[TaskCache] = None


def _session() -> tuple[TodoistClient, TaskCache]:
    """Lazily build the API client and the task cache shared by all tools."""
    global _client, _cache
    if _client is None or _cache is None:
        settings = get_settings()
        _client = TodoistClient.from_settings(settings)
        _cache = TaskCache(ttl=settings.cache_ttl)
        mode = "DRY-RUN" if settings.dry_run else "LIVE"
        logger.info(f"Connected to {settings.api_url} ({mode}, cache ttl {settings.cache_ttl:g}s)")
    return _client, _cache


def reset_session() -> None:
    """Drop the client and cache. Used for testing."""
    global _client, _cache
    _client = None
    _cache = None


def _run(operation: Callable[[TodoistClient, TaskCache], str]) -> str:
    """Run a handler, rendering domain errors as 'Error [CODE]: message'."""
    try:
        client, cache = _session()
        return operation(client, cache)
    except TodoistMCPError as e:
        logger.warning(f"Tool error [{e.code}]: {e.message}")
        return format_error(e)


# ============================================================================
# TASK TOOLS
# ============================================================================

@mcp.tool()
def list_tasks(
    project_id: str = Field(default="", description="Project ID. Empty = all projects."),
    content_contains: str = Field(default="", description="Case-insensitive text filter"),
    limit: int = Field(default=50, description="Max tasks (0=all)")
) -> str:
    """List active tasks, optionally filtered by project or text."""
    return _run(lambda client, cache: tasks.list_tasks(
        client, cache,
        project_id=project_id or None,
        content_contains=content_contains or None,
        limit=limit,
    ))


@mcp.tool()
def get_task(task_id: str = Field(description="Task ID")) -> str:
    """Get details of a specific task."""
    return _run(lambda client, cache: tasks.get_task(client, task_id))


@mcp.tool()
def complete_task(task_id: str = Field(description="Task ID")) -> str:
    """Mark a task as complete."""
    return _run(lambda client, cache: tasks.complete_task(client, cache, task_id))


@mcp.tool()
def delete_task(task_id: str = Field(description="Task ID")) -> str:
    """Delete a task. Permanent!"""
    return _run(lambda client, cache: tasks.delete_task(client, cache, task_id))


# ============================================================================
# DUPLICATE TOOLS
# ============================================================================

@mcp.tool()
def find_duplicates(
    threshold: float = Field(
        default=duplicates.DEFAULT_THRESHOLD,
        description="Minimum similarity percentage (0-100) for two tasks to count as duplicates"
    ),
    project_id: str = Field(default="", description="Only scan this project. Empty = all."),
    include_completed: bool = Field(default=False, description="Also compare completed tasks")
) -> str:
    """Find groups of tasks with similar content. Read-only."""
    return _run(lambda client, cache: duplicates.find_duplicates(
        client, cache,
        threshold=threshold,
        project_id=project_id or None,
        include_completed=include_completed,
    ))


@mcp.tool()
def merge_duplicates(
    keep_task_id: str = Field(description="ID of the task to keep"),
    duplicate_task_ids: list[str] = Field(description="IDs of the duplicates to remove"),
    action: str = Field(description='"complete" or "delete" for the duplicates')
) -> str:
    """Merge duplicates: keep one task, complete or delete the others."""
    return _run(lambda client, cache: duplicates.merge_duplicates(
        client, cache, keep_task_id, duplicate_task_ids, action
    ))


# ============================================================================
# BULK TOOLS
# ============================================================================

@mcp.tool()
def bulk_update_tasks(
    project_id: Optional[str] = Field(default=None, description="Match tasks in this project"),
    priority: Optional[int] = Field(default=None, description="Match priority 1 (urgent) - 4 (normal)"),
    content_contains: Optional[str] = Field(default=None, description="Match text in task content"),
    due_before: Optional[str] = Field(default=None, description="Match tasks due before YYYY-MM-DD (exclusive)"),
    due_after: Optional[str] = Field(default=None, description="Match tasks due after YYYY-MM-DD (exclusive)"),
    new_content: Optional[str] = Field(default=None, description="New title"),
    new_description: Optional[str] = Field(default=None, description="New description"),
    new_due_string: Optional[str] = Field(default=None, description="New due date in natural language"),
    new_priority: Optional[int] = Field(default=None, description="New priority 1 (urgent) - 4 (normal)"),
    new_labels: Optional[list[str]] = Field(default=None, description="Replace labels"),
    move_to_project_id: Optional[str] = Field(default=None, description="Move matches to this project"),
    move_to_section_id: Optional[str] = Field(default=None, description="Move matches to this section")
) -> str:
    """Update every task matching the search criteria."""
    def operation(client, cache):
        criteria = parse_search_criteria(project_id, priority, content_contains, due_before, due_after)
        updates = parse_updates(
            content=new_content,
            description=new_description,
            due_string=new_due_string,
            priority=new_priority,
            labels=new_labels,
            project_id=move_to_project_id,
            section_id=move_to_section_id,
        )
        return bulk.bulk_update_tasks(client, cache, criteria, updates)

    return _run(operation)


@mcp.tool()
def bulk_complete_tasks(
    project_id: Optional[str] = Field(default=None, description="Match tasks in this project"),
    priority: Optional[int] = Field(default=None, description="Match priority 1 (urgent) - 4 (normal)"),
    content_contains: Optional[str] = Field(default=None, description="Match text in task content"),
    due_before: Optional[str] = Field(default=None, description="Match tasks due before YYYY-MM-DD (exclusive)"),
    due_after: Optional[str] = Field(default=None, description="Match tasks due after YYYY-MM-DD (exclusive)")
) -> str:
    """Complete every task matching the search criteria."""
    return _run(lambda client, cache: bulk.bulk_complete_tasks(
        client, cache,
        parse_search_criteria(project_id, priority, content_contains, due_before, due_after),
    ))


@mcp.tool()
def bulk_delete_tasks(
    project_id: Optional[str] = Field(default=None, description="Match tasks in this project"),
    priority: Optional[int] = Field(default=None, description="Match priority 1 (urgent) - 4 (normal)"),
    content_contains: Optional[str] = Field(default=None, description="Match text in task content"),
    due_before: Optional[str] = Field(default=None, description="Match tasks due before YYYY-MM-DD (exclusive)"),
    due_after: Optional[str] = Field(default=None, description="Match tasks due after YYYY-MM-DD (exclusive)")
) -> str:
    """Delete every task matching the search criteria. Permanent!"""
    return _run(lambda client, cache: bulk.bulk_delete_tasks(
        client, cache,
        parse_search_criteria(project_id, priority, content_contains, due_before, due_after),
    ))


# ============================================================================
# MAIN
# ============================================================================

def main():
    """Run the MCP server."""
    mcp.run()


if __name__ == "__main__":
    main()
