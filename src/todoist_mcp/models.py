"""Typed records and request parsers.

Tool arguments arrive loosely typed. The ``parse_*`` functions below turn them
into the request models the handlers work with, raising ``ValidationError``
with the messages callers rely on.
"""

import re
from datetime import date
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .errors import ValidationError

PRIORITY_MIN = 1
PRIORITY_MAX = 4

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


# ============================================================================
# TODOIST RECORDS
# ============================================================================

class Due(BaseModel):
    model_config = ConfigDict(extra="ignore")

    date: str
    string: Optional[str] = None
    is_recurring: bool = False


class Task(BaseModel):
    """A task as returned by the Todoist API (REST v2 or API v1 payloads)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, coerce_numbers_to_str=True)

    id: str
    content: str = ""
    description: Optional[str] = ""
    is_completed: bool = Field(
        default=False,
        validation_alias=AliasChoices("is_completed", "checked", "isCompleted"),
    )
    project_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("project_id", "projectId")
    )
    section_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("section_id", "sectionId")
    )
    priority: int = 1
    due: Optional[Due] = None
    labels: list[str] = Field(default_factory=list)


def due_date_only(task: Task) -> Optional[date]:
    """Date part of a task's due date, ignoring time of day and timezone."""
    if task.due is None or not task.due.date:
        return None
    try:
        return date.fromisoformat(task.due.date[:10])
    except ValueError:
        return None


def to_api_priority(priority: Optional[int]) -> Optional[int]:
    """User priority (1=P1 urgent) to Todoist API priority (4=P1 urgent)."""
    if not _is_valid_priority(priority):
        return None
    return PRIORITY_MAX + PRIORITY_MIN - priority


def from_api_priority(priority: Optional[int]) -> Optional[int]:
    """Todoist API priority (4=P1 urgent) to user priority (1=P1 urgent)."""
    if not _is_valid_priority(priority):
        return None
    return PRIORITY_MAX + PRIORITY_MIN - priority


def _is_valid_priority(value: Any) -> bool:
    return (
        isinstance(value, int)
        and not isinstance(value, bool)
        and PRIORITY_MIN <= value <= PRIORITY_MAX
    )


# ============================================================================
# DUPLICATES
# ============================================================================

class DuplicateGroup(BaseModel):
    tasks: list[Task]
    similarity: int


class MergeAction(str, Enum):
    COMPLETE = "complete"
    DELETE = "delete"

    @property
    def past_tense(self) -> str:
        return "completed" if self is MergeAction.COMPLETE else "deleted"


class MergeRequest(BaseModel):
    keep_task_id: str
    duplicate_task_ids: list[str]
    action: MergeAction


class MergeItem(BaseModel):
    id: str
    content: Optional[str] = None
    error: Optional[str] = None


class MergeOutcome(BaseModel):
    succeeded: list[MergeItem] = Field(default_factory=list)
    failed: list[MergeItem] = Field(default_factory=list)


def validate_threshold(threshold: Any) -> float:
    if (
        isinstance(threshold, bool)
        or not isinstance(threshold, (int, float))
        or not 0 <= threshold <= 100
    ):
        raise ValidationError("Threshold must be between 0 and 100", "threshold")
    return threshold


def parse_merge_request(
    keep_task_id: Any, duplicate_task_ids: Any, action: Any
) -> MergeRequest:
    if not keep_task_id or not str(keep_task_id).strip():
        raise ValidationError("keep_task_id is required", "keep_task_id")
    if not duplicate_task_ids:
        raise ValidationError(
            "duplicate_task_ids must contain at least one task ID", "duplicate_task_ids"
        )
    task_ids = [str(task_id).strip() if task_id is not None else "" for task_id in duplicate_task_ids]
    if not all(task_ids):
        raise ValidationError("duplicate_task_ids must not contain empty task IDs", "duplicate_task_ids")
    if action not in (MergeAction.COMPLETE.value, MergeAction.DELETE.value):
        raise ValidationError('action must be either "complete" or "delete"', "action")

    return MergeRequest(
        keep_task_id=str(keep_task_id).strip(),
        duplicate_task_ids=task_ids,
        action=MergeAction(action),
    )


# ============================================================================
# BULK OPERATIONS
# ============================================================================

class BulkFilterCriteria(BaseModel):
    """Conjunctive task filter. ``priority`` is in API space."""

    project_id: Optional[str] = None
    priority: Optional[int] = None
    content_contains: Optional[str] = None
    due_before: Optional[date] = None
    due_after: Optional[date] = None


class BulkUpdates(BaseModel):
    """Fields applied to every matched task. ``priority`` is in API space."""

    content: Optional[str] = None
    description: Optional[str] = None
    due_string: Optional[str] = None
    priority: Optional[int] = None
    labels: Optional[list[str]] = None
    project_id: Optional[str] = None
    section_id: Optional[str] = None

    def update_fields(self) -> dict:
        """Fields for the task update endpoint (moves are separate calls)."""
        return self.model_dump(
            exclude_none=True, include={"content", "description", "due_string", "priority", "labels"}
        )


def _parse_date(value: Any, field: str) -> date:
    if not isinstance(value, str) or not DATE_RE.match(value):
        raise ValidationError(f"{field} must be a date in YYYY-MM-DD format", field)
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"{field} is not a valid date: {value}", field)


def _parse_priority(value: Any, field: str = "priority") -> int:
    if not _is_valid_priority(value):
        raise ValidationError(f"{field} must be an integer between 1 and 4", field)
    return to_api_priority(value)


def parse_search_criteria(
    project_id: Optional[str] = None,
    priority: Optional[int] = None,
    content_contains: Optional[str] = None,
    due_before: Optional[str] = None,
    due_after: Optional[str] = None,
) -> BulkFilterCriteria:
    """Validate bulk search criteria. ``None`` means the criterion is absent."""
    if project_id is not None and not project_id.strip():
        raise ValidationError("Project ID cannot be empty", "project_id")

    if content_contains is not None and not content_contains.strip():
        raise ValidationError(
            "content_contains cannot be empty or contain only whitespace. Remove this "
            "field to match all tasks, or provide specific search text.",
            "content_contains",
        )

    criteria = BulkFilterCriteria(
        project_id=project_id,
        priority=_parse_priority(priority) if priority is not None else None,
        content_contains=content_contains,
        due_before=_parse_date(due_before, "due_before") if due_before is not None else None,
        due_after=_parse_date(due_after, "due_after") if due_after is not None else None,
    )

    if not criteria.model_dump(exclude_none=True):
        raise ValidationError(
            "At least one valid search criterion must be provided for bulk operations. "
            "Valid criteria: project_id, priority, due_before, due_after, or non-empty "
            "content_contains.",
            "search_criteria",
        )
    return criteria


def parse_updates(
    content: Optional[str] = None,
    description: Optional[str] = None,
    due_string: Optional[str] = None,
    priority: Optional[int] = None,
    labels: Optional[list[str]] = None,
    project_id: Optional[str] = None,
    section_id: Optional[str] = None,
) -> BulkUpdates:
    if content is not None and not content.strip():
        raise ValidationError("content cannot be empty", "content")
    if labels is not None and not all(isinstance(label, str) and label.strip() for label in labels):
        raise ValidationError("labels must be non-empty strings", "labels")

    updates = BulkUpdates(
        content=content,
        description=description,
        due_string=due_string,
        priority=_parse_priority(priority) if priority is not None else None,
        labels=labels,
        project_id=project_id or None,
        section_id=section_id or None,
    )

    if not updates.model_dump(exclude_none=True):
        raise ValidationError("At least one update field must be provided", "updates")
    return updates
