"""Shared fixtures: an in-memory Todoist client and a task factory."""

from unittest.mock import MagicMock

import pytest

from todoist_mcp.cache import TaskCache
from todoist_mcp.errors import ExternalAPIError, TaskNotFoundError
from todoist_mcp.models import Task


def make_task(id, content="Task", **fields) -> Task:
    """Build a Task from API-style fields (due may be given as a date string)."""
    due = fields.pop("due", None)
    if isinstance(due, str):
        due = {"date": due}
    return Task.model_validate({"id": str(id), "content": content, "due": due, **fields})


def api_response(body, status=200):
    """A requests.Response stand-in returning ``body`` as JSON."""
    response = MagicMock()
    response.status_code = status
    response.content = b"{...}"
    response.text = str(body)
    response.json.return_value = body
    return response


class FakeClient:
    """Records calls; ``failures`` maps task id -> error message to raise."""

    def __init__(self, tasks=None, projects=None, dry_run=False):
        self.tasks = {t.id: t for t in (tasks or [])}
        self.projects = projects or []
        self.dry_run = dry_run
        self.failures = {}
        self.calls = []
        self.fetch_error = None

    def _maybe_fail(self, task_id):
        if task_id in self.failures:
            raise ExternalAPIError(self.failures[task_id])

    def get_tasks(self, project_id=None):
        self.calls.append(("get_tasks", project_id))
        if self.fetch_error:
            raise ExternalAPIError(self.fetch_error)
        return [t for t in self.tasks.values() if not project_id or t.project_id == project_id]

    def get_task(self, task_id):
        self.calls.append(("get_task", task_id))
        if task_id not in self.tasks:
            raise TaskNotFoundError(f"Task not found: {task_id}")
        return self.tasks[task_id]

    def get_projects(self):
        self.calls.append(("get_projects",))
        return self.projects

    def close_task(self, task_id):
        self.calls.append(("close_task", task_id))
        self._maybe_fail(task_id)

    def delete_task(self, task_id):
        self.calls.append(("delete_task", task_id))
        self._maybe_fail(task_id)

    def update_task(self, task_id, data):
        self.calls.append(("update_task", task_id, data))
        self._maybe_fail(task_id)
        task = self.tasks[task_id].model_copy(update={k: v for k, v in data.items() if k in Task.model_fields})
        self.tasks[task_id] = task
        return task

    def move_task(self, task_id, project_id=None, section_id=None, task=None):
        self.calls.append(("move_task", task_id, project_id, section_id))
        self._maybe_fail(task_id)
        update = {}
        if project_id:
            update["project_id"] = project_id
        if section_id:
            update["section_id"] = section_id
        moved = (task or self.tasks[task_id]).model_copy(update=update)
        self.tasks[task_id] = moved
        return moved

    def mutations(self):
        return [c for c in self.calls if c[0] in ("close_task", "delete_task", "update_task", "move_task")]


@pytest.fixture
def client():
    return FakeClient()


@pytest.fixture
def cache():
    return TaskCache(ttl=60)
