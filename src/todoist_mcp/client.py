"""Todoist HTTP client.

Thin wrapper over the Todoist REST API using requests. Every failure is raised
as ``ExternalAPIError`` (or ``TaskNotFoundError`` for a missing task), so
handlers only deal with the error taxonomy in ``errors``.
"""

import logging
from typing import Any, Optional

import pydantic
import requests

from .config import DEFAULT_API_URL, Settings
from .errors import ExternalAPIError, TaskNotFoundError
from .models import Task

logger = logging.getLogger("todoist-mcp.client")

PAGE_SIZE = 200


class TodoistClient:
    def __init__(self, api_token: str, api_url: str = DEFAULT_API_URL, dry_run: bool = False):
        self.api_token = api_token
        self.api_url = api_url.rstrip("/")
        self.dry_run = dry_run

    @classmethod
    def from_settings(cls, settings: Settings) -> "TodoistClient":
        return cls(settings.api_token, api_url=settings.api_url, dry_run=settings.dry_run)

    # ------------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------------

    def _request(self, method: str, endpoint: str, **kwargs) -> Any:
        """Make authenticated request to the Todoist API."""
        headers = kwargs.pop("headers", {})
        headers["Authorization"] = f"Bearer {self.api_token}"

        full_url = f"{self.api_url}/{endpoint.lstrip('/')}"
        logger.debug(f"{method} {full_url}")

        try:
            response = requests.request(method, full_url, headers=headers, **kwargs)
        except requests.RequestException as e:
            raise ExternalAPIError(f"Could not reach Todoist API: {e}")

        if response.status_code >= 400:
            try:
                error = response.json()
                msg = (error.get("error") or error.get("message")) if isinstance(error, dict) else None
                msg = msg or response.text
            except ValueError:
                msg = response.text
            raise ExternalAPIError(
                f"Todoist API error ({response.status_code}): {msg}",
                status_code=response.status_code,
            )

        if response.status_code == 204 or not response.content:
            return {}

        try:
            return response.json()
        except ValueError:
            raise ExternalAPIError(
                f"Todoist API returned a non-JSON response ({response.status_code}): {response.text[:200]}",
                status_code=response.status_code,
            )

    def _get_paginated(self, endpoint: str, params: Optional[dict] = None) -> list:
        """Collect every page of a list endpoint.

        Older endpoints return a bare list; API v1 returns
        ``{"results": [...], "next_cursor": ...}``.
        """
        params = dict(params or {})
        params.setdefault("limit", PAGE_SIZE)
        items = []
        while True:
            data = self._request("GET", endpoint, params=params)
            if isinstance(data, list):
                items.extend(data)
                return items
            if not isinstance(data, dict):
                raise ExternalAPIError(f"Unexpected response from Todoist API for {endpoint}")
            items.extend(data.get("results") or [])
            cursor = data.get("next_cursor")
            if not cursor:
                return items
            params["cursor"] = cursor

    # ------------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------------

    def get_tasks(self, project_id: Optional[str] = None) -> list[Task]:
        params = {"project_id": project_id} if project_id else {}
        return [_to_task(t) for t in self._get_paginated("/tasks", params)]

    def get_task(self, task_id: str) -> Task:
        try:
            data = self._request("GET", f"/tasks/{task_id}")
        except ExternalAPIError as e:
            if e.status_code == 404:
                raise TaskNotFoundError(f"Task not found: {task_id}")
            raise
        return _to_task(data)

    def get_projects(self) -> list[dict]:
        return self._get_paginated("/projects")

    # ------------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------------

    def close_task(self, task_id: str) -> None:
        if self.dry_run:
            logger.info(f"[DRY-RUN] Would complete task {task_id}")
            return
        self._request("POST", f"/tasks/{task_id}/close")

    def delete_task(self, task_id: str) -> None:
        if self.dry_run:
            logger.info(f"[DRY-RUN] Would delete task {task_id}")
            return
        self._request("DELETE", f"/tasks/{task_id}")

    def update_task(self, task_id: str, data: dict) -> Task:
        if self.dry_run:
            logger.info(f"[DRY-RUN] Would update task {task_id}: {data}")
            return _preview(self.get_task(task_id), data)
        return _to_task(self._request("POST", f"/tasks/{task_id}", json=data))

    def move_task(
        self,
        task_id: str,
        project_id: Optional[str] = None,
        section_id: Optional[str] = None,
        task: Optional[Task] = None,
    ) -> Task:
        """Move a task. In dry runs the preview starts from ``task`` when given."""
        body = {}
        if project_id:
            body["project_id"] = project_id
        if section_id:
            body["section_id"] = section_id

        if self.dry_run:
            logger.info(f"[DRY-RUN] Would move task {task_id}: {body}")
            return _preview(task or self.get_task(task_id), body)

        data = self._request("POST", f"/tasks/{task_id}/move", json=body)
        if data:
            return _to_task(data)
        return self.get_task(task_id)


def _preview(task: Task, changes: dict) -> Task:
    """Task as it would look after ``changes``, for dry runs."""
    return task.model_copy(update={k: v for k, v in changes.items() if k in Task.model_fields})


def _to_task(data: Any) -> Task:
    try:
        return Task.model_validate(data)
    except pydantic.ValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error["loc"]) or "task"
        raise ExternalAPIError(f"Unexpected task record from Todoist API ({field}: {error['msg']})")
