"""Error taxonomy for the Todoist MCP server.

Handlers raise these; the tool layer renders them with ``format_error``.
Per-item failures inside batch operations are never raised, they are
collected into the batch result instead.
"""

from typing import Optional


class TodoistMCPError(Exception):
    """Base class for every error surfaced to a tool caller."""

    code = "INTERNAL_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TodoistMCPError):
    """Malformed caller input. Raised before any API call."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class TaskNotFoundError(TodoistMCPError):
    code = "TASK_NOT_FOUND"


class ExternalAPIError(TodoistMCPError):
    """Todoist API or transport failure."""

    code = "API_ERROR"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ConfigurationError(TodoistMCPError):
    code = "CONFIG_ERROR"


def format_error(error: TodoistMCPError) -> str:
    """Render an error the way tool callers see it."""
    return f"Error [{error.code}]: {error.message}"


def error_message(error: Exception) -> str:
    """Readable message for any exception, preferring our own ``message``."""
    return getattr(error, "message", None) or str(error) or type(error).__name__
