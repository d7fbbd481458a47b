"""
Tests for todoist-mcp server.

Run with:
    pytest tests/ -v

For integration tests (against the real Todoist API), set:
    TODOIST_API_TOKEN=your-token
"""

import os
import pytest

from conftest import FakeClient, make_task
from todoist_mcp.cache import TaskCache

# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def todoist_configured():
    """Check if Todoist credentials are configured."""
    token = os.environ.get("TODOIST_API_TOKEN")
    if not token:
        pytest.skip("TODOIST_API_TOKEN not set")
    return token


@pytest.fixture
def session(monkeypatch):
    """Swap the lazily built client/cache for in-memory ones."""
    from todoist_mcp import server

    client = FakeClient([make_task(1, "Buy milk"), make_task(2, "buy milk")])
    cache = TaskCache(ttl=60)
    monkeypatch.setattr(server, "_session", lambda: (client, cache))
    return client, cache


# ============================================================================
# UNIT TESTS (no network required)
# ============================================================================

class TestServerImport:
    """Test that the server module can be imported."""

    def test_import_server(self):
        """Server module should import without errors."""
        from todoist_mcp import server
        assert server is not None

    def test_import_mcp(self):
        """MCP instance should be importable."""
        from todoist_mcp.server import mcp
        assert mcp is not None


class TestToolsRegistered:
    """Test that all expected tools are registered."""

    EXPECTED_TOOLS = [
        # Duplicates
        "find_duplicates",
        "merge_duplicates",
        # Bulk
        "bulk_update_tasks",
        "bulk_complete_tasks",
        "bulk_delete_tasks",
        # Tasks
        "list_tasks",
        "get_task",
        "complete_task",
        "delete_task",
    ]

    def test_all_tools_registered(self):
        """All expected tools should be registered."""
        from todoist_mcp.server import mcp

        tool_names = [t.name for t in mcp._tool_manager._tools.values()]

        for expected in self.EXPECTED_TOOLS:
            assert expected in tool_names, f"Missing tool: {expected}"

    def test_tool_count(self):
        """Should have exactly 9 tools."""
        from todoist_mcp.server import mcp

        tools = mcp._tool_manager._tools
        assert len(tools) == 9, f"Expected 9 tools, got {len(tools)}"


class TestErrorRendering:
    """Domain errors come back as 'Error [CODE]: message' text."""

    def test_validation_error(self, session):
        from todoist_mcp import duplicates
        from todoist_mcp.server import _run

        result = _run(lambda client, cache: duplicates.find_duplicates(client, cache, threshold=101))
        assert result == "Error [VALIDATION_ERROR]: Threshold must be between 0 and 100"

    def test_task_not_found(self, session):
        from todoist_mcp import tasks
        from todoist_mcp.server import _run

        result = _run(lambda client, cache: tasks.get_task(client, "404"))
        assert result == "Error [TASK_NOT_FOUND]: Task not found: 404"

    def test_success_passes_through(self, session):
        from todoist_mcp import duplicates
        from todoist_mcp.server import _run

        result = _run(lambda client, cache: duplicates.find_duplicates(client, cache))
        assert result.startswith("Found 1 group(s)")

    def test_missing_configuration(self, tmp_path, monkeypatch):
        from todoist_mcp import config, server

        monkeypatch.setattr(config, "CONFIG_FILE", tmp_path / "missing.yaml")
        monkeypatch.delenv("TODOIST_API_TOKEN", raising=False)
        server.reset_session()

        result = server._run(lambda client, cache: "unreachable")
        assert result.startswith("Error [CONFIG_ERROR]: No Todoist API token configured")


class TestHelperFunctions:
    """Test helper functions."""

    def test_format_task(self):
        """format_task should show id, content and user-facing priority."""
        from todoist_mcp.tasks import format_task

        result = format_task(make_task(123, "Test Task", priority=4))
        assert "Test Task" in result
        assert "123" in result
        assert "P1 (urgent)" in result  # API priority 4 = P1

    def test_format_task_completed(self):
        """format_task should show checkmark for done tasks."""
        from todoist_mcp.tasks import format_task

        result = format_task(make_task(1, "Done Task", is_completed=True))
        assert "✓" in result

    def test_format_task_detailed(self):
        from todoist_mcp.tasks import format_task

        task = make_task(1, "Plan trip", labels=["travel"], description="Book flights", due="2024-06-01")
        result = format_task(task, detailed=True)
        assert "(due: 2024-06-01)" in result
        assert "Labels: travel" in result
        assert "Description: Book flights" in result


# ============================================================================
# INTEGRATION TESTS (require a real Todoist account)
# ============================================================================

class TestTodoistConnection:
    """Integration tests against the real Todoist API."""

    def test_list_projects(self, todoist_configured):
        """Should list projects."""
        from todoist_mcp.client import TodoistClient

        projects = TodoistClient(todoist_configured).get_projects()
        assert isinstance(projects, list)
        if projects:
            assert "id" in projects[0]

    def test_list_tasks(self, todoist_configured):
        """Should list tasks."""
        from todoist_mcp.client import TodoistClient

        tasks = TodoistClient(todoist_configured).get_tasks()
        assert isinstance(tasks, list)


# ============================================================================
# SMOKE TEST (quick validation before publish)
# ============================================================================

class TestSmokeTest:
    """Quick smoke test to validate before publishing."""

    def test_smoke(self):
        """Basic smoke test - import, check tools, no crashes."""
        from todoist_mcp.server import mcp
        from todoist_mcp.tasks import format_task

        tools = mcp._tool_manager._tools
        assert len(tools) == 9

        assert "Test" in format_task(make_task(1, "Test"))
