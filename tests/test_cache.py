"""
Tests for the task list cache.
"""

from conftest import FakeClient, make_task
from todoist_mcp.cache import TaskCache


class Clock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestTaskCache:
    """Read-through behaviour, expiry and invalidation."""

    def test_read_through(self):
        client = FakeClient([make_task(1, "a")])
        cache = TaskCache(ttl=30)

        cache.get_tasks(client)
        cache.get_tasks(client)

        assert client.calls == [("get_tasks", None)]
        assert cache.stats()["hits"] == 1
        assert cache.stats()["misses"] == 1
        assert cache.stats()["hit_rate"] == 0.5

    def test_keyed_by_project(self):
        client = FakeClient([make_task(1, "a", project_id="p1"), make_task(2, "b")])
        cache = TaskCache(ttl=30)

        assert len(cache.get_tasks(client, project_id="p1")) == 1
        assert len(cache.get_tasks(client)) == 2
        assert cache.stats()["size"] == 2

    def test_expiry(self):
        clock = Clock()
        client = FakeClient([make_task(1, "a")])
        cache = TaskCache(ttl=30, timer=clock)

        cache.get_tasks(client)
        clock.now = 31
        cache.get_tasks(client)

        assert len(client.calls) == 2

    def test_invalidate(self):
        client = FakeClient([make_task(1, "a")])
        cache = TaskCache(ttl=30)
        cache.get_tasks(client)

        cache.invalidate()
        cache.get_tasks(client)

        assert len(client.calls) == 2

    def test_returns_copies(self):
        client = FakeClient([make_task(1, "a")])
        cache = TaskCache(ttl=30)
        cache.get_tasks(client).clear()
        assert len(cache.get_tasks(client)) == 1

    def test_known_contents(self):
        client = FakeClient([make_task(1, "Buy milk"), make_task(2, "File taxes")])
        cache = TaskCache(ttl=30)
        assert cache.known_contents() == {}
        cache.get_tasks(client)
        assert cache.known_contents() == {"1": "Buy milk", "2": "File taxes"}
