"""Read-through cache for task lists.

One ``TaskCache`` is created by the server and handed to every handler that
reads or mutates tasks. Mutating handlers call ``invalidate()`` when they are
done.
"""

import logging
from typing import Optional

from cachetools import TTLCache

from .models import Task

logger = logging.getLogger("todoist-mcp.cache")

DEFAULT_MAXSIZE = 32
ALL_PROJECTS = "*"


class TaskCache:
    def __init__(self, ttl: float = 30.0, maxsize: int = DEFAULT_MAXSIZE, timer=None):
        kwargs = {"timer": timer} if timer is not None else {}
        self._entries: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl, **kwargs)
        self.hits = 0
        self.misses = 0

    @staticmethod
    def _key(project_id: Optional[str]) -> str:
        return f"tasks:{project_id or ALL_PROJECTS}"

    def get_tasks(self, client, project_id: Optional[str] = None) -> list[Task]:
        """Return cached tasks for the filter, fetching through ``client`` on a miss."""
        key = self._key(project_id)
        tasks = self._entries.get(key)
        if tasks is not None:
            self.hits += 1
            logger.debug(f"Cache HIT: {key}")
            return list(tasks)

        self.misses += 1
        logger.debug(f"Cache MISS: {key}")
        tasks = client.get_tasks(project_id=project_id)
        self._entries[key] = list(tasks)
        return list(tasks)

    def known_contents(self) -> dict[str, str]:
        """id -> content for every task currently cached."""
        contents = {}
        for tasks in list(self._entries.values()):
            for task in tasks:
                contents[task.id] = task.content
        return contents

    def invalidate(self) -> None:
        if self._entries:
            logger.debug(f"Cache invalidated ({len(self._entries)} entries)")
        self._entries.clear()

    def stats(self) -> dict:
        total = self.hits + self.misses
        return {
            "size": len(self._entries),
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hits / total if total else 0.0,
        }
