from collections import deque
from typing import Deque, Iterable, List, Optional

from skillforge.models.user import ActivityEntry


class RecentActivity:
    """Most-recent-first buffer holding at most one entry per topic.

    Once ``capacity`` is reached the least recently touched topic falls off.
    """

    def __init__(self, capacity: int = 10, entries: Iterable[ActivityEntry] = ()):
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._entries: Deque[ActivityEntry] = deque(maxlen=capacity)
        # Stored entries are already most-recent-first; keep the first of each topic
        seen = set()
        for entry in entries:
            if entry.topic_id in seen or len(self._entries) == capacity:
                continue
            seen.add(entry.topic_id)
            self._entries.append(entry)

    def upsert_most_recent(self, topic_id: str, entry: ActivityEntry) -> None:
        """Move ``topic_id`` to the front, replacing any older entry for it."""
        existing = self.get(topic_id)
        if existing is not None:
            self._entries.remove(existing)
        # appendleft on a full deque drops the entry at the right end
        self._entries.appendleft(entry.model_copy(update={"topic_id": topic_id}))

    def get(self, topic_id: str) -> Optional[ActivityEntry]:
        for entry in self._entries:
            if entry.topic_id == topic_id:
                return entry
        return None

    def entries(self) -> List[ActivityEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)
