"""
QueueStore - Authoritative in-memory collection of upload items.
"""

from typing import Dict, List, Optional, Tuple

from .upload_item import UploadItem, UploadStatus


class QueueStore:
    """
    Mapping from item id to UploadItem.

    Every mutation replaces the whole record for an id, so a reader holding
    a record never sees it change. The store does no locking of its own;
    its owner serializes access.
    """

    def __init__(self):
        self._items: Dict[str, UploadItem] = {}

    def get(self, item_id: str) -> Optional[UploadItem]:
        return self._items.get(item_id)

    def add(self, item: UploadItem) -> None:
        """Add a new item."""
        if item.id in self._items:
            raise KeyError(f"Duplicate item id: {item.id}")
        self._items[item.id] = item

    def update(self, item_id: str, **changes) -> Optional[UploadItem]:
        """
        Replace the record for item_id with a copy carrying `changes`.

        Returns:
            The new record, or None if the id is not in the store
        """
        current = self._items.get(item_id)
        if current is None:
            return None
        updated = current.evolve(**changes)
        self._items[item_id] = updated
        return updated

    def remove(self, item_id: str) -> Optional[UploadItem]:
        """Remove and return an item, or None if absent."""
        return self._items.pop(item_id, None)

    def remove_where(self, status: UploadStatus) -> List[UploadItem]:
        """Remove every item in the given state."""
        removed = [item for item in self._items.values() if item.status == status]
        for item in removed:
            del self._items[item.id]
        return removed

    def snapshot(self) -> Tuple[UploadItem, ...]:
        """All items ordered by priority (earliest enqueued first)."""
        return tuple(sorted(self._items.values(), key=lambda item: item.sort_key))

    def ready(self, now: float) -> List[UploadItem]:
        """Pending items whose backoff has elapsed, ordered by priority."""
        items = [item for item in self._items.values() if item.is_ready(now)]
        return sorted(items, key=lambda item: item.sort_key)

    def count(self, status: UploadStatus) -> int:
        return sum(1 for item in self._items.values() if item.status == status)

    def next_retry_at(self) -> Optional[float]:
        """Earliest retry_at among pending items still waiting out a backoff."""
        times = [
            item.retry_at for item in self._items.values()
            if item.status == UploadStatus.PENDING and item.retry_at is not None
        ]
        return min(times) if times else None
