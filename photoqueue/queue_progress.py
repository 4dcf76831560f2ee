"""
QueueProgress - Tracks and displays upload queue progress.
"""

import logging
import threading
from typing import Dict, Optional, Sequence

from .queue_stats import QueueStats
from .upload_item import UploadItem, UploadStatus


class QueueProgress:
    """
    Queue listener that reports item transitions and overall progress.

    Register with UploadQueue.subscribe(progress). Listeners are called from
    several threads, so state changes are serialized with a lock.
    """

    def __init__(
        self,
        show_files: bool = False,
        log_interval: int = 10,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize progress tracker.

        Args:
            show_files: If True, print each file as it changes state
            log_interval: Log summary progress every N finished items (when not show_files)
            logger: Optional logger instance
        """
        self.show_files = show_files
        self.log_interval = log_interval
        self.logger = logger or logging.getLogger(__name__)
        self.last_logged = 0
        self._statuses: Dict[str, UploadStatus] = {}
        self._lock = threading.Lock()

    def on_queue_changed(self, items: Sequence[UploadItem], stats: QueueStats) -> None:
        """
        Called after every queue mutation.

        Args:
            items: Current queue snapshot
            stats: Statistics for the snapshot
        """
        with self._lock:
            for item in items:
                previous = self._statuses.get(item.id)
                if previous != item.status:
                    self._statuses[item.id] = item.status
                    self.on_status_changed(item, previous)

            current_ids = {item.id for item in items}
            for item_id in list(self._statuses):
                if item_id not in current_ids:
                    del self._statuses[item_id]

            self.on_progress_update(stats)

    def on_status_changed(self, item: UploadItem, previous: Optional[UploadStatus]) -> None:
        """Called when an item enters a new state."""
        if not self.show_files:
            return

        if item.status == UploadStatus.SUCCESS:
            size_str = self._format_bytes(item.uploaded_bytes)
            print(f"  [OK] {item.filename} -> {item.remote_url} ({size_str})")
        elif item.status == UploadStatus.ERROR:
            print(f"  [ERROR] {item.filename} -> {item.error or 'failed'}")
        elif item.status == UploadStatus.PENDING and previous is not None:
            print(f"  [RETRY] {item.filename} -> attempt {item.retry_count + 1}")
        elif item.status == UploadStatus.COMPRESSING:
            print(f"  [START] {item.filename} ({self._format_bytes(item.source_file.size)})")

    def on_progress_update(self, stats: QueueStats) -> None:
        """
        Log summary progress every log_interval finished items.

        Args:
            stats: Current queue statistics
        """
        total_done = stats.completed_count
        # clear_completed() can shrink the count
        self.last_logged = min(self.last_logged, total_done)

        if not self.show_files and total_done - self.last_logged >= self.log_interval:
            self.last_logged = total_done
            self.logger.info(
                f"Progress: {stats.success_count} uploaded, {stats.error_count} errors "
                f"(~{stats.estimated_time_remaining:.0f}s remaining, {stats.remaining_count} left)"
            )

    @staticmethod
    def _format_bytes(bytes_val: Optional[float]) -> str:
        """Format bytes as human-readable string."""
        if bytes_val is None:
            return "unknown"
        for unit in ['B', 'KB', 'MB', 'GB']:
            if bytes_val < 1024:
                return f"{bytes_val:.1f} {unit}"
            bytes_val /= 1024
        return f"{bytes_val:.1f} TB"

    def __call__(self, items: Sequence[UploadItem], stats: QueueStats) -> None:
        """Allow use as a queue listener."""
        self.on_queue_changed(items, stats)
