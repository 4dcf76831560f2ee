"""
QueueStats - Running totals derived from a queue snapshot.
"""

from dataclasses import dataclass, asdict
from typing import Iterable, Optional

from .upload_item import UploadItem, UploadStatus


@dataclass(frozen=True)
class QueueStats:
    """
    Statistics for the upload queue.

    Attributes:
        total_files: Items currently in the queue
        success_count: Items uploaded successfully
        error_count: Items that exhausted their retries
        pending_count: Items waiting for admission (including backoff)
        active_count: Items compressing or uploading
        total_size: Source bytes of all items
        uploaded_size: Bytes stored remotely for successful items
        average_compression_ratio: Mean source/uploaded size over successes
        estimated_time_remaining: Seconds, from observed throughput
    """
    total_files: int = 0
    success_count: int = 0
    error_count: int = 0
    pending_count: int = 0
    active_count: int = 0
    total_size: int = 0
    uploaded_size: int = 0
    average_compression_ratio: float = 0.0
    estimated_time_remaining: float = 0.0

    @property
    def completed_count(self) -> int:
        """Total finished (success + error)."""
        return self.success_count + self.error_count

    @property
    def remaining_count(self) -> int:
        return self.total_files - self.completed_count

    @property
    def success_rate(self) -> float:
        """Percentage of finished items that succeeded."""
        if self.completed_count == 0:
            return 0.0
        return (self.success_count / self.completed_count) * 100

    def to_dict(self) -> dict:
        return asdict(self)


def compute_stats(items: Iterable[UploadItem]) -> QueueStats:
    """
    Derive statistics from queue items in a single pass.

    Throughput is measured over the wall-clock window covering every
    successful attempt, so concurrent uploads are not double counted.
    """
    total_files = success_count = error_count = pending_count = active_count = 0
    total_size = uploaded_size = remaining_bytes = succeeded_source_bytes = 0
    ratio_sum = 0.0
    window_start: Optional[float] = None
    window_end: Optional[float] = None

    for item in items:
        total_files += 1
        source_size = item.source_file.size
        total_size += source_size

        if item.status == UploadStatus.SUCCESS:
            success_count += 1
            uploaded = item.uploaded_bytes if item.uploaded_bytes is not None else item.artifact.size
            uploaded_size += uploaded
            if uploaded > 0:
                ratio_sum += source_size / uploaded
            if item.started_at is not None and item.ended_at is not None:
                succeeded_source_bytes += source_size
                window_start = item.started_at if window_start is None else min(window_start, item.started_at)
                window_end = item.ended_at if window_end is None else max(window_end, item.ended_at)
        elif item.status == UploadStatus.ERROR:
            error_count += 1
        elif item.status == UploadStatus.PENDING:
            pending_count += 1
            remaining_bytes += source_size
        else:
            active_count += 1
            remaining_bytes += source_size

    average_ratio = ratio_sum / success_count if success_count else 0.0

    eta = 0.0
    if window_start is not None and window_end is not None and remaining_bytes:
        elapsed = window_end - window_start
        if elapsed > 0 and succeeded_source_bytes > 0:
            throughput = succeeded_source_bytes / elapsed
            eta = remaining_bytes / throughput

    return QueueStats(
        total_files=total_files,
        success_count=success_count,
        error_count=error_count,
        pending_count=pending_count,
        active_count=active_count,
        total_size=total_size,
        uploaded_size=uploaded_size,
        average_compression_ratio=average_ratio,
        estimated_time_remaining=eta,
    )
