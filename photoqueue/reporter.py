"""
Reporter - Generates human-readable reports for an upload run.
"""

import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence, TextIO

from .exceptions import ValidationError
from .queue_stats import QueueStats
from .upload_item import UploadItem, UploadStatus


class Reporter:
    """
    Generates human-readable reports from queue snapshots.
    """

    def __init__(
        self,
        output: Optional[TextIO] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize reporter.

        Args:
            output: Output stream (default: stdout)
            logger: Optional logger instance
        """
        self.output = output or sys.stdout
        self.logger = logger or logging.getLogger(__name__)

    def _print(self, text: str = "") -> None:
        """Print to output stream."""
        print(text, file=self.output)

    def _format_bytes(self, bytes_val: float) -> str:
        """Format bytes as human-readable string."""
        for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
            if bytes_val < 1024:
                return f"{bytes_val:.1f} {unit}"
            bytes_val /= 1024
        return f"{bytes_val:.1f} PB"

    def _format_duration(self, seconds: float) -> str:
        """Format duration as human-readable string."""
        if seconds < 60:
            return f"{seconds:.1f} seconds"
        elif seconds < 3600:
            return f"{seconds / 60:.1f} minutes"
        else:
            return f"{seconds / 3600:.1f} hours"

    def report_summary(self, stats: QueueStats) -> None:
        """Print overall totals for the queue."""
        self._print("=" * 60)
        self._print("UPLOAD SUMMARY")
        self._print("=" * 60)
        self._print(f"  Files:       {stats.total_files}")
        self._print(f"  Uploaded:    {stats.success_count}")
        self._print(f"  Failed:      {stats.error_count}")
        if stats.pending_count or stats.active_count:
            self._print(f"  Remaining:   {stats.pending_count + stats.active_count}")
        self._print(f"  Source size: {self._format_bytes(stats.total_size)}")
        self._print(f"  Uploaded:    {self._format_bytes(stats.uploaded_size)}")
        if stats.success_count:
            self._print(f"  Compression: {stats.average_compression_ratio:.2f}x average")
        if stats.estimated_time_remaining:
            self._print(f"  ETA:         {self._format_duration(stats.estimated_time_remaining)}")
        self._print("=" * 60)

    def report_items(self, items: Sequence[UploadItem]) -> None:
        """Print one line per item."""
        self._print()
        self._print("FILES")
        self._print("-" * 60)
        for item in items:
            line = f"  {item.format_status()}"
            if item.status == UploadStatus.SUCCESS and item.duration_seconds is not None:
                line += f" in {self._format_duration(item.duration_seconds)}"
            self._print(line)

    def report_failures(self, items: Sequence[UploadItem]) -> None:
        """Print items that exhausted their retries."""
        failed = [item for item in items if item.status == UploadStatus.ERROR]
        if not failed:
            return

        self._print()
        self._print(f"FAILED UPLOADS ({len(failed)})")
        self._print("-" * 60)
        for item in failed:
            self._print(f"  {item.filename}: {item.error} (after {item.retry_count} retries)")

    def report_rejections(self, rejected: List[ValidationError]) -> None:
        """Print files that failed validation."""
        if not rejected:
            return

        self._print()
        self._print(f"REJECTED FILES ({len(rejected)})")
        self._print("-" * 60)
        for error in rejected:
            self._print(f"  {error.filename}: {error.reason}")

    def save_json(
        self,
        filepath: str,
        items: Sequence[UploadItem],
        stats: QueueStats,
        rejected: List[ValidationError]
    ) -> None:
        """Save the run's items, totals and rejections to a JSON file."""
        path = Path(filepath)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            'stats': stats.to_dict(),
            'items': [item.to_dict() for item in items],
            'rejected': [{'filename': e.filename, 'reason': e.reason} for e in rejected],
        }
        with open(path, 'w') as f:
            json.dump(data, f, indent=2)

        self.logger.info(f"Report saved: {filepath}")
