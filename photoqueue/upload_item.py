"""
UploadItem - Lifecycle record for one file in the upload queue.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional

from .source_file import SourceFile


class UploadStatus(str, Enum):
    """
    Item states.

    pending -> compressing -> uploading -> success, with compressing or
    uploading able to fail into error (or back to pending on retry).
    """
    PENDING = 'pending'
    COMPRESSING = 'compressing'
    UPLOADING = 'uploading'
    SUCCESS = 'success'
    ERROR = 'error'


ACTIVE_STATUSES = frozenset({UploadStatus.COMPRESSING, UploadStatus.UPLOADING})
TERMINAL_STATUSES = frozenset({UploadStatus.SUCCESS, UploadStatus.ERROR})


@dataclass(frozen=True)
class UploadItem:
    """
    Record for a single queued file and its upload status.

    Records are never mutated in place; use evolve() to produce the
    replacement record.

    Attributes:
        id: Unique identifier assigned at enqueue time
        source_file: Original file as submitted
        priority: Enqueue timestamp; lower is served first
        sequence: Enqueue counter breaking ties between equal priorities
        status: Current state
        progress: Overall progress 0-100 for the current attempt
        retry_count: Automatic retries consumed
        caption: Optional user caption
        compressed_artifact: Compressed file, if compression ran
        thumbnail: Preview image bytes generated at enqueue time
        error: Failure reason (error state only)
        remote_url: URL of the uploaded artifact (success state only)
        remote_id: Remote store identifier (success state only)
        uploaded_bytes: Bytes stored remotely (success state only)
        retry_at: Earliest time a retried item may be admitted again
        started_at: Start of the most recent attempt
        ended_at: End of the most recent attempt
    """
    id: str
    source_file: SourceFile
    priority: float
    sequence: int = 0
    status: UploadStatus = UploadStatus.PENDING
    progress: int = 0
    retry_count: int = 0
    caption: Optional[str] = None
    compressed_artifact: Optional[SourceFile] = field(default=None, repr=False)
    thumbnail: Optional[bytes] = field(default=None, repr=False)
    error: Optional[str] = None
    remote_url: Optional[str] = None
    remote_id: Optional[str] = None
    uploaded_bytes: Optional[int] = None
    retry_at: Optional[float] = None
    started_at: Optional[float] = None
    ended_at: Optional[float] = None

    def evolve(self, **changes) -> 'UploadItem':
        """Return a copy of this record with the given fields replaced."""
        return replace(self, **changes)

    @property
    def filename(self) -> str:
        return self.source_file.name

    @property
    def artifact(self) -> SourceFile:
        """The file that is (or will be) transmitted."""
        return self.compressed_artifact or self.source_file

    @property
    def sort_key(self) -> tuple:
        return (self.priority, self.sequence)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def is_ready(self, now: float) -> bool:
        """True if pending and not waiting out a retry backoff."""
        if self.status != UploadStatus.PENDING:
            return False
        return self.retry_at is None or self.retry_at <= now

    @property
    def duration_seconds(self) -> Optional[float]:
        """Duration of the most recent attempt, if it has finished."""
        if self.started_at is None or self.ended_at is None:
            return None
        return self.ended_at - self.started_at

    def format_status(self) -> str:
        """Format a one-line status for display."""
        line = f"{self.filename} [{self.status.value}] {self.progress}%"
        if self.retry_count:
            line += f" (retry {self.retry_count})"
        if self.status == UploadStatus.SUCCESS:
            line += f" -> {self.remote_url}"
        elif self.status == UploadStatus.ERROR:
            line += f" -> {self.error}"
        return line

    def to_dict(self) -> dict:
        """Convert to a JSON-friendly dictionary (file contents omitted)."""
        return {
            'id': self.id,
            'filename': self.filename,
            'source_size': self.source_file.size,
            'compressed_size': self.compressed_artifact.size if self.compressed_artifact else None,
            'caption': self.caption,
            'status': self.status.value,
            'progress': self.progress,
            'retry_count': self.retry_count,
            'priority': self.priority,
            'error': self.error,
            'remote_url': self.remote_url,
            'remote_id': self.remote_id,
            'uploaded_bytes': self.uploaded_bytes,
            'started_at': self.started_at,
            'ended_at': self.ended_at,
        }
