"""
Photo Upload Queue Package

Client-side upload pipeline for event photos:
    1. Enqueue: validate files and generate preview thumbnails
    2. Drain: compress oversized images and upload them with bounded
       concurrency, retrying failures with linear backoff

Supports both S3 and local filesystem storage.
"""

__version__ = "1.0.0"

from .exceptions import (
    UploadQueueError,
    ValidationError,
    TransformError,
    TransportError,
    CancelledError,
)
from .cancellation import CancellationToken
from .source_file import SourceFile
from .upload_item import UploadItem, UploadStatus
from .queue_config import QueueConfig
from .validation import FileValidator
from .thumbnail_generator import ThumbnailGenerator
from .compressor import Compressor
from .uploader import RemoteUploader, UploadResult
from .s3_config import S3Config
from .s3_uploader import S3Uploader
from .local_uploader import LocalConfig, LocalUploader
from .queue_store import QueueStore
from .queue_stats import QueueStats, compute_stats
from .upload_queue import UploadQueue, EnqueueResult
from .queue_progress import QueueProgress
from .reporter import Reporter

__all__ = [
    "UploadQueueError",
    "ValidationError",
    "TransformError",
    "TransportError",
    "CancelledError",
    "CancellationToken",
    "SourceFile",
    "UploadItem",
    "UploadStatus",
    "QueueConfig",
    "FileValidator",
    "ThumbnailGenerator",
    "Compressor",
    "RemoteUploader",
    "UploadResult",
    "S3Config",
    "S3Uploader",
    "LocalConfig",
    "LocalUploader",
    "QueueStore",
    "QueueStats",
    "compute_stats",
    "UploadQueue",
    "EnqueueResult",
    "QueueProgress",
    "Reporter",
]
