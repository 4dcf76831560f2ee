"""
QueueConfig - Validation, scheduling and compression policy for the upload queue.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

MB = 1024 * 1024

ACCEPTED_IMAGE_TYPES: Dict[str, Tuple[str, ...]] = {
    'image/jpeg': ('.jpg', '.jpeg'),
    'image/png': ('.png',),
    'image/gif': ('.gif',),
    'image/webp': ('.webp',),
}


@dataclass
class QueueConfig:
    """
    Upload queue configuration.

    Attributes:
        max_file_size: Largest accepted file in bytes
        min_file_size: Smallest accepted file in bytes (1 = non-empty)
        allowed_types: Accepted MIME types
        max_items: Maximum files accepted from a single batch
        concurrency: Maximum items compressing or uploading at once
        max_retries: Automatic retries before an item is marked as error
        retry_base_delay_ms: Backoff unit; retry n waits n * this delay
        compress_threshold: Files larger than this are compressed
        compress_max_bytes: Target size for compressed output
        compress_max_dimension: Longest edge for compressed output
        thumbnail_size: Longest edge for preview thumbnails
        poll_interval: Seconds the scheduler waits between idle checks
    """
    max_file_size: int = 10 * MB
    min_file_size: int = 1
    allowed_types: List[str] = field(default_factory=lambda: list(ACCEPTED_IMAGE_TYPES))
    max_items: int = 20
    concurrency: int = 3
    max_retries: int = 3
    retry_base_delay_ms: int = 2000
    compress_threshold: int = 500 * 1024
    compress_max_bytes: int = 2 * MB
    compress_max_dimension: int = 2048
    thumbnail_size: int = 200
    poll_interval: float = 0.1

    @property
    def retry_base_delay(self) -> float:
        """Backoff unit in seconds."""
        return self.retry_base_delay_ms / 1000.0

    def retry_delay(self, retry_count: int) -> float:
        """Delay in seconds before the retry following `retry_count` earlier retries."""
        return self.retry_base_delay * (retry_count + 1)

    @property
    def allowed_extensions(self) -> List[str]:
        """File extensions matching the allowed MIME types."""
        extensions = []
        for content_type in self.allowed_types:
            extensions.extend(ACCEPTED_IMAGE_TYPES.get(content_type, ()))
        return extensions

    @classmethod
    def from_env(cls) -> 'QueueConfig':
        """
        Create configuration from environment variables.

        Unset variables keep their defaults.
        """
        config = cls()
        config.max_file_size = int(os.environ.get('PHOTOQUEUE_MAX_FILE_SIZE', config.max_file_size))
        config.max_items = int(os.environ.get('PHOTOQUEUE_MAX_ITEMS', config.max_items))
        config.concurrency = int(os.environ.get('PHOTOQUEUE_CONCURRENCY', config.concurrency))
        config.max_retries = int(os.environ.get('PHOTOQUEUE_MAX_RETRIES', config.max_retries))
        config.retry_base_delay_ms = int(
            os.environ.get('PHOTOQUEUE_RETRY_DELAY_MS', config.retry_base_delay_ms)
        )

        allowed = os.environ.get('PHOTOQUEUE_ALLOWED_TYPES')
        if allowed:
            config.allowed_types = [t.strip() for t in allowed.split(',') if t.strip()]

        return config

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []
        if self.max_file_size <= 0:
            errors.append("max_file_size must be positive")
        if self.min_file_size < 1:
            errors.append("min_file_size must be at least 1 byte")
        if self.min_file_size > self.max_file_size:
            errors.append("min_file_size cannot exceed max_file_size")
        if not self.allowed_types:
            errors.append("allowed_types cannot be empty")
        if self.max_items < 1:
            errors.append("max_items must be at least 1")
        if self.concurrency < 1:
            errors.append("concurrency must be at least 1")
        if self.max_retries < 0:
            errors.append("max_retries cannot be negative")
        if self.retry_base_delay_ms < 0:
            errors.append("retry_base_delay_ms cannot be negative")
        return errors
