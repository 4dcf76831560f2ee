"""
FileValidator - Client-side checks applied before a file becomes a queue item.
"""

import logging
from typing import Iterable, List, Optional, Tuple

from .exceptions import ValidationError
from .queue_config import QueueConfig
from .source_file import SourceFile

# Content types browsers and mimetypes report when they cannot tell
GENERIC_CONTENT_TYPES = {'', 'application/octet-stream'}


class FileValidator:
    """
    Applies the queue's validation policy to submitted files.
    """

    def __init__(self, config: QueueConfig, logger: Optional[logging.Logger] = None):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)

    def validate(self, file: SourceFile) -> None:
        """
        Validate a single file.

        Raises:
            ValidationError: If the file is empty, too small, too large
                or not an allowed image type
        """
        if file.size == 0:
            raise ValidationError(file.name, "File is empty")

        if file.size < self.config.min_file_size:
            raise ValidationError(
                file.name,
                f"File is smaller than the {self._format_bytes(self.config.min_file_size)} minimum"
            )

        if file.size > self.config.max_file_size:
            raise ValidationError(
                file.name,
                f"File size exceeds {self._format_bytes(self.config.max_file_size)} limit"
            )

        if not self.is_allowed_type(file):
            raise ValidationError(
                file.name,
                f"Invalid file type ({file.content_type or file.extension or 'unknown'}). "
                f"Allowed: {', '.join(self.config.allowed_types)}"
            )

    def is_allowed_type(self, file: SourceFile) -> bool:
        """Check MIME type, falling back to the extension when the type is generic."""
        content_type = file.content_type.lower()
        if content_type not in GENERIC_CONTENT_TYPES:
            return content_type in self.config.allowed_types
        return file.extension in self.config.allowed_extensions

    def validate_batch(
        self,
        files: Iterable[SourceFile]
    ) -> Tuple[List[SourceFile], List[ValidationError]]:
        """
        Validate a batch of files.

        Files beyond max_items are rejected even if otherwise valid.

        Returns:
            Tuple of (accepted files, rejection errors)
        """
        accepted: List[SourceFile] = []
        rejected: List[ValidationError] = []

        for file in files:
            try:
                self.validate(file)
            except ValidationError as e:
                self.logger.warning(f"Rejected {e.filename}: {e.reason}")
                rejected.append(e)
                continue

            if len(accepted) >= self.config.max_items:
                error = ValidationError(
                    file.name,
                    f"Upload limit reached ({self.config.max_items} photos per batch)"
                )
                self.logger.warning(f"Rejected {error.filename}: {error.reason}")
                rejected.append(error)
                continue

            accepted.append(file)

        return accepted, rejected

    @staticmethod
    def _format_bytes(bytes_val: float) -> str:
        """Format bytes as human-readable string."""
        for unit in ['B', 'KB', 'MB', 'GB']:
            if bytes_val < 1024:
                return f"{bytes_val:.0f}{unit}"
            bytes_val /= 1024
        return f"{bytes_val:.0f}TB"
