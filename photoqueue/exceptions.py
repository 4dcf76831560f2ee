"""
Exceptions - Error hierarchy for the upload pipeline.

- ValidationError: file rejected before it enters the queue
- TransformError: compression or thumbnail generation failed (retried)
- TransportError: upload to the remote store failed (retried)
- CancelledError: operation aborted by the caller, never surfaced as a failure
"""

from typing import Optional


class UploadQueueError(Exception):
    """Base exception for all upload pipeline errors."""
    pass


class ValidationError(UploadQueueError):
    """
    A file was rejected by the validation policy.

    Attributes:
        filename: Name of the rejected file
        reason: Human-readable rejection reason
    """

    def __init__(self, filename: str, reason: str):
        super().__init__(f"{filename}: {reason}")
        self.filename = filename
        self.reason = reason


class TransformError(UploadQueueError):
    """Image decoding, resizing or encoding failed."""
    pass


class TransportError(UploadQueueError):
    """
    Upload to the remote store failed.

    Attributes:
        status_code: HTTP status or service error code, when known
    """

    def __init__(self, message: str, status_code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code


class CancelledError(UploadQueueError):
    """Operation aborted through its cancellation token."""
    pass
