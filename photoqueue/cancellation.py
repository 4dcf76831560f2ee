"""
CancellationToken - Per-item abort signal passed into compression and upload.
"""

import threading

from .exceptions import CancelledError


class CancellationToken:
    """
    Thread-safe abort signal for one in-flight operation.

    The scheduler creates one token per admitted item; the compressor and
    uploaders poll it between units of work.
    """

    def __init__(self, item_id: str = ""):
        self.item_id = item_id
        self._event = threading.Event()

    def cancel(self) -> None:
        """Signal the operation to stop."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise CancelledError if cancel() has been called."""
        if self._event.is_set():
            raise CancelledError(f"Operation cancelled: {self.item_id or 'unknown item'}")

    def wait(self, timeout: float) -> bool:
        """Sleep up to timeout seconds, returning early (True) on cancellation."""
        return self._event.wait(timeout)
