"""
RemoteUploader - Contract between the upload queue and a media-hosting store.
"""

import io
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from PIL import Image, UnidentifiedImageError

from .cancellation import CancellationToken
from .source_file import SourceFile

ProgressCallback = Callable[[int], None]


@dataclass(frozen=True)
class UploadResult:
    """
    Canonical record returned by the remote store.

    Attributes:
        remote_url: Public URL of the stored artifact
        remote_id: Store-specific identifier (object key, public id)
        width: Image width in pixels (0 if unknown)
        height: Image height in pixels (0 if unknown)
        byte_size: Stored size in bytes
        format: Image format, e.g. 'jpeg'
    """
    remote_url: str
    remote_id: str
    width: int
    height: int
    byte_size: int
    format: str


class RemoteUploader(ABC):
    """
    Streams a final artifact to a remote store.

    Implementations must report progress in [0, 100], raise TransportError
    when the store cannot be reached or rejects the artifact, and raise
    CancelledError promptly once the token is cancelled.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    @abstractmethod
    def upload(
        self,
        artifact: SourceFile,
        item_id: str,
        on_progress: Optional[ProgressCallback] = None,
        token: Optional[CancellationToken] = None,
        caption: Optional[str] = None
    ) -> UploadResult:
        """
        Upload an artifact.

        Args:
            artifact: File to transmit
            item_id: Queue item id, used to derive an idempotent remote name
            on_progress: Called with progress 0-100
            token: Optional cancellation token
            caption: Optional caption stored as metadata

        Returns:
            UploadResult describing the stored artifact
        """

    @staticmethod
    def describe_image(data: bytes) -> Tuple[int, int, str]:
        """Read (width, height, format) from the image header; zeros if unreadable."""
        try:
            with Image.open(io.BytesIO(data)) as img:
                return img.width, img.height, (img.format or '').lower()
        except (UnidentifiedImageError, OSError):
            return 0, 0, ''
