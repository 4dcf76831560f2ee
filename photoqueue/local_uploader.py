"""
LocalUploader - Stores queue artifacts on the local filesystem.

Useful for development and for events where photos are collected on a
local NAS instead of a hosted service.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .cancellation import CancellationToken
from .exceptions import TransportError
from .source_file import SourceFile
from .uploader import ProgressCallback, RemoteUploader, UploadResult

CHUNK_SIZE = 64 * 1024


@dataclass
class LocalConfig:
    """
    Local storage configuration.

    Attributes:
        root_path: Directory that receives uploads
        prefix: Subdirectory under the root
        folder: Event folder under the prefix
    """
    root_path: str
    prefix: str = 'uploads'
    folder: str = 'guest_photos'

    @property
    def target_dir(self) -> str:
        return os.path.join(self.root_path, self.prefix, self.folder)

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []
        if not self.root_path:
            errors.append("Local root path is required")
        elif not os.path.isdir(self.root_path):
            errors.append(f"Local root path does not exist: {self.root_path}")
        return errors


class LocalUploader(RemoteUploader):
    """
    Remote store adapter writing into a local directory.
    """

    def __init__(self, config: LocalConfig, logger: Optional[logging.Logger] = None):
        super().__init__(logger)
        self.config = config

    def upload(
        self,
        artifact: SourceFile,
        item_id: str,
        on_progress: Optional[ProgressCallback] = None,
        token: Optional[CancellationToken] = None,
        caption: Optional[str] = None
    ) -> UploadResult:
        target_dir = self.config.target_dir
        filename = f"{item_id}{artifact.extension}"
        path = os.path.join(target_dir, filename)
        partial_path = f"{path}.part"

        try:
            os.makedirs(target_dir, exist_ok=True)
            with open(partial_path, 'wb') as f:
                written = 0
                for offset in range(0, artifact.size, CHUNK_SIZE):
                    if token is not None:
                        token.raise_if_cancelled()
                    chunk = artifact.data[offset:offset + CHUNK_SIZE]
                    f.write(chunk)
                    written += len(chunk)
                    if on_progress:
                        on_progress(int(written * 100 / artifact.size))
            os.replace(partial_path, path)
            if caption:
                with open(f"{path}.caption.txt", 'w', encoding='utf-8') as f:
                    f.write(caption)
        except OSError as e:
            self._remove_partial(partial_path)
            raise TransportError(f"Write failed for {path}: {e}") from e
        except BaseException:
            self._remove_partial(partial_path)
            raise

        if on_progress:
            on_progress(100)
        self.logger.debug(f"Stored {artifact.name} at {path}")

        width, height, image_format = self.describe_image(artifact.data)
        relative_id = '/'.join([self.config.prefix, self.config.folder, filename])

        return UploadResult(
            remote_url=Path(os.path.abspath(path)).as_uri(),
            remote_id=relative_id,
            width=width,
            height=height,
            byte_size=artifact.size,
            format=image_format,
        )

    def _remove_partial(self, partial_path: str) -> None:
        if os.path.isfile(partial_path):
            os.remove(partial_path)
