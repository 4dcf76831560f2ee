"""
S3Uploader - Uploads queue artifacts to S3/MinIO.
"""

import io
import logging
import threading
from typing import Optional
from urllib.parse import quote

import boto3
from boto3.exceptions import S3UploadFailedError
from boto3.s3.transfer import TransferConfig
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .cancellation import CancellationToken
from .exceptions import TransportError
from .s3_config import S3Config
from .source_file import SourceFile
from .uploader import ProgressCallback, RemoteUploader, UploadResult


class S3Uploader(RemoteUploader):
    """
    Remote store adapter for S3/MinIO.

    Objects are keyed by queue item id, so a retried upload overwrites
    the object written by an earlier partial attempt.
    """

    def __init__(self, config: S3Config, logger: Optional[logging.Logger] = None):
        """
        Initialize S3 uploader.

        Args:
            config: S3 configuration
            logger: Optional logger instance
        """
        super().__init__(logger)
        self.config = config

        self._client = boto3.client(
            's3',
            endpoint_url=config.endpoint,
            aws_access_key_id=config.access_key,
            aws_secret_access_key=config.secret_key,
            region_name=config.region,
            config=Config(
                signature_version='s3v4',
                s3={'addressing_style': 'path'}
            ),
            verify=config.verify_ssl
        )
        # Callbacks must run on the calling thread so a cancellation raised
        # inside them aborts the transfer.
        self._transfer_config = TransferConfig(use_threads=False)

    @property
    def client(self):
        """Return the underlying boto3 client."""
        return self._client

    def upload(
        self,
        artifact: SourceFile,
        item_id: str,
        on_progress: Optional[ProgressCallback] = None,
        token: Optional[CancellationToken] = None,
        caption: Optional[str] = None
    ) -> UploadResult:
        key = self.config.object_key(item_id, artifact.extension)
        callback = _ProgressTracker(artifact.size, on_progress, token)

        if token is not None:
            token.raise_if_cancelled()

        self.logger.debug(f"Uploading: {key} ({artifact.size} bytes)")
        try:
            self._client.upload_fileobj(
                io.BytesIO(artifact.data),
                self.config.bucket,
                key,
                ExtraArgs={
                    'ContentType': artifact.content_type or 'application/octet-stream',
                    'Metadata': self._build_metadata(artifact, caption),
                },
                Callback=callback,
                Config=self._transfer_config,
            )
        except ClientError as e:
            code = e.response.get('Error', {}).get('Code')
            raise TransportError(f"Upload failed ({code}): {e}", status_code=code) from e
        except (BotoCoreError, S3UploadFailedError) as e:
            raise TransportError(f"Upload failed: {e}") from e

        callback.finish()
        width, height, image_format = self.describe_image(artifact.data)

        return UploadResult(
            remote_url=self.config.public_url(key),
            remote_id=key,
            width=width,
            height=height,
            byte_size=artifact.size,
            format=image_format,
        )

    def _build_metadata(self, artifact: SourceFile, caption: Optional[str]) -> dict:
        """User metadata stored with the object (values must be ASCII)."""
        metadata = {
            'original-filename': quote(artifact.name),
            'tags': quote(','.join(self.config.tags)),
            'folder': quote(self.config.folder),
        }
        if caption:
            metadata['caption'] = quote(caption)
        return metadata


class _ProgressTracker:
    """boto3 transfer callback translating byte counts into percentages."""

    def __init__(
        self,
        total: int,
        on_progress: Optional[ProgressCallback],
        token: Optional[CancellationToken]
    ):
        self.total = total
        self.on_progress = on_progress
        self.token = token
        self.transferred = 0
        self._lock = threading.Lock()

    def __call__(self, bytes_amount: int) -> None:
        if self.token is not None:
            self.token.raise_if_cancelled()
        with self._lock:
            self.transferred += bytes_amount
            percent = int(self.transferred * 100 / self.total) if self.total else 100
        if self.on_progress:
            self.on_progress(min(percent, 100))

    def finish(self) -> None:
        if self.on_progress:
            self.on_progress(100)
