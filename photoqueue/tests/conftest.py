"""
Pytest fixtures for photoqueue tests.
"""

import io
import os
import threading
import time

import pytest

from photoqueue.exceptions import TransportError
from photoqueue.source_file import SourceFile
from photoqueue.uploader import RemoteUploader, UploadResult

MB = 1024 * 1024


class FakeUploader(RemoteUploader):
    """
    In-memory remote store for scheduler tests.

    Attributes:
        calls: Item ids in the order uploads started
        attempts: Upload attempts per item id
        max_active: Highest number of concurrent uploads observed
        started: Set when the first upload begins
        release: If given, uploads block until it is set (or cancelled)
        abort_delay: Seconds a cancelled upload takes to wind down
    """

    def __init__(self, fail_times=0, always_fail=False, delay=0.0, release=None, abort_delay=0.0):
        super().__init__()
        self.fail_times = fail_times
        self.always_fail = always_fail
        self.delay = delay
        self.release = release
        self.abort_delay = abort_delay
        self.calls = []
        self.attempts = {}
        self.captions = {}
        self.active = 0
        self.max_active = 0
        self.started = threading.Event()
        self._lock = threading.Lock()

    def upload(self, artifact, item_id, on_progress=None, token=None, caption=None):
        with self._lock:
            self.calls.append(item_id)
            self.captions[item_id] = caption
            self.attempts[item_id] = self.attempts.get(item_id, 0) + 1
            attempt = self.attempts[item_id]
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        self.started.set()

        try:
            if self.release is not None:
                while not self.release.wait(0.01):
                    if token is not None and token.cancelled:
                        time.sleep(self.abort_delay)
                        token.raise_if_cancelled()
            if self.delay:
                time.sleep(self.delay)
            if token is not None:
                token.raise_if_cancelled()

            if on_progress:
                on_progress(50)
                on_progress(100)

            if self.always_fail or attempt <= self.fail_times:
                raise TransportError("Upload failed with status 503", status_code='503')

            return UploadResult(
                remote_url=f"https://media.example.com/{item_id}{artifact.extension}",
                remote_id=item_id,
                width=0,
                height=0,
                byte_size=artifact.size,
                format='jpeg',
            )
        finally:
            with self._lock:
                self.active -= 1


@pytest.fixture
def fake_uploader():
    """Fixture providing an uploader that always succeeds."""
    return FakeUploader()


@pytest.fixture
def queue_config():
    """Fixture providing a fast queue configuration with compression disabled."""
    from photoqueue.queue_config import QueueConfig

    return QueueConfig(
        retry_base_delay_ms=0,
        compress_threshold=100 * MB,
        max_file_size=20 * MB,
        poll_interval=0.01,
    )


@pytest.fixture
def make_queue(queue_config, logger):
    """Factory fixture creating UploadQueues that are shut down after the test."""
    from photoqueue.upload_queue import UploadQueue

    queues = []

    def _make(uploader, config=None, **kwargs):
        kwargs.setdefault('generate_thumbnails', False)
        queue = UploadQueue(uploader, config=config or queue_config, logger=logger, **kwargs)
        queues.append(queue)
        return queue

    yield _make

    for queue in queues:
        queue.shutdown(cancel_pending=True)


@pytest.fixture
def make_file():
    """Factory fixture creating placeholder files of a given size."""
    def _make(name='photo.jpg', size=1024, content_type='image/jpeg'):
        return SourceFile(name=name, data=b'x' * size, content_type=content_type)
    return _make


@pytest.fixture
def s3_config():
    """Fixture providing S3 configuration."""
    from photoqueue.s3_config import S3Config

    return S3Config(
        endpoint='https://test-endpoint.example.com:9000',
        bucket='test-bucket',
        prefix='uploads',
        folder='guest_photos',
        access_key='test-access-key',
        secret_key='test-secret-key',
        region='us-east-1',
    )


@pytest.fixture
def sample_image_bytes():
    """Fixture providing sample JPEG image bytes."""
    from PIL import Image

    img = Image.new('RGB', (100, 100), color='red')
    buffer = io.BytesIO()
    img.save(buffer, format='JPEG')
    return buffer.getvalue()


@pytest.fixture
def sample_png_bytes():
    """Fixture providing sample PNG image bytes."""
    from PIL import Image

    img = Image.new('RGBA', (100, 100), color=(255, 0, 0, 128))
    buffer = io.BytesIO()
    img.save(buffer, format='PNG')
    return buffer.getvalue()


@pytest.fixture
def sample_photo(sample_image_bytes):
    """Fixture providing a small JPEG SourceFile."""
    return SourceFile(name='IMG_0001.jpg', data=sample_image_bytes, content_type='image/jpeg')


@pytest.fixture
def large_photo():
    """Fixture providing a ~6.75MB noise PNG that needs compressing."""
    from PIL import Image

    img = Image.frombytes('RGB', (1500, 1500), os.urandom(1500 * 1500 * 3))
    buffer = io.BytesIO()
    img.save(buffer, format='PNG')
    return SourceFile(name='IMG_0002.png', data=buffer.getvalue(), content_type='image/png')


@pytest.fixture
def logger():
    """Fixture providing a logger."""
    import logging
    return logging.getLogger('test')


@pytest.fixture
def rotated_photo():
    """Fixture providing a 300x100 noise JPEG tagged to display rotated 90 degrees (portrait)."""
    from PIL import Image

    img = Image.frombytes('RGB', (300, 100), os.urandom(300 * 100 * 3))
    exif = Image.Exif()
    exif[0x0112] = 6
    buffer = io.BytesIO()
    img.save(buffer, format='JPEG', quality=95, exif=exif.tobytes())
    return SourceFile(name='IMG_0003.jpg', data=buffer.getvalue(), content_type='image/jpeg')
