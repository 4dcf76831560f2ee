"""
UploadQueue - Bounded-concurrency upload scheduler.

Takes a batch of files, generates previews, compresses oversized images,
uploads them through a RemoteUploader and retries failures with linear
backoff. One scheduler thread admits pending items into a worker pool;
all state lives in a QueueStore guarded by a single condition variable.
"""

import itertools
import logging
import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from .cancellation import CancellationToken
from .compressor import Compressor
from .exceptions import CancelledError, TransformError, TransportError, ValidationError
from .queue_config import QueueConfig
from .queue_stats import QueueStats, compute_stats
from .queue_store import QueueStore
from .source_file import SourceFile
from .thumbnail_generator import ThumbnailGenerator
from .upload_item import UploadItem, UploadStatus
from .uploader import RemoteUploader
from .validation import FileValidator

# Share of overall progress given to compression; upload fills the rest.
COMPRESS_WEIGHT = 30
# Progress stays below 100 until the item is marked successful.
MAX_ACTIVE_PROGRESS = 99

Listener = Callable[[Tuple[UploadItem, ...], QueueStats], None]


@dataclass
class EnqueueResult:
    """
    Outcome of an enqueue call.

    Attributes:
        ids: Ids of the items created, in submission order
        rejected: Validation errors for files that were not queued
    """
    ids: List[str] = field(default_factory=list)
    rejected: List[ValidationError] = field(default_factory=list)


class UploadQueue:
    """
    In-memory upload queue with a bounded number of concurrent uploads.

    Item lifecycle: pending -> compressing -> uploading -> success, with
    failures going back to pending (after a backoff) until max_retries is
    exhausted, then to error. Listeners registered with subscribe() are
    called from scheduler and worker threads after every change.
    """

    def __init__(
        self,
        uploader: RemoteUploader,
        config: Optional[QueueConfig] = None,
        compressor: Optional[Compressor] = None,
        thumbnail_generator: Optional[ThumbnailGenerator] = None,
        generate_thumbnails: bool = True,
        clock: Callable[[], float] = time.time,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize upload queue.

        Args:
            uploader: Remote store adapter
            config: Queue configuration (default: QueueConfig())
            compressor: Compressor (default: built from config)
            thumbnail_generator: Preview generator (default: built from config)
            generate_thumbnails: If False, no previews are generated
            clock: Wall-clock source for priorities and attempt timestamps
            logger: Optional logger instance
        """
        self.config = config or QueueConfig()
        errors = self.config.validate()
        if errors:
            raise ValueError(f"Invalid queue configuration: {'; '.join(errors)}")

        self.logger = logger or logging.getLogger(__name__)
        self.uploader = uploader
        self.compressor = compressor or Compressor(
            max_bytes=self.config.compress_max_bytes,
            max_dimension=self.config.compress_max_dimension,
            threshold_bytes=self.config.compress_threshold,
            logger=self.logger,
        )
        self.thumbnail_generator = None
        if generate_thumbnails:
            self.thumbnail_generator = thumbnail_generator or ThumbnailGenerator(
                size=self.config.thumbnail_size, logger=self.logger
            )
        self.validator = FileValidator(self.config, self.logger)
        self._clock = clock

        self._store = QueueStore()
        self._cond = threading.Condition()
        self._in_flight: Dict[str, CancellationToken] = {}
        # Cancelled jobs whose worker has not returned yet; they still hold a slot
        self._aborting: Set[CancellationToken] = set()
        self._sequence = itertools.count()
        self._listeners: List[Listener] = []
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.concurrency,
            thread_name_prefix='photoqueue-worker',
        )
        self._loop_thread: Optional[threading.Thread] = None
        self._started = False
        self._idle = True
        self._closed = False

    def __enter__(self) -> 'UploadQueue':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown(cancel_pending=exc_type is not None)

    # -- caller operations -------------------------------------------------

    def enqueue(
        self,
        files: Iterable[SourceFile],
        captions: Optional[Mapping[str, str]] = None
    ) -> EnqueueResult:
        """
        Validate files and add the accepted ones to the queue.

        Rejected files are reported in the result and never become items.
        If start() has been called, the queue resumes draining on its own.

        Args:
            files: Files to upload
            captions: Optional mapping of file name to caption

        Returns:
            EnqueueResult with new item ids and rejections
        """
        accepted, rejected = self.validator.validate_batch(files)
        captions = captions or {}

        items = []
        for file in accepted:
            items.append(UploadItem(
                id=uuid.uuid4().hex,
                source_file=file,
                priority=self._clock(),
                sequence=next(self._sequence),
                caption=captions.get(file.name),
                thumbnail=self._make_thumbnail(file),
            ))

        with self._cond:
            if self._closed:
                raise RuntimeError("Upload queue has been shut down")
            for item in items:
                self._store.add(item)
            self._cond.notify_all()

        self.logger.info(f"Queued {len(items)} file(s), rejected {len(rejected)}")
        if items:
            self._publish()
            if self._started:
                self.start()

        return EnqueueResult(ids=[item.id for item in items], rejected=rejected)

    def start(self) -> None:
        """
        Begin draining the queue. Safe to call while already running.
        """
        with self._cond:
            if self._closed:
                raise RuntimeError("Upload queue has been shut down")
            self._started = True
            if self._loop_thread is not None:
                return
            self._idle = False
            self._loop_thread = threading.Thread(
                target=self._run, name='photoqueue-scheduler', daemon=True
            )
            self._loop_thread.start()

    def retry(self, item_id: str) -> bool:
        """
        Manually retry an item in the error state.

        The item gets a fresh set of automatic retries.

        Returns:
            True if the item was reset to pending
        """
        with self._cond:
            item = self._store.get(item_id)
            if item is None or item.status != UploadStatus.ERROR:
                return False
            self._store.update(
                item_id,
                status=UploadStatus.PENDING,
                progress=0,
                retry_count=0,
                error=None,
                retry_at=None,
                compressed_artifact=None,
                ended_at=None,
            )
            self._cond.notify_all()

        self.logger.info(f"Retry requested: {item.filename}")
        self._publish()
        if self._started:
            self.start()
        return True

    def cancel(self, item_id: str) -> bool:
        """
        Remove an item, aborting its compression or upload if in flight.

        Returns:
            True if the item existed
        """
        with self._cond:
            token = self._in_flight.pop(item_id, None)
            if token is not None:
                token.cancel()
                self._aborting.add(token)
            removed = self._store.remove(item_id)
            self._cond.notify_all()

        if removed is None:
            return False

        self.logger.info(f"Cancelled: {removed.filename} ({removed.status.value})")
        self._publish()
        return True

    def update_caption(self, item_id: str, caption: Optional[str]) -> bool:
        """
        Change the caption of a pending item.

        Returns:
            True if the caption was applied
        """
        with self._cond:
            item = self._store.get(item_id)
            if item is None or item.status != UploadStatus.PENDING:
                return False
            self._store.update(item_id, caption=caption)

        self._publish()
        return True

    def clear_completed(self) -> int:
        """
        Remove all successfully uploaded items.

        Returns:
            Number of items removed
        """
        with self._cond:
            removed = self._store.remove_where(UploadStatus.SUCCESS)

        if removed:
            self.logger.info(f"Cleared {len(removed)} completed item(s)")
            self._publish()
        return len(removed)

    # -- read views --------------------------------------------------------

    def snapshot(self) -> Tuple[UploadItem, ...]:
        """All items ordered by priority."""
        with self._cond:
            return self._store.snapshot()

    def stats(self) -> QueueStats:
        return compute_stats(self.snapshot())

    def get(self, item_id: str) -> Optional[UploadItem]:
        with self._cond:
            return self._store.get(item_id)

    @property
    def is_idle(self) -> bool:
        """True when the scheduler loop is not running."""
        with self._cond:
            return self._idle

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener called with (snapshot, stats) after every change.

        Returns:
            Function that removes the listener
        """
        with self._cond:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._cond:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    # -- lifecycle ---------------------------------------------------------

    def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the scheduler has drained the queue.

        Returns:
            False if the timeout expired first
        """
        with self._cond:
            return self._cond.wait_for(lambda: self._idle, timeout)

    def shutdown(self, cancel_pending: bool = False, wait: bool = True) -> None:
        """
        Stop the scheduler and the worker pool.

        Args:
            cancel_pending: Abort in-flight operations (their items return to pending)
            wait: Block until workers have finished
        """
        with self._cond:
            self._closed = True
            if cancel_pending:
                for token in self._in_flight.values():
                    token.cancel()
            self._cond.notify_all()
            thread = self._loop_thread

        if thread is not None and wait:
            thread.join()
        self._executor.shutdown(wait=wait)
        self.logger.debug("Upload queue shut down")

    # -- scheduler ---------------------------------------------------------

    def _run(self) -> None:
        """Admit pending items until nothing is pending or in flight."""
        self.logger.info("Upload queue started")

        while True:
            with self._cond:
                if self._closed or self._is_drained():
                    self._idle = True
                    self._loop_thread = None
                    self._cond.notify_all()
                    break

                admitted = self._admit()
                if not admitted:
                    self._cond.wait(self._wait_timeout())
                    continue

            self._publish()

        stats = self.stats()
        self.logger.info(
            f"Upload queue idle: {stats.success_count} uploaded, "
            f"{stats.error_count} failed, {stats.pending_count} pending"
        )

    def _is_drained(self) -> bool:
        return (
            not self._in_flight
            and not self._aborting
            and self._store.count(UploadStatus.PENDING) == 0
        )

    def _admit(self) -> List[UploadItem]:
        """
        Flip ready items to compressing and submit them, up to the budget.

        Must be called with the lock held.
        """
        budget = self.config.concurrency - len(self._in_flight) - len(self._aborting)
        if budget <= 0:
            return []

        admitted = []
        started_at = self._clock()
        for item in self._store.ready(time.monotonic())[:budget]:
            token = CancellationToken(item.id)
            updated = self._store.update(
                item.id,
                status=UploadStatus.COMPRESSING,
                progress=0,
                retry_at=None,
                started_at=started_at,
                ended_at=None,
            )
            self._in_flight[item.id] = token
            self._executor.submit(self._process, updated, token)
            admitted.append(updated)
            self.logger.debug(f"Admitted: {item.filename} (attempt {item.retry_count + 1})")

        return admitted

    def _wait_timeout(self) -> float:
        """Sleep until the next backoff expires, at most one poll interval."""
        timeout = self.config.poll_interval
        next_retry = self._store.next_retry_at()
        if next_retry is not None:
            timeout = min(timeout, max(0.0, next_retry - time.monotonic()))
        return timeout

    # -- worker ------------------------------------------------------------

    def _process(self, item: UploadItem, token: CancellationToken) -> None:
        """Run one attempt and settle the item's state; never raises."""
        changes = None
        try:
            changes = self._run_pipeline(item, token)
        except CancelledError:
            self.logger.info(f"Aborted: {item.filename}")
            # Only applied if the abort came from shutdown rather than cancel()
            changes = {
                'status': UploadStatus.PENDING,
                'progress': 0,
                'compressed_artifact': None,
                'started_at': None,
            }
        except Exception as e:
            changes = self._failure_changes(item, e)
        finally:
            self._settle(item.id, token, changes)

    def _run_pipeline(self, item: UploadItem, token: CancellationToken) -> dict:
        """Compress (if needed) then upload; returns the success changes."""
        source = item.source_file
        compressed = None

        if self.compressor.should_compress(source):
            self.logger.debug(f"Compressing: {item.filename} ({source.size} bytes)")
            result = self.compressor.compress(
                source,
                on_progress=lambda p: self._report(item.id, token, p * COMPRESS_WEIGHT // 100),
                token=token,
            )
            if result is not source:
                compressed = result

        token.raise_if_cancelled()
        if not self._transition(
            item.id, token,
            status=UploadStatus.UPLOADING,
            compressed_artifact=compressed,
            progress=COMPRESS_WEIGHT,
        ):
            raise CancelledError(f"Operation cancelled: {item.id}")

        artifact = compressed or source
        self.logger.debug(f"Uploading: {item.filename} ({artifact.size} bytes)")
        upload_weight = 100 - COMPRESS_WEIGHT
        result = self.uploader.upload(
            artifact,
            item.id,
            on_progress=lambda p: self._report(
                item.id, token, COMPRESS_WEIGHT + p * upload_weight // 100
            ),
            token=token,
            caption=item.caption,
        )

        self.logger.info(
            f"Uploaded: {item.filename} ({result.byte_size} bytes) -> {result.remote_url}"
        )
        return {
            'status': UploadStatus.SUCCESS,
            'progress': 100,
            'remote_url': result.remote_url,
            'remote_id': result.remote_id,
            'uploaded_bytes': result.byte_size,
            'error': None,
            'ended_at': self._clock(),
        }

    def _failure_changes(self, item: UploadItem, error: Exception) -> dict:
        """Changes for a failed attempt: back to pending with backoff, or error."""
        message = str(error) or type(error).__name__
        ended_at = self._clock()

        if not isinstance(error, (TransformError, TransportError)):
            self.logger.debug(f"Unexpected {type(error).__name__} for {item.filename}", exc_info=True)

        if item.retry_count < self.config.max_retries:
            delay = self.config.retry_delay(item.retry_count)
            self.logger.warning(
                f"Attempt failed for {item.filename}: {message} "
                f"(retry {item.retry_count + 1}/{self.config.max_retries} in {delay:.1f}s)"
            )
            return {
                'status': UploadStatus.PENDING,
                'progress': 0,
                'retry_count': item.retry_count + 1,
                'retry_at': time.monotonic() + delay,
                'compressed_artifact': None,
                'ended_at': ended_at,
            }

        self.logger.error(
            f"Upload failed for {item.filename} after {item.retry_count} retries: {message}"
        )
        return {
            'status': UploadStatus.ERROR,
            'error': message,
            'retry_at': None,
            'ended_at': ended_at,
        }

    def _transition(self, item_id: str, token: CancellationToken, **changes) -> bool:
        """Apply changes if token still owns the item; returns False otherwise."""
        with self._cond:
            if self._in_flight.get(item_id) is not token:
                return False
            self._store.update(item_id, **changes)
        self._publish()
        return True

    def _report(self, item_id: str, token: CancellationToken, progress: int) -> None:
        """Record progress, keeping it monotonic within the attempt."""
        progress = max(0, min(int(progress), MAX_ACTIVE_PROGRESS))
        with self._cond:
            if self._in_flight.get(item_id) is not token:
                return
            current = self._store.get(item_id)
            if current is None or progress <= current.progress:
                return
            self._store.update(item_id, progress=progress)
        self._publish()

    def _settle(self, item_id: str, token: CancellationToken, changes: Optional[dict]) -> None:
        """Release the in-flight slot and apply the attempt's final changes."""
        with self._cond:
            self._aborting.discard(token)
            owned = self._in_flight.get(item_id) is token
            if owned:
                del self._in_flight[item_id]
                if changes:
                    self._store.update(item_id, **changes)
            self._cond.notify_all()

        if owned:
            self._publish()

    # -- helpers -----------------------------------------------------------

    def _make_thumbnail(self, file: SourceFile) -> Optional[bytes]:
        if self.thumbnail_generator is None:
            return None
        try:
            return self.thumbnail_generator.generate(file).data
        except TransformError as e:
            self.logger.warning(f"Thumbnail generation failed for {file.name}: {e}")
            return None

    def _publish(self) -> None:
        """Call listeners with a fresh snapshot and stats."""
        with self._cond:
            listeners = list(self._listeners)
            if not listeners:
                return
            snapshot = self._store.snapshot()
        stats = compute_stats(snapshot)

        for listener in listeners:
            try:
                listener(snapshot, stats)
            except Exception:
                self.logger.exception("Queue listener failed")
