"""
Compressor - Reduces oversized photos to a byte and dimension budget.
"""

import io
import logging
from typing import Callable, Optional

from PIL import Image

from .cancellation import CancellationToken
from .exceptions import TransformError
from .source_file import SourceFile
from .thumbnail_generator import apply_orientation, convert_to_rgb, open_image

ProgressCallback = Callable[[int], None]


class Compressor:
    """
    Downscales and re-encodes images as JPEG until they fit a size budget.

    Compression runs in steps (decode, resize, one or more encodes) and the
    cancellation token is checked between steps, so an abort never yields a
    partial artifact.
    """

    COMPRESSIBLE_TYPES = {'image/jpeg', 'image/jpg', 'image/png', 'image/webp'}

    def __init__(
        self,
        max_bytes: int = 2 * 1024 * 1024,
        max_dimension: int = 2048,
        threshold_bytes: int = 500 * 1024,
        initial_quality: int = 80,
        min_quality: int = 30,
        quality_step: int = 10,
        max_iterations: int = 10,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize compressor.

        Args:
            max_bytes: Target maximum output size
            max_dimension: Maximum longest edge of the output
            threshold_bytes: Files at or below this size are not compressed
            initial_quality: JPEG quality of the first encode attempt
            min_quality: Lowest JPEG quality tried
            quality_step: Quality decrease between attempts
            max_iterations: Maximum number of encode attempts
            logger: Optional logger instance
        """
        self.max_bytes = max_bytes
        self.max_dimension = max_dimension
        self.threshold_bytes = threshold_bytes
        self.initial_quality = initial_quality
        self.min_quality = min_quality
        self.quality_step = quality_step
        self.max_iterations = max_iterations
        self.logger = logger or logging.getLogger(__name__)

    def should_compress(self, source: SourceFile) -> bool:
        """True if the file is over the threshold and of a compressible type."""
        return (
            source.size > self.threshold_bytes
            and source.content_type.lower() in self.COMPRESSIBLE_TYPES
        )

    def compress(
        self,
        source: SourceFile,
        on_progress: Optional[ProgressCallback] = None,
        token: Optional[CancellationToken] = None
    ) -> SourceFile:
        """
        Compress a file to the configured budget.

        Args:
            source: File to compress
            on_progress: Called with progress 0-100
            token: Optional cancellation token

        Returns:
            A new, smaller JPEG SourceFile, or `source` itself if it already
            fits the budget or compression would not make it smaller

        Raises:
            TransformError: If the image cannot be decoded or encoded
            CancelledError: If the token is cancelled mid-operation
        """
        report = on_progress or (lambda progress: None)

        self._check(token)
        img = apply_orientation(open_image(source.data))
        report(10)

        if source.size <= self.max_bytes and max(img.size) <= self.max_dimension:
            self.logger.debug(f"{source.name} already within budget, not compressing")
            report(100)
            return source

        self._check(token)
        try:
            img = convert_to_rgb(img)
            if max(img.size) > self.max_dimension:
                img.thumbnail((self.max_dimension, self.max_dimension), Image.Resampling.LANCZOS)
        except (OSError, ValueError) as e:
            raise TransformError(f"Resize failed for {source.name}: {e}") from e
        report(30)

        data = b''
        quality = self.initial_quality
        for iteration in range(self.max_iterations):
            self._check(token)
            data = self._encode(img, quality, source.name)
            report(30 + int(70 * (iteration + 1) / self.max_iterations))

            if len(data) <= self.max_bytes or quality - self.quality_step < self.min_quality:
                break
            quality -= self.quality_step

        self._check(token)
        report(100)

        if len(data) >= source.size:
            self.logger.debug(f"Compression did not reduce {source.name}, keeping original")
            return source

        reduction = (source.size - len(data)) / source.size * 100
        self.logger.info(
            f"Image compressed: {source.name} {source.size} -> {len(data)} bytes "
            f"({reduction:.2f}% size reduction, quality {quality})"
        )

        return SourceFile(name=f"{source.stem}.jpg", data=data, content_type='image/jpeg')

    @staticmethod
    def _check(token: Optional[CancellationToken]) -> None:
        if token is not None:
            token.raise_if_cancelled()

    @staticmethod
    def _encode(img: Image.Image, quality: int, name: str) -> bytes:
        try:
            with io.BytesIO() as output:
                img.save(output, format='JPEG', quality=quality, optimize=True)
                return output.getvalue()
        except (OSError, ValueError) as e:
            raise TransformError(f"Encoding failed for {name}: {e}") from e
