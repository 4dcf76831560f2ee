"""
ThumbnailGenerator - Generates preview thumbnails for queued photos.
"""

import io
import logging
from typing import Optional, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from .exceptions import TransformError
from .source_file import SourceFile


def convert_to_rgb(img: Image.Image) -> Image.Image:
    """Flatten transparency onto white and convert to RGB for JPEG output."""
    if img.mode in ('RGBA', 'LA'):
        background = Image.new('RGB', img.size, (255, 255, 255))
        if img.mode == 'LA':
            img = img.convert('RGBA')
        background.paste(img, mask=img.split()[-1])
        return background
    elif img.mode == 'P':
        img = img.convert('RGBA')
        background = Image.new('RGB', img.size, (255, 255, 255))
        background.paste(img, mask=img.split()[-1])
        return background
    elif img.mode != 'RGB':
        return img.convert('RGB')
    return img


def open_image(data: bytes) -> Image.Image:
    """
    Decode image bytes with Pillow.

    Raises:
        TransformError: If the data is not a readable image
    """
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
        return img
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise TransformError(f"Cannot decode image: {e}") from e


def apply_orientation(img: Image.Image) -> Image.Image:
    """
    Rotate pixels to match the EXIF Orientation tag, which re-encoding drops.

    Raises:
        TransformError: If the EXIF data cannot be applied
    """
    try:
        return ImageOps.exif_transpose(img)
    except (OSError, ValueError) as e:
        raise TransformError(f"Cannot apply EXIF orientation: {e}") from e


class ThumbnailGenerator:
    """
    Generates small previews from submitted images using Pillow.
    """

    def __init__(
        self,
        size: int = 200,
        quality: int = 85,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize thumbnail generator.

        Args:
            size: Maximum dimension for thumbnails (default: 200)
            quality: JPEG quality for output (default: 85)
            logger: Optional logger instance
        """
        self.size = size
        self.quality = quality
        self.logger = logger or logging.getLogger(__name__)

    def generate(self, source: SourceFile) -> SourceFile:
        """
        Generate a thumbnail for a source file.

        Args:
            source: Submitted image

        Returns:
            Thumbnail as a SourceFile named '<stem>_thumb<ext>'

        Raises:
            TransformError: If the image cannot be decoded or encoded
        """
        img = apply_orientation(open_image(source.data))
        output_format, content_type, extension = self._get_output_format(source.content_type)

        try:
            if output_format == 'JPEG':
                img = convert_to_rgb(img)
            img.thumbnail((self.size, self.size), Image.Resampling.LANCZOS)

            output = io.BytesIO()
            if output_format == 'JPEG':
                img.save(output, format='JPEG', quality=self.quality, optimize=True)
            elif output_format == 'PNG':
                img.save(output, format='PNG', optimize=True)
            else:
                img.save(output, format='GIF')
        except (OSError, ValueError) as e:
            self.logger.error(f"Error generating thumbnail for {source.name}: {e}")
            raise TransformError(f"Thumbnail generation failed: {e}") from e

        return SourceFile(
            name=f"{source.stem}_thumb{extension}",
            data=output.getvalue(),
            content_type=content_type,
        )

    def _get_output_format(self, content_type: str) -> Tuple[str, str, str]:
        """Determine output format, MIME type and extension from the source type."""
        if content_type == 'image/png':
            return 'PNG', 'image/png', '.png'
        elif content_type == 'image/gif':
            return 'GIF', 'image/gif', '.gif'
        else:
            return 'JPEG', 'image/jpeg', '.jpg'
