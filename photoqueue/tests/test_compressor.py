"""Tests for Compressor class."""

import io
import os

import pytest
from PIL import Image

from photoqueue.cancellation import CancellationToken
from photoqueue.compressor import Compressor
from photoqueue.exceptions import CancelledError, TransformError
from photoqueue.source_file import SourceFile


class TestShouldCompress:
    """Tests for the compression threshold."""

    def test_small_file_skipped(self, make_file):
        """Test files at or under the threshold are left alone."""
        compressor = Compressor(threshold_bytes=1024)

        assert compressor.should_compress(make_file(size=1024)) is False
        assert compressor.should_compress(make_file(size=1025)) is True

    def test_gif_never_compressed(self, make_file):
        """Test animated formats are not re-encoded."""
        compressor = Compressor(threshold_bytes=10)

        assert compressor.should_compress(make_file('a.gif', size=100, content_type='image/gif')) is False


class TestCompress:
    """Tests for compress()."""

    def test_within_budget_returns_source(self, sample_photo):
        """Test an image already inside the budget is returned unchanged."""
        compressor = Compressor(max_bytes=1024 * 1024, max_dimension=200)
        progress = []

        result = compressor.compress(sample_photo, on_progress=progress.append)

        assert result is sample_photo
        assert progress[-1] == 100

    def test_large_image_resized_to_jpeg(self, large_photo):
        """Test oversized images are downscaled and re-encoded as JPEG."""
        compressor = Compressor(max_bytes=2 * 1024 * 1024, max_dimension=800)

        result = compressor.compress(large_photo)

        assert result is not large_photo
        assert result.name == 'IMG_0002.jpg'
        assert result.content_type == 'image/jpeg'
        assert result.size < large_photo.size
        img = Image.open(io.BytesIO(result.data))
        assert img.format == 'JPEG'
        assert max(img.size) <= 800

    def test_byte_budget_lowers_quality(self, large_photo):
        """Test a tight byte budget is met by reducing quality."""
        compressor = Compressor(max_bytes=150 * 1024, max_dimension=600, min_quality=10)

        loose = Compressor(max_bytes=10 * 1024 * 1024, max_dimension=600).compress(large_photo)
        tight = compressor.compress(large_photo)

        assert tight.size < loose.size

    def test_transparent_png_flattened(self):
        """Test RGBA images are converted before JPEG encoding."""
        img = Image.frombytes('RGBA', (400, 300), os.urandom(400 * 300 * 4))
        buffer = io.BytesIO()
        img.save(buffer, format='PNG')
        source = SourceFile(name='alpha.png', data=buffer.getvalue(), content_type='image/png')
        compressor = Compressor(max_bytes=10, max_dimension=100)

        result = compressor.compress(source)

        out = Image.open(io.BytesIO(result.data))
        assert out.mode == 'RGB'
        assert out.size == (100, 75)

    def test_progress_monotonic(self, large_photo):
        """Test progress never decreases and ends at 100."""
        compressor = Compressor(max_bytes=100 * 1024, max_dimension=800)
        progress = []

        compressor.compress(large_photo, on_progress=progress.append)

        assert progress == sorted(progress)
        assert progress[0] == 10
        assert progress[-1] == 100
        assert all(0 <= p <= 100 for p in progress)

    def test_cancelled_token(self, large_photo):
        """Test a cancelled token aborts without producing output."""
        token = CancellationToken('item')
        token.cancel()

        with pytest.raises(CancelledError):
            Compressor().compress(large_photo, token=token)

    def test_cancel_during_compression(self, large_photo):
        """Test cancelling between steps stops the loop."""
        token = CancellationToken('item')
        progress = []

        def on_progress(value):
            progress.append(value)
            if value >= 30:
                token.cancel()

        with pytest.raises(CancelledError):
            Compressor(max_bytes=1024, max_dimension=800).compress(
                large_photo, on_progress=on_progress, token=token
            )

        assert 100 not in progress

    def test_invalid_image(self, make_file):
        """Test undecodable data raises TransformError."""
        with pytest.raises(TransformError):
            Compressor().compress(make_file(size=2048))


    def test_exif_orientation_applied(self, rotated_photo):
        """Test a portrait phone photo stays portrait after re-encoding."""
        compressor = Compressor(max_bytes=10 * 1024, max_dimension=150)

        result = compressor.compress(rotated_photo)

        out = Image.open(io.BytesIO(result.data))
        assert out.size == (50, 150)
        assert out.getexif().get(0x0112) is None

    def test_decompression_bomb(self, sample_png_bytes, monkeypatch):
        """Test images over Pillow's pixel limit raise TransformError."""
        monkeypatch.setattr(Image, 'MAX_IMAGE_PIXELS', 1000)
        source = SourceFile(name='bomb.png', data=sample_png_bytes, content_type='image/png')

        with pytest.raises(TransformError):
            Compressor().compress(source)
