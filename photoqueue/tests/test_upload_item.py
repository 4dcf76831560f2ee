"""Tests for UploadItem and SourceFile."""

import dataclasses

import pytest

from photoqueue.source_file import SourceFile
from photoqueue.upload_item import UploadItem, UploadStatus


class TestSourceFile:
    """Tests for SourceFile class."""

    def test_properties(self):
        """Test derived name properties."""
        source = SourceFile(name='IMG_0042.JPG', data=b'12345', content_type='image/jpeg')

        assert source.size == 5
        assert source.extension == '.jpg'
        assert source.stem == 'IMG_0042'

    def test_repr_omits_data(self):
        """Test repr shows size instead of contents."""
        source = SourceFile(name='a.jpg', data=b'x' * 1000)

        assert 'size=1000' in repr(source)
        assert 'xxxx' not in repr(source)

    def test_from_path(self, tmp_path, sample_image_bytes):
        """Test reading a file from disk."""
        path = tmp_path / 'IMG_0001.jpg'
        path.write_bytes(sample_image_bytes)

        source = SourceFile.from_path(str(path))

        assert source.name == 'IMG_0001.jpg'
        assert source.data == sample_image_bytes
        assert source.content_type == 'image/jpeg'

    def test_from_path_unknown_type(self, tmp_path):
        """Test unknown extensions give an empty content type."""
        path = tmp_path / 'photo.unknownext'
        path.write_bytes(b'data')

        assert SourceFile.from_path(str(path)).content_type == ''


class TestUploadItem:
    """Tests for UploadItem class."""

    @pytest.fixture
    def item(self, make_file):
        """Fixture providing a pending item."""
        return UploadItem(id='abc', source_file=make_file('IMG_1.jpg', size=2048), priority=5.0, sequence=3)

    def test_defaults(self, item):
        """Test a new item starts pending with no progress."""
        assert item.status == UploadStatus.PENDING
        assert item.progress == 0
        assert item.retry_count == 0
        assert item.remote_url is None
        assert item.filename == 'IMG_1.jpg'
        assert item.sort_key == (5.0, 3)

    def test_frozen(self, item):
        """Test records cannot be mutated in place."""
        with pytest.raises(dataclasses.FrozenInstanceError):
            item.progress = 50

    def test_evolve(self, item):
        """Test evolve returns a modified copy."""
        updated = item.evolve(status=UploadStatus.UPLOADING, progress=40)

        assert updated.status == UploadStatus.UPLOADING
        assert updated.progress == 40
        assert item.progress == 0
        assert updated.id == item.id

    def test_artifact(self, item, make_file):
        """Test the artifact is the compressed file when present."""
        assert item.artifact is item.source_file

        compressed = make_file('IMG_1.jpg', size=10)
        assert item.evolve(compressed_artifact=compressed).artifact is compressed

    def test_state_flags(self, item):
        """Test active, terminal and ready checks."""
        assert item.is_ready(0.0) is True
        assert item.evolve(retry_at=10.0).is_ready(5.0) is False
        assert item.evolve(retry_at=10.0).is_ready(10.0) is True
        assert item.evolve(status=UploadStatus.COMPRESSING).is_active is True
        assert item.evolve(status=UploadStatus.ERROR).is_terminal is True
        assert item.evolve(status=UploadStatus.UPLOADING).is_ready(0.0) is False

    def test_duration(self, item):
        """Test attempt duration."""
        assert item.duration_seconds is None
        assert item.evolve(started_at=10.0, ended_at=12.5).duration_seconds == 2.5

    def test_format_status(self, item):
        """Test one-line status rendering."""
        assert item.format_status() == 'IMG_1.jpg [pending] 0%'

        success = item.evolve(status=UploadStatus.SUCCESS, progress=100, remote_url='https://x/abc.jpg')
        assert success.format_status() == 'IMG_1.jpg [success] 100% -> https://x/abc.jpg'

        error = item.evolve(status=UploadStatus.ERROR, retry_count=3, error='Timeout')
        assert error.format_status() == 'IMG_1.jpg [error] 0% (retry 3) -> Timeout'

    def test_to_dict(self, item):
        """Test conversion to dictionary."""
        data = item.to_dict()

        assert data['id'] == 'abc'
        assert data['status'] == 'pending'
        assert data['source_size'] == 2048
        assert data['compressed_size'] is None
        assert 'data' not in data
