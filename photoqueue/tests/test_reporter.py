"""Tests for Reporter class."""

import io
import json
import pytest

from photoqueue.exceptions import ValidationError
from photoqueue.queue_stats import QueueStats
from photoqueue.reporter import Reporter
from photoqueue.upload_item import UploadItem, UploadStatus


@pytest.fixture
def items(make_file):
    """Fixture providing one successful and one failed item."""
    ok = UploadItem(id='a', source_file=make_file('ok.jpg'), priority=1.0).evolve(
        status=UploadStatus.SUCCESS, progress=100, remote_url='https://media/a.jpg'
    )
    failed = UploadItem(id='b', source_file=make_file('bad.jpg'), priority=2.0).evolve(
        status=UploadStatus.ERROR, retry_count=3, error='Upload failed with status 503'
    )
    return [ok, failed]


class TestReporter:
    """Tests for Reporter class."""

    def test_init_default_output(self):
        """Test default output is stdout."""
        import sys
        reporter = Reporter()
        assert reporter.output == sys.stdout

    def test_init_custom_output(self):
        """Test custom output stream."""
        output = io.StringIO()
        reporter = Reporter(output=output)
        assert reporter.output == output

    def test_format_bytes(self):
        """Test byte formatting."""
        reporter = Reporter()

        assert reporter._format_bytes(500) == '500.0 B'
        assert reporter._format_bytes(1024) == '1.0 KB'
        assert reporter._format_bytes(1024 * 1024) == '1.0 MB'

    def test_format_duration(self):
        """Test duration formatting."""
        reporter = Reporter()

        assert reporter._format_duration(30) == '30.0 seconds'
        assert reporter._format_duration(90) == '1.5 minutes'
        assert reporter._format_duration(3600) == '1.0 hours'

    def test_report_summary(self):
        """Test summary report generation."""
        output = io.StringIO()
        reporter = Reporter(output=output)

        reporter.report_summary(QueueStats(
            total_files=5, success_count=4, error_count=1,
            total_size=5 * 1024 * 1024, uploaded_size=2 * 1024 * 1024,
            average_compression_ratio=2.5,
        ))

        result = output.getvalue()
        assert 'UPLOAD SUMMARY' in result
        assert 'Files:       5' in result
        assert 'Failed:      1' in result
        assert '2.50x average' in result
        assert 'Remaining' not in result
        assert 'ETA' not in result

    def test_report_summary_in_progress(self):
        """Test remaining count and ETA while work is outstanding."""
        output = io.StringIO()
        reporter = Reporter(output=output)

        reporter.report_summary(QueueStats(total_files=3, pending_count=2, estimated_time_remaining=90))

        result = output.getvalue()
        assert 'Remaining:   2' in result
        assert '1.5 minutes' in result

    def test_report_items(self, items):
        """Test per-file listing."""
        output = io.StringIO()
        reporter = Reporter(output=output)

        reporter.report_items(items)

        result = output.getvalue()
        assert 'FILES' in result
        assert 'ok.jpg [success] 100% -> https://media/a.jpg' in result

    def test_report_failures(self, items):
        """Test failed uploads report."""
        output = io.StringIO()
        reporter = Reporter(output=output)

        reporter.report_failures(items)

        result = output.getvalue()
        assert 'FAILED UPLOADS (1)' in result
        assert 'bad.jpg: Upload failed with status 503 (after 3 retries)' in result
        assert 'ok.jpg' not in result

    def test_report_failures_none(self, items):
        """Test nothing is printed without failures."""
        output = io.StringIO()
        reporter = Reporter(output=output)

        reporter.report_failures(items[:1])

        assert output.getvalue() == ''

    def test_report_rejections(self):
        """Test rejected files report."""
        output = io.StringIO()
        reporter = Reporter(output=output)

        reporter.report_rejections([ValidationError('doc.pdf', 'Invalid file type')])

        result = output.getvalue()
        assert 'REJECTED FILES (1)' in result
        assert 'doc.pdf: Invalid file type' in result

    def test_report_items_duration(self, items):
        """Test successful items show how long the upload took."""
        output = io.StringIO()
        reporter = Reporter(output=output)
        timed = items[0].evolve(started_at=100.0, ended_at=102.5)

        reporter.report_items([timed, items[1]])

        lines = output.getvalue().splitlines()
        assert '  ok.jpg [success] 100% -> https://media/a.jpg in 2.5 seconds' in lines
        assert not any('bad.jpg' in line and ' in ' in line for line in lines)

    def test_save_json(self, items, tmp_path):
        """Test JSON report contents."""
        reporter = Reporter(output=io.StringIO())
        path = tmp_path / 'reports' / 'run.json'

        reporter.save_json(
            str(path), items,
            QueueStats(total_files=2, success_count=1, error_count=1),
            [ValidationError('doc.pdf', 'Invalid file type')],
        )

        data = json.loads(path.read_text())
        assert data['stats']['total_files'] == 2
        assert data['stats']['error_count'] == 1
        assert [item['filename'] for item in data['items']] == ['ok.jpg', 'bad.jpg']
        assert data['items'][0]['remote_url'] == 'https://media/a.jpg'
        assert data['items'][1]['status'] == 'error'
        assert data['rejected'] == [{'filename': 'doc.pdf', 'reason': 'Invalid file type'}]
