"""Tests for PDF backups to Cloud Storage."""

from datetime import datetime, timezone

from boxoffice.backup import backup_blob_name, backup_pdf, new_execution_id
from boxoffice.models import IngestMetadata

NOW = datetime(2025, 10, 20, 12, 0, 5, tzinfo=timezone.utc)


class FakeBlob:
    def __init__(self, name, fail=False):
        self.name = name
        self.fail = fail
        self.metadata = None
        self.uploaded = None

    def upload_from_string(self, data, content_type=None):
        if self.fail:
            raise PermissionError("bucket is read-only")
        self.uploaded = (data, content_type)


class FakeBucket:
    def __init__(self, fail=False):
        self.fail = fail
        self.blobs = {}

    def blob(self, name):
        self.blobs[name] = FakeBlob(name, self.fail)
        return self.blobs[name]


class FakeStorageClient:
    """Stands in for google.cloud.storage.Client."""

    def __init__(self, fail=False):
        self.buckets = {}
        self.fail = fail

    def bucket(self, name):
        return self.buckets.setdefault(name, FakeBucket(self.fail))


class TestBackupBlobName:
    """Tests for backup_blob_name."""

    def test_sales_report_path(self):
        name = backup_blob_name("Sales Summary 10-20.pdf", "exec_1", NOW)
        assert name == "2025/10/Sales_Summary_10-20_20251020T120005_exec_1.pdf"

    def test_subfolder(self):
        name = backup_blob_name("comps.pdf", "ptc_1", NOW, subfolder="ptc")
        assert name.startswith("2025/10/ptc/comps_")

    def test_missing_filename_uses_default_stem(self):
        name = backup_blob_name(None, "ptc_1", NOW, subfolder="ptc", default_stem="ptc_report")
        assert name == "2025/10/ptc/ptc_report_20251020T120005_ptc_1.pdf"


class TestBackupPdf:
    """Tests for backup_pdf."""

    def test_uploads_with_metadata(self, event_log):
        client = FakeStorageClient()
        metadata = IngestMetadata(filename="report.pdf", email_subject="Daily sales")

        result = backup_pdf(client, "pdf-bucket", b"%PDF-1.7", "exec_1", metadata, event_log, now=NOW)

        blob_name = "2025/10/report_20251020T120005_exec_1.pdf"
        blob = client.buckets["pdf-bucket"].blobs[blob_name]
        assert result == {"success": True, "path": f"gs://pdf-bucket/{blob_name}"}
        assert blob.uploaded == (b"%PDF-1.7", "application/pdf")
        assert blob.metadata["email_subject"] == "Daily sales"

    def test_comp_reports_go_to_subfolder(self, event_log):
        client = FakeStorageClient()

        result = backup_pdf(client, "pdf-bucket", b"%PDF", "ptc_1", IngestMetadata(filename="comps.pdf"),
                            event_log, subfolder="ptc", now=NOW)

        assert result["path"] == "gs://pdf-bucket/2025/10/ptc/comps_20251020T120005_ptc_1.pdf"

    def test_upload_failure_is_reported_not_raised(self, event_log, recording_logger):
        client = FakeStorageClient(fail=True)

        result = backup_pdf(client, "pdf-bucket", b"%PDF", "exec_1", IngestMetadata(), event_log, now=NOW)

        assert result == {"success": False, "error": "PermissionError: bucket is read-only"}
        assert recording_logger.messages("WARNING") == ["PDF backup failed: PermissionError: bucket is read-only"]


class TestExecutionId:
    """Tests for new_execution_id."""

    def test_prefix_and_timestamp(self):
        execution_id = new_execution_id("ptc", now=NOW)
        prefix, stamp, suffix = execution_id.split("_")

        assert prefix == "ptc"
        assert stamp == str(int(NOW.timestamp() * 1000))
        assert len(suffix) == 8

    def test_unique(self):
        assert new_execution_id(now=NOW) != new_execution_id(now=NOW)
