"""
Configuration objects.

Environment variables:
- PROJECT_ID / GOOGLE_CLOUD_PROJECT_ID: GCP project ID (default: symphony-dashboard)
- BIGQUERY_DATASET: dataset holding the snapshot tables (default: symphony_dashboard)
- BIGQUERY_LOCATION: query location (default: US)
- GOOGLE_APPLICATION_CREDENTIALS: optional service account key file
- INGEST_TIMEOUT_SECONDS: wall-clock limit for parsing one document (default: 240)
- ROW_GROUPING_MODE: 'cluster' (default) or 'anchor' for legacy row bucketing
- EXPECTED_WINDOW_DAYS: look-ahead for expected performance codes, 0 disables (default: 0)
"""

import os

from pydantic import BaseModel

from .glyphs import PDF_Y_TOLERANCE, Y_TOLERANCE


class StoreClientConfig(BaseModel):
    """Identifies the warehouse tables the pipeline reads and writes."""

    project_id: str
    dataset: str = "symphony_dashboard"
    location: str = "US"
    snapshots_table: str = "performance_sales_snapshots"
    performances_table: str = "performances"
    import_log_table: str = "pipeline_execution_log"
    credentials_file: str | None = None

    @classmethod
    def from_env(cls) -> "StoreClientConfig":
        project_id = os.environ.get(
            "PROJECT_ID",
            os.environ.get("GOOGLE_CLOUD_PROJECT_ID", "symphony-dashboard"),
        )
        return cls(
            project_id=project_id,
            dataset=os.environ.get("BIGQUERY_DATASET", "symphony_dashboard"),
            location=os.environ.get("BIGQUERY_LOCATION", "US"),
            credentials_file=os.environ.get("GOOGLE_APPLICATION_CREDENTIALS") or None,
        )


class ParserConfig(BaseModel):
    """Tunables for turning a document into a manifest."""

    y_tolerance: float = Y_TOLERANCE
    pdf_y_tolerance: float = PDF_Y_TOLERANCE
    row_mode: str = "cluster"
    window: int = 20
    timeout_seconds: float | None = 240.0
    expected_window_days: int = 0

    @classmethod
    def from_env(cls) -> "ParserConfig":
        timeout = float(os.environ.get("INGEST_TIMEOUT_SECONDS", "240"))
        return cls(
            row_mode=os.environ.get("ROW_GROUPING_MODE", "cluster"),
            timeout_seconds=timeout if timeout > 0 else None,
            expected_window_days=int(os.environ.get("EXPECTED_WINDOW_DAYS", "0")),
        )
