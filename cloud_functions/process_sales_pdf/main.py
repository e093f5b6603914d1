"""
Cloud Function: process-sales-pdf

Ingests sales summary PDFs dropped into Cloud Storage by operators.
Triggered by GCS object finalized event.
- reprocess/*.pdf   -> source pdf_reprocess (replaces existing snapshots)
- historical/*.pdf  -> source historical_pdf_import (fills gaps only)
Processed files move to processed/, rejected ones to failed/.

Environment variables:
- PROJECT_ID: GCP project ID (default: symphony-dashboard)
- BIGQUERY_DATASET: dataset name (default: symphony_dashboard)

Deploy from build/process_sales_pdf after running scripts/stage_functions.py, which ships
the boxoffice package beside this file.
"""

import os
import traceback

import functions_framework
from cloudevents.http import CloudEvent
from google.cloud import storage

from boxoffice.config import ParserConfig, StoreClientConfig
from boxoffice.errors import DocumentRejected
from boxoffice.ingest import ingest_report
from boxoffice.logs import EventLog, make_cloud_logger
from boxoffice.models import IngestMetadata, Source
from boxoffice.store import BigQueryStore

# Configuration
STORE_CONFIG = StoreClientConfig.from_env()
PARSER_CONFIG = ParserConfig.from_env()

FOLDER_SOURCES = {
    'reprocess/': Source.PDF_REPROCESS,
    'historical/': Source.HISTORICAL_PDF_IMPORT,
}

# Initialize clients
store = BigQueryStore(STORE_CONFIG)
storage_client = storage.Client(project=STORE_CONFIG.project_id)
event_log = EventLog(make_cloud_logger(STORE_CONFIG.project_id, "process-sales-pdf"))


def source_for(blob_name: str) -> Source | None:
    for prefix, source in FOLDER_SOURCES.items():
        if blob_name.startswith(prefix):
            return source
    return None


def move_blob(bucket_name: str, blob_name: str, folder: str):
    """Move a processed file out of the drop folder."""
    bucket = storage_client.bucket(bucket_name)
    blob = bucket.blob(blob_name)
    bucket.copy_blob(blob, bucket, f"{folder}/{blob_name}")
    blob.delete()


@functions_framework.cloud_event
def process_sales_pdf(cloud_event: CloudEvent):
    """
    Cloud Function entry point.
    Triggered when a new file is uploaded to GCS.
    """
    data = cloud_event.data
    bucket_name = data["bucket"]
    blob_name = data["name"]
    file_name = os.path.basename(blob_name)

    source = source_for(blob_name)
    if source is None or not file_name.lower().endswith('.pdf'):
        print(f"Skipping: {blob_name} is not a PDF in a drop folder")
        return

    print(f"Processing: gs://{bucket_name}/{blob_name} as {source.value}")
    destination = 'failed'

    try:
        pdf_bytes = storage_client.bucket(bucket_name).blob(blob_name).download_as_bytes()
        result = ingest_report(
            pdf_bytes, IngestMetadata(filename=file_name), store, STORE_CONFIG,
            source=source, parser_config=PARSER_CONFIG, event_log=event_log,
        )
        reconciliation = result.reconciliation
        event_log.info(
            f"Ingested {file_name}",
            file_name=file_name,
            report_date=result.manifest.report_date.isoformat(),
            inserted=reconciliation.inserted,
            updated=reconciliation.updated,
            rejected=reconciliation.rejected,
            errors=len(reconciliation.errors),
        )
        destination = 'processed'

    except DocumentRejected as e:
        event_log.error(f"Rejected {file_name}: {e.reason}", file_name=file_name, error=e.reason)

    except Exception as e:
        error_msg = f"{type(e).__name__}: {str(e)}"
        event_log.error(
            f"Failed to process {file_name}: {error_msg}",
            file_name=file_name,
            error=error_msg,
            traceback=traceback.format_exc()
        )

    finally:
        try:
            move_blob(bucket_name, blob_name, destination)
            print(f"Moved to {destination}/: {blob_name}")
        except Exception as e:
            event_log.warning(f"Failed to move {blob_name}: {e}", blob_name=blob_name)
