"""
Cloud Function: pdf-webhook

Receives box-office sales summary PDFs from the email automation, backs them
up to Cloud Storage and merges the parsed performances into
performance_sales_snapshots.

Trigger: HTTP POST with JSON body
- pdf_base64: raw PDF, base64 encoded
- pdf_text: already-decoded positioned-text pages [[{x, y, text}, ...], ...]
- pdf_url: URL to download the PDF from
- metadata: {filename, email_subject, received_at}
One of pdf_base64 / pdf_text / pdf_url is required.

Environment variables:
- PROJECT_ID: GCP project ID (default: symphony-dashboard)
- BIGQUERY_DATASET: dataset name (default: symphony_dashboard)
- BACKUP_BUCKET: bucket for PDF backups (default: symphony-dashboard-pdfs)
- WEBHOOK_API_KEY: if set, requests must send a matching X-API-Key header
- INGEST_TIMEOUT_SECONDS: parse time limit (default: 240)

Deploy from build/pdf_webhook after running scripts/stage_functions.py, which ships
the boxoffice package beside this file.
"""

import base64
import os
import secrets
import traceback
from datetime import datetime, timezone

import functions_framework
import requests
from flask import Request, jsonify
from google.cloud import storage

from boxoffice.backup import backup_pdf, new_execution_id
from boxoffice.config import ParserConfig, StoreClientConfig
from boxoffice.errors import DocumentRejected
from boxoffice.ingest import ingest_report
from boxoffice.logs import EventLog, make_cloud_logger
from boxoffice.models import IngestMetadata, Source
from boxoffice.store import BigQueryStore

# Configuration
STORE_CONFIG = StoreClientConfig.from_env()
PARSER_CONFIG = ParserConfig.from_env()
BACKUP_BUCKET = os.environ.get('BACKUP_BUCKET', 'symphony-dashboard-pdfs')
WEBHOOK_API_KEY = os.environ.get('WEBHOOK_API_KEY')
PIPELINE_TYPE = 'pdf_webhook'

# Initialize clients
store = BigQueryStore(STORE_CONFIG)
storage_client = storage.Client(project=STORE_CONFIG.project_id)
event_log = EventLog(make_cloud_logger(STORE_CONFIG.project_id, "pdf-webhook"))


def log_execution(execution_id: str, status: str, metadata: IngestMetadata,
                  started_at: datetime, summary: dict | None = None, error_message: str = None):
    """Record the run in the pipeline execution log table."""
    summary = summary or {}
    row = {
        'execution_id': execution_id,
        'pipeline_type': PIPELINE_TYPE,
        'status': status,
        'start_time': started_at.isoformat(),
        'end_time': datetime.now(timezone.utc).isoformat(),
        'source_file': metadata.filename,
        'report_date': summary.get('report_date'),
        'records_processed': summary.get('performances'),
        'records_inserted': summary.get('inserted'),
        'records_updated': summary.get('updated'),
        'records_rejected': summary.get('rejected'),
        'error_message': error_message,
    }
    try:
        store.insert(STORE_CONFIG.import_log_table, [row])
    except Exception as e:
        event_log.warning(f"Error writing to execution log: {e}", execution_id=execution_id)


def read_document(body: dict):
    """Return (document, pdf_bytes or None) from the request body."""
    if body.get('pdf_base64'):
        pdf_bytes = base64.b64decode(body['pdf_base64'])
        return pdf_bytes, pdf_bytes
    if body.get('pdf_text'):
        return body['pdf_text'], None
    if body.get('pdf_url'):
        response = requests.get(body['pdf_url'], timeout=60)
        response.raise_for_status()
        return response.content, response.content
    raise DocumentRejected("No PDF data provided (expected pdf_base64, pdf_text, or pdf_url)")


def authorized(request: Request) -> bool:
    if not WEBHOOK_API_KEY:
        return True
    return secrets.compare_digest(request.headers.get('X-API-Key', ''), WEBHOOK_API_KEY)


@functions_framework.http
def pdf_webhook(request: Request):
    """
    HTTP entry point.

    Returns 200 with an itemised summary whenever the document was ingested,
    including partial per-performance failures; 500 when the document was
    rejected as a whole.
    """
    if request.method != 'POST':
        return jsonify({'error': 'Method not allowed'}), 405
    if not authorized(request):
        return jsonify({'error': 'Unauthorized'}), 401

    execution_id = new_execution_id()
    started_at = datetime.now(timezone.utc)
    body = request.get_json(silent=True) or {}
    metadata = IngestMetadata.model_validate(body.get('metadata') or {})

    print(f"PDF webhook received - execution {execution_id}, file {metadata.filename}")

    try:
        document, pdf_bytes = read_document(body)

        backup = {'success': False, 'error': 'PDF sent as decoded text, nothing to back up'}
        if pdf_bytes is not None:
            backup = backup_pdf(storage_client, BACKUP_BUCKET, pdf_bytes, execution_id, metadata, event_log)

        result = ingest_report(
            document, metadata, store, STORE_CONFIG,
            source=Source.PDF_WEBHOOK,
            parser_config=PARSER_CONFIG,
            event_log=event_log,
        )

        reconciliation = result.reconciliation
        summary = {
            **result.manifest.summary(),
            'inserted': reconciliation.inserted,
            'updated': reconciliation.updated,
            'rejected': reconciliation.rejected,
            'errors': [e.model_dump() for e in reconciliation.errors],
        }
        status = 'completed' if result.success else 'partial_failure'
        log_execution(execution_id, status, metadata, started_at, summary)

        print(f"Done: {reconciliation.inserted} inserted, {reconciliation.updated} updated, "
              f"{reconciliation.rejected} rejected, {len(reconciliation.errors)} errors")

        return jsonify({
            'success': result.success,
            'status': status,
            'execution_id': execution_id,
            'backup': backup,
            'summary': summary,
        }), 200

    except Exception as e:
        error_msg = f"{type(e).__name__}: {str(e)}"
        event_log.error(
            f"Failed to process {metadata.filename}: {error_msg}",
            execution_id=execution_id,
            error=error_msg,
            traceback=traceback.format_exc()
        )
        log_execution(execution_id, 'failed', metadata, started_at, error_message=error_msg)
        return jsonify({
            'success': False,
            'status': 'failed',
            'execution_id': execution_id,
            'error': 'PDF processing failed',
            'message': error_msg,
        }), 500
