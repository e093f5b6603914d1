"""
Cloud Function: pdf-webhook-ptc

Receives the complimentary ticket (PTC) report and attaches each
performance's comp count to its latest sales snapshot. Performances with no
snapshot yet are reported as not found; no rows are created.

Trigger: HTTP POST with JSON body {pdf_base64, metadata: {filename, email_subject}}

Environment variables:
- PROJECT_ID: GCP project ID (default: symphony-dashboard)
- BIGQUERY_DATASET: dataset name (default: symphony_dashboard)
- BACKUP_BUCKET: bucket for PDF backups (default: symphony-dashboard-pdfs)
- WEBHOOK_API_KEY: if set, requests must send a matching X-API-Key header

Deploy from build/pdf_webhook_ptc after running scripts/stage_functions.py, which ships
the boxoffice package beside this file.
"""

import base64
import os
import secrets
import traceback

import functions_framework
from flask import Request, jsonify
from google.cloud import storage

from boxoffice.backup import backup_pdf, new_execution_id
from boxoffice.config import ParserConfig, StoreClientConfig
from boxoffice.errors import DocumentRejected
from boxoffice.ingest import ingest_comp_report
from boxoffice.logs import EventLog, make_cloud_logger
from boxoffice.models import IngestMetadata
from boxoffice.store import BigQueryStore

# Configuration
STORE_CONFIG = StoreClientConfig.from_env()
PARSER_CONFIG = ParserConfig.from_env()
BACKUP_BUCKET = os.environ.get('BACKUP_BUCKET', 'symphony-dashboard-pdfs')
WEBHOOK_API_KEY = os.environ.get('WEBHOOK_API_KEY')

# Initialize clients
store = BigQueryStore(STORE_CONFIG)
storage_client = storage.Client(project=STORE_CONFIG.project_id)
event_log = EventLog(make_cloud_logger(STORE_CONFIG.project_id, "pdf-webhook-ptc"))


@functions_framework.http
def pdf_webhook_ptc(request: Request):
    """HTTP entry point."""
    if request.method != 'POST':
        return jsonify({'error': 'Method not allowed'}), 405
    if WEBHOOK_API_KEY and not secrets.compare_digest(request.headers.get('X-API-Key', ''), WEBHOOK_API_KEY):
        return jsonify({'error': 'Unauthorized'}), 401

    execution_id = new_execution_id('ptc')
    body = request.get_json(silent=True) or {}
    metadata = IngestMetadata.model_validate(body.get('metadata') or {})

    try:
        if not body.get('pdf_base64'):
            raise DocumentRejected("No pdf_base64 provided")
        pdf_bytes = base64.b64decode(body['pdf_base64'])
        print(f"PTC webhook received - execution {execution_id}, {len(pdf_bytes) // 1024}KB")

        backup = backup_pdf(storage_client, BACKUP_BUCKET, pdf_bytes, execution_id, metadata,
                            event_log, subfolder='ptc')
        result = ingest_comp_report(pdf_bytes, metadata, store, STORE_CONFIG,
                                    parser_config=PARSER_CONFIG, event_log=event_log)

        records = result.report.records
        summary = {
            'report_date': result.report.report_date.isoformat(),
            'performances_in_pdf': len(records),
            'performances_with_comps': sum(1 for r in records if r.comp_tickets > 0),
            'total_comp_tickets': sum(r.comp_tickets for r in records),
            'updated': result.sidecar.updated,
            'not_found': result.sidecar.not_found,
            'skipped': [s.model_dump(exclude_none=True) for s in result.report.skipped],
            'errors': [e.model_dump() for e in result.sidecar.errors],
        }
        print(f"Done: {summary['updated']} updated, {len(summary['not_found'])} not found")

        return jsonify({
            'success': result.success,
            'status': 'completed' if result.success else 'partial_failure',
            'execution_id': execution_id,
            'backup': backup,
            'summary': summary,
        }), 200

    except Exception as e:
        error_msg = f"{type(e).__name__}: {str(e)}"
        event_log.error(
            f"PTC processing failed: {error_msg}",
            execution_id=execution_id,
            error=error_msg,
            traceback=traceback.format_exc()
        )
        return jsonify({
            'success': False,
            'status': 'failed',
            'execution_id': execution_id,
            'error': 'PTC PDF processing failed',
            'message': error_msg,
        }), 500
