"""
PDF backups.

Every PDF a webhook receives is copied to Cloud Storage before parsing, under
YYYY/MM/ (or YYYY/MM/<subfolder>/), so a failed parse can be replayed from
the bucket.
"""

import os
import secrets
from datetime import datetime, timezone

from .logs import EventLog
from .models import IngestMetadata


def new_execution_id(prefix: str = 'exec', now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    stamp = int(now.timestamp() * 1000)
    return f"{prefix}_{stamp}_{secrets.token_hex(4)}"


def backup_blob_name(filename: str | None, execution_id: str, now: datetime,
                     subfolder: str = '', default_stem: str = 'report') -> str:
    """Blob path for a backup, e.g. 2025/10/ptc/comps_20251020T120000_<id>.pdf"""
    stem = os.path.splitext(os.path.basename(filename or default_stem))[0]
    clean_stem = ''.join(c if c.isalnum() or c in '-_' else '_' for c in stem) or default_stem
    folder = f"{now:%Y}/{now:%m}/{subfolder + '/' if subfolder else ''}"
    return f"{folder}{clean_stem}_{now:%Y%m%dT%H%M%S}_{execution_id}.pdf"


def backup_pdf(storage_client, bucket_name: str, pdf_bytes: bytes, execution_id: str,
               metadata: IngestMetadata, event_log: EventLog, subfolder: str = '',
               now: datetime | None = None) -> dict:
    """
    Upload the received PDF.

    A failed upload is logged as a warning and reported in the returned dict;
    it never stops the ingestion.

    Returns:
        {'success': True, 'path': 'gs://...'} or {'success': False, 'error': ...}
    """
    now = now or datetime.now(timezone.utc)
    default_stem = f"{subfolder}_report" if subfolder else 'report'
    blob_name = backup_blob_name(metadata.filename, execution_id, now, subfolder, default_stem)

    try:
        blob = storage_client.bucket(bucket_name).blob(blob_name)
        blob.metadata = {
            'execution_id': execution_id,
            'original_filename': metadata.filename,
            'email_subject': metadata.email_subject or 'unknown',
        }
        blob.upload_from_string(pdf_bytes, content_type='application/pdf')
        print(f"Backed up to gs://{bucket_name}/{blob_name}")
        return {'success': True, 'path': f"gs://{bucket_name}/{blob_name}"}
    except Exception as e:
        error_msg = f"{type(e).__name__}: {str(e)}"
        event_log.warning(f"PDF backup failed: {error_msg}", execution_id=execution_id)
        return {'success': False, 'error': error_msg}
