"""
Snapshot reconciler.

Merges parsed sales records into performance_sales_snapshots, keyed by
(performance_code, snapshot_date):
- no row for the key: INSERT
- row exists, source pdf_reprocess/manual: REPLACE the sales fields in place
- row exists, any other source: REJECT_AS_DUPLICATE (no write)

Sidecar reports (comp tickets) patch the latest snapshot of a performance and
never create rows. Only snapshot columns are written; the performances table
belongs to the metadata editors.

Each transition is a read followed by one or two single-statement writes;
no multi-statement transaction is assumed.
"""

import threading
import uuid
from datetime import datetime, timezone

from .config import StoreClientConfig
from .errors import MetadataWriteForbidden
from .logs import EventLog
from .models import (
    SNAPSHOT_SALES_FIELDS, SNAPSHOT_SIDECAR_FIELDS, CompReport, ParsedSalesRecord,
    ReconciliationResult, RecordError, ReportManifest, SidecarResult, Snapshot, Source,
)
from .store import WarehouseStore

INSERT = "insert"
REPLACE = "replace"
REJECT_AS_DUPLICATE = "reject_as_duplicate"
ERROR = "error"

REPLACING_SOURCES = (Source.PDF_REPROCESS, Source.MANUAL)

SNAPSHOT_IDENTITY_FIELDS = ("snapshot_id", "performance_code", "snapshot_date", "source", "created_at")
WRITABLE_COLUMNS = frozenset(SNAPSHOT_IDENTITY_FIELDS + SNAPSHOT_SALES_FIELDS + SNAPSHOT_SIDECAR_FIELDS)


def decide(existing_rows: list[dict], source: Source) -> str:
    """State transition for one key given the rows already stored."""
    if not existing_rows:
        return INSERT
    if source in REPLACING_SOURCES:
        return REPLACE
    return REJECT_AS_DUPLICATE


class SnapshotReconciler:
    """Owns every write to the snapshot table."""

    def __init__(self, store: WarehouseStore, config: StoreClientConfig,
                 event_log: EventLog | None = None, clock=None):
        self.store = store
        self.config = config
        self.log = event_log or EventLog()
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = threading.Lock()

    @property
    def table(self) -> str:
        return self.store.table_ref(self.config.snapshots_table)

    def _check_columns(self, columns, allowed=WRITABLE_COLUMNS):
        forbidden = sorted(set(columns) - set(allowed))
        if forbidden:
            raise MetadataWriteForbidden(f"Snapshot pipeline may not write columns: {forbidden}")

    def existing_rows(self, performance_code: str, snapshot_date) -> list[dict]:
        """Rows for a key, newest created_at first."""
        sql = f"""
            SELECT snapshot_id, source, created_at FROM {self.table}
            WHERE performance_code = @code AND snapshot_date = @snapshot_date
            ORDER BY created_at DESC, snapshot_id DESC
        """
        return self.store.query(sql, {"code": performance_code, "snapshot_date": snapshot_date})

    def _insert(self, record: ParsedSalesRecord, snapshot_date, source: Source):
        snapshot = Snapshot(
            snapshot_id=str(uuid.uuid4()),
            performance_code=record.performance_code,
            snapshot_date=snapshot_date,
            source=source,
            created_at=self.clock(),
            **record.sales_fields(),
        )
        row = snapshot.to_row()
        self._check_columns(row)
        self.store.insert(self.config.snapshots_table, [row])

    def _replace(self, record: ParsedSalesRecord, snapshot_date, source: Source, existing: list[dict]):
        keep = existing[0]["snapshot_id"]
        values = {**record.sales_fields(), "source": source.value}
        self._check_columns(values)
        self.store.update(self.config.snapshots_table, values,
                          "snapshot_id = @snapshot_id", {"snapshot_id": keep})

        if len(existing) > 1:
            # Earlier double-ingestion left extra rows for this key
            self.store.delete(
                self.config.snapshots_table,
                "performance_code = @code AND snapshot_date = @snapshot_date AND snapshot_id != @keep",
                {"code": record.performance_code, "snapshot_date": snapshot_date, "keep": keep},
            )

    def reconcile_record(self, record: ParsedSalesRecord, snapshot_date, source: Source) -> str:
        """Apply one record and return the action taken."""
        with self._lock:
            existing = self.existing_rows(record.performance_code, snapshot_date)
            action = decide(existing, source)

            if action == INSERT:
                self._insert(record, snapshot_date, source)
            elif action == REPLACE:
                self._replace(record, snapshot_date, source, existing)
            else:
                self.log.info(
                    f"Snapshot already exists for {record.performance_code} on {snapshot_date}, skipping",
                    performance_code=record.performance_code,
                    snapshot_date=str(snapshot_date),
                    source=source.value,
                )
            return action

    def reconcile_manifest(self, manifest: ReportManifest, source: Source = Source.PDF_WEBHOOK) -> ReconciliationResult:
        """
        Apply every record of a manifest.

        A store failure on one record is recorded in errors and the remaining
        records are still processed.
        """
        source = Source(source)
        result = ReconciliationResult(warnings=list(manifest.warnings))

        for record in manifest.performances:
            code = record.performance_code
            try:
                action = self.reconcile_record(record, manifest.report_date, source)
            except MetadataWriteForbidden:
                raise
            except Exception as e:
                error_msg = f"{type(e).__name__}: {str(e)}"
                result.errors.append(RecordError(code=code, reason=error_msg))
                result.decisions[code] = ERROR
                self.log.error(f"Failed to reconcile {code}: {error_msg}",
                               performance_code=code, error=error_msg)
                continue

            result.decisions[code] = action
            if action == INSERT:
                result.inserted += 1
            elif action == REPLACE:
                result.updated += 1
            else:
                result.rejected += 1

        for warning in result.warnings:
            self.log.warning(warning.message, performance_code=warning.performance_code,
                             kind=warning.kind)

        self.log.info(
            f"Reconciled {len(manifest.performances)} performances for {manifest.report_date}",
            report_date=manifest.report_date.isoformat(),
            inserted=result.inserted,
            updated=result.updated,
            rejected=result.rejected,
            errors=len(result.errors),
        )
        return result

    def attach_to_latest(self, performance_code: str, fields: dict) -> bool:
        """
        Patch sidecar fields on the snapshot with the latest snapshot_date.

        Returns False (and logs a warning) when the performance has no
        snapshots; sidecar data never creates a row.
        """
        self._check_columns(fields, SNAPSHOT_SIDECAR_FIELDS)

        with self._lock:
            rows = self.store.query(
                f"SELECT MAX(snapshot_date) AS latest FROM {self.table} WHERE performance_code = @code",
                {"code": performance_code},
            )
            latest = rows[0]["latest"] if rows else None
            if latest is None:
                self.log.warning(f"No snapshot to attach sidecar data for {performance_code}",
                                 performance_code=performance_code, fields=sorted(fields))
                return False

            self.store.update(
                self.config.snapshots_table, fields,
                "performance_code = @code AND snapshot_date = @latest",
                {"code": performance_code, "latest": latest},
            )
            return True

    def attach_comp_tickets(self, report: CompReport) -> SidecarResult:
        """Attach comp ticket counts from a comp report to latest snapshots."""
        result = SidecarResult()
        for record in report.records:
            code = record.performance_code
            try:
                attached = self.attach_to_latest(code, {"comp_tickets": record.comp_tickets})
            except MetadataWriteForbidden:
                raise
            except Exception as e:
                error_msg = f"{type(e).__name__}: {str(e)}"
                result.errors.append(RecordError(code=code, reason=error_msg))
                self.log.error(f"Failed to attach comps for {code}: {error_msg}",
                               performance_code=code, error=error_msg)
                continue

            if attached:
                result.updated += 1
            else:
                result.not_found.append(code)

        self.log.info(
            f"Comp tickets attached: {result.updated} updated, {len(result.not_found)} not found",
            report_date=report.report_date.isoformat(),
            updated=result.updated,
            not_found=result.not_found,
        )
        return result

    def deduplicate_snapshots(self, dry_run: bool = False) -> dict:
        """
        Remove extra physical rows per (performance_code, snapshot_date),
        keeping the row with the latest created_at.
        """
        duplicates = self.store.query(f"""
            SELECT performance_code, snapshot_date, COUNT(*) AS copies FROM {self.table}
            GROUP BY performance_code, snapshot_date
            HAVING COUNT(*) > 1
        """)

        deleted = 0
        for dup in duplicates:
            code, snapshot_date = dup["performance_code"], dup["snapshot_date"]
            with self._lock:
                rows = self.existing_rows(code, snapshot_date)
                if len(rows) < 2:
                    continue
                keep = rows[0]["snapshot_id"]
                if not dry_run:
                    self.store.delete(
                        self.config.snapshots_table,
                        "performance_code = @code AND snapshot_date = @snapshot_date AND snapshot_id != @keep",
                        {"code": code, "snapshot_date": snapshot_date, "keep": keep},
                    )
                deleted += len(rows) - 1
            self.log.info(f"{'Would remove' if dry_run else 'Removed'} {len(rows) - 1} duplicate(s) "
                          f"for {code} on {snapshot_date}, kept {keep}",
                          performance_code=code, snapshot_date=str(snapshot_date), kept=keep)

        return {"duplicate_keys": len(duplicates), "deleted": deleted, "dry_run": dry_run}
