"""Read-only projections used by the dashboard and the assembler."""

from datetime import date

from .config import StoreClientConfig
from .models import Snapshot
from .store import WarehouseStore


def get_latest_snapshot(store: WarehouseStore, config: StoreClientConfig,
                        performance_code: str) -> Snapshot | None:
    """Snapshot with the latest snapshot_date (newest created_at on ties)."""
    sql = f"""
        SELECT * FROM {store.table_ref(config.snapshots_table)}
        WHERE performance_code = @code
        ORDER BY snapshot_date DESC, created_at DESC
        LIMIT 1
    """
    rows = store.query(sql, {"code": performance_code})
    return Snapshot.model_validate(rows[0]) if rows else None


def get_snapshot_history(store: WarehouseStore, config: StoreClientConfig, performance_code: str,
                         start: date | None = None, end: date | None = None) -> list[Snapshot]:
    """Snapshots for a performance in ascending date order, optionally bounded."""
    conditions = ["performance_code = @code"]
    params = {"code": performance_code}
    if start is not None:
        conditions.append("snapshot_date >= @start_date")
        params["start_date"] = start
    if end is not None:
        conditions.append("snapshot_date <= @end_date")
        params["end_date"] = end

    sql = f"""
        SELECT * FROM {store.table_ref(config.snapshots_table)}
        WHERE {' AND '.join(conditions)}
        ORDER BY snapshot_date ASC, created_at ASC
    """
    return [Snapshot.model_validate(row) for row in store.query(sql, params)]


def get_expected_performance_codes(store: WarehouseStore, config: StoreClientConfig,
                                   start: date, end: date) -> list[str]:
    """Performance codes scheduled between start and end (inclusive)."""
    sql = f"""
        SELECT performance_code FROM {store.table_ref(config.performances_table)}
        WHERE performance_date >= @start_date AND performance_date <= @end_date
        ORDER BY performance_code
    """
    rows = store.query(sql, {"start_date": start, "end_date": end})
    return [row["performance_code"] for row in rows]
