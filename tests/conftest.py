"""Shared fixtures: a SQLite-backed warehouse store and a recording logger."""

import sqlite3
from datetime import date, datetime, timedelta, timezone
from enum import Enum

import pytest

from boxoffice.config import StoreClientConfig
from boxoffice.logs import EventLog
from boxoffice.models import PositionedGlyph
from boxoffice.reconciler import SnapshotReconciler
from boxoffice.store import WarehouseStore

SAMPLE_BLOB = "51.1%48032,642.00171,209.6034017,790.7051,642.3000.0051,642.3061452.8%"
SECOND_BLOB = "38.4%21214,100.009450.001556,201.5020,751.5040.0020,751.5098027.9%"

SNAPSHOT_DDL = """
CREATE TABLE `performance_sales_snapshots` (
    snapshot_id TEXT, performance_code TEXT, snapshot_date TEXT,
    budget_percent REAL,
    fixed_tickets INTEGER, fixed_revenue REAL,
    non_fixed_tickets INTEGER, non_fixed_revenue REAL,
    single_tickets INTEGER, single_revenue REAL,
    reserved_tickets INTEGER, reserved_revenue REAL,
    other_tickets INTEGER, other_revenue REAL,
    subtotal_revenue REAL, total_revenue REAL, total_tickets_sold INTEGER,
    available_seats INTEGER, capacity_percent REAL,
    comp_tickets INTEGER, source TEXT, created_at TEXT
)
"""

PERFORMANCES_DDL = """
CREATE TABLE `performances` (
    performance_code TEXT, performance_date TEXT, title TEXT,
    capacity INTEGER, budget_goal REAL, occupancy_goal REAL, series TEXT
)
"""


class SqliteStore(WarehouseStore):
    """In-memory WarehouseStore running the same parameterized SQL."""

    def __init__(self):
        self.conn = sqlite3.connect(":memory:")
        self.conn.row_factory = sqlite3.Row
        self.conn.execute(SNAPSHOT_DDL)
        self.conn.execute(PERFORMANCES_DDL)
        self.calls = []
        self.failing_codes = set()

    def table_ref(self, table: str) -> str:
        return f"`{table}`"

    @staticmethod
    def _adapt(params: dict) -> dict:
        adapted = {}
        for name, value in params.items():
            if isinstance(value, (date, datetime)):
                value = value.isoformat()
            elif isinstance(value, Enum):
                value = value.value
            adapted[name] = value
        return adapted

    def query(self, sql, params=None):
        self.calls.append(("query", sql))
        cursor = self.conn.execute(sql, self._adapt(params or {}))
        rows = [dict(row) for row in cursor.fetchall()]
        self.conn.commit()
        return rows

    def insert(self, table, rows):
        self.calls.append(("insert", table))
        for row in rows:
            if row.get("performance_code") in self.failing_codes:
                raise RuntimeError(f"simulated insert failure for {row['performance_code']}")
            columns = list(row)
            sql = (f"INSERT INTO `{table}` ({', '.join(columns)}) "
                   f"VALUES ({', '.join(':' + c for c in columns)})")
            self.conn.execute(sql, self._adapt(row))
        self.conn.commit()

    def rows(self, table: str = "performance_sales_snapshots") -> list[dict]:
        cursor = self.conn.execute(f"SELECT * FROM `{table}` ORDER BY rowid")
        return [dict(row) for row in cursor.fetchall()]


class RecordingLogger:
    """Stands in for a Cloud Logging logger."""

    def __init__(self):
        self.entries = []

    def log_struct(self, payload: dict):
        self.entries.append(payload)

    def messages(self, severity: str) -> list[str]:
        return [e["message"] for e in self.entries if e["severity"] == severity]


class StepClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start=datetime(2025, 10, 20, 12, 0, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self):
        self.current += timedelta(seconds=1)
        return self.current


def make_page(lines, x_step: float = 10.0) -> list[PositionedGlyph]:
    """Glyphs for [(y, [cell, cell, ...]), ...] with cells spaced along x."""
    return [
        PositionedGlyph(x=index * x_step, y=y, text=text)
        for y, cells in lines
        for index, text in enumerate(cells)
    ]


def footer(y: float = 40.0, when: str = "10/20/2025"):
    return (y, ["Run", "by", "jsmith", "on", when, "3:14:07", "PM"])


def sales_summary_page(with_footer: bool = True) -> list[PositionedGlyph]:
    lines = [
        (1.0, ["Sales", "Summary", "by", "Performance"]),
        (2.0, ["Performance", "Date", "Budget", "Fixed", "Non-Fixed", "Single",
               "Subtotal", "Reserved", "Total", "Available", "Capacity"]),
        (3.0, ["251010E", "10/10/2025", "7:30", "PM", SAMPLE_BLOB]),
        (4.0, ["251011E", "10/11/2025", "7:30", "PM", SECOND_BLOB]),
        (5.0, ["Series", "Total", "251010E", SAMPLE_BLOB]),
    ]
    if with_footer:
        lines.append(footer())
    return make_page(lines)


@pytest.fixture
def store():
    return SqliteStore()


@pytest.fixture
def store_config():
    return StoreClientConfig(project_id="test-project", dataset="symphony_dashboard")


@pytest.fixture
def recording_logger():
    return RecordingLogger()


@pytest.fixture
def event_log(recording_logger):
    return EventLog(recording_logger, echo=False)


@pytest.fixture
def reconciler(store, store_config, event_log):
    return SnapshotReconciler(store, store_config, event_log, clock=StepClock())
