"""Tests for read-only snapshot projections."""

import uuid
from datetime import date, datetime, timezone

from boxoffice.models import Snapshot, Source
from boxoffice.readers import (
    get_expected_performance_codes, get_latest_snapshot, get_snapshot_history,
)


def add_snapshot(store, code, snapshot_date, hour, **fields):
    store.insert("performance_sales_snapshots", [Snapshot(
        snapshot_id=str(uuid.uuid4()),
        performance_code=code,
        snapshot_date=snapshot_date,
        source=Source.PDF_WEBHOOK,
        created_at=datetime(2025, 10, 20, hour, tzinfo=timezone.utc),
        **fields,
    ).to_row()])


class TestSnapshotReaders:
    """Tests for latest/history lookups."""

    def test_latest_snapshot(self, store, store_config):
        add_snapshot(store, "251010E", date(2025, 10, 18), 8, fixed_tickets=300)
        add_snapshot(store, "251010E", date(2025, 10, 20), 8, fixed_tickets=480)
        add_snapshot(store, "251011E", date(2025, 10, 21), 8, fixed_tickets=1)

        latest = get_latest_snapshot(store, store_config, "251010E")

        assert latest.snapshot_date == date(2025, 10, 20)
        assert latest.fixed_tickets == 480
        assert latest.source == Source.PDF_WEBHOOK

    def test_latest_missing(self, store, store_config):
        assert get_latest_snapshot(store, store_config, "251010E") is None

    def test_history_bounds_and_order(self, store, store_config):
        for day in (21, 18, 19, 20):
            add_snapshot(store, "251010E", date(2025, 10, day), 8)

        history = get_snapshot_history(store, store_config, "251010E",
                                       start=date(2025, 10, 19), end=date(2025, 10, 20))
        assert [s.snapshot_date.day for s in history] == [19, 20]

        everything = get_snapshot_history(store, store_config, "251010E")
        assert [s.snapshot_date.day for s in everything] == [18, 19, 20, 21]


class TestExpectedCodes:
    """Tests for get_expected_performance_codes."""

    def test_window(self, store, store_config):
        store.conn.executemany(
            "INSERT INTO `performances` (performance_code, performance_date) VALUES (?, ?)",
            [("251022E", "2025-10-22"), ("251019E", "2025-10-19"), ("251101E", "2025-11-01"),
             ("251020M", "2025-10-20")],
        )

        codes = get_expected_performance_codes(store, store_config, date(2025, 10, 20), date(2025, 10, 27))
        assert codes == ["251020M", "251022E"]
