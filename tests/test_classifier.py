"""Tests for performance row classification."""

from boxoffice.classifier import COMP_REPORT_LAYOUT, SALES_SUMMARY_LAYOUT, RowLayout, classify_rows
from boxoffice.glyphs import group_rows
from boxoffice.models import NO_DATA_BLOCK

from conftest import SAMPLE_BLOB, make_page, sales_summary_page


def rows_for(lines):
    return group_rows(make_page(lines))


class TestClassifyRows:
    """Tests for classify_rows on the sales summary layout."""

    def test_finds_codes_and_blobs(self):
        found, skips = classify_rows(group_rows(sales_summary_page()), page_number=2)

        assert [r.performance_code for r in found] == ["251010E", "251011E"]
        assert found[0].date_time_text == "10/10/2025 7:30 PM"
        assert found[0].data_blob == SAMPLE_BLOB
        assert found[0].page_number == 2
        assert skips == []

    def test_total_rows_ignored(self):
        found, _ = classify_rows(rows_for([(1.0, ["Grand Total", "251010E", SAMPLE_BLOB])]))
        assert found == []

    def test_code_must_be_whole_cell(self):
        found, skips = classify_rows(rows_for([(1.0, ["251010E-X", SAMPLE_BLOB])]))
        assert found == [] and skips == []

    def test_data_on_following_row(self):
        found, _ = classify_rows(rows_for([
            (1.0, ["251010E", "10/10/2025"]),
            (2.0, ["Beethoven", "Five"]),
            (3.0, [SAMPLE_BLOB]),
        ]))
        assert len(found) == 1
        assert found[0].data_blob == SAMPLE_BLOB
        assert found[0].date_time_text == "10/10/2025 Beethoven Five"

    def test_blob_split_across_cells_is_concatenated(self):
        found, _ = classify_rows(rows_for([(1.0, ["251010E", "51.1%48032,642.00", "171,209.60",
                                                  "34017,790.7051,642.3000.0051,642.3061452.8%"])]))
        assert found[0].data_blob == SAMPLE_BLOB

    def test_next_code_before_data_is_skipped(self):
        found, skips = classify_rows(rows_for([
            (1.0, ["251009M", "10/9/2025"]),
            (2.0, ["251010E", "10/10/2025", SAMPLE_BLOB]),
        ]))
        assert [r.performance_code for r in found] == ["251010E"]
        assert [(s.performance_code, s.reason) for s in skips] == [("251009M", NO_DATA_BLOCK)]

    def test_window_limits_search(self):
        layout = RowLayout(
            name="narrow",
            code_patterns=SALES_SUMMARY_LAYOUT.code_patterns,
            sentinel=SALES_SUMMARY_LAYOUT.sentinel,
            include_sentinel=True,
            window=1,
        )
        lines = [(1.0, ["251010E"]), (2.0, ["filler"]), (3.0, [SAMPLE_BLOB])]

        found, skips = classify_rows(rows_for(lines), layout)
        assert found == []
        assert skips[0].reason == NO_DATA_BLOCK

        found, _ = classify_rows(rows_for(lines))
        assert len(found) == 1


class TestCompLayout:
    """Tests for the comp report layout."""

    def test_ticket_price_sentinel_excluded(self):
        found, _ = classify_rows(rows_for([
            (1.0, ["251010E", "Beethoven", "Five"]),
            (2.0, ["Ticket Price", "480", "32,642.00", "340", "17,790.70", "0", "0.00", "12", "3", "45.00"]),
        ]), COMP_REPORT_LAYOUT)

        assert found[0].data_cells[:3] == ["480", "32,642.00", "340"]

    def test_special_event_codes(self):
        found, _ = classify_rows(rows_for([
            (1.0, ["26QUARTET1"]),
            (2.0, ["Ticket Price", "1", "2", "3", "4", "5", "6", "7"]),
        ]), COMP_REPORT_LAYOUT)

        assert [r.performance_code for r in found] == ["26QUARTET1"]
        assert not SALES_SUMMARY_LAYOUT.is_code("26QUARTET1")

    def test_sentinel_split_into_words(self):
        found, _ = classify_rows(rows_for([
            (1.0, ["251010E"]),
            (2.0, ["Ticket", "Price", "10", "100.00", "2", "20.00", "0", "0.00", "4"]),
        ]), COMP_REPORT_LAYOUT)

        assert found[0].data_cells[0] == "10"
        assert found[0].data_cells[6] == "4"

    def test_times_are_not_event_codes(self):
        assert not COMP_REPORT_LAYOUT.is_code("10PM")
        assert not COMP_REPORT_LAYOUT.is_code("19QUARTET")
        assert COMP_REPORT_LAYOUT.is_code("27GALA")

        found, skips = classify_rows(rows_for([
            (1.0, ["251010E", "10/10/2025", "10PM"]),
            (2.0, ["Ticket Price", "480", "32,642.00", "340", "17,790.70", "0", "0.00", "12"]),
        ]), COMP_REPORT_LAYOUT)

        assert [r.performance_code for r in found] == ["251010E"]
        assert found[0].date_time_text == "10/10/2025 10PM"
        assert skips == []

    def test_code_after_package_label_skipped(self):
        found, _ = classify_rows(rows_for([
            (1.0, ["FY 26 Package", "26QUARTET1"]),
            (2.0, ["Ticket Price", "1", "2", "3", "4", "5", "6", "7"]),
            (3.0, ["26BRASS2"]),
            (4.0, ["Ticket Price", "8", "9", "10", "11", "12", "13", "14"]),
        ]), COMP_REPORT_LAYOUT)

        assert [r.performance_code for r in found] == ["26BRASS2"]

    def test_package_label_only_applies_to_comp_layout(self):
        assert COMP_REPORT_LAYOUT.follows_aggregate("FY 26 Package")
        assert COMP_REPORT_LAYOUT.follows_aggregate("Series Total")
        assert not SALES_SUMMARY_LAYOUT.follows_aggregate("FY 26 Package")
        assert SALES_SUMMARY_LAYOUT.follows_aggregate("Series Total")
