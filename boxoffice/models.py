"""Pydantic models for glyphs, parsed records, manifests and snapshots."""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, Field


# Skip reasons surfaced to operators
NO_DATA_BLOCK = "no_data_block"
SEGMENTATION_FAILED = "segmentation_failed"
NOT_FOUND_IN_REPORT = "not_found_in_report"

# Snapshot columns written from a parsed sales record
SNAPSHOT_SALES_FIELDS = (
    "budget_percent",
    "fixed_tickets", "fixed_revenue",
    "non_fixed_tickets", "non_fixed_revenue",
    "single_tickets", "single_revenue",
    "reserved_tickets", "reserved_revenue",
    "other_tickets", "other_revenue",
    "subtotal_revenue", "total_revenue",
    "total_tickets_sold",
    "available_seats", "capacity_percent",
)

# Snapshot columns patched by sidecar reports
SNAPSHOT_SIDECAR_FIELDS = ("comp_tickets",)

# Columns owned by the performances table (metadata editors)
PERFORMANCE_METADATA_FIELDS = (
    "capacity", "budget_goal", "title", "occupancy_goal", "series",
    "venue", "season", "performance_date",
)


class Source(str, Enum):
    PDF_WEBHOOK = "pdf_webhook"
    PDF_REPROCESS = "pdf_reprocess"
    HISTORICAL_PDF_IMPORT = "historical_pdf_import"
    MIGRATION = "migration"
    MANUAL = "manual"


class PositionedGlyph(BaseModel):
    x: float
    y: float
    text: str


class Cell(BaseModel):
    x: float
    text: str


class Row(BaseModel):
    y: float
    cells: list[Cell] = Field(default_factory=list)

    def texts(self) -> list[str]:
        return [cell.text for cell in self.cells]

    def text(self, sep: str = " ") -> str:
        return sep.join(self.texts())


class PerformanceRow(BaseModel):
    """Cells belonging to one performance code on one page."""

    performance_code: str
    date_time_text: str = ""
    data_cells: list[str] = Field(default_factory=list)
    page_number: int = 1
    row_y: float = 0.0

    @property
    def data_blob(self) -> str:
        # The report fuses numbers with no separators, so cells join with ''
        return "".join(self.data_cells)


class RowSkip(BaseModel):
    performance_code: str
    reason: str
    detail: str = ""
    page_number: int | None = None


class FieldWarning(BaseModel):
    performance_code: str
    kind: str
    message: str


class ParsedSalesRecord(BaseModel):
    performance_code: str
    performance_datetime_text: str = ""
    page_number: int | None = None
    budget_percent: float
    fixed_tickets: int = 0
    fixed_revenue: float = 0.0
    non_fixed_tickets: int = 0
    non_fixed_revenue: float = 0.0
    single_tickets: int = 0
    single_revenue: float = 0.0
    reserved_tickets: int = 0
    reserved_revenue: float = 0.0
    other_tickets: int = 0
    other_revenue: float = 0.0
    subtotal_revenue: float = 0.0
    total_revenue: float = 0.0
    total_tickets_sold: int = 0
    available_seats: int = 0
    capacity_percent: float = 0.0

    def sales_fields(self) -> dict:
        return {name: getattr(self, name) for name in SNAPSHOT_SALES_FIELDS}


class ReportManifest(BaseModel):
    report_date: date
    performances: list[ParsedSalesRecord] = Field(default_factory=list)
    skipped: list[RowSkip] = Field(default_factory=list)
    warnings: list[FieldWarning] = Field(default_factory=list)
    notes: list[str] = Field(default_factory=list)

    @property
    def skipped_codes(self) -> list[str]:
        return [skip.performance_code for skip in self.skipped]

    def summary(self) -> dict:
        return {
            "report_date": self.report_date.isoformat(),
            "performances": len(self.performances),
            "skipped": [skip.model_dump(exclude_none=True) for skip in self.skipped],
            "warnings": [warning.model_dump() for warning in self.warnings],
            "notes": self.notes,
        }


class CompTicketRecord(BaseModel):
    performance_code: str
    package_tickets: int = 0
    single_tickets: int = 0
    discount_tickets: int = 0
    comp_tickets: int = 0
    other_tickets: int = 0
    total_revenue: float | None = None
    page_number: int | None = None


class CompReport(BaseModel):
    report_date: date
    records: list[CompTicketRecord] = Field(default_factory=list)
    skipped: list[RowSkip] = Field(default_factory=list)


class Snapshot(BaseModel):
    """One stored row of performance_sales_snapshots."""

    snapshot_id: str
    performance_code: str
    snapshot_date: date
    budget_percent: float | None = None
    fixed_tickets: int | None = None
    fixed_revenue: float | None = None
    non_fixed_tickets: int | None = None
    non_fixed_revenue: float | None = None
    single_tickets: int | None = None
    single_revenue: float | None = None
    reserved_tickets: int | None = None
    reserved_revenue: float | None = None
    other_tickets: int | None = None
    other_revenue: float | None = None
    subtotal_revenue: float | None = None
    total_revenue: float | None = None
    total_tickets_sold: int | None = None
    available_seats: int | None = None
    capacity_percent: float | None = None
    comp_tickets: int | None = None
    # Rows loaded before the source enum existed may carry other labels
    source: Source | str
    created_at: datetime | None = None

    def to_row(self) -> dict:
        return self.model_dump(mode="json")


class RecordError(BaseModel):
    code: str
    reason: str


class ReconciliationResult(BaseModel):
    inserted: int = 0
    updated: int = 0
    rejected: int = 0
    errors: list[RecordError] = Field(default_factory=list)
    warnings: list[FieldWarning] = Field(default_factory=list)
    decisions: dict[str, str] = Field(default_factory=dict)


class SidecarResult(BaseModel):
    updated: int = 0
    not_found: list[str] = Field(default_factory=list)
    errors: list[RecordError] = Field(default_factory=list)


class IngestMetadata(BaseModel):
    filename: str = "unknown"
    received_at: datetime | None = None
    email_subject: str | None = None


class IngestResult(BaseModel):
    success: bool
    manifest: ReportManifest
    reconciliation: ReconciliationResult


class CompIngestResult(BaseModel):
    success: bool
    report: CompReport
    sidecar: SidecarResult
