"""
Field segmenter for fused sales-summary data blobs.

The sales summary prints each performance's numbers with no separators, e.g.

    51.1%48032,642.00171,209.6034017,790.7051,642.3000.0051,642.3061452.8%

which reads as budget 51.1% | 480 fixed 32,642.00 | 17 non-fixed 1,209.60 |
340 single 17,790.70 | subtotal 51,642.30 | 0 reserved 0.00 |
total 51,642.30 | 614 available | 52.8% capacity.

Every '.' before the capacity decimal belongs to exactly one currency run, so
the number of runs is known up front and picks the format profile. What is
ambiguous is where a count stops and the following amount starts; that is
resolved by trying every valid boundary against the report's own
subtotal/total arithmetic and accepting only a unique answer.
"""

import re
from dataclasses import dataclass
from typing import NamedTuple

from .errors import SegmentationError
from .models import FieldWarning, ParsedSalesRecord

# Lookahead so overlapping candidates at every offset are reported
CURRENCY_RUN_PATTERN = re.compile(r'(?=((?:\d{1,3}(?:,\d{3})+|\d{1,3})\.\d{2}))')
COUNT_PATTERN = re.compile(r'0|[1-9]\d{0,2}(?:,\d{3})+|[1-9]\d*')
BUDGET_PATTERN = re.compile(r'^(\d+(?:\.\d+)?)%')
CAPACITY_DECIMAL_PATTERN = re.compile(r'\.(\d+)%$')

REVENUE_TOLERANCE = 0.01

# Capacity is held seats over the hall. Seats neither held nor on sale
# (house seats, kills) stay below this share of the hall.
MAX_UNLISTED_SHARE = 0.5
FLOAT_SLACK = 1e-6

# Gap kinds: text allowed between the previous run and this one
COUNT = "count"
OPTIONAL_COUNT = "optional_count"
NONE = "none"

# Categories that are report totals rather than ticket categories
TOTAL_MARKERS = ("subtotal", "total")


class CurrencyRun(NamedTuple):
    start: int
    end: int
    text: str
    value: float


@dataclass(frozen=True)
class Category:
    field: str
    gap: str = COUNT


@dataclass(frozen=True)
class FormatProfile:
    """One known column layout of the sales summary export."""

    name: str
    category_order: tuple
    markers: tuple = ()

    @property
    def expected_currency_run_count(self) -> int:
        return len(self.category_order)

    @property
    def fields(self) -> list[str]:
        return [c.field for c in self.category_order]


SUMMARY_BASIC = FormatProfile(
    name="summary_basic",
    category_order=(
        Category("fixed"),
        Category("non_fixed"),
        Category("single"),
        Category("subtotal", NONE),
        Category("total", NONE),
    ),
)

SUMMARY_RESERVED = FormatProfile(
    name="summary_reserved",
    category_order=(
        Category("fixed"),
        Category("non_fixed"),
        Category("single"),
        Category("subtotal", NONE),
        Category("reserved", OPTIONAL_COUNT),
        Category("total", NONE),
    ),
    markers=("Reserved",),
)

SUMMARY_OTHER = FormatProfile(
    name="summary_other",
    category_order=(
        Category("fixed"),
        Category("non_fixed"),
        Category("single"),
        Category("other"),
        Category("subtotal", NONE),
        Category("reserved", OPTIONAL_COUNT),
        Category("total", NONE),
    ),
    markers=("Other", "Reserved"),
)

DEFAULT_PROFILES = (SUMMARY_BASIC, SUMMARY_RESERVED, SUMMARY_OTHER)


class SegmentResult(NamedTuple):
    record: ParsedSalesRecord
    profile: str
    warnings: list


def is_valid_currency_text(text: str, preceded_by_comma: bool = False) -> bool:
    """Reject runs produced by a count and an amount running together."""
    if preceded_by_comma:
        return False
    integer = text.split('.')[0]
    first_group = integer.split(',')[0]
    if len(first_group) > 1 and first_group.startswith('0'):
        return False
    if first_group == '0' and ',' in integer:
        return False
    return True


def find_currency_runs(text: str) -> list[CurrencyRun]:
    """All currency-shaped runs at every start offset, left to right."""
    runs = []
    for match in CURRENCY_RUN_PATTERN.finditer(text):
        run_text = match.group(1)
        start = match.start()
        if not is_valid_currency_text(run_text, start > 0 and text[start - 1] == ','):
            continue
        runs.append(CurrencyRun(start, start + len(run_text), run_text,
                                float(run_text.replace(',', ''))))
    return runs


def parse_count(text: str) -> int | None:
    """Parse a ticket count like '480' or '1,204'; None if not count-shaped."""
    if not COUNT_PATTERN.fullmatch(text):
        return None
    return int(text.replace(',', ''))


def _gap_value(gap: str, kind: str) -> tuple[bool, int]:
    if kind == NONE:
        return gap == "", 0
    if gap == "":
        return kind == OPTIONAL_COUNT, 0
    count = parse_count(gap)
    return count is not None, count or 0


def select_profile(run_count: int, profiles=DEFAULT_PROFILES, labels: str = "") -> FormatProfile:
    """Pick the profile by currency-run count, using marker labels on ties."""
    matching = [p for p in profiles if p.expected_currency_run_count == run_count]
    if not matching:
        expected = sorted({p.expected_currency_run_count for p in profiles})
        raise SegmentationError(
            f"Found {run_count} currency runs; known layouts have {expected}")
    if len(matching) > 1 and labels:
        for profile in matching:
            if profile.markers and all(m in labels for m in profile.markers):
                return profile
    return matching[0]


def _split_tail(tail: str, decimals: str) -> list[tuple[int, float]]:
    """Candidate (available seats, capacity percent) pairs, longest capacity first."""
    splits = []
    for width in (3, 2, 1):
        if len(tail) <= width:
            continue
        integer, seats = tail[-width:], tail[:-width]
        if len(integer) > 1 and integer.startswith('0'):
            continue
        available = parse_count(seats)
        capacity = float(f"{integer}.{decimals}")
        if available is None or capacity > 100:
            continue
        splits.append((available, capacity))
    return splits


def capacity_rounding(decimals: str) -> float:
    """Half a unit of the last printed capacity digit, e.g. 0.05 for '52.8'."""
    return 0.5 * 10 ** -len(decimals)


def counts_fit_capacity(held: int, available: int, capacity: float,
                        rounding: float = 0.05) -> bool:
    """
    Whether held and available seats agree with a printed capacity percent.

    The hall implied by capacity is held / (capacity / 100). It must hold at
    least held + available seats, and at most held + available plus the
    unlisted share allowed by MAX_UNLISTED_SHARE.
    """
    seats = held + available
    low = max(capacity - rounding, 0.0)
    high = capacity + rounding
    return (low * seats <= 100.0 * held + FLOAT_SLACK
            and 100.0 * held * (1 - MAX_UNLISTED_SHARE) <= high * seats + FLOAT_SLACK)


def choose_tail_split(splits: list[tuple[int, float]], held: int, rounding: float = 0.05):
    """
    Pick the (available seats, capacity) split that fits the held count.

    Returns:
        tuple of (chosen split, every split that fits). Several fitting
        splits mean the boundary is ambiguous; none means the counts and
        the printed capacity disagree.
    """
    fitting = [s for s in splits if counts_fit_capacity(held, s[0], s[1], rounding)]

    def distance(split):
        available, capacity = split
        seats = held + available
        return abs(capacity - (100.0 * held / seats if seats else 0.0))

    return min(fitting or splits, key=distance), fitting


def _assignments(body: str, runs: list[CurrencyRun], profile: FormatProfile) -> list[tuple]:
    """Every way to place the profile's categories on the runs."""
    order = profile.category_order
    results = []

    def walk(slot: int, pos: int, chosen: list):
        if slot == len(order):
            results.append((tuple(chosen), pos))
            return
        kind = order[slot].gap
        for run in runs:
            if run.start < pos:
                continue
            if kind == NONE and run.start != pos:
                continue
            ok, count = _gap_value(body[pos:run.start], kind)
            if not ok:
                continue
            chosen.append((count, run))
            walk(slot + 1, run.end, chosen)
            chosen.pop()

    walk(0, 0, [])
    return results


def _close(a: float, b: float) -> bool:
    return abs(round(a - b, 2)) <= REVENUE_TOLERANCE


def arithmetic_holds(values: dict, profile: FormatProfile) -> bool:
    """Subtotal equals the categories before it; total adds what follows."""
    fields = profile.fields
    revenue = {name: values[name][1].value for name in fields}
    total_index = fields.index("total")

    if "subtotal" not in fields:
        return _close(revenue["total"], sum(revenue[f] for f in fields[:total_index]))

    subtotal_index = fields.index("subtotal")
    before = sum(revenue[f] for f in fields[:subtotal_index])
    after = sum(revenue[f] for f in fields[subtotal_index + 1:total_index])
    return (_close(revenue["subtotal"], before)
            and _close(revenue["total"], revenue["subtotal"] + after))


def check_ticket_sum(record: ParsedSalesRecord, rounding: float = 0.05) -> FieldWarning | None:
    """
    Flag records whose ticket counts disagree with the report.

    Category counts must add up to tickets sold, and sold + reserved +
    available must fit the printed capacity percent.
    """
    counted = (record.fixed_tickets + record.non_fixed_tickets
               + record.single_tickets + record.other_tickets)
    if counted != record.total_tickets_sold:
        return FieldWarning(
            performance_code=record.performance_code,
            kind="ticket_sum_mismatch",
            message=f"Categories sum to {counted} but total tickets sold is {record.total_tickets_sold}",
        )

    held = counted + record.reserved_tickets
    if counts_fit_capacity(held, record.available_seats, record.capacity_percent, rounding):
        return None
    return FieldWarning(
        performance_code=record.performance_code,
        kind="ticket_sum_mismatch",
        message=(f"{held} held and {record.available_seats} available seats do not match "
                 f"{record.capacity_percent}% capacity"),
    )


def segment_data_blob(blob: str, performance_code: str = "", profiles=DEFAULT_PROFILES,
                      labels: str = "") -> SegmentResult:
    """
    Split a fused data blob into a ParsedSalesRecord.

    Raises:
        SegmentationError: when the blob does not decode to exactly one
        consistent field assignment.
    """
    blob = re.sub(r'\s+', '', blob)

    budget_match = BUDGET_PATTERN.match(blob)
    if not budget_match:
        raise SegmentationError("Missing leading budget percent", blob)
    budget_percent = float(budget_match.group(1))

    capacity_match = CAPACITY_DECIMAL_PATTERN.search(blob)
    if not capacity_match or capacity_match.start() < budget_match.end():
        raise SegmentationError("Missing trailing capacity percent", blob)
    capacity_decimals = capacity_match.group(1)

    body = blob[budget_match.end():capacity_match.start()]
    profile = select_profile(body.count('.'), profiles, labels)
    runs = find_currency_runs(body)

    candidates = []
    for chosen, end in _assignments(body, runs, profile):
        splits = _split_tail(body[end:], capacity_decimals)
        if splits:
            values = {cat.field: item for cat, item in zip(profile.category_order, chosen)}
            candidates.append((values, splits))

    if not candidates:
        raise SegmentationError(
            f"No valid {profile.name} field assignment for {len(runs)} currency candidates", blob)

    warnings = []
    consistent = [c for c in candidates if arithmetic_holds(c[0], profile)]
    if len(consistent) > 1:
        raise SegmentationError(
            f"Ambiguous {profile.name} segmentation ({len(consistent)} consistent readings)", blob)
    if consistent:
        values, splits = consistent[0]
    elif len(candidates) == 1:
        values, splits = candidates[0]
        warnings.append(FieldWarning(
            performance_code=performance_code,
            kind="revenue_mismatch",
            message=f"Revenue categories do not add up to the reported subtotal/total ({profile.name})",
        ))
    else:
        raise SegmentationError(
            f"Ambiguous {profile.name} segmentation ({len(candidates)} readings, none add up)", blob)

    def count(name):
        return values[name][0] if name in values else 0

    def revenue(name):
        return values[name][1].value if name in values else 0.0

    sold = count("fixed") + count("non_fixed") + count("single") + count("other")

    held = sold + count("reserved")
    rounding = capacity_rounding(capacity_decimals)
    (available, capacity), fitting = choose_tail_split(splits, held, rounding)
    if len(fitting) > 1:
        options = ", ".join(f"{seats} available at {cap}%" for seats, cap in fitting)
        warnings.append(FieldWarning(
            performance_code=performance_code,
            kind="capacity_split_ambiguous",
            message=f"Seats/capacity boundary fits several readings ({options}); kept {available} at {capacity}%",
        ))

    record = ParsedSalesRecord(
        performance_code=performance_code,
        budget_percent=budget_percent,
        fixed_tickets=count("fixed"),
        fixed_revenue=revenue("fixed"),
        non_fixed_tickets=count("non_fixed"),
        non_fixed_revenue=revenue("non_fixed"),
        single_tickets=count("single"),
        single_revenue=revenue("single"),
        reserved_tickets=count("reserved"),
        reserved_revenue=revenue("reserved"),
        other_tickets=count("other"),
        other_revenue=revenue("other"),
        subtotal_revenue=revenue("subtotal"),
        total_revenue=revenue("total"),
        total_tickets_sold=sold,
        available_seats=available,
        capacity_percent=capacity,
    )

    ticket_warning = check_ticket_sum(record, rounding)
    if ticket_warning:
        warnings.append(ticket_warning)

    return SegmentResult(record, profile.name, warnings)
