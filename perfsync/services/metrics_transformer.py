"""
Metrics Transformer

Turns one (already redacted) sheet row into a canonical daily metric.

Rules:
- A row without any date column is skipped, never an error.
- Unreadable or out-of-range numbers become 0; unreadable dates become today.
- ROAS is taken from the sheet when the column exists, otherwise derived
  as sales / spend.
- Conversion rates are quantized to 4 places with ROUND_HALF_UP, so a tie
  such as 0.00005 becomes 0.0001. Coaching thresholds downstream compare
  against these stored values.
"""
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Mapping, Optional

from dateutil import parser as date_parser

from perfsync.services.column_resolver import SEGMENT_FIELDS, resolve
from perfsync.utils.logger import log

# Day 0 for numeric (spreadsheet serial) dates
SERIAL_DATE_EPOCH = date(1900, 1, 1)

RATE_PLACES = Decimal("0.0001")
ZERO = Decimal("0")

# Exclusive magnitude limits of the storage columns: counts are 64-bit
# integers, money and ROAS are Numeric(14, 4)
MAX_COUNT = Decimal(2 ** 63)
MAX_AMOUNT = Decimal(10) ** 10

# Characters sheets commonly wrap numbers in ("$1,250.00", "1 204")
_NUMBER_NOISE = ("$", ",", " ", "\u00a0")


@dataclass
class TransformedMetric:
    """One canonical metric row. Segment dimensions stay None until storage."""
    date: date
    medium: Optional[str] = None
    source: Optional[str] = None
    campaign: Optional[str] = None
    location: Optional[str] = None
    user: Optional[str] = None
    service_person: Optional[str] = None
    leads: int = 0
    consults: int = 0
    sales: int = 0
    spend: Decimal = ZERO
    roas: Decimal = ZERO
    leads_to_consult_rate: Decimal = ZERO
    leads_to_sale_rate: Decimal = ZERO
    raw_data: Dict[str, Any] = field(default_factory=dict)

    def dimensions(self) -> Dict[str, str]:
        """Segment dimensions with None normalized to '' for the composite key."""
        return {name: getattr(self, name) or "" for name in SEGMENT_FIELDS}

    def natural_key(self, tenant_id: str) -> tuple:
        dims = self.dimensions()
        return (tenant_id, self.date) + tuple(dims[name] for name in SEGMENT_FIELDS)


def parse_date(value: Any) -> date:
    """Parse a sheet date cell; falls back to today when unreadable."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if math.isfinite(value):
            try:
                return SERIAL_DATE_EPOCH + timedelta(days=int(value))
            except OverflowError:
                pass
        log.warning(f"Serial date out of range: {value!r}, using today")
        return datetime.utcnow().date()

    if value is None or not str(value).strip():
        return datetime.utcnow().date()

    try:
        return date_parser.parse(str(value).strip()).date()
    except (ValueError, OverflowError) as e:
        log.warning(f"Could not parse date {value!r} ({e}), using today")
        return datetime.utcnow().date()


def parse_number(value: Any, default: float = 0, limit: Decimal = MAX_AMOUNT) -> Decimal:
    """Parse a numeric cell. Never raises; null, blank, junk and values whose
    magnitude reaches `limit` give `default`."""
    if value is None or isinstance(value, bool):
        return Decimal(str(default))

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    else:
        s = str(value)
        for ch in _NUMBER_NOISE:
            s = s.replace(ch, "")
        s = s.strip()
        if not s or s == "--":
            return Decimal(str(default))
        try:
            result = Decimal(s)
        except InvalidOperation:
            return Decimal(str(default))

    if not result.is_finite():
        return Decimal(str(default))
    if result.copy_abs() >= limit:
        log.warning(f"Numeric cell out of range: {value!r}, using {default}")
        return Decimal(str(default))
    return result


def conversion_rate(numerator, denominator) -> Decimal:
    """numerator / denominator to 4 places, 0 when the denominator is 0."""
    denominator = Decimal(denominator)
    if denominator == 0:
        return ZERO
    return (Decimal(numerator) / denominator).quantize(RATE_PLACES, rounding=ROUND_HALF_UP)


def _segment_value(row: Mapping[str, Any], canonical_field: str) -> Optional[str]:
    column = resolve(row, canonical_field)
    if column is None:
        return None
    value = row[column]
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def _number_field(row: Mapping[str, Any], canonical_field: str, limit: Decimal = MAX_AMOUNT) -> Decimal:
    column = resolve(row, canonical_field)
    return parse_number(row[column], limit=limit) if column is not None else ZERO


def transform_row(row: Mapping[str, Any]) -> Optional[TransformedMetric]:
    """Transform one sheet row, or return None to skip it."""
    try:
        date_col = resolve(row, "date")
        if date_col is None:
            log.warning(f"No date column found in row, skipping: {list(row.keys())}")
            return None

        # Counts are integers; fractional cells are truncated
        leads = int(_number_field(row, "leads", MAX_COUNT))
        consults = int(_number_field(row, "consults", MAX_COUNT))
        sales = int(_number_field(row, "sales", MAX_COUNT))
        spend = _number_field(row, "spend")

        roas_col = resolve(row, "roas")
        if roas_col is not None:
            roas = parse_number(row[roas_col])
        elif spend > 0:
            roas = Decimal(sales) / spend
            if roas >= MAX_AMOUNT:
                log.warning(f"Derived ROAS out of range ({sales} / {spend}), using 0")
                roas = ZERO
            roas = roas.quantize(RATE_PLACES, rounding=ROUND_HALF_UP)
        else:
            roas = ZERO

        return TransformedMetric(
            date=parse_date(row[date_col]),
            medium=_segment_value(row, "medium"),
            source=_segment_value(row, "source"),
            campaign=_segment_value(row, "campaign"),
            location=_segment_value(row, "location"),
            user=_segment_value(row, "user"),
            service_person=_segment_value(row, "service_person"),
            leads=leads,
            consults=consults,
            sales=sales,
            spend=spend,
            roas=roas,
            leads_to_consult_rate=conversion_rate(consults, leads),
            leads_to_sale_rate=conversion_rate(sales, leads),
            raw_data=dict(row),
        )
    except Exception as e:
        log.error(f"Error transforming row {dict(row)!r}: {e}")
        return None


def transform_rows(rows: Iterable[Mapping[str, Any]]) -> List[TransformedMetric]:
    """Transform a batch; skipped rows are dropped."""
    metrics = []
    for row in rows:
        metric = transform_row(row)
        if metric is not None:
            metrics.append(metric)
    return metrics
