from __future__ import annotations
from calendar import monthrange
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, List, Optional

from services.capital.models import to_instant

MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


class PeriodType(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"
    ROLLING_60 = "60-day"
    ROLLING_90 = "90-day"
    CUSTOM = "custom"


# Fixed series lengths; dashboard consumers assume these.
PERIOD_COUNTS = {
    PeriodType.MONTHLY: 12,
    PeriodType.QUARTERLY: 4,
    PeriodType.YEARLY: 3,
    PeriodType.ROLLING_60: 6,
    PeriodType.ROLLING_90: 6,
    PeriodType.CUSTOM: 1,
}

_ROLLING_DAYS = {PeriodType.ROLLING_60: 60, PeriodType.ROLLING_90: 90}


def parse_period_type(value: Any) -> PeriodType:
    try:
        return PeriodType(value)
    except ValueError as exc:
        raise ValueError(f"Unknown period type: {value}") from exc


@dataclass(frozen=True)
class DateRange:
    start: datetime
    end: datetime  # inclusive
    kind: PeriodType = PeriodType.CUSTOM

    def __post_init__(self):
        object.__setattr__(self, "start", to_instant(self.start))
        object.__setattr__(self, "end", to_instant(self.end))
        object.__setattr__(self, "kind", parse_period_type(self.kind))
        if self.start > self.end:
            raise ValueError("start must be on or before end")

    @property
    def label(self) -> str:
        kind = infer_period_type(self) if self.kind == PeriodType.CUSTOM else self.kind
        return format_period_label(kind, self.start, self.end)


# -- calendar boundaries (UTC) -----------------------------------------------

def start_of_month(d: datetime) -> datetime:
    return datetime(d.year, d.month, 1, tzinfo=timezone.utc)


def end_of_month(d: datetime) -> datetime:
    last = monthrange(d.year, d.month)[1]
    return datetime(d.year, d.month, last, 23, 59, 59, 999999, tzinfo=timezone.utc)


def start_of_quarter(d: datetime) -> datetime:
    return datetime(d.year, (d.month - 1) // 3 * 3 + 1, 1, tzinfo=timezone.utc)


def end_of_quarter(d: datetime) -> datetime:
    return end_of_month(datetime(d.year, (d.month - 1) // 3 * 3 + 3, 1, tzinfo=timezone.utc))


def start_of_year(d: datetime) -> datetime:
    return datetime(d.year, 1, 1, tzinfo=timezone.utc)


def end_of_year(d: datetime) -> datetime:
    return datetime(d.year, 12, 31, 23, 59, 59, 999999, tzinfo=timezone.utc)


def days_between(start: datetime, end: datetime) -> int:
    """Whole calendar days between two instants, ignoring time of day."""
    return abs((end.date() - start.date()).days)


# -- period construction -----------------------------------------------------

def get_period_dates(
    period_type: Any, reference_date: Any, custom_range: Optional[DateRange] = None
) -> DateRange:
    """The single period of `period_type` containing `reference_date`.

    Rolling windows start at the reference instant and span 60/90 inclusive days.
    """
    kind = parse_period_type(period_type)
    ref = to_instant(reference_date)
    if kind == PeriodType.MONTHLY:
        return DateRange(start_of_month(ref), end_of_month(ref), kind)
    if kind == PeriodType.QUARTERLY:
        return DateRange(start_of_quarter(ref), end_of_quarter(ref), kind)
    if kind == PeriodType.YEARLY:
        return DateRange(start_of_year(ref), end_of_year(ref), kind)
    if kind in _ROLLING_DAYS:
        return DateRange(ref, ref + timedelta(days=_ROLLING_DAYS[kind] - 1), kind)
    if custom_range is None:
        raise ValueError("Custom period type requires an explicit start and end")
    return custom_range


def generate_periods(
    period_type: Any, reference_date: Any, custom_range: Optional[DateRange] = None
) -> List[DateRange]:
    """Trend windows for a period type, oldest first.

    - monthly: 12 calendar months ending with the reference month
    - quarterly: 4 calendar quarters ending with the reference quarter
    - yearly: 3 calendar years ending with the reference year
    - 60-day / 90-day: 6 rolling windows, window i (0..5) starting n*(6-i) days
      before the reference instant
    - custom: the supplied range unchanged
    """
    kind = parse_period_type(period_type)
    ref = to_instant(reference_date)
    out: List[DateRange] = []
    if kind == PeriodType.MONTHLY:
        base = ref.year * 12 + (ref.month - 1)
        for back in range(11, -1, -1):
            y, m0 = divmod(base - back, 12)
            out.append(get_period_dates(kind, datetime(y, m0 + 1, 1, tzinfo=timezone.utc)))
    elif kind == PeriodType.QUARTERLY:
        base = ref.year * 4 + (ref.month - 1) // 3
        for back in range(3, -1, -1):
            y, q = divmod(base - back, 4)
            out.append(get_period_dates(kind, datetime(y, q * 3 + 1, 1, tzinfo=timezone.utc)))
    elif kind == PeriodType.YEARLY:
        for back in range(2, -1, -1):
            out.append(get_period_dates(kind, datetime(ref.year - back, 1, 1, tzinfo=timezone.utc)))
    elif kind in _ROLLING_DAYS:
        n = _ROLLING_DAYS[kind]
        for i in range(6):
            out.append(get_period_dates(kind, ref - timedelta(days=n * (6 - i))))
    else:
        if custom_range is None:
            raise ValueError("Custom period type requires an explicit start and end")
        out.append(custom_range)
    return out


# -- labels ------------------------------------------------------------------

def _format_span(start: datetime, end: datetime) -> str:
    s = f"{MONTH_NAMES[start.month - 1]} {start.day}"
    e = f"{MONTH_NAMES[end.month - 1]} {end.day}"
    if start.year == end.year:
        return f"{s} - {e}, {start.year}"
    return f"{s}, {start.year} - {e}, {end.year}"


def format_period_label(period_type: Any, start: datetime, end: datetime) -> str:
    """'Jan 2025', 'Q2 2025', '2025', or 'Jan 15 - Mar 20, 2025' for spans."""
    kind = parse_period_type(period_type)
    if kind == PeriodType.MONTHLY:
        return f"{MONTH_NAMES[start.month - 1]} {start.year}"
    if kind == PeriodType.QUARTERLY:
        return f"Q{(start.month - 1) // 3 + 1} {start.year}"
    if kind == PeriodType.YEARLY:
        return str(start.year)
    return _format_span(start, end)


def infer_period_type(r: DateRange) -> PeriodType:
    """Guess the period type of a bare range from its length and boundaries."""
    inclusive = days_between(r.start, r.end) + 1
    if 365 <= inclusive <= 366:
        return PeriodType.YEARLY
    if 90 <= inclusive <= 92 and r.start.day == 1 and r.start.month in (1, 4, 7, 10):
        return PeriodType.QUARTERLY
    if inclusive == 90:
        return PeriodType.ROLLING_90
    if inclusive == 60:
        return PeriodType.ROLLING_60
    if 28 <= inclusive <= 31 and r.start.day == 1 and r.end.day >= 28:
        return PeriodType.MONTHLY
    return PeriodType.CUSTOM
