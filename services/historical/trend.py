from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional, Sequence

from services.capital.models import CapitalSourceHistoryEntry
from services.historical.periods import DateRange, generate_periods, get_period_dates
from services.valuation.wacc import average_wacc, period_wacc, snapshot_at


def trend(periods: Iterable[DateRange], entries: Sequence[CapitalSourceHistoryEntry]) -> List[Dict[str, Any]]:
    """One point per period, in the order given.

    - wacc: time-weighted average across the period
    - total_capital: total available cents at the period end instant
    """
    out: List[Dict[str, Any]] = []
    for r in periods:
        out.append({
            "period": r.label,
            "wacc": average_wacc(entries, r.start, r.end),
            "total_capital": snapshot_at(entries, r.end).total_capital_cents,
        })
    return out


def trend_for(
    period_type: Any,
    reference_date: Any,
    entries: Sequence[CapitalSourceHistoryEntry],
    custom_range: Optional[DateRange] = None,
) -> List[Dict[str, Any]]:
    return trend(generate_periods(period_type, reference_date, custom_range), entries)


def period_summary(
    period_type: Any,
    reference_date: Any,
    entries: Sequence[CapitalSourceHistoryEntry],
    custom_range: Optional[DateRange] = None,
) -> Dict[str, float]:
    r = get_period_dates(period_type, reference_date, custom_range)
    return period_wacc(entries, r.start, r.end)
