from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, Iterable, Sequence

from services.capital.models import CapitalSource, CapitalSourceHistoryEntry, WACCSnapshot, to_instant
from services.capital.reconstruct import active_sources


def total_capital_cents(sources: Iterable[CapitalSource]) -> int:
    return sum(s.available_cents for s in sources)


def compute_wacc(sources: Iterable[CapitalSource]) -> float:
    """Weighted Average Cost of Capital over active sources.
    WACC = Σ(available_cents_i * annual_rate_i) / Σ(available_cents_i)
    Zero total capital (including no sources) yields 0.0 rather than an error.
    """
    srcs = list(sources)
    total = total_capital_cents(srcs)
    if total == 0:
        return 0.0
    weighted = sum(s.available_cents * s.annual_rate for s in srcs)
    return float(weighted / total)


def snapshot_at(entries: Sequence[CapitalSourceHistoryEntry], date: Any) -> WACCSnapshot:
    when = to_instant(date)
    sources = active_sources(entries, when)
    return WACCSnapshot(
        date=when,
        sources=tuple(sources),
        total_capital_cents=total_capital_cents(sources),
        wacc=compute_wacc(sources),
    )


def average_wacc(entries: Sequence[CapitalSourceHistoryEntry], start: Any, end: Any) -> float:
    """Time-weighted average WACC over [start, end].

    The range is cut at every effective date strictly inside it. Each piece is
    valued at the WACC in force at its own start and weighted by its elapsed
    seconds. A zero-length range returns the WACC at `start`.
    """
    lo, hi = to_instant(start), to_instant(end)
    if lo > hi:
        raise ValueError("start must be on or before end")
    inner = sorted({e.effective_date for e in entries if lo < e.effective_date < hi})
    bounds: list[datetime] = [lo, *inner, hi]
    total_secs = 0.0
    weighted = 0.0
    for a, b in zip(bounds, bounds[1:]):
        secs = (b - a).total_seconds()
        if secs <= 0:
            continue
        weighted += snapshot_at(entries, a).wacc * secs
        total_secs += secs
    if total_secs == 0:
        return snapshot_at(entries, lo).wacc
    return float(weighted / total_secs)


def period_wacc(entries: Sequence[CapitalSourceHistoryEntry], start: Any, end: Any) -> Dict[str, float]:
    """WACC at the start instant, at the end instant, and time-weighted between."""
    return {
        "start": snapshot_at(entries, start).wacc,
        "end": snapshot_at(entries, end).wacc,
        "average": average_wacc(entries, start, end),
    }
