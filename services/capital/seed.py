from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from services.capital.models import to_instant
from services.capital.store import HistoryStore


@dataclass(frozen=True)
class SeedSource:
    name: str
    annual_rate: float
    available_cents: int


# Demo portfolio; swap for configured sources in production.
DEFAULT_CAPITAL_SOURCES: Tuple[SeedSource, ...] = (
    SeedSource(name="Grant Capital", annual_rate=0.05, available_cents=50_000_000),
    SeedSource(name="Equity", annual_rate=0.00, available_cents=100_000_000),
    SeedSource(name="Bank LOC", annual_rate=0.14, available_cents=75_000_000),
    SeedSource(name="Investor Debt", annual_rate=0.20, available_cents=50_000_000),
)

SEED_NOTE = "Initial capital source - imported from system configuration"


def seed_default_sources(
    store: HistoryStore,
    effective_date: Optional[datetime] = None,
    sources: Tuple[SeedSource, ...] = DEFAULT_CAPITAL_SOURCES,
) -> List[str]:
    """Add each seed source as ADDED, by default 90 days before the store's now."""
    eff = to_instant(effective_date) if effective_date is not None else store.now() - timedelta(days=90)
    return [
        store.add_source(s.name, s.annual_rate, s.available_cents, eff, notes=SEED_NOTE)
        for s in sources
    ]
