from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional, Sequence
import logging

from services.capital.models import CapitalSource, CapitalSourceHistoryEntry, WACCSnapshot
from services.capital.seed import seed_default_sources
from services.capital.storage import HistoryStorage, InMemoryStorage, JSONFileStorage
from services.capital.store import HistoryStore
from services.config.env import CapitalConfig, get_capital_config
from services.exports.reports import wacc_summary_md
from services.historical.periods import DateRange, get_period_dates
from services.historical.trend import period_summary, trend, trend_for
from services.valuation.wacc import period_wacc, snapshot_at

logger = logging.getLogger(__name__)


class CapitalService:
    """Presentation-facing API over one HistoryStore."""

    def __init__(self, store: HistoryStore):
        self.store = store

    @classmethod
    def from_config(cls, cfg: Optional[CapitalConfig] = None) -> "CapitalService":
        cfg = cfg or get_capital_config()
        storage: HistoryStorage
        if cfg.history_path:
            storage = JSONFileStorage(cfg.history_path)
        else:
            storage = InMemoryStorage()
        store = HistoryStore(storage)
        if cfg.seed_demo and not store.snapshot():
            ids = seed_default_sources(store)
            logger.info("Seeded %d demo capital sources", len(ids))
        return cls(store)

    # writes

    def add_capital_source(self, source: Mapping[str, Any], effective_date: Any, notes: Optional[str] = None) -> str:
        missing = [k for k in ("name", "annual_rate", "available_cents") if k not in source]
        if missing:
            raise ValueError(f"missing fields: {', '.join(missing)}")
        return self.store.add_source(
            source["name"], source["annual_rate"], source["available_cents"], effective_date, notes
        )

    def update_capital_amount(
        self, source_id: str, new_amount_cents: int, effective_date: Any, notes: Optional[str] = None
    ) -> None:
        self.store.update_amount(source_id, new_amount_cents, effective_date, notes)

    def update_capital_rate(
        self, source_id: str, new_rate: float, effective_date: Any, notes: Optional[str] = None
    ) -> None:
        self.store.update_rate(source_id, new_rate, effective_date, notes)

    def remove_capital_source(self, source_id: str, effective_date: Any, notes: Optional[str] = None) -> None:
        self.store.remove_source(source_id, effective_date, notes)

    # reads

    def get_capital_history(self) -> List[CapitalSourceHistoryEntry]:
        return self.store.get_history()

    def get_history_for_source(self, source_id: str) -> List[CapitalSourceHistoryEntry]:
        return self.store.get_history_for_source(source_id)

    def get_history_in_date_range(self, start: Any, end: Any) -> List[CapitalSourceHistoryEntry]:
        return self.store.get_history_in_range(start, end)

    def get_active_capital_sources(self, as_of: Any = None) -> List[CapitalSource]:
        return self.store.get_active_sources(as_of)

    def calculate_wacc_at_date(self, date: Any) -> WACCSnapshot:
        return snapshot_at(self.store.snapshot(), date)

    def calculate_period_wacc(
        self, period_type: Any, reference_date: Any, custom_range: Optional[DateRange] = None
    ) -> Dict[str, float]:
        return period_summary(period_type, reference_date, self.store.snapshot(), custom_range)

    def get_wacc_trend_data(self, periods: Sequence[DateRange]) -> List[Dict[str, Any]]:
        return trend(periods, self.store.snapshot())

    def get_wacc_trend_for(
        self, period_type: Any, reference_date: Any = None, custom_range: Optional[DateRange] = None
    ) -> List[Dict[str, Any]]:
        ref = self.store.now() if reference_date is None else reference_date
        return trend_for(period_type, ref, self.store.snapshot(), custom_range)

    def get_period_summary_md(
        self, period_type: Any, reference_date: Any = None, custom_range: Optional[DateRange] = None
    ) -> str:
        """Markdown summary of one period: start/end/average WACC and the sources active at its close."""
        ref = self.store.now() if reference_date is None else reference_date
        r = get_period_dates(period_type, ref, custom_range)
        summary = period_wacc(self.store.snapshot(), r.start, r.end)
        sources = self.store.get_active_sources(min(r.end, self.store.now()))
        return wacc_summary_md(r.label, summary, sources)
