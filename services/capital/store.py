from __future__ import annotations
from datetime import datetime
from typing import Any, Callable, List, Optional, Tuple
import logging
import threading
import uuid

from services.capital.errors import FutureDateError, SourceNotFoundError, StorageUnavailableError
from services.capital.models import (
    Action,
    CapitalSource,
    CapitalSourceHistoryEntry,
    to_instant,
    utc_now,
    validate_cents,
    validate_name,
    validate_rate,
)
from services.capital.reconstruct import active_sources, reactivated_source_ids, resolve
from services.capital.storage import HistoryStorage

logger = logging.getLogger(__name__)


class HistoryStore:
    """Append-only ledger of capital-source changes.

    The store is the only writer. Every write validates, persists the whole
    updated ledger through the storage collaborator, and only then commits it
    in memory, so a failed save leaves reads exactly as they were. Writes are
    serialized by a lock; reads use the committed tuple without locking.
    """

    def __init__(self, storage: HistoryStorage, clock: Callable[[], datetime] = utc_now):
        self._storage = storage
        self._clock = clock
        self._lock = threading.Lock()
        try:
            loaded = storage.load()
        except StorageUnavailableError:
            raise
        except Exception as exc:
            logger.exception("Storage adapter error while loading capital history")
            raise StorageUnavailableError(str(exc)) from exc
        self._entries: Tuple[CapitalSourceHistoryEntry, ...] = tuple(sorted(loaded, key=lambda e: e.sort_key))
        self._next_seq = max((e.seq for e in self._entries), default=0) + 1
        logger.info("Hydrated capital history with %d entries", len(self._entries))
        revived = reactivated_source_ids(self._entries)
        if revived:
            logger.warning("Ledger has entries after REMOVED for source ids %s; latest entry wins", revived)

    # -- helpers ---------------------------------------------------------

    def now(self) -> datetime:
        return to_instant(self._clock())

    def _check_not_future(self, effective_date: Any) -> datetime:
        eff = to_instant(effective_date)
        now = self.now()
        if eff > now:
            raise FutureDateError(eff, now)
        return eff

    def _require_active(self, source_id: str, eff: datetime) -> CapitalSource:
        state = resolve(self._entries, source_id, eff)
        if state is None:
            raise SourceNotFoundError(source_id, eff)
        return state

    def _commit(self, entry: CapitalSourceHistoryEntry) -> None:
        # Caller holds the lock. Nothing in memory changes unless save succeeds.
        updated = tuple(sorted(self._entries + (entry,), key=lambda e: e.sort_key))
        try:
            self._storage.save(updated)
        except StorageUnavailableError:
            logger.exception("Failed to persist %s for %s", entry.action.value, entry.source_id)
            raise
        except Exception as exc:
            logger.exception("Storage adapter error on %s for %s", entry.action.value, entry.source_id)
            raise StorageUnavailableError(str(exc)) from exc
        self._entries = updated
        self._next_seq = entry.seq + 1
        logger.info(
            "Recorded %s for %s effective %s", entry.action.value, entry.source_id, entry.effective_date.isoformat()
        )

    def _new_entry(self, **fields: Any) -> CapitalSourceHistoryEntry:
        return CapitalSourceHistoryEntry(id=f"h_{uuid.uuid4().hex}", seq=self._next_seq, **fields)

    # -- writes ----------------------------------------------------------

    def add_source(
        self,
        name: str,
        annual_rate: float,
        available_cents: int,
        effective_date: Any,
        notes: Optional[str] = None,
    ) -> str:
        name = validate_name(name)
        rate = validate_rate(annual_rate)
        cents = validate_cents(available_cents)
        with self._lock:
            eff = self._check_not_future(effective_date)
            source_id = f"src_{uuid.uuid4().hex}"
            self._commit(self._new_entry(
                source_id=source_id,
                effective_date=eff,
                name=name,
                annual_rate=rate,
                available_cents=cents,
                action=Action.ADDED,
                notes=notes,
            ))
        return source_id

    def update_amount(
        self, source_id: str, new_amount_cents: int, effective_date: Any, notes: Optional[str] = None
    ) -> None:
        cents = validate_cents(new_amount_cents)
        with self._lock:
            eff = self._check_not_future(effective_date)
            state = self._require_active(source_id, eff)
            self._commit(self._new_entry(
                source_id=source_id,
                effective_date=eff,
                name=state.name,
                annual_rate=state.annual_rate,
                available_cents=cents,
                action=Action.AMOUNT_CHANGED,
                previous_amount=state.available_cents,
                notes=notes,
            ))

    def update_rate(
        self, source_id: str, new_rate: float, effective_date: Any, notes: Optional[str] = None
    ) -> None:
        rate = validate_rate(new_rate)
        with self._lock:
            eff = self._check_not_future(effective_date)
            state = self._require_active(source_id, eff)
            self._commit(self._new_entry(
                source_id=source_id,
                effective_date=eff,
                name=state.name,
                annual_rate=rate,
                available_cents=state.available_cents,
                action=Action.RATE_CHANGED,
                previous_rate=state.annual_rate,
                notes=notes,
            ))

    def remove_source(self, source_id: str, effective_date: Any, notes: Optional[str] = None) -> None:
        with self._lock:
            eff = self._check_not_future(effective_date)
            state = self._require_active(source_id, eff)
            self._commit(self._new_entry(
                source_id=source_id,
                effective_date=eff,
                name=state.name,
                annual_rate=state.annual_rate,
                available_cents=state.available_cents,
                action=Action.REMOVED,
                notes=notes,
            ))

    # -- reads -----------------------------------------------------------

    def snapshot(self) -> Tuple[CapitalSourceHistoryEntry, ...]:
        return self._entries

    def get_history(self) -> List[CapitalSourceHistoryEntry]:
        return list(self._entries)

    def get_history_for_source(self, source_id: str) -> List[CapitalSourceHistoryEntry]:
        return [e for e in self._entries if e.source_id == source_id]

    def get_history_in_range(self, start: Any, end: Any) -> List[CapitalSourceHistoryEntry]:
        lo, hi = to_instant(start), to_instant(end)
        if lo > hi:
            raise ValueError("start must be on or before end")
        return [e for e in self._entries if lo <= e.effective_date <= hi]

    def get_source_ids(self) -> List[str]:
        seen: List[str] = []
        for e in self._entries:
            if e.source_id not in seen:
                seen.append(e.source_id)
        return seen

    def get_active_sources(self, as_of: Any = None) -> List[CapitalSource]:
        when = self.now() if as_of is None else to_instant(as_of)
        return active_sources(self._entries, when)
