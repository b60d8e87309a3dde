from __future__ import annotations
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from services.capital.models import Action, CapitalSource, CapitalSourceHistoryEntry


def _project(entry: CapitalSourceHistoryEntry) -> CapitalSource:
    return CapitalSource(
        source_id=entry.source_id,
        name=entry.name,
        annual_rate=entry.annual_rate,
        available_cents=entry.available_cents,
        used_cents=0,
        remaining_cents=entry.available_cents,
    )


def resolve(
    entries: Iterable[CapitalSourceHistoryEntry], source_id: str, as_of: datetime
) -> Optional[CapitalSource]:
    """State of one lineage as of `as_of`, or None if not yet added or removed.

    Entries at exactly `as_of` are in effect. Same-instant entries are ordered
    by `seq`, so the last write wins.
    """
    relevant = [e for e in entries if e.source_id == source_id and e.effective_date <= as_of]
    if not relevant:
        return None
    latest = max(relevant, key=lambda e: e.sort_key)
    if latest.action == Action.REMOVED:
        return None
    return _project(latest)


def latest_entries(
    entries: Iterable[CapitalSourceHistoryEntry], as_of: datetime
) -> Dict[str, CapitalSourceHistoryEntry]:
    """Latest entry per lineage at `as_of`, keyed in first-seen order."""
    out: Dict[str, CapitalSourceHistoryEntry] = {}
    for e in entries:
        if e.effective_date > as_of:
            continue
        cur = out.get(e.source_id)
        if cur is None or e.sort_key > cur.sort_key:
            out[e.source_id] = e
    return out


def active_sources(entries: Iterable[CapitalSourceHistoryEntry], as_of: datetime) -> List[CapitalSource]:
    ordered = sorted(entries, key=lambda e: e.sort_key)
    latest = latest_entries(ordered, as_of)
    return [_project(e) for e in latest.values() if e.action != Action.REMOVED]


def reactivated_source_ids(entries: Iterable[CapitalSourceHistoryEntry]) -> List[str]:
    """Lineages with any entry ordered after one of their REMOVED entries."""
    removed: set[str] = set()
    flagged: List[str] = []
    for e in sorted(entries, key=lambda e: e.sort_key):
        if e.source_id in removed and e.source_id not in flagged:
            flagged.append(e.source_id)
        if e.action == Action.REMOVED:
            removed.add(e.source_id)
    return flagged
