from __future__ import annotations
from datetime import datetime


class CapitalHistoryError(Exception):
    """Base class for ledger errors."""


class FutureDateError(CapitalHistoryError):
    def __init__(self, effective_date: datetime, now: datetime):
        self.effective_date = effective_date
        self.now = now
        super().__init__(
            f"effective_date {effective_date.isoformat()} cannot be in the future (now {now.isoformat()})"
        )


class SourceNotFoundError(CapitalHistoryError):
    def __init__(self, source_id: str, as_of: datetime | None = None):
        self.source_id = source_id
        self.as_of = as_of
        when = f" as of {as_of.isoformat()}" if as_of is not None else ""
        super().__init__(f"Capital source {source_id} not found or has been removed{when}")


class StorageUnavailableError(CapitalHistoryError):
    """The storage collaborator failed to load or persist the ledger."""
