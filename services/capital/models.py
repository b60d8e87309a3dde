from __future__ import annotations
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple
import math

# All money is integer cents; all rates are decimal fractions (0.14 == 14%).


class Action(str, Enum):
    ADDED = "ADDED"
    AMOUNT_CHANGED = "AMOUNT_CHANGED"
    RATE_CHANGED = "RATE_CHANGED"
    REMOVED = "REMOVED"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_instant(value: Any) -> datetime:
    """Normalize a datetime, date or ISO-8601 string to an aware UTC datetime.

    Naive datetimes are local wall-clock time, as `datetime.now()` returns.
    Bare dates and ISO strings without an offset are taken as UTC.
    """
    if isinstance(value, datetime):
        return value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str):
        s = value.strip()
        if not s:
            raise ValueError("empty date string")
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(s)
        except ValueError as exc:
            raise ValueError(f"invalid ISO-8601 date: {value!r}") from exc
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    raise ValueError(f"unsupported date value: {value!r}")


def validate_cents(value: Any, field: str = "available_cents") -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{field} must be an integer number of cents")
    if value < 0:
        raise ValueError(f"{field} must be non-negative")
    return value


def validate_rate(value: Any, field: str = "annual_rate") -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{field} must be a decimal fraction")
    rate = float(value)
    if not math.isfinite(rate) or not (0.0 <= rate <= 1.0):
        raise ValueError(f"{field} must be between 0 and 1")
    return rate


def validate_name(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError("name must be a non-empty string")
    return value.strip()


@dataclass(frozen=True)
class CapitalSourceHistoryEntry:
    id: str
    seq: int  # store-assigned, strictly increasing in insertion order
    source_id: str
    effective_date: datetime
    name: str
    annual_rate: float
    available_cents: int
    action: Action
    previous_rate: Optional[float] = None
    previous_amount: Optional[int] = None
    notes: Optional[str] = None

    @property
    def sort_key(self) -> Tuple[datetime, int]:
        return (self.effective_date, self.seq)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "seq": self.seq,
            "source_id": self.source_id,
            "effective_date": self.effective_date.isoformat(),
            "name": self.name,
            "annual_rate": self.annual_rate,
            "available_cents": self.available_cents,
            "action": self.action.value,
            "previous_rate": self.previous_rate,
            "previous_amount": self.previous_amount,
            "notes": self.notes,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "CapitalSourceHistoryEntry":
        prev_amount = d.get("previous_amount")
        prev_rate = d.get("previous_rate")
        return CapitalSourceHistoryEntry(
            id=str(d["id"]),
            seq=int(d["seq"]),
            source_id=str(d["source_id"]),
            effective_date=to_instant(d["effective_date"]),
            name=str(d["name"]),
            annual_rate=float(d["annual_rate"]),
            available_cents=validate_cents(d["available_cents"]),
            action=Action(d["action"]),
            previous_rate=float(prev_rate) if prev_rate is not None else None,
            previous_amount=validate_cents(prev_amount, "previous_amount") if prev_amount is not None else None,
            notes=d.get("notes"),
        )


@dataclass(frozen=True)
class CapitalSource:
    """Derived point-in-time view of one lineage; never persisted."""
    source_id: str
    name: str
    annual_rate: float
    available_cents: int
    used_cents: int = 0  # usage is tracked outside the ledger
    remaining_cents: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_id": self.source_id,
            "name": self.name,
            "annual_rate": self.annual_rate,
            "available_cents": self.available_cents,
            "used_cents": self.used_cents,
            "remaining_cents": self.remaining_cents,
        }


@dataclass(frozen=True)
class WACCSnapshot:
    date: datetime
    sources: Tuple[CapitalSource, ...]
    total_capital_cents: int
    wacc: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "sources": [s.to_dict() for s in self.sources],
            "total_capital_cents": self.total_capital_cents,
            "wacc": self.wacc,
        }
