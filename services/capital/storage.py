from __future__ import annotations
from typing import Iterable, List, Protocol
import json
import logging
import os
from pathlib import Path

from services.capital.errors import StorageUnavailableError
from services.capital.models import CapitalSourceHistoryEntry

logger = logging.getLogger(__name__)


class HistoryStorage(Protocol):
    """Durable-storage collaborator for the ledger.

    Both methods raise StorageUnavailableError on failure.
    """

    def load(self) -> List[CapitalSourceHistoryEntry]: ...

    def save(self, entries: Iterable[CapitalSourceHistoryEntry]) -> None: ...


class InMemoryStorage:
    def __init__(self, entries: Iterable[CapitalSourceHistoryEntry] = ()):
        self._entries: List[CapitalSourceHistoryEntry] = list(entries)

    def load(self) -> List[CapitalSourceHistoryEntry]:
        return list(self._entries)

    def save(self, entries: Iterable[CapitalSourceHistoryEntry]) -> None:
        self._entries = list(entries)


class JSONFileStorage:
    """Whole-ledger JSON document, replaced atomically on every save."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> List[CapitalSourceHistoryEntry]:
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text())
            rows = data.get("entries", [])
            return [CapitalSourceHistoryEntry.from_dict(r) for r in rows]
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as exc:
            raise StorageUnavailableError(f"cannot load capital history from {self.path}: {exc}") from exc

    def save(self, entries: Iterable[CapitalSourceHistoryEntry]) -> None:
        payload = {"entries": [e.to_dict() for e in entries]}
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(payload, indent=2))
            os.replace(tmp, self.path)
        except OSError as exc:
            raise StorageUnavailableError(f"cannot persist capital history to {self.path}: {exc}") from exc
        logger.debug("Persisted %d ledger entries to %s", len(payload["entries"]), self.path)
