from __future__ import annotations
from typing import List, Dict, Any, Iterable
import csv
import io

from services.capital.models import CapitalSourceHistoryEntry

SCHEMAS = {
    "capital_history": [
        "id","seq","source_id","effective_date","action","name","annual_rate","available_cents","previous_rate","previous_amount","notes"
    ],
    "wacc_trend": [
        "period","wacc","total_capital"
    ],
}

# Leading characters a spreadsheet would evaluate as a formula
_FORMULA_PREFIXES = ("=", "+", "-", "@", "\t", "\r")


def sanitize_cell(value: Any) -> Any:
    if isinstance(value, str) and value.startswith(_FORMULA_PREFIXES):
        return "'" + value
    return value


def write_csv(rows: Iterable[Dict[str, Any]], columns: List[str]) -> str:
    buf = io.StringIO()
    w = csv.DictWriter(buf, fieldnames=columns, extrasaction="ignore")
    w.writeheader()
    for r in rows:
        w.writerow({k: sanitize_cell(r.get(k)) for k in columns})
    return buf.getvalue()


def write_capital_history(entries: Iterable[CapitalSourceHistoryEntry]) -> str:
    return write_csv((e.to_dict() for e in entries), SCHEMAS["capital_history"])


def write_wacc_trend(points: Iterable[Dict[str, Any]]) -> str:
    return write_csv(points, SCHEMAS["wacc_trend"])
