from __future__ import annotations
from typing import Dict, Iterable

from services.capital.models import CapitalSource


def _pct(rate: float) -> str:
    return f"{rate * 100:.2f}%"


def _money(cents: int) -> str:
    return f"{cents // 100:,}.{cents % 100:02d}"


def wacc_summary_md(label: str, summary: Dict[str, float], sources: Iterable[CapitalSource]) -> str:
    lines = [f"# WACC Summary: {label}", ""]
    for k in ("start", "end", "average"):
        if k in summary:
            lines.append(f"- {k}: {_pct(summary[k])}")
    srcs = list(sources)
    if srcs:
        lines.append("\n## Active Sources")
        for s in srcs:
            lines.append(f"- {s.name}: {_pct(s.annual_rate)} on {_money(s.available_cents)}")
    return "\n".join(lines) + "\n"
