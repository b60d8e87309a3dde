import json
import sys

from services.api.service import CapitalService
from services.config.env import configure_logging

USAGE = (
    "Usage: python -m services.capital.cli <command> [args]\n"
    "  sources [as_of]\n"
    "  wacc [date]\n"
    "  trend <period_type> [reference_date]\n"
    "  summary <period_type> [reference_date]\n"
    "  history [source_id]"
)


def run(argv, svc):
    if not argv:
        return None
    cmd, args = argv[0], argv[1:]
    if cmd == "sources":
        return [s.to_dict() for s in svc.get_active_capital_sources(args[0] if args else None)]
    if cmd == "wacc":
        return svc.calculate_wacc_at_date(args[0] if args else svc.store.now()).to_dict()
    if cmd == "trend" and args:
        return svc.get_wacc_trend_for(args[0], args[1] if len(args) > 1 else None)
    if cmd == "summary" and args:
        return svc.get_period_summary_md(args[0], args[1] if len(args) > 1 else None)
    if cmd == "history":
        entries = svc.get_history_for_source(args[0]) if args else svc.get_capital_history()
        return [e.to_dict() for e in entries]
    return None


def main():
    configure_logging()
    svc = CapitalService.from_config()
    out = run(sys.argv[1:], svc)
    if out is None:
        print(USAGE)
        sys.exit(2)
    if isinstance(out, str):
        print(out, end="")
    else:
        print(json.dumps(out, indent=2))


if __name__ == "__main__":
    main()
