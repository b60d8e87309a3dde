from __future__ import annotations
import logging
import os
from dataclasses import dataclass

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class CapitalConfig:
    history_path: str | None = None  # None -> in-memory ledger
    seed_demo: bool = False


def get_capital_config() -> CapitalConfig:
    path = os.getenv("CAPITAL_HISTORY_PATH") or None
    seed = os.getenv("CAPITAL_SEED_DEMO", "").strip().lower() in _TRUTHY
    return CapitalConfig(history_path=path, seed_demo=seed)


@dataclass(frozen=True)
class APIConfig:
    api_key: str | None = None


def get_api_config() -> APIConfig:
    return APIConfig(api_key=os.getenv("API_KEY") or None)


@dataclass(frozen=True)
class LogConfig:
    level: str = "INFO"


def get_log_config() -> LogConfig:
    return LogConfig(level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO")


def configure_logging(cfg: LogConfig | None = None) -> None:
    cfg = cfg or get_log_config()
    logging.basicConfig(
        level=getattr(logging, cfg.level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
