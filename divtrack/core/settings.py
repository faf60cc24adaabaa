# Copyright 2026 DivTrack
# SPDX-License-Identifier: MIT
"""Centralized configuration loader for DivTrack.

Loads config.yaml from the repository root and provides typed access to settings.
Falls back to sensible defaults if config.yaml is missing or incomplete.
Environment variables override config.yaml values.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

_CONFIG_CACHE: Optional["DivTrackConfig"] = None

PRODUCTION_FRESHNESS_SECONDS = 60 * 60
DEFAULT_FRESHNESS_SECONDS = 24 * 60 * 60


def _repo_root() -> Path:
    """Return the repository root."""
    # divtrack/core/settings.py -> repo root
    return Path(__file__).resolve().parents[2]


@dataclass(frozen=True)
class ProviderConfig:
    """Upstream stock-data provider credentials and quota."""
    api_key: str
    limit: int
    window_seconds: int


@dataclass(frozen=True)
class CacheConfig:
    """Quote cache freshness and retention."""
    freshness_seconds: int
    retention_days: int
    max_workers: int


@dataclass(frozen=True)
class DivTrackConfig:
    """Root configuration object."""
    environment: str
    alpha_vantage: ProviderConfig
    finnhub: ProviderConfig
    cache: CacheConfig
    provider_timeout: float
    db_path: Path
    api_key: str
    debug: bool

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


def _load_yaml_config() -> dict:
    """Load config.yaml from repo root. Returns empty dict if not found."""
    config_path = Path(os.getenv("DIVTRACK_CONFIG", "") or _repo_root() / "config.yaml")
    if not config_path.exists():
        return {}
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except Exception:
        return {}


def _provider_config(raw: dict, prefix: str, key_env: str, limit: int, window: int) -> ProviderConfig:
    section = raw.get(prefix.lower(), {}) or {}
    return ProviderConfig(
        api_key=(os.getenv(key_env) or section.get("api_key") or "").strip(),
        limit=int(os.getenv(f"{prefix}_LIMIT", str(section.get("limit", limit)))),
        window_seconds=int(os.getenv(
            f"{prefix}_WINDOW_SECONDS",
            str(section.get("window_seconds", window)),
        )),
    )


def load_config(*, reload: bool = False) -> DivTrackConfig:
    """Load and return the DivTrack configuration.

    Priority order (highest to lowest):
    1. Environment variables (ALPHAVANTAGE_KEY, FINNHUB_KEY, CACHE_FRESHNESS_SECONDS, etc.)
    2. config.yaml values
    3. Built-in defaults

    Parameters
    ----------
    reload : bool
        If True, force reload from disk. Otherwise use cached config.

    Returns
    -------
    DivTrackConfig
        The loaded configuration.
    """
    global _CONFIG_CACHE

    if _CONFIG_CACHE is not None and not reload:
        return _CONFIG_CACHE

    raw = _load_yaml_config()

    app_raw = raw.get("app", {}) or {}
    environment = (os.getenv("DIVTRACK_ENV") or app_raw.get("environment") or "development").strip().lower()

    # Free-tier quotas: Alpha Vantage 25/day, Finnhub 60/minute
    alpha_vantage = _provider_config(raw, "ALPHA_VANTAGE", "ALPHAVANTAGE_KEY", 25, 24 * 60 * 60)
    finnhub = _provider_config(raw, "FINNHUB", "FINNHUB_KEY", 60, 60)

    cache_raw = raw.get("cache", {}) or {}
    default_freshness = PRODUCTION_FRESHNESS_SECONDS if environment == "production" else DEFAULT_FRESHNESS_SECONDS
    freshness = int(os.getenv(
        "CACHE_FRESHNESS_SECONDS",
        str(cache_raw.get("freshness_seconds", default_freshness)),
    ))
    retention_days = int(os.getenv(
        "CACHE_RETENTION_DAYS",
        str(cache_raw.get("retention_days", 7)),
    ))
    max_workers = int(os.getenv(
        "CACHE_MAX_WORKERS",
        str(cache_raw.get("max_workers", 5)),
    ))
    cache_config = CacheConfig(
        freshness_seconds=freshness,
        retention_days=retention_days,
        max_workers=max(1, max_workers),
    )

    provider_timeout = float(os.getenv(
        "PROVIDER_TIMEOUT",
        str(app_raw.get("provider_timeout", 10.0)),
    ))
    db_raw = os.getenv("DIVTRACK_DB_PATH") or app_raw.get("db_path")
    db_path = Path(db_raw) if db_raw else _repo_root() / "data" / "divtrack.db"
    if not db_path.is_absolute():
        db_path = _repo_root() / db_path

    debug = os.getenv("DIVTRACK_DEBUG", "").lower() in ("true", "1", "yes") or \
            app_raw.get("debug", False)

    config = DivTrackConfig(
        environment=environment,
        alpha_vantage=alpha_vantage,
        finnhub=finnhub,
        cache=cache_config,
        provider_timeout=provider_timeout,
        db_path=db_path,
        api_key=(os.getenv("DIVTRACK_API_KEY") or "").strip(),
        debug=bool(debug),
    )

    _CONFIG_CACHE = config
    return config


__all__ = [
    "CacheConfig",
    "DivTrackConfig",
    "ProviderConfig",
    "load_config",
]
