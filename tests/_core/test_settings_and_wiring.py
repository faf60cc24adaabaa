# Copyright 2026 DivTrack
# SPDX-License-Identifier: MIT
"""Configuration loading and service wiring."""

from __future__ import annotations

from pathlib import Path

import pytest

from divtrack.core.market.factory import build_providers, build_rate_limiter
from divtrack.core.models import ProviderName
from divtrack.core.services import build_services
from divtrack.core.settings import (
    DEFAULT_FRESHNESS_SECONDS,
    PRODUCTION_FRESHNESS_SECONDS,
    load_config,
)

_ENV_KEYS = (
    "ALPHAVANTAGE_KEY",
    "FINNHUB_KEY",
    "DIVTRACK_ENV",
    "CACHE_FRESHNESS_SECONDS",
    "CACHE_RETENTION_DAYS",
    "ALPHA_VANTAGE_LIMIT",
    "ALPHA_VANTAGE_WINDOW_SECONDS",
    "FINNHUB_LIMIT",
    "FINNHUB_WINDOW_SECONDS",
    "PROVIDER_TIMEOUT",
    "DIVTRACK_DB_PATH",
    "DIVTRACK_API_KEY",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path: Path):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("DIVTRACK_CONFIG", str(tmp_path / "missing.yaml"))
    yield
    load_config(reload=True)


def test_defaults(monkeypatch):
    cfg = load_config(reload=True)
    assert cfg.environment == "development"
    assert cfg.cache.freshness_seconds == DEFAULT_FRESHNESS_SECONDS
    assert cfg.alpha_vantage.limit == 25
    assert cfg.alpha_vantage.window_seconds == 86400
    assert cfg.finnhub.limit == 60
    assert cfg.finnhub.window_seconds == 60
    assert cfg.alpha_vantage.api_key == ""


def test_production_uses_one_hour_window(monkeypatch):
    monkeypatch.setenv("DIVTRACK_ENV", "production")
    cfg = load_config(reload=True)
    assert cfg.is_production
    assert cfg.cache.freshness_seconds == PRODUCTION_FRESHNESS_SECONDS


def test_env_overrides_yaml(monkeypatch, tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        "finnhub:\n  api_key: from-yaml\n  limit: 30\ncache:\n  freshness_seconds: 120\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("DIVTRACK_CONFIG", str(config_file))
    monkeypatch.setenv("FINNHUB_LIMIT", "45")
    cfg = load_config(reload=True)
    assert cfg.finnhub.api_key == "from-yaml"
    assert cfg.finnhub.limit == 45
    assert cfg.cache.freshness_seconds == 120


def test_config_is_cached_until_reload(monkeypatch):
    first = load_config(reload=True)
    monkeypatch.setenv("DIVTRACK_ENV", "production")
    assert load_config() is first
    assert load_config(reload=True).environment == "production"


def test_rate_limiter_built_from_config(monkeypatch):
    monkeypatch.setenv("ALPHA_VANTAGE_LIMIT", "3")
    limiter = build_rate_limiter(load_config(reload=True))
    status = limiter.status()
    assert status["alpha_vantage"]["limit"] == 3
    assert status["finnhub"]["limit"] == 60


def test_providers_in_priority_order(monkeypatch):
    monkeypatch.setenv("ALPHAVANTAGE_KEY", "av")
    cfg = load_config(reload=True)
    providers = build_providers(build_rate_limiter(cfg), cfg)
    assert [p.name for p in providers] == [ProviderName.ALPHA_VANTAGE, ProviderName.FINNHUB]
    assert providers[0].enabled is True
    assert providers[1].enabled is False


def test_build_services_uses_configured_db(monkeypatch, tmp_path):
    db = tmp_path / "svc.db"
    monkeypatch.setenv("DIVTRACK_DB_PATH", str(db))
    monkeypatch.setenv("CACHE_FRESHNESS_SECONDS", "600")
    services = build_services(load_config(reload=True))
    assert services.cache.freshness_seconds == 600
    assert services.portfolios.db_path == db
    assert db.exists()
