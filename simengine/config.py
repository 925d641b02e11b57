from __future__ import annotations

import datetime as dt
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

# B3 quotes are stamped in Brasilia time (no DST since 2019).
BRT = dt.timezone(dt.timedelta(hours=-3), name="America/Sao_Paulo")

_LOGGER = logging.getLogger("simengine.config")
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _canonical_config() -> Path:
    return Path(os.getenv("APP_CONFIG_PATH", "config/app.yml"))


def _read_config_payload(*, strict: bool) -> Dict[str, Any]:
    cfg_path = _canonical_config()
    if not cfg_path.exists():
        if strict:
            raise FileNotFoundError(f"Config {cfg_path} not found")
        _LOGGER.warning("Config file %s missing; returning defaults", cfg_path)
        return {}
    with cfg_path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {cfg_path}")
    return data


def _read_env(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return None
    text = value.strip()
    return text or None


def _tz_from_offset(hours: float) -> dt.tzinfo:
    if hours == -3:
        return BRT
    return dt.timezone(dt.timedelta(hours=hours))


@dataclass(frozen=True)
class MarketDataConfig:
    interval: str = "1d"
    timezone_offset_hours: float = -3.0
    provider_timeout_s: float = 10.0

    @staticmethod
    def from_dict(payload: Mapping[str, Any]) -> "MarketDataConfig":
        raw_offset = _read_env("SIM_MARKET_TZ_OFFSET_HOURS") or payload.get("timezone_offset_hours", -3.0)
        try:
            offset = float(raw_offset)
        except (TypeError, ValueError):
            _LOGGER.warning("Invalid timezone_offset_hours %r; using -3", raw_offset)
            offset = -3.0
        if not -14.0 <= offset <= 14.0:
            raise ValueError(f"timezone_offset_hours must be within [-14, 14]; got {offset!r}")
        timeout = float(payload.get("provider_timeout_s", 10.0))
        if timeout <= 0:
            raise ValueError(f"provider_timeout_s must be > 0; got {timeout!r}")
        return MarketDataConfig(
            interval=str(payload.get("interval") or "1d").strip(),
            timezone_offset_hours=offset,
            provider_timeout_s=timeout,
        )

    @property
    def tz(self) -> dt.tzinfo:
        return _tz_from_offset(self.timezone_offset_hours)


@dataclass(frozen=True)
class TelemetryConfig:
    metrics_enabled: bool = True
    log_level: str = "INFO"

    @staticmethod
    def from_dict(payload: Mapping[str, Any]) -> "TelemetryConfig":
        level = str(_read_env("SIM_LOG_LEVEL") or payload.get("log_level") or "INFO").strip().upper()
        if level not in _LOG_LEVELS:
            _LOGGER.warning("Unknown log_level %r; using INFO", level)
            level = "INFO"
        return TelemetryConfig(
            metrics_enabled=bool(payload.get("metrics_enabled", True)),
            log_level=level,
        )


@dataclass(frozen=True)
class CatalogConfig:
    path: Optional[Path] = None

    @staticmethod
    def from_dict(payload: Mapping[str, Any]) -> "CatalogConfig":
        raw = payload.get("path")
        text = str(raw).strip() if raw else ""
        return CatalogConfig(path=Path(text) if text else None)


@dataclass(frozen=True)
class SimEngineConfig:
    market_data: MarketDataConfig = field(default_factory=MarketDataConfig)
    telemetry: TelemetryConfig = field(default_factory=TelemetryConfig)
    catalog: CatalogConfig = field(default_factory=CatalogConfig)

    @staticmethod
    def from_dict(payload: Mapping[str, Any]) -> "SimEngineConfig":
        return SimEngineConfig(
            market_data=MarketDataConfig.from_dict(payload.get("market_data") or {}),
            telemetry=TelemetryConfig.from_dict(payload.get("telemetry") or {}),
            catalog=CatalogConfig.from_dict(payload.get("catalog") or {}),
        )

    @staticmethod
    def load(*, strict: bool = False) -> "SimEngineConfig":
        return SimEngineConfig.from_dict(_read_config_payload(strict=strict))


def read_config() -> Dict[str, Any]:
    """Return the raw config payload (empty when the file is missing)."""

    return dict(_read_config_payload(strict=False))


__all__ = [
    "BRT",
    "CatalogConfig",
    "MarketDataConfig",
    "SimEngineConfig",
    "TelemetryConfig",
    "read_config",
]
