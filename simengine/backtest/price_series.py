from __future__ import annotations

import datetime as dt
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Mapping, Optional, Protocol, Sequence

import pandas as pd

from simengine.backtest.types import PricePoint
from simengine.config import BRT, MarketDataConfig
from simengine.logging_utils import get_logger
from simengine.metrics import BacktestMetrics

LOG = get_logger("simengine.backtest.price_series")

DAILY_INTERVAL = "1d"

# (max days back, provider range code), checked in order.
_RANGE_STEPS: Sequence[tuple[float, str]] = (
    (31, "1mo"),
    (93, "3mo"),
    (186, "6mo"),
    (365, "1y"),
    (365 * 2, "2y"),
    (365 * 5, "5y"),
)
MAX_RANGE = "max"


class MarketDataProvider(Protocol):
    """
    Historical quote source.

    `timeout` is the per-request budget in seconds (None leaves it to the provider).
    Returns a payload shaped like
    `{"results": [{"symbol": ..., "historicalDataPrice": [{"date": <epoch s>, "close": ..., "open": ...}]}]}`.
    """

    def get_quote_history(
        self, symbol: str, range: str, interval: str, *, timeout: Optional[float] = None
    ) -> Mapping[str, Any]: ...


class PriceSeriesSource(Protocol):
    def fetch(self, symbol: str, start_date: dt.date, end_date: dt.date) -> List[PricePoint]: ...


def _utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def choose_range(start_date: dt.date, now: Optional[dt.datetime] = None) -> str:
    """Pick the smallest provider range that still reaches back to `start_date`."""

    now = now or _utc_now()
    if now.tzinfo is None:
        now = now.replace(tzinfo=dt.timezone.utc)
    start = dt.datetime(start_date.year, start_date.month, start_date.day, tzinfo=dt.timezone.utc)
    days_back = max(0.0, (now - start).total_seconds() / 86400.0)
    for limit, code in _RANGE_STEPS:
        if days_back <= limit:
            return code
    return MAX_RANGE


def extract_historical_bars(payload: object) -> List[Mapping[str, Any]]:
    """Return `results[0].historicalDataPrice`; any other shape means no data."""

    if not isinstance(payload, Mapping):
        return []
    results = payload.get("results")
    if not isinstance(results, (list, tuple)) or not results:
        return []
    first = results[0]
    if not isinstance(first, Mapping):
        return []
    bars = first.get("historicalDataPrice")
    if not isinstance(bars, (list, tuple)):
        return []
    return [bar for bar in bars if isinstance(bar, Mapping)]


def _bar_date(raw: object, *, tz: dt.tzinfo) -> Optional[dt.date]:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        ts_num = float(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if not math.isfinite(ts_num):
        return None
    if ts_num > 1_000_000_000_000:
        ts_num /= 1000.0
    try:
        return dt.datetime.fromtimestamp(ts_num, tz=dt.timezone.utc).astimezone(tz).date()
    except (OverflowError, OSError, ValueError):
        return None


def normalize_bars(
    bars: Iterable[Mapping[str, Any]],
    start_date: dt.date,
    end_date: dt.date,
    *,
    tz: dt.tzinfo = BRT,
) -> List[PricePoint]:
    """
    Turn raw daily bars into a clean close series.

    - price is `close`, falling back to `open`; bars with neither are dropped
    - non-numeric / non-positive prices and unparseable timestamps are dropped
    - only dates within [start_date, end_date] are kept
    - one point per date (the last bar seen wins), ascending by date
    """

    rows: list[dict[str, Any]] = []
    for bar in bars:
        price = bar.get("close")
        if price is None:
            price = bar.get("open")
        if price is None:
            continue
        day = _bar_date(bar.get("date"), tz=tz)
        if day is None:
            continue
        rows.append({"date": day, "close": price})
    if not rows:
        return []

    frame = pd.DataFrame(rows, columns=["date", "close"])
    frame["close"] = pd.to_numeric(frame["close"], errors="coerce")
    frame = frame.dropna(subset=["close"])
    frame = frame[(frame["close"] > 0) & (frame["date"] >= start_date) & (frame["date"] <= end_date)]
    if frame.empty:
        return []
    frame = frame.sort_values("date", kind="mergesort")
    frame = frame.drop_duplicates(subset="date", keep="last")
    return [PricePoint(date=row.date, close=float(row.close)) for row in frame.itertuples(index=False)]


@dataclass(frozen=True)
class PriceSeriesLoader:
    """
    Loads a daily close series for one symbol from a `MarketDataProvider`.

    `fetch()` lets provider errors propagate so callers can tell an upstream
    failure apart from an empty window; `load()` never raises and returns an
    empty list instead.
    """

    provider: MarketDataProvider
    tz: dt.tzinfo = BRT
    interval: str = DAILY_INTERVAL
    timeout_s: Optional[float] = None
    now_fn: Callable[[], dt.datetime] = _utc_now
    metrics: Optional[BacktestMetrics] = field(default=None, compare=False)

    @classmethod
    def from_config(
        cls,
        provider: MarketDataProvider,
        cfg: MarketDataConfig,
        *,
        metrics: Optional[BacktestMetrics] = None,
    ) -> "PriceSeriesLoader":
        return cls(
            provider=provider,
            tz=cfg.tz,
            interval=cfg.interval or DAILY_INTERVAL,
            timeout_s=cfg.provider_timeout_s,
            metrics=metrics,
        )

    def fetch(self, symbol: str, start_date: dt.date, end_date: dt.date) -> List[PricePoint]:
        symbol = str(symbol or "").strip()
        if not symbol:
            raise ValueError("symbol must be non-empty")
        range_code = choose_range(start_date, self.now_fn())
        payload = self.provider.get_quote_history(symbol, range_code, self.interval, timeout=self.timeout_s)
        bars = extract_historical_bars(payload)
        series = normalize_bars(bars, start_date, end_date, tz=self.tz)
        if self.metrics is not None:
            self.metrics.observe_series(len(series))
        LOG.log_event(
            logging.DEBUG,
            "price_series_loaded",
            symbol=symbol,
            range=range_code,
            interval=self.interval,
            raw_bars=len(bars),
            points=len(series),
            start_date=start_date,
            end_date=end_date,
        )
        return series

    def load(self, symbol: str, start_date: dt.date, end_date: dt.date) -> List[PricePoint]:
        try:
            return self.fetch(symbol, start_date, end_date)
        except Exception as exc:
            LOG.log_event(
                logging.WARNING,
                "price_series_fetch_failed",
                symbol=symbol,
                start_date=start_date,
                end_date=end_date,
                error=repr(exc),
            )
            return []


__all__ = [
    "DAILY_INTERVAL",
    "MAX_RANGE",
    "MarketDataProvider",
    "PriceSeriesLoader",
    "PriceSeriesSource",
    "choose_range",
    "extract_historical_bars",
    "normalize_bars",
]
