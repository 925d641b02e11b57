from __future__ import annotations

import datetime as dt
import logging
import math
import time
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional, Tuple, Union

from simengine.backtest.price_series import PriceSeriesSource
from simengine.backtest.registry import StrategyRegistry
from simengine.backtest.types import (
    SimulationBacktestResult,
    SimulationContext,
    SimulationLegContext,
    SimulationRecord,
    StrategyExecutionType,
    parse_iso_date,
)
from simengine.logging_utils import get_logger
from simengine.metrics import BacktestMetrics

LOG = get_logger("simengine.backtest.orchestrator")

MIN_PRICE_POINTS = 2


class DegradeReason(str, Enum):
    INVALID_DATES = "invalid_dates"
    INVALID_CAPITAL = "invalid_capital"
    UPSTREAM_ERROR = "upstream_error"
    INSUFFICIENT_DATA = "insufficient_data"
    STRATEGY_ERROR = "strategy_error"


# Input problems are expected; upstream/strategy failures carry a cause worth an error log.
_REASON_LEVEL = {
    DegradeReason.INVALID_DATES: logging.WARNING,
    DegradeReason.INVALID_CAPITAL: logging.WARNING,
    DegradeReason.INSUFFICIENT_DATA: logging.WARNING,
    DegradeReason.UPSTREAM_ERROR: logging.ERROR,
    DegradeReason.STRATEGY_ERROR: logging.ERROR,
}


@dataclass(frozen=True)
class Completed:
    result: SimulationBacktestResult
    strategy_type: StrategyExecutionType
    price_points: int


@dataclass(frozen=True)
class Degraded:
    reason: DegradeReason
    detail: str = ""


BacktestOutcome = Union[Completed, Degraded]


def parse_date(value: object) -> Optional[dt.date]:
    """Parse a calendar date from a date/datetime/ISO string; None when unusable."""

    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if not isinstance(value, str):
        return None
    return parse_iso_date(value)


def parse_capital(value: object) -> Optional[float]:
    """Parse a positive, finite capital amount; None otherwise."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        value = str(value)
    try:
        num = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if not math.isfinite(num) or num <= 0:
        return None
    return num


def _coerce_leg(raw: Any) -> SimulationLegContext:
    if isinstance(raw, SimulationLegContext):
        return raw
    if isinstance(raw, Mapping):
        return SimulationLegContext.from_dict(raw)
    raise ValueError(f"Unsupported leg payload: {type(raw).__name__}")


def outcome_result(outcome: BacktestOutcome) -> SimulationBacktestResult:
    if isinstance(outcome, Completed):
        return outcome.result
    return SimulationBacktestResult.zero()


class BacktestEngine:
    """
    Runs one simulation's backtest end to end.

    Steps, each terminal on failure: validate dates, validate capital, load
    the price series, require at least two points, then dispatch to the
    strategy registered for the record's execution type. `run_backtest()`
    never raises: every failure collapses to the all-zero result and the
    reason is logged.
    """

    def __init__(
        self,
        prices: PriceSeriesSource,
        registry: StrategyRegistry,
        *,
        metrics: Optional[BacktestMetrics] = None,
    ) -> None:
        self._prices = prices
        self._registry = registry
        self._metrics = metrics

    @property
    def registry(self) -> StrategyRegistry:
        return self._registry

    def run_backtest(self, record: SimulationRecord) -> SimulationBacktestResult:
        started = time.perf_counter()
        try:
            outcome = self.evaluate(record)
        except Exception as exc:
            outcome = Degraded(DegradeReason.STRATEGY_ERROR, repr(exc))
        elapsed = time.perf_counter() - started
        try:
            self._report(record, outcome, elapsed)
        except Exception as exc:
            LOG.log_event(logging.ERROR, "backtest_report_failed", simulation_id=record.id, error=repr(exc))
        return outcome_result(outcome)

    def evaluate(self, record: SimulationRecord) -> BacktestOutcome:
        start_date = parse_date(record.start_date)
        end_date = parse_date(record.end_date)
        if start_date is None or end_date is None or end_date <= start_date:
            return Degraded(
                DegradeReason.INVALID_DATES,
                f"start={record.start_date!r} end={record.end_date!r}",
            )

        capital = parse_capital(record.initial_capital)
        if capital is None:
            return Degraded(DegradeReason.INVALID_CAPITAL, f"initial_capital={record.initial_capital!r}")

        try:
            series = self._prices.fetch(record.asset_symbol, start_date, end_date)
        except Exception as exc:
            return Degraded(DegradeReason.UPSTREAM_ERROR, repr(exc))

        if len(series) < MIN_PRICE_POINTS:
            return Degraded(
                DegradeReason.INSUFFICIENT_DATA,
                f"{len(series)} usable price point(s) for {record.asset_symbol}",
            )

        try:
            legs: Tuple[SimulationLegContext, ...] = tuple(_coerce_leg(leg) for leg in record.legs or ())
            strategy = self._registry.get_strategy(record.strategy_execution_type)
            strategy_type = StrategyExecutionType(strategy.type)
            context = SimulationContext(
                id=str(record.id),
                user_id=str(record.user_id),
                strategy_execution_type=strategy_type,
                asset_symbol=record.asset_symbol,
                start_date=start_date,
                end_date=end_date,
                initial_capital=capital,
                legs=legs,
                price_series=tuple(series),
            )
            result = strategy.run(context)
        except Exception as exc:
            return Degraded(DegradeReason.STRATEGY_ERROR, repr(exc))

        return Completed(result=result, strategy_type=strategy_type, price_points=len(series))

    def _report(self, record: SimulationRecord, outcome: BacktestOutcome, elapsed: float) -> None:
        log = LOG.bind(simulation_id=record.id, asset_symbol=record.asset_symbol)
        if isinstance(outcome, Completed):
            log.log_event(
                logging.INFO,
                "backtest_completed",
                strategy=outcome.strategy_type.value,
                points=outcome.price_points,
                total_return=round(outcome.result.total_return, 2),
                return_pct=round(outcome.result.return_percentage, 2),
                max_drawdown_pct=round(outcome.result.max_drawdown, 2),
            )
            if self._metrics is not None:
                self._metrics.record_completed(outcome.strategy_type.value, elapsed)
            return

        log.log_event(
            _REASON_LEVEL.get(outcome.reason, logging.WARNING),
            "backtest_degraded",
            reason=outcome.reason.value,
            detail=outcome.detail,
        )
        if self._metrics is not None:
            self._metrics.record_degraded(outcome.reason.value, elapsed)


__all__ = [
    "BacktestEngine",
    "BacktestOutcome",
    "Completed",
    "DegradeReason",
    "Degraded",
    "MIN_PRICE_POINTS",
    "outcome_result",
    "parse_capital",
    "parse_date",
]
