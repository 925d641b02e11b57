from __future__ import annotations

import dataclasses
import datetime as dt
import logging
from typing import Callable, Dict, Iterable, List, Optional, Union

from simengine.backtest.execution_type import map_execution_type
from simengine.backtest.leg_factory import SimulationSeed, instantiate_legs
from simengine.backtest.orchestrator import BacktestEngine, parse_date
from simengine.backtest.price_series import MarketDataProvider, PriceSeriesLoader
from simengine.backtest.registry import StrategyRegistry, default_registry
from simengine.backtest.types import (
    MaterializedLeg,
    SimulationBacktestResult,
    SimulationRecord,
    StrategyLegTemplate,
)
from simengine.config import SimEngineConfig
from simengine.logging_utils import configure_from_telemetry, get_logger
from simengine.metrics import BacktestMetrics

LOG = get_logger("simengine.backtest.simulation_service")


def underlying_price_at_start(
    loader: PriceSeriesLoader,
    symbol: str,
    start_date: dt.date,
    end_date: dt.date,
) -> Optional[float]:
    """First close inside the window, or None when nothing usable comes back."""

    series = loader.load(symbol, start_date, end_date)
    if not series:
        return None
    return series[0].close


def format_result_for_storage(result: SimulationBacktestResult) -> Dict[str, str]:
    """Fixed-precision strings for the numeric(18, 2/4) result columns."""

    return {
        "totalReturn": f"{result.total_return:.2f}",
        "returnPercentage": f"{result.return_percentage:.4f}",
        "maxDrawdown": f"{result.max_drawdown:.4f}",
    }


class SimulationService:
    """
    Glue between a stored simulation and the engine.

    - `prepare_legs()` materializes a strategy's leg templates for a new
      simulation using the underlying's first close in the window.
    - `conclude()` backtests a simulation whose window has ended; windows that
      are still open return None (the simulation stays in progress).
    """

    def __init__(
        self,
        loader: PriceSeriesLoader,
        engine: BacktestEngine,
        *,
        today_fn: Callable[[], dt.date] = dt.date.today,
    ) -> None:
        self._loader = loader
        self._engine = engine
        self._today = today_fn

    @classmethod
    def from_provider(
        cls,
        provider: MarketDataProvider,
        cfg: Optional[SimEngineConfig] = None,
        *,
        registry: Optional[StrategyRegistry] = None,
        metrics: Optional[BacktestMetrics] = None,
    ) -> "SimulationService":
        cfg = cfg or SimEngineConfig()
        configure_from_telemetry(cfg.telemetry)
        if metrics is None and cfg.telemetry.metrics_enabled:
            metrics = BacktestMetrics()
        loader = PriceSeriesLoader.from_config(provider, cfg.market_data, metrics=metrics)
        engine = BacktestEngine(loader, registry or default_registry(), metrics=metrics)
        return cls(loader, engine)

    @property
    def engine(self) -> BacktestEngine:
        return self._engine

    def prepare_legs(
        self,
        simulation: SimulationSeed,
        templates: Iterable[Union[StrategyLegTemplate, Dict[str, object]]],
    ) -> List[MaterializedLeg]:
        templates = list(templates)
        if not templates:
            return []
        price = underlying_price_at_start(
            self._loader, simulation.asset_symbol, simulation.start_date, simulation.end_date
        )
        if price is None:
            LOG.log_event(
                logging.WARNING,
                "legs_skipped_no_start_price",
                simulation_id=simulation.id,
                asset_symbol=simulation.asset_symbol,
                start_date=simulation.start_date,
            )
            return []
        legs = instantiate_legs(templates, simulation, price)
        LOG.log_event(
            logging.INFO,
            "legs_materialized",
            simulation_id=simulation.id,
            legs=len(legs),
            underlying_price=price,
        )
        return legs

    def is_period_over(self, record: SimulationRecord) -> bool:
        end_date = parse_date(record.end_date)
        # Unparseable end dates are handed to the engine, which degrades them.
        return end_date is None or end_date <= self._today()

    def conclude(
        self,
        record: SimulationRecord,
        *,
        strategy_name: Optional[str] = None,
    ) -> Optional[SimulationBacktestResult]:
        if strategy_name is not None:
            record = dataclasses.replace(record, strategy_execution_type=map_execution_type(strategy_name))
        if not self.is_period_over(record):
            LOG.log_event(logging.INFO, "simulation_in_progress", simulation_id=record.id, end_date=record.end_date)
            return None
        return self._engine.run_backtest(record)


__all__ = [
    "SimulationService",
    "format_result_for_storage",
    "underlying_price_at_start",
]
