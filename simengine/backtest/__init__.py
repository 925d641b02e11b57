from __future__ import annotations

from simengine.backtest.execution_type import map_execution_type
from simengine.backtest.leg_factory import SimulationSeed, instantiate_legs
from simengine.backtest.orchestrator import BacktestEngine, Completed, Degraded, DegradeReason
from simengine.backtest.price_series import MarketDataProvider, PriceSeriesLoader
from simengine.backtest.registry import StrategyRegistry, default_registry
from simengine.backtest.types import (
    InstrumentType,
    LegAction,
    PricePoint,
    SimulationBacktestResult,
    SimulationContext,
    SimulationLegContext,
    SimulationRecord,
    StrategyExecutionType,
    StrategyLegTemplate,
    StrikeRelation,
)

__all__ = [
    "BacktestEngine",
    "Completed",
    "DegradeReason",
    "Degraded",
    "InstrumentType",
    "LegAction",
    "MarketDataProvider",
    "PricePoint",
    "PriceSeriesLoader",
    "SimulationBacktestResult",
    "SimulationContext",
    "SimulationLegContext",
    "SimulationRecord",
    "SimulationSeed",
    "StrategyExecutionType",
    "StrategyLegTemplate",
    "StrategyRegistry",
    "StrikeRelation",
    "default_registry",
    "instantiate_legs",
    "map_execution_type",
]
