from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Union

from simengine.backtest.strategies import BuyHoldStrategy, LongCallStrategy, SimulationStrategy
from simengine.backtest.types import StrategyExecutionType
from simengine.logging_utils import get_logger

LOG = get_logger("simengine.backtest.registry")

FALLBACK_TYPE = StrategyExecutionType.BUY_HOLD_STOCK


class StrategyRegistry:
    """
    Read-only table of payoff models keyed by execution type.

    Built once from a fixed list of implementations; lookups for unknown types
    (stale persisted values included) return the buy & hold model.
    """

    def __init__(self, strategies: Iterable[SimulationStrategy]) -> None:
        table: dict[StrategyExecutionType, SimulationStrategy] = {}
        for strategy in strategies:
            key = StrategyExecutionType(strategy.type)
            if key in table:
                raise ValueError(f"Duplicate strategy registered for type {key.value}")
            table[key] = strategy
        if FALLBACK_TYPE not in table:
            raise ValueError(f"Registry requires a {FALLBACK_TYPE.value} strategy as fallback")
        self._strategies: Mapping[StrategyExecutionType, SimulationStrategy] = MappingProxyType(table)

    @property
    def strategies(self) -> Mapping[StrategyExecutionType, SimulationStrategy]:
        return self._strategies

    @property
    def fallback(self) -> SimulationStrategy:
        return self._strategies[FALLBACK_TYPE]

    def get_strategy(self, strategy_type: Union[StrategyExecutionType, str, None]) -> SimulationStrategy:
        key: Optional[StrategyExecutionType] = StrategyExecutionType.parse(strategy_type)
        strategy = self._strategies.get(key) if key is not None else None
        if strategy is None:
            LOG.log_event(
                logging.WARNING,
                "strategy_fallback",
                requested=strategy_type,
                fallback=FALLBACK_TYPE.value,
            )
            return self.fallback
        return strategy


def default_registry() -> StrategyRegistry:
    return StrategyRegistry([BuyHoldStrategy(), LongCallStrategy()])


__all__ = ["FALLBACK_TYPE", "StrategyRegistry", "default_registry"]
