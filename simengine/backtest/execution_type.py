from __future__ import annotations

from typing import Optional

from simengine.backtest.types import StrategyExecutionType

# Catalog display names with a dedicated payoff model. Matching is by name
# (trimmed, case-insensitive); a renamed catalog entry falls back to buy & hold.
_EXECUTION_TYPES_BY_NAME = {
    "long call": StrategyExecutionType.LONG_CALL,
}


def map_execution_type(strategy_display_name: Optional[str]) -> StrategyExecutionType:
    """Map a strategy's display name to the payoff model that backtests it."""

    if not strategy_display_name:
        return StrategyExecutionType.BUY_HOLD_STOCK
    key = str(strategy_display_name).strip().lower()
    return _EXECUTION_TYPES_BY_NAME.get(key, StrategyExecutionType.BUY_HOLD_STOCK)


__all__ = ["map_execution_type"]
