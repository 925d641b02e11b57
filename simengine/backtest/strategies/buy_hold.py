from __future__ import annotations

from typing import ClassVar

from simengine.backtest.analytics import compute_max_drawdown_pct
from simengine.backtest.strategies.base import SimulationStrategy
from simengine.backtest.types import SimulationBacktestResult, SimulationContext, StrategyExecutionType


class BuyHoldStrategy(SimulationStrategy):
    """Put all capital into the underlying at the first close and hold to the last."""

    type: ClassVar[StrategyExecutionType] = StrategyExecutionType.BUY_HOLD_STOCK

    def run(self, context: SimulationContext) -> SimulationBacktestResult:
        series = context.price_series
        capital = float(context.initial_capital)
        if not series or capital <= 0:
            return SimulationBacktestResult.zero()

        first = series[0].close
        last = series[-1].close
        if not first or not last:
            return SimulationBacktestResult.zero()

        quantity = capital / first
        final_capital = quantity * last
        total_return = final_capital - capital
        return SimulationBacktestResult(
            total_return=total_return,
            return_percentage=total_return / capital * 100.0,
            max_drawdown=compute_max_drawdown_pct([p.close for p in series]),
        )


__all__ = ["BuyHoldStrategy"]
