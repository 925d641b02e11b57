from __future__ import annotations

import logging
from typing import ClassVar, Optional

from simengine.backtest.strategies.base import SimulationStrategy
from simengine.backtest.types import (
    InstrumentType,
    LegAction,
    SimulationBacktestResult,
    SimulationContext,
    SimulationLegContext,
    StrategyExecutionType,
)
from simengine.logging_utils import get_logger

LOG = get_logger("simengine.backtest.strategies.long_call")


def find_long_call(context: SimulationContext) -> Optional[SimulationLegContext]:
    for leg in context.legs:
        if leg.instrument_type is InstrumentType.CALL and leg.action is LegAction.BUY:
            return leg
    return None


class LongCallStrategy(SimulationStrategy):
    """
    Expiry payoff of a single bought call, held for the whole window.

    Max drawdown is the full premium paid as a share of capital (the worst
    case of a long option); intraperiod mark-to-market is not modelled.
    """

    type: ClassVar[StrategyExecutionType] = StrategyExecutionType.LONG_CALL

    def run(self, context: SimulationContext) -> SimulationBacktestResult:
        series = context.price_series
        capital = float(context.initial_capital)
        if not series or capital <= 0:
            return SimulationBacktestResult.zero()

        leg = find_long_call(context)
        if leg is None:
            LOG.log_event(
                logging.WARNING,
                "long_call_no_qualifying_leg",
                simulation_id=context.id,
                asset_symbol=context.asset_symbol,
                legs=len(context.legs),
            )
            return SimulationBacktestResult.zero()

        strike = leg.strike_price
        if strike is None:
            # Degraded mode: approximate the strike with the first underlying close.
            strike = series[0].close
            LOG.log_event(
                logging.WARNING,
                "long_call_strike_fallback",
                simulation_id=context.id,
                leg_id=leg.id,
                strike=strike,
            )

        premium = leg.entry_price
        qty = leg.quantity
        last_price = series[-1].close

        intrinsic = max(last_price - strike, 0.0)
        payoff_per_unit = intrinsic - premium
        total_return = payoff_per_unit * qty
        return SimulationBacktestResult(
            total_return=total_return,
            return_percentage=total_return / capital * 100.0,
            max_drawdown=-(premium * qty) / capital * 100.0,
        )


__all__ = ["LongCallStrategy", "find_long_call"]
