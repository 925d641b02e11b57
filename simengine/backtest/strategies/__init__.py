from __future__ import annotations

from simengine.backtest.strategies.base import SimulationStrategy
from simengine.backtest.strategies.buy_hold import BuyHoldStrategy
from simengine.backtest.strategies.long_call import LongCallStrategy

__all__ = [
    "BuyHoldStrategy",
    "LongCallStrategy",
    "SimulationStrategy",
]
