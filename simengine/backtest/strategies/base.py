from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar

from simengine.backtest.types import SimulationBacktestResult, SimulationContext, StrategyExecutionType


class SimulationStrategy(ABC):
    """
    Payoff model for one strategy archetype.

    Implementations are stateless: `run()` depends only on its context, so a
    single instance can serve concurrent simulations.
    """

    type: ClassVar[StrategyExecutionType]

    @abstractmethod
    def run(self, context: SimulationContext) -> SimulationBacktestResult:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(type={self.type.value})"


__all__ = ["SimulationStrategy"]
