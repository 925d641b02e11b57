from __future__ import annotations

import logging

import pytest

from simengine.backtest.execution_type import map_execution_type
from simengine.backtest.registry import StrategyRegistry, default_registry
from simengine.backtest.strategies import BuyHoldStrategy, LongCallStrategy
from simengine.backtest.types import StrategyExecutionType
from simengine.logging_utils import parse_event


def test_unknown_type_falls_back_to_the_buy_hold_instance(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING, logger="simengine")
    registry = default_registry()
    fallback = registry.get_strategy("UNKNOWN_TYPE")
    assert fallback is registry.get_strategy("BUY_HOLD_STOCK")
    assert isinstance(fallback, BuyHoldStrategy)
    events = [parse_event(r.getMessage()) for r in caplog.records]
    assert [e["event"] for e in events] == ["strategy_fallback"]
    assert events[0]["requested"] == "UNKNOWN_TYPE"


def test_lookup_accepts_enum_and_tag() -> None:
    registry = default_registry()
    assert isinstance(registry.get_strategy(StrategyExecutionType.LONG_CALL), LongCallStrategy)
    assert registry.get_strategy("long_call") is registry.get_strategy(StrategyExecutionType.LONG_CALL)
    assert registry.get_strategy(None) is registry.fallback


def test_registry_table_is_read_only() -> None:
    registry = default_registry()
    with pytest.raises(TypeError):
        registry.strategies[StrategyExecutionType.LONG_CALL] = BuyHoldStrategy()  # type: ignore[index]
    assert set(registry.strategies) == set(StrategyExecutionType)


def test_registry_rejects_duplicates_and_missing_fallback() -> None:
    with pytest.raises(ValueError, match="Duplicate"):
        StrategyRegistry([BuyHoldStrategy(), BuyHoldStrategy()])
    with pytest.raises(ValueError, match="fallback"):
        StrategyRegistry([LongCallStrategy()])


@pytest.mark.parametrize("name", ["LONG CALL", "long call", " Long Call ", "\tlong call\n"])
def test_mapper_matches_long_call_case_insensitively(name: str) -> None:
    assert map_execution_type(name) is StrategyExecutionType.LONG_CALL


@pytest.mark.parametrize("name", [None, "", "   ", "Long Put", "Long  Call", "Covered Call", "LONG_CALL"])
def test_mapper_defaults_to_buy_hold(name) -> None:
    assert map_execution_type(name) is StrategyExecutionType.BUY_HOLD_STOCK
