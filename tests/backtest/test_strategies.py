from __future__ import annotations

import datetime as dt
import logging

import pytest

from simengine.backtest.strategies import BuyHoldStrategy, LongCallStrategy
from simengine.backtest.types import (
    PricePoint,
    SimulationContext,
    SimulationLegContext,
    StrategyExecutionType,
)
from simengine.logging_utils import parse_event


def _series(*closes: float) -> tuple[PricePoint, ...]:
    start = dt.date(2024, 1, 2)
    return tuple(PricePoint(start + dt.timedelta(days=i), c) for i, c in enumerate(closes))


def _ctx(
    closes: tuple[float, ...],
    *,
    capital: float = 1000.0,
    legs: tuple[SimulationLegContext, ...] = (),
    kind: StrategyExecutionType = StrategyExecutionType.BUY_HOLD_STOCK,
) -> SimulationContext:
    return SimulationContext(
        id="sim-1",
        user_id="user-1",
        strategy_execution_type=kind,
        asset_symbol="PETR4",
        start_date=dt.date(2024, 1, 2),
        end_date=dt.date(2024, 3, 28),
        initial_capital=capital,
        legs=legs,
        price_series=_series(*closes),
    )


def _leg(instrument: str = "CALL", action: str = "BUY", *, qty: int = 2, entry: float = 2.0, strike=11.0):
    return SimulationLegContext(
        id=f"{instrument}-{action}",
        instrument_type=instrument,
        action=action,
        quantity=qty,
        entry_price=entry,
        strike_price=strike,
        expiry_date="2024-03-28",
    )


def _events(caplog: pytest.LogCaptureFixture) -> list[dict]:
    return [parse_event(r.getMessage()) for r in caplog.records]


def test_buy_hold_return_without_drawdown() -> None:
    out = BuyHoldStrategy().run(_ctx((10.0, 12.0, 11.0, 15.0)))
    assert out.total_return == pytest.approx(500.0)
    assert out.return_percentage == pytest.approx(50.0)
    assert out.max_drawdown == pytest.approx(-100.0 * (1 - 11.0 / 12.0))


def test_buy_hold_monotonic_series_has_zero_drawdown() -> None:
    out = BuyHoldStrategy().run(_ctx((10.0, 15.0)))
    assert out.total_return == pytest.approx(500.0)
    assert out.return_percentage == pytest.approx(50.0)
    assert out.max_drawdown == 0.0


def test_buy_hold_drawdown_from_running_peak() -> None:
    out = BuyHoldStrategy().run(_ctx((10.0, 20.0, 5.0)))
    assert out.max_drawdown == pytest.approx(-75.0)
    assert out.total_return == pytest.approx(-500.0)
    assert out.return_percentage == pytest.approx(-50.0)


def test_buy_hold_zero_on_empty_series_or_capital() -> None:
    assert BuyHoldStrategy().run(_ctx(())).is_zero
    assert BuyHoldStrategy().run(_ctx((10.0, 15.0), capital=0.0)).is_zero


def test_long_call_payoff() -> None:
    ctx = _ctx((10.0, 13.0, 15.0), legs=(_leg(),), kind=StrategyExecutionType.LONG_CALL)
    out = LongCallStrategy().run(ctx)
    assert out.total_return == pytest.approx(4.0)
    assert out.return_percentage == pytest.approx(0.4)
    assert out.max_drawdown == pytest.approx(-0.4)


def test_long_call_expires_worthless() -> None:
    ctx = _ctx((10.0, 9.0), legs=(_leg(),), kind=StrategyExecutionType.LONG_CALL)
    out = LongCallStrategy().run(ctx)
    assert out.total_return == pytest.approx(-4.0)
    assert out.return_percentage == pytest.approx(-0.4)
    assert out.max_drawdown == pytest.approx(-0.4)


def test_long_call_uses_first_buy_call_leg() -> None:
    legs = (
        _leg("PUT", "BUY", strike=9.0),
        _leg("CALL", "SELL", strike=12.0),
        _leg("CALL", "BUY", qty=1, entry=1.0, strike=10.0),
        _leg("CALL", "BUY", qty=5, entry=3.0, strike=8.0),
    )
    out = LongCallStrategy().run(_ctx((10.0, 15.0), legs=legs, kind=StrategyExecutionType.LONG_CALL))
    assert out.total_return == pytest.approx(4.0)


def test_long_call_strike_fallback_uses_first_close(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING, logger="simengine")
    ctx = _ctx((20.0, 24.0, 26.0), legs=(_leg(strike=None),), kind=StrategyExecutionType.LONG_CALL)
    out = LongCallStrategy().run(ctx)

    manual = (max(26.0 - 20.0, 0.0) - 2.0) * 2
    assert out.total_return == pytest.approx(manual)
    assert out.return_percentage == pytest.approx(manual / 1000.0 * 100.0)
    assert any(e.get("event") == "long_call_strike_fallback" and e.get("strike") == 20.0 for e in _events(caplog))


@pytest.mark.parametrize(
    "legs",
    [
        (),
        (_leg("CALL", "SELL"),),
        (_leg("PUT", "BUY"), _leg("PUT", "SELL")),
        (_leg("STOCK", "BUY", strike=None),),
    ],
)
def test_long_call_without_qualifying_leg_is_zero(caplog: pytest.LogCaptureFixture, legs) -> None:
    caplog.set_level(logging.WARNING, logger="simengine")
    out = LongCallStrategy().run(_ctx((10.0, 15.0), legs=legs, kind=StrategyExecutionType.LONG_CALL))
    assert out.is_zero
    assert [e["event"] for e in _events(caplog)] == ["long_call_no_qualifying_leg"]


def test_strategies_declare_their_type() -> None:
    assert BuyHoldStrategy.type is StrategyExecutionType.BUY_HOLD_STOCK
    assert LongCallStrategy.type is StrategyExecutionType.LONG_CALL
    assert "LONG_CALL" in repr(LongCallStrategy())
