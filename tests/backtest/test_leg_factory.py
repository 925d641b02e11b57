from __future__ import annotations

import datetime as dt

import pytest

from simengine.backtest.leg_factory import SimulationSeed, instantiate_legs, leg_id_for, to_cents
from simengine.backtest.types import InstrumentType, LegAction, StrategyLegTemplate


def _seed(sim_id: str = "sim-1") -> SimulationSeed:
    return SimulationSeed(
        id=sim_id,
        initial_capital=1000.0,
        start_date="2024-01-02",
        end_date=dt.date(2024, 3, 28),
        asset_symbol="PETR4",
    )


def _covered_call() -> list[StrategyLegTemplate]:
    return [
        StrategyLegTemplate(InstrumentType.STOCK, LegAction.BUY, quantity_ratio=100),
        StrategyLegTemplate(InstrumentType.CALL, LegAction.SELL, strike_relation="OTM"),
    ]


def test_covered_call_legs_from_templates() -> None:
    stock, call = instantiate_legs(_covered_call(), _seed(), 20.0)

    assert stock.instrument_type is InstrumentType.STOCK
    assert stock.action is LegAction.BUY
    assert stock.quantity == 100
    assert stock.entry_price == 20.0
    assert stock.strike_price is None
    assert stock.expiry_date is None

    assert call.instrument_type is InstrumentType.CALL
    assert call.action is LegAction.SELL
    assert call.quantity == 1
    assert call.entry_price == 2.0
    assert call.strike_price == 21.0
    assert call.expiry_date == dt.date(2024, 3, 28)

    for leg in (stock, call):
        assert leg.simulation_id == "sim-1"
        assert leg.entry_date == dt.date(2024, 1, 2)


def test_prices_are_rounded_to_cents() -> None:
    (put,) = instantiate_legs(
        [{"instrument_type": "PUT", "action": "BUY", "strike_relation": "ITM"}],
        _seed(),
        33.33,
    )
    assert put.entry_price == 3.33
    assert put.strike_price == 35.0
    assert to_cents(2.675) == 2.68
    assert to_cents(2.674) == 2.67


def test_dict_templates_default_to_atm_and_single_unit() -> None:
    (leg,) = instantiate_legs([{"instrument_type": "call", "action": "buy"}], _seed(), 10.0)
    assert leg.strike_price == 10.0
    assert leg.quantity == 1


def test_instantiation_is_deterministic() -> None:
    first = instantiate_legs(_covered_call(), _seed(), 20.0)
    second = instantiate_legs(_covered_call(), _seed(), 20.0)
    assert first == second
    assert [leg.to_dict() for leg in first] == [leg.to_dict() for leg in second]
    assert first[0].id == leg_id_for("sim-1", 0)
    assert first[0].id != first[1].id


def test_leg_ids_differ_across_simulations() -> None:
    a = instantiate_legs(_covered_call(), _seed("sim-a"), 20.0)
    b = instantiate_legs(_covered_call(), _seed("sim-b"), 20.0)
    assert {leg.id for leg in a}.isdisjoint({leg.id for leg in b})


def test_empty_templates_yield_no_legs() -> None:
    assert instantiate_legs([], _seed(), 20.0) == []


def test_invalid_inputs_raise() -> None:
    with pytest.raises(ValueError):
        instantiate_legs([{"instrument_type": "FUTURE", "action": "BUY"}], _seed(), 20.0)
    with pytest.raises(ValueError, match="underlying price"):
        instantiate_legs(_covered_call(), _seed(), 0.0)
    with pytest.raises(ValueError, match="quantity_ratio"):
        StrategyLegTemplate("CALL", "BUY", quantity_ratio=0)
