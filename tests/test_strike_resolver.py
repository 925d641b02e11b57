from __future__ import annotations

import pytest

from simengine.backtest.strike_resolver import premium_for, resolve_strike_from_relation
from simengine.backtest.types import InstrumentType, StrikeRelation


def test_atm_strike_is_spot_for_both_sides():
    assert resolve_strike_from_relation(100.0, "ATM", "CALL") == pytest.approx(100.0)
    assert resolve_strike_from_relation(100.0, StrikeRelation.ATM, InstrumentType.PUT) == pytest.approx(100.0)


def test_moneyness_direction_flips_for_puts():
    assert resolve_strike_from_relation(100.0, "ITM", "CALL") == pytest.approx(95.0)
    assert resolve_strike_from_relation(100.0, "OTM", "CALL") == pytest.approx(105.0)
    assert resolve_strike_from_relation(100.0, "ITM", "PUT") == pytest.approx(105.0)
    assert resolve_strike_from_relation(100.0, "OTM", "PUT") == pytest.approx(95.0)


def test_relation_matching_is_case_insensitive_and_unknown_resolves_atm():
    assert resolve_strike_from_relation(50.0, " otm ", "call") == pytest.approx(52.5)
    assert resolve_strike_from_relation(50.0, "DEEP_ITM", "CALL") == pytest.approx(50.0)
    assert resolve_strike_from_relation(50.0, None, "PUT") == pytest.approx(50.0)


@pytest.mark.parametrize("bad", [0, -1.0, float("nan"), "abc", None])
def test_non_positive_or_non_numeric_underlying_is_rejected(bad):
    with pytest.raises(ValueError, match="underlying price"):
        resolve_strike_from_relation(bad, "ATM", "CALL")


def test_premium_heuristic():
    assert premium_for(InstrumentType.CALL, 20.0) == pytest.approx(2.0)
    assert premium_for(InstrumentType.PUT, 20.0) == pytest.approx(2.0)
    assert premium_for(InstrumentType.STOCK, 20.0) == pytest.approx(20.0)
