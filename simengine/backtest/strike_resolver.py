from __future__ import annotations

import math

from simengine.backtest.types import InstrumentType, StrikeRelation

STRIKE_OFFSET_PCT = 0.05
OPTION_PREMIUM_PCT = 0.10
STOCK_PRICE_PCT = 1.0


def _coerce_underlying(value: object) -> float:
    try:
        price = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"underlying price must be a number; got {value!r}") from exc
    if not math.isfinite(price) or price <= 0:
        raise ValueError(f"underlying price must be > 0; got {value!r}")
    return price


def resolve_strike_from_relation(underlying: float, relation: object, instrument_type: object) -> float:
    """
    Resolve an approximate strike from the underlying price and a moneyness relation.

    Convention (fixed 5% offset):
    - ATM: strike = underlying
    - CALL: ITM below spot, OTM above spot
    - PUT:  ITM above spot, OTM below spot

    Unrecognized relations resolve ATM.
    """

    price = _coerce_underlying(underlying)
    try:
        rel = StrikeRelation(str(getattr(relation, "value", relation) or "").strip().upper())
    except ValueError:
        rel = StrikeRelation.ATM
    is_put = str(getattr(instrument_type, "value", instrument_type) or "").strip().upper() == InstrumentType.PUT.value

    if rel is StrikeRelation.ITM:
        return price * (1 + STRIKE_OFFSET_PCT) if is_put else price * (1 - STRIKE_OFFSET_PCT)
    if rel is StrikeRelation.OTM:
        return price * (1 - STRIKE_OFFSET_PCT) if is_put else price * (1 + STRIKE_OFFSET_PCT)
    return price


def premium_for(instrument_type: InstrumentType, underlying: float) -> float:
    """Entry price heuristic: options at 10% of spot, stock at spot."""

    price = _coerce_underlying(underlying)
    pct = OPTION_PREMIUM_PCT if instrument_type.is_option else STOCK_PRICE_PCT
    return price * pct


__all__ = [
    "OPTION_PREMIUM_PCT",
    "STOCK_PRICE_PCT",
    "STRIKE_OFFSET_PCT",
    "premium_for",
    "resolve_strike_from_relation",
]
