from __future__ import annotations

import datetime as dt
import uuid
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Mapping, Union

from simengine.backtest.strike_resolver import premium_for, resolve_strike_from_relation
from simengine.backtest.types import MaterializedLeg, StrategyLegTemplate, coerce_date

# Namespace for deterministic leg ids (uuid5 of simulation id + template position).
_LEG_NAMESPACE = uuid.UUID("8a3f0c52-6d1e-4f57-9a63-2f4f1d7b9c10")
_CENT = Decimal("0.01")


@dataclass(frozen=True)
class SimulationSeed:
    """The parts of a simulation the leg factory needs."""

    id: str
    initial_capital: float
    start_date: dt.date
    end_date: dt.date
    asset_symbol: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", str(self.id))
        object.__setattr__(self, "start_date", coerce_date(self.start_date, "simulation.start_date"))
        object.__setattr__(self, "end_date", coerce_date(self.end_date, "simulation.end_date"))


def to_cents(value: float) -> float:
    """Round half-up to currency precision."""

    return float(Decimal(repr(float(value))).quantize(_CENT, rounding=ROUND_HALF_UP))


def leg_id_for(simulation_id: str, position: int) -> str:
    return str(uuid.uuid5(_LEG_NAMESPACE, f"{simulation_id}:{position}"))


def instantiate_legs(
    templates: Iterable[Union[StrategyLegTemplate, Mapping[str, object]]],
    simulation: SimulationSeed,
    underlying_price_at_start: float,
) -> List[MaterializedLeg]:
    """
    Expand a strategy's leg templates into concrete simulation legs.

    Pure: identical inputs always yield identical legs (ids included).
    """

    legs: List[MaterializedLeg] = []
    for position, raw in enumerate(templates):
        tpl = raw if isinstance(raw, StrategyLegTemplate) else StrategyLegTemplate.from_dict(raw)
        is_option = tpl.instrument_type.is_option
        entry_price = to_cents(premium_for(tpl.instrument_type, underlying_price_at_start))
        strike = (
            to_cents(resolve_strike_from_relation(underlying_price_at_start, tpl.strike_relation, tpl.instrument_type))
            if is_option
            else None
        )
        legs.append(
            MaterializedLeg(
                id=leg_id_for(simulation.id, position),
                instrument_type=tpl.instrument_type,
                action=tpl.action,
                quantity=tpl.quantity_ratio if tpl.quantity_ratio is not None else 1,
                entry_price=entry_price,
                strike_price=strike,
                expiry_date=simulation.end_date if is_option else None,
                simulation_id=simulation.id,
                entry_date=simulation.start_date,
            )
        )
    return legs


__all__ = ["SimulationSeed", "instantiate_legs", "leg_id_for", "to_cents"]
