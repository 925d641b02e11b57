from __future__ import annotations

import datetime as dt
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple


class InstrumentType(str, Enum):
    CALL = "CALL"
    PUT = "PUT"
    STOCK = "STOCK"

    @property
    def is_option(self) -> bool:
        return self in (InstrumentType.CALL, InstrumentType.PUT)


class LegAction(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class StrikeRelation(str, Enum):
    ATM = "ATM"
    ITM = "ITM"
    OTM = "OTM"


class StrategyExecutionType(str, Enum):
    BUY_HOLD_STOCK = "BUY_HOLD_STOCK"
    LONG_CALL = "LONG_CALL"

    @classmethod
    def parse(cls, value: object) -> Optional["StrategyExecutionType"]:
        """Parse a stored tag; unknown tags (old rows, typos) return None."""

        if isinstance(value, cls):
            return value
        text = str(value or "").strip().upper()
        try:
            return cls(text)
        except ValueError:
            return None


def _coerce_enum(enum_cls: Any, value: object, field_name: str) -> Any:
    if isinstance(value, enum_cls):
        return value
    text = str(value or "").strip().upper()
    try:
        return enum_cls(text)
    except ValueError as exc:
        allowed = sorted(m.value for m in enum_cls)
        raise ValueError(f"{field_name} must be one of {allowed}; got {value!r}") from exc


def _coerce_float(value: object, field_name: str) -> float:
    try:
        num = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{field_name} must be a number; got {value!r}") from exc
    if not math.isfinite(num):
        raise ValueError(f"{field_name} must be finite; got {value!r}")
    return num


def _coerce_optional_float(value: object, field_name: str) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return _coerce_float(value, field_name)


def parse_iso_date(text: str) -> Optional[dt.date]:
    """Calendar date of a full ISO-8601 date or datetime string (`Z` suffix allowed); None otherwise."""

    text = text.strip()
    if not text:
        return None
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return dt.datetime.fromisoformat(text).date()
    except ValueError:
        return None


def coerce_date(value: object, field_name: str) -> dt.date:
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    parsed = parse_iso_date(str(value))
    if parsed is None:
        raise ValueError(f"{field_name} must be a date (YYYY-MM-DD); got {value!r}")
    return parsed


def _coerce_optional_date(value: object, field_name: str) -> Optional[dt.date]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return coerce_date(value, field_name)


@dataclass(frozen=True)
class PricePoint:
    date: dt.date
    close: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "date", coerce_date(self.date, "PricePoint.date"))
        close = _coerce_float(self.close, "PricePoint.close")
        if close <= 0:
            raise ValueError(f"PricePoint.close must be > 0; got {self.close!r}")
        object.__setattr__(self, "close", close)


@dataclass(frozen=True)
class SimulationLegContext:
    id: str
    instrument_type: InstrumentType
    action: LegAction
    quantity: int
    entry_price: float
    strike_price: Optional[float] = None
    expiry_date: Optional[dt.date] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", str(self.id))
        object.__setattr__(
            self, "instrument_type", _coerce_enum(InstrumentType, self.instrument_type, "leg.instrument_type")
        )
        object.__setattr__(self, "action", _coerce_enum(LegAction, self.action, "leg.action"))
        try:
            qty = int(self.quantity)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"leg.quantity must be an int; got {self.quantity!r}") from exc
        if qty < 1:
            raise ValueError(f"leg.quantity must be >= 1; got {self.quantity!r}")
        object.__setattr__(self, "quantity", qty)
        object.__setattr__(self, "entry_price", _coerce_float(self.entry_price, "leg.entry_price"))
        object.__setattr__(self, "strike_price", _coerce_optional_float(self.strike_price, "leg.strike_price"))
        object.__setattr__(self, "expiry_date", _coerce_optional_date(self.expiry_date, "leg.expiry_date"))

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "SimulationLegContext":
        # Persisted rows store numerics as decimal strings; blank or numeric zero means "not set".
        strike = payload.get("strike_price")
        if strike == "" or (isinstance(strike, (int, float)) and strike == 0):
            strike = None
        return cls(
            id=str(payload.get("id") or ""),
            instrument_type=payload.get("instrument_type"),
            action=payload.get("action"),
            quantity=payload.get("quantity"),
            entry_price=payload.get("entry_price"),
            strike_price=strike,
            expiry_date=payload.get("expiry_date"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "instrument_type": self.instrument_type.value,
            "action": self.action.value,
            "quantity": int(self.quantity),
            "entry_price": float(self.entry_price),
            "strike_price": None if self.strike_price is None else float(self.strike_price),
            "expiry_date": None if self.expiry_date is None else self.expiry_date.isoformat(),
        }


@dataclass(frozen=True)
class MaterializedLeg(SimulationLegContext):
    """A leg as first instantiated for a simulation, ready to be stored."""

    simulation_id: str = ""
    entry_date: Optional[dt.date] = None

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(self, "simulation_id", str(self.simulation_id))
        object.__setattr__(self, "entry_date", _coerce_optional_date(self.entry_date, "leg.entry_date"))

    def to_dict(self) -> Dict[str, Any]:
        out = super().to_dict()
        out["simulation_id"] = self.simulation_id
        out["entry_date"] = None if self.entry_date is None else self.entry_date.isoformat()
        return out


@dataclass(frozen=True)
class StrategyLegTemplate:
    instrument_type: InstrumentType
    action: LegAction
    quantity_ratio: Optional[int] = None
    strike_relation: StrikeRelation = StrikeRelation.ATM

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "instrument_type", _coerce_enum(InstrumentType, self.instrument_type, "template.instrument_type")
        )
        object.__setattr__(self, "action", _coerce_enum(LegAction, self.action, "template.action"))
        if self.quantity_ratio is not None:
            try:
                ratio = int(self.quantity_ratio)
            except (TypeError, ValueError) as exc:
                raise ValueError(f"template.quantity_ratio must be an int; got {self.quantity_ratio!r}") from exc
            if ratio < 1:
                raise ValueError(f"template.quantity_ratio must be >= 1; got {self.quantity_ratio!r}")
            object.__setattr__(self, "quantity_ratio", ratio)
        object.__setattr__(
            self, "strike_relation", _coerce_enum(StrikeRelation, self.strike_relation, "template.strike_relation")
        )

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "StrategyLegTemplate":
        return cls(
            instrument_type=payload.get("instrument_type"),
            action=payload.get("action"),
            quantity_ratio=payload.get("quantity_ratio"),
            strike_relation=payload.get("strike_relation") or StrikeRelation.ATM,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "instrument_type": self.instrument_type.value,
            "action": self.action.value,
            "quantity_ratio": self.quantity_ratio,
            "strike_relation": self.strike_relation.value,
        }


@dataclass(frozen=True)
class SimulationContext:
    id: str
    user_id: str
    strategy_execution_type: StrategyExecutionType
    asset_symbol: str
    start_date: dt.date
    end_date: dt.date
    initial_capital: float
    legs: Tuple[SimulationLegContext, ...] = ()
    price_series: Tuple[PricePoint, ...] = ()


@dataclass(frozen=True)
class SimulationBacktestResult:
    total_return: float
    return_percentage: float
    max_drawdown: float

    @classmethod
    def zero(cls) -> "SimulationBacktestResult":
        return cls(total_return=0.0, return_percentage=0.0, max_drawdown=0.0)

    @property
    def is_zero(self) -> bool:
        return self.total_return == 0 and self.return_percentage == 0 and self.max_drawdown == 0

    def to_dict(self) -> Dict[str, float]:
        return {
            "totalReturn": float(self.total_return),
            "returnPercentage": float(self.return_percentage),
            "maxDrawdown": float(self.max_drawdown),
        }


@dataclass(frozen=True)
class SimulationRecord:
    """
    A stored simulation as handed over by the persistence layer.

    `start_date`, `end_date` and `initial_capital` are kept raw (strings, dates,
    decimals) and validated by the orchestrator. `strategy_execution_type` is
    attached by the caller, usually via `map_execution_type(strategy.name)`.
    """

    id: str
    user_id: str
    asset_symbol: str
    start_date: Any
    end_date: Any
    initial_capital: Any
    strategy_execution_type: Any = StrategyExecutionType.BUY_HOLD_STOCK
    strategy_id: str = ""
    simulation_name: str = ""
    legs: Tuple[Any, ...] = field(default_factory=tuple)


__all__ = [
    "coerce_date",
    "parse_iso_date",
    "InstrumentType",
    "LegAction",
    "MaterializedLeg",
    "PricePoint",
    "SimulationBacktestResult",
    "SimulationContext",
    "SimulationLegContext",
    "SimulationRecord",
    "StrategyExecutionType",
    "StrategyLegTemplate",
    "StrikeRelation",
]
