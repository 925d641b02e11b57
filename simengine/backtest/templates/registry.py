from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import yaml

from simengine.backtest.types import StrategyLegTemplate
from simengine.config import SimEngineConfig

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent / "catalog.yml"

ALLOWED_OUTLOOKS = {"BULLISH", "BEARISH", "NEUTRAL"}
ALLOWED_STRATEGY_TYPES = {"CAPITAL_GAIN", "INCOME", "PROTECTION"}


@dataclass(frozen=True)
class StrategyDefinition:
    strategy_id: str
    display_name: str
    description: str
    market_outlook: str
    strategy_type: str
    legs: tuple[StrategyLegTemplate, ...]


_CATALOG_CACHE: Optional[Dict[str, StrategyDefinition]] = None


def _iter_catalog_files(root: Path) -> Iterable[Path]:
    if root.is_file():
        yield root
        return
    for pattern in ("*.yml", "*.yaml", "*.json"):
        for path in sorted(root.glob(pattern)):
            if path.name.startswith("_"):
                continue
            yield path


def _load_payload(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        return json.loads(text)
    return yaml.safe_load(text)


def _entries(payload: Any, *, path: Path) -> List[Dict[str, Any]]:
    if isinstance(payload, dict) and "strategies" in payload:
        payload = payload["strategies"]
    elif isinstance(payload, dict):
        payload = [payload]
    if not isinstance(payload, list):
        raise ValueError(f"Catalog file must contain a mapping or a `strategies` list: {path}")
    for idx, entry in enumerate(payload, start=1):
        if not isinstance(entry, dict):
            raise ValueError(f"strategies[{idx}] must be an object in catalog: {path}")
    return payload


def _require_str(payload: Dict[str, Any], field: str, *, path: Path) -> str:
    value = payload.get(field)
    value = "" if value is None else str(value)
    value = value.strip()
    if not value:
        raise ValueError(f"Missing/empty `{field}` in catalog: {path}")
    return value


def _coerce_definition(payload: Dict[str, Any], *, path: Path) -> StrategyDefinition:
    strategy_id = _require_str(payload, "strategy_id", path=path)
    display_name = str(payload.get("display_name") or strategy_id).strip()
    outlook = str(payload.get("market_outlook") or "NEUTRAL").strip().upper()
    if outlook not in ALLOWED_OUTLOOKS:
        raise ValueError(f"`market_outlook` must be one of {sorted(ALLOWED_OUTLOOKS)} for {strategy_id}: {path}")
    strategy_type = str(payload.get("strategy_type") or "CAPITAL_GAIN").strip().upper()
    if strategy_type not in ALLOWED_STRATEGY_TYPES:
        raise ValueError(f"`strategy_type` must be one of {sorted(ALLOWED_STRATEGY_TYPES)} for {strategy_id}: {path}")

    legs_raw = payload.get("legs") or []
    if not isinstance(legs_raw, list) or not legs_raw:
        raise ValueError(f"`legs` must be a non-empty list for {strategy_id}: {path}")
    legs: list[StrategyLegTemplate] = []
    for idx, leg in enumerate(legs_raw, start=1):
        if not isinstance(leg, dict):
            raise ValueError(f"legs[{idx}] must be an object for {strategy_id}: {path}")
        try:
            legs.append(StrategyLegTemplate.from_dict(leg))
        except ValueError as exc:
            raise ValueError(f"legs[{idx}] of {strategy_id} is invalid ({exc}): {path}") from exc

    return StrategyDefinition(
        strategy_id=strategy_id,
        display_name=display_name or strategy_id,
        description=str(payload.get("description") or "").strip(),
        market_outlook=outlook,
        strategy_type=strategy_type,
        legs=tuple(legs),
    )


def load_catalog(path: Optional[Path] = None) -> Dict[str, StrategyDefinition]:
    """Read every strategy definition under `path` (a file or a directory of files)."""

    root = Path(path) if path is not None else DEFAULT_CATALOG_PATH
    if not root.exists():
        raise FileNotFoundError(f"Strategy catalog {root} not found")
    definitions: Dict[str, StrategyDefinition] = {}
    for file_path in _iter_catalog_files(root):
        for entry in _entries(_load_payload(file_path), path=file_path):
            definition = _coerce_definition(entry, path=file_path)
            if definition.strategy_id in definitions:
                raise ValueError(f"Duplicate strategy_id `{definition.strategy_id}` in {file_path}")
            definitions[definition.strategy_id] = definition
    return definitions


def _catalog() -> Dict[str, StrategyDefinition]:
    global _CATALOG_CACHE
    if _CATALOG_CACHE is None:
        _CATALOG_CACHE = load_catalog(SimEngineConfig.load().catalog.path)
    return _CATALOG_CACHE


def list_strategies(
    *,
    market_outlook: Optional[str] = None,
    strategy_type: Optional[str] = None,
) -> list[StrategyDefinition]:
    """Catalog entries sorted by display name, optionally filtered by outlook and/or type."""

    outlook = str(market_outlook or "").strip().upper()
    kind = str(strategy_type or "").strip().upper()
    found = [
        d
        for d in _catalog().values()
        if (not outlook or d.market_outlook == outlook) and (not kind or d.strategy_type == kind)
    ]
    return sorted(found, key=lambda d: (d.display_name.lower(), d.strategy_id.lower()))


def get_strategy_definition(name: str) -> StrategyDefinition:
    key = str(name or "").strip()
    if not key:
        raise KeyError("strategy name must be non-empty")
    catalog = _catalog()
    if key in catalog:
        return catalog[key]
    lowered = key.lower()
    for cand in catalog.values():
        if cand.strategy_id.lower() == lowered or cand.display_name.lower() == lowered:
            return cand
    raise KeyError(f"Unknown strategy: {name!r}. Available: {sorted(catalog)}")


__all__ = [
    "ALLOWED_OUTLOOKS",
    "ALLOWED_STRATEGY_TYPES",
    "DEFAULT_CATALOG_PATH",
    "StrategyDefinition",
    "get_strategy_definition",
    "list_strategies",
    "load_catalog",
]
