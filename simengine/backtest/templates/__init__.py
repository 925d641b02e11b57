from __future__ import annotations

from .registry import (
    DEFAULT_CATALOG_PATH,
    StrategyDefinition,
    get_strategy_definition,
    list_strategies,
    load_catalog,
)

__all__ = [
    "DEFAULT_CATALOG_PATH",
    "StrategyDefinition",
    "get_strategy_definition",
    "list_strategies",
    "load_catalog",
]
