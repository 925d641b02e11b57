from __future__ import annotations

import math
from typing import Any, Dict, Iterable, Mapping, Sequence

import pandas as pd


def compute_drawdown(closes: Sequence[float] | pd.Series) -> pd.DataFrame:
    """
    Running peak and drawdown of a price (or equity) series.

    Definitions:
      peak_t = max(close_0..t)
      drawdown_t = close_t / peak_t - 1
    """

    series = closes if isinstance(closes, pd.Series) else pd.Series(list(closes), dtype="float64")
    values = pd.to_numeric(series, errors="coerce").astype(float)
    if values.empty:
        return pd.DataFrame(index=values.index, columns=["close", "peak", "drawdown"])
    peak = values.cummax()
    drawdown = values / peak - 1.0
    return pd.DataFrame({"close": values, "peak": peak, "drawdown": drawdown}, index=values.index)


def compute_max_drawdown_pct(closes: Sequence[float] | pd.Series) -> float:
    """Worst peak-to-trough decline in percent (<= 0; 0 when the series never dips)."""

    dd = compute_drawdown(closes)
    if dd.empty:
        return 0.0
    worst = float(dd["drawdown"].min())
    if math.isnan(worst):
        return 0.0
    return min(worst, 0.0) * 100.0


def _field(row: Any, *names: str) -> Any:
    for name in names:
        if isinstance(row, Mapping):
            if name in row:
                return row[name]
        elif hasattr(row, name):
            return getattr(row, name)
    return None


def _as_float(value: Any) -> float:
    if value is None:
        return 0.0
    try:
        num = float(str(value))
    except (TypeError, ValueError):
        return 0.0
    return num if math.isfinite(num) else 0.0


def compute_user_statistics(simulations: Iterable[Any]) -> Dict[str, Any]:
    """
    Summarize a user's stored simulations.

    Rows may be mappings or objects exposing `initial_capital`, `total_return`
    and `return_percentage` (camelCase keys are accepted too); missing or
    unparseable values count as zero. A simulation is profitable when its total
    return is > 0; everything else counts as losing.
    """

    rows = list(simulations)
    total = len(rows)
    if total == 0:
        return {
            "total_simulations": 0,
            "profitable_simulations": 0,
            "losing_simulations": 0,
            "win_rate": "0.00",
            "avg_return": "0.00",
            "simulated_capital": 0.0,
        }

    returns_pct = [_as_float(_field(r, "return_percentage", "returnPercentage")) for r in rows]
    total_returns = [_as_float(_field(r, "total_return", "totalReturn")) for r in rows]
    initial = [_as_float(_field(r, "initial_capital", "initialCapital")) for r in rows]

    profitable = sum(1 for value in total_returns if value > 0)
    return {
        "total_simulations": total,
        "profitable_simulations": profitable,
        "losing_simulations": total - profitable,
        "win_rate": f"{profitable / total * 100.0:.2f}",
        "avg_return": f"{sum(returns_pct) / total:.2f}",
        "simulated_capital": float(sum(initial) + sum(total_returns)),
    }


__all__ = [
    "compute_drawdown",
    "compute_max_drawdown_pct",
    "compute_user_statistics",
]
