from __future__ import annotations

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Histogram


class BacktestMetrics:
    """Prometheus metrics for backtest runs, bound to one collector registry."""

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()
        registry_kwargs = {"registry": self.registry}
        self.backtests_total = Counter(
            "backtests_total", "Backtests that produced a strategy result", ["strategy"], **registry_kwargs
        )
        self.backtests_degraded_total = Counter(
            "backtests_degraded_total", "Backtests collapsed to the zero result", ["reason"], **registry_kwargs
        )
        self.backtest_duration_seconds = Histogram(
            "backtest_duration_seconds", "Wall time of a backtest run", **registry_kwargs
        )
        self.price_points_loaded = Histogram(
            "price_points_loaded",
            "Usable price points per loaded series",
            buckets=(0, 1, 2, 5, 21, 63, 126, 252, 504, 1260, float("inf")),
            **registry_kwargs,
        )

    def record_completed(self, strategy: str, duration_s: float) -> None:
        self.backtests_total.labels(strategy=strategy).inc()
        self.backtest_duration_seconds.observe(max(duration_s, 0.0))

    def record_degraded(self, reason: str, duration_s: float) -> None:
        self.backtests_degraded_total.labels(reason=reason).inc()
        self.backtest_duration_seconds.observe(max(duration_s, 0.0))

    def observe_series(self, points: int) -> None:
        self.price_points_loaded.observe(float(points))

    def sample(self, name: str, **labels: str) -> float:
        value = self.registry.get_sample_value(name, labels or None)
        return float(value or 0.0)


__all__ = ["BacktestMetrics"]
