from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Histogram

from app.bakery.core.config import settings


class Metrics:
    def __init__(self) -> None:
        self.enabled = bool(settings.METRICS_ENABLED)
        self._registry = None
        self._report_builds_total = None
        self._report_build_duration_ms = None
        self._report_excluded_products_total = None
        if self.enabled:
            self._initialize_registry()

    def _initialize_registry(self) -> None:
        self._registry = CollectorRegistry()
        self._report_builds_total = Counter(
            "report_builds_total",
            "Reports built by report type and output family.",
            ["report", "family"],
            registry=self._registry,
        )
        self._report_build_duration_ms = Histogram(
            "report_build_duration_ms",
            "Report build latency in milliseconds.",
            ["report"],
            buckets=(1, 5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000),
            registry=self._registry,
        )
        self._report_excluded_products_total = Counter(
            "report_excluded_products_total",
            "Products left out of COGS because no unit cost could be resolved.",
            registry=self._registry,
        )

    def reset(self) -> None:
        if not self.enabled:
            return
        self._initialize_registry()

    def record_report_build(self, *, report: str, family: str, duration_ms: float) -> None:
        if not self.enabled:
            return
        self._report_builds_total.labels(report=report, family=family).inc()
        self._report_build_duration_ms.labels(report=report).observe(duration_ms)

    def increment_excluded_products(self, count: int = 1) -> None:
        if not self.enabled or count <= 0:
            return
        self._report_excluded_products_total.inc(count)

    def sample(self, name: str, labels: dict | None = None) -> float | None:
        if not self.enabled:
            return None
        return self._registry.get_sample_value(name, labels or {})


metrics = Metrics()
