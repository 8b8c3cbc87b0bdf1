from __future__ import annotations

from dataclasses import dataclass

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST

from app.invtrack.core.config import settings


@dataclass
class MetricsSnapshot:
    content: bytes
    content_type: str


class Metrics:
    def __init__(self, enabled: bool | None = None) -> None:
        self.enabled = settings.METRICS_ENABLED if enabled is None else enabled
        self._registry = None
        if self.enabled:
            self._initialize_registry()

    def _initialize_registry(self) -> None:
        self._registry = CollectorRegistry()
        self._http_requests_total = Counter(
            "http_requests_total",
            "HTTP requests by route/method/status.",
            ["route", "method", "status"],
            registry=self._registry,
        )
        self._http_request_duration_ms = Histogram(
            "http_request_duration_ms",
            "HTTP request latency in milliseconds.",
            ["route", "method", "status"],
            buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000),
            registry=self._registry,
        )
        self._items_created_total = Counter(
            "items_created_total",
            "Items fabricated by bulk creation.",
            registry=self._registry,
        )
        self._items_transitioned_total = Counter(
            "items_transitioned_total",
            "Item status transitions applied, by target status.",
            ["status"],
            registry=self._registry,
        )
        self._items_deleted_total = Counter(
            "items_deleted_total",
            "Items removed by bulk delete.",
            registry=self._registry,
        )
        self._reservation_rejected_total = Counter(
            "reservation_rejected_total",
            "Bulk reservations rejected before commit, by reason.",
            ["reason"],
            registry=self._registry,
        )
        self._idempotency_replay_total = Counter(
            "idempotency_replay_total",
            "Idempotent replay responses.",
            registry=self._registry,
        )
        self._lock_wait_timeout_total = Counter(
            "lock_wait_timeout_total",
            "Lock wait timeout occurrences.",
            registry=self._registry,
        )

    def reset(self) -> None:
        if not self.enabled:
            return
        self._initialize_registry()

    def record_http_request(self, *, route: str, method: str, status_code: int, latency_ms: float) -> None:
        if not self.enabled:
            return
        labels = {"route": route, "method": method, "status": str(status_code)}
        self._http_requests_total.labels(**labels).inc()
        self._http_request_duration_ms.labels(**labels).observe(latency_ms)

    def increment_items_created(self, count: int) -> None:
        if not self.enabled:
            return
        self._items_created_total.inc(count)

    def increment_items_transitioned(self, status: str, count: int) -> None:
        if not self.enabled:
            return
        self._items_transitioned_total.labels(status=status).inc(count)

    def increment_items_deleted(self, count: int) -> None:
        if not self.enabled:
            return
        self._items_deleted_total.inc(count)

    def increment_reservation_rejected(self, reason: str) -> None:
        if not self.enabled:
            return
        self._reservation_rejected_total.labels(reason=reason).inc()

    def increment_idempotency_replay(self) -> None:
        if not self.enabled:
            return
        self._idempotency_replay_total.inc()

    def increment_lock_wait_timeout(self) -> None:
        if not self.enabled:
            return
        self._lock_wait_timeout_total.inc()

    def render(self) -> MetricsSnapshot:
        if not self.enabled:
            return MetricsSnapshot(content=b"metrics_disabled\n", content_type="text/plain")
        return MetricsSnapshot(content=generate_latest(self._registry), content_type=CONTENT_TYPE_LATEST)


metrics = Metrics()
