"""Lightweight observability helpers (logging + metrics)."""

from __future__ import annotations

import json
import logging
import uuid
from collections import defaultdict
from contextvars import ContextVar
from threading import Lock
from typing import Iterable, Protocol

from readiness.core.config import Settings, get_settings

evaluation_id_ctx: ContextVar[str | None] = ContextVar("evaluation_id", default=None)
logger = logging.getLogger(__name__)

DEFAULT_BUCKETS_MS = [1, 5, 10, 25, 50, 100, 250, 1000]
TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_log_handler: logging.Handler | None = None


def get_evaluation_id() -> str | None:
    """Return the id of the evaluation currently running, if any."""
    return evaluation_id_ctx.get()


def new_evaluation_id() -> str:
    return uuid.uuid4().hex[:12]


class JsonFormatter(logging.Formatter):
    """One JSON object per log line, tagged with the evaluation id."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "evaluation_id": get_evaluation_id(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_logging(settings: Settings | None = None) -> None:
    """Install a root handler using the configured level and format."""
    settings = settings or get_settings()

    handler = logging.StreamHandler()
    if settings.log_format == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    global _log_handler
    root = logging.getLogger()
    if _log_handler is not None:
        root.removeHandler(_log_handler)
    _log_handler = handler
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if settings.debug else settings.log_level.upper())


class MetricsBackend(Protocol):
    """Metrics backend interface."""

    def observe_evaluation(self, mode: str, duration_ms: float, points: int) -> None:
        ...

    def observe_insight(self, kind: str, rule: str | None) -> None:
        ...

    def observe_import(self, source: str, success: bool, days: int, duration_ms: float) -> None:
        ...

    def render_prometheus(self) -> str:
        ...


class MetricsCollector:
    """In-process metrics collector with Prometheus text output."""

    def __init__(self, buckets_ms: Iterable[float] | None = None) -> None:
        self._lock = Lock()
        self._evaluation_counts: dict[str, int] = defaultdict(int)
        self._evaluation_points: dict[str, int] = defaultdict(int)
        self._duration_sum_ms: dict[str, float] = defaultdict(float)
        self._duration_count: dict[str, int] = defaultdict(int)
        self._duration_buckets: dict[str, dict[str, int]] = defaultdict(lambda: defaultdict(int))
        self._insight_counts: dict[tuple[str, str], int] = defaultdict(int)
        self._import_counts: dict[tuple[str, str], int] = defaultdict(int)
        self._import_days: dict[str, int] = defaultdict(int)
        self._import_duration_sum_ms: dict[str, float] = defaultdict(float)
        self._buckets_ms = list(buckets_ms or DEFAULT_BUCKETS_MS)

    def observe_evaluation(self, mode: str, duration_ms: float, points: int) -> None:
        """Record one engine evaluation."""
        bucket_key = self._bucket_for(duration_ms)

        with self._lock:
            self._evaluation_counts[mode] += 1
            self._evaluation_points[mode] += points
            self._duration_sum_ms[mode] += duration_ms
            self._duration_count[mode] += 1
            self._duration_buckets[mode][bucket_key] += 1

    def observe_insight(self, kind: str, rule: str | None) -> None:
        """Record one emitted insight."""
        with self._lock:
            self._insight_counts[(kind, rule or "none")] += 1

    def observe_import(self, source: str, success: bool, days: int, duration_ms: float) -> None:
        """Record one import of an external export file."""
        status = "success" if success else "error"
        with self._lock:
            self._import_counts[(source, status)] += 1
            self._import_duration_sum_ms[source] += duration_ms
            if success:
                self._import_days[source] += days

    def evaluation_count(self, mode: str) -> int:
        with self._lock:
            return self._evaluation_counts.get(mode, 0)

    def insight_count(self, kind: str) -> int:
        with self._lock:
            return sum(count for (k, _), count in self._insight_counts.items() if k == kind)

    def render_prometheus(self) -> str:
        """Render metrics in Prometheus text format."""
        lines: list[str] = [
            "# HELP readiness_evaluations_total Total engine evaluations",
            "# TYPE readiness_evaluations_total counter",
        ]
        with self._lock:
            for mode, count in sorted(self._evaluation_counts.items()):
                lines.append(f'readiness_evaluations_total{{mode="{mode}"}} {count}')

            lines.extend(
                [
                    "# HELP readiness_evaluation_points_total Points processed by evaluations",
                    "# TYPE readiness_evaluation_points_total counter",
                ]
            )
            for mode, count in sorted(self._evaluation_points.items()):
                lines.append(f'readiness_evaluation_points_total{{mode="{mode}"}} {count}')

            lines.extend(
                [
                    "# HELP readiness_evaluation_duration_ms Evaluation duration in milliseconds",
                    "# TYPE readiness_evaluation_duration_ms histogram",
                ]
            )
            for mode, total in sorted(self._duration_sum_ms.items()):
                buckets = self._duration_buckets[mode]
                cumulative = 0
                for bound in self._buckets_ms:
                    cumulative += buckets.get(str(bound), 0)
                    lines.append(
                        f'readiness_evaluation_duration_ms_bucket{{mode="{mode}",le="{bound}"}} {cumulative}'
                    )
                cumulative += buckets.get("+Inf", 0)
                lines.append(
                    f'readiness_evaluation_duration_ms_bucket{{mode="{mode}",le="+Inf"}} {cumulative}'
                )
                count = self._duration_count[mode]
                lines.append(f'readiness_evaluation_duration_ms_sum{{mode="{mode}"}} {total:.2f}')
                lines.append(f'readiness_evaluation_duration_ms_count{{mode="{mode}"}} {count}')

            lines.extend(
                [
                    "# HELP readiness_insights_total Insights emitted",
                    "# TYPE readiness_insights_total counter",
                ]
            )
            for (kind, rule), count in sorted(self._insight_counts.items()):
                lines.append(f'readiness_insights_total{{kind="{kind}",rule="{rule}"}} {count}')

            lines.extend(
                [
                    "# HELP readiness_imports_total Export file imports",
                    "# TYPE readiness_imports_total counter",
                ]
            )
            for (source, status), count in sorted(self._import_counts.items()):
                lines.append(
                    f'readiness_imports_total{{source="{source}",status="{status}"}} {count}'
                )

            lines.extend(
                [
                    "# HELP readiness_import_days_total Days produced by imports",
                    "# TYPE readiness_import_days_total counter",
                ]
            )
            for source, days in sorted(self._import_days.items()):
                lines.append(f'readiness_import_days_total{{source="{source}"}} {days}')

            lines.extend(
                [
                    "# HELP readiness_import_duration_ms_sum Total import time in milliseconds",
                    "# TYPE readiness_import_duration_ms_sum counter",
                ]
            )
            for source, total in sorted(self._import_duration_sum_ms.items()):
                lines.append(f'readiness_import_duration_ms_sum{{source="{source}"}} {total:.2f}')
        return "\n".join(lines) + "\n"

    def _bucket_for(self, duration_ms: float) -> str:
        for bound in self._buckets_ms:
            if duration_ms <= bound:
                return str(bound)
        return "+Inf"


class PrometheusMetrics:
    """Prometheus client-based metrics backend."""

    def __init__(self, buckets_ms: Iterable[float]) -> None:
        from prometheus_client import CollectorRegistry, Counter, Histogram

        self._registry = CollectorRegistry()
        self._buckets_ms = list(buckets_ms)

        self._evaluations_total = Counter(
            "readiness_evaluations_total",
            "Total engine evaluations",
            ["mode"],
            registry=self._registry,
        )
        self._evaluation_points_total = Counter(
            "readiness_evaluation_points_total",
            "Points processed by evaluations",
            ["mode"],
            registry=self._registry,
        )
        self._evaluation_duration_ms = Histogram(
            "readiness_evaluation_duration_ms",
            "Evaluation duration in milliseconds",
            ["mode"],
            buckets=self._buckets_ms,
            registry=self._registry,
        )
        self._insights_total = Counter(
            "readiness_insights_total",
            "Insights emitted",
            ["kind", "rule"],
            registry=self._registry,
        )
        self._imports_total = Counter(
            "readiness_imports_total",
            "Export file imports",
            ["source", "status"],
            registry=self._registry,
        )
        self._import_days_total = Counter(
            "readiness_import_days_total",
            "Days produced by imports",
            ["source"],
            registry=self._registry,
        )
        self._import_duration_ms = Histogram(
            "readiness_import_duration_ms",
            "Import duration in milliseconds",
            ["source"],
            buckets=self._buckets_ms,
            registry=self._registry,
        )

    def observe_evaluation(self, mode: str, duration_ms: float, points: int) -> None:
        self._evaluations_total.labels(mode).inc()
        self._evaluation_points_total.labels(mode).inc(points)
        self._evaluation_duration_ms.labels(mode).observe(duration_ms)

    def observe_insight(self, kind: str, rule: str | None) -> None:
        self._insights_total.labels(kind, rule or "none").inc()

    def observe_import(self, source: str, success: bool, days: int, duration_ms: float) -> None:
        status = "success" if success else "error"
        self._imports_total.labels(source, status).inc()
        self._import_duration_ms.labels(source).observe(duration_ms)
        if success:
            self._import_days_total.labels(source).inc(days)

    def render_prometheus(self) -> str:
        from prometheus_client import generate_latest

        return generate_latest(self._registry).decode("utf-8")


_metrics_backend: MetricsBackend | None = None


def get_metrics_backend() -> MetricsBackend:
    """Return a cached metrics backend instance."""
    global _metrics_backend
    if _metrics_backend is None:
        settings = get_settings()
        _metrics_backend = build_metrics_backend(settings.metrics_backend)
    return _metrics_backend


def build_metrics_backend(backend: str) -> MetricsBackend:
    if backend == "prometheus":
        return PrometheusMetrics(DEFAULT_BUCKETS_MS)
    return MetricsCollector(DEFAULT_BUCKETS_MS)
