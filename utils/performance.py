"""Performance monitoring utilities using Prometheus metrics."""

from __future__ import annotations

import time
from contextlib import contextmanager

import psutil
from prometheus_client import Counter, Gauge, Histogram


tickets_sold_total = Counter("tickets_sold_total", "Tickets successfully sold")
ticket_sale_conflicts_total = Counter(
    "ticket_sale_conflicts_total", "Sale attempts rejected because the number was already sold"
)
winner_resolutions_total = Counter(
    "winner_resolutions_total", "Committed winner resolutions", labelnames=("mode",)
)
sms_acknowledgments_total = Counter(
    "sms_acknowledgments_total", "Operator SMS acknowledgments recorded", labelnames=("kind",)
)
operation_duration = Histogram(
    "lottery_operation_duration_seconds", "Duration of core write operations", labelnames=("operation",)
)
db_connections = Gauge("db_connection_pool_size", "DB connection pool size")
db_connections_in_use = Gauge("db_connection_pool_in_use", "DB connections currently borrowed")


class PerformanceMonitor:
    def __init__(self) -> None:
        self.metrics = {
            "tickets_sold_total": tickets_sold_total,
            "ticket_sale_conflicts_total": ticket_sale_conflicts_total,
            "winner_resolutions_total": winner_resolutions_total,
            "sms_acknowledgments_total": sms_acknowledgments_total,
            "operation_duration": operation_duration,
            "db_connections": db_connections,
            "db_connections_in_use": db_connections_in_use,
        }

    @contextmanager
    def track_operation(self, operation: str):
        start = time.perf_counter()
        try:
            yield
        finally:
            operation_duration.labels(operation=operation).observe(time.perf_counter() - start)

    def record_sale(self) -> None:
        tickets_sold_total.inc()

    def record_sale_conflict(self) -> None:
        ticket_sale_conflicts_total.inc()

    def record_resolution(self, edit_mode: bool) -> None:
        winner_resolutions_total.labels(mode="edit" if edit_mode else "initial").inc()

    def record_acknowledgment(self, kind: str) -> None:
        sms_acknowledgments_total.labels(kind=kind).inc()

    def record_db_pool(self, pool_size: int, in_use: int) -> None:
        db_connections.set(pool_size)
        db_connections_in_use.set(in_use)

    def gather_host_metrics(self) -> dict:
        process = psutil.Process()
        memory_info = process.memory_info()
        return {
            "memory_rss": memory_info.rss,
            "cpu_percent": process.cpu_percent(interval=None),
        }


monitor = PerformanceMonitor()
