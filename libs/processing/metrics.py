"""Prometheus metrics for the order processing engine."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# Counters for message outcomes
messages_received_total = Counter(
    "order_processor_messages_received_total",
    "Messages returned by receive calls",
)

orders_completed_total = Counter(
    "order_processor_orders_completed_total",
    "Orders that finished the pipeline",
)

poison_messages_total = Counter(
    "order_processor_poison_messages_total",
    "Malformed messages deleted without processing",
    ["stage"],
)

work_failures_total = Counter(
    "order_processor_work_failures_total",
    "Work unit executions that raised (message left for redelivery)",
)

queue_errors_total = Counter(
    "order_processor_queue_errors_total",
    "Failed queue service calls",
    ["operation"],
)

# Gauges for current state
in_flight_orders = Gauge(
    "order_processor_in_flight",
    "Messages currently holding a concurrency slot",
)

# Histograms for latency tracking
stage_latency_seconds = Histogram(
    "order_processor_stage_latency_seconds",
    "Per-stage latency (fetched/completed from order creation, processed = work duration)",
    ["stage"],
    buckets=[0.05, 0.1, 0.5, 1, 2.5, 5, 10, 30, 60, 120],
)


__all__ = [
    "messages_received_total",
    "orders_completed_total",
    "poison_messages_total",
    "work_failures_total",
    "queue_errors_total",
    "in_flight_orders",
    "stage_latency_seconds",
]
