"""Prometheus exporter helpers."""

from __future__ import annotations

from prometheus_client import Counter, Gauge


outfit_generation_total = Counter(
    "outfit_generation_total",
    "Total number of outfit generation requests.",
    ["strategy", "outcome"],
)

oracle_requests_total = Counter(
    "oracle_requests_total",
    "Structured generation requests sent to the model endpoint.",
    ["outcome"],
)

oracle_retries_total = Counter(
    "oracle_retries_total",
    "Transient model failures that were retried after a backoff.",
)

variant_failures_total = Counter(
    "variant_failures_total",
    "Background alternate generations that failed and were dropped.",
)

background_variant_tasks = Gauge(
    "background_variant_tasks",
    "Number of background variant batches currently running.",
)
