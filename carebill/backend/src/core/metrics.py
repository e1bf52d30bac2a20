"""Prometheus metric definitions for backend traffic and document rendering."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

gateway_requests_total = Counter(
    "carebill_gateway_requests_total",
    "Total row API requests by table, operation and outcome.",
    labelnames=["table", "operation", "outcome"],
)

gateway_request_seconds = Histogram(
    "carebill_gateway_request_seconds",
    "Duration of row API requests in seconds.",
    labelnames=["table", "operation"],
)

auth_requests_total = Counter(
    "carebill_auth_requests_total",
    "Total authentication provider requests by action and outcome.",
    labelnames=["action", "outcome"],
)

pdf_generation_seconds = Histogram(
    "carebill_pdf_generation_seconds",
    "Time spent rendering a single invoice PDF.",
)

__all__ = [
    "auth_requests_total",
    "gateway_request_seconds",
    "gateway_requests_total",
    "pdf_generation_seconds",
]
