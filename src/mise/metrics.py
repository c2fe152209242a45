"""Prometheus metrics definitions for Mise."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "mise_http_requests_total",
    "Total number of HTTP requests processed by the Mise API",
    ["method", "path", "status"],
)

REQUEST_LATENCY = Histogram(
    "mise_http_request_duration_seconds",
    "Latency of HTTP requests processed by the Mise API",
    ["method", "path"],
)

RECOMMENDATIONS = Counter(
    "mise_recommendations_total",
    "Number of recipe recommendation requests served",
)

GROCERY_GENERATIONS = Counter(
    "mise_grocery_list_generations_total",
    "Grocery list generation attempts by outcome",
    ["outcome"],
)

AGGREGATION_ANOMALIES = Counter(
    "mise_aggregation_anomalies_total",
    "Derived grocery items flagged during aggregation",
    ["flag"],
)

__all__ = [
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "RECOMMENDATIONS",
    "GROCERY_GENERATIONS",
    "AGGREGATION_ANOMALIES",
]
