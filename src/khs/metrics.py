"""Prometheus metrics for the resolver."""

from prometheus_client import Counter, Gauge, Histogram

RESOLUTION_COUNT = Counter(
    "khs_resolutions_total",
    "Total resolutions by trigger and outcome",
    ["trigger", "outcome"],
)

RESOLUTION_DURATION = Histogram(
    "khs_resolution_duration_seconds",
    "Name lookup plus state push duration in seconds",
    ["trigger"],
)

ENDPOINTS = Gauge(
    "khs_endpoints",
    "Number of endpoints in the last pushed state",
    ["target"],
)

ACTIVE_RESOLVERS = Gauge(
    "khs_active_resolvers",
    "Number of resolvers with a running refresh loop",
)
