from __future__ import annotations

from prometheus_client import Counter, Histogram

analyze_requests_total = Counter(
    "pricescan_analyze_requests_total",
    "Total image analyze requests by response policy and outcome",
    ["policy", "outcome"],
)

analyze_latency_seconds = Histogram(
    "pricescan_analyze_latency_seconds",
    "Latency of image analyze requests in seconds",
    ["policy"],
)

upstream_tokens_total = Counter(
    "pricescan_upstream_tokens_total",
    "Tokens consumed by vision model calls",
    ["direction"],
)
