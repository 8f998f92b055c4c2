"""Prometheus metrics for score distribution, anomalies and Record Store health"""

from prometheus_client import Counter, Histogram

from credibility_gateway.domain.models import CredibilityScore

# Scoring metrics
score_counter = Counter(
    "credibility_scores_total",
    "Total credibility scores computed",
    ["tier"],  # 0 | 1 | 2 | 3
)

total_score_histogram = Histogram(
    "credibility_total_score",
    "Distribution of composite credibility scores",
    buckets=[10, 20, 30, 40, 50, 60, 70, 80, 90, 100],
)

anomaly_counter = Counter(
    "credibility_anomalies_total",
    "Anomaly findings by type",
    ["type", "severity"],
)

# Record Store metrics
record_store_fetch_failures_counter = Counter(
    "record_store_fetch_failures_total",
    "Failed Record Store calls",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_score(score: CredibilityScore) -> None:
    """Record score metrics for monitoring tier distribution and fraud signals"""
    score_counter.labels(tier=str(int(score.trust_tier.tier))).inc()
    total_score_histogram.observe(score.total_score)

    for finding in score.anomalies:
        anomaly_counter.labels(type=finding.type.value, severity=finding.severity.value).inc()
