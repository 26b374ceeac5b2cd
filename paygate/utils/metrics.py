"""
Prometheus-based metrics for production monitoring.
Provides /metrics endpoint for scraping.
"""
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response


# Counters
challenges_issued_total = Counter(
    "challenges_issued_total",
    "Total number of challenges issued",
    ["device_id"],
)

challenge_rejections_total = Counter(
    "challenge_rejections_total",
    "Total challenge consumption failures",
    ["reason"],  # not_found, consumed, mismatch, expired
)

payment_verifications_total = Counter(
    "payment_verifications_total",
    "Total payment verification decisions",
    ["payment_method", "reason"],
)

credentials_issued_total = Counter(
    "credentials_issued_total",
    "Total session credentials issued",
    ["device_id"],
)

device_commands_total = Counter(
    "device_commands_total",
    "Total device commands executed",
    ["command", "status"],
)

chain_rpc_requests_total = Counter(
    "chain_rpc_requests_total",
    "Total chain JSON-RPC requests",
    ["chain", "status"],
)

circuit_breaker_state = Gauge(
    "circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=open)",
    ["name"],
)

# Histograms
chain_rpc_duration_seconds = Histogram(
    "chain_rpc_duration_seconds",
    "Chain JSON-RPC request duration",
    ["chain"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10],
)


# Metrics endpoint router
router = APIRouter()


@router.get("/metrics")
def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint for scraping."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
