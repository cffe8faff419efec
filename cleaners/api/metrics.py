"""
Prometheus metrics.

Request counters and latency histograms for the HTTP surface, plus
per-stage timings (retrieval, embedding, LLM) and chat outcome counters
recorded by the service layer.
"""

from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

from cleaners.config import get_logger

logger = get_logger(__name__)

# ---------------------------------------------------------------------------
# Metric definitions
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "cleaners_requests_total",
    "Total HTTP requests",
    ["endpoint", "method", "status"],
)

REQUEST_DURATION = Histogram(
    "cleaners_request_duration_ms",
    "Request latency in milliseconds",
    ["endpoint"],
    buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000, 30000, 60000),
)

STAGE_DURATION = Histogram(
    "cleaners_stage_duration_seconds",
    "Duration of internal pipeline stages",
    ["stage"],  # retrieval, embedding, llm
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30, 60),
)

CHAT_TURNS = Counter(
    "cleaners_chat_turns_total",
    "Chat turns by outcome",
    ["outcome"],  # completed, failed, rejected
)

RECOMMENDATIONS = Counter(
    "cleaners_recommendations_total",
    "Shop recommendation decisions",
    ["result"],  # recommended, not_triggered, no_location, no_shops
)

FALLBACKS = Counter(
    "cleaners_fallbacks_total",
    "Best-effort stages that degraded to an empty result",
    ["stage"],  # retrieval, shop_lookup, conversation_store
)

ERRORS = Counter(
    "cleaners_errors_total",
    "Errors returned to API callers",
    ["code"],
)


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------

def record_request(endpoint: str, method: str, status: int) -> None:
    """Increment the request counter."""
    REQUEST_COUNT.labels(endpoint=endpoint, method=method, status=str(status)).inc()


def observe_duration(endpoint: str, duration_ms: float) -> None:
    """Record request duration."""
    REQUEST_DURATION.labels(endpoint=endpoint).observe(duration_ms)


def observe_retrieval_duration(seconds: float) -> None:
    STAGE_DURATION.labels(stage="retrieval").observe(seconds)


def observe_embedding_duration(seconds: float) -> None:
    STAGE_DURATION.labels(stage="embedding").observe(seconds)


def observe_llm_duration(seconds: float) -> None:
    STAGE_DURATION.labels(stage="llm").observe(seconds)


def record_chat_turn(outcome: str) -> None:
    """``outcome`` is one of ``completed``, ``failed``, ``rejected``."""
    CHAT_TURNS.labels(outcome=outcome).inc()


def record_recommendation(result: str) -> None:
    RECOMMENDATIONS.labels(result=result).inc()


def record_fallback(stage: str) -> None:
    """Count a best-effort stage that was absorbed into an empty result."""
    FALLBACKS.labels(stage=stage).inc()


def record_error(code: str) -> None:
    ERRORS.labels(code=code).inc()


def metrics_response() -> tuple[bytes, str]:
    """Return (body, content_type) for the /metrics endpoint."""
    return generate_latest(), CONTENT_TYPE_LATEST
