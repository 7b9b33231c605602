"""Observability module for the product similarity search engine.

Provides structured logging, request correlation and metrics.
"""

from .logging_config import configure_logging, JSONFormatter, RequestIDFilter
from .metrics import (
    embeddings_generated_total,
    embedding_run_duration_seconds,
    search_requests_total,
    search_results_count,
)
from .request_id import (
    request_id_var,
    get_request_id,
    set_request_id,
    generate_request_id,
    request_context,
)

__all__ = [
    # Logging
    "configure_logging",
    "JSONFormatter",
    "RequestIDFilter",
    # Metrics
    "embeddings_generated_total",
    "embedding_run_duration_seconds",
    "search_requests_total",
    "search_results_count",
    # Request ID
    "request_id_var",
    "get_request_id",
    "set_request_id",
    "generate_request_id",
    "request_context",
]
