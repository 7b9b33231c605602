"""Prometheus metrics for embedding generation and similarity search.

Exposition (HTTP endpoint, push gateway) is left to the hosting process.
"""

from prometheus_client import Counter, Histogram

# Embedding generation metrics
embeddings_generated_total = Counter(
    "catalog_search_embeddings_generated_total",
    "Embedding rows written or skipped",
    ["space", "status"]  # space: text|image, status: stored|skipped
)

embedding_run_duration_seconds = Histogram(
    "catalog_search_embedding_run_duration_seconds",
    "Duration of one embedding generation call",
    ["operation"],  # operation: text|image|bulk_image
    buckets=[0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0]
)

# Search metrics
search_requests_total = Counter(
    "catalog_search_requests_total",
    "Similarity search requests",
    ["search_type", "path", "status"]  # path: primary|fallback|none, status: success|error
)

search_results_count = Histogram(
    "catalog_search_results_count",
    "Number of results returned per search",
    ["search_type"],
    buckets=[0, 1, 2, 5, 10, 20, 50]
)
