"""Prometheus metrics for API service.

Exposes key metrics for monitoring:
- Request counts by endpoint and status
- Request duration histograms
- Invoice upload metrics
- Conversion batch metrics

FX lookup metrics live with the rate resolver (services.fx.resolver).

Based on Prometheus best practices:
https://prometheus.io/docs/practices/naming/
"""

from prometheus_client import Counter, Histogram, generate_latest
from prometheus_client.openmetrics.exposition import CONTENT_TYPE_LATEST

# Request metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# Upload metrics
invoice_uploads_total = Counter(
    "invoice_uploads_total",
    "Total invoice CSV uploads",
    ["status"],  # success, rejected
)

invoice_upload_size_bytes = Histogram(
    "invoice_upload_size_bytes",
    "Invoice CSV upload size in bytes",
    buckets=(1024, 10240, 102400, 1048576, 5242880),  # 1KB to 5MB
)

# Conversion metrics
invoices_processed_total = Counter(
    "invoices_processed_total",
    "Total invoice rows converted",
)

conversion_batch_duration_seconds = Histogram(
    "conversion_batch_duration_seconds",
    "FX conversion batch duration in seconds",
    buckets=(0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0),
)


def get_metrics() -> tuple[bytes, str]:
    """Generate Prometheus metrics in text format.

    Returns:
        Tuple of (metrics bytes, content type)
    """
    return generate_latest(), CONTENT_TYPE_LATEST
