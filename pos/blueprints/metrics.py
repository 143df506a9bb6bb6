"""
Prometheus metrics for the till service.

HTTP traffic per endpoint plus checkout outcomes, commit latency and sale
amounts. /metrics is unauthenticated: expose it on the internal network only.
"""
import os
import time

from flask import Blueprint, Response, request, g
from prometheus_client import Counter, Histogram, CollectorRegistry, CONTENT_TYPE_LATEST, REGISTRY
from prometheus_client import generate_latest, multiprocess

metrics_bp = Blueprint('metrics', __name__)

# Gunicorn workers share samples through PROMETHEUS_MULTIPROC_DIR
MULTIPROCESS_MODE = os.environ.get('PROMETHEUS_MULTIPROC_DIR') is not None

if MULTIPROCESS_MODE:
    registry = CollectorRegistry()
    multiprocess.MultiProcessCollector(registry)
else:
    registry = REGISTRY

# Collectors register on the default registry unless samples go to files
_REGISTER = None if MULTIPROCESS_MODE else registry

http_requests_total = Counter(
    'pos_http_requests_total',
    'Till API requests',
    ['method', 'endpoint', 'http_status'],
    registry=_REGISTER
)

http_request_duration_seconds = Histogram(
    'pos_http_request_duration_seconds',
    'Till API latency in seconds',
    ['method', 'endpoint'],
    registry=_REGISTER,
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0)
)

# outcome: committed, insufficient_stock, persistence_error, rejected
checkouts_total = Counter(
    'pos_checkouts_total',
    'Checkout attempts by outcome',
    ['outcome'],
    registry=_REGISTER
)

checkout_duration_seconds = Histogram(
    'pos_checkout_duration_seconds',
    'Time spent validating and committing a checkout',
    registry=_REGISTER,
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0)
)

sale_total_amount = Histogram(
    'pos_sale_total_amount',
    'Grand total of committed sales',
    ['payment_method'],
    registry=_REGISTER,
    buckets=(50, 100, 250, 500, 1000, 2500, 5000, 10000)
)


def setup_metrics_instrumentation(app):
    """Time every request and count it by endpoint and status."""

    @app.before_request
    def start_request_timer():
        g._request_started_at = time.perf_counter()

    @app.after_request
    def record_request(response):
        started = g.pop('_request_started_at', None)
        if started is None:
            return response
        endpoint = request.endpoint or 'unknown'
        try:
            http_request_duration_seconds.labels(request.method, endpoint).observe(time.perf_counter() - started)
            http_requests_total.labels(request.method, endpoint, response.status_code).inc()
        except ValueError as e:
            app.logger.warning(f"[METRICS] not recorded for {endpoint}: {e}")
        return response


@metrics_bp.route('/metrics')
def metrics():
    """Prometheus exposition format."""
    return Response(generate_latest(registry), mimetype=CONTENT_TYPE_LATEST)
