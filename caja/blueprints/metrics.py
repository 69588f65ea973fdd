"""
Prometheus metrics for the POS.

Request latency/volume per endpoint plus the domain counters (checkouts by
outcome, cash session closes), all on the default registry and served on
/metrics. Restrict that endpoint to the monitoring network.
"""
from flask import Blueprint, Response, request, g
from prometheus_client import Counter, Histogram, Gauge, generate_latest, REGISTRY, CONTENT_TYPE_LATEST
import time

metrics_bp = Blueprint('metrics', __name__)

http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'http_status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request latency in seconds',
    ['method', 'endpoint'],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0)
)

http_requests_in_flight = Gauge(
    'http_requests_in_flight',
    'Requests currently being processed'
)

checkout_total = Counter(
    'caja_checkout_total',
    'Checkout attempts by outcome (completed, replayed or error code)',
    ['outcome']
)

cash_session_close_total = Counter(
    'caja_cash_session_close_total',
    'Cash sessions closed'
)


def setup_metrics_instrumentation(app):
    """Time every request and count it by endpoint and status."""

    @app.before_request
    def start_request_timer():
        g._metrics_started_at = time.perf_counter()
        http_requests_in_flight.inc()

    @app.after_request
    def record_request(response):
        started_at = g.pop('_metrics_started_at', None)
        if started_at is None:
            return response

        endpoint = request.endpoint or 'unknown'
        http_request_duration_seconds.labels(
            method=request.method, endpoint=endpoint
        ).observe(time.perf_counter() - started_at)
        http_requests_total.labels(
            method=request.method, endpoint=endpoint, http_status=response.status_code
        ).inc()
        http_requests_in_flight.dec()
        return response


@metrics_bp.route('/metrics')
def metrics():
    return Response(generate_latest(REGISTRY), mimetype=CONTENT_TYPE_LATEST)
