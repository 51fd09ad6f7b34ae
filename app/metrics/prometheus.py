import logging
from prometheus_client import Counter, Gauge, Histogram, generate_latest, CONTENT_TYPE_LATEST

log = logging.getLogger(__name__)
request_count = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status']
)
request_duration = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint']
)
request_timeouts = Counter(
    'request_timeouts_total',
    'Total HTTP requests cancelled by the request deadline'
)
notifications_recorded = Counter(
    'notifications_recorded_total',
    'Notification actions by outcome',
    ['kind', 'outcome']
)
relationship_operations = Counter(
    'relationship_operations_total',
    'Total follow/unfollow operations',
    ['operation', 'status']
)
online_connections = Gauge(
    'online_connections',
    'Open realtime connections'
)


def track_request(method, endpoint, status_code, duration=None):
    request_count.labels(method=method, endpoint=endpoint, status=str(status_code)).inc()
    if duration is not None:
        request_duration.labels(method=method, endpoint=endpoint).observe(duration)


def track_notification(kind, outcome):
    notifications_recorded.labels(kind=kind, outcome=outcome).inc()


def track_relationship_operation(operation, status):
    relationship_operations.labels(operation=operation, status=status).inc()


def get_metrics():
    return generate_latest()


async def metrics_endpoint():
    from fastapi import Response
    metrics = get_metrics()
    return Response(content=metrics, media_type=CONTENT_TYPE_LATEST)
