import asyncio
import logging
import time
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import settings
from app.metrics.prometheus import request_timeouts, track_request

log = logging.getLogger(__name__)


def request_timeout(request):
    return getattr(request.app.state, 'request_timeout_seconds', settings.request_timeout_seconds)


class DeadlineRoute(APIRoute):
    """Route class that runs the handler, dependencies included, under a deadline.

    The handler runs in the request task, so expiry cancels it together with
    whatever store call it is awaiting. The client then gets 504.
    """

    def get_route_handler(self):
        original_route_handler = super().get_route_handler()

        async def deadline_route_handler(request):
            timeout = request_timeout(request)
            try:
                return await asyncio.wait_for(original_route_handler(request), timeout=timeout)
            except asyncio.TimeoutError:
                request_timeouts.inc()
                log.warning(f"{request.method} {request.url.path} exceeded {timeout}s deadline, handler cancelled")
                return JSONResponse(status_code=504, content={'detail': 'Request timed out'})

        return deadline_route_handler


def _endpoint(request):
    # The router stores the matched route in the shared scope.
    return getattr(request.scope.get('route'), 'path', request.url.path)


class RequestMetricsMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, log_requests=False):
        super().__init__(app)
        self.log_requests = log_requests

    async def dispatch(self, request, call_next):
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        track_request(request.method, _endpoint(request), response.status_code, process_time)
        response.headers['X-Process-Time'] = f"{process_time:.3f}"
        if self.log_requests:
            log.info(f"{request.method} {request.url.path} - {response.status_code} - Time: {process_time:.3f}s")
        return response
