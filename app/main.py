import logging
import json
import uvicorn
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from app.api import api_router
from app.core.config import settings
from app.core.exceptions import (
    DuplicateRelationshipError,
    NotFoundError,
    SelfReferenceError,
    StoreError,
    ValidationError,
)
from app.db import engine, init_models
from app.metrics.prometheus import metrics_endpoint
from app.middleware.deadline import RequestMetricsMiddleware
from app.services.presence import PresenceRegistry


class JsonFormatter(logging.Formatter):
    def format(self, record):
        log_record = {'level': record.levelname, 'time': self.formatTime(record, self.datefmt), 'name': record.name, 'message': record.getMessage()}
        if record.exc_info:
            log_record['exc_info'] = self.formatException(record.exc_info)
        return json.dumps(log_record)


handler = logging.StreamHandler()
handler.setFormatter(JsonFormatter())
logging.basicConfig(level=settings.log_level, handlers=[handler])
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):

    # Startup
    logger.info("Starting application...")
    await init_models(engine)
    app.state.presence = PresenceRegistry(queue_size=settings.presence_queue_size)
    app.state.request_timeout_seconds = settings.request_timeout_seconds

    yield

    # Shutdown
    logger.info("Shutting down application...")
    await app.state.presence.clear()
    await engine.dispose()
    logger.info("Closed database connections")


app = FastAPI(title='Social Notification API', lifespan=lifespan)
app.add_middleware(RequestMetricsMiddleware, log_requests=False)
app.add_middleware(CORSMiddleware, allow_origins=settings.cors_origins, allow_credentials=True, allow_methods=['*'], allow_headers=['*'])
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.include_router(api_router, prefix='/api')
app.add_api_route('/metrics', metrics_endpoint, methods=['GET'], include_in_schema=False)


def _error(status_code, exc):
    return JSONResponse(status_code=status_code, content={'detail': str(exc)})


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return _error(400, exc)


@app.exception_handler(SelfReferenceError)
async def self_reference_error_handler(request: Request, exc: SelfReferenceError):
    return _error(400, exc)


@app.exception_handler(DuplicateRelationshipError)
async def duplicate_relationship_error_handler(request: Request, exc: DuplicateRelationshipError):
    return _error(400, exc)


@app.exception_handler(NotFoundError)
async def not_found_error_handler(request: Request, exc: NotFoundError):
    return _error(404, exc)


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error(f"Store error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={'detail': 'Internal server error'})


@app.get('/')
async def root():
    return {'message': 'Welcome to the Social Notification API'}


if __name__ == '__main__':
    uvicorn.run('app.main:app', host='0.0.0.0', port=8000, reload=True)
