"""FastAPI application factory"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from loyalty_gateway.api.middleware import RequestIDMiddleware, MetricsMiddleware
from loyalty_gateway.api.dependencies import get_request_id
from loyalty_gateway.api.v1 import auth, orders, balance
from loyalty_gateway.accrual.watcher import build_watcher
from loyalty_gateway.domain.exceptions import StorageError
from loyalty_gateway.infrastructure.database.session import SessionLocal, engine, init_db
from loyalty_gateway.infrastructure.database.storage import DatabaseStorage
from loyalty_gateway.infrastructure.observability.logging import setup_logging
from loyalty_gateway.config import settings

# Setup structured logging
setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: database check + accrual watcher. Shutdown: stop the watcher."""
    # Connectivity or schema failures here abort startup
    init_db(engine)

    watcher = None
    if settings.accrual_watcher_enabled:
        watcher = build_watcher(settings, DatabaseStorage(SessionLocal))
        await watcher.start()
    app.state.accrual_watcher = watcher

    try:
        yield
    finally:
        if watcher:
            await watcher.stop()


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Loyalty Gateway",
        description="Loyalty order accrual and points balance service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        logging.error(f"Storage error: {exc}", extra={"request_id": get_request_id(request)})
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(auth.router, prefix="/api/user", tags=["auth"])
    app.include_router(orders.router, prefix="/api/user", tags=["orders"])
    app.include_router(balance.router, prefix="/api/user", tags=["balance"])

    return app


app = create_app()
