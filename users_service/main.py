import time
import logging
from contextlib import ExitStack, asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from opentelemetry.sdk.trace import TracerProvider
from sqlalchemy import text
from sqlalchemy.engine import Engine

from .config import Settings
from .infrastructure.db import DataAccessError, SqlExecutor, build_engine
from .infrastructure.metrics import (
    metrics_endpoint,
    http_requests_total,
    http_request_duration_seconds
)
from .infrastructure.models import metadata
from .infrastructure.tracing import build_tracer_provider
from .interfaces.http.routers import trace as trace_router

VERSION = "0.1.0"

logger = structlog.get_logger()


def configure_logging(level: str) -> None:
    """Настройка структурированного логирования"""
    log_level = getattr(logging, level.upper(), logging.INFO)
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def create_app(
    settings: Settings | None = None,
    engine: Engine | None = None,
    tracer_provider: TracerProvider | None = None,
) -> FastAPI:
    """Собирает приложение.

    Engine и tracer provider создаются один раз при старте и передаются
    в SqlExecutor явно. Переданные снаружи объекты приложение не закрывает.
    """
    settings = settings or Settings()
    configure_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting users service", version=VERSION)
        # Закрываем только то, что создали сами, в том числе при ошибке старта
        with ExitStack() as owned:
            db_engine = engine
            if db_engine is None:
                db_engine = build_engine(settings)
                owned.callback(db_engine.dispose)
            provider = tracer_provider
            if provider is None:
                provider = build_tracer_provider(settings)
                owned.callback(provider.shutdown)

            if settings.CREATE_SCHEMA:
                metadata.create_all(bind=db_engine)
            with db_engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("Database connection established", dialect=db_engine.dialect.name)

            app.state.executor = SqlExecutor(db_engine, provider.get_tracer(__name__, VERSION))
            yield
        logger.info("Users service stopped")

    app = FastAPI(title="Users Service", version=VERSION, lifespan=lifespan)

    # Добавляем middleware для правильной кодировки и метрик
    @app.middleware("http")
    async def add_charset_header(request: Request, call_next):
        start_time = time.time()
        method = request.method
        path = request.url.path

        response = await call_next(request)

        if response.headers.get("content-type", "").startswith("application/json"):
            response.headers["content-type"] = "application/json; charset=utf-8"

        # Метрики
        duration = time.time() - start_time
        status_code = response.status_code
        http_requests_total.labels(method=method, endpoint=path, status=status_code).inc()
        http_request_duration_seconds.labels(method=method, endpoint=path).observe(duration)

        # Логирование
        logger.info(
            "http_request",
            method=method,
            path=path,
            status_code=status_code,
            duration_ms=round(duration * 1000, 2)
        )

        return response

    @app.exception_handler(DataAccessError)
    async def data_access_error_handler(request: Request, exc: DataAccessError):
        logger.error("data_access_failure", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=500, content={"detail": "Data access failure"})

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.get("/metrics")
    def metrics():
        """Prometheus metrics endpoint"""
        return metrics_endpoint()

    app.include_router(trace_router.router)
    return app


app = create_app()
