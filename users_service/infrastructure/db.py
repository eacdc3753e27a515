import re
import time
from contextlib import contextmanager
from typing import Any, Callable, Mapping, TypeVar

from opentelemetry.trace import Tracer
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, RowMapping
from sqlalchemy.exc import SQLAlchemyError

from ..config import Settings
from .metrics import db_queries_total, db_query_duration_seconds
from .tracing import db_span

T = TypeVar("T")

_TABLE_RE = re.compile(r"\b(?:FROM|INTO|UPDATE)\s+([\w.\"]+)", re.IGNORECASE)


class DataAccessError(Exception):
    """Любой сбой доступа к данным: соединение, SQL, ограничения, маппинг строк."""


def build_engine(settings: Settings) -> Engine:
    url = settings.DATABASE_URL
    if url.startswith("sqlite"):
        return create_engine(
            url,
            pool_pre_ping=True,
            connect_args={"check_same_thread": False},
            echo=False,
        )

    # Добавляем параметры кодировки для PostgreSQL
    connect_args = {}
    if url.startswith("postgresql"):
        connect_args = {"client_encoding": "utf8"}

    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        connect_args=connect_args,
        echo=False,
    )


def describe_statement(sql: str) -> tuple[str, str]:
    """Возвращает (операция, таблица), например ("SELECT", "users")."""
    parts = sql.split(None, 1)
    operation = parts[0].upper() if parts else ""
    match = _TABLE_RE.search(sql)
    table = match.group(1).replace('"', "") if match else ""
    return operation, table


class SqlExecutor:
    """Общий исполнитель SQL поверх пула соединений.

    Один экземпляр на процесс, разделяется всеми запросами; синхронизацию
    обеспечивает пул SQLAlchemy.
    """

    def __init__(self, engine: Engine, tracer: Tracer):
        self.engine = engine
        self.tracer = tracer

    def query(
        self,
        sql: str,
        row_mapper: Callable[[RowMapping], T],
        params: Mapping[str, Any] | None = None,
    ) -> list[T]:
        operation, table = describe_statement(sql)
        with self._observe(sql, operation, table) as span:
            try:
                with self.engine.connect() as conn:
                    result = conn.execute(text(sql), dict(params or {}))
                    rows = [row_mapper(row) for row in result.mappings()]
            except SQLAlchemyError as e:
                raise DataAccessError(f"{operation} {table} failed: {e}") from e
            except (KeyError, TypeError, ValueError) as e:
                raise DataAccessError(f"Cannot map {table} row: {e!r}") from e
            span.set_attribute("db.rows", len(rows))
            return rows

    def update(self, sql: str, params: Mapping[str, Any] | None = None) -> int:
        operation, table = describe_statement(sql)
        with self._observe(sql, operation, table) as span:
            try:
                with self.engine.begin() as conn:
                    result = conn.execute(text(sql), dict(params or {}))
                    count = result.rowcount
            except SQLAlchemyError as e:
                raise DataAccessError(f"{operation} {table} failed: {e}") from e
            span.set_attribute("db.rows", count)
            return count

    @contextmanager
    def _observe(self, sql: str, operation: str, table: str):
        db_queries_total.labels(operation=operation).inc()
        start_time = time.time()
        try:
            with db_span(self.tracer, sql, operation, table, self.engine.dialect.name) as span:
                yield span
        finally:
            db_query_duration_seconds.labels(operation=operation).observe(time.time() - start_time)
