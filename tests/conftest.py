import pytest
import os
import sys

CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.dirname(CURRENT_DIR)
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from users_service.infrastructure.db import SqlExecutor
from users_service.infrastructure.models import metadata, users
from users_service.infrastructure.repositories import UserRepository

@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch):
    """Настройка тестового окружения"""
    monkeypatch.setenv("DATABASE_URL", "sqlite://")
    monkeypatch.setenv("TRACING_EXPORTER", "none")

@pytest.fixture
def engine():
    # Тестовая БД в памяти, одно соединение на все потоки
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    metadata.create_all(bind=test_engine)
    yield test_engine
    metadata.drop_all(bind=test_engine)
    test_engine.dispose()

@pytest.fixture
def span_exporter():
    return InMemorySpanExporter()

@pytest.fixture
def tracer_provider(span_exporter):
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    yield provider
    provider.shutdown()

@pytest.fixture
def executor(engine, tracer_provider):
    return SqlExecutor(engine, tracer_provider.get_tracer("tests"))

@pytest.fixture
def repo(executor):
    return UserRepository(executor)

@pytest.fixture
def insert_users(engine):
    """Вставка строк напрямую, минуя репозиторий"""
    def _insert(*rows):
        with engine.begin() as conn:
            conn.execute(users.insert(), [dict(id=r[0], name=r[1], email=r[2]) for r in rows])
    return _insert
