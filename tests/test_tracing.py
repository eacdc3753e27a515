import pytest
from opentelemetry.trace import SpanKind, StatusCode

from users_service.config import Settings
from users_service.infrastructure.db import DataAccessError
from users_service.infrastructure.tracing import build_tracer_provider, span_name

def test_span_per_select(repo, insert_users, span_exporter):
    """find_all() -> ровно один span "SELECT users" """
    insert_users((1, "Bob", "bob@x.com"), (2, "Carol", "carol@x.com"))
    repo.find_all()

    spans = span_exporter.get_finished_spans()
    assert len(spans) == 1
    span = spans[0]
    assert span.name == "SELECT users"
    assert span.kind == SpanKind.CLIENT
    assert span.attributes["db.system"] == "sqlite"
    assert span.attributes["db.statement"] == "SELECT * FROM users"
    assert span.attributes["db.operation"] == "SELECT"
    assert span.attributes["db.sql.table"] == "users"
    assert span.attributes["db.rows"] == 2
    assert span.status.status_code != StatusCode.ERROR

def test_span_per_insert(repo, span_exporter):
    repo.save("Alice", "alice@example.com")

    spans = span_exporter.get_finished_spans()
    assert [s.name for s in spans] == ["INSERT users"]
    assert spans[0].attributes["db.rows"] == 1

def test_span_on_failure(repo, span_exporter):
    """Ошибка: span закрыт, статус ERROR, есть событие exception"""
    with pytest.raises(DataAccessError):
        repo.save(None, "a@x.com")

    spans = span_exporter.get_finished_spans()
    assert len(spans) == 1
    assert spans[0].status.status_code == StatusCode.ERROR
    assert any(event.name == "exception" for event in spans[0].events)

def test_span_name():
    assert span_name("SELECT", "users") == "SELECT users"
    assert span_name("SELECT", "") == "SELECT"

@pytest.mark.parametrize("exporter", ["none", "console", "otlp", "CONSOLE"])
def test_build_tracer_provider(exporter):
    provider = build_tracer_provider(Settings(TRACING_EXPORTER=exporter, SERVICE_NAME="users-test"))
    try:
        assert provider.resource.attributes["service.name"] == "users-test"
    finally:
        provider.shutdown()

def test_build_tracer_provider_unknown_exporter():
    with pytest.raises(ValueError):
        build_tracer_provider(Settings(TRACING_EXPORTER="zipkin"))
