from contextlib import contextmanager
from typing import Iterator

from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import Span, SpanKind, Tracer

from ..config import Settings

EXPORTERS = ("none", "console", "otlp")


def build_tracer_provider(settings: Settings) -> TracerProvider:
    """Провайдер трейсов для процесса. Глобальный провайдер OpenTelemetry не трогаем."""
    exporter = settings.TRACING_EXPORTER.lower()
    if exporter not in EXPORTERS:
        raise ValueError(f"Unknown TRACING_EXPORTER {settings.TRACING_EXPORTER!r}, expected one of {EXPORTERS}")

    provider = TracerProvider(resource=Resource.create({"service.name": settings.SERVICE_NAME}))
    if exporter == "console":
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    elif exporter == "otlp":
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.OTLP_ENDPOINT)))
    return provider


def span_name(operation: str, table: str) -> str:
    # "SELECT users", "INSERT users"
    return f"{operation} {table}".strip()


@contextmanager
def db_span(tracer: Tracer, statement: str, operation: str, table: str, system: str) -> Iterator[Span]:
    """Один span на один SQL-запрос.

    При исключении span получает событие exception и статус ERROR,
    закрывается, а исключение пробрасывается дальше.
    """
    attributes = {
        "db.system": system,
        "db.statement": statement,
        "db.operation": operation,
        "db.sql.table": table,
    }
    with tracer.start_as_current_span(
        span_name(operation, table),
        kind=SpanKind.CLIENT,
        attributes=attributes,
    ) as span:
        yield span
