"""Structured logging, OpenTelemetry tracing and Prometheus metrics."""

import logging

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest
import structlog

from .config import settings

SERVICE_NAME = "travelbook-api"
SERVICE_VERSION = "1.0.0"

BOOKING_PRICE_BUCKETS = (100, 250, 500, 1000, 2500, 5000, 10000, 25000)

_tracing_configured = False


def _trace_ids(logger, method_name, event_dict):
    span = trace.get_current_span()
    if span.is_recording():
        context = span.get_span_context()
        event_dict["trace_id"] = f"{context.trace_id:032x}"
        event_dict["span_id"] = f"{context.span_id:016x}"
    return event_dict


def setup_structured_logging():
    """
    Configure structlog for the process.

    Events carry contextvars (the request id bound by the middleware),
    the active trace and span ids, an ISO timestamp and the level.
    Development renders for the console; other environments emit JSON lines.
    """
    renderer = structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _trace_ids,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(settings.log_level)),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str):
    """Return a structlog logger; keyword arguments become event fields."""
    return structlog.get_logger(name)


def setup_tracing(app_name: str = SERVICE_NAME):
    """Install the global tracer provider once; spans are exported only if OTLP_ENDPOINT is set."""
    global _tracing_configured

    if not _tracing_configured:
        provider = TracerProvider(
            resource=Resource.create(
                {
                    "service.name": app_name,
                    "service.version": SERVICE_VERSION,
                    "deployment.environment": settings.environment,
                }
            )
        )
        if settings.otlp_endpoint:
            provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otlp_endpoint)))
        trace.set_tracer_provider(provider)
        _tracing_configured = True

    return trace.get_tracer(app_name)


def instrument_fastapi(app):
    FastAPIInstrumentor.instrument_app(app)


def instrument_sqlalchemy(engine):
    # The instrumentor hooks the sync engine underneath the async facade
    SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)


class MetricsCollector:
    """
    Request and booking metrics kept in a private Prometheus registry.

    Request metrics are labelled by route template, never by raw path,
    so label cardinality stays bounded.
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        self.registry = registry or CollectorRegistry()
        r = self.registry

        self.requests = Counter(
            "http_requests_total", "HTTP requests served", ["method", "endpoint", "status_code"], registry=r
        )
        self.request_seconds = Histogram(
            "http_request_duration_seconds", "HTTP request latency", ["method", "endpoint"], registry=r
        )
        self.registrations = Counter("users_registered_total", "Accounts created", ["method"], registry=r)
        self.logins = Counter("user_logins_total", "Successful logins", ["method"], registry=r)
        self.packages_created = Counter("packages_created_total", "Packages created", registry=r)
        self.packages_deleted = Counter("packages_deleted_total", "Packages deleted", registry=r)
        self.bookings_created = Counter("bookings_created_total", "Bookings created", registry=r)
        self.status_changes = Counter(
            "booking_status_changes_total", "Explicit booking status changes", ["status"], registry=r
        )
        self.booking_price = Histogram(
            "booking_total_price", "Booking total prices", buckets=BOOKING_PRICE_BUCKETS, registry=r
        )

    def record_request(self, method: str, endpoint: str, status_code: int, duration: float):
        self.requests.labels(method=method, endpoint=endpoint, status_code=str(status_code)).inc()
        self.request_seconds.labels(method=method, endpoint=endpoint).observe(duration)

    def record_registration(self, method: str):
        """`method` is "password" or "google"."""
        self.registrations.labels(method=method).inc()

    def record_login(self, method: str):
        self.logins.labels(method=method).inc()

    def record_package_created(self):
        self.packages_created.inc()

    def record_package_deleted(self):
        self.packages_deleted.inc()

    def record_booking_created(self, total_price: float):
        self.bookings_created.inc()
        self.booking_price.observe(total_price)

    def record_booking_status_change(self, status: str):
        self.status_changes.labels(status=status).inc()

    def render(self) -> bytes:
        """Exposition-format text for `/metrics`."""
        return generate_latest(self.registry)


metrics_collector = MetricsCollector()


def get_prometheus_metrics() -> bytes:
    return metrics_collector.render()
