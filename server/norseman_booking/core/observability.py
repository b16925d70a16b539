"""Observability setup for OpenTelemetry, metrics, and structured logging."""

import logging

import structlog
from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest

from .config import settings

SERVICE_NAME = "norseman-booking-api"
SERVICE_VERSION = "1.0.0"

# Prometheus metrics
REGISTRY = CollectorRegistry()

BOOKINGS_CREATED = Counter(
    "bookings_created_total",
    "Bookings created, by entry point",
    ["source"],
    registry=REGISTRY
)

PAYMENTS_CONFIRMED = Counter(
    "booking_payments_confirmed_total",
    "Bookings moved to betalt by the payment webhook",
    registry=REGISTRY
)

BOOKINGS_OVERBOOKED = Counter(
    "bookings_overbooked_total",
    "Payment confirmations that pushed confirmed seats above tour capacity",
    registry=REGISTRY
)

CAPACITY_REJECTIONS = Counter(
    "booking_capacity_rejections_total",
    "Public bookings rejected at write time for lack of seats",
    ["reason"],
    registry=REGISTRY
)

WAITLIST_JOINS = Counter(
    "waitlist_joins_total",
    "New waitlist entries",
    registry=REGISTRY
)

WAITLIST_PROMOTIONS = Counter(
    "waitlist_promotions_total",
    "Waitlist entries promoted to held reservations",
    registry=REGISTRY
)

RESERVATIONS_EXPIRED = Counter(
    "waitlist_reservations_expired_total",
    "Held reservations deleted by the expiry sweep",
    registry=REGISTRY
)

SWEEP_RUNS = Counter(
    "expiry_sweep_runs_total",
    "Expiry sweep invocations",
    ["outcome"],
    registry=REGISTRY
)

NOTIFICATION_FAILURES = Counter(
    "notification_failures_total",
    "Emails that could not be delivered",
    registry=REGISTRY
)

SEATS_AVAILABLE = Gauge(
    "tour_seats_available",
    "Last recomputed seats_available per tour",
    ["tour_id"],
    registry=REGISTRY
)


def setup_structured_logging():
    """Configure structured logging with structlog."""

    def add_trace_context(logger, method_name, event_dict):
        """Add trace context to log events."""
        span = trace.get_current_span()
        if span and span.is_recording():
            ctx = span.get_span_context()
            event_dict["trace_id"] = format(ctx.trace_id, "032x")
            event_dict["span_id"] = format(ctx.span_id, "016x")
        return event_dict

    structlog.configure(
        processors=[
            # request_id is bound per request by RequestIDMiddleware
            structlog.contextvars.merge_contextvars,
            add_trace_context,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level)
        ),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _resource() -> Resource:
    return Resource.create({
        "service.name": SERVICE_NAME,
        "service.version": SERVICE_VERSION,
        "environment": settings.environment,
    })


def setup_tracing():
    """Setup OpenTelemetry tracing."""
    provider = TracerProvider(resource=_resource())

    if settings.otlp_endpoint:
        provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otlp_endpoint))
        )

    trace.set_tracer_provider(provider)
    return trace.get_tracer(__name__)


def setup_metrics():
    """Setup OpenTelemetry metrics export (Prometheus is always on)."""
    if settings.otlp_endpoint:
        reader = PeriodicExportingMetricReader(
            exporter=OTLPMetricExporter(endpoint=settings.otlp_endpoint),
            export_interval_millis=60000,
        )
        metrics.set_meter_provider(MeterProvider(resource=_resource(), metric_readers=[reader]))

    return metrics.get_meter(__name__)


def instrument_fastapi(app):
    """Instrument FastAPI with OpenTelemetry."""
    FastAPIInstrumentor.instrument_app(app)


def instrument_sqlalchemy(engine):
    """Instrument the booking store engine with OpenTelemetry."""
    SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)


class MetricsCollector:
    """Collector for business metrics."""

    @staticmethod
    def record_booking_created(source: str):
        BOOKINGS_CREATED.labels(source=source).inc()

    @staticmethod
    def record_payment_confirmed():
        PAYMENTS_CONFIRMED.inc()

    @staticmethod
    def record_overbooking():
        BOOKINGS_OVERBOOKED.inc()

    @staticmethod
    def record_capacity_rejection(sold_out: bool):
        CAPACITY_REJECTIONS.labels(reason="sold_out" if sold_out else "insufficient").inc()

    @staticmethod
    def record_waitlist_join():
        WAITLIST_JOINS.inc()

    @staticmethod
    def record_promotion():
        WAITLIST_PROMOTIONS.inc()

    @staticmethod
    def record_reservations_expired(count: int):
        if count:
            RESERVATIONS_EXPIRED.inc(count)

    @staticmethod
    def record_sweep(outcome: str):
        SWEEP_RUNS.labels(outcome=outcome).inc()

    @staticmethod
    def record_notification_failure():
        NOTIFICATION_FAILURES.inc()

    @staticmethod
    def set_seats_available(tour_id: str, seats: int):
        SEATS_AVAILABLE.labels(tour_id=tour_id).set(seats)


def get_prometheus_metrics():
    """Get Prometheus metrics for the /metrics endpoint."""
    return generate_latest(REGISTRY)


# Global metrics collector instance
metrics_collector = MetricsCollector()


def get_logger(name: str):
    """Get a structlog logger bound to the given component name."""
    return structlog.get_logger(name).bind(component=name)
