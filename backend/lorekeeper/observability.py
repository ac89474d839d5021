"""
Observability instrumentation for Lorekeeper.

1. **Structured Logging**
   - JSON log lines via python-json-logger, with every ``extra={...}`` field
   - OpenTelemetry trace context (trace_id, span_id) when a span is recording
   - Plain text when ``TESTING=true`` for readable pytest output

2. **Prometheus Metrics**
   - HTTP request counter, duration histogram and in-flight gauge
   - Exposed at /metrics for scraping

3. **OpenTelemetry Tracing** (opt-in via ``OTEL_ENABLED``)
   - Request spans exported over OTLP gRPC
   - Health and metrics endpoints are not traced

Environment Variables:
    OTEL_SERVICE_NAME: Service name for traces and logs (default: "lorekeeper")
    OTEL_EXPORTER_OTLP_ENDPOINT: OTLP collector (default: "http://tempo:4317")
    TESTING: Set to "true" for plain-text logs and no exporter

Usage:
    from lorekeeper.observability import setup_observability

    app = FastAPI()
    setup_observability(app)
"""

import logging
import os
import time
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import FastAPI, Request, Response
from opentelemetry import trace
from opentelemetry.baggage.propagation import W3CBaggagePropagator
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.propagate import set_global_textmap
from opentelemetry.propagators.composite import CompositePropagator
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest
from pythonjsonlogger import jsonlogger

from lorekeeper.core.config import settings

# =============================================================================
# Configuration
# =============================================================================

SERVICE_NAME_VAL = os.getenv("OTEL_SERVICE_NAME", "lorekeeper")

OTLP_ENDPOINT = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://tempo:4317")

IS_TESTING = os.getenv("TESTING", "false").lower() == "true"

EXCLUDED_TRACE_ENDPOINTS = frozenset({
    "/api/v1/health",
    "/api/v1/ready",
    "/metrics",
})


# =============================================================================
# Logging Configuration
# =============================================================================

# Standard LogRecord attributes plus the fields this formatter sets itself
RESERVED_LOG_ATTRS = frozenset({
    "args", "asctime", "created", "exc_info", "exc_text", "filename",
    "funcName", "levelname", "levelno", "lineno", "module", "msecs",
    "message", "msg", "name", "pathname", "process", "processName",
    "relativeCreated", "stack_info", "thread", "threadName", "taskName",
    "trace_id", "span_id", "service",
})


class StructuredJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter adding service name, trace context and extra fields.

    Example output:
        {"timestamp": "2026-01-15T10:30:00Z", "level": "ERROR",
         "logger": "lorekeeper.services.neo4j_tenant",
         "message": "Neo4j query execution failed", "service": "lorekeeper",
         "error_class": "ServiceUnavailable"}
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs, timestamp=True)
        self.service_name = SERVICE_NAME_VAL

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["service"] = self.service_name

        span = trace.get_current_span()
        if span and span.is_recording():
            ctx = span.get_span_context()
            log_record["trace_id"] = format(ctx.trace_id, "032x")
            log_record["span_id"] = format(ctx.span_id, "016x")

        for key, value in record.__dict__.items():
            if key not in RESERVED_LOG_ATTRS and not key.startswith("_"):
                if key not in log_record:
                    log_record[key] = value


def _configure_logging() -> None:
    """Install the JSON handler on the root logger (plain text under test)."""
    level = logging.DEBUG if settings.DEBUG and not IS_TESTING else logging.INFO

    if IS_TESTING:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            force=True,
        )
        return

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(StructuredJsonFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    # The driver logs every pool event at DEBUG
    logging.getLogger("neo4j").setLevel(logging.WARNING)


_configure_logging()


# =============================================================================
# OpenTelemetry Tracing Setup
# =============================================================================

def _tracing_enabled() -> bool:
    return settings.OTEL_ENABLED and not IS_TESTING


def _create_trace_provider() -> TracerProvider:
    """
    Create a TracerProvider exporting spans over OTLP gRPC.

    BatchSpanProcessor exports in the background and drops spans when the
    collector is unreachable, so requests never wait on it.
    """
    resource = Resource(attributes={SERVICE_NAME: SERVICE_NAME_VAL})
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(
        BatchSpanProcessor(OTLPSpanExporter(endpoint=OTLP_ENDPOINT, insecure=True))
    )
    return provider


if _tracing_enabled():
    trace.set_tracer_provider(_create_trace_provider())
    set_global_textmap(CompositePropagator([
        TraceContextTextMapPropagator(),
        W3CBaggagePropagator(),
    ]))


# =============================================================================
# Prometheus Metrics Definitions
# =============================================================================

http_requests_total = Counter(
    name="http_requests_total",
    documentation="Total number of HTTP requests processed",
    labelnames=["method", "endpoint", "status"]
)

http_request_duration_seconds = Histogram(
    name="http_request_duration_seconds",
    documentation="HTTP request duration in seconds",
    labelnames=["method", "endpoint"]
)

active_requests = Gauge(
    name="active_requests",
    documentation="Number of HTTP requests currently being processed"
)

tracer = trace.get_tracer(__name__)


# =============================================================================
# Setup Function
# =============================================================================

def _endpoint_label(request: Request) -> str:
    """Route template (``/api/v1/moments/{moment_id}``) rather than the raw path.

    Raw paths would create one time series per moment id.
    """
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    return path or request.url.path


def setup_observability(app: FastAPI) -> FastAPI:
    """
    Instrument a FastAPI application.

    Adds the Prometheus metrics middleware and the /metrics endpoint, and
    instruments the app with OpenTelemetry when tracing is enabled.

    Args:
        app: FastAPI application instance to instrument

    Returns:
        The same application, for chaining
    """
    logger = logging.getLogger(__name__)

    if _tracing_enabled():
        FastAPIInstrumentor.instrument_app(
            app,
            excluded_urls=",".join(EXCLUDED_TRACE_ENDPOINTS)
        )

    @app.middleware("http")
    async def metrics_middleware(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        active_requests.inc()
        method = request.method
        started = time.perf_counter()

        try:
            response = await call_next(request)

            # The route is only matched once the request has been handled
            endpoint = _endpoint_label(request)
            http_request_duration_seconds.labels(
                method=method,
                endpoint=endpoint
            ).observe(time.perf_counter() - started)
            http_requests_total.labels(
                method=method,
                endpoint=endpoint,
                status=response.status_code
            ).inc()

            return response
        finally:
            active_requests.dec()

    @app.get(
        "/metrics",
        include_in_schema=False,
        tags=["monitoring"]
    )
    async def get_metrics() -> Response:
        """Prometheus metrics in text exposition format."""
        return Response(
            content=generate_latest(),
            media_type=CONTENT_TYPE_LATEST
        )

    if _tracing_enabled():
        logger.info(
            f"Observability configured for service '{SERVICE_NAME_VAL}' "
            f"(OTLP endpoint: {OTLP_ENDPOINT})"
        )
    else:
        logger.info(f"Observability configured for service '{SERVICE_NAME_VAL}' (tracing disabled)")

    return app
