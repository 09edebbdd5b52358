"""
OpenTelemetry configuration for the jeopardy board.

Sets up tracing and metrics export over OTLP and instruments Django, the
outgoing trivia provider requests and logging.
"""

import os
import base64
import logging
from opentelemetry import trace, metrics
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import ALWAYS_ON
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.instrumentation.django import DjangoInstrumentor
from opentelemetry.instrumentation.requests import RequestsInstrumentor
from opentelemetry.instrumentation.sqlite3 import SQLite3Instrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


def _auth_headers():
    """Basic auth headers for the OTLP collector, if credentials are configured."""
    username = os.getenv("OTEL_EXPORTER_USERNAME")
    password = os.getenv("OTEL_EXPORTER_PASSWORD")
    if not username or not password:
        return None
    auth_b64 = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("utf-8")
    return [("authorization", f"Basic {auth_b64}")]


def setup_opentelemetry():
    """Set up OpenTelemetry tracing and metrics."""

    service_name = os.getenv("OTEL_SERVICE_NAME", "jeopardy-board")
    environment = os.getenv("OTEL_ENVIRONMENT", "development")
    otlp_endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
    insecure = os.getenv("OTEL_EXPORTER_OTLP_INSECURE", "false").lower() in ("1", "true", "yes")
    headers = _auth_headers()

    logger.info(f"OpenTelemetry setup: service={service_name}, env={environment}, otlp={otlp_endpoint}")

    resource = Resource.create({"service.name": service_name, "deployment.environment": environment})
    trace_provider = TracerProvider(sampler=ALWAYS_ON, resource=resource)

    metric_readers = []
    if otlp_endpoint:
        try:
            otlp_trace_exporter = OTLPSpanExporter(endpoint=otlp_endpoint, insecure=insecure, headers=headers)
            trace_provider.add_span_processor(BatchSpanProcessor(otlp_trace_exporter))
        except Exception as e:
            logger.error(f"Failed to create OTLP trace exporter: {e}")

        try:
            otlp_metric_exporter = OTLPMetricExporter(endpoint=otlp_endpoint, insecure=insecure, headers=headers)
            metric_readers.append(PeriodicExportingMetricReader(otlp_metric_exporter))
        except Exception as e:
            logger.error(f"Failed to create OTLP metric exporter: {e}")

    # Set the global providers
    trace.set_tracer_provider(trace_provider)
    metrics.set_meter_provider(MeterProvider(metric_readers=metric_readers, resource=resource))

    tracer = trace.get_tracer(__name__)
    meter = metrics.get_meter(__name__)

    logger.debug("OpenTelemetry setup complete")
    return tracer, meter


def instrument_django():
    """Instrument Django, outgoing requests and logging with OpenTelemetry."""

    DjangoInstrumentor().instrument()

    # Calls to the trivia provider
    RequestsInstrumentor().instrument()

    # Session storage
    try:
        SQLite3Instrumentor().instrument()
    except Exception as e:
        logger.warning(f"Could not instrument sqlite3: {e}")

    LoggingInstrumentor().instrument(
        set_logging_format=True,
        log_level=getattr(logging, os.getenv("OTEL_LOG_LEVEL", "INFO").upper(), logging.INFO)
    )


# Global tracer and meter instances
tracer = None
meter = None


def initialize():
    """Initialize OpenTelemetry globally."""
    global tracer, meter

    if tracer is None:
        tracer, meter = setup_opentelemetry()
        instrument_django()

    return tracer, meter
