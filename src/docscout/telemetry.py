"""OpenTelemetry tracing for the DocScout API.

Tracing is off unless ``OTEL_ENABLED=true`` and an OTLP endpoint is set.
The packages live in the optional ``telemetry`` extra and are imported
lazily, so the service runs without them.
"""

import logging
import os

logger = logging.getLogger(__name__)

OTEL_ENABLED = os.getenv("OTEL_ENABLED", "false").lower() == "true"
OTEL_SERVICE_NAME = os.getenv("OTEL_SERVICE_NAME", "docscout")
OTEL_EXPORTER_OTLP_ENDPOINT = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "")


def init_telemetry(app=None) -> None:
    """Install a TracerProvider with an OTLP gRPC exporter and instrument ``app``."""
    if not OTEL_ENABLED:
        logger.info("OpenTelemetry tracing disabled (OTEL_ENABLED=false)")
        return

    if not OTEL_EXPORTER_OTLP_ENDPOINT:
        logger.warning("OTEL_ENABLED=true but OTEL_EXPORTER_OTLP_ENDPOINT not set; tracing stays off")
        return

    try:
        from opentelemetry import trace
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
        from opentelemetry.instrumentation.starlette import StarletteInstrumentor
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
        from opentelemetry.semconv.resource import ResourceAttributes

        resource = Resource.create(
            {
                ResourceAttributes.SERVICE_NAME: OTEL_SERVICE_NAME,
                ResourceAttributes.DEPLOYMENT_ENVIRONMENT: os.getenv("ENVIRONMENT", "development"),
            }
        )
        provider = TracerProvider(resource=resource)
        provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=OTEL_EXPORTER_OTLP_ENDPOINT, insecure=True))
        )
        trace.set_tracer_provider(provider)

        if app is not None:
            # FastAPI is a Starlette app
            StarletteInstrumentor.instrument_app(app)
        logger.info(f"OpenTelemetry initialized: service={OTEL_SERVICE_NAME}, endpoint={OTEL_EXPORTER_OTLP_ENDPOINT}")

    except ImportError as e:
        logger.error(f"OpenTelemetry packages not installed: {e}. Install with: pip install 'docscout[telemetry]'")
    except Exception as e:
        logger.error(f"Failed to initialize OpenTelemetry: {e}")


def shutdown_telemetry() -> None:
    if not OTEL_ENABLED:
        return

    try:
        from opentelemetry import trace

        provider = trace.get_tracer_provider()
        if hasattr(provider, "shutdown"):
            provider.shutdown()
            logger.info("OpenTelemetry tracer provider shut down")
    except Exception as e:
        logger.warning(f"Error shutting down OpenTelemetry: {e}")
