"""
OpenTelemetry tracing setup for the agent runtime.

Spans are created through the global OpenTelemetry API, so instrumented
code works unchanged whether or not a ``TelemetryManager`` has installed
an exporting tracer provider.
"""

import logging
from typing import Optional, TYPE_CHECKING

from opentelemetry import trace
from opentelemetry.instrumentation.asyncio import AsyncioInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
    SpanProcessor,
)
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased

if TYPE_CHECKING:
    from agent_runtime.lib.config import ObservabilityConfig


logger = logging.getLogger(__name__)

INSTRUMENTATION_NAME = "agent_runtime"


def get_tracer(name: str = INSTRUMENTATION_NAME) -> trace.Tracer:
    """Get a tracer from the currently installed tracer provider."""
    return trace.get_tracer(name)


class TelemetryManager:
    """Manages OpenTelemetry setup and lifecycle for the runtime."""

    def __init__(self, config: "ObservabilityConfig"):
        self.config = config
        self._initialized = False
        self._provider: Optional[TracerProvider] = None

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def provider(self) -> Optional[TracerProvider]:
        return self._provider

    def initialize(self, set_global: bool = True) -> TracerProvider:
        """Initialize tracing with the configured span exporter.

        Args:
            set_global: Install the provider as the process-wide tracer provider

        Returns:
            The configured TracerProvider
        """
        if self._initialized and self._provider is not None:
            logger.warning("Telemetry already initialized")
            return self._provider

        resource = Resource.create({
            "service.name": self.config.service_name,
            "service.version": self.config.service_version,
            "deployment.environment": self.config.environment,
            **self.config.resource_attributes
        })

        provider = TracerProvider(
            resource=resource,
            sampler=TraceIdRatioBased(self.config.trace_sampling_ratio)
        )
        processor = self._create_span_processor()
        if processor is not None:
            provider.add_span_processor(processor)

        if set_global:
            trace.set_tracer_provider(provider)
            if self.config.auto_instrument:
                self._setup_instrumentation()

        self._provider = provider
        self._initialized = True
        logger.info(f"OpenTelemetry initialized for service: {self.config.service_name} "
                    f"(exporter={self.config.exporter})")
        return provider

    def _create_span_processor(self) -> Optional[SpanProcessor]:
        """Build the span processor for the configured exporter."""
        if self.config.exporter == "none":
            return None

        if self.config.exporter == "console":
            return SimpleSpanProcessor(ConsoleSpanExporter())

        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

        exporter = OTLPSpanExporter(
            endpoint=self.config.otlp_endpoint,
            timeout=self.config.export_timeout
        )
        return BatchSpanProcessor(
            exporter,
            max_export_batch_size=self.config.max_export_batch_size,
            export_timeout_millis=self.config.export_timeout * 1000
        )

    def _setup_instrumentation(self) -> None:
        """Instrument asyncio tasks and inject trace ids into log records."""
        AsyncioInstrumentor().instrument()
        # Formatting stays with setup_logging; only record attributes are added
        LoggingInstrumentor().instrument(set_logging_format=False)
        logger.info("Automatic instrumentation configured")

    def get_tracer(self, name: str = INSTRUMENTATION_NAME) -> trace.Tracer:
        """Get a tracer bound to this manager's provider."""
        if not self._initialized or self._provider is None:
            raise RuntimeError("Telemetry not initialized")
        return self._provider.get_tracer(name)

    def shutdown(self) -> None:
        """Flush pending spans and shut the provider down."""
        if not self._initialized or self._provider is None:
            return

        try:
            self._provider.shutdown()
            logger.info("OpenTelemetry shutdown completed")
        except Exception as e:
            logger.error(f"Error during telemetry shutdown: {e}")
        finally:
            self._initialized = False
