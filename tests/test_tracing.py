"""Tests for the OpenTelemetry tracing module."""

import pytest
from unittest.mock import patch
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode

from aws_msk_iam_sasl_signer import (
    ConfigurationError,
    CredentialsError,
    StaticCredentialsProvider,
    generate_auth_token_from_credentials_provider,
    generate_auth_token_from_options,
    SignerOptions,
)
from aws_msk_iam_sasl_signer.tracing import (
    TRACER_NAME,
    add_token_span_attributes,
    get_tracer,
    traced,
)


@pytest.fixture
def exporter():
    """Route spans from the signer's tracer into memory."""
    span_exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    tracer = provider.get_tracer(TRACER_NAME)

    with patch("aws_msk_iam_sasl_signer.tracing.get_tracer", return_value=tracer):
        yield span_exporter

    provider.shutdown()


class TestGetTracer:
    """Tests for tracer lookup."""

    def test_get_tracer_without_provider(self):
        """Test that a tracer is returned even with no SDK configured."""
        tracer = get_tracer()
        assert isinstance(tracer, trace.Tracer)


class TestTracedDecorator:
    """Tests for the @traced decorator."""

    def test_traced_returns_value(self, exporter):
        """Test tracing a synchronous function."""
        @traced(name="test_operation")
        def sample_function(x: int) -> int:
            return x * 2

        assert sample_function(5) == 10

        spans = exporter.get_finished_spans()
        assert len(spans) == 1
        assert spans[0].name == "test_operation"
        assert spans[0].status.status_code == StatusCode.OK

    def test_traced_defaults_to_function_name(self, exporter):
        """Test the default span name."""
        @traced()
        def named_operation():
            return None

        named_operation()

        assert exporter.get_finished_spans()[0].name == "named_operation"

    def test_traced_static_attributes(self, exporter):
        """Test that static attributes are set on the span."""
        @traced(name="with_attrs", attributes={"component": "signer"})
        def operation():
            return "ok"

        operation()

        assert exporter.get_finished_spans()[0].attributes["component"] == "signer"

    def test_traced_records_exception(self, exporter):
        """Test that traced decorator records exceptions."""
        @traced(name="failing_operation")
        def failing_function():
            raise ValueError("Test error")

        with pytest.raises(ValueError, match="Test error"):
            failing_function()

        span = exporter.get_finished_spans()[0]
        assert span.status.status_code == StatusCode.ERROR
        assert any(event.name == "exception" for event in span.events)

    def test_traced_preserves_metadata(self):
        """Test that functools.wraps keeps the wrapped name."""
        @traced(name="x")
        def documented():
            """Docstring."""

        assert documented.__name__ == "documented"
        assert documented.__doc__ == "Docstring."


class TestTokenSpanAttributes:
    """Tests for token span attributes."""

    def test_add_attributes_inside_span(self, exporter):
        """Test that attributes land on the current span."""
        @traced(name="outer")
        def operation():
            add_token_span_attributes(region="us-west-2", credential_source="default", expiry_seconds=900)

        operation()

        attributes = exporter.get_finished_spans()[0].attributes
        assert attributes["msk.region"] == "us-west-2"
        assert attributes["msk.credential_source"] == "default"
        assert attributes["msk.token.expiry_seconds"] == 900

    def test_add_attributes_without_span(self):
        """Test that no active span is not an error."""
        add_token_span_attributes(region="us-west-2")

    def test_none_values_skipped(self, exporter):
        """Test that unset values are not recorded."""
        @traced(name="outer")
        def operation():
            add_token_span_attributes(region="eu-west-1")

        operation()

        attributes = exporter.get_finished_spans()[0].attributes
        assert attributes["msk.region"] == "eu-west-1"
        assert "msk.credential_source" not in attributes
        assert "msk.token.expiry_seconds" not in attributes


class TestEntryPointSpans:
    """Tests for spans emitted by token generation."""

    def test_provider_entry_point_span(self, exporter, mock_credentials):
        """Test the span of a successful generation."""
        generate_auth_token_from_credentials_provider(
            "us-west-2", StaticCredentialsProvider(mock_credentials),
        )

        span = exporter.get_finished_spans()[0]
        assert span.name == "msk.generate_auth_token_from_credentials_provider"
        assert span.status.status_code == StatusCode.OK
        assert span.attributes["msk.region"] == "us-west-2"
        assert span.attributes["msk.credential_source"] == "credentials_provider"
        assert span.attributes["msk.token.expiry_seconds"] == 900

    def test_failed_generation_span(self, exporter):
        """Test that a failed generation marks the span as an error."""
        class FailingProvider:
            def retrieve(self, context=None):
                raise RuntimeError("provider down")

        with pytest.raises(CredentialsError):
            generate_auth_token_from_credentials_provider("us-west-2", FailingProvider())

        span = exporter.get_finished_spans()[0]
        assert span.status.status_code == StatusCode.ERROR
        assert span.attributes["msk.credential_source"] == "credentials_provider"

    def test_invalid_options_span(self, exporter):
        """Test that validation failures are traced too."""
        with pytest.raises(ConfigurationError):
            generate_auth_token_from_options(SignerOptions(region="us-west-2", aws_profile="a", role_arn="b"))

        span = exporter.get_finished_spans()[0]
        assert span.name == "msk.generate_auth_token_from_options"
        assert span.status.status_code == StatusCode.ERROR
