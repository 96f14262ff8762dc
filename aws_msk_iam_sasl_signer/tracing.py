"""OpenTelemetry tracing for token generation.

Only the OpenTelemetry API is used here. Spans are recorded when the
application has configured a tracer provider and are no-ops otherwise.
"""

from functools import wraps
from typing import Any, Callable, ParamSpec, TypeVar

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from ._version import __version__

P = ParamSpec("P")
T = TypeVar("T")

TRACER_NAME = "aws_msk_iam_sasl_signer"


def get_tracer() -> trace.Tracer:
    """Get the tracer from the globally configured provider."""
    return trace.get_tracer(TRACER_NAME, __version__)


def traced(
    name: str | None = None,
    attributes: dict[str, Any] | None = None,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """Decorator to run a function inside a span.

    Args:
        name: Span name (defaults to function name)
        attributes: Static span attributes

    Returns:
        Decorated function
    """
    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        span_name = name or func.__name__

        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            with get_tracer().start_as_current_span(span_name) as span:
                if attributes:
                    for key, value in attributes.items():
                        span.set_attribute(key, value)
                try:
                    result = func(*args, **kwargs)
                    span.set_status(Status(StatusCode.OK))
                    return result
                except Exception as e:
                    span.set_status(Status(StatusCode.ERROR, str(e)))
                    span.record_exception(e)
                    raise

        return wrapper

    return decorator


def add_token_span_attributes(
    region: str | None = None,
    credential_source: str | None = None,
    expiry_seconds: int | None = None,
) -> None:
    """Add token-generation attributes to the current span."""
    span = trace.get_current_span()
    if region:
        span.set_attribute("msk.region", region)
    if credential_source:
        span.set_attribute("msk.credential_source", credential_source)
    if expiry_seconds is not None:
        span.set_attribute("msk.token.expiry_seconds", expiry_seconds)
