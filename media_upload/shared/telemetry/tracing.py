"""Tracing helpers for upload operations.

traced() wraps an async upload operation in a span and records what the
operation works on (media kind, product type, source size and MIME type,
module name) plus how it ended (session id and status, or the upload error
code). File paths, URLs and credentials are never recorded.
"""

import inspect
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, TypeVar

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from media_upload.domain.exceptions import UploadException

T = TypeVar("T")

AttributeValue = str | int | float | bool


def _argument_attributes(arguments: dict[str, Any]) -> dict[str, AttributeValue]:
    """Span attributes for the upload inputs among a call's bound arguments."""
    attrs: dict[str, AttributeValue] = {}
    descriptor = arguments.get("descriptor")
    if descriptor is not None:
        attrs["upload.kind"] = descriptor.media_kind.value
        attrs["upload.product_type"] = descriptor.product_type
        attrs["upload.downloadable"] = descriptor.is_downloadable
    source = arguments.get("source")
    if source is not None:
        attrs["upload.size"] = source.size
        attrs["upload.content_type"] = source.content_type
    kind = arguments.get("kind")
    if kind is not None:
        attrs["upload.kind"] = kind.value
    module_name = arguments.get("module_name")
    if module_name:
        attrs["upload.module_name"] = module_name
    return attrs


def _result_attributes(result: Any) -> dict[str, AttributeValue]:
    """Span attributes for an UploadResult or RegisteredAsset; empty otherwise."""
    attrs: dict[str, AttributeValue] = {}
    session = getattr(result, "session", None)
    if session is not None:
        attrs["upload.session_id"] = session.session_id
        attrs["upload.status"] = session.status.value
    asset_id = getattr(result, "asset_id", None)
    if asset_id:
        attrs["upload.asset_id"] = asset_id
    return attrs


def _record_error(span: trace.Span, error: Exception) -> None:
    span.set_status(Status(StatusCode.ERROR, str(error)))
    span.record_exception(error)
    if isinstance(error, UploadException):
        span.set_attribute("upload.error_code", error.error_code)
        transient = getattr(error, "transient", None)
        if transient is not None:
            span.set_attribute("upload.transient", transient)


def traced(
    operation_name: str | None = None,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Decorator: run an async upload operation inside its own span.

    Args:
        operation_name: Span name (defaults to module.funcname).

    Returns:
        Decorator for coroutine functions.
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"traced() supports coroutine functions only: {func.__qualname__}")
        tracer = trace.get_tracer(__name__)
        span_name = operation_name or f"{func.__module__}.{func.__name__}"
        signature = inspect.signature(func)

        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            with tracer.start_as_current_span(span_name) as span:
                bound = signature.bind_partial(*args, **kwargs)
                span.set_attributes(_argument_attributes(bound.arguments))
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _record_error(span, e)
                    raise
                span.set_attributes(_result_attributes(result))
                span.set_status(Status(StatusCode.OK))
                return result

        return wrapper

    return decorator


def add_span_attributes(**attributes: AttributeValue) -> None:
    """Add attributes to the current span."""
    span = trace.get_current_span()
    if span.is_recording():
        span.set_attributes(attributes)


def add_span_event(name: str, attributes: dict[str, AttributeValue] | None = None) -> None:
    """Add an event to the current span."""
    span = trace.get_current_span()
    if span.is_recording():
        span.add_event(name, attributes=attributes or {})
