"""
Tracing utilities for the jeopardy board.

Decorators and context managers that add OpenTelemetry spans around board
acquisition, reveals and views. Everything here is a no-op unless an OTLP
endpoint is configured.
"""

import os
import time
from functools import wraps
from contextlib import contextmanager
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode


# Cache for tracing enabled status
_TRACING_ENABLED = None

def is_tracing_enabled():
    """
    Check if OpenTelemetry tracing is configured.

    Returns:
        bool: True if an OTLP endpoint is configured, False otherwise
    """
    global _TRACING_ENABLED

    # Return cached result if available
    if _TRACING_ENABLED is not None:
        return _TRACING_ENABLED

    _TRACING_ENABLED = bool(os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT"))
    return _TRACING_ENABLED

def reset_tracing_cache():
    """
    Reset the tracing enabled cache. Useful for testing or when environment
    variables change during runtime.
    """
    global _TRACING_ENABLED
    _TRACING_ENABLED = None


def _record_success(span, start_time):
    if hasattr(span, 'set_attribute'):
        span.set_attribute("operation.success", True)
        span.set_attribute("operation.execution_time_ms", (time.time() - start_time) * 1000)
        span.set_status(Status(StatusCode.OK))


def _record_failure(span, start_time, error):
    if hasattr(span, 'set_attribute'):
        span.set_attribute("operation.success", False)
        span.set_attribute("operation.execution_time_ms", (time.time() - start_time) * 1000)
        span.set_attribute("operation.error", str(error))
        span.set_attribute("operation.error_type", type(error).__name__)
        span.record_exception(error)
        span.set_status(Status(StatusCode.ERROR, str(error)))


def trace_function(operation_name, **attributes):
    """
    Decorator to trace function execution with OpenTelemetry.

    Args:
        operation_name (str): Name of the operation being traced
        **attributes: Additional attributes to add to the span

    Example:
        @trace_function("board.acquire", source="jservice")
        def acquire_board(self):
            ...
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            # If tracing is not enabled, just call the function
            if not is_tracing_enabled():
                return func(*args, **kwargs)

            tracer = trace.get_tracer(__name__)

            with tracer.start_as_current_span(operation_name, attributes=attributes) as span:
                span.set_attribute("function.name", func.__name__)
                span.set_attribute("function.module", func.__module__)
                if kwargs:
                    for k, v in kwargs.items():
                        span.set_attribute(f"function.kwarg.{k}", str(v))

                start_time = time.time()
                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    _record_failure(span, start_time, e)
                    raise
                _record_success(span, start_time)
                return result

        return wrapper
    return decorator


@contextmanager
def trace_operation(operation_name, **attributes):
    """
    Context manager for tracing operations with OpenTelemetry.

    Args:
        operation_name (str): Name of the operation being traced
        **attributes: Additional attributes to add to the span

    Example:
        with trace_operation("board.category", category_id=42):
            category = client.get_category(42)
    """
    # If tracing is not enabled, just yield a dummy span
    if not is_tracing_enabled():
        class DummySpan:
            def set_attribute(self, key, value):
                pass
            def set_status(self, status):
                pass
            def record_exception(self, exception):
                pass

        yield DummySpan()
        return

    tracer = trace.get_tracer(__name__)

    with tracer.start_as_current_span(operation_name, attributes=attributes) as span:
        start_time = time.time()
        try:
            yield span
        except Exception as e:
            _record_failure(span, start_time, e)
            raise
        _record_success(span, start_time)


def trace_view(view_name, **attributes):
    """
    Decorator specifically for tracing Django views.

    Args:
        view_name (str): Name of the view being traced
        **attributes: Additional attributes to add to the span
    """
    def decorator(func):
        @wraps(func)
        def wrapper(request, *args, **kwargs):
            # If tracing is not enabled, just call the function
            if not is_tracing_enabled():
                return func(request, *args, **kwargs)
            tracer = trace.get_tracer(__name__)

            view_attributes = {
                "http.method": request.method,
                "http.url": request.build_absolute_uri(),
                "session.id": (request.session.session_key or "") if hasattr(request, 'session') else "",
                **attributes
            }

            with tracer.start_as_current_span(f"view.{view_name}", attributes=view_attributes) as span:
                start_time = time.time()
                try:
                    result = func(request, *args, **kwargs)
                except Exception as e:
                    _record_failure(span, start_time, e)
                    raise
                _record_success(span, start_time)
                span.set_attribute("http.status_code", getattr(result, 'status_code', 200))
                return result

        return wrapper
    return decorator


def add_span_attribute(key, value):
    """
    Add an attribute to the current span.

    Example:
        add_span_attribute("board.categories", 6)
    """
    # If tracing is not enabled, do nothing
    if not is_tracing_enabled():
        return

    current_span = trace.get_current_span()
    if current_span:
        current_span.set_attribute(key, value)


def record_exception(exception, **attributes):
    """
    Record an exception in the current span.

    Args:
        exception: The exception to record
        **attributes: Additional attributes to add to the span
    """
    # If tracing is not enabled, do nothing
    if not is_tracing_enabled():
        return

    current_span = trace.get_current_span()
    if current_span:
        for key, value in attributes.items():
            current_span.set_attribute(key, value)
        current_span.record_exception(exception)
        current_span.set_status(Status(StatusCode.ERROR, str(exception)))
