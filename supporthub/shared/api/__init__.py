"""Shared API middleware and exception handlers."""

from supporthub.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler,
)

__all__ = [
    "CorrelationIDMiddleware",
    "LoggingMiddleware",
    "application_exception_handler",
    "global_exception_handler",
]
