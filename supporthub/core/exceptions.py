"""
Core Exceptions
================

Custom exceptions for the pipeline following clean architecture principles.

These exceptions define domain-specific errors that can be caught and handled
appropriately at the worker and API boundaries.
"""

from typing import Optional, Any


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""


class InvalidTransitionException(DomainException):
    """Raised when a ticket status change is not allowed."""

    def __init__(self, from_status: Any, to_status: Any):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invalid status transition from {from_status} to {to_status}",
            {"from": str(from_status), "to": str(to_status)}
        )


class RepositoryException(ApplicationException):
    """Base exception for repository/data access errors."""


class ConcurrencyConflictException(RepositoryException):
    """Raised when a versioned write finds the row already moved on."""

    def __init__(self, entity_id: Any, expected_version: int):
        self.entity_id = entity_id
        self.expected_version = expected_version
        super().__init__(
            f"Version conflict on {entity_id} (expected version {expected_version})",
            {"entity_id": str(entity_id), "expected_version": expected_version}
        )


class DuplicateRecordException(RepositoryException):
    """Raised when an insert hits a uniqueness constraint."""


class ValidationException(ApplicationException):
    """Exception for validation errors."""


class ResourceNotFoundException(ApplicationException):
    """Exception when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""


class ExternalServiceException(ApplicationException):
    """Base exception for external service failures."""

    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.service_name = service_name
        super().__init__(f"{service_name}: {message}", details)


class MailProviderException(ExternalServiceException):
    """Transient mail provider failure; the poll is retried next run."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Mail Provider", message, details)


class NotificationException(ExternalServiceException):
    """Exception for notification delivery failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Notification Sink", message, details)
