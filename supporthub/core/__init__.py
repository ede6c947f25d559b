"""
Core Module
============

Shared core utilities and abstractions used across the pipeline.

This module contains framework-agnostic code that defines the fundamental
building blocks of the system.
"""

from supporthub.core.exceptions import (
    ApplicationException,
    DomainException,
    InvalidTransitionException,
    RepositoryException,
    ConcurrencyConflictException,
    DuplicateRecordException,
    ValidationException,
    ResourceNotFoundException,
    ConfigurationException,
    ExternalServiceException,
    MailProviderException,
    NotificationException,
)

__all__ = [
    "ApplicationException",
    "DomainException",
    "InvalidTransitionException",
    "RepositoryException",
    "ConcurrencyConflictException",
    "DuplicateRecordException",
    "ValidationException",
    "ResourceNotFoundException",
    "ConfigurationException",
    "ExternalServiceException",
    "MailProviderException",
    "NotificationException",
]
