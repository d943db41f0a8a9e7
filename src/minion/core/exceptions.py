"""
Core Exceptions
================

Custom exceptions shared by every layer of the service.

Two families matter at the HTTP boundary: input that cannot be turned into
a support request (client error) and collaborators that cannot be reached
(upstream error). "Nothing found" is not an exception; it is a normal
guidance answer.
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationException(ApplicationException):
    """Exception for validation errors."""


class InvalidInputException(ValidationException):
    """Raw input could not be parsed into a support request."""


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


class CollaboratorUnavailableException(ExternalServiceException):
    """A ticket lookup, catalog or forum call failed or could not be made."""
