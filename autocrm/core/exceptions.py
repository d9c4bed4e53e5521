"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

These exceptions define domain-specific errors that can be caught and handled
appropriately at the application boundaries.
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""


class InvalidTransitionException(DomainException):
    """Raised when a ticket is asked to move to a status it cannot reach."""

    def __init__(
        self,
        current_status: str,
        target_status: str,
        details: Optional[dict] = None
    ):
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(
            f"Cannot move ticket from '{current_status}' to '{target_status}'",
            details or {"current_status": current_status, "target_status": target_status}
        )


class PermissionDeniedException(DomainException):
    """Raised when a user attempts an action reserved for someone else."""


class RepositoryException(ApplicationException):
    """Base exception for repository/data access errors."""


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


class LLMException(ExternalServiceException):
    """Exception for LLM API failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("LLM Service", message, details)


class EmbeddingException(LLMException):
    """Embedding provider failed (rate limit, auth, timeout)."""


class CompletionException(LLMException):
    """Chat completion provider failed."""


class VectorStoreException(ExternalServiceException):
    """Exception for vector store failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Vector Store", message, details)


class EmailDeliveryException(ExternalServiceException):
    """Exception for email provider failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Email Service", message, details)
