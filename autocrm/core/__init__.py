"""
Core Module
============

Shared core utilities and abstractions used across the application.

This module contains framework-agnostic code that defines the fundamental
building blocks of the system.
"""

from autocrm.core.exceptions import (
    ApplicationException,
    DomainException,
    InvalidTransitionException,
    PermissionDeniedException,
    RepositoryException,
    ValidationException,
    ResourceNotFoundException,
    ConfigurationException,
    ExternalServiceException,
    LLMException,
    EmbeddingException,
    CompletionException,
    VectorStoreException,
    EmailDeliveryException,
)
from autocrm.core.parsing import extract_json

__all__ = [
    "ApplicationException",
    "DomainException",
    "InvalidTransitionException",
    "PermissionDeniedException",
    "RepositoryException",
    "ValidationException",
    "ResourceNotFoundException",
    "ConfigurationException",
    "ExternalServiceException",
    "LLMException",
    "EmbeddingException",
    "CompletionException",
    "VectorStoreException",
    "EmailDeliveryException",
    "extract_json",
]
