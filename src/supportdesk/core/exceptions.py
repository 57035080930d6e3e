"""
Core Exceptions
================

Custom exceptions for the support desk.

Every error raised by the domain and application layers derives from
``ApplicationException``. The HTTP layer maps each family to a status code,
so services never import FastAPI.
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


class ValidationException(ApplicationException):
    """Bad or missing input. Raised before anything is written."""


class AuthenticationException(ApplicationException):
    """The caller identity is missing or malformed."""


class AuthorizationException(ApplicationException):
    """Role or ownership mismatch."""


class ResourceNotFoundException(ApplicationException):
    """Exception when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[object] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id is not None:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class InvalidTransitionException(DomainException):
    """A ticket status change the lifecycle does not permit."""

    def __init__(self, current_status: str, attempted_status: str):
        self.current_status = current_status
        self.attempted_status = attempted_status
        super().__init__(
            f"Transition from {current_status} to {attempted_status} is not permitted",
            {"current_status": current_status, "attempted_status": attempted_status}
        )


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""


class DependencyException(ApplicationException):
    """A collaborator (store, classifier, lookup) is unreachable or failing."""


class RepositoryException(DependencyException):
    """Data access failure."""


class ExternalServiceException(DependencyException):
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


class ClassifierException(ExternalServiceException):
    """The triage classifier failed and no fallback verdict was allowed."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Classifier", message, details)
