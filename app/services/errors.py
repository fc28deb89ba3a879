"""Shared error classes for the discovery, verification and intelligence services."""

from __future__ import annotations


class DiscoveryError(RuntimeError):
    """Base exception raised by the media discovery services."""

    def __init__(self, message: str, code: str = "DISCOVERY_ERROR") -> None:
        super().__init__(message)
        self.code = code


class DiscoveryRequestError(DiscoveryError):
    """Raised when a request is missing fields or names an unknown action."""

    def __init__(self, message: str, code: str = "400_BAD_REQUEST") -> None:
        super().__init__(message, code=code)


class ContactNotFoundError(DiscoveryError):
    """Raised when a contact id does not resolve within the tenant."""

    def __init__(self, contact_id: str) -> None:
        super().__init__(f"Contact not found: {contact_id}", code="404_CONTACT_NOT_FOUND")
        self.contact_id = contact_id


class RepositoryError(DiscoveryError):
    """Raised when the repository fails to save or retrieve records."""


class CategorizationError(DiscoveryError):
    """Base exception raised by the categorization client."""


class CategorizationProviderError(CategorizationError):
    """Raised when the upstream AI provider fails."""


class CategorizationValidationError(CategorizationError):
    """Raised when a model response cannot be parsed safely."""
