"""Domain errors raised by the CRUD layer and mapped to HTTP responses."""
from __future__ import annotations


class EntityNotFoundError(RuntimeError):
    """Raised when an entity cannot be located (or belongs to another user)."""

    status_code = 404


class EntityConflictError(RuntimeError):
    """Raised when a uniqueness rule is violated."""

    status_code = 409


class BusinessRuleError(RuntimeError):
    """Raised when a request is well formed but breaks a domain rule."""

    status_code = 400


class AccessDeniedError(RuntimeError):
    """Raised when the caller may not act on an entity."""

    status_code = 403


class AuthenticationError(RuntimeError):
    """Raised when credentials or tokens are missing or invalid."""

    status_code = 401


DOMAIN_ERRORS = (
    EntityNotFoundError,
    EntityConflictError,
    BusinessRuleError,
    AccessDeniedError,
    AuthenticationError,
)

__all__ = [
    "AccessDeniedError",
    "AuthenticationError",
    "BusinessRuleError",
    "DOMAIN_ERRORS",
    "EntityConflictError",
    "EntityNotFoundError",
]
