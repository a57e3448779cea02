"""
core.domain.exceptions — Domain-specific exception hierarchy.

These exceptions represent business-rule violations inside service layers.
They are deliberately **not** DRF exceptions so that services stay usable
from management commands and tests without a request.  The global handler
in ``core.domain.exception_handler`` maps them to HTTP responses.

Mapping cheatsheet
------------------
┌──────────────────────┬──────┬──────────────────────────────────────────┐
│ Domain Exception     │ Code │ Typical cause                            │
├──────────────────────┼──────┼──────────────────────────────────────────┤
│ DomainError          │ 400  │ invalid wallet, unsupported MIME type    │
│ AuthenticationFailed │ 401  │ unknown wallet, bad e-mail/password      │
│ PermissionDenied     │ 403  │ role not allowed, self-deletion          │
│ NotFound             │ 404  │ missing evidence / case / request        │
│ Conflict             │ 409  │ duplicate wallet, e-mail or tag          │
│ InvalidTransition    │ 409  │ role-change request no longer pending    │
│ ExternalServiceError │ 502  │ ledger / IPFS call failed on a read path │
└──────────────────────┴──────┴──────────────────────────────────────────┘

Recommended usage inside a service::

    from core.domain.exceptions import Conflict

    if User.objects.filter(wallet_address=wallet).exists():
        raise Conflict("Wallet address already registered")
"""

from __future__ import annotations


class DomainError(Exception):
    """
    Base class for all domain / business-rule errors.

    Converted to a 400 Bad Request at the view boundary.
    """

    def __init__(self, message: str = "A business rule was violated.") -> None:
        self.message = message
        super().__init__(self.message)


class AuthenticationFailed(DomainError):
    """Credentials (wallet or e-mail/password) could not be verified.  HTTP 401."""

    def __init__(self, message: str = "Authentication failed.") -> None:
        super().__init__(message)


class PermissionDenied(DomainError):
    """
    The authenticated user does not have the required role or permission
    for this operation.

    Maps to HTTP 403.
    """

    def __init__(self, message: str = "You do not have permission to perform this action.") -> None:
        super().__init__(message)


class NotFound(DomainError):
    """The requested resource does not exist.  Maps to HTTP 404."""

    def __init__(self, message: str = "The requested resource was not found.") -> None:
        super().__init__(message)


class Conflict(DomainError):
    """
    The operation conflicts with the current state of the resource.

    Typical usage: duplicate registration, duplicate tag name, a second
    pending role-change request for the same user.  Maps to HTTP 409.
    """

    def __init__(self, message: str = "The operation conflicts with the current state.") -> None:
        super().__init__(message)


class InvalidTransition(Conflict):
    """
    A state change that is not allowed from the current state.

    Raised when a case is moved to the status it already has.  Case
    status transitions that the caller's role may not perform are a
    ``PermissionDenied`` instead.
    """

    def __init__(
        self,
        message: str | None = None,
        *,
        current: str | None = None,
        target: str | None = None,
    ) -> None:
        if message is None:
            message = "Invalid state transition"
            if current and target:
                message += f" from '{current}' to '{target}'"
            message += "."
        super().__init__(message)
        self.current = current
        self.target = target


class ExternalServiceError(DomainError):
    """
    The blockchain node or the IPFS gateway failed on a request path that
    cannot degrade gracefully (e.g. fetching an on-chain proof).

    Maps to HTTP 502.
    """

    def __init__(self, message: str = "An upstream service failed.") -> None:
        super().__init__(message)
