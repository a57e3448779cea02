"""
ledger.exceptions — Failures of the blockchain node and the IPFS pinning API.

Both derive from ``ExternalServiceError`` so that a failure on a read
path (e.g. fetching an on-chain proof) surfaces as HTTP 502 through the
global exception handler.  The evidence upload pipeline catches them and
records the message as a warning instead.
"""

from __future__ import annotations

from core.domain.exceptions import ExternalServiceError


class LedgerError(ExternalServiceError):
    """The EVM node or the evidence-storage contract call failed."""

    def __init__(self, message: str = "Blockchain request failed.") -> None:
        super().__init__(message)


class LedgerNotConfigured(LedgerError):
    """``POLYGON_RPC_URL``, ``PRIVATE_KEY`` or ``CONTRACT_ADDRESS`` is unset."""

    def __init__(self, message: str = "Blockchain not configured") -> None:
        super().__init__(message)


class IPFSError(ExternalServiceError):
    """The Pinata API or the IPFS gateway failed."""

    def __init__(self, message: str = "IPFS request failed.") -> None:
        super().__init__(message)
