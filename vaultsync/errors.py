"""
Error types raised by the vaultsync client.
"""

from typing import Optional


class VaultSyncError(Exception):
    """Base class for all vaultsync errors."""


class RemoteFailure(VaultSyncError):
    """The account service was unreachable, answered with a non-success HTTP
    status, or reported a non-zero code for a query."""

    def __init__(self, message: str, code: Optional[int] = None, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status = status

    def __str__(self) -> str:
        if self.code is not None:
            return f"[{self.code}] {self.message}"
        if self.status is not None:
            return f"HTTP {self.status}: {self.message}"
        return self.message


class MalformedResponse(VaultSyncError):
    """A response was missing required fields or carried unusable values."""


class CryptoFailure(VaultSyncError):
    """Encryption or decryption was rejected or errored."""


class CacheStoreError(VaultSyncError):
    """The local cache database could not be read or written."""


class StaleSnapshotError(CacheStoreError):
    """A snapshot older than the cached one was offered to the store."""


class ValidationError(VaultSyncError):
    """User input was rejected before reaching the account service."""
