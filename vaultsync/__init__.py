"""
vaultsync: client for a remote personal credential store.

SECURITY NOTE:
Passwords leave this process only as ciphertext. They are decrypted in memory
for display and are never written to the local cache in plaintext.
"""

from .config import APP_VERSION as __version__
from .errors import (
    CacheStoreError, CryptoFailure, MalformedResponse, RemoteFailure,
    StaleSnapshotError, ValidationError, VaultSyncError,
)
from .models import CacheSnapshot, CredentialRecord, DisplayRecord, MutationResult, PullKind, PullOutcome
from .service import Session, VaultService

__all__ = [
    "__version__",
    "CacheSnapshot", "CredentialRecord", "DisplayRecord", "MutationResult", "PullKind", "PullOutcome",
    "Session", "VaultService",
    "VaultSyncError", "RemoteFailure", "MalformedResponse", "CryptoFailure",
    "CacheStoreError", "StaleSnapshotError", "ValidationError",
]
