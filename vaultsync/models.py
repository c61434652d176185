"""
Record types shared by the cache, the sync engine and the UI layer.

Passwords on CredentialRecord are always ciphertext. Only DisplayRecord ever
holds a plaintext password, and it is never written to the cache.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import List, Dict, Optional, Any


@dataclass
class CredentialRecord:
    """A single credential entry as stored on the server and in the cache."""
    id: int
    website: str
    account: str
    password: str  # ciphertext

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CredentialRecord':
        """Create from dictionary."""
        return cls(
            id=int(data['id']),
            website=data['website'],
            account=data['account'],
            password=data['password'],
        )


@dataclass
class CacheSnapshot:
    """The complete record set of one owner as of a watermark."""
    owner: str
    watermark: int
    records: List[CredentialRecord] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.records

    def __len__(self) -> int:
        return len(self.records)


@dataclass
class DisplayRecord:
    """UI-only projection of a CredentialRecord with the password decrypted."""
    id: int
    website: str
    account: str
    password: str  # plaintext, or the ciphertext when decryption failed

    def __repr__(self) -> str:
        return f"DisplayRecord(id={self.id!r}, website={self.website!r}, account={self.account!r})"


class PullKind(Enum):
    SERVED_FROM_CACHE = "served_from_cache"
    FULL_REPLACE = "full_replace"
    NO_CHANGE = "no_change"


@dataclass
class PullOutcome:
    """Result of SyncEngine.query.

    ``snapshot`` is whatever is authoritative after the call: the cached
    snapshot for SERVED_FROM_CACHE and NO_CHANGE (None if nothing was ever
    cached), the freshly stored one for FULL_REPLACE.
    """
    kind: PullKind
    snapshot: Optional[CacheSnapshot] = None

    @classmethod
    def served_from_cache(cls, snapshot: CacheSnapshot) -> 'PullOutcome':
        return cls(PullKind.SERVED_FROM_CACHE, snapshot)

    @classmethod
    def full_replace(cls, snapshot: CacheSnapshot) -> 'PullOutcome':
        return cls(PullKind.FULL_REPLACE, snapshot)

    @classmethod
    def no_change(cls, snapshot: Optional[CacheSnapshot]) -> 'PullOutcome':
        return cls(PullKind.NO_CHANGE, snapshot)

    @property
    def records(self) -> List[CredentialRecord]:
        if self.snapshot is None:
            return []
        return list(self.snapshot.records)


@dataclass
class MutationResult:
    """Outcome of an insert, update or delete as shown to the user."""
    ok: bool
    message: str
    code: int = 0
    refresh_error: Optional[str] = None
