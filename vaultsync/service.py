"""
The surface the UI layer talks to.

VaultService wires one user's session to the cache, the sync engine, the
projector and the mutation coordinator. Collaborators are injected, so tests
and alternative front ends can substitute their own.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from . import config
from .api_client import AccountApiClient
from .crypto import CryptoBoundary, LocalCryptoBoundary
from .errors import (
    CacheStoreError, CryptoFailure, MalformedResponse, RemoteFailure, ValidationError,
)
from .models import DisplayRecord, MutationResult, PullKind, PullOutcome
from .mutations import MutationCoordinator
from .projector import RecordProjector
from .search import SearchSession
from .storage import CacheStore
from .sync import SyncEngine

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """Who is logged in and how to reach the service."""
    owner: str
    token: str
    core_password: str
    api_base_url: str = config.DEFAULT_API_BASE_URL

    def __post_init__(self):
        for name in ("owner", "token", "core_password", "api_base_url"):
            if not getattr(self, name):
                raise ValidationError(f"{name} must not be empty")

    def __repr__(self) -> str:
        return f"Session(owner={self.owner!r}, api_base_url={self.api_base_url!r})"


def status_message(exc: BaseException) -> str:
    """Short user-facing text for a failure."""
    if isinstance(exc, RemoteFailure):
        if exc.code is not None:
            return config.MSG_QUERY_FAILED.format(reason=exc.message)
        if exc.status is not None:
            return config.MSG_SERVER_REJECTED.format(status=exc.status)
        return config.MSG_NETWORK_ERROR
    if isinstance(exc, MalformedResponse):
        return config.MSG_MALFORMED_RESPONSE
    if isinstance(exc, CryptoFailure):
        return config.MSG_CRYPTO_ERROR
    if isinstance(exc, CacheStoreError):
        return config.MSG_CACHE_ERROR
    if isinstance(exc, ValidationError):
        return config.MSG_VALIDATION_ERROR.format(reason=exc)
    return config.MSG_QUERY_FAILED.format(reason=exc)


class VaultService:
    """Query, search and edit one user's credentials."""

    def __init__(self, session: Session,
                 store: Optional[CacheStore] = None,
                 api: Optional[AccountApiClient] = None,
                 crypto: Optional[CryptoBoundary] = None):
        self.session = session
        self.store = store or CacheStore(config.get_cache_db_path())
        self.api = api or AccountApiClient(session.api_base_url, session.token)
        self.crypto = crypto or LocalCryptoBoundary(session.owner, session.core_password)
        self.sync = SyncEngine(session.owner, self.store, self.api)
        self.projector = RecordProjector(self.crypto)
        self.mutations = MutationCoordinator(self.api, self.crypto, self.sync)
        self.search = SearchSession()
        self.last_outcome: Optional[PullOutcome] = None
        self.status = ""

    async def __aenter__(self) -> "VaultService":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def query(self, force_refresh: bool = False) -> List[DisplayRecord]:
        """
        Return the owner's records with passwords decrypted.

        Raises:
            RemoteFailure, MalformedResponse, CacheStoreError: hard failures;
                the cache is left as it was
        """
        try:
            outcome = await self.sync.query(force_refresh)
        except (RemoteFailure, MalformedResponse, CacheStoreError) as e:
            self.status = status_message(e)
            raise
        return await self._show(outcome)

    async def _show(self, outcome: PullOutcome) -> List[DisplayRecord]:
        self.last_outcome = outcome
        records = await self.projector.project(outcome.records)
        self.search.set_records(records)
        if outcome.kind is PullKind.SERVED_FROM_CACHE:
            self.status = config.MSG_LOADED_FROM_CACHE.format(count=len(records))
        elif outcome.kind is PullKind.NO_CHANGE:
            self.status = config.MSG_QUERY_UNCHANGED.format(count=len(records))
        else:
            self.status = config.MSG_QUERY_OK.format(count=len(records))
        logger.info(self.status)
        return records

    def filter(self, keyword: str) -> List[DisplayRecord]:
        """Filter the records of the last query by website."""
        return self.search.search(keyword)

    async def insert(self, website: str, account: str, password: str) -> MutationResult:
        result = await self.mutations.insert(website, account, password)
        return await self._after_mutation(result)

    async def update(self, record_id: int, website: str, account: str, password: str) -> MutationResult:
        result = await self.mutations.update(record_id, website, account, password)
        return await self._after_mutation(result)

    async def delete(self, record_id: int) -> MutationResult:
        result = await self.mutations.delete(record_id)
        return await self._after_mutation(result)

    async def _after_mutation(self, result: MutationResult) -> MutationResult:
        # The coordinator has already resynced; show what the cache now holds.
        outcome = self.mutations.last_outcome
        if outcome is not None:
            await self._show(outcome)
        self.status = result.message if result.refresh_error is None else f"{result.message}. {result.refresh_error}"
        return result

    @staticmethod
    def export_text(records: Sequence[DisplayRecord]) -> str:
        """Plain-text dump of records, for copying to the clipboard."""
        return "\n".join(
            f"Website: {r.website}\nAccount: {r.account}\nPassword: {r.password}\n{config.EXPORT_SEPARATOR}"
            for r in records
        )

    async def verify(self) -> bool:
        return await self.api.verify()

    async def logout(self, clear_cache: bool = False) -> None:
        """End the session. Optionally drop the owner's cached snapshot."""
        self.search.cancel()
        self.search.set_records([])
        if clear_cache:
            self.store.clear(self.session.owner)
        await self.close()

    async def close(self) -> None:
        await self.api.aclose()
        if isinstance(self.crypto, LocalCryptoBoundary):
            self.crypto.close()
