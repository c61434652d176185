"""
Cache-or-pull decision and reconciliation of pulls into the local cache.

A pull is never applied partially: the server's answer either replaces the
owner's snapshot wholesale or leaves it untouched.
"""

import asyncio
import logging
from typing import Protocol

from . import config
from .api_client import QueryData
from .errors import MalformedResponse
from .models import CacheSnapshot, PullOutcome
from .storage import CacheStore

logger = logging.getLogger(__name__)


class AccountFetcher(Protocol):
    async def fetch_accounts(self, update_time: int) -> QueryData: ...


class SyncEngine:
    """Serves the owner's records from the cache or pulls them from the service.

    Calls are serialized: a passive load issued while a forced refresh is in
    flight waits for it and then reads the refreshed cache.
    """

    def __init__(self, owner: str, store: CacheStore, api: AccountFetcher):
        if not owner:
            raise ValueError("owner must not be empty")
        self.owner = owner
        self.store = store
        self.api = api
        self._lock = asyncio.Lock()

    async def query(self, force_refresh: bool = False) -> PullOutcome:
        """
        Resolve the owner's current record set.

        Args:
            force_refresh: Skip the cache and ask the service for anything newer

        Returns:
            PullOutcome describing where the records came from

        Raises:
            RemoteFailure, MalformedResponse: The pull failed; the cache is unchanged
        """
        # A started pull always runs to completion, even if the caller goes away.
        return await asyncio.shield(self._query_locked(force_refresh))

    async def _query_locked(self, force_refresh: bool) -> PullOutcome:
        async with self._lock:
            return await self._query(force_refresh)

    async def _query(self, force_refresh: bool) -> PullOutcome:
        cached = self.store.load(self.owner)
        if not force_refresh and cached is not None and not cached.is_empty():
            logger.debug(f"Serving {len(cached)} records for {self.owner} from cache")
            return PullOutcome.served_from_cache(cached)

        watermark = cached.watermark if cached is not None else 0
        logger.info(f"Pulling accounts for {self.owner} since watermark {watermark} (forced={force_refresh})")
        data = await self.api.fetch_accounts(watermark)

        if data.pull_mode == config.PULL_NOTHING:
            logger.info(f"No newer data for {self.owner} past watermark {watermark}")
            return PullOutcome.no_change(cached)

        if data.update_time < watermark:
            raise MalformedResponse(
                f"Server watermark {data.update_time} is behind cached watermark {watermark}"
            )
        snapshot = CacheSnapshot(
            owner=self.owner,
            watermark=data.update_time,
            records=[item.to_record() for item in data.accounts],
        )
        self.store.replace(snapshot)
        return PullOutcome.full_replace(snapshot)
