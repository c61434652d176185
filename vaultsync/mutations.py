"""
Insert, update and delete of credentials on the account service.

Every mutation, whatever its outcome, is followed by exactly one forced
resync before control returns, so the cache reflects the server's state
after the write and never an optimistic local guess.
"""

import logging
from typing import Awaitable, Callable, Optional, Protocol

from . import config
from .api_client import ApiResponse
from .crypto import CryptoBoundary
from .errors import VaultSyncError, ValidationError
from .models import MutationResult, PullOutcome

logger = logging.getLogger(__name__)


class AccountWriter(Protocol):
    async def insert_account(self, website: str, account: str, password: str) -> ApiResponse: ...

    async def update_account(self, record_id: int, website: str, account: str, password: str) -> ApiResponse: ...

    async def delete_account(self, record_id: int) -> ApiResponse: ...


class Resyncer(Protocol):
    async def query(self, force_refresh: bool = False) -> PullOutcome: ...


def _require_text(value: str, field_name: str) -> None:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} must not be empty")


def _require_id(record_id: int) -> None:
    if isinstance(record_id, bool) or not isinstance(record_id, int) or record_id <= 0:
        raise ValidationError(f"invalid record id {record_id!r}")


class MutationCoordinator:
    """Wraps the three write calls and enforces the forced resync afterwards."""

    def __init__(self, api: AccountWriter, crypto: CryptoBoundary, sync: Resyncer):
        self.api = api
        self.crypto = crypto
        self.sync = sync
        self.last_outcome: Optional[PullOutcome] = None

    async def insert(self, website: str, account: str, password: str) -> MutationResult:
        async def call() -> ApiResponse:
            _require_text(website, "website")
            _require_text(password, "password")
            ciphertext = await self.crypto.encrypt_one(password)
            return await self.api.insert_account(website.strip(), account or "", ciphertext)

        return await self._run(call, config.MSG_INSERT_OK, config.MSG_INSERT_FAILED)

    async def update(self, record_id: int, website: str, account: str, password: str) -> MutationResult:
        async def call() -> ApiResponse:
            _require_id(record_id)
            _require_text(website, "website")
            _require_text(account, "account")
            _require_text(password, "password")
            ciphertext = await self.crypto.encrypt_one(password)
            return await self.api.update_account(record_id, website.strip(), account, ciphertext)

        return await self._run(call, config.MSG_UPDATE_OK, config.MSG_UPDATE_FAILED)

    async def delete(self, record_id: int) -> MutationResult:
        async def call() -> ApiResponse:
            _require_id(record_id)
            return await self.api.delete_account(record_id)

        return await self._run(call, config.MSG_DELETE_OK, config.MSG_DELETE_FAILED)

    async def _run(self, call: Callable[[], Awaitable[ApiResponse]], ok_message: str, failed_message: str) -> MutationResult:
        try:
            response = await call()
            if response.ok:
                result = MutationResult(ok=True, message=ok_message, code=response.code)
            else:
                logger.warning(f"Mutation rejected by service: code {response.code}")
                result = MutationResult(
                    ok=False, message=failed_message.format(reason=response.msg), code=response.code
                )
        except VaultSyncError as e:
            logger.warning(f"Mutation failed: {type(e).__name__}: {e}")
            code = getattr(e, "code", None)
            result = MutationResult(ok=False, message=failed_message.format(reason=e), code=code if code is not None else -1)
        finally:
            refresh_error = await self._resync()
        result.refresh_error = refresh_error
        return result

    async def _resync(self) -> Optional[str]:
        try:
            self.last_outcome = await self.sync.query(force_refresh=True)
        except VaultSyncError as e:
            logger.error(f"Forced resync after mutation failed: {e}")
            self.last_outcome = None
            return config.MSG_REFRESH_FAILED.format(reason=e)
        return None
