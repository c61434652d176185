"""Shared fakes and fixtures for vaultsync tests."""

import asyncio
from typing import Any, Optional

import pytest

from vaultsync.api_client import ApiResponse, QueryData
from vaultsync.crypto import CryptoBoundary
from vaultsync.errors import CryptoFailure
from vaultsync.service import Session, VaultService
from vaultsync.storage import CacheStore


def make_query(pull_mode: str = "PULL_ALL", update_time: int = 100, accounts: Optional[list] = None) -> QueryData:
    """Build a validated query payload from plain dicts."""
    return QueryData.model_validate({
        "pull_mode": pull_mode,
        "update_time": update_time,
        "accounts": accounts or [],
    })


def account(id: int, website: str, account: str = "bob", password: Optional[str] = None) -> dict:
    return {"id": id, "website": website, "account": account, "password": password or f"enc:pw{id}"}


class FakeCrypto(CryptoBoundary):
    """Reversible stand-in: "enc:<plain>" decrypts to "<plain>", anything else fails."""

    def __init__(self):
        self.encrypt_calls: list[str] = []
        self.decrypt_one_calls: list[str] = []
        self.decrypt_many_calls: list[list[str]] = []
        self.fail_encrypt = False
        self.fail_batch = False

    async def encrypt_one(self, plaintext: str) -> str:
        self.encrypt_calls.append(plaintext)
        if self.fail_encrypt:
            raise CryptoFailure("encrypt rejected")
        return f"enc:{plaintext}"

    @staticmethod
    def _decrypt(ciphertext: str) -> str:
        return ciphertext[4:] if ciphertext.startswith("enc:") else ""

    async def decrypt_one(self, ciphertext: str) -> str:
        self.decrypt_one_calls.append(ciphertext)
        plaintext = self._decrypt(ciphertext)
        if not plaintext:
            raise CryptoFailure("bad ciphertext")
        return plaintext

    async def decrypt_many(self, ciphertexts: list[str]) -> list[str]:
        self.decrypt_many_calls.append(list(ciphertexts))
        await asyncio.sleep(0)
        if self.fail_batch:
            raise CryptoFailure("batch rejected")
        return [self._decrypt(c) for c in ciphertexts]


class FakeApi:
    """Records every call; queries answer from a queue of payloads or exceptions."""

    def __init__(self):
        self.calls: list[tuple[str, Any]] = []
        self.queries: list[Any] = []
        self.mutation_response = ApiResponse(code=0, msg="ok")
        self.mutation_error: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None
        self.closed = False

    @property
    def fetch_calls(self) -> list:
        return [args for name, args in self.calls if name == "fetch_accounts"]

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]

    async def fetch_accounts(self, update_time: int) -> QueryData:
        self.calls.append(("fetch_accounts", update_time))
        if self.gate is not None:
            await self.gate.wait()
        if not self.queries:
            return make_query("PULL_NOTHING", update_time)
        answer = self.queries.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return answer

    async def _mutate(self, name: str, args: Any) -> ApiResponse:
        self.calls.append((name, args))
        if self.mutation_error is not None:
            raise self.mutation_error
        return self.mutation_response

    async def insert_account(self, website, account, password):
        return await self._mutate("insert_account", (website, account, password))

    async def update_account(self, record_id, website, account, password):
        return await self._mutate("update_account", (record_id, website, account, password))

    async def delete_account(self, record_id):
        return await self._mutate("delete_account", (record_id,))

    async def verify(self) -> bool:
        return True

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def store(tmp_path) -> CacheStore:
    """A cache store backed by a fresh SQLite file."""
    return CacheStore(str(tmp_path / "cache.db"))


@pytest.fixture
def fake_api() -> FakeApi:
    return FakeApi()


@pytest.fixture
def fake_crypto() -> FakeCrypto:
    return FakeCrypto()


@pytest.fixture
def session() -> Session:
    return Session(owner="alice", token="tok_alice", core_password="core", api_base_url="http://vault.test/v1")


@pytest.fixture
def service(session, store, fake_api, fake_crypto) -> VaultService:
    """VaultService wired to the fakes."""
    return VaultService(session, store=store, api=fake_api, crypto=fake_crypto)
