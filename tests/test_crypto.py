"""Tests for the local crypto boundary."""

import pytest

from vaultsync.crypto import CryptoManager, LocalCryptoBoundary
from vaultsync.errors import CryptoFailure, ValidationError


def fast_manager() -> CryptoManager:
    """Argon2 parameters small enough for tests."""
    return CryptoManager(time_cost=1, memory_cost=8, parallelism=1)


def boundary(owner="alice", core_password="core-secret") -> LocalCryptoBoundary:
    return LocalCryptoBoundary(owner, core_password, manager=fast_manager())


@pytest.mark.asyncio
async def test__encrypt_one__round_trips_and_hides_plaintext() -> None:
    crypto = boundary()

    ciphertext = await crypto.encrypt_one("hunter2")

    assert "hunter2" not in ciphertext
    assert await crypto.decrypt_one(ciphertext) == "hunter2"


@pytest.mark.asyncio
async def test__encrypt_one__uses_fresh_nonce_each_time() -> None:
    crypto = boundary()
    assert await crypto.encrypt_one("same") != await crypto.encrypt_one("same")


@pytest.mark.asyncio
async def test__same_core_password_decrypts_on_another_device() -> None:
    ciphertext = await boundary().encrypt_one("portable")
    assert await boundary().decrypt_one(ciphertext) == "portable"


@pytest.mark.asyncio
async def test__decrypt_one__wrong_core_password_fails() -> None:
    ciphertext = await boundary(core_password="right").encrypt_one("pw")

    with pytest.raises(CryptoFailure):
        await boundary(core_password="wrong").decrypt_one(ciphertext)


@pytest.mark.asyncio
async def test__decrypt_one__garbage_fails() -> None:
    with pytest.raises(CryptoFailure):
        await boundary().decrypt_one("not-a-ciphertext")


@pytest.mark.asyncio
async def test__decrypt_many__bad_entries_become_empty_in_place() -> None:
    crypto = boundary()
    good = await crypto.encrypt_one("one")
    other = await crypto.encrypt_one("三")

    result = await crypto.decrypt_many([good, "garbage", "", other])

    assert result == ["one", "", "", "三"]


@pytest.mark.asyncio
async def test__encrypt_one__empty_is_rejected() -> None:
    with pytest.raises(ValidationError):
        await boundary().encrypt_one("")


def test__boundary__empty_core_password_is_rejected() -> None:
    with pytest.raises(ValidationError):
        LocalCryptoBoundary("alice", "")


@pytest.mark.asyncio
async def test__close__wipes_key() -> None:
    crypto = boundary()
    await crypto.encrypt_one("warm up")

    crypto.close()

    with pytest.raises(CryptoFailure):
        await crypto.encrypt_one("after close")


def test__owner_salt__differs_per_owner() -> None:
    assert CryptoManager.owner_salt("alice") != CryptoManager.owner_salt("bob")
    assert len(CryptoManager.owner_salt("alice")) == 16
