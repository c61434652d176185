"""Tests for projecting cached records into display records."""

import pytest

from vaultsync.models import CredentialRecord, DisplayRecord
from vaultsync.projector import RecordProjector


def records(n: int) -> list[CredentialRecord]:
    return [CredentialRecord(id=i, website=f"site{i}.com", account=f"user{i}", password=f"enc:pw{i}") for i in range(n)]


@pytest.mark.asyncio
async def test__project__one_batched_call_order_preserved(fake_crypto) -> None:
    projector = RecordProjector(fake_crypto)
    source = records(50)

    result = await projector.project(source)

    assert len(fake_crypto.decrypt_many_calls) == 1
    assert fake_crypto.decrypt_many_calls[0] == [r.password for r in source]
    assert fake_crypto.decrypt_one_calls == []
    assert [r.id for r in result] == [r.id for r in source]
    assert [r.password for r in result] == [f"pw{i}" for i in range(50)]


@pytest.mark.asyncio
async def test__project__empty_input_makes_no_crypto_call(fake_crypto) -> None:
    assert await RecordProjector(fake_crypto).project([]) == []
    assert fake_crypto.decrypt_many_calls == []


@pytest.mark.asyncio
async def test__project__undecryptable_password_falls_back_to_ciphertext(fake_crypto) -> None:
    source = [
        CredentialRecord(1, "a.com", "u", "enc:good"),
        CredentialRecord(2, "b.com", "u", "garbage"),
        CredentialRecord(3, "c.com", "u", "enc:fine"),
    ]

    result = await RecordProjector(fake_crypto).project(source)

    assert result == [
        DisplayRecord(1, "a.com", "u", "good"),
        DisplayRecord(2, "b.com", "u", "garbage"),
        DisplayRecord(3, "c.com", "u", "fine"),
    ]


@pytest.mark.asyncio
async def test__project__whole_batch_failure_keeps_every_record(fake_crypto) -> None:
    fake_crypto.fail_batch = True
    source = records(3)

    result = await RecordProjector(fake_crypto).project(source)

    assert [r.password for r in result] == [r.password for r in source]


@pytest.mark.asyncio
async def test__project__short_batch_result_keeps_every_record() -> None:
    class ShortCrypto:
        async def decrypt_many(self, ciphertexts):
            return ["only-one"]

    source = records(2)

    result = await RecordProjector(ShortCrypto()).project(source)

    assert [r.password for r in result] == ["enc:pw0", "enc:pw1"]


@pytest.mark.asyncio
async def test__project__website_is_trimmed_for_display(fake_crypto) -> None:
    source = [CredentialRecord(1, "  padded.com \n", "u", "enc:x")]

    result = await RecordProjector(fake_crypto).project(source)

    assert result[0].website == "padded.com"
    assert source[0].website == "  padded.com \n"


def test__display_record__repr_hides_password() -> None:
    assert "secret" not in repr(DisplayRecord(1, "a.com", "u", "secret"))
