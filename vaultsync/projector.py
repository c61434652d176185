"""Turns cached ciphertext records into display records."""

import logging
from typing import List, Sequence

from .crypto import CryptoBoundary
from .errors import CryptoFailure
from .models import CredentialRecord, DisplayRecord

logger = logging.getLogger(__name__)


class RecordProjector:
    """Decrypts a record set with a single batched call to the crypto boundary."""

    def __init__(self, crypto: CryptoBoundary):
        self.crypto = crypto

    async def project(self, records: Sequence[CredentialRecord]) -> List[DisplayRecord]:
        """
        Project records for display, preserving order and length.

        A password that cannot be decrypted is shown as its ciphertext, so a
        record never disappears from the list because of a crypto error.
        """
        if not records:
            return []
        ciphertexts = [r.password for r in records]
        try:
            plaintexts = await self.crypto.decrypt_many(ciphertexts)
        except CryptoFailure as e:
            logger.error(f"Batch decryption of {len(records)} records failed: {e}")
            plaintexts = [""] * len(records)
        if len(plaintexts) != len(records):
            logger.error(f"Batch decryption returned {len(plaintexts)} results for {len(records)} records")
            plaintexts = [""] * len(records)

        return [
            DisplayRecord(
                id=record.id,
                website=record.website.strip(),
                account=record.account,
                password=plaintext or record.password,
            )
            for record, plaintext in zip(records, plaintexts)
        ]
