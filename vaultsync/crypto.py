"""
Cryptographic operations for credential passwords.

Everything above this module sees passwords only as ciphertext strings or,
after projection, as plaintext strings. Keys never leave this module.
"""

import asyncio
import base64
import binascii
import hashlib
import logging
import os
import struct
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from argon2.low_level import Type, hash_secret_raw
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from . import config
from .errors import CryptoFailure, ValidationError

logger = logging.getLogger(__name__)


class CryptoManager:
    """Handles the low-level AES-256-GCM and Argon2id operations."""

    def __init__(self, time_cost: int = config.ARGON2_TIME_COST,
                 memory_cost: int = config.ARGON2_MEMORY_COST,
                 parallelism: int = config.ARGON2_PARALLELISM):
        self.backend = default_backend()
        self.time_cost = time_cost
        self.memory_cost = memory_cost
        self.parallelism = parallelism

    @staticmethod
    def owner_salt(owner: str) -> bytes:
        """Deterministic salt for an owner, so every device derives the same key."""
        return hashlib.sha256(config.KEY_SALT_PREFIX + b":" + owner.encode('utf-8')).digest()[:16]

    def derive_key(self, password: str, salt: bytes) -> bytes:
        """
        Derive an encryption key from the core password using Argon2id.

        Args:
            password: The user's core password
            salt: Salt for key derivation

        Returns:
            32-byte encryption key
        """
        return hash_secret_raw(
            secret=password.encode('utf-8'),
            salt=salt,
            time_cost=self.time_cost,
            memory_cost=self.memory_cost,
            parallelism=self.parallelism,
            hash_len=config.KEY_SIZE,
            type=Type.ID
        )

    def encrypt(self, plaintext: bytes, key: bytes) -> Tuple[bytes, bytes, bytes]:
        """
        Encrypt data using AES-256-GCM.

        Returns:
            Tuple of (ciphertext, nonce, tag)
        """
        nonce = os.urandom(config.NONCE_SIZE)
        cipher = Cipher(
            algorithms.AES(key),
            modes.GCM(nonce),
            backend=self.backend
        )
        encryptor = cipher.encryptor()
        ciphertext = encryptor.update(plaintext) + encryptor.finalize()
        return ciphertext, nonce, encryptor.tag

    def decrypt(self, ciphertext: bytes, key: bytes, nonce: bytes, tag: bytes) -> bytes:
        """
        Decrypt data using AES-256-GCM.

        Raises:
            InvalidTag: If authentication fails
        """
        cipher = Cipher(
            algorithms.AES(key),
            modes.GCM(nonce, tag),
            backend=self.backend
        )
        decryptor = cipher.decryptor()
        return decryptor.update(ciphertext) + decryptor.finalize()

    def pack(self, ciphertext: bytes, nonce: bytes, tag: bytes) -> str:
        """Encode an encryption result as a single transport-safe string."""
        blob = struct.pack('<B', config.CIPHERTEXT_VERSION) + nonce + tag + ciphertext
        return base64.urlsafe_b64encode(blob).decode('ascii')

    def unpack(self, token: str) -> Tuple[bytes, bytes, bytes]:
        """Split a ciphertext string into (ciphertext, nonce, tag)."""
        try:
            blob = base64.urlsafe_b64decode(token.encode('ascii'))
        except (binascii.Error, UnicodeEncodeError, ValueError) as e:
            raise CryptoFailure(f"Ciphertext is not valid base64: {e}") from e
        header = 1 + config.NONCE_SIZE + config.TAG_SIZE
        if len(blob) < header:
            raise CryptoFailure("Ciphertext is truncated")
        version = struct.unpack('<B', blob[:1])[0]
        if version != config.CIPHERTEXT_VERSION:
            raise CryptoFailure(f"Unsupported ciphertext version {version}")
        nonce = blob[1:1 + config.NONCE_SIZE]
        tag = blob[1 + config.NONCE_SIZE:header]
        return blob[header:], nonce, tag

    def clear_bytes(self, data: bytearray) -> None:
        """Attempt to clear sensitive bytes from memory."""
        if isinstance(data, bytearray):
            for i in range(len(data)):
                data[i] = 0


class CryptoBoundary(ABC):
    """The only component allowed to turn ciphertext into plaintext and back."""

    @abstractmethod
    async def encrypt_one(self, plaintext: str) -> str:
        """Encrypt one password. Raises CryptoFailure."""

    @abstractmethod
    async def decrypt_one(self, ciphertext: str) -> str:
        """Decrypt one password. Raises CryptoFailure."""

    @abstractmethod
    async def decrypt_many(self, ciphertexts: List[str]) -> List[str]:
        """Decrypt a batch, one output per input, "" where decryption failed."""


class LocalCryptoBoundary(CryptoBoundary):
    """CryptoBoundary keyed by the user's core password.

    The key is derived lazily on first use; the work runs in a worker thread
    so each call is a suspension point for the event loop.
    """

    def __init__(self, owner: str, core_password: str, manager: Optional[CryptoManager] = None):
        if not core_password:
            raise ValidationError("Core password must not be empty")
        self._owner = owner
        self._core_password = core_password
        self._manager = manager or CryptoManager()
        self._key: Optional[bytearray] = None

    def _get_key(self) -> bytes:
        if self._key is None:
            if self._core_password is None:
                raise CryptoFailure("Crypto boundary is closed")
            derived = self._manager.derive_key(self._core_password, self._manager.owner_salt(self._owner))
            self._key = bytearray(derived)
        return bytes(self._key)

    def _encrypt_sync(self, plaintext: str) -> str:
        ciphertext, nonce, tag = self._manager.encrypt(plaintext.encode('utf-8'), self._get_key())
        return self._manager.pack(ciphertext, nonce, tag)

    def _decrypt_sync(self, token: str) -> str:
        ciphertext, nonce, tag = self._manager.unpack(token)
        try:
            plaintext = self._manager.decrypt(ciphertext, self._get_key(), nonce, tag)
        except InvalidTag as e:
            raise CryptoFailure("Authentication tag mismatch, wrong key or tampered data") from e
        try:
            return plaintext.decode('utf-8')
        except UnicodeDecodeError as e:
            raise CryptoFailure("Decrypted data is not valid UTF-8") from e

    def _decrypt_many_sync(self, tokens: List[str]) -> List[str]:
        results = []
        failures = 0
        for token in tokens:
            if not token:
                results.append("")
                continue
            try:
                results.append(self._decrypt_sync(token))
            except CryptoFailure as e:
                logger.debug(f"Batch decrypt: entry failed: {e}")
                failures += 1
                results.append("")
        if failures:
            logger.warning(f"Batch decrypt: {failures} of {len(tokens)} entries could not be decrypted")
        return results

    async def encrypt_one(self, plaintext: str) -> str:
        if not plaintext:
            raise ValidationError("Nothing to encrypt")
        return await asyncio.to_thread(self._encrypt_sync, plaintext)

    async def decrypt_one(self, ciphertext: str) -> str:
        if not ciphertext:
            raise ValidationError("Nothing to decrypt")
        return await asyncio.to_thread(self._decrypt_sync, ciphertext)

    async def decrypt_many(self, ciphertexts: List[str]) -> List[str]:
        return await asyncio.to_thread(self._decrypt_many_sync, list(ciphertexts))

    def close(self) -> None:
        """Wipe the derived key and forget the core password."""
        if self._key is not None:
            self._manager.clear_bytes(self._key)
        self._key = None
        self._core_password = None
