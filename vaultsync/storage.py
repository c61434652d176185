"""
Local cache of the last credential snapshot pulled from the account service.

The cache is keyed by owner and only ever holds ciphertext passwords.
"""

import logging
import os
import platform
import sqlite3
import stat
from contextlib import contextmanager
from typing import Iterator, List, Optional

from .errors import CacheStoreError, StaleSnapshotError
from .models import CacheSnapshot, CredentialRecord

logger = logging.getLogger(__name__)


SCHEMA = """
CREATE TABLE IF NOT EXISTS cache_metadata (
    owner TEXT PRIMARY KEY,
    watermark INTEGER NOT NULL
);
CREATE TABLE IF NOT EXISTS accounts (
    id INTEGER NOT NULL,
    owner TEXT NOT NULL,
    website TEXT NOT NULL,
    account TEXT NOT NULL,
    password TEXT NOT NULL,
    PRIMARY KEY (id, owner)
);
CREATE INDEX IF NOT EXISTS idx_accounts_owner ON accounts(owner);
"""


class CacheStore:
    """Persists one CacheSnapshot per owner in a SQLite database."""

    def __init__(self, filepath: str):
        """
        Initialize the cache store and create its schema.
        Args:
            filepath: Path to the SQLite database file
        """
        self.filepath = filepath
        created = not os.path.exists(filepath)
        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode = WAL")
            conn.executescript(SCHEMA)
        if created and not self._set_file_permissions(filepath):
            logger.warning(f"Failed to set secure file permissions for cache: {filepath}")

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self.filepath, isolation_level=None)
        except sqlite3.Error as e:
            raise CacheStoreError(f"Cannot open cache database {self.filepath}: {e}") from e
        try:
            yield conn
        except sqlite3.Error as e:
            logger.error(f"Cache database error on {self.filepath}: {e}", exc_info=True)
            raise CacheStoreError(str(e)) from e
        finally:
            conn.close()

    @contextmanager
    def _transaction(self, immediate: bool = False) -> Iterator[sqlite3.Connection]:
        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    @staticmethod
    def _read_watermark(conn: sqlite3.Connection, owner: str) -> int:
        row = conn.execute(
            "SELECT watermark FROM cache_metadata WHERE owner = ?", (owner,)
        ).fetchone()
        return row[0] if row else 0

    def load(self, owner: str) -> Optional[CacheSnapshot]:
        """
        Load the cached snapshot of an owner.
        Returns:
            The snapshot, or None if this owner has nothing cached
        """
        with self._transaction() as conn:
            watermark = self._read_watermark(conn, owner)
            if watermark == 0:
                return None
            rows = conn.execute(
                "SELECT id, website, account, password FROM accounts "
                "WHERE owner = ? ORDER BY website, id",
                (owner,)
            ).fetchall()
        records = [CredentialRecord(id=r[0], website=r[1], account=r[2], password=r[3]) for r in rows]
        return CacheSnapshot(owner=owner, watermark=watermark, records=records)

    def replace(self, snapshot: CacheSnapshot) -> None:
        """
        Replace the owner's cached snapshot wholesale.
        Raises:
            StaleSnapshotError: If the snapshot is older than the cached one
        """
        with self._transaction(immediate=True) as conn:
            current = self._read_watermark(conn, snapshot.owner)
            if snapshot.watermark < current:
                raise StaleSnapshotError(
                    f"Refusing watermark {snapshot.watermark} for {snapshot.owner}, cache is at {current}"
                )
            conn.execute(
                "INSERT OR REPLACE INTO cache_metadata (owner, watermark) VALUES (?, ?)",
                (snapshot.owner, snapshot.watermark)
            )
            conn.execute("DELETE FROM accounts WHERE owner = ?", (snapshot.owner,))
            conn.executemany(
                "INSERT INTO accounts (id, owner, website, account, password) VALUES (?, ?, ?, ?, ?)",
                [(r.id, snapshot.owner, r.website, r.account, r.password) for r in snapshot.records]
            )
        logger.info(f"Cache replaced for {snapshot.owner}: {len(snapshot)} records at watermark {snapshot.watermark}")

    def watermark(self, owner: str) -> int:
        """Return the owner's cached watermark, 0 if nothing is cached."""
        with self._connect() as conn:
            return self._read_watermark(conn, owner)

    def count(self, owner: str) -> int:
        """Return the number of cached records of an owner."""
        with self._connect() as conn:
            return conn.execute("SELECT COUNT(*) FROM accounts WHERE owner = ?", (owner,)).fetchone()[0]

    def clear(self, owner: str) -> None:
        """Drop everything cached for an owner."""
        with self._transaction(immediate=True) as conn:
            conn.execute("DELETE FROM accounts WHERE owner = ?", (owner,))
            conn.execute("DELETE FROM cache_metadata WHERE owner = ?", (owner,))
        logger.info(f"Cache cleared for {owner}")

    def save_snapshot(self, owner: str, watermark: int, records: List[CredentialRecord]) -> None:
        self.replace(CacheSnapshot(owner=owner, watermark=watermark, records=list(records)))

    def load_snapshot(self, owner: str) -> Optional[CacheSnapshot]:
        return self.load(owner)

    def last_watermark(self, owner: str) -> int:
        return self.watermark(owner)

    def _set_file_permissions(self, filepath: str) -> bool:
        """
        Set file to be readable/writable by owner only."""
        if platform.system() == 'Windows':
            # ACLs on Windows are inherited from the per-user data directory.
            return True
        try:
            os.chmod(filepath, stat.S_IRUSR | stat.S_IWUSR)  # 600
        except OSError as e:
            logger.warning(f"chmod failed for {filepath}: {e}")
            return False
        return True
