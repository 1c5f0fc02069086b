"""
Storage Backends for the Resonance Touch Interface

This module handles profile persistence through a minimal key-value
interface:
- In-memory backend for tests and ephemeral sessions
- SQLite backend using aiosqlite with a single key-value table
- Encrypting wrapper applying Fernet authenticated encryption to every
  blob before it reaches the wrapped backend
"""

import asyncio
import datetime
import logging
from pathlib import Path
from typing import Dict, Optional, Protocol, Union

import aiosqlite
from cryptography.fernet import Fernet, InvalidToken

from resonance_touch.constants import ErrorCode
from resonance_touch.errors import PrivacyError

logger = logging.getLogger("resonance_touch.storage")

# SQL queries
CREATE_TABLES = """
-- Table for storing one opaque profile blob per key
CREATE TABLE IF NOT EXISTS profile_blobs (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""


class StorageBackend(Protocol):
    """Key-value blob store used for profile persistence."""

    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...


class MemoryStorage:
    """Dictionary-backed storage; contents are lost with the process."""

    def __init__(self) -> None:
        self.data: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)


class SqliteStorage:
    """Stores profile blobs in an SQLite database."""

    def __init__(self, db_path: Union[str, Path]) -> None:
        """Initialize the storage.

        Args:
            db_path: Path to the SQLite database file; the parent directory
                is created on first use
        """
        self.db_path = str(db_path)
        self._lock = asyncio.Lock()
        self._db_initialized = False

    async def initialize(self) -> None:
        """Create the schema if it does not exist yet."""
        async with self._lock:
            if self._db_initialized:
                return
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            async with aiosqlite.connect(self.db_path) as db:
                await db.executescript(CREATE_TABLES)
                await db.commit()
            self._db_initialized = True
            logger.info(f"Profile storage initialized at {self.db_path}")

    async def get(self, key: str) -> Optional[str]:
        await self.initialize()
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                "SELECT value FROM profile_blobs WHERE key = ?", (key,)
            )
            row = await cursor.fetchone()
            return row[0] if row else None

    async def set(self, key: str, value: str) -> None:
        await self.initialize()
        now = datetime.datetime.now().isoformat()
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                "INSERT INTO profile_blobs (key, value, updated_at) VALUES (?, ?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value, "
                "updated_at = excluded.updated_at",
                (key, value, now),
            )
            await db.commit()

    async def delete(self, key: str) -> None:
        await self.initialize()
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("DELETE FROM profile_blobs WHERE key = ?", (key,))
            await db.commit()


class EncryptedStorage:
    """Encrypts blobs with Fernet before handing them to another backend."""

    def __init__(self, backend: StorageBackend, key: Union[str, bytes]) -> None:
        """Initialize the wrapper.

        Args:
            backend: Storage receiving the encrypted tokens
            key: URL-safe base64 Fernet key (see generate_key)
        """
        self.backend = backend
        self._fernet = Fernet(key)

    @staticmethod
    def generate_key() -> str:
        return Fernet.generate_key().decode("utf-8")

    async def get(self, key: str) -> Optional[str]:
        token = await self.backend.get(key)
        if token is None:
            return None
        try:
            return self._fernet.decrypt(token.encode("utf-8")).decode("utf-8")
        except InvalidToken as e:
            raise PrivacyError(
                f"Stored blob for {key} could not be decrypted",
                code=ErrorCode.ENCRYPTION_FAILED,
            ) from e

    async def set(self, key: str, value: str) -> None:
        token = self._fernet.encrypt(value.encode("utf-8")).decode("utf-8")
        await self.backend.set(key, token)

    async def delete(self, key: str) -> None:
        await self.backend.delete(key)
