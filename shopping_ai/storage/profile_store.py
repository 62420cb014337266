"""
ProfileStore - Persistence for per-user behavior profiles.

One blob per user, keyed by ``shopping-behavior-<user_id>`` and always
replaced as a whole. Three backends share one async interface:

- InMemoryProfileStore: process-local, used by tests and the demo
- JsonFileProfileStore: one JSON file per user under a directory
- PostgresProfileStore: JSONB rows, psycopg2 with connection pooling

Blocking backends run on a worker thread so callers can await them.
"""

import asyncio
import json
import logging
import os
import re
import threading
import weakref
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, MutableMapping, Optional

import psycopg2
from psycopg2 import pool

from shopping_ai.utils.constants import PROFILE_KEY_PREFIX


logger = logging.getLogger(__name__)

# File names only; keeps user ids from escaping the data directory
_SAFE_FILE_KEY = re.compile(r"[A-Za-z0-9_.@-]+")

Blob = Dict[str, Any]


class ProfileStoreError(Exception):
    """Storage unavailable or a stored blob could not be decoded."""


def profile_key(user_id: str) -> str:
    """Stable storage key for a user's behavior blob."""
    return f"{PROFILE_KEY_PREFIX}{user_id}"


class ProfileStore(ABC):
    """
    Async key-value port for behavior blobs.

    Also owns one asyncio.Lock per user so read-modify-write cycles on
    the same profile run one at a time. Locks are held weakly and vanish
    once no caller is using them.
    """

    def __init__(self) -> None:
        self._locks: MutableMapping[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def lock_for(self, user_id: str) -> asyncio.Lock:
        """Per-user lock guarding a load-mutate-save cycle."""
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        return lock

    @abstractmethod
    async def load(self, user_id: str) -> Optional[Blob]:
        """
        Read a user's blob.

        Returns:
            Decoded blob, or None if the user has no stored profile

        Raises:
            ProfileStoreError: If storage fails or the blob is not valid JSON
        """

    @abstractmethod
    async def save(self, user_id: str, blob: Blob) -> None:
        """Replace a user's blob. Raises ProfileStoreError on failure."""

    @abstractmethod
    async def delete(self, user_id: str) -> bool:
        """Remove a user's blob. Returns True if one existed."""


class InMemoryProfileStore(ProfileStore):
    """Dict-backed store. Blobs are held as JSON text, like a real blob store."""

    def __init__(self) -> None:
        super().__init__()
        self._data: Dict[str, str] = {}

    async def load(self, user_id: str) -> Optional[Blob]:
        raw = self._data.get(profile_key(user_id))
        if raw is None:
            return None
        return _decode(raw, profile_key(user_id))

    async def save(self, user_id: str, blob: Blob) -> None:
        self._data[profile_key(user_id)] = json.dumps(blob)

    async def delete(self, user_id: str) -> bool:
        return self._data.pop(profile_key(user_id), None) is not None

    def put_raw(self, user_id: str, raw: str) -> None:
        """Store raw text as-is (lets callers seed damaged blobs)."""
        self._data[profile_key(user_id)] = raw

    def __contains__(self, user_id: str) -> bool:
        return profile_key(user_id) in self._data


class JsonFileProfileStore(ProfileStore):
    """One ``<key>.json`` file per user under a data directory."""

    def __init__(self, data_dir: str) -> None:
        super().__init__()
        self.data_dir = Path(data_dir)

    def _path(self, user_id: str) -> Path:
        key = profile_key(user_id)
        if not _SAFE_FILE_KEY.fullmatch(key):
            raise ProfileStoreError(f"Unsafe user id for file storage: {user_id!r}")
        return self.data_dir / f"{key}.json"

    async def load(self, user_id: str) -> Optional[Blob]:
        return await asyncio.to_thread(self._load_sync, user_id)

    async def save(self, user_id: str, blob: Blob) -> None:
        await asyncio.to_thread(self._save_sync, user_id, blob)

    async def delete(self, user_id: str) -> bool:
        return await asyncio.to_thread(self._delete_sync, user_id)

    def _load_sync(self, user_id: str) -> Optional[Blob]:
        path = self._path(user_id)
        if not path.exists():
            return None
        try:
            raw = path.read_text(encoding='utf-8')
        except OSError as e:
            raise ProfileStoreError(f"Could not read {path}: {e}") from e
        return _decode(raw, path.name)

    def _save_sync(self, user_id: str, blob: Blob) -> None:
        path = self._path(user_id)
        tmp_path = path.with_suffix('.json.tmp')
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(blob, indent=2), encoding='utf-8')
            # Atomic whole-blob replace
            tmp_path.replace(path)
        except OSError as e:
            raise ProfileStoreError(f"Could not write {path}: {e}") from e

    def _delete_sync(self, user_id: str) -> bool:
        path = self._path(user_id)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise ProfileStoreError(f"Could not delete {path}: {e}") from e
        return True


class PostgresProfileStore(ProfileStore):
    """
    PostgreSQL storage for behavior blobs.
    Why: Share learned profiles across devices and app instances.

    Nothing connects until the first load/save/delete. The pool and the
    table are then created once, and any driver error on the way
    surfaces as ProfileStoreError.
    """

    def __init__(self, connection_string: Optional[str] = None):
        """
        Initialize store with database connection settings.

        Args:
            connection_string: PostgreSQL connection string.
                             Defaults to DATABASE_URL env var.
        """
        super().__init__()
        self.connection_string = connection_string or os.getenv('DATABASE_URL')
        self._pool: Optional[pool.ThreadedConnectionPool] = None
        self._pool_lock = threading.Lock()

    def _get_connection(self):
        """Get a connection from the pool, creating pool and schema on first use."""
        with self._pool_lock:
            if not self._pool:
                new_pool = pool.ThreadedConnectionPool(
                    1, 10,  # min 1, max 10 connections
                    self.connection_string
                )
                try:
                    self._create_schema(new_pool)
                except psycopg2.Error:
                    new_pool.closeall()
                    raise
                self._pool = new_pool
        return self._pool.getconn()

    def _release_connection(self, conn):
        """Return connection to pool."""
        if self._pool:
            self._pool.putconn(conn)

    @staticmethod
    def _create_schema(db_pool) -> None:
        conn = db_pool.getconn()
        try:
            with conn.cursor() as cur:
                cur.execute("""
                    CREATE TABLE IF NOT EXISTS shopping_behavior_profiles (
                        profile_key TEXT PRIMARY KEY,
                        user_id TEXT NOT NULL,
                        behavior_data JSONB NOT NULL,
                        updated_at TIMESTAMP NOT NULL
                    );
                """)
                conn.commit()
        finally:
            db_pool.putconn(conn)

    def init_schema(self) -> None:
        """
        Connect and create the behavior profile table now.

        Raises:
            ProfileStoreError: If the database is unreachable
        """
        self._run(self._init_sync)

    def _init_sync(self) -> None:
        self._release_connection(self._get_connection())

    async def load(self, user_id: str) -> Optional[Blob]:
        return await asyncio.to_thread(self._run, self._load_sync, user_id)

    async def save(self, user_id: str, blob: Blob) -> None:
        await asyncio.to_thread(self._run, self._save_sync, user_id, blob)

    async def delete(self, user_id: str) -> bool:
        return await asyncio.to_thread(self._run, self._delete_sync, user_id)

    def _run(self, func, *args):
        """Call a sync DB operation, wrapping driver errors."""
        try:
            return func(*args)
        except psycopg2.Error as e:
            raise ProfileStoreError(f"Database error: {e}") from e

    def _load_sync(self, user_id: str) -> Optional[Blob]:
        conn = self._get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT behavior_data FROM shopping_behavior_profiles "
                    "WHERE profile_key = %s",
                    (profile_key(user_id),)
                )
                row = cur.fetchone()
                if not row:
                    return None
                data = row[0]
                if isinstance(data, str):
                    return _decode(data, profile_key(user_id))
                return data
        finally:
            self._release_connection(conn)

    def _save_sync(self, user_id: str, blob: Blob) -> None:
        conn = self._get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute("""
                    INSERT INTO shopping_behavior_profiles (
                        profile_key, user_id, behavior_data, updated_at
                    ) VALUES (%s, %s, %s, %s)
                    ON CONFLICT (profile_key) DO UPDATE SET
                        behavior_data = EXCLUDED.behavior_data,
                        updated_at = EXCLUDED.updated_at
                """, (
                    profile_key(user_id),
                    user_id,
                    json.dumps(blob),
                    datetime.utcnow(),
                ))
                conn.commit()
        finally:
            self._release_connection(conn)

    def _delete_sync(self, user_id: str) -> bool:
        conn = self._get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(
                    "DELETE FROM shopping_behavior_profiles WHERE profile_key = %s",
                    (profile_key(user_id),)
                )
                conn.commit()
                return cur.rowcount > 0
        finally:
            self._release_connection(conn)

    def close(self) -> None:
        """Close all connections in the pool."""
        with self._pool_lock:
            if self._pool:
                self._pool.closeall()
                self._pool = None


def _decode(raw: str, source: str) -> Blob:
    try:
        blob = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ProfileStoreError(f"Corrupt profile blob in {source}: {e}") from e
    if not isinstance(blob, dict):
        raise ProfileStoreError(f"Corrupt profile blob in {source}: not an object")
    return blob


def store_from_env() -> ProfileStore:
    """
    Pick a backend from the environment.

    DATABASE_URL -> PostgresProfileStore, SHOPPING_AI_DATA_DIR ->
    JsonFileProfileStore, otherwise an in-memory store.
    """
    database_url = os.getenv('DATABASE_URL')
    if database_url:
        logger.info("Using PostgreSQL profile store")
        return PostgresProfileStore(database_url)

    data_dir = os.getenv('SHOPPING_AI_DATA_DIR')
    if data_dir:
        logger.info("Using JSON file profile store at %s", data_dir)
        return JsonFileProfileStore(data_dir)

    logger.info("Using in-memory profile store")
    return InMemoryProfileStore()
