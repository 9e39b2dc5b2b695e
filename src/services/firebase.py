"""
Firebase service for Spelling Word Collector

DocumentStore implementation over the Firebase Realtime Database. Holds the
shared family store: family records, word lists, profiles, sessions, streaks.
"""

import firebase_admin
from firebase_admin import credentials, db
from firebase_admin.exceptions import FirebaseError
from typing import Optional, Dict, Any
import os
import time
import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor

from src.services.errors import StoreUnavailableError
from src.services.store import DocumentStore, TransactionFn

logger = logging.getLogger(__name__)

# Firebase keys cannot contain: . $ # [ ] /
# Encoded reversibly so a word like "Mr." survives as a sentence key.
_KEY_ESCAPES = {
    "%": "%25",
    ".": "%2E",
    "$": "%24",
    "#": "%23",
    "[": "%5B",
    "]": "%5D",
    "/": "%2F",
}


def encode_firebase_key(key: str) -> str:
    """Escape characters Firebase refuses in keys."""
    if not isinstance(key, str):
        key = str(key)
    return "".join(_KEY_ESCAPES.get(ch, ch) for ch in key)


def decode_firebase_key(key: str) -> str:
    """Undo encode_firebase_key."""
    if "%" not in key:
        return key
    for raw, escaped in reversed(list(_KEY_ESCAPES.items())):
        key = key.replace(escaped, raw)
    return key


def encode_firebase_data(data: Any) -> Any:
    """
    Recursively encode dict keys for Firebase storage.
    Skips empty keys, which Firebase rejects outright.
    """
    if isinstance(data, dict):
        return {
            encode_firebase_key(k): encode_firebase_data(v)
            for k, v in data.items()
            if k
        }
    elif isinstance(data, list):
        return [encode_firebase_data(item) for item in data]
    else:
        return data


def decode_firebase_data(data: Any) -> Any:
    """Recursively decode dict keys read back from Firebase."""
    if isinstance(data, dict):
        return {decode_firebase_key(k): decode_firebase_data(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [decode_firebase_data(item) for item in data]
    else:
        return data


class FirebaseStore(DocumentStore):
    """DocumentStore for the Firebase Realtime Database"""

    def __init__(self, database_url: str, credentials_dict: Optional[Dict[str, Any]] = None,
                 credentials_path: Optional[str] = None, logger=None):
        """
        Initialize Firebase store.

        Args:
            database_url: Firebase Realtime Database URL
            credentials_dict: Optional dict with Firebase credentials (project_id, client_email, private_key)
            credentials_path: Optional path to Firebase service account JSON
            logger: Optional SpellingLogger for storage debug logging
        """
        self.database_url = database_url
        self.credentials_dict = credentials_dict
        self.credentials_path = credentials_path
        self.logger = logger
        self._initialized = False
        self.db = None
        # Thread pool for async Firebase operations (firebase_admin is synchronous)
        self._executor = ThreadPoolExecutor(max_workers=10, thread_name_prefix="firebase")

    async def _run_sync(self, func, *args, **kwargs):
        """Run a synchronous Firebase operation in the thread pool to avoid blocking."""
        if not self._initialized:
            raise StoreUnavailableError("Firebase store used before initialize()")
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(self._executor, lambda: func(*args, **kwargs))
        except (FirebaseError, db.TransactionAbortedError, ValueError, OSError) as e:
            raise StoreUnavailableError(f"Firebase call failed: {e}") from e

    def shutdown(self):
        """Shutdown the thread pool executor. Call during app shutdown."""
        if self._executor:
            self._executor.shutdown(wait=True)
            self._executor = None

    def initialize(self):
        """Initialize Firebase app (call once at startup)"""
        if self._initialized:
            return

        try:
            # Check if app already exists
            firebase_admin.get_app()
            logger.info("Firebase app already initialized")
        except ValueError:
            if self.credentials_dict:
                logger.info("Initializing Firebase with credentials from environment variables")
                cred = credentials.Certificate(self.credentials_dict)
            elif self.credentials_path and os.path.exists(self.credentials_path):
                # Path redacted for security
                logger.info("Initializing Firebase with credentials file: [REDACTED]")
                cred = credentials.Certificate(self.credentials_path)
            else:
                logger.info("Initializing Firebase with Application Default Credentials")
                cred = credentials.ApplicationDefault()

            firebase_admin.initialize_app(cred, {
                'databaseURL': self.database_url
            })

        self._initialized = True
        self.db = db.reference()

    def _ref(self, path: str):
        return self.db.child(path.strip("/"))

    def _log_write(self, operation: str, path: str, data: Any, start_time: float):
        if self.logger:
            self.logger.storage_operation(
                operation=operation,
                path=path,
                data_summary=type(data).__name__,
                size_bytes=len(str(data)) if data is not None else 0,
                duration=time.time() - start_time
            )

    def _log_read(self, path: str, data: Any, start_time: float):
        if self.logger:
            self.logger.storage_read(
                path=path,
                result_summary="found" if data else "not found",
                size_bytes=len(str(data)) if data else 0,
                duration=time.time() - start_time
            )

    # ========================================================================
    # DocumentStore
    # ========================================================================

    async def get(self, path: str) -> Optional[Any]:
        start_time = time.time()
        data = await self._run_sync(lambda: self._ref(path).get())
        self._log_read(path, data, start_time)
        if data is None:
            return None
        return decode_firebase_data(data)

    async def set(self, path: str, data: Any) -> None:
        start_time = time.time()
        encoded = encode_firebase_data(data)
        await self._run_sync(lambda: self._ref(path).set(encoded))
        self._log_write("set", path, encoded, start_time)

    async def update(self, path: str, fields: Dict[str, Any]) -> None:
        # Firebase update() removes children whose value is None
        start_time = time.time()
        encoded = encode_firebase_data(fields)
        await self._run_sync(lambda: self._ref(path).update(encoded))
        self._log_write("update", path, encoded, start_time)

    async def delete(self, path: str) -> None:
        start_time = time.time()
        await self._run_sync(lambda: self._ref(path).delete())
        self._log_write("delete", path, None, start_time)

    async def push(self, collection: str, data: Any) -> str:
        start_time = time.time()
        encoded = encode_firebase_data(data)
        new_ref = await self._run_sync(lambda: self._ref(collection).push(encoded))
        self._log_write("push", f"{collection}/{new_ref.key}", encoded, start_time)
        return new_ref.key

    async def list(self, collection: str) -> Dict[str, Any]:
        data = await self.get(collection)
        return data if isinstance(data, dict) else {}

    async def find(self, collection: str, field: str, value: Any) -> Dict[str, Any]:
        # Needs ".indexOn": [field] in the database rules for large collections
        start_time = time.time()
        data = await self._run_sync(
            lambda: self._ref(collection).order_by_child(field).equal_to(value).get()
        )
        self._log_read(f"{collection}?{field}={value}", data, start_time)
        if not data:
            return {}
        return {decode_firebase_key(k): decode_firebase_data(v) for k, v in dict(data).items()}

    async def transaction(self, path: str, fn: TransactionFn) -> Optional[Any]:
        start_time = time.time()

        def _apply(current):
            result = fn(decode_firebase_data(current) if current is not None else None)
            return encode_firebase_data(result) if result is not None else None

        committed = await self._run_sync(lambda: self._ref(path).transaction(_apply))
        self._log_write("transaction", path, committed, start_time)
        if committed is None:
            return None
        return decode_firebase_data(committed)
