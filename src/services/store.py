"""
Document store interface for the family sync layer.

Every service takes a DocumentStore at construction. Production wires in
FirebaseStore; tests and local development use InMemoryDocumentStore, which
behaves the same way for every call the services make.

Paths are slash-separated ("families/abc/..."). A collection is simply the
parent path of its documents.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional
import asyncio
import copy
import uuid


TransactionFn = Callable[[Optional[Any]], Optional[Any]]


def split_path(path: str):
    """Split a store path into its non-empty segments."""
    return [part for part in path.strip("/").split("/") if part]


class DocumentStore(ABC):
    """Async, path-addressed document store."""

    @abstractmethod
    async def get(self, path: str) -> Optional[Any]:
        """Read the value at path, or None if nothing is stored there."""

    @abstractmethod
    async def set(self, path: str, data: Any) -> None:
        """Replace the value at path."""

    @abstractmethod
    async def update(self, path: str, fields: Dict[str, Any]) -> None:
        """Merge fields into the document at path. A None value removes the field."""

    @abstractmethod
    async def delete(self, path: str) -> None:
        """Remove the value at path (no error if absent)."""

    @abstractmethod
    async def push(self, collection: str, data: Any) -> str:
        """Add a document under a new unique key and return the key."""

    @abstractmethod
    async def list(self, collection: str) -> Dict[str, Any]:
        """All documents in a collection, keyed by document key."""

    @abstractmethod
    async def find(self, collection: str, field: str, value: Any) -> Dict[str, Any]:
        """Documents in a collection whose field equals value."""

    @abstractmethod
    async def transaction(self, path: str, fn: TransactionFn) -> Optional[Any]:
        """
        Atomically replace the value at path with fn(current).

        fn may run more than once if another writer got there first, so it
        must be a pure function of its argument. Returns the committed value.
        """


class InMemoryDocumentStore(DocumentStore):
    """
    DocumentStore over nested dicts.

    Values are deep-copied in and out so callers can never mutate stored
    state by accident.
    """

    def __init__(self):
        self._root: Dict[str, Any] = {}
        self._lock = asyncio.Lock()

    def _node(self, parts, create: bool = False) -> Optional[Dict[str, Any]]:
        node = self._root
        for part in parts:
            child = node.get(part)
            if not isinstance(child, dict):
                if not create:
                    return None
                child = {}
                node[part] = child
            node = child
        return node

    def _read(self, path: str) -> Optional[Any]:
        parts = split_path(path)
        if not parts:
            return copy.deepcopy(self._root) or None
        parent = self._node(parts[:-1])
        if parent is None:
            return None
        value = parent.get(parts[-1])
        if value == {}:
            return None
        return copy.deepcopy(value)

    def _write(self, path: str, data: Any) -> None:
        parts = split_path(path)
        if not parts:
            raise ValueError("Cannot write to the store root")
        if data is None:
            self._remove(parts)
            return
        parent = self._node(parts[:-1], create=True)
        parent[parts[-1]] = copy.deepcopy(data)

    def _remove(self, parts) -> None:
        parent = self._node(parts[:-1])
        if parent is not None:
            parent.pop(parts[-1], None)

    async def get(self, path: str) -> Optional[Any]:
        return self._read(path)

    async def set(self, path: str, data: Any) -> None:
        self._write(path, data)

    async def update(self, path: str, fields: Dict[str, Any]) -> None:
        current = self._read(path)
        doc = current if isinstance(current, dict) else {}
        for key, value in fields.items():
            if value is None:
                doc.pop(key, None)
            else:
                doc[key] = copy.deepcopy(value)
        self._write(path, doc)

    async def delete(self, path: str) -> None:
        self._remove(split_path(path))

    async def push(self, collection: str, data: Any) -> str:
        key = uuid.uuid4().hex[:20]
        self._write(f"{collection}/{key}", data)
        return key

    async def list(self, collection: str) -> Dict[str, Any]:
        value = self._read(collection)
        return value if isinstance(value, dict) else {}

    async def find(self, collection: str, field: str, value: Any) -> Dict[str, Any]:
        docs = await self.list(collection)
        return {
            key: doc for key, doc in docs.items()
            if isinstance(doc, dict) and doc.get(field) == value
        }

    async def transaction(self, path: str, fn: TransactionFn) -> Optional[Any]:
        async with self._lock:
            new_value = fn(self._read(path))
            self._write(path, new_value)
            return copy.deepcopy(new_value)
