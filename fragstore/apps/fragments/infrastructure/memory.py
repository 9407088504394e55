"""Ephemeral in-process storage backend.

Intended for tests and short-lived runs: everything is lost on process
restart or ``reset()``. Metadata is kept as JSON text so that it goes
through the same record contract as the durable backend.
"""

import logging
import threading
from typing import Generic, Literal, TypeVar, final, overload

from fragstore.apps.fragments.exceptions import StorageError
from fragstore.apps.fragments.infrastructure.serialization import (
    dumps_fragment,
    loads_fragment,
)
from fragstore.apps.fragments.infrastructure.storage import StorageContext
from fragstore.apps.fragments.models import Fragment

logger = logging.getLogger(__name__)

_ValueT = TypeVar('_ValueT')


@final
class MemoryDB(Generic[_ValueT]):
    """Two-level key-value map: primary key -> secondary key -> value.

    Every access holds the map's own lock, so concurrent callers never
    lose an insert or delete. Query results keep insertion order.
    """

    def __init__(self) -> None:
        """Create an empty map."""
        self._db: dict[str, dict[str, _ValueT]] = {}
        self._lock = threading.Lock()

    def put(self, primary_key: str, secondary_key: str, value: _ValueT) -> None:
        """Store a value, replacing any existing one.

        Args:
            primary_key: Partition key (owner ID).
            secondary_key: Item key (fragment ID).
            value: Value to store.
        """
        _validate_keys(primary_key, secondary_key)
        with self._lock:
            self._db.setdefault(primary_key, {})[secondary_key] = value

    def get(self, primary_key: str, secondary_key: str) -> _ValueT | None:
        """Read a value.

        Args:
            primary_key: Partition key (owner ID).
            secondary_key: Item key (fragment ID).

        Returns:
            Stored value, or None if absent.
        """
        _validate_keys(primary_key, secondary_key)
        with self._lock:
            return self._db.get(primary_key, {}).get(secondary_key)

    def query(self, primary_key: str) -> list[_ValueT]:
        """List every value under a primary key.

        Args:
            primary_key: Partition key (owner ID).

        Returns:
            Values in insertion order.
        """
        if not isinstance(primary_key, str):
            raise StorageError('primary_key string is required')
        with self._lock:
            return list(self._db.get(primary_key, {}).values())

    def delete(self, primary_key: str, secondary_key: str) -> None:
        """Remove a value.

        Args:
            primary_key: Partition key (owner ID).
            secondary_key: Item key (fragment ID).

        Raises:
            StorageError: If there is no value for the key.
        """
        _validate_keys(primary_key, secondary_key)
        with self._lock:
            entries = self._db.get(primary_key)
            if entries is None or secondary_key not in entries:
                raise StorageError(
                    f'missing entry for primaryKey={primary_key} '
                    f'and secondaryKey={secondary_key}',
                )
            del entries[secondary_key]
            if not entries:
                del self._db[primary_key]

    def clear(self) -> None:
        """Drop every stored value."""
        with self._lock:
            self._db.clear()


def _validate_keys(primary_key: object, secondary_key: object) -> None:
    if not isinstance(primary_key, str) or not isinstance(secondary_key, str):
        raise StorageError('primary_key and secondary_key strings are required')


@final
class MemoryMetadataStore:
    """Metadata store backed by a ``MemoryDB`` of JSON records."""

    def __init__(self) -> None:
        """Create an empty store."""
        self._db: MemoryDB[str] = MemoryDB()

    def put(self, fragment: Fragment) -> None:
        """Store a fragment's metadata record."""
        logger.debug(
            'Writing fragment metadata: owner=%s, id=%s',
            fragment.owner_id,
            fragment.id,
        )
        self._db.put(fragment.owner_id, fragment.id, dumps_fragment(fragment))

    def get(self, owner_id: str, fragment_id: str) -> Fragment | None:
        """Read a fragment's metadata record."""
        raw = self._db.get(owner_id, fragment_id)
        if raw is None:
            logger.debug(
                'Fragment metadata not found: owner=%s, id=%s',
                owner_id,
                fragment_id,
            )
            return None
        return loads_fragment(raw)

    @overload
    def query(
        self,
        owner_id: str,
        expand: Literal[False] = False,
    ) -> list[str]: ...

    @overload
    def query(self, owner_id: str, expand: Literal[True]) -> list[Fragment]: ...

    def query(
        self,
        owner_id: str,
        expand: bool = False,
    ) -> list[str] | list[Fragment]:
        """List an owner's fragments in insertion order."""
        fragments = [loads_fragment(raw) for raw in self._db.query(owner_id)]
        logger.debug(
            'Found %d fragments: owner=%s, expand=%s',
            len(fragments),
            owner_id,
            expand,
        )
        if expand:
            return fragments
        return [fragment.id for fragment in fragments]

    def delete(self, owner_id: str, fragment_id: str) -> None:
        """Remove a fragment's metadata record.

        Raises:
            StorageError: If the record does not exist.
        """
        self._db.delete(owner_id, fragment_id)

    def reset(self) -> None:
        """Drop every record."""
        self._db.clear()


@final
class MemoryObjectStore:
    """Object store backed by a ``MemoryDB`` of bytes."""

    def __init__(self) -> None:
        """Create an empty store."""
        self._db: MemoryDB[bytes] = MemoryDB()

    def put(self, owner_id: str, fragment_id: str, data: bytes) -> None:
        """Store a copy of the given bytes."""
        logger.debug(
            'Writing fragment data: owner=%s, id=%s, size=%d',
            owner_id,
            fragment_id,
            len(data),
        )
        self._db.put(owner_id, fragment_id, bytes(data))

    def get(self, owner_id: str, fragment_id: str) -> bytes | None:
        """Read the stored bytes."""
        return self._db.get(owner_id, fragment_id)

    def delete(self, owner_id: str, fragment_id: str) -> None:
        """Remove the stored bytes.

        Raises:
            StorageError: If nothing is stored for the key.
        """
        self._db.delete(owner_id, fragment_id)

    def reset(self) -> None:
        """Drop every stored object."""
        self._db.clear()


def memory_storage() -> StorageContext:
    """Build a fresh, empty in-memory storage context.

    Returns:
        StorageContext over new memory metadata and object stores.
    """
    return StorageContext(
        metadata=MemoryMetadataStore(),
        objects=MemoryObjectStore(),
    )


def reset(storage: StorageContext) -> None:
    """Clear both stores of an in-memory storage context.

    Args:
        storage: Context built by ``memory_storage``.

    Raises:
        TypeError: If the context does not use the memory backend.
    """
    metadata = storage.metadata
    objects = storage.objects
    if not isinstance(metadata, MemoryMetadataStore) or not isinstance(
        objects,
        MemoryObjectStore,
    ):
        raise TypeError('reset() only applies to the memory backend')
    metadata.reset()
    objects.reset()
