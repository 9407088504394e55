"""Storage contracts for fragment metadata and content.

Metadata and content are two independent key-value stores addressed by
the same (owner_id, fragment_id) key. Each backend provides one
implementation of each protocol, and ``StorageContext`` bundles the
pair that a ``FragmentService`` works against.
"""

import logging
from dataclasses import dataclass
from typing import Literal, Protocol, final, overload, runtime_checkable

from fragstore.apps.fragments.exceptions import ImproperlyConfigured
from fragstore.apps.fragments.models import Fragment
from fragstore.settings.components import storages

logger = logging.getLogger(__name__)


@runtime_checkable
class MetadataStore(Protocol):
    """Key-value store of fragment metadata records."""

    def put(self, fragment: Fragment) -> None:
        """Store (or overwrite) a fragment's metadata.

        Raises:
            StorageError: If the backend write fails.
        """
        ...

    def get(self, owner_id: str, fragment_id: str) -> Fragment | None:
        """Read a fragment's metadata, or None when absent.

        Raises:
            StorageError: If the backend read fails.
        """
        ...

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
        """List an owner's fragment IDs, or full fragments when expanded.

        Raises:
            StorageError: If the backend query fails.
        """
        ...

    def delete(self, owner_id: str, fragment_id: str) -> None:
        """Remove a fragment's metadata.

        Raises:
            StorageError: If the backend delete fails.
        """
        ...


@runtime_checkable
class ObjectStore(Protocol):
    """Key-value store of raw fragment content."""

    def put(self, owner_id: str, fragment_id: str, data: bytes) -> None:
        """Store (or overwrite) a fragment's bytes exactly as given.

        Raises:
            StorageError: If the backend write fails.
        """
        ...

    def get(self, owner_id: str, fragment_id: str) -> bytes | None:
        """Read a fragment's bytes, or None when absent.

        Raises:
            StorageError: If the backend read fails.
        """
        ...

    def delete(self, owner_id: str, fragment_id: str) -> None:
        """Remove a fragment's bytes.

        Raises:
            StorageError: If the backend delete fails.
        """
        ...


@final
@dataclass(frozen=True, slots=True)
class StorageContext:
    """The metadata and object stores a service operates on."""

    metadata: MetadataStore
    objects: ObjectStore


def build_storage(backend: str | None = None) -> StorageContext:
    """Build the storage context for the configured backend.

    Args:
        backend: 'memory' or 'aws'. Defaults to the
            FRAGMENTS_STORAGE_BACKEND setting.

    Returns:
        StorageContext for the selected backend.

    Raises:
        ImproperlyConfigured: If the backend name is unknown.
    """
    backend = (backend or storages.FRAGMENTS_STORAGE_BACKEND).lower()
    logger.info('Using %s storage backend for fragments', backend)

    # Backend modules import StorageContext from here
    if backend == 'memory':
        from fragstore.apps.fragments.infrastructure.memory import (
            memory_storage,
        )
        return memory_storage()
    if backend == 'aws':
        from fragstore.apps.fragments.infrastructure.aws import aws_storage
        return aws_storage()

    raise ImproperlyConfigured(f'Unknown fragments storage backend: {backend}')
