"""Versioned metadata record contract shared by all storage backends.

Metadata never crosses the storage boundary as a live Fragment. It is
converted to a ``FragmentItem`` with a fixed set of keys and an explicit
schema version, and converted back (with full validation) on read.
"""

import json
from typing import Final, TypedDict

from fragstore.apps.fragments.exceptions import FragmentError, StorageError
from fragstore.apps.fragments.models import Fragment

SCHEMA_VERSION: Final = 1

_ITEM_KEYS: Final = frozenset(
    ('schemaVersion', 'id', 'ownerId', 'type', 'size', 'created', 'updated'),
)


class FragmentItem(TypedDict):
    """Stored shape of fragment metadata."""

    schemaVersion: int  # noqa: N815
    id: str
    ownerId: str  # noqa: N815
    type: str
    size: int
    created: str
    updated: str


def serialize_fragment(fragment: Fragment) -> FragmentItem:
    """Convert a fragment to its stored record.

    Args:
        fragment: Fragment to store.

    Returns:
        FragmentItem with ISO-8601 timestamps.
    """
    return FragmentItem(
        schemaVersion=SCHEMA_VERSION,
        id=fragment.id,
        ownerId=fragment.owner_id,
        type=fragment.type,
        size=fragment.size,
        created=fragment.created.isoformat(),
        updated=fragment.updated.isoformat(),
    )


def deserialize_fragment(item: dict[str, object]) -> Fragment:
    """Rebuild a fragment from a stored record.

    DynamoDB returns numbers as Decimal, so ``size`` and
    ``schemaVersion`` are coerced to int before validation.

    Args:
        item: Stored record.

    Returns:
        Validated Fragment.

    Raises:
        StorageError: If the record is malformed or has an unknown
            schema version.
    """
    missing = _ITEM_KEYS - item.keys()
    if missing:
        raise StorageError(
            f'Stored fragment record missing fields: {sorted(missing)}',
        )

    version = _as_int(item['schemaVersion'])
    if version != SCHEMA_VERSION:
        raise StorageError(
            f'Unsupported fragment record schema version: {version}',
        )

    try:
        return Fragment(
            id=str(item['id']),
            owner_id=str(item['ownerId']),
            type=str(item['type']),
            size=_as_int(item['size']),
            created=str(item['created']),
            updated=str(item['updated']),
        )
    except FragmentError as error:
        raise StorageError(f'Stored fragment record is invalid: {error}') from error


def dumps_fragment(fragment: Fragment) -> str:
    """Encode a fragment's stored record as JSON text."""
    return json.dumps(serialize_fragment(fragment))


def loads_fragment(raw: str) -> Fragment:
    """Decode JSON text produced by ``dumps_fragment``.

    Raises:
        StorageError: If the text is not a valid record.
    """
    try:
        item = json.loads(raw)
    except json.JSONDecodeError as error:
        raise StorageError('Stored fragment record is not valid JSON') from error
    if not isinstance(item, dict):
        raise StorageError('Stored fragment record is not an object')
    return deserialize_fragment(item)


def _as_int(value: object) -> int:
    try:
        return int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError) as error:
        raise StorageError(f'Expected a number, got {value!r}') from error
