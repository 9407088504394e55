"""Tests for the in-memory storage backend."""

import threading

import pytest

from fragstore.apps.fragments.exceptions import StorageError
from fragstore.apps.fragments.infrastructure.memory import (
    MemoryDB,
    MemoryMetadataStore,
    MemoryObjectStore,
    memory_storage,
    reset,
)
from fragstore.apps.fragments.infrastructure.storage import (
    MetadataStore,
    ObjectStore,
    StorageContext,
)
from fragstore.apps.fragments.models import Fragment


@pytest.fixture
def db():
    """Empty MemoryDB.

    Returns:
        MemoryDB instance.
    """
    return MemoryDB()


def test_memory_db_put_get(db):
    """Test values are stored under both keys."""
    db.put('a', 'b', 123)

    assert db.get('a', 'b') == 123
    assert db.get('a', 'c') is None
    assert db.get('z', 'b') is None


def test_memory_db_query_insertion_order(db):
    """Test query returns values in insertion order for one primary key."""
    db.put('a', 'x', 1)
    db.put('a', 'y', 2)
    db.put('b', 'x', 3)
    db.put('a', 'z', 4)

    assert db.query('a') == [1, 2, 4]
    assert db.query('missing') == []


def test_memory_db_delete(db):
    """Test delete removes a value."""
    db.put('a', 'b', 1)

    db.delete('a', 'b')

    assert db.get('a', 'b') is None
    assert db.query('a') == []


def test_memory_db_delete_missing(db):
    """Test deleting a missing key is an error."""
    with pytest.raises(StorageError, match='missing entry for primaryKey=a'):
        db.delete('a', 'b')


@pytest.mark.parametrize(('primary_key', 'secondary_key'), [
    (None, 'b'),
    ('a', None),
    (1, 2),
])
def test_memory_db_requires_string_keys(db, primary_key, secondary_key):
    """Test non-string keys are rejected."""
    with pytest.raises(StorageError):
        db.put(primary_key, secondary_key, 1)


def test_memory_db_concurrent_puts(db):
    """Test concurrent writers do not lose inserts."""
    def writer(start):
        for index in range(start, start + 200):
            db.put('owner', f'id-{index}', index)

    threads = [
        threading.Thread(target=writer, args=(offset * 200,))
        for offset in range(8)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(db.query('owner')) == 1600


def test_metadata_store_roundtrip(owner):
    """Test metadata survives the JSON record contract."""
    store = MemoryMetadataStore()
    fragment = Fragment(owner_id=owner, type='text/plain', size=3)

    store.put(fragment)

    assert store.get(owner, fragment.id) == fragment
    assert store.get(owner, fragment.id) is not fragment


def test_metadata_store_query(owner, other_owner):
    """Test query lists only the owner's fragments."""
    store = MemoryMetadataStore()
    first = Fragment(owner_id=owner, type='text/plain')
    second = Fragment(owner_id=owner, type='text/markdown')
    store.put(first)
    store.put(second)
    store.put(Fragment(owner_id=other_owner, type='text/plain'))

    assert store.query(owner) == [first.id, second.id]
    assert store.query(owner, expand=True) == [first, second]


def test_object_store_copies_bytes(owner):
    """Test stored content is an exact, independent copy."""
    store = MemoryObjectStore()
    data = bytearray(b'hello')

    store.put(owner, 'frag', data)
    data[0] = ord('j')

    assert store.get(owner, 'frag') == b'hello'


def test_object_store_delete_missing(owner):
    """Test deleting missing content is an error."""
    store = MemoryObjectStore()

    with pytest.raises(StorageError, match='missing entry'):
        store.delete(owner, 'nope')


def test_memory_storage_context():
    """Test the factory builds fresh stores satisfying the protocols."""
    storage = memory_storage()

    assert isinstance(storage, StorageContext)
    assert isinstance(storage.metadata, MetadataStore)
    assert isinstance(storage.objects, ObjectStore)
    assert memory_storage().metadata is not storage.metadata


def test_reset(owner):
    """Test reset clears both stores."""
    storage = memory_storage()
    fragment = Fragment(owner_id=owner, type='text/plain')
    storage.metadata.put(fragment)
    storage.objects.put(owner, fragment.id, b'data')

    reset(storage)

    assert storage.metadata.get(owner, fragment.id) is None
    assert storage.objects.get(owner, fragment.id) is None


def test_reset_rejects_other_backends():
    """Test reset only applies to memory stores."""
    storage = StorageContext(metadata=object(), objects=object())

    with pytest.raises(TypeError):
        reset(storage)
