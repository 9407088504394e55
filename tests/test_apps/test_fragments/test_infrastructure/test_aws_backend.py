"""Tests for the DynamoDB + S3 storage backend (mocked with moto)."""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from fragstore.apps.fragments.exceptions import StorageError
from fragstore.apps.fragments.infrastructure.aws import (
    DynamoMetadataStore,
    S3ObjectStore,
    aws_storage,
    object_key,
)
from fragstore.apps.fragments.infrastructure.serialization import SCHEMA_VERSION
from fragstore.apps.fragments.models import Fragment


@pytest.fixture
def metadata_store(mock_aws_resources):
    """DynamoDB metadata store over the mocked table.

    Returns:
        DynamoMetadataStore instance.
    """
    table, _ = mock_aws_resources
    return DynamoMetadataStore(table)


@pytest.fixture
def object_store(mock_aws_resources):
    """S3 object store over the mocked bucket.

    Returns:
        S3ObjectStore instance.
    """
    _, s3_client = mock_aws_resources
    return S3ObjectStore(s3_client, 'fragments-test')


def _client_error(code):
    return ClientError({'Error': {'Code': code, 'Message': code}}, 'Operation')


def test_object_key():
    """Test content keys are '{owner}/{id}' paths."""
    assert object_key('owner', 'frag') == 'owner/frag'


def test_put_writes_structured_item(metadata_store, mock_aws_resources, owner):
    """Test metadata is stored as an explicit record keyed by owner and id."""
    table, _ = mock_aws_resources
    fragment = Fragment(owner_id=owner, type='text/plain', size=13)

    metadata_store.put(fragment)

    item = table.get_item(Key={'ownerId': owner, 'id': fragment.id})['Item']
    assert item['schemaVersion'] == Decimal(SCHEMA_VERSION)
    assert item['type'] == 'text/plain'
    assert item['size'] == Decimal(13)


def test_get_roundtrip(metadata_store, owner):
    """Test metadata reads back as an equal fragment."""
    fragment = Fragment(owner_id=owner, type='application/json', size=7)
    metadata_store.put(fragment)

    assert metadata_store.get(owner, fragment.id) == fragment


def test_get_missing_returns_none(metadata_store, owner):
    """Test absence is None, not an error."""
    assert metadata_store.get(owner, 'missing') is None


def test_query_ids_and_expanded(metadata_store, owner, other_owner):
    """Test query returns the owner's ids, or fragments when expanded."""
    first = Fragment(owner_id=owner, type='text/plain')
    second = Fragment(owner_id=owner, type='text/csv')
    metadata_store.put(first)
    metadata_store.put(second)
    metadata_store.put(Fragment(owner_id=other_owner, type='text/plain'))

    assert sorted(metadata_store.query(owner)) == sorted([first.id, second.id])
    expanded = metadata_store.query(owner, expand=True)
    assert sorted(fragment.id for fragment in expanded) == sorted(
        [first.id, second.id],
    )
    assert metadata_store.query('nobody') == []


def test_query_follows_pagination(owner):
    """Test every page of a query is collected."""
    table = MagicMock()
    table.query.side_effect = [
        {'Items': [{'id': 'a'}], 'LastEvaluatedKey': {'id': 'a'}},
        {'Items': [{'id': 'b'}]},
    ]
    store = DynamoMetadataStore(table)

    assert store.query(owner) == ['a', 'b']
    assert table.query.call_args_list[1].kwargs['ExclusiveStartKey'] == {'id': 'a'}


def test_delete_metadata(metadata_store, owner):
    """Test delete removes the item and tolerates absence."""
    fragment = Fragment(owner_id=owner, type='text/plain')
    metadata_store.put(fragment)

    metadata_store.delete(owner, fragment.id)
    metadata_store.delete(owner, fragment.id)

    assert metadata_store.get(owner, fragment.id) is None


@pytest.mark.parametrize('method', ['put_item', 'get_item', 'query', 'delete_item'])
def test_dynamo_errors_become_storage_errors(method, owner):
    """Test DynamoDB client errors are classified as StorageError."""
    table = MagicMock()
    getattr(table, method).side_effect = _client_error('InternalServerError')
    store = DynamoMetadataStore(table)
    fragment = Fragment(owner_id=owner, type='text/plain')
    calls = {
        'put_item': lambda: store.put(fragment),
        'get_item': lambda: store.get(owner, fragment.id),
        'query': lambda: store.query(owner),
        'delete_item': lambda: store.delete(owner, fragment.id),
    }

    with pytest.raises(StorageError) as exc_info:
        calls[method]()

    assert isinstance(exc_info.value.__cause__, ClientError)


def test_object_roundtrip(object_store, mock_aws_resources, owner):
    """Test content is stored byte-for-byte under the composite key."""
    _, s3_client = mock_aws_resources
    data = bytes(range(256))

    object_store.put(owner, 'frag', data)

    assert object_store.get(owner, 'frag') == data
    stored = s3_client.get_object(Bucket='fragments-test', Key=f'{owner}/frag')
    assert stored['Body'].read() == data


def test_object_missing_returns_none(object_store, owner):
    """Test missing content is None, not an error."""
    assert object_store.get(owner, 'missing') is None


def test_object_delete(object_store, owner):
    """Test delete removes content and tolerates absence."""
    object_store.put(owner, 'frag', b'data')

    object_store.delete(owner, 'frag')
    object_store.delete(owner, 'frag')

    assert object_store.get(owner, 'frag') is None


def test_object_read_error_becomes_storage_error(owner):
    """Test errors other than a missing key are StorageError."""
    client = MagicMock()
    client.get_object.side_effect = _client_error('AccessDenied')
    store = S3ObjectStore(client, 'bucket')

    with pytest.raises(StorageError, match='unable to read fragment data'):
        store.get(owner, 'frag')


def test_object_upload_error_becomes_storage_error(owner):
    """Test upload failures are StorageError."""
    client = MagicMock()
    client.put_object.side_effect = _client_error('NoSuchBucket')
    store = S3ObjectStore(client, 'bucket')

    with pytest.raises(StorageError, match='unable to upload fragment data'):
        store.put(owner, 'frag', b'data')


def test_missing_bucket_is_storage_error(mock_aws_resources, owner):
    """Test a real (mocked) S3 failure is classified."""
    _, s3_client = mock_aws_resources
    store = S3ObjectStore(s3_client, 'no-such-bucket')

    with pytest.raises(StorageError):
        store.put(owner, 'frag', b'data')


def test_aws_storage_uses_settings(mock_aws_resources, owner):
    """Test the factory wires the configured table and bucket."""
    storage = aws_storage()
    fragment = Fragment(owner_id=owner, type='text/plain', size=4)

    storage.metadata.put(fragment)
    storage.objects.put(owner, fragment.id, b'data')

    assert storage.objects.bucket_name == 'fragments-test'
    assert storage.metadata.get(owner, fragment.id) == fragment
    assert storage.objects.get(owner, fragment.id) == b'data'
