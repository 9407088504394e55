"""Shared fixtures for fragments app tests."""

import io

import boto3
import pytest
from moto import mock_aws
from PIL import Image

from fragstore.apps.fragments.infrastructure import aws
from fragstore.apps.fragments.infrastructure.memory import memory_storage
from fragstore.apps.fragments.logic.fragment_operations import FragmentService

_REGION = 'us-east-1'
_TABLE_NAME = 'fragments-test'
_BUCKET_NAME = 'fragments-test'


@pytest.fixture
def owner():
    """Owner ID of the primary test user.

    Returns:
        Opaque owner ID (hashed email in production).
    """
    return '11d4c22e42c8f61feaba154683dea407b101cfd90987dda9e342843263ca420a'


@pytest.fixture
def other_owner():
    """Owner ID of a second user for isolation tests.

    Returns:
        A different opaque owner ID.
    """
    return 'c4b3f1e7a0d94c2b8e5f6a7d8c9b0a1e2f3d4c5b6a7e8f9d0c1b2a3e4f5d6c7b'


@pytest.fixture
def aws_settings(monkeypatch):
    """Point the AWS settings and credentials at test values.

    Args:
        monkeypatch: pytest monkeypatch fixture.
    """
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_SESSION_TOKEN', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', _REGION)
    monkeypatch.setattr(aws.storages, 'AWS_REGION', _REGION)
    monkeypatch.setattr(aws.storages, 'AWS_DYNAMODB_TABLE_NAME', _TABLE_NAME)
    monkeypatch.setattr(aws.storages, 'AWS_DYNAMODB_ENDPOINT_URL', None)
    monkeypatch.setattr(aws.storages, 'AWS_S3_BUCKET_NAME', _BUCKET_NAME)
    monkeypatch.setattr(aws.storages, 'AWS_S3_ENDPOINT_URL', None)


@pytest.fixture
def mock_aws_resources(aws_settings):
    """Mock DynamoDB and S3 with the fragments table and bucket.

    Yields:
        Tuple of (DynamoDB Table resource, S3 client).
    """
    with mock_aws():
        dynamodb = boto3.resource('dynamodb', region_name=_REGION)
        table = dynamodb.create_table(
            TableName=_TABLE_NAME,
            KeySchema=[
                {'AttributeName': 'ownerId', 'KeyType': 'HASH'},
                {'AttributeName': 'id', 'KeyType': 'RANGE'},
            ],
            AttributeDefinitions=[
                {'AttributeName': 'ownerId', 'AttributeType': 'S'},
                {'AttributeName': 'id', 'AttributeType': 'S'},
            ],
            BillingMode='PAY_PER_REQUEST',
        )
        s3_client = boto3.client('s3', region_name=_REGION)
        s3_client.create_bucket(Bucket=_BUCKET_NAME)

        yield table, s3_client


@pytest.fixture(params=['memory', 'aws'])
def storage(request):
    """Storage context for each backend.

    Tests using this fixture run once per backend, checking that both
    honour the same contract.

    Returns:
        StorageContext for the current backend.
    """
    if request.param == 'memory':
        return memory_storage()
    request.getfixturevalue('mock_aws_resources')
    return aws.aws_storage()


@pytest.fixture
def service(storage):
    """Fragment service over the parametrized storage backend.

    Returns:
        FragmentService instance.
    """
    return FragmentService(storage)


def encode_image(image_format, size=(1, 1), mode='RGB'):
    """Encode a solid-color image.

    Args:
        image_format: Pillow format name (e.g., 'PNG').
        size: Width and height in pixels.
        mode: Pillow image mode.

    Returns:
        Encoded image bytes.
    """
    image = Image.new(mode, size, color='red')
    output = io.BytesIO()
    image.save(output, format=image_format)
    return output.getvalue()


@pytest.fixture
def png_bytes():
    """A 1x1 pixel PNG image.

    Returns:
        PNG bytes.
    """
    return encode_image('PNG')


@pytest.fixture
def image_factory():
    """Factory for encoded test images.

    Returns:
        The ``encode_image`` function.
    """
    return encode_image
