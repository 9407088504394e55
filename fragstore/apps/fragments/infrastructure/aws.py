"""Durable storage backend: DynamoDB for metadata, S3 for content.

DynamoDB table layout: partition key ``ownerId``, sort key ``id``.
S3 object key: ``{owner_id}/{fragment_id}``.

Every botocore failure is logged and re-raised as ``StorageError``.
Missing items are reported as None, never as errors.
"""

import logging
from typing import Any, Final, Literal, final, overload

import boto3
from boto3.dynamodb.conditions import Key
from botocore.client import BaseClient
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from fragstore.apps.fragments.exceptions import StorageError
from fragstore.apps.fragments.infrastructure.serialization import (
    deserialize_fragment,
    serialize_fragment,
)
from fragstore.apps.fragments.infrastructure.storage import StorageContext
from fragstore.apps.fragments.models import Fragment
from fragstore.settings.components import storages

logger = logging.getLogger(__name__)

_MISSING_OBJECT_CODES: Final = frozenset(('NoSuchKey', '404', 'NotFound'))


def object_key(owner_id: str, fragment_id: str) -> str:
    """Build the S3 key for a fragment's content.

    Args:
        owner_id: Owner of the fragment.
        fragment_id: Fragment ID.

    Returns:
        Key in the form '{owner_id}/{fragment_id}'.
    """
    return f'{owner_id}/{fragment_id}'


@final
class DynamoMetadataStore:
    """Metadata store backed by a DynamoDB table."""

    def __init__(self, table: Any) -> None:
        """Wrap a boto3 DynamoDB Table resource.

        Args:
            table: ``boto3.resource('dynamodb').Table(...)``.
        """
        self._table = table

    def put(self, fragment: Fragment) -> None:
        """Write a fragment's metadata item."""
        try:
            logger.debug(
                'Writing fragment metadata to DynamoDB: owner=%s, id=%s',
                fragment.owner_id,
                fragment.id,
            )
            self._table.put_item(Item=serialize_fragment(fragment))
        except (BotoCoreError, ClientError) as error:
            logger.exception(
                'Failed to write fragment metadata: owner=%s, id=%s',
                fragment.owner_id,
                fragment.id,
            )
            raise StorageError('unable to write fragment metadata') from error

    def get(self, owner_id: str, fragment_id: str) -> Fragment | None:
        """Read a fragment's metadata item."""
        try:
            response = self._table.get_item(
                Key={'ownerId': owner_id, 'id': fragment_id},
            )
        except (BotoCoreError, ClientError) as error:
            logger.exception(
                'Failed to read fragment metadata: owner=%s, id=%s',
                owner_id,
                fragment_id,
            )
            raise StorageError('unable to read fragment metadata') from error

        item = response.get('Item')
        if item is None:
            logger.debug(
                'Fragment metadata not found: owner=%s, id=%s',
                owner_id,
                fragment_id,
            )
            return None
        return deserialize_fragment(item)

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
        """Query every item under an owner's partition key.

        Only the ``id`` attribute is projected unless ``expand`` is set.
        Ordering is whatever DynamoDB returns.
        """
        params: dict[str, Any] = {
            'KeyConditionExpression': Key('ownerId').eq(owner_id),
        }
        if not expand:
            params['ProjectionExpression'] = '#id'
            params['ExpressionAttributeNames'] = {'#id': 'id'}

        items: list[dict[str, Any]] = []
        try:
            while True:
                response = self._table.query(**params)
                items.extend(response.get('Items', []))
                last_key = response.get('LastEvaluatedKey')
                if last_key is None:
                    break
                params['ExclusiveStartKey'] = last_key
        except (BotoCoreError, ClientError) as error:
            logger.exception('Failed to query fragments: owner=%s', owner_id)
            raise StorageError('unable to list fragments') from error

        logger.debug(
            'Found %d fragments in DynamoDB: owner=%s, expand=%s',
            len(items),
            owner_id,
            expand,
        )
        if expand:
            return [deserialize_fragment(item) for item in items]
        return [str(item['id']) for item in items]

    def delete(self, owner_id: str, fragment_id: str) -> None:
        """Delete a fragment's metadata item (no-op when absent)."""
        try:
            self._table.delete_item(
                Key={'ownerId': owner_id, 'id': fragment_id},
            )
        except (BotoCoreError, ClientError) as error:
            logger.exception(
                'Failed to delete fragment metadata: owner=%s, id=%s',
                owner_id,
                fragment_id,
            )
            raise StorageError('unable to delete fragment metadata') from error


@final
class S3ObjectStore:
    """Object store backed by an S3 bucket."""

    def __init__(self, client: BaseClient, bucket_name: str) -> None:
        """Wrap a boto3 S3 client.

        Args:
            client: ``boto3.client('s3')``.
            bucket_name: Bucket holding fragment content.
        """
        self._client = client
        self.bucket_name = bucket_name

    def put(self, owner_id: str, fragment_id: str, data: bytes) -> None:
        """Upload a fragment's bytes."""
        key = object_key(owner_id, fragment_id)
        try:
            logger.debug('Uploading fragment data to S3: %s', key)
            self._client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=bytes(data),
            )
        except (BotoCoreError, ClientError) as error:
            logger.exception('Failed to upload fragment data: %s', key)
            raise StorageError('unable to upload fragment data') from error

    def get(self, owner_id: str, fragment_id: str) -> bytes | None:
        """Download a fragment's bytes."""
        key = object_key(owner_id, fragment_id)
        try:
            response = self._client.get_object(Bucket=self.bucket_name, Key=key)
            return response['Body'].read()
        except ClientError as error:
            if error.response['Error']['Code'] in _MISSING_OBJECT_CODES:
                logger.debug('Fragment data not found in S3: %s', key)
                return None
            logger.exception('Failed to read fragment data: %s', key)
            raise StorageError('unable to read fragment data') from error
        except BotoCoreError as error:
            logger.exception('Failed to read fragment data: %s', key)
            raise StorageError('unable to read fragment data') from error

    def delete(self, owner_id: str, fragment_id: str) -> None:
        """Delete a fragment's bytes (no-op when absent)."""
        key = object_key(owner_id, fragment_id)
        try:
            self._client.delete_object(Bucket=self.bucket_name, Key=key)
        except (BotoCoreError, ClientError) as error:
            logger.exception('Failed to delete fragment data: %s', key)
            raise StorageError('unable to delete fragment data') from error


def aws_storage() -> StorageContext:
    """Build a storage context from the AWS settings.

    Endpoint URLs, when set, point the clients at a local stack; S3
    then uses path-style addressing.

    Returns:
        StorageContext over DynamoDB and S3.
    """
    dynamodb = boto3.resource(
        'dynamodb',
        region_name=storages.AWS_REGION,
        endpoint_url=storages.AWS_DYNAMODB_ENDPOINT_URL,
    )
    s3_config = None
    if storages.AWS_S3_ENDPOINT_URL:
        s3_config = Config(s3={'addressing_style': 'path'})
    s3_client = boto3.client(
        's3',
        region_name=storages.AWS_REGION,
        endpoint_url=storages.AWS_S3_ENDPOINT_URL,
        config=s3_config,
    )
    logger.info(
        'AWS fragment storage: table=%s, bucket=%s',
        storages.AWS_DYNAMODB_TABLE_NAME,
        storages.AWS_S3_BUCKET_NAME,
    )
    return StorageContext(
        metadata=DynamoMetadataStore(
            dynamodb.Table(storages.AWS_DYNAMODB_TABLE_NAME),
        ),
        objects=S3ObjectStore(s3_client, storages.AWS_S3_BUCKET_NAME),
    )
