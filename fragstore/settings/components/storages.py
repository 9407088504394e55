"""Storage backend configuration for fragments.

Two backends are available:
- ``memory``: process-local maps, cleared on restart (tests, local runs)
- ``aws``: DynamoDB for metadata and S3 for content

The endpoint URLs are optional and only needed for local AWS stacks
(LocalStack, DynamoDB Local, MinIO).
"""

from typing import Final

from fragstore.settings.components import config

FRAGMENTS_STORAGE_BACKEND: Final = config(
    'FRAGMENTS_STORAGE_BACKEND',
    default='memory',
)

AWS_REGION: Final = config('AWS_REGION', default='us-east-1')

AWS_DYNAMODB_TABLE_NAME: Final = config(
    'AWS_DYNAMODB_TABLE_NAME',
    default='fragments',
)
AWS_DYNAMODB_ENDPOINT_URL: Final = config(
    'AWS_DYNAMODB_ENDPOINT_URL',
    default=None,
)

AWS_S3_BUCKET_NAME: Final = config('AWS_S3_BUCKET_NAME', default='fragments')
AWS_S3_ENDPOINT_URL: Final = config('AWS_S3_ENDPOINT_URL', default=None)
