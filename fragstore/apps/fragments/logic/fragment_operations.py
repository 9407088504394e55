"""Business logic for fragment operations.

Every operation is scoped to the caller's ``owner_id``. A fragment
owned by someone else is indistinguishable from a missing one.

Write ordering: metadata first, then content, then metadata again
with the content's real size. Delete issues the metadata and content
deletes concurrently. Neither is transactional; a failure halfway
leaves the fragment partially stored and is raised as StorageError.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Literal, final, overload

from fragstore.apps.fragments.exceptions import (
    NotFound,
    StorageError,
    TypeMismatch,
    ValidationError,
)
from fragstore.apps.fragments.infrastructure.content_types import get_mime_type
from fragstore.apps.fragments.infrastructure.storage import StorageContext
from fragstore.apps.fragments.logic.conversion import convert, resolve_target
from fragstore.apps.fragments.models import Fragment

logger = logging.getLogger(__name__)


def _as_bytes(data: object) -> bytes:
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise ValidationError('data must be bytes')
    return bytes(data)


@final
class FragmentService:
    """Create, read, update, delete and list fragments."""

    def __init__(self, storage: StorageContext) -> None:
        """Initialize the service.

        Args:
            storage: Metadata and object stores to operate on.
        """
        self.storage = storage

    def create(
        self,
        owner_id: str,
        content_type: str,
        data: bytes,
    ) -> Fragment:
        """Create a fragment and store its content.

        Validation happens before anything is written.

        Args:
            owner_id: Owner of the new fragment.
            content_type: Content type, optionally with parameters.
            data: Fragment content.

        Returns:
            Created Fragment with ``size`` equal to ``len(data)``.

        Raises:
            ValidationError: If owner_id, content_type or data is invalid.
            UnsupportedType: If content_type is not supported.
            StorageError: If a write fails.
        """
        data = _as_bytes(data)
        fragment = Fragment(owner_id=owner_id, type=content_type, size=len(data))
        logger.info(
            'Creating fragment: owner=%s, id=%s, type=%s, size=%d',
            owner_id,
            fragment.id,
            fragment.type,
            fragment.size,
        )

        self.storage.metadata.put(fragment)
        try:
            self.storage.objects.put(owner_id, fragment.id, data)
        except StorageError as error:
            raise _partial_create(
                fragment,
                'metadata stored, content failed',
                error,
            ) from error

        fragment.set_size(len(data))
        try:
            self.storage.metadata.put(fragment)
        except StorageError as error:
            raise _partial_create(
                fragment,
                'metadata and content stored, final metadata update failed',
                error,
            ) from error

        logger.info('Fragment created: owner=%s, id=%s', owner_id, fragment.id)
        return fragment

    def read(self, owner_id: str, fragment_id: str) -> Fragment:
        """Get a fragment's metadata.

        Args:
            owner_id: Requesting owner.
            fragment_id: Fragment ID.

        Returns:
            The Fragment.

        Raises:
            NotFound: If the owner has no fragment with this ID.
        """
        fragment = self.storage.metadata.get(owner_id, fragment_id)
        if fragment is None or fragment.owner_id != owner_id:
            logger.warning(
                'Fragment not found: owner=%s, id=%s',
                owner_id,
                fragment_id,
            )
            raise NotFound(fragment_id)
        return fragment

    def read_content(
        self,
        owner_id: str,
        fragment_id: str,
        extension: str | None = None,
    ) -> tuple[bytes, str]:
        """Get a fragment's content, optionally converted.

        Without an extension the stored bytes are returned together with
        the stored type (parameters included). With an extension the
        content is converted to the matching type when it differs from
        the fragment's own.

        Args:
            owner_id: Requesting owner.
            fragment_id: Fragment ID.
            extension: Target extension (e.g., 'html'), or None.

        Returns:
            Tuple of (content, content type).

        Raises:
            NotFound: If the owner has no fragment with this ID.
            UnsupportedExtension: If the extension is unknown.
            UnsupportedConversion: If the conversion crosses families.
            ConversionFailed: If the stored content is malformed.
            StorageError: If metadata exists but content does not.
        """
        fragment = self.read(owner_id, fragment_id)

        target_type = None
        if extension is not None:
            target_type = resolve_target(fragment.mime_type, extension)

        data = self.storage.objects.get(owner_id, fragment_id)
        if data is None:
            logger.error(
                'Fragment content missing: owner=%s, id=%s',
                owner_id,
                fragment_id,
            )
            raise StorageError(
                f'Fragment {fragment_id} has metadata but no content',
            )

        if target_type is None:
            return data, fragment.type
        if target_type != fragment.mime_type:
            logger.info(
                'Converting fragment %s: %s -> %s',
                fragment_id,
                fragment.mime_type,
                target_type,
            )
            data = convert(data, fragment.mime_type, target_type)
        return data, target_type

    def update(
        self,
        owner_id: str,
        fragment_id: str,
        content_type: str,
        data: bytes,
    ) -> Fragment:
        """Replace a fragment's content.

        The base MIME type must stay the same; only its parameters
        (e.g., charset) may change.

        Args:
            owner_id: Requesting owner.
            fragment_id: Fragment ID.
            content_type: Content type of the new data.
            data: New content.

        Returns:
            Updated Fragment.

        Raises:
            NotFound: If the owner has no fragment with this ID.
            ValidationError: If content_type or data is invalid.
            TypeMismatch: If the base MIME type would change.
            StorageError: If a write fails.
        """
        data = _as_bytes(data)
        fragment = self.read(owner_id, fragment_id)

        new_mime_type = get_mime_type(content_type)
        if new_mime_type != fragment.mime_type:
            logger.warning(
                'Fragment type mismatch: id=%s, %s -> %s',
                fragment_id,
                fragment.mime_type,
                new_mime_type,
            )
            raise TypeMismatch(fragment.mime_type, new_mime_type)

        logger.info(
            'Updating fragment: owner=%s, id=%s, size=%d -> %d',
            owner_id,
            fragment_id,
            fragment.size,
            len(data),
        )
        fragment.type = content_type
        self._write_content(fragment, data)
        return fragment

    def delete(self, owner_id: str, fragment_id: str) -> None:
        """Delete a fragment's metadata and content.

        Both deletes are dispatched at the same time. If either fails
        the fragment is left partially stored; the StorageError says
        which side was removed so the caller can retry.

        Args:
            owner_id: Requesting owner.
            fragment_id: Fragment ID.

        Raises:
            NotFound: If the owner has no fragment with this ID.
            StorageError: If either delete fails.
        """
        self.read(owner_id, fragment_id)
        logger.info('Deleting fragment: owner=%s, id=%s', owner_id, fragment_id)

        with ThreadPoolExecutor(max_workers=2) as executor:
            metadata_future = executor.submit(
                self.storage.metadata.delete,
                owner_id,
                fragment_id,
            )
            content_future = executor.submit(
                self.storage.objects.delete,
                owner_id,
                fragment_id,
            )
        metadata_error = _failure(metadata_future)
        content_error = _failure(content_future)

        if metadata_error is None and content_error is None:
            logger.info('Fragment deleted: owner=%s, id=%s', owner_id, fragment_id)
            return

        logger.error(
            'Fragment delete incomplete: owner=%s, id=%s, '
            'metadata_error=%s, content_error=%s',
            owner_id,
            fragment_id,
            metadata_error,
            content_error,
        )
        raise StorageError(
            f'Fragment {fragment_id} delete incomplete: '
            f'metadata {_outcome(metadata_error)}, '
            f'content {_outcome(content_error)}',
            metadata_deleted=metadata_error is None,
            content_deleted=content_error is None,
        ) from metadata_error or content_error

    @overload
    def list_fragments(
        self,
        owner_id: str,
        expand: Literal[False] = False,
    ) -> list[str]: ...

    @overload
    def list_fragments(
        self,
        owner_id: str,
        expand: Literal[True],
    ) -> list[Fragment]: ...

    def list_fragments(
        self,
        owner_id: str,
        expand: bool = False,
    ) -> list[str] | list[Fragment]:
        """List the owner's fragments.

        Args:
            owner_id: Requesting owner.
            expand: Return full fragments instead of IDs.

        Returns:
            Fragment IDs, or Fragments when expanded.
        """
        logger.debug('Listing fragments: owner=%s, expand=%s', owner_id, expand)
        return self.storage.metadata.query(owner_id, expand)  # type: ignore[call-overload]

    def _write_content(self, fragment: Fragment, data: bytes) -> None:
        """Store content, then refresh size/updated and save metadata."""
        self.storage.objects.put(fragment.owner_id, fragment.id, data)
        fragment.set_size(len(data))
        self.storage.metadata.put(fragment)


def _partial_create(
    fragment: Fragment,
    stage: str,
    error: StorageError,
) -> StorageError:
    logger.exception(
        'Fragment partially created: owner=%s, id=%s, %s',
        fragment.owner_id,
        fragment.id,
        stage,
    )
    return StorageError(
        f'Fragment {fragment.id} partially created: {stage} ({error})',
    )


def _failure(future: Future[None]) -> BaseException | None:
    # Only storage failures are reported per side; anything else propagates
    error = future.exception()
    if error is not None and not isinstance(error, StorageError):
        raise error
    return error


def _outcome(error: BaseException | None) -> str:
    if error is None:
        return 'deleted'
    return f'failed ({error})'
