"""Fragment entity."""

import logging
import uuid
from datetime import UTC, datetime
from typing import Any, final, override

from fragstore.apps.fragments.exceptions import (
    InvalidContentType,
    UnsupportedType,
    ValidationError,
)
from fragstore.apps.fragments.infrastructure.content_types import (
    SUPPORTED_TYPES,
    get_mime_type,
    parse_content_type,
    type_family,
)

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(UTC)


def _to_datetime(value: datetime | str | None, field: str) -> datetime:
    """Coerce a timestamp argument to an aware UTC datetime.

    Args:
        value: Datetime, ISO-8601 string, or None for "now".
        field: Field name for error messages.

    Returns:
        Timezone-aware datetime.

    Raises:
        ValidationError: If the value is not a valid timestamp.
    """
    if value is None:
        return _now()
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError as error:
            raise ValidationError(
                f'{field} must be an ISO-8601 timestamp',
            ) from error
    if not isinstance(value, datetime):
        raise ValidationError(f'{field} must be a datetime')
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


@final
class Fragment:
    """A typed content blob owned by a single user.

    The fragment holds metadata only. Its bytes live in the object
    store under the same (owner_id, id) key, and ``size`` always
    mirrors their exact length after a successful write.
    """

    def __init__(  # noqa: WPS211
        self,
        owner_id: str,
        type: str,  # noqa: A002
        size: int = 0,
        id: str | None = None,  # noqa: A002
        created: datetime | str | None = None,
        updated: datetime | str | None = None,
    ) -> None:
        """Validate and build a fragment.

        Args:
            owner_id: Opaque owner identifier from the auth layer.
            type: Content type, optionally with parameters.
            size: Byte length of the fragment's content.
            id: Fragment ID; a new UUID is generated when omitted.
            created: Creation time; defaults to now.
            updated: Last update time; defaults to now.

        Raises:
            ValidationError: If owner_id, type, size or timestamps are invalid.
            UnsupportedType: If type is not in the supported registry.
        """
        if not owner_id or not isinstance(owner_id, str):
            logger.warning('Fragment missing required owner_id')
            raise ValidationError('owner_id is required')
        if not type or not isinstance(type, str):
            logger.warning('Fragment missing type: owner=%s', owner_id)
            raise ValidationError('type is required')
        if not self.is_supported_type(type):
            logger.warning(
                'Unsupported fragment type: owner=%s, type=%s',
                owner_id,
                type,
            )
            raise UnsupportedType(type)
        _validate_size(size)

        self.id = id or str(uuid.uuid4())
        self.owner_id = owner_id
        self.type = type
        self.size = size

        now = _now()
        self.created = _to_datetime(created or now, 'created')
        self.updated = _to_datetime(updated or now, 'updated')
        if self.updated < self.created:
            raise ValidationError('updated cannot be earlier than created')

    @override
    def __repr__(self) -> str:
        """Debug representation."""
        return (
            f'Fragment(id={self.id!r}, owner_id={self.owner_id!r}, '
            f'type={self.type!r}, size={self.size})'
        )

    @override
    def __eq__(self, other: object) -> bool:
        """Fragments are equal when every stored field matches."""
        if not isinstance(other, Fragment):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    __hash__ = None  # type: ignore[assignment]

    @property
    def mime_type(self) -> str:
        """Base MIME type without parameters.

        Example: 'text/html; charset=utf-8' -> 'text/html'
        """
        return get_mime_type(self.type)

    @property
    def is_text(self) -> bool:
        """Whether the fragment is a text/* type."""
        return self.mime_type.startswith('text/')

    @property
    def formats(self) -> list[str]:
        """MIME types this fragment can be served as.

        The fragment's own type comes first, followed by the rest of
        its conversion family.
        """
        mime_type = self.mime_type
        family = type_family(mime_type) or ()
        return [mime_type, *(other for other in family if other != mime_type)]

    @staticmethod
    def is_supported_type(value: str) -> bool:
        """Check whether a Content-Type value is in the supported registry.

        Args:
            value: Content-Type, e.g. 'text/plain; charset=utf-8'.

        Returns:
            True if the base type is supported, False otherwise
            (including unparsable values).
        """
        try:
            return parse_content_type(value).base_type in SUPPORTED_TYPES
        except InvalidContentType:
            return False

    def touch(self) -> None:
        """Refresh ``updated``; it never moves backwards."""
        self.updated = max(_now(), self.updated)

    def set_size(self, size: int) -> None:
        """Record a new content length and refresh ``updated``.

        Args:
            size: Exact byte length of the stored content.
        """
        _validate_size(size)
        self.size = size
        self.touch()

    def to_dict(self) -> dict[str, Any]:
        """Boundary record with ISO-8601 timestamps."""
        return {
            'id': self.id,
            'ownerId': self.owner_id,
            'type': self.type,
            'size': self.size,
            'created': self.created.isoformat(),
            'updated': self.updated.isoformat(),
        }

    @classmethod
    def from_dict(cls, record: dict[str, Any]) -> 'Fragment':
        """Build a fragment from a boundary record.

        Args:
            record: Mapping shaped like ``to_dict()`` output.

        Returns:
            Validated Fragment.

        Raises:
            ValidationError: If required keys are missing or invalid.
        """
        try:
            return cls(
                id=record['id'],
                owner_id=record['ownerId'],
                type=record['type'],
                size=record['size'],
                created=record['created'],
                updated=record['updated'],
            )
        except KeyError as error:
            raise ValidationError(f'Fragment record missing {error}') from error


def _validate_size(size: object) -> None:
    # bool is an int subclass but never a valid size
    if isinstance(size, bool) or not isinstance(size, int):
        raise ValidationError('size must be an integer')
    if size < 0:
        raise ValidationError('size cannot be negative')
