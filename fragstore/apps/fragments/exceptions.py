"""Exceptions for fragments app."""


class FragmentError(Exception):
    """Base class for every error raised by the fragments app."""


class ImproperlyConfigured(FragmentError):
    """Raised when settings name an unknown storage backend."""


class ValidationError(FragmentError):
    """Raised when fragment input is malformed."""


class InvalidContentType(ValidationError):
    """Raised when a Content-Type value cannot be parsed."""

    def __init__(self, value: str) -> None:
        """Initialize InvalidContentType.

        Args:
            value: The raw Content-Type value.
        """
        self.value = value
        super().__init__(f'Invalid content type: {value!r}')


class UnsupportedType(FragmentError):
    """Raised when a fragment type is outside the supported registry."""

    def __init__(self, content_type: str) -> None:
        """Initialize UnsupportedType.

        Args:
            content_type: The rejected type.
        """
        self.content_type = content_type
        super().__init__(f'Unsupported type: {content_type}')


class NotFound(FragmentError):
    """Raised when a fragment does not exist for the requesting owner.

    A fragment owned by someone else is reported the same way.
    """

    def __init__(self, fragment_id: str) -> None:
        """Initialize NotFound.

        Args:
            fragment_id: ID of the missing fragment.
        """
        self.fragment_id = fragment_id
        super().__init__(f'Fragment not found: {fragment_id}')


class TypeMismatch(FragmentError):
    """Raised when an update would change a fragment's base MIME type."""

    def __init__(self, existing_type: str, new_type: str) -> None:
        """Initialize TypeMismatch.

        Args:
            existing_type: MIME type of the stored fragment.
            new_type: MIME type supplied with the update.
        """
        self.existing_type = existing_type
        self.new_type = new_type
        super().__init__(
            f'Fragment type cannot change: {existing_type} -> {new_type}',
        )


class UnsupportedExtension(FragmentError):
    """Raised when an extension is not in the conversion table."""

    def __init__(self, extension: str) -> None:
        """Initialize UnsupportedExtension.

        Args:
            extension: The unknown extension.
        """
        self.extension = extension
        super().__init__(f'Unknown or unsupported type: {extension}')


class UnsupportedConversion(FragmentError):
    """Raised when two known types cannot be converted between."""

    def __init__(self, source_type: str, target_type: str) -> None:
        """Initialize UnsupportedConversion.

        Args:
            source_type: MIME type of the stored fragment.
            target_type: Requested MIME type.
        """
        self.source_type = source_type
        self.target_type = target_type
        super().__init__(f'Cannot convert {source_type} to {target_type}')


class ConversionFailed(FragmentError):
    """Raised when a supported conversion fails on malformed content."""

    def __init__(self, source_type: str, target_type: str, reason: str) -> None:
        """Initialize ConversionFailed.

        Args:
            source_type: MIME type of the stored fragment.
            target_type: Requested MIME type.
            reason: What went wrong while converting.
        """
        self.source_type = source_type
        self.target_type = target_type
        self.reason = reason
        super().__init__(
            f'Conversion from {source_type} to {target_type} failed: {reason}',
        )


class StorageError(FragmentError):
    """Raised on backend I/O failure or inconsistent storage state.

    When raised by a fragment delete, ``metadata_deleted`` and
    ``content_deleted`` tell the caller which side succeeded so the
    delete can be retried until both records are gone.
    """

    def __init__(
        self,
        message: str,
        *,
        metadata_deleted: bool | None = None,
        content_deleted: bool | None = None,
    ) -> None:
        """Initialize StorageError.

        Args:
            message: Error description.
            metadata_deleted: Whether the metadata delete succeeded.
            content_deleted: Whether the content delete succeeded.
        """
        self.metadata_deleted = metadata_deleted
        self.content_deleted = content_deleted
        super().__init__(message)
