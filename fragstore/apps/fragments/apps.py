"""Wiring for the fragments app."""

import logging
import logging.config

from fragstore.apps.fragments.infrastructure.storage import build_storage
from fragstore.apps.fragments.logic.fragment_operations import FragmentService
from fragstore.settings.components.logging import LOGGING

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    """Apply the LOGGING settings."""
    logging.config.dictConfig(LOGGING)


def create_fragment_service(backend: str | None = None) -> FragmentService:
    """Configure logging and build a service over the configured storage.

    Call once per process; the returned service owns its storage.

    Args:
        backend: Storage backend name, overriding the settings.

    Returns:
        FragmentService ready to use.
    """
    configure_logging()
    service = FragmentService(build_storage(backend))
    logger.info('Fragments service ready')
    return service
