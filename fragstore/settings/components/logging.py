"""Logging configuration.

Applied with ``logging.config.dictConfig`` by
``fragstore.apps.fragments.apps.configure_logging``.
"""

from typing import Any, Final

from fragstore.settings.components import config

LOG_LEVEL: Final = config('LOG_LEVEL', default='INFO').upper()

LOGGING: Final[dict[str, Any]] = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'console': {
            'format': '%(asctime)s %(levelname)s %(name)s %(message)s',
            'datefmt': '%Y-%m-%d %H:%M:%S',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'console',
        },
    },
    'loggers': {
        'fragstore': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
        # boto is chatty at DEBUG
        'botocore': {
            'handlers': ['console'],
            'level': 'WARNING',
            'propagate': False,
        },
    },
}
