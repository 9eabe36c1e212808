"""Configuration for library logging with file and console handlers."""
import logging
import logging.config
import os
from datetime import datetime
from typing import Optional

from .config import load_settings

# Third-party loggers routed to the library log instead of the console
LIBRARY_LOGGERS = ('PIL', 'kaleido', 'choreographer', 'urllib3')


def build_logging_config(level: str = "INFO", log_dir: str = "logs") -> dict:
    """Return the dictConfig used by setup_logging."""
    today = datetime.now().strftime("%Y-%m-%d")

    def file_handler(prefix):
        return {
            'class': 'logging.FileHandler',
            'filename': os.path.join(log_dir, f'{prefix}_{today}.log'),
            'formatter': 'standard',
            'delay': True,
        }

    loggers = {
        '': {'handlers': ['console'], 'level': level},
        'PolyViz': {'handlers': ['app_file', 'console'], 'level': 'DEBUG', 'propagate': False},
    }
    for name in LIBRARY_LOGGERS:
        loggers[name] = {'handlers': ['library_file'], 'level': 'INFO', 'propagate': False}

    return {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'standard': {
                'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            },
        },
        'handlers': {
            'app_file': file_handler('polyviz'),
            'library_file': file_handler('libraries'),
            'console': {'class': 'logging.StreamHandler', 'formatter': 'standard'},
        },
        'loggers': loggers,
    }


def setup_logging(level: Optional[str] = None, log_dir: Optional[str] = None):
    """
    Initialize logging for the PolyViz loggers.

    The root level defaults to ``Settings.log_level`` (``POLYVIZ_LOG_LEVEL``
    or ``polyviz.toml``).
    """
    level = level or load_settings().log_level
    log_dir = log_dir or 'logs'
    os.makedirs(log_dir, exist_ok=True)
    logging.config.dictConfig(build_logging_config(level.upper(), log_dir))
