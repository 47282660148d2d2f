# sales_kpi/logging_config.py
"""
Logging configuration.

Call configure_logging() once from the embedding application. Supports text
(human-readable) and JSON formats via LOG_FORMAT; LOG_LEVEL defaults to INFO.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from .config import config


class JSONFormatter(logging.Formatter):
    """Single-line JSON log formatter for log aggregators."""

    def format(self, record):
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        if record.exc_info and record.exc_info[0] is not None:
            entry['exception'] = self.formatException(record.exc_info)
        return json.dumps(entry)


TEXT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Third-party loggers that are noisy at INFO
_NOISY_LOGGERS = [
    'openpyxl',
]


def configure_logging(level: Optional[str] = None, log_format: Optional[str] = None):
    """
    Set up the root logger.

    Args:
        level: Log level name; defaults to the LOG_LEVEL setting
        log_format: "text" or "json"; defaults to the LOG_FORMAT setting
    """
    level_name = (level or config.get_app_setting("LOG_LEVEL", "INFO")).upper()
    log_level = getattr(logging, level_name, logging.INFO)
    if not isinstance(log_level, int):
        log_level = logging.INFO

    fmt = (log_format or config.get_app_setting("LOG_FORMAT", "text")).lower()

    root = logging.getLogger()
    root.setLevel(log_level)

    # Remove any existing handlers to avoid duplicates on re-init
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)

    if fmt == 'json':
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
