"""
Logging Configuration for Catalog Reconciliation

Human-readable console output by default; JSON lines (one object per
record, tagged with the run id) when JSON logging is enabled.
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Optional

from src.utils.run_context import RunIdFilter

# Extra attributes copied from log records into JSON output
EXTRA_FIELDS = {
    'scope': 'scope',
    'duration': 'duration_seconds',
    'matched': 'matched',
    'path': 'path',
}


class StructuredJSONFormatter(logging.Formatter):
    """JSON formatter with run id support."""

    def format(self, record):
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'run_id': getattr(record, 'run_id', 'N/A'),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        for attr, key in EXTRA_FIELDS.items():
            if hasattr(record, attr):
                log_data[key] = getattr(record, attr)

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def json_logging_enabled(default: bool = False) -> bool:
    """Check the JSON_LOGGING environment variable."""
    value = os.getenv('JSON_LOGGING')
    if value is None:
        return default
    return value.lower() == 'true'


def configure_logging(
    level: str = "INFO",
    json_logging: Optional[bool] = None
) -> logging.Handler:
    """
    Configure the root logger.

    Args:
        level: Log level name
        json_logging: Emit JSON lines; defaults to the JSON_LOGGING env var

    Returns:
        The installed handler
    """
    if json_logging is None:
        json_logging = json_logging_enabled()

    handler = logging.StreamHandler()
    handler.addFilter(RunIdFilter())

    if json_logging:
        handler.setFormatter(StructuredJSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            '[%(asctime)s] %(levelname)s [%(run_id)s] - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))

    # Replace a handler from an earlier call instead of stacking a second one
    root = logging.getLogger()
    for existing in list(root.handlers):
        if any(isinstance(f, RunIdFilter) for f in existing.filters):
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level.upper())

    return handler
