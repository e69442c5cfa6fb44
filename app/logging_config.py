"""
Structured logging configuration.

Called once from create_app() and from the cron scripts. LOG_FORMAT picks
text (human-readable) or single-line JSON; LOG_LEVEL defaults to INFO.
"""
import json
import logging
import os
import sys
from datetime import datetime, timezone

# Attributes present on every LogRecord; anything else came in via extra=
_RESERVED = set(vars(logging.LogRecord('', 0, '', 0, '', None, None))) | {'message', 'asctime'}

# Third-party loggers that are noisy at INFO
_NOISY_LOGGERS = [
    'urllib3',
    'openai',
    'httpcore',
    'httpx',
    'rq.worker',
]


class JSONFormatter(logging.Formatter):
    """Single-line JSON log formatter for production log aggregators."""

    def format(self, record):
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _RESERVED and not key.startswith('_'):
                entry[key] = value
        if record.exc_info and record.exc_info[0] is not None:
            entry['exception'] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def resolve_level(name):
    level = getattr(logging, (name or 'INFO').upper(), None)
    return level if isinstance(level, int) else logging.INFO


def configure_logging(app=None, level=None, fmt=None):
    """
    Set up the root logger.

    Environment variables (read at call time, overridden by level / fmt):
        LOG_LEVEL  — Python log level name (default: INFO)
        LOG_FORMAT — "text" (default) or "json"
    """
    level = resolve_level(level or os.getenv('LOG_LEVEL', 'INFO'))
    log_format = (fmt or os.getenv('LOG_FORMAT', 'text')).lower()

    root = logging.getLogger()
    root.setLevel(level)

    # Remove any existing handlers to avoid duplicates on re-init
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    if log_format == 'json':
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            '[%(asctime)s] %(levelname)s %(name)s — %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S',
        ))

    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if app is not None:
        # Flask's own handler would print every record twice
        app.logger.handlers.clear()
        app.logger.propagate = True
