"""Structured logging and optional error monitoring setup."""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from flask import has_request_context, request

# Attributes every LogRecord carries; anything else came in through ``extra``
_RESERVED = frozenset(vars(logging.LogRecord('', 0, '', 0, '', None, None))) | {'message', 'asctime'}


class JsonFormatter(logging.Formatter):
    """One JSON object per line, with request and ``extra`` fields merged in."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            'timestamp': datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        if has_request_context():
            payload['method'] = request.method
            payload['path'] = request.path
        for key, value in record.__dict__.items():
            if key not in _RESERVED and not key.startswith('_'):
                payload[key] = value
        if record.exc_info:
            payload['exception'] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


def configure_logging(structured: bool = True, level: str = 'INFO') -> None:
    root = logging.getLogger()
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    if not root.handlers:
        root.addHandler(logging.StreamHandler())
    formatter = JsonFormatter() if structured else logging.Formatter(
        '%(asctime)s %(levelname)s %(name)s: %(message)s'
    )
    for handler in root.handlers:
        handler.setFormatter(formatter)


def configure_error_monitoring(dsn: str, environment: str = 'development') -> None:
    """Send unhandled errors to Sentry when a DSN is configured and the SDK is installed."""
    if not dsn:
        return
    try:
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration
    except ImportError:
        logging.getLogger(__name__).warning('Sentry SDK not available; DSN configured but monitoring disabled.')
        return
    sentry_sdk.init(dsn=dsn, environment=environment, integrations=[FlaskIntegration()],
                    traces_sample_rate=0.0)
