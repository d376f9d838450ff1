"""
Logging configuration for the storefront

Routes log through ``current_app.logger`` and services through
``logging.getLogger(__name__)`` (children of the ``storefront`` logger), both
with ``extra={'event_type': ...}`` context. ``LOG_FORMAT=json`` switches the
console output to one JSON object per line for log shippers such as
New Relic Logs in Context.
"""
import json
import logging
import sys
from datetime import datetime

from flask import has_request_context, request

# Attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRS = frozenset(vars(logging.LogRecord('', 0, '', 0, '', (), None))) | {
    'message', 'asctime', 'url', 'method', 'remote_addr', 'user_id_ctx', 'event',
}


def _request_user_id():
    from flask_login import current_user
    try:
        if current_user and current_user.is_authenticated:
            return str(current_user.id)
    except RuntimeError:
        # No app context or login manager bound
        pass
    return 'guest'


def _add_request_context(record):
    if has_request_context():
        record.url = request.url
        record.method = request.method
        record.remote_addr = request.remote_addr
        record.user_id_ctx = _request_user_id()
    else:
        record.url = 'N/A'
        record.method = 'N/A'
        record.remote_addr = 'N/A'
        record.user_id_ctx = 'N/A'
    record.event = getattr(record, 'event_type', '-')


class RequestFormatter(logging.Formatter):
    """Text formatter with request, shopper and event context"""

    def format(self, record):
        _add_request_context(record)
        return super().format(record)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, including the ``extra`` fields"""

    def __init__(self, service_name: str = 'storefront'):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        _add_request_context(record)

        log_data = {
            'timestamp': datetime.utcnow().isoformat(),
            'level': record.levelname,
            'service': self.service_name,
            'logger': record.name,
            'message': record.getMessage(),
            'event_type': record.event if record.event != '-' else None,
            'request': {
                'method': record.method,
                'url': record.url,
                'remote_addr': record.remote_addr,
                'user_id': record.user_id_ctx,
            },
        }

        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__ if record.exc_info[0] else None,
                'message': str(record.exc_info[1]) if record.exc_info[1] else None,
                'traceback': self.formatException(record.exc_info),
            }

        extra_fields = {
            key: value for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and key != 'event_type'
        }
        if extra_fields:
            log_data['extra'] = extra_fields

        return json.dumps(log_data, ensure_ascii=False, default=str)


def _build_formatter(app):
    if str(app.config.get('LOG_FORMAT', 'text')).lower() == 'json':
        return StructuredFormatter()
    return RequestFormatter(
        '%(asctime)s - %(name)s - %(levelname)s - '
        '[%(method)s %(url)s] - '
        '[IP: %(remote_addr)s] [user: %(user_id_ctx)s] [%(event)s] - '
        '%(message)s'
    )


def setup_logging(app):
    """
    Attach a stdout handler to ``app.logger`` using LOG_LEVEL and LOG_FORMAT
    from the app config.
    """
    level = logging.getLevelName(str(app.config.get('LOG_LEVEL', 'INFO')).upper())
    if not isinstance(level, int):
        level = logging.INFO

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(_build_formatter(app))

    # create_app may run more than once per process (tests)
    for handler in list(app.logger.handlers):
        if isinstance(handler.formatter, (RequestFormatter, StructuredFormatter)):
            app.logger.removeHandler(handler)

    app.logger.setLevel(level)
    app.logger.addHandler(console_handler)
    app.logger.propagate = False

    app.logger.info('Application logging configured', extra={
        'event_type': 'app_startup',
        'log_format': app.config.get('LOG_FORMAT', 'text'),
    })

    return app.logger
