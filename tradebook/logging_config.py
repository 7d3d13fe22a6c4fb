"""
logging_config.py
-----------------

Structured JSON logging with request id propagation and secret masking.
"""

import logging
import re
import uuid

from flask import g, has_request_context, request
from pythonjsonlogger import jsonlogger


class SecretMaskingFilter(logging.Filter):
    """Mask api keys and tokens in log messages."""

    SECRET_PATTERNS = [
        re.compile(r'(apikey|api_key|secret|password|token|authorization)[\'"]*\s*[:=]\s*[\'"]?([^\'",\s]+)', re.IGNORECASE),
        re.compile(r'(Bearer)\s+([A-Za-z0-9._\-]+)'),
    ]

    def _mask(self, text: str) -> str:
        for pattern in self.SECRET_PATTERNS:
            text = pattern.sub(r'\1: ****', text)
        return text

    def filter(self, record):
        record.msg = self._mask(str(record.msg))
        if record.args:
            if isinstance(record.args, tuple):
                record.args = tuple(self._mask(a) if isinstance(a, str) else a for a in record.args)
        return True


class RequestContextFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that adds the request id, path, method and owner when available."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record['timestamp'] = self.formatTime(record, self.datefmt)
        if has_request_context():
            log_record['request_id'] = getattr(g, 'request_id', None)
            log_record['path'] = request.path
            log_record['method'] = request.method
            log_record['owner_id'] = getattr(g, 'owner_id', None)


def setup_logging(app):
    """Attach a JSON handler to the app logger and the ``tradebook`` loggers."""
    formatter = RequestContextFormatter(
        '%(timestamp)s %(levelname)s %(name)s %(message)s',
        rename_fields={'levelname': 'level', 'name': 'logger'},
    )
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    handler.addFilter(SecretMaskingFilter())

    level = getattr(logging, app.config.get('LOG_LEVEL', 'INFO'), logging.INFO)
    for logger in (app.logger, logging.getLogger('tradebook')):
        # avoid stacking handlers when create_app runs more than once (tests)
        for h in list(logger.handlers):
            if isinstance(h.formatter, RequestContextFormatter):
                logger.removeHandler(h)
        logger.addHandler(handler)
        logger.setLevel(level)

    app.logger.info("JSON logging configured", extra={'log_level': logging.getLevelName(level)})


def generate_request_id():
    return uuid.uuid4().hex


def setup_request_id_middleware(app):
    """Take X-Request-ID from the client or mint one, and echo it back."""

    @app.before_request
    def assign_request_id():
        g.request_id = request.headers.get('X-Request-ID') or generate_request_id()

    @app.after_request
    def echo_request_id(response):
        if hasattr(g, 'request_id'):
            response.headers['X-Request-ID'] = g.request_id
        return response
