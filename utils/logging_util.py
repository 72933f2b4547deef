"""Logging configuration

Prefer file logging to LOGS_DIR/cookie_rewrite.log when LOGS_DIR is set and
writable; otherwise log to the console only. Respects LOG_FORMAT=json|plain and
LOG_LEVEL.
"""

import json
import logging
import os
import re
import sys
from logging.handlers import RotatingFileHandler

LOGGER_NAMES = ('cookie_rewrite.middleware', 'cookie_rewrite.config')

_PLAIN_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            'time': self.formatTime(record, '%Y-%m-%dT%H:%M:%S'),
            'name': record.name,
            'level': record.levelname,
            'message': record.getMessage(),
        }
        try:
            return json.dumps(payload, ensure_ascii=False)
        except Exception:
            return f'{payload}'


class RedactFilter(logging.Filter):
    """Redacts cookie and session material from log messages.

    Redacts:
    - Cookie and Set-Cookie header values
    - Session identifiers
    - Access/refresh tokens and Authorization headers
    """

    PATTERNS = [
        re.compile(r'(?i)(authorization\s*[:=]\s*)([^;\r\n]+)'),
        re.compile(r'(?i)(set-cookie\s*[:=]\s*)([^;\r\n]+)'),
        re.compile(r'(?i)((?<!set-)cookie\s*[:=]\s*)([^;\r\n]+)'),
        re.compile(r'(?i)(session[_-]?id\s*["\']?\s*[:=]\s*["\']?)([^"\';\r\n\s]+)(["\']?)'),
        re.compile(r'(?i)(access[_-]?token\s*["\']?\s*[:=]\s*["\']?)([^"\';\r\n\s]+)(["\']?)'),
        re.compile(r'(?i)(refresh[_-]?token\s*["\']?\s*[:=]\s*["\']?)([^"\';\r\n\s]+)(["\']?)'),
        re.compile(r'\b(eyJ[a-zA-Z0-9_\-]+\.eyJ[a-zA-Z0-9_\-]+\.[a-zA-Z0-9_\-]+)\b'),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            msg = str(record.getMessage())
            red = msg
            for pat in self.PATTERNS:
                if pat.groups >= 2:
                    red = pat.sub(lambda m: (
                        m.group(1) +
                        '[REDACTED]' +
                        (m.group(3) if m.lastindex and m.lastindex >= 3 else '')
                    ), red)
                else:
                    red = pat.sub('[REDACTED]', red)
            if red != msg:
                record.msg = red
                record.args = None
        except Exception:
            pass
        return True


def _build_formatter() -> logging.Formatter:
    if os.getenv('LOG_FORMAT', 'plain').lower() == 'json':
        return JSONFormatter()
    return logging.Formatter(_PLAIN_FORMAT)


def _build_file_handler() -> RotatingFileHandler | None:
    logs_dir = os.getenv('LOGS_DIR')
    if not logs_dir:
        return None
    try:
        logs_dir = os.path.abspath(logs_dir)
        os.makedirs(logs_dir, exist_ok=True)
        return RotatingFileHandler(
            filename=os.path.join(logs_dir, 'cookie_rewrite.log'),
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding='utf-8',
        )
    except Exception as e:
        logging.getLogger('cookie_rewrite.config').warning(
            f'File logging disabled ({e}); using console logging only'
        )
        return None


def configure_logger(logger_name: str, file_handler: logging.Handler | None = None) -> logging.Logger:
    """Attach console (and optional file) handlers with redaction to a logger."""
    logger = logging.getLogger(logger_name)
    level = os.getenv('LOG_LEVEL', 'INFO').upper()
    logger.setLevel(getattr(logging, level, logging.INFO))
    logger.propagate = False

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    formatter = _build_formatter()
    console = logging.StreamHandler(stream=sys.stdout)
    console.setFormatter(formatter)
    console.addFilter(RedactFilter())
    logger.addHandler(console)

    if file_handler is not None:
        if not any(isinstance(f, RedactFilter) for f in file_handler.filters):
            file_handler.addFilter(RedactFilter())
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    return logger


def configure_logging() -> None:
    """Configure every cookie_rewrite logger with a shared file handler."""
    file_handler = _build_file_handler()
    for name in LOGGER_NAMES:
        configure_logger(name, file_handler)
