"""
Logging setup for the pricing engine.

One call to setup_logging() at startup routes every module logger to a
daily rotated file (logs/app.log) and the console. Customer contact data
that ends up in log lines (phone numbers, e-mails, delivery addresses) and
credentials are masked before anything is written.
"""

import logging
import logging.handlers
import re
from pathlib import Path
from typing import Pattern

import config

LOG_DIR = Path("logs")
LOG_FORMAT = '%(asctime)s | %(name)-25s | %(levelname)-8s | %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class SecretMaskingFilter(logging.Filter):
    """
    Replaces customer contact data and credentials in log records.

    Order numbers, promotion codes and amounts pass through untouched.
    """

    PATTERNS: list[tuple[Pattern, str]] = [
        # Credentials
        (re.compile(r'(api[_-]?(?:key|secret)["\']?\s*[:=]\s*["\']?)([A-Za-z0-9_\-]{20,})', re.IGNORECASE),
         r'\1[REDACTED_API_KEY]'),
        (re.compile(r'(token["\']?\s*[:=]\s*["\']?)([A-Za-z0-9_\-:]{20,})', re.IGNORECASE), r'\1[REDACTED_TOKEN]'),
        (re.compile(r'(Bearer\s+)([A-Za-z0-9_\-\.]+)', re.IGNORECASE), r'\1[REDACTED_BEARER_TOKEN]'),
        (re.compile(r'(password["\']?\s*[:=]\s*["\']?)([^\s"\']+)', re.IGNORECASE), r'\1[REDACTED_PASSWORD]'),

        # Contact data
        (re.compile(r'\b([a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,})\b'), '[REDACTED_EMAIL]'),
        (re.compile(r'(\+91[-\s]?)?\b\d{5}[-\s]?\d{5}\b'), '[REDACTED_PHONE]'),
        (re.compile(r'\b(\+?\d{1,3}[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}\b'), '[REDACTED_PHONE]'),
        (re.compile(r'((?:delivery_)?address["\']?\s*[:=]\s*["\']?)([^"\']{10,})', re.IGNORECASE),
         r'\1[REDACTED_ADDRESS]'),
    ]

    @classmethod
    def mask(cls, text: str) -> str:
        for pattern, replacement in cls.PATTERNS:
            text = pattern.sub(replacement, text)
        return text

    def filter(self, record: logging.LogRecord) -> bool:
        if record.msg:
            record.msg = self.mask(str(record.msg))
        if record.args and isinstance(record.args, tuple):
            record.args = tuple(self.mask(arg) if isinstance(arg, str) else arg for arg in record.args)
        # Never drops a record
        return True


def _build_handler(handler: logging.Handler, level: int, mask_secrets: bool) -> logging.Handler:
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    handler.setLevel(level)
    if mask_secrets:
        handler.addFilter(SecretMaskingFilter())
    return handler


def setup_logging():
    """
    Configure the root logger once at startup (run.py).

    - level from config.LOG_LEVEL
    - logs/app.log rotated at midnight, config.LOG_RETENTION_DAYS files kept
    - console output in the same format
    - SecretMaskingFilter on both handlers when config.LOG_MASK_SECRETS is set
    """
    LOG_DIR.mkdir(exist_ok=True)

    level_name = config.LOG_LEVEL.upper()
    level = getattr(logging, level_name, logging.INFO)
    mask_secrets = config.LOG_MASK_SECRETS

    file_handler = logging.handlers.TimedRotatingFileHandler(
        filename=LOG_DIR / "app.log",
        when="midnight",
        interval=1,
        backupCount=config.LOG_RETENTION_DAYS,
        encoding="utf-8"
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.addHandler(_build_handler(file_handler, level, mask_secrets))
    root_logger.addHandler(_build_handler(logging.StreamHandler(), level, mask_secrets))

    logging.info(
        f"[Logging] Level={level_name}, retention={config.LOG_RETENTION_DAYS} days, "
        f"masking={'on' if mask_secrets else 'off'}"
    )
