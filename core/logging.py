"""
Logging configuration

Connector code attaches structured failure details to log calls with
``extra={"error_context": exc.to_dict()}``; the formatter below renders
them after the message so they reach plain-text log sinks.
"""

import json
import logging
import sys
from core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "sqlalchemy.pool", "apscheduler")


class ErrorContextFormatter(logging.Formatter):
    """Appends a record's error_context (if any) as compact JSON"""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = getattr(record, "error_context", None)
        if context:
            message += " | error_context=" + json.dumps(context, default=str, sort_keys=True)
        return message


def setup_logging(level: str = None):
    """Configure application logging on the root logger"""
    level_name = (level or settings.LOG_LEVEL).upper()
    log_level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ErrorContextFormatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    logging.basicConfig(level=log_level, handlers=[handler])

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging configured at {level_name} level")
