"""
Structured logging for sync runs.

Every logger below the `billsync.sync` namespace writes JSON lines to stdout
(and optionally to a log file), so a single run can be followed through the
probes, the crawl and the upload. Context such as the URL or vector id being
processed is passed with `extra={'details': {...}}` and lands in the
`details` field of the record.
"""

import json
import logging
import sys
from typing import Optional

ROOT_LOGGER_NAME = "billsync.sync"


class JsonFormatter(logging.Formatter):
    """
    Formats a log record as a single JSON object.
    """
    def format(self, record):
        log_record = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_record['exc_info'] = self.formatException(record.exc_info)
        if hasattr(record, 'details'):
            log_record['details'] = record.details
        return json.dumps(log_record, ensure_ascii=False, default=str)


class LoggingManager:
    """
    Configures the `billsync.sync` logger once per process.
    """
    _instance = None

    def __new__(cls, *args, **kwargs):
        if not cls._instance:
            cls._instance = super(LoggingManager, cls).__new__(cls)
        return cls._instance

    def __init__(self, log_level: str = "INFO", log_file: Optional[str] = None):
        if getattr(self, '_initialized', False):
            return

        self.log_level = log_level.upper()
        self.log_file = log_file
        self.logger = logging.getLogger(ROOT_LOGGER_NAME)
        self.logger.setLevel(self.log_level)
        self.logger.propagate = False

        if self.logger.hasHandlers():
            self.logger.handlers.clear()

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(self.log_level)
        console_handler.setFormatter(JsonFormatter())
        self.logger.addHandler(console_handler)

        if self.log_file:
            file_handler = logging.FileHandler(self.log_file, encoding='utf-8')
            file_handler.setLevel(self.log_level)
            file_handler.setFormatter(JsonFormatter())
            self.logger.addHandler(file_handler)

        self._initialized = True

    @classmethod
    def reset(cls) -> None:
        """Drop the configured handlers so the next instance reconfigures logging."""
        if cls._instance is not None:
            logging.getLogger(ROOT_LOGGER_NAME).handlers.clear()
            cls._instance._initialized = False
            cls._instance = None

    @staticmethod
    def get_logger(name: str) -> logging.Logger:
        if not LoggingManager._instance:
            LoggingManager()
        return logging.getLogger(name)


def get_logger(name: str) -> logging.Logger:
    return LoggingManager.get_logger(name)
