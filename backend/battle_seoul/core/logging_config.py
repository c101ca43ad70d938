"""
Structured (JSON) logging setup
"""

import json
import logging
import os
import sys
from typing import Any, Dict, Optional

from battle_seoul.core.utils import format_timestamp_with_timezone, utcnow

_RESERVED_LOG_RECORD_KEYS = {
    "args",
    "asctime",
    "created",
    "exc_info",
    "exc_text",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "message",
    "msg",
    "name",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "stack_info",
    "taskName",
    "thread",
    "threadName",
}


class JSONFormatter(logging.Formatter):
    """One JSON object per record; `extra=` fields are merged into the payload"""

    def __init__(self, service: str):
        super().__init__()
        self._service = service

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": format_timestamp_with_timezone(utcnow()),
            "level": record.levelname.lower(),
            "logger": record.name,
            "service": self._service,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_LOG_RECORD_KEYS:
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(service: str, log_level: Optional[str] = None) -> None:
    """Install the JSON handler on the root logger"""
    level_name = (log_level or os.getenv("LOG_LEVEL") or "INFO").strip().upper()
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(JSONFormatter(service=service))
    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(logging._nameToLevel.get(level_name, logging.INFO))
