"""
Logging configuration.

Plain text logs for local development, JSON lines (python-json-logger) when
LOG_FORMAT=json so log shippers can index the extra fields.
"""

import logging
import logging.config
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

from src.config import settings

class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that stamps level, logger name and environment"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]):
        super().add_fields(log_record, record, message_dict)
        log_record['timestamp'] = datetime.now(timezone.utc).isoformat()
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['environment'] = settings.ENVIRONMENT

        for attr in ('booking_id', 'token', 'owner_ref'):
            if hasattr(record, attr):
                log_record[attr] = getattr(record, attr)

def build_logging_config(level: str = None, fmt: str = None) -> Dict[str, Any]:
    level = (level or settings.LOG_LEVEL).upper()
    fmt = fmt or settings.LOG_FORMAT
    return {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'standard': {
                'format': '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
            },
            'json': {
                '()': CustomJsonFormatter,
                'format': '%(timestamp)s %(level)s %(logger)s %(message)s'
            },
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'formatter': 'json' if fmt == 'json' else 'standard',
                'stream': 'ext://sys.stdout',
            },
        },
        'loggers': {
            'src': {'level': level},
            'uvicorn.access': {'level': 'WARNING'},
            'sqlalchemy.engine': {'level': 'WARNING'},
        },
        'root': {'level': level, 'handlers': ['console']},
    }

def setup_logging(level: str = None, fmt: str = None) -> None:
    logging.config.dictConfig(build_logging_config(level, fmt))
