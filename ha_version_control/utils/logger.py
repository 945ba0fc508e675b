"""Logging utilities"""
import logging
import sys
from collections import deque
from datetime import datetime
from typing import Dict, List, Optional

LOGGER_NAME = 'ha_version_control'

# Recent log entries kept in memory for the logs API
MAX_LOG_SIZE = 1000
LOG_BUFFER: deque = deque(maxlen=MAX_LOG_SIZE)


class BufferHandler(logging.Handler):
    """Stores formatted records in LOG_BUFFER"""
    def emit(self, record):
        LOG_BUFFER.append({
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "message": self.format(record),
            "module": record.module
        })


def setup_logger(name: str = LOGGER_NAME, level: str = 'INFO') -> logging.Logger:
    """Setup logger with console and buffer handlers"""
    logger = logging.getLogger(name)
    log_level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(log_level)

    # create_app may run more than once per process (tests)
    for handler in list(logger.handlers):
        if isinstance(handler, BufferHandler) or getattr(handler, '_ha_console', False):
            logger.removeHandler(handler)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    console_handler._ha_console = True

    buffer_handler = BufferHandler()
    buffer_handler.setFormatter(formatter)

    logger.addHandler(console_handler)
    logger.addHandler(buffer_handler)

    return logger


def get_logs(limit: int = 100, level: Optional[str] = None) -> List[Dict]:
    """Get logs from buffer, optionally filtered by level"""
    logs = list(LOG_BUFFER)
    if level:
        logs = [log for log in logs if log['level'] == level.upper()]
    return logs[-limit:] if limit > 0 else []


def clear_logs():
    LOG_BUFFER.clear()
