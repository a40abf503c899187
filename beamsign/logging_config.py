"""
Logging Configuration for BEAM module signing.

Library code only ever uses module loggers
(logging.getLogger(__name__)); this module is for applications and the
command line to route those records somewhere useful.

Usage:
    from beamsign.logging_config import setup_logging, get_logger

    setup_logging(verbose=True)
    logger = get_logger('beamsign.cli')
    logger.info("Signed module", extra={'extra_data': {'chunks': 9}})

Environment (configure_from_environment):
    BEAMSIGN_VERBOSE   - '1'/'true'/'yes' enables DEBUG output
    BEAMSIGN_LOG_FILE  - also write logs to this file
    BEAMSIGN_LOG_JSON  - emit one JSON object per line
"""

import json
import logging
import os
import sys
import threading
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from .constants import ENV_PREFIX, env_flag

ROOT_LOGGER = 'beamsign'


@dataclass
class LoggingState:
    """Logging configuration state."""
    verbose: bool = False
    log_file: Optional[str] = None
    json_format: bool = False
    initialized: bool = False
    _lock: threading.RLock = field(default_factory=threading.RLock)


_state = LoggingState()


class BeamsignFormatter(logging.Formatter):
    """Formatter with color support and optional JSON output."""

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33;1m',  # Bold yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[31;1m', # Bold red
        'RESET': '\033[0m',
    }

    def __init__(self, use_colors: bool = True, json_format: bool = False):
        self.use_colors = use_colors and sys.stderr.isatty()
        self.json_format = json_format
        super().__init__()

    def format(self, record: logging.LogRecord) -> str:
        if self.json_format:
            return self._format_json(record)
        return self._format_text(record)

    def _format_text(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]
        level_name = record.levelname

        if self.use_colors:
            color = self.COLORS.get(level_name, '')
            reset = self.COLORS['RESET']
            level_str = f"{color}{level_name:8}{reset}"
        else:
            level_str = f"{level_name:8}"

        component = self._extract_component(record.name)
        msg = record.getMessage()

        extra_str = ""
        if getattr(record, 'extra_data', None):
            extra_items = [f"{k}={v}" for k, v in record.extra_data.items()]
            extra_str = f" | {', '.join(extra_items)}"

        text = f"{timestamp} {level_str} [{component}] {msg}{extra_str}"
        if record.exc_info:
            text = f"{text}\n{self.formatException(record.exc_info)}"
        return text

    def _format_json(self, record: logging.LogRecord) -> str:
        data: Dict[str, Any] = {
            'timestamp': datetime.now().isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'component': self._extract_component(record.name),
        }

        if getattr(record, 'extra_data', None):
            data['extra'] = record.extra_data

        if record.exc_info:
            data['exception'] = self.formatException(record.exc_info)

        return json.dumps(data, default=str)

    def _extract_component(self, logger_name: str) -> str:
        """beamsign.container.attributes -> container"""
        parts = logger_name.split('.')
        if len(parts) >= 2 and parts[0] == ROOT_LOGGER:
            return parts[1]
        return parts[0] if parts else 'core'


def setup_logging(
    verbose: bool = False,
    log_file: Optional[str] = None,
    console: bool = True,
    json_format: bool = False,
) -> None:
    """
    Initialize logging for the beamsign logger hierarchy.

    Args:
        verbose: Enable DEBUG output
        log_file: Optional file path for log output
        console: Enable output to stderr
        json_format: Use JSON format for logs
    """
    with _state._lock:
        _state.verbose = verbose
        _state.log_file = log_file
        _state.json_format = json_format

        level = logging.DEBUG if verbose else logging.INFO

        root = logging.getLogger(ROOT_LOGGER)
        root.setLevel(level)

        for handler in root.handlers[:]:
            root.removeHandler(handler)
            handler.close()

        if console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(level)
            console_handler.setFormatter(BeamsignFormatter(
                use_colors=True,
                json_format=json_format,
            ))
            root.addHandler(console_handler)

        if log_file:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(level)
            file_handler.setFormatter(BeamsignFormatter(
                use_colors=False,
                json_format=json_format,
            ))
            root.addHandler(file_handler)

        _state.initialized = True


def get_logger(name: str) -> logging.Logger:
    """Get a logger inside the beamsign hierarchy."""
    if name != ROOT_LOGGER and not name.startswith(f"{ROOT_LOGGER}."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def set_verbose(enabled: bool) -> None:
    """Toggle verbose mode at runtime."""
    with _state._lock:
        _state.verbose = enabled
        level = logging.DEBUG if enabled else logging.INFO

        root = logging.getLogger(ROOT_LOGGER)
        root.setLevel(level)
        for handler in root.handlers:
            handler.setLevel(level)


def get_logging_state() -> Dict[str, Any]:
    """Get current logging configuration state."""
    with _state._lock:
        return {
            'verbose': _state.verbose,
            'log_file': _state.log_file,
            'json_format': _state.json_format,
            'initialized': _state.initialized,
        }


def configure_from_environment() -> None:
    """Configure logging from BEAMSIGN_ environment variables."""
    setup_logging(
        verbose=env_flag('VERBOSE'),
        log_file=os.environ.get(f'{ENV_PREFIX}LOG_FILE'),
        json_format=env_flag('LOG_JSON'),
    )


__all__ = [
    'BeamsignFormatter',
    'setup_logging',
    'configure_from_environment',
    'get_logger',
    'set_verbose',
    'get_logging_state',
]
