"""
Application Logging Module.

Builds the application logger used across all modules. Log records carry
either plain strings or dictionaries with a ``message`` key plus context
fields; dictionaries are rendered as JSON lines in log files and as
``message key=value`` pairs on the console.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional

DEFAULT_LOG_MAX_BYTES = 5 * 1024 * 1024
DEFAULT_LOG_BACKUP_COUNT = 5


class JSONFormatter(logging.Formatter):
    """Render log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
        }
        if isinstance(record.msg, dict):
            entry.update(record.msg)
        else:
            entry["message"] = record.getMessage()

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable console output."""

    def format(self, record: logging.LogRecord) -> str:
        time_str = datetime.now().strftime("%H:%M:%S")
        if isinstance(record.msg, dict):
            payload = dict(record.msg)
            message = str(payload.pop("message", ""))
            extras = " ".join(f"{key}={value}" for key, value in payload.items())
            text = f"{message} {extras}".strip()
        else:
            text = record.getMessage()

        line = f"{time_str} {record.levelname:8} {text}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class LogManager:
    """
    Configures and owns the application logger.

    Attributes:
        logger (logging.Logger): The configured application logger.
    """

    def __init__(
        self,
        app_name: str,
        log_dir: Optional[str] = None,
        development: bool = False,
        level: int = logging.INFO,
    ):
        """Create the logger with a console handler and an optional file handler.

        Args:
            app_name (str): Logger name, also used for the log file name.
            log_dir (Optional[str]): Directory for the rotating log file.
                No file handler is attached when omitted.
            development (bool): Force debug level output.
            level (int): Logging level when not in development mode.
        """
        self.app_name = app_name
        self.logger = logging.getLogger(app_name)
        self.logger.propagate = False

        if not any(
            getattr(handler, "_mirrorcollapse_console", False)
            for handler in self.logger.handlers
        ):
            console = logging.StreamHandler(sys.stderr)
            console.setFormatter(ConsoleFormatter())
            console._mirrorcollapse_console = True
            self.logger.addHandler(console)

        self.configure(log_dir=log_dir, development=development, level=level)

    def configure(
        self,
        log_dir: Optional[str] = None,
        development: bool = False,
        level: int = logging.INFO,
    ) -> None:
        """Apply level settings and attach the file handler when a directory is set."""
        self.logger.setLevel(logging.DEBUG if development else level)

        if not log_dir:
            return

        os.makedirs(log_dir, exist_ok=True)
        log_file = os.path.abspath(os.path.join(log_dir, f"{self.app_name}.log"))
        for handler in self.logger.handlers:
            if getattr(handler, "baseFilename", None) == log_file:
                return

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=DEFAULT_LOG_MAX_BYTES,
            backupCount=DEFAULT_LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setFormatter(JSONFormatter())
        self.logger.addHandler(file_handler)
