"""Structured logging for the engine, the scheduler and the HTTP surface.

Records carry an optional ``context`` dict, either passed per call via
``extra={"context": {...}}`` or bound for a block with LogContext (an
execution id for the duration of a run, for instance). Handlers write
JSON to a rotating file and JSON or colored text to stdout.

Webhook URLs and SMTP credentials appear in collaborator errors, so every
handler redacts them before formatting.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from contextvars import ContextVar, Token
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, ClassVar

from hiveflow import __version__
from hiveflow.core.config import settings

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_LOG_FILE = Path("logs") / "app.log"


# =============================================================================
# Scoped context
# =============================================================================

_scoped_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})


class LogContext:
    """Bind context fields to every record emitted inside a block.

    Fields live in a context variable, so concurrent runs on one event loop
    only see their own.

    Examples:
        >>> logger = get_logger(__name__)
        >>> with LogContext(execution_id=12, workflow_id=3):
        ...     logger.info("Dispatching level 0")
    """

    def __init__(self, **context: Any) -> None:
        self.context = context
        self._token: Token[dict[str, Any]] | None = None

    def __enter__(self) -> LogContext:
        self._token = _scoped_context.set({**_scoped_context.get(), **self.context})
        return self

    def __exit__(self, *exc_info: Any) -> None:
        if self._token is not None:
            _scoped_context.reset(self._token)
            self._token = None


class LogContextFilter(logging.Filter):
    """Merge scoped fields into ``record.context``; explicit fields win."""

    def filter(self, record: logging.LogRecord) -> bool:
        scoped = _scoped_context.get()
        if scoped:
            record.context = {**scoped, **getattr(record, "context", {})}
        return True


# =============================================================================
# Redaction
# =============================================================================


class SensitiveDataFilter(logging.Filter):
    """Replace credentials in messages and string args with ``[REDACTED]``.

    ``password: x`` / ``token=x`` style values are masked after their key.
    Discord and Slack webhook URLs are masked after the host, since the
    path is the secret.
    """

    SENSITIVE_KEYS: ClassVar[tuple[str, ...]] = (
        "password",
        "passwd",
        "pwd",
        "secret",
        "token",
        "api_key",
        "apikey",
        "authorization",
        "bearer",
        "credential",
    )
    KEY_VALUE_PATTERN: ClassVar[re.Pattern[str]] = re.compile(
        rf"(?P<key>{'|'.join(SENSITIVE_KEYS)})[:=]\s*[\"']?[^\s\"']+",
        re.IGNORECASE,
    )
    WEBHOOK_URL_PATTERN: ClassVar[re.Pattern[str]] = re.compile(
        r"https://(discord(?:app)?\.com/api/webhooks|hooks\.slack\.com/services)/\S+",
        re.IGNORECASE,
    )

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = self.redact(str(record.msg))
        if record.args:
            record.args = tuple(
                self.redact(arg) if isinstance(arg, str) else arg for arg in record.args
            )
        return True

    @classmethod
    def redact(cls, text: str) -> str:
        text = cls.KEY_VALUE_PATTERN.sub(r"\g<key>: [REDACTED]", text)
        return cls.WEBHOOK_URL_PATTERN.sub(r"https://\1/[REDACTED]", text)


# =============================================================================
# Formatters
# =============================================================================


class JSONFormatter(logging.Formatter):
    """One JSON object per record.

    Example output:
        {"timestamp": "2025-01-12T10:30:45.123Z", "level": "INFO",
         "logger": "hiveflow.services.workflow.executor",
         "message": "Execution 12 finished: success", "service": "HiveFlow",
         "version": "0.1.0", "context": {"execution_id": 12}}

    Records at ERROR and above also carry their source location.
    """

    def __init__(self, service_name: str = "HiveFlow") -> None:
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, tz=UTC)
        entry: dict[str, Any] = {
            "timestamp": timestamp.isoformat(timespec="milliseconds").replace(
                "+00:00", "Z"
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
            "version": __version__,
        }
        context = getattr(record, "context", None)
        if context:
            entry["context"] = context
        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__ if exc_type else None,
                "message": str(exc_value) if exc_value else None,
                "traceback": self.formatException(record.exc_info),
            }
        if record.levelno >= logging.ERROR:
            entry["source"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }
        return json.dumps(entry, default=str, ensure_ascii=False)


class ColoredConsoleFormatter(logging.Formatter):
    """Human-readable console output for DEBUG runs."""

    COLORS: ClassVar[dict[str, str]] = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[41m",
    }
    RESET: ClassVar[str] = "\033[0m"

    def __init__(self) -> None:
        super().__init__(fmt=TEXT_FORMAT, datefmt=DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        color = self.COLORS.get(record.levelname)
        if color:
            line = line.replace(
                record.levelname, f"{color}{record.levelname}{self.RESET}", 1
            )
        context = getattr(record, "context", None)
        if context:
            line += f" | {json.dumps(context, default=str)}"
        return line


# =============================================================================
# Setup
# =============================================================================


def _with_filters(handler: logging.Handler) -> logging.Handler:
    handler.addFilter(LogContextFilter())
    handler.addFilter(SensitiveDataFilter())
    return handler


def setup_logging(
    log_level: str | None = None,
    log_file: str | None = None,
    service_name: str = "HiveFlow",
    enable_json: bool = True,
    enable_console: bool = True,
    colored_console: bool | None = None,
) -> logging.Logger:
    """Configure the root logger.

    Args:
        log_level: Level name; defaults to ``settings.LOG_LEVEL``.
        log_file: Rotating log file (10MB, 5 backups); defaults to
            ``logs/app.log``.
        service_name: Written into every JSON record.
        enable_json: JSON in the log file instead of plain text.
        enable_console: Also log to stdout.
        colored_console: Colored text on stdout instead of JSON; defaults
            to ``settings.DEBUG``.

    Returns:
        The configured root logger.
    """
    level_name = (log_level or settings.LOG_LEVEL).upper()
    level = getattr(logging, level_name, logging.INFO)
    log_path = Path(log_file) if log_file else DEFAULT_LOG_FILE
    log_path.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    file_handler = RotatingFileHandler(
        filename=str(log_path),
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        JSONFormatter(service_name)
        if enable_json
        else logging.Formatter(TEXT_FORMAT, datefmt=DATE_FORMAT)
    )
    root.addHandler(_with_filters(file_handler))

    if enable_console:
        if colored_console is None:
            colored_console = settings.DEBUG
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(
            ColoredConsoleFormatter() if colored_console else JSONFormatter(service_name)
        )
        root.addHandler(_with_filters(console_handler))

    root.info(
        f"Logging initialized at {level_name}, writing to {log_path}",
        extra={"context": {"log_level": level_name, "log_file": str(log_path)}},
    )
    return root


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


__all__ = [
    "ColoredConsoleFormatter",
    "JSONFormatter",
    "LogContext",
    "LogContextFilter",
    "SensitiveDataFilter",
    "get_logger",
    "setup_logging",
]
