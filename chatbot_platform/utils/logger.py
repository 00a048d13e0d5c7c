from __future__ import annotations
import contextvars
import json
import logging
import logging.handlers
import os
import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

"""
Centralized logging for the chatbot platform.

- init_logging(): console (human) + rotating file (JSON) handlers on the root logger
- get_logger(name): returns a logger, initializing the root on first use
- operation_id contextvar: correlates every record emitted while one user
  operation (register, login, send, ...) is running
"""

operation_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("operation_id", default=None)

_RESERVED_ATTRS = frozenset((
    "name", "msg", "args", "levelname", "levelno", "pathname", "filename", "module",
    "exc_info", "exc_text", "stack_info", "lineno", "funcName", "created", "msecs",
    "relativeCreated", "thread", "threadName", "processName", "process", "message",
    "taskName", "operation_id", "operation_id_part", "asctime",
))


def new_operation_id() -> str:
    """Start a new operation and return its id."""
    oid = uuid.uuid4().hex[:8]
    operation_id.set(oid)
    return oid


def clear_operation_id() -> None:
    operation_id.set(None)


class OperationIDFilter(logging.Filter):
    """Attach the current operation_id (if any) to every LogRecord."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.operation_id = operation_id.get()
        return True


class ConsoleFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        oid = getattr(record, "operation_id", None)
        record.operation_id_part = f" [op={oid}]" if oid else ""
        return super().format(record)


class JsonFormatter(logging.Formatter):
    """JSON lines; extra= keys are copied into the payload."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "funcName": record.funcName,
            "line": record.lineno,
            "operation_id": getattr(record, "operation_id", None),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        for k, v in record.__dict__.items():
            if k in _RESERVED_ATTRS:
                continue
            try:
                json.dumps({k: v})
                payload[k] = v
            except (TypeError, ValueError):
                payload[k] = str(v)
        return json.dumps(payload, ensure_ascii=False)


def _default_log_dir() -> Path:
    return Path(os.getenv("LOG_DIR", Path.cwd() / "logs"))


def init_logging(
    *,
    level: Optional[int] = None,
    log_dir: Optional[Path] = None,
    filename: Optional[str] = None,
    console: bool = True,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3,
) -> None:
    """
    Initialize the root logger. Safe to call multiple times (handlers replaced).
    - level: defaults to env LOG_LEVEL or WARNING (the terminal client shares stdout)
    - log_dir: directory for the rotated JSON log (env LOG_DIR, default ./logs)
    - filename: defaults to env LOG_FILE or chatbot_platform.log
    """
    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)

    env_level = os.getenv("LOG_LEVEL", "WARNING").upper()
    chosen_level = level if level is not None else getattr(logging, env_level, logging.WARNING)
    root.setLevel(chosen_level)

    op_filter = OperationIDFilter()

    if console:
        ch = logging.StreamHandler(sys.stderr)
        ch.setLevel(chosen_level)
        ch.setFormatter(ConsoleFormatter("%(asctime)s %(levelname)s %(name)s: %(message)s%(operation_id_part)s", "%Y-%m-%d %H:%M:%S"))
        ch.addFilter(op_filter)
        root.addHandler(ch)

    log_dir = Path(log_dir) if log_dir is not None else _default_log_dir()
    filename = filename or os.getenv("LOG_FILE", "chatbot_platform.log")
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        fh = logging.handlers.RotatingFileHandler(str(log_dir / filename), maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
        fh.setLevel(chosen_level)
        fh.setFormatter(JsonFormatter())
        fh.addFilter(op_filter)
        root.addHandler(fh)
    except OSError:
        root.warning("Failed to initialize file handler for logging; continuing with console only", exc_info=True)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger with the given name, initializing logging on first use."""
    if not logging.getLogger().handlers:
        init_logging()
    return logging.getLogger(name)
