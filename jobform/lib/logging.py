"""Logging for the form engine.

Two output shapes are supported: a plain console line for interactive use
and one JSON object per record for log aggregation. ``FormLogger`` stamps
every record with the identity of the form that produced it, so lookups
from concurrently open forms can be told apart.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, MutableMapping, Optional, Tuple

__all__ = [
    "setup_logging",
    "JSONFormatter",
    "FormLogger",
    "get_form_logger",
    "CONTEXT_FIELDS",
]

# Attributes promoted to the "form" object of a JSON record
CONTEXT_FIELDS = ("form_id", "task", "field", "trigger")

_RECORD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}

CONSOLE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
CONSOLE_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are only interesting when debugging them directly
QUIET_LOGGERS = ("httpx", "httpcore", "asyncio")


class JSONFormatter(logging.Formatter):
    """Render a record as a single JSON object.

    Example output:
        {"timestamp": "2025-01-15T10:30:00.123Z", "level": "INFO",
         "logger": "jobform.resolver", "message": "Lookup applied for source_table='orders'",
         "form": {"form_id": "a1b2c3d4"}}
    """

    def __init__(self, exclude_fields: Optional[Iterable[str]] = None):
        super().__init__()
        self.exclude_fields = frozenset(exclude_fields or ())

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        data: Dict[str, Any] = {
            "timestamp": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "source": {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            },
        }
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)

        form: Dict[str, Any] = {}
        extra: Dict[str, Any] = {}
        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS or key in self.exclude_fields:
                continue
            (form if key in CONTEXT_FIELDS else extra)[key] = value
        if form:
            data["form"] = form
        if extra:
            data["extra"] = extra

        return json.dumps(data, default=str)


class FormLogger(logging.LoggerAdapter):
    """Logger adapter that attaches form context to every record.

    Example:
        logger = get_form_logger("jobform.form")
        logger.set_context(form_id="a1b2", task="datax")
        logger.info("Field %s changed", "ds_type")
    """

    def __init__(self, name: str, **context: Any):
        super().__init__(logging.getLogger(name), dict(context))

    @property
    def context(self) -> Dict[str, Any]:
        return dict(self.extra)

    def set_context(self, **kwargs: Any) -> None:
        self.extra.update(kwargs)

    def clear_context(self) -> None:
        self.extra.clear()

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> Tuple[Any, MutableMapping[str, Any]]:
        # Per-call extra overrides the bound context
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_form_logger(name: str, **context: Any) -> FormLogger:
    return FormLogger(name, **context)


def setup_logging(
    level: str = "INFO",
    *,
    json_format: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """Configure the root logger for the CLI.

    Args:
        level: Level name such as ``"DEBUG"`` or ``"warning"``
        json_format: Emit one JSON object per record
        log_file: Also write records to this file

    Raises:
        ValueError: If ``level`` is not a known level name
    """
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level: {level}")

    formatter: logging.Formatter
    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(CONSOLE_FORMAT, datefmt=CONSOLE_DATEFMT)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(numeric)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric, logging.WARNING))
