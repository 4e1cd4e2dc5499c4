"""
resmerge/logging_config.py

Root logging setup for the resmerge CLI.

The engines bind the collection being read with ``LogContext(input=...)``;
formatters show it as the record source so that warnings about headers,
ids or empty clusters point at their file.
"""

from __future__ import annotations

import contextvars
import json
import logging
import time
from typing import Any

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")

_CONFIGURED = False

_log_context: contextvars.ContextVar[dict[str, Any] | None] = contextvars.ContextVar(
    "resmerge_log_context", default=None
)


def get_log_context() -> dict[str, Any]:
    """Fields bound by the enclosing ``LogContext`` blocks."""
    ctx = _log_context.get()
    return ctx.copy() if ctx else {}


class LogContext:
    """Bind fields (``input`` for the collection being read) to log records."""

    def __init__(self, **fields: Any):
        self.fields = fields
        self.token: contextvars.Token | None = None

    def __enter__(self) -> LogContext:
        current = get_log_context()
        current.update(self.fields)
        self.token = _log_context.set(current)
        return self

    def __exit__(self, *args: Any) -> None:
        if self.token is not None:
            _log_context.reset(self.token)
            self.token = None


_TEXT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(source)s%(message)s"


class TextFormatter(logging.Formatter):
    """``time | LEVEL | logger | [input] message | key=value``"""

    def __init__(self) -> None:
        super().__init__(_TEXT_FORMAT)
        self.converter = time.gmtime

    def formatMessage(self, record: logging.LogRecord) -> str:  # noqa: N802
        context = get_log_context()
        source = context.pop("input", None)
        values = dict(record.__dict__, source=f"[{source}] " if source else "")
        formatted = _TEXT_FORMAT % values
        if context:
            fields = " ".join(f"{key}={value}" for key, value in sorted(context.items()))
            formatted = f"{formatted} | {fields}"
        return formatted


class JsonFormatter(logging.Formatter):
    """One JSON object per record; the bound input is a top-level field."""

    def __init__(self) -> None:
        super().__init__()
        self.converter = time.gmtime

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%SZ"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = get_log_context()
        source = context.pop("input", None)
        if source:
            payload["input"] = source
        if context:
            payload["context"] = context
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _resolve_level(level: str | int | None) -> int:
    if isinstance(level, int):
        return level
    if level is None:
        return logging.INFO
    return logging._nameToLevel.get(str(level).upper(), logging.INFO)


def configure_logging(*, level: str | int | None = None, fmt: str = "text") -> None:
    """Install a stderr handler on the root logger, once per process.

    An already configured root (e.g. by a test runner) keeps its handlers and
    only gets the level.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    root = logging.getLogger()
    root.setLevel(_resolve_level(level))

    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter() if fmt.lower() == "json" else TextFormatter())
        root.addHandler(handler)

    _CONFIGURED = True


def add_logging_args(parser: Any) -> None:
    # None defers to the ``logging`` section of --config
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help="Logging level (default: config value or INFO).",
    )
    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=None,
        help="Log line format (default: config value or text).",
    )
