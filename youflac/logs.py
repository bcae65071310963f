"""Structured logging with an in-process buffer and per-item log capture.

Records logged while an item context is active are also kept in a bounded
buffer for that item, whatever the global log level is.  Every line written
to the output stream is kept in a global buffer of recent entries.
"""

from __future__ import annotations

import contextvars
import json
import logging
import os
import re
import sys
import threading
from collections import deque
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import TextIO

__all__ = [
    "LogEntry",
    "ItemLogHandler",
    "BufferingStream",
    "logger",
    "item_context",
    "current_item_id",
    "register_item_logger",
    "unregister_item_logger",
    "get_item_logs",
    "get_logs",
    "init_logger",
]

MAX_ITEM_LOG_ENTRIES = 500
MAX_LOG_ENTRIES = 500

logger = logging.getLogger("youflac")

_item_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("youflac_item_id", default="")

_STANDARD_RECORD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {
    "message",
    "asctime",
    "taskName",
}
_WORD = re.compile(r"[^ \t]*")


@dataclass
class LogEntry:
    """A single buffered log line."""

    id: int
    time: str  # HH:MM:SS
    level: str  # DEBUG, INFO, WARN, ERROR
    message: str
    fields: str = ""


class _Ring:
    """A bounded, thread-safe buffer of log entries with monotonic IDs."""

    def __init__(self, capacity: int) -> None:
        self._entries: deque[LogEntry] = deque(maxlen=capacity)
        self._seq = 0
        self._lock = threading.Lock()

    def add(self, level: str, message: str, fields: str = "", created: float | None = None) -> None:
        moment = datetime.fromtimestamp(created) if created else datetime.now()
        with self._lock:
            self._seq += 1
            self._entries.append(
                LogEntry(
                    id=self._seq,
                    time=moment.strftime("%H:%M:%S"),
                    level=level.upper(),
                    message=message,
                    fields=fields,
                )
            )

    def snapshot(self) -> list[LogEntry]:
        with self._lock:
            return list(self._entries)


_log_buffer = _Ring(MAX_LOG_ENTRIES)
_item_rings: dict[str, _Ring] = {}
_item_rings_lock = threading.Lock()


@contextmanager
def item_context(item_id: str) -> Iterator[str]:
    """Tag every record logged inside the block with ``item_id``."""
    previous = _item_id_var.set(item_id)
    try:
        yield item_id
    finally:
        _item_id_var.reset(previous)


def current_item_id() -> str:
    """Return the item ID of the active item context, or ""."""
    return _item_id_var.get()


def register_item_logger(item_id: str) -> None:
    """Start (or restart) capturing log entries for ``item_id``."""
    with _item_rings_lock:
        _item_rings[item_id] = _Ring(MAX_ITEM_LOG_ENTRIES)


def unregister_item_logger(item_id: str) -> None:
    """Stop capturing log entries for ``item_id`` and drop them."""
    with _item_rings_lock:
        _item_rings.pop(item_id, None)


def get_item_logs(item_id: str) -> list[LogEntry]:
    """Return the entries captured for ``item_id``; empty if not registered."""
    with _item_rings_lock:
        ring = _item_rings.get(item_id)
    return ring.snapshot() if ring is not None else []


def get_logs(since_id: int = 0) -> list[LogEntry]:
    """Return buffered global entries with an ID greater than ``since_id``."""
    return [entry for entry in _log_buffer.snapshot() if entry.id > since_id]


def _level_name(record: logging.LogRecord) -> str:
    return "WARN" if record.levelno == logging.WARNING else record.levelname


def _extra_fields(record: logging.LogRecord) -> list[tuple[str, object]]:
    return [
        (key, value)
        for key, value in record.__dict__.items()
        if key not in _STANDARD_RECORD_ATTRS and not key.startswith("_")
    ]


def _format_fields(record: logging.LogRecord) -> str:
    return " ".join(f"{key}={value}" for key, value in _extra_fields(record))


class ItemLogHandler(logging.Handler):
    """Copies item-tagged records into their item buffer, then delegates.

    Records are forwarded to ``inner`` only if they reach its level, so the
    logger itself may run at DEBUG to let per-item debug logs be captured.
    """

    def __init__(self, inner: logging.Handler) -> None:
        super().__init__()
        self.inner = inner

    def emit(self, record: logging.LogRecord) -> None:
        item_id = current_item_id()
        if item_id:
            with _item_rings_lock:
                ring = _item_rings.get(item_id)
            if ring is not None:
                ring.add(_level_name(record), record.getMessage(), _format_fields(record), record.created)
        if record.levelno >= self.inner.level:
            self.inner.handle(record)

    def flush(self) -> None:
        self.inner.flush()

    def close(self) -> None:
        self.inner.close()
        super().close()


def _parse_line(line: str) -> tuple[str, str]:
    """Pull the level and message out of a ``key=value`` formatted line."""
    level = "INFO"
    idx = line.find("level=")
    if idx != -1:
        level = _WORD.match(line, idx + 6).group().upper()

    message = line
    idx = line.find("msg=")
    if idx != -1:
        rest = line[idx + 4:]
        if rest.startswith('"'):
            end = rest.find('"', 1)
            if end != -1:
                message = rest[1:end]
        else:
            message = _WORD.match(rest).group()
    return level, message


class BufferingStream:
    """A text stream that writes through and records each line in the global buffer."""

    def __init__(self, underlying: TextIO) -> None:
        self._underlying = underlying

    def write(self, text: str) -> int:
        written = self._underlying.write(text)
        if text:
            level, message = _parse_line(text.rstrip("\n"))
            _log_buffer.add(level, message)
        return written if written is not None else len(text)

    def flush(self) -> None:
        self._underlying.flush()


def _timestamp(record: logging.LogRecord) -> str:
    return datetime.fromtimestamp(record.created).astimezone().isoformat(timespec="milliseconds")


def _quote(value: str) -> str:
    if value and all(ch.isprintable() and ch not in ' ="' for ch in value):
        return value
    return json.dumps(value, ensure_ascii=False)


class _TextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        parts = [
            f"time={_timestamp(record)}",
            f"level={_level_name(record)}",
            f"msg={_quote(record.getMessage())}",
        ]
        parts.extend(f"{key}={_quote(str(value))}" for key, value in _extra_fields(record))
        if record.exc_info:
            parts.append(f"exc={_quote(self.formatException(record.exc_info))}")
        return " ".join(parts)


class _JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, object] = {
            "time": _timestamp(record),
            "level": _level_name(record),
            "msg": record.getMessage(),
        }
        for key, value in _extra_fields(record):
            data[key] = value if isinstance(value, (int, float, bool, type(None))) else str(value)
        if record.exc_info:
            data["exc"] = self.formatException(record.exc_info)
        return json.dumps(data, ensure_ascii=False)


_LEVELS = {"debug": logging.DEBUG, "warn": logging.WARNING, "error": logging.ERROR}


def init_logger(log_level: str = "info") -> logging.Logger:
    """Configure the package logger; LOG_LEVEL and LOG_FORMAT override defaults.

    ``log_level`` is one of "debug", "info", "warn" or "error"; anything else
    means "info".
    """
    log_level = os.environ.get("LOG_LEVEL") or log_level
    level = _LEVELS.get(log_level.lower(), logging.INFO)

    base = logging.StreamHandler(BufferingStream(sys.stdout))
    base.setLevel(level)
    if os.environ.get("LOG_FORMAT") == "json":
        base.setFormatter(_JSONFormatter())
    else:
        base.setFormatter(_TextFormatter())

    for old in list(logger.handlers):
        logger.removeHandler(old)
    logger.addHandler(ItemLogHandler(base))
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    return logger