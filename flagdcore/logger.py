"""Logging wrapper with per-request fields shared between parent and child loggers."""

from __future__ import annotations

import copy
import datetime
import json
import logging
import os
import sys
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

REQUEST_ID_FIELD_NAME = "requestID"

_LEVELS: Dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
}

_LEVEL_LABELS: Dict[int, str] = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warn",
    logging.ERROR: "error",
    logging.CRITICAL: "fatal",
}


@dataclass(frozen=True)
class Field:
    """A structured key/value pair attached to a log entry."""

    key: str
    value: Any


def _make_noop_logger() -> logging.Logger:
    log = logging.Logger("flagdcore.noop")
    log.addHandler(logging.NullHandler())
    log.propagate = False
    log.disabled = True
    return log


_NOOP_LOGGER = _make_noop_logger()


class Logger:
    """Wraps a standard logger, adding request-scoped and per-logger fields.

    Fields written for a request id are stored in a pool shared by the logger
    and every child created with ``with_fields``. If ``logger`` is None, a
    no-op logger is used and request id logging is switched off.
    """

    def __init__(self, logger: Optional[logging.Logger], req_id_logging: bool) -> None:
        if logger is None:
            req_id_logging = False
            logger = _NOOP_LOGGER
        self.logger = logger
        self.req_id_logging = req_id_logging
        self._request_fields: Dict[str, Tuple[Field, ...]] = {}
        self._lock = threading.Lock()
        self._fields: Tuple[Field, ...] = ()

    def _write(self, level: int, msg: str, fields: List[Field]) -> None:
        if self.logger.isEnabledFor(level):
            self.logger.log(level, msg, extra={"fields": tuple(fields)}, stacklevel=3)

    def _write_with_id(self, level: int, req_id: str, msg: str, fields: Tuple[Field, ...]) -> None:
        if self.logger.isEnabledFor(level):
            self.logger.log(
                level,
                msg,
                extra={"fields": tuple(fields) + tuple(self.fields_for_log(req_id))},
                stacklevel=3,
            )

    def debug_with_id(self, req_id: str, msg: str, *args: Field) -> None:
        if self.req_id_logging:
            self._write_with_id(logging.DEBUG, req_id, msg, args)

    def debug(self, msg: str, *args: Field) -> None:
        self._write(logging.DEBUG, msg, [*args, *self._fields])

    def info_with_id(self, req_id: str, msg: str, *args: Field) -> None:
        if self.req_id_logging:
            self._write_with_id(logging.INFO, req_id, msg, args)

    def info(self, msg: str, *args: Field) -> None:
        self._write(logging.INFO, msg, [*args, *self._fields])

    def warn_with_id(self, req_id: str, msg: str, *args: Field) -> None:
        if self.req_id_logging:
            self._write_with_id(logging.WARNING, req_id, msg, args)

    def warn(self, msg: str, *args: Field) -> None:
        self._write(logging.WARNING, msg, [*args, *self._fields])

    def error_with_id(self, req_id: str, msg: str, *args: Field) -> None:
        if self.req_id_logging:
            self._write_with_id(logging.ERROR, req_id, msg, args)

    def error(self, msg: str, *args: Field) -> None:
        self._write(logging.ERROR, msg, [*args, *self._fields])

    def fatal_with_id(self, req_id: str, msg: str, *args: Field) -> None:
        """Log at fatal level and exit the process."""
        if not self.req_id_logging:
            return
        self._write_with_id(logging.CRITICAL, req_id, msg, args)
        raise SystemExit(1)

    def fatal(self, msg: str, *args: Field) -> None:
        """Log at fatal level and exit the process."""
        self._write(logging.CRITICAL, msg, [*args, *self._fields])
        raise SystemExit(1)

    def write_fields(self, req_id: str, *args: Field) -> None:
        """Append fields to every later log call made with this request id."""
        if not self.req_id_logging:
            return
        with self._lock:
            self._request_fields[req_id] = self._request_fields.get(req_id, ()) + tuple(args)

    def get_fields(self, req_id: str) -> List[Field]:
        with self._lock:
            return list(self._request_fields.get(req_id, ()))

    def fields_for_log(self, req_id: str) -> List[Field]:
        """Request fields, then the request id, then this logger's own fields."""
        return [*self.get_fields(req_id), Field(REQUEST_ID_FIELD_NAME, req_id), *self._fields]

    def clear_fields(self, req_id: str) -> None:
        if not self.req_id_logging:
            return
        with self._lock:
            self._request_fields.pop(req_id, None)

    def with_fields(self, *args: Field) -> "Logger":
        """Return a child logger with base fields, sharing the request field pool."""
        child = copy.copy(self)
        child._fields = tuple(args)
        return child


def _record_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {f.key: f.value for f in getattr(record, "fields", ())}


def _short_caller(record: logging.LogRecord) -> str:
    directory, filename = os.path.split(record.pathname)
    parent = os.path.basename(directory)
    path = f"{parent}/{filename}" if parent else filename
    return f"{path}:{record.lineno}"


def _timestamp(record: logging.LogRecord) -> str:
    moment = datetime.datetime.fromtimestamp(record.created).astimezone()
    return moment.isoformat(timespec="milliseconds")


def _level_label(record: logging.LogRecord) -> str:
    return _LEVEL_LABELS.get(record.levelno, record.levelname.lower())


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "level": _level_label(record),
            "ts": _timestamp(record),
            "caller": _short_caller(record),
            "msg": record.getMessage(),
        }
        entry.update(_record_fields(record))
        if record.exc_info:
            entry["stacktrace"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class _ConsoleFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        parts = [_timestamp(record), _level_label(record), _short_caller(record), record.getMessage()]
        fields = _record_fields(record)
        if fields:
            parts.append(json.dumps(fields, default=str))
        line = "\t".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _parse_level(level: Union[int, str]) -> int:
    if isinstance(level, bool):
        raise ValueError(f"invalid log level: {level!r}")
    if isinstance(level, int):
        return level
    try:
        return _LEVELS[str(level).lower()]
    except KeyError:
        raise ValueError(f"invalid log level: {level!r}") from None


def new_std_logger(level: Union[int, str], log_format: str) -> logging.Logger:
    """Create a standard logger writing ``json`` or ``console`` entries to stderr."""
    numeric_level = _parse_level(level)
    formatters = {"json": _JsonFormatter, "console": _ConsoleFormatter}
    try:
        formatter = formatters[log_format]()
    except KeyError:
        raise ValueError(
            f"unable to build logger from config: no encoder registered for name {log_format!r}"
        ) from None
    log = logging.Logger("flagd", numeric_level)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    log.addHandler(handler)
    log.propagate = False
    return log