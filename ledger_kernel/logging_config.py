"""
Structured JSON logging for the ledger kernel.

Every ledger_kernel log record is written as one JSON object per line:
timestamp, level, logger and message, the fields bound by the enclosing
LogContext.bind() blocks, the record's ``extra`` fields and, for a failed
call, the exception with the structured fields of a LedgerKernelError
flattened into ``exc_<name>`` keys.

Services never configure handlers; the process entrypoint (or
ledger_config.bridges.bootstrap) calls configure_logging() once.
"""

import json
import logging
import sys
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from types import MappingProxyType
from typing import Any
from uuid import UUID

LOGGER_NAMESPACE = "ledger_kernel"

# Name given to the handler installed by configure_logging().
_HANDLER_NAME = "ledger_kernel.structured"

_EMPTY: Mapping[str, str] = MappingProxyType({})
_bound: ContextVar[Mapping[str, str]] = ContextVar("ledger_log_context", default=_EMPTY)


class LogContext:
    """
    Fields attached to every record logged inside a ``bind()`` block.

    The bound fields live in a context variable, so threads and asyncio
    tasks each see their own.  Nested binds overlay the outer fields and
    restore them on exit.
    """

    FIELDS = frozenset({"operation", "account", "record_seq"})

    @staticmethod
    def current() -> Mapping[str, str]:
        return _bound.get()

    @staticmethod
    @contextmanager
    def bind(**fields: object) -> Iterator[None]:
        """
        Bind ``fields`` for the duration of the block.  None values are
        skipped; everything else is logged as its string form.

        Raises:
            TypeError: A field name outside LogContext.FIELDS.
        """
        unknown = set(fields) - LogContext.FIELDS
        if unknown:
            raise TypeError(f"Unknown log context fields: {sorted(unknown)}")
        merged = dict(_bound.get())
        merged.update({k: str(v) for k, v in fields.items() if v is not None})
        token = _bound.set(MappingProxyType(merged))
        try:
            yield
        finally:
            _bound.reset(token)

    @staticmethod
    def clear() -> None:
        _bound.set(_EMPTY)


def _json_default(value: Any) -> Any:
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    return repr(value)


# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "taskName"}


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.current(),
        }
        entry.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key not in entry
        )
        if record.exc_info and record.exc_info[1] is not None:
            entry.update(self._exception_fields(record.exc_info[1]))
            entry["traceback"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=_json_default)

    @staticmethod
    def _exception_fields(exc: BaseException) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        code = getattr(exc, "code", None)
        if code is not None:
            # LedgerKernelError: its constructor arguments are public attributes.
            fields["exc_code"] = code
            fields.update(
                (f"exc_{name}", value)
                for name, value in vars(exc).items()
                if not name.startswith("_")
            )
        return fields


def get_logger(name: str) -> logging.Logger:
    """Logger ``ledger_kernel.<name>``."""
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


def _installed(logger: logging.Logger) -> list[logging.Handler]:
    return [h for h in logger.handlers if h.get_name() == _HANDLER_NAME]


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Install the JSON handler on the ledger_kernel logger.

    A second call while a handler is installed changes nothing.
    """
    logger = logging.getLogger(LOGGER_NAMESPACE)
    if _installed(logger):
        return
    handler = handler or logging.StreamHandler(stream or sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(StructuredFormatter())
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False


def reset_logging() -> None:
    """Remove the handler installed by configure_logging().  Tests only."""
    logger = logging.getLogger(LOGGER_NAMESPACE)
    for handler in _installed(logger):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
