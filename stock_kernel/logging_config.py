"""
JSON-lines logging for stock movements.

Every record under the ``stock_kernel`` logger becomes one JSON object.
Fields passed through ``extra=`` become top-level keys.  The order being
transitioned, the actor and the idempotency key are carried in
LogContext so that the calculator, adjuster and store logs emitted
during one transition can be joined without threading ids through every
call.
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any, Iterator
from uuid import UUID

ROOT_LOGGER_NAME = "stock_kernel"

_CONTEXT_FIELDS = ("correlation_id", "order_id", "actor_id", "transition_key")

_bound: ContextVar[dict[str, str]] = ContextVar("stock_log_context", default={})


class LogContext:
    """Per-task log fields, isolated between threads and asyncio tasks."""

    @staticmethod
    def _merged(fields: dict[str, Any]) -> dict[str, str]:
        unknown = set(fields) - set(_CONTEXT_FIELDS)
        if unknown:
            raise TypeError(f"Unknown log context field(s): {sorted(unknown)}")
        merged = dict(_bound.get())
        merged.update({k: str(v) for k, v in fields.items() if v is not None})
        return merged

    @classmethod
    def set(cls, **fields: Any) -> None:
        """Bind fields until cleared.  None leaves a field unchanged."""
        _bound.set(cls._merged(fields))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(_bound.get())

    @classmethod
    def clear(cls) -> None:
        _bound.set({})

    @classmethod
    @contextmanager
    def bind(cls, **fields: Any) -> Iterator[type["LogContext"]]:
        """Bind fields for the duration of a ``with`` block."""
        token = _bound.set(cls._merged(fields))
        try:
            yield cls
        finally:
            _bound.reset(token)


# Attributes every LogRecord has; anything else on a record came from extra=.
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "taskName"}


def _to_json(value: Any) -> Any:
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


class StructuredFormatter(logging.Formatter):
    """
    Render a record as a single JSON line.

    Key order: ts, level, logger, message, then context fields, then
    extras.  A context field wins over an extra of the same name.
    Exceptions add ``exc_type``, ``exc_message``, ``exc_code`` (for kernel
    errors) and one ``exc_<attr>`` key per public attribute of the error.
    """

    def format(self, record: logging.LogRecord) -> str:
        out: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        out.update(LogContext.get_all())
        for name, value in record.__dict__.items():
            if name not in _RECORD_ATTRS:
                out.setdefault(name, value)
        if record.exc_info and record.exc_info[1] is not None:
            out.update(self._describe_error(record.exc_info[1]))
            out["traceback"] = self.formatException(record.exc_info)
        return json.dumps(out, default=_to_json)

    @staticmethod
    def _describe_error(error: BaseException) -> dict[str, Any]:
        described: dict[str, Any] = {
            "exc_type": type(error).__name__,
            "exc_message": str(error),
        }
        code = getattr(error, "code", None)
        if code is not None:
            described["exc_code"] = code
        for attr, value in vars(error).items():
            if attr.startswith("_") or attr in ("args", "code"):
                continue
            described[f"exc_{attr}"] = value
        return described


def get_logger(name: str) -> logging.Logger:
    """Logger named ``stock_kernel.<name>``."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


_setup_lock = threading.Lock()
_handler_installed = False


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach a JSON handler to the ``stock_kernel`` logger.

    Only the first call has an effect until ``reset_logging`` runs.  The
    kernel logger does not propagate, so host applications keep their
    own root configuration.
    """
    global _handler_installed
    with _setup_lock:
        if _handler_installed:
            return
        _handler_installed = True

    target = handler or logging.StreamHandler(stream or sys.stderr)
    target.setFormatter(StructuredFormatter())

    kernel_logger = logging.getLogger(ROOT_LOGGER_NAME)
    kernel_logger.setLevel(level)
    kernel_logger.propagate = False
    kernel_logger.addHandler(target)


def reset_logging() -> None:
    """Remove kernel handlers so tests can reconfigure."""
    global _handler_installed
    with _setup_lock:
        _handler_installed = False
    kernel_logger = logging.getLogger(ROOT_LOGGER_NAME)
    kernel_logger.handlers.clear()
    kernel_logger.setLevel(logging.WARNING)
