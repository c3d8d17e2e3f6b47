"""Structured JSON logging carrying trace, quote and transaction identifiers."""

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar

from pythonjsonlogger.json import JsonFormatter

from payroute.common.config import settings

trace_id_ctx: ContextVar[str] = ContextVar("trace_id", default="")
quote_id_ctx: ContextVar[str] = ContextVar("quote_id", default="")
transaction_id_ctx: ContextVar[str] = ContextVar("transaction_id", default="")

_CONTEXT_VARS = {
    "trace_id": trace_id_ctx,
    "quote_id": quote_id_ctx,
    "transaction_id": transaction_id_ctx,
}


class ContextFilter(logging.Filter):
    """Copy the service name and the bound identifiers onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.service_name = settings.service_name
        for name, var in _CONTEXT_VARS.items():
            setattr(record, name, var.get())
        return True


@contextmanager
def log_context(**identifiers: str):
    """Bind identifiers (trace_id, quote_id, transaction_id) for the enclosed block."""

    tokens = [(_CONTEXT_VARS[name], _CONTEXT_VARS[name].set(value)) for name, value in identifiers.items()]
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


def configure_logging() -> None:
    """Route everything through one stdout JSON handler."""

    handler = logging.StreamHandler(sys.stdout)
    context_filter = ContextFilter()
    handler.addFilter(context_filter)
    handler.setFormatter(
        JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(service_name)s %(trace_id)s %(quote_id)s %(transaction_id)s %(message)s",
            rename_fields={"asctime": "timestamp", "levelname": "level"},
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(settings.log_level)
    root.addFilter(context_filter)
    # Statement echo belongs to SQLAlchemy's own `echo` flag, not the app level.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


logger = logging.getLogger("payroute")
