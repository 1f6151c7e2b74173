"""Logging for the moltycash CLI.

Logs go to stderr so command output on stdout stays clean. Each invocation
gets one correlation ID, stamped on its log records and sent to the server as
X-Correlation-Id, so a single command can be traced end to end.
"""

import json
import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Iterable, Optional

# Correlation ID of the running CLI invocation
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

TEXT_FORMAT = "%(asctime)s [%(levelname)s] [%(correlation_id)s] %(name)s: %(message)s"
REDACTED = "***"


class CorrelationIdFilter(logging.Filter):
    """Add correlation ID to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get() or "-"
        return True


class SecretRedactionFilter(logging.Filter):
    """Mask private keys and the identity token if they ever reach a message."""

    def __init__(self, secrets: Iterable[str] = ()):
        super().__init__()
        self.secrets = [s for s in secrets if s]

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.secrets:
            return True
        message = record.getMessage()
        redacted = message
        for secret in self.secrets:
            redacted = redacted.replace(secret, REDACTED)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "correlation_id": getattr(record, "correlation_id", "-"),
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def setup_logging(
    log_level: str = "WARNING",
    log_format: str = "text",
    secrets: Iterable[str] = (),
) -> None:
    """Configure the root logger for one CLI run.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        log_format: Log format (json or text).
        secrets: Values to mask in every log message.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, log_level.upper()))

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter() if log_format == "json" else logging.Formatter(TEXT_FORMAT))
    handler.addFilter(CorrelationIdFilter())
    handler.addFilter(SecretRedactionFilter(secrets))
    root.addHandler(handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(root.level, logging.WARNING))


def get_correlation_id() -> Optional[str]:
    return correlation_id_var.get()


def new_correlation_id() -> str:
    return f"cli-{uuid.uuid4().hex[:12]}"


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class CorrelationIdContext:
    """Bind a correlation ID for the duration of a block."""

    def __init__(self, correlation_id: Optional[str] = None):
        self.correlation_id = correlation_id or new_correlation_id()
        self._token = None

    def __enter__(self) -> str:
        self._token = correlation_id_var.set(self.correlation_id)
        return self.correlation_id

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        correlation_id_var.reset(self._token)
