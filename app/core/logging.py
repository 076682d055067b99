"""Key=value logging shared by the edit loop, the learning chains and the API."""

import logging
import sys
from typing import Any

# Promoted ahead of other context so one edit run can be followed across lines
CORRELATION_FIELDS = ("run_id", "document_id")


class StructuredFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        fields: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "module": record.module,
            "function": record.funcName,
        }
        for name in CORRELATION_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                fields[name] = value
        fields["message"] = record.getMessage()
        fields.update(getattr(record, "extra_data", {}))

        line = " ".join(f"{k}={v}" for k, v in fields.items())
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def _level_for_env() -> int:
    try:
        from app.core.config import get_settings

        env = get_settings().STYLE_ENGINE_ENV
    except Exception:
        return logging.INFO
    return logging.DEBUG if env == "dev" else logging.INFO


def get_logger(name: str) -> logging.Logger:
    """
    Logger writing structured lines to stdout.

    Debug output is enabled when STYLE_ENGINE_ENV is ``dev``. Handlers are
    attached once per logger name.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)
        logger.setLevel(_level_for_env())
    return logger


def log_with_context(logger: logging.Logger, level: int, msg: str, **kwargs: Any) -> None:
    """
    Log with context fields appended as key=value pairs.

    Args:
        logger: Logger instance
        level: Log level (logging.INFO, etc.)
        msg: Log message
        **kwargs: Context such as run_id, document_id, paragraph_index
    """
    extra: dict[str, Any] = {name: kwargs.pop(name) for name in CORRELATION_FIELDS if name in kwargs}
    extra["extra_data"] = kwargs
    logger.log(level, msg, extra=extra)
