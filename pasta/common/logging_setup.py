"""Process logging for the paste server.

uvicorn is started with ``log_config=None``, so its loggers are routed through
the single root handler configured here. Access lines carry paste keys in
their paths and are only emitted at DEBUG.
"""
import logging
import os
import sys
from typing import Optional

FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

_handler: Optional[logging.Handler] = None


def resolve_level(name: Optional[str] = None) -> int:
    level_name = (name or os.getenv("LOG_LEVEL") or "INFO").upper()
    level = logging.getLevelName(level_name)
    return level if isinstance(level, int) else logging.INFO


def setup_logging(level: Optional[str] = None) -> logging.Handler:
    global _handler
    resolved = resolve_level(level)
    root = logging.getLogger()
    if _handler is None:
        _handler = logging.StreamHandler(sys.stdout)
        _handler.setFormatter(logging.Formatter(FORMAT))
        root.handlers[:] = [_handler]
    root.setLevel(resolved)

    for name in UVICORN_LOGGERS:
        uv_logger = logging.getLogger(name)
        uv_logger.handlers.clear()
        uv_logger.propagate = True
    logging.getLogger("uvicorn.access").setLevel(logging.DEBUG if resolved <= logging.DEBUG else logging.WARNING)
    return _handler
