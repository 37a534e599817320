"""Process-wide logging configuration."""

from __future__ import annotations

import logging

_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"
_HANDLER_NAME = "meetinglistener_stream"


def _build_stream_handler(level: int) -> logging.StreamHandler:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT, "%H:%M:%S"))
    handler.setLevel(level)
    handler.name = _HANDLER_NAME
    return handler


def configure_logging(level: str = "INFO") -> None:
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO
    handler = _build_stream_handler(numeric)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric)
    root_logger.handlers = [h for h in root_logger.handlers if h.name != _HANDLER_NAME]
    root_logger.addHandler(handler)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uv_logger = logging.getLogger(name)
        uv_logger.handlers = []
        uv_logger.propagate = True

    logging.getLogger("meetinglistener.boot").debug("Logging initialized at %s", level)
