# shopreco/core/logging.py
import json
import logging
import sys
from typing import Any

import colorlog

_LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}


def configure_logging(debug: bool = False) -> None:
    """
    Install one colored stdout handler on the root logger.
    DEBUG turns on cache keys, candidate previews and per-list timings.
    """
    level = logging.DEBUG if debug else logging.INFO
    handler = colorlog.StreamHandler(sys.stdout)
    handler.setFormatter(
        colorlog.ColoredFormatter(
            "%(log_color)s%(asctime)s %(levelname)-8s [%(name)s]%(reset)s %(message)s",
            datefmt="%H:%M:%S",
            log_colors=_LOG_COLORS,
        )
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    for name in ("uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(level)
    # motor/pymongo and redis are noisy at DEBUG
    logging.getLogger("pymongo").setLevel(logging.WARNING)
    logging.getLogger("redis").setLevel(logging.WARNING)


def json_preview(obj: Any, limit: int = 1000) -> str:
    """Minify and truncate JSON for debug logs."""
    try:
        s = json.dumps(obj, separators=(",", ":"), ensure_ascii=False, default=str)
        return s if len(s) <= limit else s[:limit] + "…[truncated]"
    except (TypeError, ValueError):
        return "<unserializable>"
