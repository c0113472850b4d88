import os
import logging
import logging.config
from pathlib import Path
from typing import Dict, Any


_configured = False  # idempotency guard

# Loggers that follow LOG_LEVEL
_SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "fastapi", "dexcache")
# httpx/httpcore log every request at INFO; keep them at WARNING unless asked
_CHATTY_LOGGERS = ("httpx", "httpcore")


def _build_dict_config(log_file: str | None, level: str) -> Dict[str, Any]:
    handlers: Dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
            "formatter": "kv",
        }
    }

    root_handlers = ["console"]

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.WatchedFileHandler",
            "filename": log_file,
            "formatter": "kv",
        }
        root_handlers.append("file")

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "kv": {"format": "%(asctime)s level=%(levelname)s logger=%(name)s %(message)s"}
        },
        "handlers": handlers,
        "root": {"level": level, "handlers": root_handlers},
    }


def configure_logging() -> None:
    """Configure logging to stdout and (optionally) to LOG_FILE_PATH.

    Reads LOG_LEVEL (default INFO) and UPSTREAM_LOG_LEVEL (default WARNING,
    applied to the HTTP client libraries). Idempotent.
    """
    global _configured
    if _configured:
        return

    level = os.getenv("LOG_LEVEL", "INFO").upper()
    upstream_level = os.getenv("UPSTREAM_LOG_LEVEL", "WARNING").upper()
    log_file = os.getenv("LOG_FILE_PATH") or None

    logging.config.dictConfig(_build_dict_config(log_file, level))

    for name in _SERVER_LOGGERS:
        logging.getLogger(name).setLevel(level)
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(upstream_level)

    _configured = True
