"""Structured JSON logging with blueprint_id support."""
from __future__ import annotations

import contextvars
import json
import logging
from datetime import datetime, timezone
from typing import Any

# Context variable for the blueprint currently being edited
blueprint_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "blueprint_id", default=""
)


class JSONFormatter(logging.Formatter):
    """Custom JSON log formatter."""

    def __init__(self, service_name: str = "unknown") -> None:
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "service_name": self.service_name,
            "logger": record.name,
            "blueprint_id": blueprint_id_var.get(""),
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = str(record.exc_info[1])
        return json.dumps(log_entry)


def setup_logging(
    service_name: str, level: str = "INFO", json_format: bool = True
) -> logging.Logger:
    """Configure logging for the ``src`` package tree.

    Args:
        service_name: Name stamped on every log entry.
        level: Log level string (e.g. "INFO", "DEBUG").
        json_format: Emit JSON lines when True, plain text otherwise.

    Returns:
        Configured logger instance.
    """
    logger = logging.getLogger("src")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler()
    if json_format:
        handler.setFormatter(JSONFormatter(service_name=service_name))
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
    logger.addHandler(handler)

    return logger


def bind_blueprint_id(blueprint_id: str) -> contextvars.Token[str]:
    """Stamp subsequent log records in this context with *blueprint_id*."""
    return blueprint_id_var.set(blueprint_id)
