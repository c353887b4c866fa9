"""Настройка логирования для приложений, использующих клиент PDF Services.

Модули клиента только пишут в logging.getLogger(__name__) и передают
контекст через extra={"batch_id": ..., "attempt": ...}. Handlers настраивает
приложение, вызвав setup_logging() один раз в точке входа.

Переменные окружения:
    LOG_LEVEL - DEBUG, INFO, WARNING, ERROR. По умолчанию: INFO
    LOG_FORMAT - json или text. По умолчанию: text
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Optional

TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(threadName)s | %(name)s | %(message)s"

# Поля extra, которые пишут Transport и BatchProcessor
CONTEXT_FIELDS = (
    "batch_id",
    "batch_status",
    "operation_id",
    "operation_count",
    "method",
    "path",
    "attempt",
    "outcome",
    "status_code",
    "request_id",
    "elapsed_ms",
    "retry_delay",
)


class JSONFormatter(logging.Formatter):
    """Одна JSON строка на запись, контекст запроса/пакета - отдельными ключами."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }
        entry.update(
            (name, getattr(record, name))
            for name in CONTEXT_FIELDS
            if getattr(record, name, None) is not None
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logging(level: Optional[int] = None, fmt: Optional[str] = None) -> logging.Logger:
    """Один stdout handler на корневом логгере; повторный вызов заменяет его."""
    if level is None:
        level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
    fmt = (fmt or os.getenv("LOG_FORMAT", "text")).lower()

    handler = logging.StreamHandler(sys.stdout)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # httpx на INFO логирует каждый запрос, Transport уже пишет свои события
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)
    return root
