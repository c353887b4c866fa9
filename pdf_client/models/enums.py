"""Перечисления для моделей данных"""
from enum import Enum
from typing import Optional

from ..exceptions import ValidationError


class OperationKind(str, Enum):
    """Тип операции в пакете"""

    CONVERT = "convert"
    MERGE = "merge"
    COMBINE = "combine"
    SPLIT = "split"
    OCR = "ocr"
    COMPRESS = "compress"
    LINEARIZE = "linearize"
    PROTECT = "protect"
    UNPROTECT = "unprotect"
    EXTRACT = "extract"
    EXPORT = "export"
    SIGN = "sign"
    COMPARE = "compare"
    WATERMARK = "watermark"
    ROTATE = "rotate"

    @classmethod
    def lookup(cls, value) -> Optional["OperationKind"]:
        """Тип по строке или None, если тип клиенту неизвестен"""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return None

    @classmethod
    def parse(cls, value) -> "OperationKind":
        """Строгий разбор для операций, которые клиент отправляет сам"""
        kind = cls.lookup(value)
        if kind is None:
            raise ValidationError(f"Unsupported operation type: {value!r}")
        return kind


class OperationStatus(str, Enum):
    """Статус одной операции"""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not OperationStatus.PENDING


class BatchStatus(str, Enum):
    """Статус пакета"""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (BatchStatus.COMPLETED, BatchStatus.FAILED, BatchStatus.CANCELLED)


# Синонимы статусов, встречающиеся в ответах сервиса
OPERATION_STATUS_ALIASES = {
    "succeeded": OperationStatus.COMPLETED,
    "success": OperationStatus.COMPLETED,
    "done": OperationStatus.COMPLETED,
    "error": OperationStatus.FAILED,
}

BATCH_STATUS_ALIASES = {
    "queued": BatchStatus.PENDING,
    "in_progress": BatchStatus.PROCESSING,
    "running": BatchStatus.PROCESSING,
    "succeeded": BatchStatus.COMPLETED,
    "done": BatchStatus.COMPLETED,
    "error": BatchStatus.FAILED,
    "canceled": BatchStatus.CANCELLED,
}
