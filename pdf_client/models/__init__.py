"""Модели данных клиента PDF Services"""
from .batch import Batch, OperationResult, parse_datetime
from .document import Document
from .enums import BatchStatus, OperationKind, OperationStatus
from .operation import OperationJob

__all__ = [
    "Batch",
    "BatchStatus",
    "Document",
    "OperationJob",
    "OperationKind",
    "OperationResult",
    "OperationStatus",
    "parse_datetime",
]
