"""Одна операция пакета и её конечный автомат статусов"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple, Type, Union

from ..exceptions import ValidationError
from .enums import OPERATION_STATUS_ALIASES, OperationKind, OperationStatus

logger = logging.getLogger(__name__)

# Неизвестные статусы логируются один раз на значение
_seen_unknown_statuses: set = set()
_seen_lock = threading.Lock()


def parse_status(
    raw, enum_cls: Type[Enum], aliases: Dict[str, Enum], default: Enum
) -> Tuple[Enum, bool]:
    """
    Сопоставить строку статуса с перечислением.

    Неизвестный статус не считается ошибкой: возвращается default,
    чтобы новые промежуточные состояния сервиса не ломали клиент.

    Returns:
        (статус, распознан ли статус)
    """
    value = str(raw or "").strip().lower()
    try:
        return enum_cls(value), True
    except ValueError:
        pass
    if value in aliases:
        return aliases[value], True

    key = (enum_cls.__name__, value)
    with _seen_lock:
        first_time = key not in _seen_unknown_statuses
        _seen_unknown_statuses.add(key)
    if first_time:
        logger.warning(
            f"Неизвестный статус {raw!r} для {enum_cls.__name__}, считаем как {default.value}"
        )
    return default, False


def parse_operation_status(raw) -> Tuple[OperationStatus, bool]:
    return parse_status(raw, OperationStatus, OPERATION_STATUS_ALIASES, OperationStatus.PENDING)


def _mapping(value) -> dict:
    return dict(value) if isinstance(value, dict) else {}


@dataclass
class OperationJob:
    """Операция пакета (конвертация, слияние, OCR, ...)"""

    id: str
    # Строка - тип из ответа сервера, неизвестный клиенту
    kind: Union[OperationKind, str]
    input: dict
    output: dict = field(default_factory=dict)
    options: dict = field(default_factory=dict)
    status: OperationStatus = OperationStatus.PENDING
    error: Optional[str] = None

    @property
    def kind_value(self) -> str:
        kind = OperationKind.lookup(self.kind)
        return kind.value if kind is not None else str(self.kind or "")

    @property
    def is_pending(self) -> bool:
        return self.status is OperationStatus.PENDING

    @property
    def is_completed(self) -> bool:
        return self.status is OperationStatus.COMPLETED

    @property
    def is_failed(self) -> bool:
        return self.status is OperationStatus.FAILED

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def validate(self) -> None:
        """Проверить операцию до отправки"""
        if not self.id or not str(self.id).strip():
            raise ValidationError("Operation id is missing or empty")
        if not isinstance(self.kind, OperationKind):
            OperationKind.parse(self.kind)
        if not isinstance(self.input, dict) or not self.input:
            raise ValidationError(f"Operation {self.id!r}: input must be a non-empty mapping")
        if not isinstance(self.output, dict) or not isinstance(self.options, dict):
            raise ValidationError(f"Operation {self.id!r}: output and options must be mappings")

    def update_from_status_record(self, record: dict) -> bool:
        """
        Обновить статус по записи из ответа сервера {status, error?}.

        Из терминального состояния переходов нет.

        Returns:
            True если операция изменилась
        """
        status, _ = parse_operation_status(record.get("status"))
        error = record.get("error")

        if self.is_terminal:
            if status is not self.status:
                logger.debug(
                    f"Операция {self.id} уже {self.status.value}, игнорируем {status.value}",
                    extra={"operation_id": self.id},
                )
            return False

        changed = status is not self.status or (error is not None and error != self.error)
        self.status = status
        if error is not None:
            self.error = str(error)
        return changed

    def to_wire(self) -> dict:
        """Формат запроса API. status/error - только если отличаются от начальных"""
        data = {
            "operationId": self.id,
            "type": self.kind_value,
            "input": self.input,
            "output": self.output,
            "options": self.options,
        }
        if self.status is not OperationStatus.PENDING:
            data["status"] = self.status.value
        if self.error is not None:
            data["error"] = self.error
        return data

    @classmethod
    def from_wire(cls, data: dict) -> "OperationJob":
        """Создать операцию из формата API"""
        if not isinstance(data, dict):
            raise ValidationError(f"Invalid operation format: {type(data).__name__}")
        return cls._from_record(data, OperationKind.parse(data.get("type")))

    @classmethod
    def from_server_record(cls, data: dict) -> "OperationJob":
        """
        Операция из ответа сервера.

        Сервер уже принял пакет, поэтому запись разбирается мягко:
        неизвестный или отсутствующий тип сохраняется строкой.
        """
        raw_kind = data.get("type")
        kind = OperationKind.lookup(raw_kind) or str(raw_kind or "")
        return cls._from_record(data, kind)

    @classmethod
    def _from_record(cls, data: dict, kind: Union[OperationKind, str]) -> "OperationJob":
        status = OperationStatus.PENDING
        if data.get("status") is not None:
            status, _ = parse_operation_status(data["status"])
        error = data.get("error")
        return cls(
            id=str(data.get("operationId") or ""),
            kind=kind,
            input=_mapping(data.get("input")),
            output=_mapping(data.get("output")),
            options=_mapping(data.get("options")),
            status=status,
            error=str(error) if error is not None else None,
        )

    @classmethod
    def create_conversion(
        cls,
        operation_id: str,
        input_file: str,
        output_file: str,
        from_format: str,
        to_format: str,
        options: Optional[dict] = None,
    ) -> "OperationJob":
        """Операция конвертации"""
        return cls(
            id=operation_id,
            kind=OperationKind.CONVERT,
            input={"file": input_file, "format": from_format},
            output={"file": output_file, "format": to_format},
            options=options or {},
        )

    @classmethod
    def create_merge(
        cls,
        operation_id: str,
        input_files: List[str],
        output_file: str,
        options: Optional[dict] = None,
    ) -> "OperationJob":
        """Операция слияния"""
        return cls(
            id=operation_id,
            kind=OperationKind.MERGE,
            input={"files": list(input_files)},
            output={"file": output_file},
            options=options or {},
        )

    @classmethod
    def create_ocr(
        cls,
        operation_id: str,
        input_file: str,
        output_file: str,
        options: Optional[dict] = None,
    ) -> "OperationJob":
        """Операция OCR"""
        return cls(
            id=operation_id,
            kind=OperationKind.OCR,
            input={"file": input_file},
            output={"file": output_file},
            options=options or {},
        )
