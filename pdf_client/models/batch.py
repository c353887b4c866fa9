"""Пакет операций и результаты по операциям"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from ..exceptions import ValidationError
from .enums import BATCH_STATUS_ALIASES, BatchStatus, OperationStatus
from .operation import OperationJob, parse_operation_status, parse_status

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_datetime(value) -> Optional[datetime]:
    """ISO 8601 строка или unix timestamp -> aware datetime (UTC)"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)):
        dt = datetime.fromtimestamp(value, tz=timezone.utc)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            logger.warning(f"Не удалось разобрать дату: {value!r}")
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def parse_batch_status(raw) -> Tuple[BatchStatus, bool]:
    return parse_status(raw, BatchStatus, BATCH_STATUS_ALIASES, BatchStatus.PROCESSING)


@dataclass
class OperationResult:
    """Отчёт сервера по одной операции пакета"""

    operation_id: str
    status: OperationStatus
    output: Optional[dict] = None
    error: Optional[str] = None
    raw_status: str = ""

    @property
    def is_completed(self) -> bool:
        return self.status is OperationStatus.COMPLETED

    @property
    def is_failed(self) -> bool:
        return self.status is OperationStatus.FAILED

    @property
    def output_location(self) -> Optional[str]:
        """Адрес результата: output.file или output.url"""
        if not self.output:
            return None
        return self.output.get("file") or self.output.get("url") or None

    def to_wire(self) -> dict:
        data = {"status": self.raw_status or self.status.value}
        if self.output is not None:
            data["output"] = self.output
        if self.error is not None:
            data["error"] = self.error
        return data

    @classmethod
    def from_wire(cls, operation_id: str, data: dict) -> "OperationResult":
        raw = data.get("status")
        status, _ = parse_operation_status(raw)
        output = data.get("output")
        error = data.get("error")
        return cls(
            operation_id=operation_id,
            status=status,
            output=dict(output) if isinstance(output, dict) else None,
            error=str(error) if error is not None else None,
            raw_status=str(raw or ""),
        )


def _iter_result_records(raw_results) -> Iterable[Tuple[str, dict]]:
    """results приходит как {opId: {...}} или как список записей с operationId"""
    if isinstance(raw_results, dict):
        for operation_id, record in raw_results.items():
            if isinstance(record, dict):
                yield str(operation_id), record
    elif isinstance(raw_results, list):
        for record in raw_results:
            if isinstance(record, dict) and record.get("operationId"):
                yield str(record["operationId"]), record


def _merge_operations(
    batch_id, echoed, submitted: Optional[List[OperationJob]]
) -> List[OperationJob]:
    """
    Операции пакета по ответу сервера.

    Если клиент знает отправленные операции, они остаются основой списка,
    а записи сервера только обновляют их статус и ошибку. Иначе операции
    строятся из записей сервера без строгой проверки типа.
    """
    records = [r for r in echoed if isinstance(r, dict)] if isinstance(echoed, list) else []
    if not submitted:
        return [
            OperationJob.from_server_record(record)
            for record in records
            if record.get("operationId")
        ]

    by_id = {op.id: op for op in submitted}
    for record in records:
        operation_id = str(record.get("operationId") or "")
        operation = by_id.get(operation_id)
        if operation is None:
            logger.warning(
                f"Сервер вернул неизвестную операцию {operation_id!r}, запись пропущена",
                extra={"batch_id": batch_id, "operation_id": operation_id},
            )
            continue
        if record.get("status") is not None:
            operation.update_from_status_record(record)
    return list(submitted)

@dataclass
class Batch:
    """
    Пакет операций, отслеживаемый сервером как одно целое.

    Инварианты:
    - completed_at задан тогда и только тогда, когда статус терминальный;
      если сервер не прислал время завершения, это момент получения снимка
    - results содержит только операции, о которых сервер уже сообщил;
      отсутствующая операция считается ожидающей
    - после терминального статуса пакет не изменяется
    """

    id: str
    operations: List[OperationJob] = field(default_factory=list)
    status: BatchStatus = BatchStatus.PENDING
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = field(default=None, compare=False)
    results: Dict[str, OperationResult] = field(default_factory=dict)
    error: Optional[str] = None
    raw_status: str = ""
    # Момент получения снимка, в сравнении не участвует
    fetched_at: datetime = field(default_factory=_utcnow, compare=False)
    # Время завершения из ответа сервера, участвует в сравнении
    reported_completed_at: Optional[datetime] = field(default=None, repr=False)

    def __post_init__(self):
        if not self.raw_status:
            self.raw_status = self.status.value
        if self.status.is_terminal:
            if self.completed_at is None:
                self.completed_at = self.fetched_at
            elif self.reported_completed_at is None and self.completed_at != self.fetched_at:
                self.reported_completed_at = self.completed_at
        else:
            self.completed_at = None
            self.reported_completed_at = None

    @property
    def is_pending(self) -> bool:
        return self.status is BatchStatus.PENDING

    @property
    def is_processing(self) -> bool:
        return self.status is BatchStatus.PROCESSING

    @property
    def is_completed(self) -> bool:
        return self.status is BatchStatus.COMPLETED

    @property
    def is_failed(self) -> bool:
        return self.status is BatchStatus.FAILED

    @property
    def is_cancelled(self) -> bool:
        return self.status is BatchStatus.CANCELLED

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def operation_count(self) -> int:
        return len(self.operations)

    @property
    def completed_count(self) -> int:
        return sum(1 for r in self.results.values() if r.is_completed)

    @property
    def failed_count(self) -> int:
        return sum(1 for r in self.results.values() if r.is_failed)

    @property
    def pending_count(self) -> int:
        return max(0, self.operation_count - self.completed_count - self.failed_count)

    def get_operation(self, operation_id: str) -> Optional[OperationJob]:
        for operation in self.operations:
            if operation.id == operation_id:
                return operation
        return None

    def failed_operations(self) -> Dict[str, Optional[str]]:
        """operation_id -> текст ошибки для упавших операций"""
        return {op_id: r.error for op_id, r in self.results.items() if r.is_failed}

    def apply_snapshot(self, snapshot: "Batch") -> "Batch":
        """Заменить состояние пакета свежим снимком с сервера (на месте)"""
        if self.is_terminal:
            raise ValidationError(
                f"Batch {self.id} is already {self.status.value}, snapshot rejected"
            )
        if snapshot.id != self.id:
            raise ValidationError(
                f"Snapshot for batch {snapshot.id!r} cannot be applied to {self.id!r}"
            )
        if snapshot.operations:
            self.operations = snapshot.operations
        self.status = snapshot.status
        self.raw_status = snapshot.raw_status
        if snapshot.created_at is not None:
            self.created_at = snapshot.created_at
        self.completed_at = snapshot.completed_at
        self.reported_completed_at = snapshot.reported_completed_at
        self.results = snapshot.results
        self.error = snapshot.error
        self.fetched_at = snapshot.fetched_at
        return self

    def to_wire(self) -> dict:
        data = {
            "batchId": self.id,
            "status": self.raw_status or self.status.value,
            "operations": [op.to_wire() for op in self.operations],
            "results": {op_id: r.to_wire() for op_id, r in self.results.items()},
        }
        if self.created_at is not None:
            data["created"] = _format_datetime(self.created_at)
        if self.reported_completed_at is not None:
            data["completed"] = _format_datetime(self.reported_completed_at)
        if self.error is not None:
            data["error"] = self.error
        return data

    @classmethod
    def from_wire(
        cls, data: dict, operations: Optional[List[OperationJob]] = None
    ) -> "Batch":
        """
        Создать пакет из ответа API.

        Args:
            data: тело ответа POST/GET /operation/batch
            operations: операции, отправленные клиентом; записи сервера
                обновляют только их статус и ошибку
        """
        raw_status = data.get("status") or BatchStatus.PENDING.value
        status, _ = parse_batch_status(raw_status)

        operations = _merge_operations(data.get("batchId"), data.get("operations"), operations)
        known_ids = {op.id for op in operations}

        results: Dict[str, OperationResult] = {}
        for operation_id, record in _iter_result_records(data.get("results")):
            if known_ids and operation_id not in known_ids:
                logger.warning(
                    f"Результат для неизвестной операции {operation_id} пропущен",
                    extra={"batch_id": data.get("batchId"), "operation_id": operation_id},
                )
                continue
            results[operation_id] = OperationResult.from_wire(operation_id, record)

        for operation in operations:
            result = results.get(operation.id)
            if result is not None:
                operation.update_from_status_record(
                    {"status": result.status.value, "error": result.error}
                )

        completed_at = parse_datetime(data.get("completed")) if status.is_terminal else None
        error = data.get("error")
        return cls(
            id=str(data.get("batchId") or ""),
            operations=operations,
            status=status,
            created_at=parse_datetime(data.get("created")),
            completed_at=completed_at,
            reported_completed_at=completed_at,
            results=results,
            error=str(error) if error is not None else None,
            raw_status=str(raw_status),
        )
