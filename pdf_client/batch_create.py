"""Миксин создания пакетов операций."""
from __future__ import annotations

from dataclasses import replace
from typing import List, Optional, Sequence, Union

from .exceptions import ApiError, ValidationError
from .models import Batch, OperationJob
from .utils import guess_format, new_idempotency_key

BATCH_PATH = "/operation/batch"

OperationLike = Union[OperationJob, dict]


def _coerce_operation(operation: OperationLike) -> OperationJob:
    """OperationJob или dict в формате API -> OperationJob"""
    if isinstance(operation, OperationJob):
        return operation
    if isinstance(operation, dict):
        return OperationJob.from_wire(operation)
    raise ValidationError(f"Invalid operation format: {type(operation).__name__}")


def validate_operations(operations: Sequence[OperationJob]) -> None:
    """Пакет не пустой, каждая операция валидна, id уникальны"""
    if not operations:
        raise ValidationError("Batch must contain at least one operation")
    seen = set()
    duplicates = []
    for operation in operations:
        operation.validate()
        if operation.id in seen:
            duplicates.append(operation.id)
        seen.add(operation.id)
    if duplicates:
        raise ValidationError(
            f"Duplicate operation ids in batch: {', '.join(sorted(set(duplicates)))}"
        )


class BatchCreateMixin:
    """Создание пакетов."""

    def create_batch(
        self,
        operations: Sequence[OperationLike],
        options: Optional[dict] = None,
    ) -> Batch:
        """
        Отправить пакет операций.

        Проверки выполняются до обращения к сети: пустой пакет, невалидная
        операция или повтор id -> ValidationError, запрос не отправляется.

        Args:
            operations: OperationJob или dict в формате API
            options: опции пакета

        Returns:
            Batch в состоянии, подтверждённом сервером (pending/processing)
        """
        jobs = [_coerce_operation(op) for op in (operations or [])]
        validate_operations(jobs)

        payload = {
            "operations": [op.to_wire() for op in jobs],
            "options": dict(options or {}),
        }
        # Один ключ на все ретраи: сервер не создаст пакет дважды
        headers = {"Idempotency-Key": new_idempotency_key()}

        self._logger.info(
            f"Создание пакета из {len(jobs)} операций",
            extra={"operation_count": len(jobs)},
        )
        data = self._transport.send("POST", BATCH_PATH, payload, headers=headers)

        batch = Batch.from_wire(data, operations=[replace(op) for op in jobs])
        if not batch.id:
            raise ApiError("Batch submission response does not contain batchId")

        if not batch.is_terminal:
            self._remember_operations(batch.id, jobs)
        self._logger.info(
            f"Пакет {batch.id} создан, статус {batch.raw_status}",
            extra={"batch_id": batch.id, "batch_status": batch.raw_status},
        )
        return batch

    def create_batch_from_definitions(self, definitions: Sequence[dict]) -> Batch:
        """
        Создать пакет из простых описаний.

        Пример:
            [
                {"type": "convert", "input": "doc1.docx", "output": "pdf1.pdf"},
                {"type": "merge", "inputs": ["pdf1.pdf", "pdf2.pdf"], "output": "merged.pdf"},
                {"type": "ocr", "input": "scanned.pdf", "output": "ocr.pdf"},
            ]
        """
        operations: List[OperationJob] = []
        for i, definition in enumerate(definitions):
            operation_id = definition.get("operationId") or f"operation_{i}"
            kind = definition.get("type")
            options = definition.get("options") or {}
            try:
                if kind == "convert":
                    operations.append(
                        OperationJob.create_conversion(
                            operation_id,
                            definition["input"],
                            definition["output"],
                            definition.get("fromFormat") or guess_format(definition["input"]),
                            definition.get("toFormat") or guess_format(definition["output"]),
                            options,
                        )
                    )
                elif kind == "merge":
                    operations.append(
                        OperationJob.create_merge(
                            operation_id, definition["inputs"], definition["output"], options
                        )
                    )
                elif kind == "ocr":
                    operations.append(
                        OperationJob.create_ocr(
                            operation_id, definition["input"], definition["output"], options
                        )
                    )
                else:
                    raise ValidationError(f"Unsupported operation type: {kind!r}")
            except KeyError as e:
                raise ValidationError(
                    f"Definition {i} ({kind}) is missing required field {e.args[0]!r}"
                ) from None

        return self.create_batch(operations)
