"""Миксин чтения статуса, ожидания и отмены пакетов."""
from __future__ import annotations

import threading
from dataclasses import replace
from typing import Optional, Sequence
from urllib.parse import quote

from .batch_create import BATCH_PATH, OperationLike
from .exceptions import BatchTimeoutError, PollCancelledError, ValidationError
from .models import Batch


def _batch_path(batch_id: str) -> str:
    if not batch_id:
        raise ValidationError("batch_id is required")
    return f"{BATCH_PATH}/{quote(str(batch_id), safe='')}"


class BatchLifecycleMixin:
    """Статус, ожидание завершения и отмена пакетов."""

    def get_batch_status(self, batch_id: str) -> Batch:
        """Получить текущий снимок пакета (один запрос, без ожидания)."""
        data = self._transport.send("GET", _batch_path(batch_id))
        if not data.get("batchId"):
            data = {**data, "batchId": batch_id}
        known = [replace(op) for op in self._known_operations(batch_id)]
        snapshot = Batch.from_wire(data, operations=known)
        if snapshot.is_terminal:
            self._forget_operations(batch_id)
        return snapshot

    def execute_batch(
        self,
        batch: Batch,
        max_wait: Optional[float] = None,
        poll_interval: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Batch:
        """
        Ждать терминального статуса пакета, опрашивая сервер.

        Пакет обновляется на месте каждым снимком. Последняя проверка
        выполняется ровно в момент дедлайна, не позже.

        Args:
            batch: пакет из create_batch/get_batch_status
            max_wait: максимальное ожидание, сек
            poll_interval: интервал опроса, сек
            cancel_event: внешний сигнал прерывания ожидания

        Raises:
            BatchTimeoutError: дедлайн истёк; .batch - последний снимок
            PollCancelledError: ожидание прервано; .batch - последний снимок
        """
        max_wait = self.max_wait if max_wait is None else max_wait
        poll_interval = self.poll_interval if poll_interval is None else poll_interval
        if poll_interval <= 0:
            raise ValidationError(f"poll_interval must be positive, got {poll_interval}")
        if max_wait < 0:
            raise ValidationError(f"max_wait must be >= 0, got {max_wait}")
        cancel_event = cancel_event or threading.Event()

        deadline = self._clock() + max_wait
        polls = 0
        while not batch.is_terminal:
            remaining = deadline - self._clock()
            if remaining <= 0:
                self._logger.warning(
                    f"Пакет {batch.id} не завершён за {max_wait}с, статус {batch.raw_status}",
                    extra={"batch_id": batch.id, "batch_status": batch.raw_status},
                )
                raise BatchTimeoutError(
                    f"Batch {batch.id} did not finish within {max_wait}s "
                    f"(last status: {batch.raw_status})",
                    batch=batch,
                )

            if cancel_event.wait(min(poll_interval, remaining)):
                self._logger.info(
                    f"Ожидание пакета {batch.id} прервано", extra={"batch_id": batch.id}
                )
                raise PollCancelledError(
                    f"Waiting for batch {batch.id} was cancelled "
                    f"(last status: {batch.raw_status})",
                    batch=batch,
                )

            batch.apply_snapshot(self.get_batch_status(batch.id))
            polls += 1
            self._logger.debug(
                f"Пакет {batch.id}: {batch.raw_status}, "
                f"готово {batch.completed_count}, ошибок {batch.failed_count}",
                extra={"batch_id": batch.id, "batch_status": batch.raw_status},
            )

        self._logger.info(
            f"Пакет {batch.id} завершён со статусом {batch.status.value} после {polls} опросов: "
            f"готово {batch.completed_count}, ошибок {batch.failed_count}",
            extra={"batch_id": batch.id, "batch_status": batch.status.value},
        )
        return batch

    def create_and_execute_batch(
        self,
        operations: Sequence[OperationLike],
        options: Optional[dict] = None,
        max_wait: Optional[float] = None,
        poll_interval: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Batch:
        """Создать пакет и дождаться его завершения."""
        batch = self.create_batch(operations, options)
        return self.execute_batch(batch, max_wait, poll_interval, cancel_event)

    def cancel_batch(self, batch_id: str) -> bool:
        """
        Попросить сервер остановить пакет.

        Уже выполненные операции не откатываются. Если пакет уже завершён,
        сервер отвечает cancelled: false - это не ошибка.
        """
        data = self._transport.send("DELETE", _batch_path(batch_id))
        cancelled = data.get("cancelled") is True
        self._logger.info(
            f"Отмена пакета {batch_id}: {'принята' if cancelled else 'не выполнена'}",
            extra={"batch_id": batch_id},
        )
        return cancelled
