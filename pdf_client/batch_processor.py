"""Оркестратор пакетов операций PDF Services"""
from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from typing import Callable, List, Optional

from .batch_create import BatchCreateMixin
from .batch_download import BatchDownloadMixin
from .batch_lifecycle import BatchLifecycleMixin
from .models import OperationJob
from .transport import Transport


class BatchProcessor(BatchCreateMixin, BatchLifecycleMixin, BatchDownloadMixin):
    """
    Отправляет набор операций одним пакетом и доводит его до терминального статуса.

    Использование:
        processor = client.batch()
        batch = processor.create_batch([OperationJob.create_ocr("op1", "in.pdf", "out.pdf")])
        batch = processor.execute_batch(batch, max_wait=300, poll_interval=5)
        documents = processor.get_batch_results(batch)

    Экземпляр можно использовать из нескольких потоков; один пакет
    опрашивается из одного потока.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        poll_interval: float = 5.0,
        max_wait: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
        logger: Optional[logging.Logger] = None,
        max_tracked_batches: int = 1000,
    ):
        self._transport = transport
        self.poll_interval = poll_interval
        self.max_wait = max_wait
        self._clock = clock
        self._logger = logger or logging.getLogger(__name__)

        # batch_id -> операции, отправленные этим экземпляром.
        # Запись удаляется, когда пакет становится терминальным; размер ограничен.
        self.max_tracked_batches = max_tracked_batches
        self._submitted: "OrderedDict[str, List[OperationJob]]" = OrderedDict()
        self._submitted_lock = threading.Lock()

    def _remember_operations(self, batch_id: str, operations: List[OperationJob]) -> None:
        with self._submitted_lock:
            self._submitted[batch_id] = list(operations)
            self._submitted.move_to_end(batch_id)
            while len(self._submitted) > self.max_tracked_batches:
                evicted, _ = self._submitted.popitem(last=False)
                self._logger.debug(
                    f"Пакет {evicted} вытеснен из реестра отправленных операций",
                    extra={"batch_id": evicted},
                )

    def _known_operations(self, batch_id: str) -> List[OperationJob]:
        with self._submitted_lock:
            return list(self._submitted.get(batch_id, []))

    def _forget_operations(self, batch_id: str) -> None:
        with self._submitted_lock:
            self._submitted.pop(batch_id, None)

    @property
    def tracked_batch_count(self) -> int:
        """Сколько пакетов ещё отслеживается"""
        with self._submitted_lock:
            return len(self._submitted)
