"""Миксин скачивания результатов пакета."""
from __future__ import annotations

from typing import Dict

from .exceptions import ValidationError
from .models import Batch, Document
from .utils import basename_from_location


class BatchDownloadMixin:
    """Получение результатов завершённого пакета."""

    def get_batch_results(self, batch: Batch) -> Dict[str, Document]:
        """
        Скачать результаты операций завершённого пакета.

        Статус completed у пакета не означает, что все операции успешны:
        упавшие операции и операции без адреса результата в ответ не попадают,
        их нужно проверять через batch.failed_count / batch.failed_operations().

        Returns:
            operation_id -> Document
        """
        if not batch.is_completed:
            raise ValidationError(
                f"Batch {batch.id} is not completed yet (status: {batch.raw_status})"
            )

        documents: Dict[str, Document] = {}
        for operation_id, result in batch.results.items():
            if not result.is_completed:
                continue
            location = result.output_location
            if not location:
                self._logger.debug(
                    f"Операция {operation_id} без адреса результата",
                    extra={"batch_id": batch.id, "operation_id": operation_id},
                )
                continue

            content, content_type = self._transport.download(location)
            mime_type = content_type.split(";", 1)[0].strip() if content_type else None
            documents[operation_id] = Document.from_bytes(
                content,
                mime_type=mime_type,
                filename=basename_from_location(location),
                source=location,
            )

        if batch.failed_count:
            self._logger.warning(
                f"Пакет {batch.id} завершён с ошибками: {batch.failed_count} из {batch.operation_count}",
                extra={"batch_id": batch.id},
            )
        return documents
