"""Документ - результат операции"""
from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..exceptions import ValidationError


@dataclass
class Document:
    """Содержимое документа в памяти"""

    content: bytes
    mime_type: str = "application/pdf"
    filename: Optional[str] = None
    source: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def is_pdf(self) -> bool:
        return self.mime_type == "application/pdf"

    def save_to(self, path) -> Path:
        """Сохранить документ в файл, создав папки при необходимости"""
        if not path:
            raise ValidationError("File path cannot be empty")
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(self.content)
        return target

    @classmethod
    def from_file(cls, path) -> "Document":
        """Прочитать документ с диска"""
        file_path = Path(path)
        if not file_path.is_file():
            raise ValidationError(f"File does not exist: {file_path}")
        mime_type, _ = mimetypes.guess_type(file_path.name)
        return cls(
            content=file_path.read_bytes(),
            mime_type=mime_type or "application/octet-stream",
            filename=file_path.name,
            source=str(file_path),
        )

    @classmethod
    def from_bytes(
        cls,
        content: bytes,
        mime_type: Optional[str] = None,
        filename: Optional[str] = None,
        source: Optional[str] = None,
    ) -> "Document":
        """Создать документ из скачанных данных; MIME уточняется по имени файла"""
        if not mime_type and filename:
            mime_type, _ = mimetypes.guess_type(filename)
        return cls(
            content=content,
            mime_type=mime_type or "application/octet-stream",
            filename=filename,
            source=source,
        )
