"""Утилиты клиента PDF Services."""
from __future__ import annotations

import uuid
from pathlib import PurePosixPath

# Расширение файла -> формат API
FORMATS = {
    "pdf": "pdf",
    "docx": "docx",
    "doc": "doc",
    "xlsx": "xlsx",
    "xls": "xls",
    "pptx": "pptx",
    "ppt": "ppt",
    "jpg": "jpg",
    "jpeg": "jpg",
    "png": "png",
    "gif": "gif",
    "tiff": "tiff",
    "tif": "tiff",
}


def guess_format(filename: str) -> str:
    """Определить формат по расширению, по умолчанию pdf."""
    extension = PurePosixPath(filename.replace("\\", "/")).suffix.lstrip(".").lower()
    return FORMATS.get(extension, "pdf")


def new_idempotency_key() -> str:
    """Ключ идемпотентности для одного логического запроса."""
    return str(uuid.uuid4())


def basename_from_location(location: str) -> str:
    """Имя файла из пути или URL (без query string)."""
    path = location.split("?", 1)[0].split("#", 1)[0]
    return PurePosixPath(path).name or "result"
