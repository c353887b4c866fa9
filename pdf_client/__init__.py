"""
Клиент удалённого сервиса PDF Services.

Компоненты:
- client.py - PdfServicesClient (точка входа)
- credentials.py - Credential, CredentialManager
- transport.py - Transport, RetryPolicy, RequestEvent
- batch_processor.py - BatchProcessor (create/execute/cancel/results)
- models/ - OperationJob, Batch, OperationResult, Document
- exceptions.py - ValidationError, AuthenticationError, ApiError, ...
- settings.py - Settings
- logging_config.py - setup_logging, JSONFormatter
"""

from pdf_client._metadata import __version__
from pdf_client.batch_processor import BatchProcessor
from pdf_client.client import PdfServicesClient
from pdf_client.credentials import Credential, CredentialManager
from pdf_client.exceptions import (
    ApiError,
    AuthenticationError,
    BatchTimeoutError,
    PdfServicesError,
    PollCancelledError,
    TransportError,
    ValidationError,
)
from pdf_client.models import (
    Batch,
    BatchStatus,
    Document,
    OperationJob,
    OperationKind,
    OperationResult,
    OperationStatus,
)
from pdf_client.settings import Settings
from pdf_client.transport import RequestEvent, RetryPolicy, Transport

__all__ = [
    "__version__",
    "PdfServicesClient",
    "BatchProcessor",
    "Credential",
    "CredentialManager",
    "Transport",
    "RetryPolicy",
    "RequestEvent",
    "Settings",
    "Batch",
    "BatchStatus",
    "Document",
    "OperationJob",
    "OperationKind",
    "OperationResult",
    "OperationStatus",
    "PdfServicesError",
    "ValidationError",
    "AuthenticationError",
    "ApiError",
    "TransportError",
    "BatchTimeoutError",
    "PollCancelledError",
]
