"""Error taxonomy shared by the core, the services and the HTTP layer.

Every error carries a machine-checkable ``category`` and a human-readable
``message``; the API layer renders them through ``to_dict()``.
"""

from datetime import datetime
from typing import Any


class DocIntelError(Exception):
    """Base class for all expected failures."""

    category = "internal_error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"category": self.category, "message": self.message}


class InputValidationError(DocIntelError):
    """Malformed or out-of-range caller input. Never retried."""

    category = "validation_error"
    status_code = 400

    def __init__(self, message: str, field_errors: dict[str, list[str]] | None = None):
        super().__init__(message)
        self.field_errors = field_errors or {}

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.field_errors:
            data["field_errors"] = self.field_errors
        return data


class NotFoundOrForbiddenError(DocIntelError):
    """Resource is missing or owned by someone else; the two are indistinguishable."""

    category = "not_found"
    status_code = 404

    def __init__(self, resource: str = "Document"):
        super().__init__(f"{resource} not found")
        self.resource = resource


class ConflictError(DocIntelError):
    """The same user already uploaded identical bytes."""

    category = "conflict"
    status_code = 409

    def __init__(self, message: str, existing_document: dict[str, Any] | None = None):
        super().__init__(message)
        self.existing_document = existing_document or {}


class UpstreamServiceError(DocIntelError):
    """Embedding, completion or storage failure."""

    category = "upstream_error"
    status_code = 502

    def __init__(self, service: str, detail: str):
        super().__init__(f"{service} request failed")
        self.service = service
        self.detail = detail


class QuotaExceededError(DocIntelError):
    """Weekly upload limit reached."""

    category = "quota_exceeded"
    status_code = 429

    def __init__(self, limit: int, reset_date: datetime):
        super().__init__(
            f"Weekly upload limit of {limit} documents reached. "
            f"Limit resets on {reset_date.isoformat()}."
        )
        self.limit = limit
        self.reset_date = reset_date

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["reset_date"] = self.reset_date.isoformat()
        return data


class ExtractionError(DocIntelError):
    """Text could not be extracted from an uploaded file."""

    category = "extraction_error"
    status_code = 422


class DocumentRejectedError(DocIntelError):
    """The technical-document gate rejected an upload."""

    category = "document_rejected"
    status_code = 422

    def __init__(self, reason: str, confidence: float):
        super().__init__(
            "Only technical documents are supported. "
            f"{reason} (confidence {confidence:.0%})"
        )
        self.reason = reason
        self.confidence = confidence


class IngestionError(DocIntelError):
    """A multi-step ingestion failed after the document row was created."""

    category = "ingestion_failed"
    status_code = 500

    def __init__(self, message: str, document_id: str | None = None):
        super().__init__(message)
        self.document_id = document_id
