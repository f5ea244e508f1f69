"""Helpers shared by the use-case services."""

from datetime import datetime, timezone
from uuid import UUID

from docintel.core.container import ServiceContainer
from docintel.core.errors import InputValidationError, NotFoundOrForbiddenError
from docintel.core.schemas_documents import DocumentRecord


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def validate_document_id(value: str, field: str = "document_id") -> str:
    """Reject ids that are not UUIDs before any storage call is made."""
    try:
        return str(UUID(str(value)))
    except (ValueError, TypeError, AttributeError) as e:
        raise InputValidationError(
            f"Invalid {field}", field_errors={field: ["must be a valid UUID"]}
        ) from e


def validate_document_ids(values: list[str], field: str = "document_ids") -> list[str]:
    """Validate and de-duplicate a list of document ids, keeping their order."""
    ids: list[str] = []
    for value in values:
        doc_id = validate_document_id(value, field)
        if doc_id not in ids:
            ids.append(doc_id)
    return ids


async def require_document(
    container: ServiceContainer, user_id: str, document_id: str
) -> DocumentRecord:
    """Load one of the user's documents or raise NotFoundOrForbiddenError."""
    document_id = validate_document_id(document_id)
    document = await container.storage.get_document(user_id, document_id)
    if document is None:
        raise NotFoundOrForbiddenError("Document")
    return document


async def require_documents(
    container: ServiceContainer, user_id: str, document_ids: list[str]
) -> list[DocumentRecord]:
    """Load several of the user's documents, failing if any is missing or foreign."""
    ids = validate_document_ids(document_ids)
    if not ids:
        return []

    documents = await container.storage.get_documents(user_id, ids)
    if len({doc.id for doc in documents}) != len(ids):
        raise NotFoundOrForbiddenError("Document")

    by_id = {doc.id: doc for doc in documents}
    return [by_id[doc_id] for doc_id in ids]
