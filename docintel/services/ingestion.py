"""Document upload pipeline and document lifecycle operations.

Ingestion is linear and abortive: validate, check quota, de-duplicate,
extract, gate on document type, chunk, persist, embed, insert. Any failure
stops the remaining steps. Once the document row exists, a failure triggers
a best-effort delete and is reported as IngestionError.
"""

import asyncio
import logging
from pathlib import PurePath
from typing import Any

from docintel.core.container import ServiceContainer
from docintel.core.errors import (
    ConflictError,
    DocumentRejectedError,
    ExtractionError,
    IngestionError,
    InputValidationError,
    NotFoundOrForbiddenError,
)
from docintel.core.file_text import ALLOWED_TYPES, get_extension
from docintel.core.logging import get_logger, log_with_context
from docintel.core.schemas_documents import DocumentRecord, IngestionResult, RemainingUploads
from docintel.db.documents import compute_checksum
from docintel.services.common import require_document, validate_document_id
from docintel.services.validation import classify_technical, should_reject

logger = get_logger(__name__)

GENERIC_MIME_TYPES = {"", "application/octet-stream"}


def _duplicate_upload(existing: DocumentRecord) -> ConflictError:
    return ConflictError(
        f'This file has already been uploaded as "{existing.file_name}"',
        existing_document=existing.model_dump(mode="json"),
    )


def _mime_for_extension(extension: str) -> str | None:
    for mime_type, extensions in ALLOWED_TYPES.items():
        if extension in extensions:
            return mime_type
    return None


def validate_upload(
    file_name: str, mime_type: str | None, file_bytes: bytes, max_bytes: int
) -> str:
    """
    Check an upload before any network call is made.

    Returns:
        The effective MIME type (inferred from the extension when the client
        sent a generic one)

    Raises:
        InputValidationError: With per-field problems
    """
    errors: dict[str, list[str]] = {}
    extension = get_extension(file_name or "")
    mime_type = (mime_type or "").split(";")[0].strip().lower()

    if mime_type in GENERIC_MIME_TYPES:
        mime_type = _mime_for_extension(extension) or mime_type

    if not file_name or not file_name.strip():
        errors.setdefault("file_name", []).append("must not be empty")

    if not file_bytes:
        errors.setdefault("file", []).append("file is empty")
    elif len(file_bytes) > max_bytes:
        errors.setdefault("file", []).append(
            f"file is {len(file_bytes)} bytes; maximum is {max_bytes} bytes"
        )

    if mime_type not in ALLOWED_TYPES:
        errors.setdefault("mime_type", []).append(
            "unsupported file type; upload a PDF, DOCX or TXT file"
        )
    elif extension not in ALLOWED_TYPES[mime_type]:
        errors.setdefault("file_name", []).append(
            f"extension {extension or '(none)'} does not match {mime_type}"
        )

    if errors:
        raise InputValidationError("Invalid upload", field_errors=errors)
    return mime_type


async def _discard_partial_document(
    container: ServiceContainer, user_id: str, document_id: str
) -> None:
    try:
        await container.storage.delete_document(user_id, document_id)
        logger.info(f"Removed partially ingested document {document_id}")
    except Exception as e:
        logger.error(f"Failed to remove partially ingested document {document_id}: {e}")


async def ingest_document(
    container: ServiceContainer,
    user_id: str,
    file_name: str,
    mime_type: str | None,
    file_bytes: bytes,
) -> IngestionResult:
    """
    Ingest an uploaded file into searchable chunks.

    Args:
        container: Service container
        user_id: Uploading user
        file_name: Original file name
        mime_type: Declared MIME type
        file_bytes: Raw file content

    Returns:
        IngestionResult with the new document and the remaining weekly quota

    Raises:
        InputValidationError: Bad file name, type or size
        QuotaExceededError: Weekly upload limit reached
        ConflictError: The user already uploaded identical content
        ExtractionError: No usable text in the file
        DocumentRejectedError: Confidently classified as non-technical
        IngestionError: Embedding or chunk persistence failed
    """
    settings = container.settings
    storage = container.storage

    mime_type = validate_upload(file_name, mime_type, file_bytes, settings.MAX_UPLOAD_BYTES)

    await container.upload_limiter.enforce(user_id)

    file_hash = compute_checksum(file_bytes)
    existing = await storage.find_document_by_hash(user_id, file_hash)
    if existing is not None:
        raise _duplicate_upload(existing)

    extracted = await asyncio.to_thread(
        container.extractor.extract, file_bytes, mime_type, file_name
    )

    if settings.ENFORCE_TECHNICAL_DOCUMENTS:
        classification = await classify_technical(container, file_name, extracted.text)
        if should_reject(classification, settings.TECHNICAL_REJECTION_CONFIDENCE):
            logger.info(
                f"Rejected non-technical document {file_name}",
                extra={"user_id": user_id, "confidence": classification.confidence},
            )
            raise DocumentRejectedError(classification.reason, classification.confidence)

    chunks = container.chunker.chunk(extracted.text)
    if not chunks:
        raise ExtractionError("No text content found to chunk")

    metadata: dict[str, Any] = {
        "mime_type": mime_type,
        "chunk_count": len(chunks),
        "character_count": len(extracted.text),
    }
    if extracted.page_count:
        metadata["pages"] = extracted.page_count
    if extracted.detected_encoding:
        metadata["encoding"] = extracted.detected_encoding

    record = {
        "user_id": user_id,
        "file_name": file_name,
        "title": PurePath(file_name).stem or file_name,
        "file_type": get_extension(file_name).lstrip("."),
        "file_size": len(file_bytes),
        "file_hash": file_hash,
        "metadata": metadata,
    }
    try:
        document = await storage.create_document(record)
    except ConflictError:
        # Lost a race with a concurrent upload of the same bytes
        existing = await storage.find_document_by_hash(user_id, file_hash)
        if existing is None:
            raise
        raise _duplicate_upload(existing) from None

    try:
        embeddings = await container.embedder.embed([chunk.content for chunk in chunks])
        if len(embeddings) != len(chunks):
            raise ValueError(f"Got {len(embeddings)} embeddings for {len(chunks)} chunks")

        rows = [
            {
                "document_id": document.id,
                "chunk_index": chunk.chunk_index,
                "content": chunk.content,
                "token_count": chunk.token_count,
                "embedding": embedding,
            }
            for chunk, embedding in zip(chunks, embeddings)
        ]

        batch_size = settings.CHUNK_INSERT_BATCH_SIZE
        for start in range(0, len(rows), batch_size):
            await storage.insert_chunks(rows[start : start + batch_size])
    except Exception as e:
        logger.error(f"Ingestion of {document.id} failed after document creation: {e}")
        await _discard_partial_document(container, user_id, document.id)
        raise IngestionError(
            f"Failed to process document: {getattr(e, 'message', str(e))}",
            document_id=document.id,
        ) from e

    log_with_context(
        logger,
        logging.INFO,
        f"Ingested {file_name} as {document.id}",
        user_id=user_id,
        document_id=document.id,
        chunks=len(chunks),
        mime_type=mime_type,
    )

    return IngestionResult(
        document=document,
        chunks_created=len(chunks),
        upload_limit=await container.upload_limiter.remaining(user_id),
    )


async def delete_document(container: ServiceContainer, user_id: str, document_id: str) -> None:
    """
    Delete one of the user's documents and every cached analysis that used it.

    Raises:
        NotFoundOrForbiddenError: Document missing or foreign
    """
    document = await require_document(container, user_id, document_id)

    if not await container.storage.delete_document(user_id, document.id):
        raise NotFoundOrForbiddenError("Document")

    removed = container.analysis_cache.invalidate([document.id])
    logger.info(
        f"Deleted document {document.id} ({removed} cached analyses invalidated)",
        extra={"user_id": user_id},
    )


async def list_documents(container: ServiceContainer, user_id: str) -> list[DocumentRecord]:
    return await container.storage.list_documents(user_id)


async def get_document(
    container: ServiceContainer, user_id: str, document_id: str
) -> DocumentRecord:
    return await require_document(container, user_id, validate_document_id(document_id))


async def remaining_uploads(container: ServiceContainer, user_id: str) -> RemainingUploads:
    return await container.upload_limiter.remaining(user_id)
