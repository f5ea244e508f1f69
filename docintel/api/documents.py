"""API endpoints for document upload and management."""

from fastapi import APIRouter, File, Query, UploadFile
from pydantic import BaseModel

from docintel.api.deps import ContainerDep, UserIdDep
from docintel.core.logging import get_logger
from docintel.core.schemas_analysis import DocumentReport, DocumentSummary
from docintel.core.schemas_documents import DocumentRecord, IngestionResult, RemainingUploads
from docintel.services import ingestion
from docintel.services.report import build_report
from docintel.services.summary import get_summary

logger = get_logger(__name__)

router = APIRouter()


class DocumentListResponse(BaseModel):
    """Response for document list."""

    documents: list[DocumentRecord]
    total: int


@router.post("/documents", response_model=IngestionResult, status_code=201)
async def upload_document(
    container: ContainerDep,
    user_id: UserIdDep,
    file: UploadFile = File(...),
) -> IngestionResult:
    """Upload a PDF, DOCX or TXT file and index it for search."""
    file_bytes = await file.read()
    logger.info(
        f"Upload received: {file.filename} ({len(file_bytes)} bytes)",
        extra={"user_id": user_id},
    )
    return await ingestion.ingest_document(
        container, user_id, file.filename or "", file.content_type, file_bytes
    )


@router.get("/documents", response_model=DocumentListResponse)
async def list_documents(container: ContainerDep, user_id: UserIdDep) -> DocumentListResponse:
    documents = await ingestion.list_documents(container, user_id)
    return DocumentListResponse(documents=documents, total=len(documents))


@router.get("/documents/upload-limit", response_model=RemainingUploads)
async def get_upload_limit(container: ContainerDep, user_id: UserIdDep) -> RemainingUploads:
    """Remaining uploads in the current week and when the window resets."""
    return await ingestion.remaining_uploads(container, user_id)


@router.get("/documents/{document_id}", response_model=DocumentRecord)
async def get_document(
    document_id: str, container: ContainerDep, user_id: UserIdDep
) -> DocumentRecord:
    return await ingestion.get_document(container, user_id, document_id)


@router.delete("/documents/{document_id}", status_code=204)
async def delete_document(document_id: str, container: ContainerDep, user_id: UserIdDep) -> None:
    await ingestion.delete_document(container, user_id, document_id)


@router.post("/documents/{document_id}/summary", response_model=DocumentSummary)
async def summarize_document(
    document_id: str,
    container: ContainerDep,
    user_id: UserIdDep,
    force: bool = Query(default=False, description="Regenerate even if a summary exists"),
) -> DocumentSummary:
    return await get_summary(container, user_id, document_id, force=force)


@router.get("/documents/{document_id}/report", response_model=DocumentReport)
async def get_document_report(
    document_id: str, container: ContainerDep, user_id: UserIdDep
) -> DocumentReport:
    """Metadata, summary, stored insights and contradiction analysis in one response."""
    return await build_report(container, user_id, document_id)
