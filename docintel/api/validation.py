"""API endpoints for contradiction and quality analysis."""

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from docintel.api.deps import ContainerDep, UserIdDep
from docintel.core.schemas_analysis import ValidationResult
from docintel.services.validation import detect_across_documents, detect_within_document

router = APIRouter()


class CrossValidationRequest(BaseModel):
    primary_document_id: str
    compare_document_ids: list[str] = Field(..., min_length=1)
    force: bool = False


@router.post("/validation/cross", response_model=ValidationResult)
async def validate_across_documents(
    request: CrossValidationRequest, container: ContainerDep, user_id: UserIdDep
) -> ValidationResult:
    return await detect_across_documents(
        container,
        user_id,
        request.primary_document_id,
        request.compare_document_ids,
        force=request.force,
    )


@router.post("/validation/{document_id}", response_model=ValidationResult)
async def validate_document(
    document_id: str,
    container: ContainerDep,
    user_id: UserIdDep,
    force: bool = Query(default=False, description="Ignore the cached analysis"),
) -> ValidationResult:
    return await detect_within_document(container, user_id, document_id, force=force)
