"""API endpoints for document insights."""

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from docintel.api.deps import ContainerDep, UserIdDep
from docintel.core.schemas_analysis import InsightResponse
from docintel.services.insights import (
    generate_cross_document_insights,
    generate_document_insights,
)

router = APIRouter()


class CrossInsightsRequest(BaseModel):
    document_ids: list[str] = Field(..., min_length=1)
    force: bool = False


# Declared before the single-document route so "cross" is not read as an id
@router.post("/insights/cross", response_model=InsightResponse)
async def cross_document_insights(
    request: CrossInsightsRequest, container: ContainerDep, user_id: UserIdDep
) -> InsightResponse:
    return await generate_cross_document_insights(
        container, user_id, request.document_ids, force=request.force
    )


@router.post("/insights/{document_id}", response_model=InsightResponse)
async def document_insights(
    document_id: str,
    container: ContainerDep,
    user_id: UserIdDep,
    force: bool = Query(default=False, description="Ignore cached insights"),
) -> InsightResponse:
    return await generate_document_insights(container, user_id, document_id, force=force)
