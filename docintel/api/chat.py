"""API endpoints for grounded chat and semantic search."""

from fastapi import APIRouter
from pydantic import BaseModel, Field

from docintel.api.deps import ContainerDep, UserIdDep
from docintel.core.schemas_analysis import ChatAnswer
from docintel.core.schemas_documents import SearchResult
from docintel.services.chat import answer_question
from docintel.services.search import search_documents

router = APIRouter()


class ChatRequest(BaseModel):
    """Request body for chat."""

    question: str = Field(..., description="Question to answer from the user's documents")
    document_ids: list[str] | None = Field(default=None, description="Restrict to these documents")
    top_k: int | None = Field(default=None, description="Chunks to retrieve (clamped to 1-50)")
    similarity_threshold: float | None = Field(
        default=None, description="Similarity floor (clamped to 0-1)"
    )


class SearchRequest(BaseModel):
    """Request body for semantic search."""

    query: str
    top_k: int | None = Field(default=None, description="Results to return (clamped to 1-50)")
    threshold: float | None = Field(default=None, description="Similarity floor (clamped to 0-1)")
    document_ids: list[str] | None = None


class SearchResponse(BaseModel):
    results: list[SearchResult]
    count: int


@router.post("/chat", response_model=ChatAnswer)
async def chat(request: ChatRequest, container: ContainerDep, user_id: UserIdDep) -> ChatAnswer:
    return await answer_question(
        container,
        user_id,
        request.question,
        document_ids=request.document_ids,
        top_k=request.top_k,
        similarity_threshold=request.similarity_threshold,
    )


@router.post("/search", response_model=SearchResponse)
async def search(
    request: SearchRequest, container: ContainerDep, user_id: UserIdDep
) -> SearchResponse:
    results = await search_documents(
        container,
        user_id,
        request.query,
        top_k=request.top_k,
        threshold=request.threshold,
        document_ids=request.document_ids,
    )
    return SearchResponse(results=results, count=len(results))
