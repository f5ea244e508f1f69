"""Pydantic schemas for documents, chunks, retrieval results and upload quotas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class DocumentRecord(BaseModel):
    """A user's ingested document as stored in the `documents` table."""

    id: str
    user_id: str
    file_name: str
    title: str | None = None
    file_type: str | None = None
    file_size: int | None = None
    file_hash: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    summary: Any = Field(default=None, description="Cached summary (JSON string or object)")
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def display_name(self) -> str:
        return (self.title or "").strip() or (self.file_name or "").strip() or "Unknown Document"


class SearchResult(BaseModel):
    """A chunk returned by similarity search or a direct chunk fetch."""

    chunk_id: str
    document_id: str
    document_title: str
    content: str
    chunk_index: int
    similarity: float = Field(..., ge=0.0, le=1.0)


class UploadLimitStatus(BaseModel):
    """Fixed-window weekly quota for a user."""

    allowed: bool
    count: int
    limit: int
    reset_date: datetime


class RemainingUploads(BaseModel):
    """Caller-facing view of the weekly quota."""

    remaining: int
    total: int
    used: int
    reset_date: datetime


class IngestionResult(BaseModel):
    """Outcome of a successful upload."""

    document: DocumentRecord
    chunks_created: int
    upload_limit: RemainingUploads
