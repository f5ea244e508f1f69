"""Capabilities the core consumes from its collaborators.

Production adapters live in ``docintel.core.embeddings``, ``docintel.core.llm``,
``docintel.core.file_text`` and ``docintel.db.storage``; tests substitute the
in-memory fakes from ``tests/fakes``.
"""

from datetime import datetime
from typing import Any, Protocol

from docintel.core.file_text import ExtractedText
from docintel.core.schemas_documents import DocumentRecord


class Embedder(Protocol):
    async def embed(self, texts: list[str]) -> list[list[float]]: ...

    async def embed_one(self, text: str) -> list[float]: ...


class Completion(Protocol):
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_output_tokens: int = 1000,
        json_mode: bool = False,
        model: str | None = None,
    ) -> str: ...


class TextExtractor(Protocol):
    def extract(self, file_bytes: bytes, mime_type: str, file_name: str) -> ExtractedText: ...


class Storage(Protocol):
    """Owner-scoped persistence for documents, chunks and cached insights.

    Chunk rows are flat dicts with ``id``, ``document_id``, ``content``,
    ``chunk_index``, ``title`` and ``file_name`` (plus ``similarity`` from
    ``match_chunks``).
    ``create_document`` raises ConflictError when the user already has a document
    with the same ``file_hash``.
    """

    async def create_document(self, record: dict[str, Any]) -> DocumentRecord: ...

    async def get_document(self, user_id: str, document_id: str) -> DocumentRecord | None: ...

    async def get_documents(
        self, user_id: str, document_ids: list[str]
    ) -> list[DocumentRecord]: ...

    async def list_documents(self, user_id: str) -> list[DocumentRecord]: ...

    async def find_document_by_hash(
        self, user_id: str, file_hash: str
    ) -> DocumentRecord | None: ...

    async def update_document_summary(
        self, user_id: str, document_id: str, summary: dict[str, Any]
    ) -> None: ...

    async def delete_document(self, user_id: str, document_id: str) -> bool: ...

    async def insert_chunks(self, rows: list[dict[str, Any]]) -> None: ...

    async def get_document_chunks(
        self, user_id: str, document_id: str, limit: int | None = None
    ) -> list[dict[str, Any]]: ...

    async def match_chunks(
        self,
        user_id: str,
        query_embedding: list[float],
        match_threshold: float,
        match_count: int,
        document_ids: list[str] | None = None,
    ) -> list[dict[str, Any]]: ...

    async def count_documents_since(self, user_id: str, since: datetime) -> int: ...

    async def get_cached_insights(
        self, user_id: str, document_id: str
    ) -> dict[str, Any] | None: ...

    async def upsert_cached_insights(
        self,
        user_id: str,
        document_id: str,
        insights: list[dict[str, Any]],
        generated_at: datetime,
    ) -> None: ...

    async def resolve_user_id(self, access_token: str) -> str | None: ...
