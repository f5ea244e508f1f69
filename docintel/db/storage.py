"""Async storage adapter over the synchronous Supabase client.

Each call runs in a worker thread so the event loop is never blocked; any
client failure is logged and re-raised as ``UpstreamServiceError``.
"""

import asyncio
from collections.abc import Callable
from datetime import datetime
from typing import Any, TypeVar

from supabase import Client

from docintel.core.errors import ConflictError, UpstreamServiceError
from docintel.core.logging import get_logger
from docintel.core.schemas_documents import DocumentRecord
from docintel.db import chunks as chunks_db
from docintel.db import documents as documents_db
from docintel.db import insights as insights_db

logger = get_logger(__name__)

R = TypeVar("R")

UNIQUE_VIOLATION = "23505"


def _is_unique_violation(error: BaseException | None) -> bool:
    """Postgres unique_violation, as surfaced by postgrest's APIError."""
    if error is None:
        return False
    return getattr(error, "code", None) == UNIQUE_VIOLATION or UNIQUE_VIOLATION in str(error)


class SupabaseStorage:
    """Storage capability backed by Supabase tables and RPCs."""

    def __init__(self, client: Client):
        self.client = client

    async def _run(self, operation: str, func: Callable[..., R], *args: Any) -> R:
        try:
            return await asyncio.to_thread(func, self.client, *args)
        except Exception as e:
            logger.error(f"Storage operation {operation} failed: {e}")
            raise UpstreamServiceError("storage", f"{operation}: {e}") from e

    # Documents

    async def create_document(self, record: dict[str, Any]) -> DocumentRecord:
        try:
            row = await self._run("create_document", documents_db.insert_document, record)
        except UpstreamServiceError as e:
            # documents_user_file_hash_key: a concurrent upload of the same bytes won
            if _is_unique_violation(e.__cause__):
                raise ConflictError("This file has already been uploaded") from e
            raise
        return DocumentRecord.model_validate(row)

    async def get_document(self, user_id: str, document_id: str) -> DocumentRecord | None:
        row = await self._run("get_document", documents_db.get_document, user_id, document_id)
        return DocumentRecord.model_validate(row) if row else None

    async def get_documents(self, user_id: str, document_ids: list[str]) -> list[DocumentRecord]:
        rows = await self._run(
            "get_documents", documents_db.get_documents, user_id, document_ids
        )
        return [DocumentRecord.model_validate(row) for row in rows]

    async def list_documents(self, user_id: str) -> list[DocumentRecord]:
        rows = await self._run("list_documents", documents_db.list_documents, user_id)
        return [DocumentRecord.model_validate(row) for row in rows]

    async def find_document_by_hash(self, user_id: str, file_hash: str) -> DocumentRecord | None:
        row = await self._run(
            "find_document_by_hash", documents_db.find_by_checksum, user_id, file_hash
        )
        return DocumentRecord.model_validate(row) if row else None

    async def update_document_summary(
        self, user_id: str, document_id: str, summary: dict[str, Any]
    ) -> None:
        await self._run(
            "update_document_summary", documents_db.update_summary, user_id, document_id, summary
        )

    async def delete_document(self, user_id: str, document_id: str) -> bool:
        return await self._run(
            "delete_document", documents_db.delete_document, user_id, document_id
        )

    async def count_documents_since(self, user_id: str, since: datetime) -> int:
        return await self._run(
            "count_documents_since", documents_db.count_documents_since, user_id, since
        )

    # Chunks

    async def insert_chunks(self, rows: list[dict[str, Any]]) -> None:
        await self._run("insert_chunks", chunks_db.insert_chunks, rows)

    async def get_document_chunks(
        self, user_id: str, document_id: str, limit: int | None = None
    ) -> list[dict[str, Any]]:
        return await self._run(
            "get_document_chunks", chunks_db.get_document_chunks, user_id, document_id, limit
        )

    async def match_chunks(
        self,
        user_id: str,
        query_embedding: list[float],
        match_threshold: float,
        match_count: int,
        document_ids: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        return await self._run(
            "match_chunks",
            chunks_db.match_chunks,
            user_id,
            query_embedding,
            match_threshold,
            match_count,
            document_ids,
        )

    # Insights cache

    async def get_cached_insights(self, user_id: str, document_id: str) -> dict[str, Any] | None:
        return await self._run(
            "get_cached_insights", insights_db.get_cached_insights, user_id, document_id
        )

    async def upsert_cached_insights(
        self,
        user_id: str,
        document_id: str,
        insights: list[dict[str, Any]],
        generated_at: datetime,
    ) -> None:
        await self._run(
            "upsert_cached_insights",
            insights_db.upsert_insights,
            user_id,
            document_id,
            insights,
            generated_at,
        )

    # Auth

    async def resolve_user_id(self, access_token: str) -> str | None:
        """Verify a Supabase access token and return its user id (None if invalid)."""
        try:
            response = await asyncio.to_thread(self.client.auth.get_user, access_token)
        except Exception as e:
            logger.warning(f"Token verification failed: {e}")
            return None

        user = getattr(response, "user", None)
        return str(user.id) if user else None
