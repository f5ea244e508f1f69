"""Database operations for the documents table.

Every query filters on ``user_id``; a document owned by someone else is
indistinguishable from one that does not exist.
"""

import hashlib
from datetime import datetime, timezone
from typing import Any

from supabase import Client

from docintel.core.logging import get_logger

logger = get_logger(__name__)

TABLE = "documents"


def compute_checksum(file_bytes: bytes) -> str:
    """Compute SHA256 checksum for deduplication.

    Args:
        file_bytes: Raw file content

    Returns:
        Hex-encoded SHA256 hash
    """
    return hashlib.sha256(file_bytes).hexdigest()


def insert_document(supabase: Client, record: dict[str, Any]) -> dict[str, Any]:
    """
    Insert a new document row.

    Args:
        supabase: Supabase client
        record: Column values (must include user_id)

    Returns:
        Created document row

    Raises:
        ValueError: If the insert returned no row
    """
    response = supabase.table(TABLE).insert(record).execute()

    if not response.data:
        raise ValueError("Failed to create document record")

    doc = response.data[0]
    logger.info(
        f"Created document {doc['id']}: {record.get('file_name')}",
        extra={"document_id": doc["id"], "user_id": record.get("user_id")},
    )
    return doc


def get_document(supabase: Client, user_id: str, document_id: str) -> dict[str, Any] | None:
    response = (
        supabase.table(TABLE)
        .select("*")
        .eq("id", document_id)
        .eq("user_id", user_id)
        .limit(1)
        .execute()
    )
    return response.data[0] if response.data else None


def get_documents(
    supabase: Client, user_id: str, document_ids: list[str]
) -> list[dict[str, Any]]:
    """Fetch several of a user's documents; ids the user does not own are skipped."""
    if not document_ids:
        return []

    response = (
        supabase.table(TABLE)
        .select("*")
        .in_("id", document_ids)
        .eq("user_id", user_id)
        .execute()
    )
    return response.data or []


def list_documents(supabase: Client, user_id: str) -> list[dict[str, Any]]:
    response = (
        supabase.table(TABLE)
        .select("*")
        .eq("user_id", user_id)
        .order("created_at", desc=True)
        .execute()
    )
    return response.data or []


def find_by_checksum(supabase: Client, user_id: str, file_hash: str) -> dict[str, Any] | None:
    """Return the user's existing document with identical content, if any."""
    response = (
        supabase.table(TABLE)
        .select("*")
        .eq("user_id", user_id)
        .eq("file_hash", file_hash)
        .limit(1)
        .execute()
    )

    if response.data:
        logger.info(f"Found duplicate document with checksum {file_hash[:16]}...")
        return response.data[0]
    return None


def update_summary(
    supabase: Client, user_id: str, document_id: str, summary: dict[str, Any]
) -> None:
    supabase.table(TABLE).update(
        {
            "summary": summary,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
    ).eq("id", document_id).eq("user_id", user_id).execute()


def delete_document(supabase: Client, user_id: str, document_id: str) -> bool:
    """
    Delete a document (chunks and cached insights cascade).

    Returns:
        True if a row was deleted
    """
    response = (
        supabase.table(TABLE)
        .delete()
        .eq("id", document_id)
        .eq("user_id", user_id)
        .execute()
    )
    deleted = bool(response.data)
    if deleted:
        logger.info(f"Deleted document {document_id}", extra={"user_id": user_id})
    return deleted


def count_documents_since(supabase: Client, user_id: str, since: datetime) -> int:
    """Count a user's documents created at or after ``since``."""
    response = (
        supabase.table(TABLE)
        .select("id", count="exact")
        .eq("user_id", user_id)
        .gte("created_at", since.isoformat())
        .execute()
    )
    if response.count is not None:
        return response.count
    return len(response.data or [])
