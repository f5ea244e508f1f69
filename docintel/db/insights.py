"""Database operations for the per-document insights cache."""

from datetime import datetime
from typing import Any

from supabase import Client

TABLE = "document_insights"


def get_cached_insights(
    supabase: Client, user_id: str, document_id: str
) -> dict[str, Any] | None:
    response = (
        supabase.table(TABLE)
        .select("insights, created_at")
        .eq("document_id", document_id)
        .eq("user_id", user_id)
        .limit(1)
        .execute()
    )
    return response.data[0] if response.data else None


def upsert_insights(
    supabase: Client,
    user_id: str,
    document_id: str,
    insights: list[dict[str, Any]],
    generated_at: datetime,
) -> None:
    supabase.table(TABLE).upsert(
        {
            "document_id": document_id,
            "user_id": user_id,
            "insights": insights,
            "created_at": generated_at.isoformat(),
        },
        on_conflict="document_id,user_id",
    ).execute()
