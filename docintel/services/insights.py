"""Non-obvious insights for one document or across several."""

from datetime import datetime, timedelta, timezone
from typing import Any

from dateutil.parser import isoparse
from pydantic import ValidationError

from docintel.core.cache import analysis_key
from docintel.core.container import ServiceContainer
from docintel.core.errors import UpstreamServiceError
from docintel.core.grounding import normalize_confidence
from docintel.core.llm import Empty, Parsed, parse_json
from docintel.core.logging import get_logger
from docintel.core.prompts import (
    CROSS_INSIGHTS_SYSTEM_PROMPT,
    INSIGHTS_SYSTEM_PROMPT,
    INSIGHTS_TRUNCATION_MARKER,
    build_cross_insights_prompt,
    build_document_insights_prompt,
    truncate,
)
from docintel.core.schemas_analysis import Insight, InsightResponse
from docintel.services.common import require_document, utc_now_iso, validate_document_ids
from docintel.services.summary import parse_stored_summary

logger = get_logger(__name__)

INSIGHT_CATEGORIES = {"pattern", "anomaly", "opportunity", "risk"}
LEGACY_CATEGORY = "correlation"
CACHE_MAX_AGE = timedelta(hours=24)
CROSS_INSIGHTS_KEY_TYPE = "insights-across"


def coerce_insight(item: Any) -> Insight | None:
    """Validate one model-produced insight; None when it must be dropped."""
    if not isinstance(item, dict):
        return None

    category = str(item.get("category") or "").strip().lower()
    if category == LEGACY_CATEGORY or category not in INSIGHT_CATEGORIES:
        return None

    evidence = item.get("evidence") or []
    if isinstance(evidence, str):
        evidence = [evidence]
    elif not isinstance(evidence, list):
        evidence = []

    try:
        return Insight(
            title=str(item.get("title") or "").strip(),
            description=str(item.get("description") or "").strip(),
            confidence=normalize_confidence(item.get("confidence")),
            category=category,
            evidence=[e.strip() for e in evidence if isinstance(e, str) and e.strip()],
            impact=str(item.get("impact") or "").strip(),
        )
    except ValidationError as e:
        logger.debug(f"Dropping invalid insight: {e}")
        return None


def coerce_insights(items: list[Any]) -> list[Insight]:
    insights = []
    for item in items:
        insight = coerce_insight(item)
        if insight is not None and insight.title:
            insights.append(insight)
    return insights


def parse_insights(raw_output: str | None) -> Parsed[list[Insight]] | Empty:
    """
    Parse an insights response.

    Accepts a bare JSON array or an object with an ``insights`` array; any
    other shape is Empty. Invalid and legacy-category items are dropped.
    """
    result = parse_json(raw_output)
    if isinstance(result, Empty):
        return result

    data = result.value
    if isinstance(data, dict):
        data = data.get("insights")
    if not isinstance(data, list):
        return Empty("unexpected insights JSON structure")

    return Parsed(coerce_insights(data))


def _insights_or_empty(raw_output: str) -> list[Insight]:
    parsed = parse_insights(raw_output)
    if isinstance(parsed, Empty):
        logger.warning(f"Treating insights response as empty: {parsed.reason}")
        return []
    return parsed.value


def _cache_is_fresh(created_at: Any, now: datetime) -> bool:
    if not created_at:
        return False
    try:
        created = created_at if isinstance(created_at, datetime) else isoparse(str(created_at))
    except (ValueError, OverflowError):
        return False
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return now - created < CACHE_MAX_AGE


async def generate_document_insights(
    container: ServiceContainer,
    user_id: str,
    document_id: str,
    force: bool = False,
) -> InsightResponse:
    """
    Generate (or return cached) insights for a single document.

    Cached rows younger than 24 hours are served unless ``force`` is set.

    Raises:
        NotFoundOrForbiddenError: Document missing or foreign
        UpstreamServiceError: Chunk fetch or completion failed
    """
    document = await require_document(container, user_id, document_id)
    storage = container.storage
    settings = container.settings

    if not force:
        try:
            cached = await storage.get_cached_insights(user_id, document.id)
        except UpstreamServiceError as e:
            logger.warning(f"Error reading cached insights (continuing): {e.detail}")
            cached = None

        now = datetime.now(timezone.utc)
        if cached and isinstance(cached.get("insights"), list) and _cache_is_fresh(
            cached.get("created_at"), now
        ):
            logger.info(f"Returning cached insights for {document.id}")
            return InsightResponse(
                insights=coerce_insights(cached["insights"]),
                generated_at=str(cached["created_at"]),
                document_count=1,
                cached=True,
            )

    chunks = await container.retriever.get_document_chunks(document.id, user_id=user_id)
    full_text = "\n\n".join(chunk.content for chunk in chunks)
    content = truncate(full_text, settings.INSIGHTS_MAX_CHARS, INSIGHTS_TRUNCATION_MARKER)

    logger.info(
        f"Analyzing document {document.id} with {len(full_text)} chars "
        f"({len(content)} sent for insights)"
    )

    raw = await container.completion.complete(
        INSIGHTS_SYSTEM_PROMPT,
        build_document_insights_prompt(document.display_name, content),
        temperature=0.6,
        max_output_tokens=5500,
        model=settings.ANALYSIS_MODEL,
    )
    insights = _insights_or_empty(raw)
    generated_at = datetime.now(timezone.utc)

    try:
        await storage.upsert_cached_insights(
            user_id,
            document.id,
            [insight.model_dump() for insight in insights],
            generated_at,
        )
    except UpstreamServiceError as e:
        logger.warning(f"Failed to cache insights for {document.id}: {e.detail}")

    logger.info(f"Generated {len(insights)} insights for {document.id}")
    return InsightResponse(
        insights=insights,
        generated_at=generated_at.isoformat(),
        document_count=1,
        cached=False,
    )


async def generate_cross_document_insights(
    container: ServiceContainer,
    user_id: str,
    document_ids: list[str],
    force: bool = False,
) -> InsightResponse:
    """
    Generate insights that compare several documents through their summaries.

    Documents the user does not own are ignored. Results live in the
    analysis cache until one of the documents is deleted.
    """
    ids = validate_document_ids(document_ids)
    if not ids:
        return InsightResponse(insights=[], generated_at=utc_now_iso(), document_count=0)

    documents = await container.storage.get_documents(user_id, ids)
    if not documents:
        return InsightResponse(insights=[], generated_at=utc_now_iso(), document_count=0)

    async def compute() -> InsightResponse:
        summaries: list[dict[str, Any]] = []
        for doc in documents:
            stored = parse_stored_summary(doc.summary)
            summaries.append(
                {
                    "name": doc.display_name,
                    "summary": stored.value.overview if isinstance(stored, Parsed) else "",
                    "metadata": doc.metadata or {},
                }
            )

        raw = await container.completion.complete(
            CROSS_INSIGHTS_SYSTEM_PROMPT,
            build_cross_insights_prompt(summaries),
            temperature=0.6,
            max_output_tokens=3000,
            model=container.settings.ANALYSIS_MODEL,
        )
        insights = _insights_or_empty(raw)
        logger.info(f"Generated {len(insights)} cross-document insights for {len(documents)} docs")
        return InsightResponse(
            insights=insights,
            generated_at=utc_now_iso(),
            document_count=len(documents),
        )

    key = analysis_key([doc.id for doc in documents], CROSS_INSIGHTS_KEY_TYPE)
    response, from_cache = await container.analysis_cache.get_or_compute(key, compute, force=force)
    return response.model_copy(update={"cached": from_cache})
