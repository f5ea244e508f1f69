"""Per-document report combining metadata, summary, stored insights and analysis.

Only ownership is a hard requirement. A section that cannot be produced is left
empty and logged, so one failing analysis never hides the rest of the report.
"""

from docintel.core.container import ServiceContainer
from docintel.core.errors import DocIntelError, UpstreamServiceError
from docintel.core.logging import get_logger
from docintel.core.schemas_analysis import DocumentReport
from docintel.services.common import require_document, utc_now_iso
from docintel.services.insights import coerce_insights
from docintel.services.summary import get_summary
from docintel.services.validation import detect_within_document

logger = get_logger(__name__)


async def build_report(
    container: ServiceContainer, user_id: str, document_id: str
) -> DocumentReport:
    """
    Build a report for one of the user's documents.

    The summary and the within-document analysis are served from their caches
    when present and generated otherwise. Insights are read from the stored
    insights row, whatever its age; none are generated here.

    Raises:
        InputValidationError: Malformed document id
        NotFoundOrForbiddenError: Document missing or foreign
    """
    document = await require_document(container, user_id, document_id)
    logger.info(f"Generating report for document {document.id}", extra={"user_id": user_id})

    summary = None
    try:
        summary = await get_summary(container, user_id, document.id)
    except DocIntelError as e:
        logger.warning(f"Report for {document.id} has no summary: {e.message}")

    insights = []
    insights_generated_at = None
    try:
        stored = await container.storage.get_cached_insights(user_id, document.id)
    except UpstreamServiceError as e:
        logger.warning(f"Failed to read insights for report on {document.id}: {e.detail}")
        stored = None
    if stored and isinstance(stored.get("insights"), list):
        insights = coerce_insights(stored["insights"])
        insights_generated_at = str(stored.get("created_at") or "") or None

    validation = None
    try:
        validation = await detect_within_document(container, user_id, document.id)
    except DocIntelError as e:
        logger.warning(f"Report for {document.id} has no analysis: {e.message}")

    logger.info(
        f"Report compiled for {document.id}: summary={summary is not None}, "
        f"insights={len(insights)}, analysis={validation is not None}"
    )
    return DocumentReport(
        document=document,
        summary=summary,
        insights=insights,
        insights_generated_at=insights_generated_at,
        validation=validation,
        generated_at=utc_now_iso(),
    )
