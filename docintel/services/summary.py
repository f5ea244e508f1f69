"""Structured document summaries, persisted onto the document row."""

import json
import math
from typing import Any

from docintel.core.container import ServiceContainer
from docintel.core.errors import NotFoundOrForbiddenError, UpstreamServiceError
from docintel.core.llm import Empty, Parsed, parse_json_object
from docintel.core.logging import get_logger
from docintel.core.prompts import (
    SUMMARY_SYSTEM_PROMPT,
    SUMMARY_TRUNCATION_MARKER,
    build_summary_prompt,
    truncate,
)
from docintel.core.schemas_analysis import DocumentSummary, SummaryMetadata
from docintel.services.common import require_document

logger = get_logger(__name__)

WORDS_PER_MINUTE = 200
CHUNKS_PER_PAGE = 3


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def _as_int(value: Any) -> int:
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0


def _first(data: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def parse_stored_summary(stored: Any) -> Parsed[DocumentSummary] | Empty:
    """
    Read a summary persisted on a document row.

    Accepts a dict or JSON string in snake_case or camelCase. A plain-text
    summary from older rows becomes the overview.
    """
    if stored is None or stored == "" or stored == {}:
        return Empty("no stored summary")

    data = stored
    if isinstance(stored, str):
        try:
            data = json.loads(stored)
        except json.JSONDecodeError:
            return Parsed(DocumentSummary(overview=stored.strip()))

    if isinstance(data, str):
        return Parsed(DocumentSummary(overview=data.strip()))
    if not isinstance(data, dict):
        return Empty(f"unexpected stored summary type {type(data).__name__}")

    overview = _first(data, "overview", "summary")
    if not isinstance(overview, str) or not overview.strip():
        return Empty("stored summary has no overview")

    raw_meta = data.get("metadata") if isinstance(data.get("metadata"), dict) else {}
    metadata = SummaryMetadata(
        word_count=_as_int(_first(raw_meta, "word_count", "wordCount")),
        page_count=_as_int(_first(raw_meta, "page_count", "pageCount")),
        reading_time=_as_int(_first(raw_meta, "reading_time", "readingTime")),
    )
    return Parsed(
        DocumentSummary(
            overview=overview.strip(),
            key_findings=_string_list(_first(data, "key_findings", "keyFindings")),
            keywords=_string_list(data.get("keywords")),
            metadata=metadata,
        )
    )


def compute_metadata(full_text: str, chunk_count: int, pages: Any = None) -> SummaryMetadata:
    word_count = len(full_text.split())
    if isinstance(pages, int) and pages > 0:
        page_count = pages
    else:
        page_count = math.ceil(chunk_count / CHUNKS_PER_PAGE)
    return SummaryMetadata(
        word_count=word_count,
        page_count=page_count,
        reading_time=math.ceil(word_count / WORDS_PER_MINUTE),
    )


async def get_summary(
    container: ServiceContainer,
    user_id: str,
    document_id: str,
    force: bool = False,
) -> DocumentSummary:
    """
    Return the document's summary, generating and persisting it when missing.

    Args:
        container: Service container
        user_id: Requesting user
        document_id: Document to summarize
        force: Regenerate even when a summary is stored

    Raises:
        NotFoundOrForbiddenError: Document missing, foreign or without content
        UpstreamServiceError: Completion failed or returned no overview
    """
    document = await require_document(container, user_id, document_id)

    if not force:
        stored = parse_stored_summary(document.summary)
        if isinstance(stored, Parsed):
            logger.debug(f"Returning stored summary for {document.id}")
            return stored.value.model_copy(update={"cached": True})

    settings = container.settings
    chunks = await container.retriever.get_document_chunks(
        document.id, settings.SUMMARY_MAX_CHUNKS, user_id=user_id
    )
    if not chunks:
        raise NotFoundOrForbiddenError("Document content")

    full_text = "\n\n".join(chunk.content for chunk in chunks)
    metadata = compute_metadata(full_text, len(chunks), document.metadata.get("pages"))

    raw = await container.completion.complete(
        SUMMARY_SYSTEM_PROMPT,
        build_summary_prompt(
            truncate(full_text, settings.SUMMARY_MAX_CHARS, SUMMARY_TRUNCATION_MARKER)
        ),
        temperature=0.3,
        max_output_tokens=1200,
        json_mode=True,
        model=settings.SUMMARY_MODEL,
    )

    parsed = parse_json_object(raw)
    if isinstance(parsed, Empty):
        raise UpstreamServiceError("completion", f"Unusable summary response: {parsed.reason}")

    data = parsed.value
    overview = data.get("overview")
    if not isinstance(overview, str) or not overview.strip():
        raise UpstreamServiceError("completion", "Summary response has no overview")

    summary = DocumentSummary(
        overview=overview.strip(),
        key_findings=_string_list(_first(data, "keyFindings", "key_findings")),
        keywords=_string_list(data.get("keywords")),
        metadata=metadata,
    )

    try:
        await container.storage.update_document_summary(
            user_id, document.id, summary.model_dump(exclude={"cached"})
        )
    except UpstreamServiceError as e:
        # The summary is still returned; only persistence failed
        logger.error(f"Failed to save summary for {document.id}: {e.detail}")
    else:
        # Cross-document insights are built from stored summaries
        container.analysis_cache.invalidate([document.id])

    logger.info(
        f"Generated summary for {document.id} from {len(chunks)} chunks",
        extra={"user_id": user_id, "word_count": metadata.word_count},
    )
    return summary
