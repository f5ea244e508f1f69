"""Contradiction and quality analysis, plus the technical-document gate.

Model findings cite evidence as free-text excerpts; each excerpt is
reconciled to a chunk index with the container's ``ExcerptMatcher``. This is
approximate grounding, not exact span matching.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import ValidationError

from docintel.core.cache import analysis_key
from docintel.core.container import ServiceContainer
from docintel.core.errors import InputValidationError, NotFoundOrForbiddenError
from docintel.core.grounding import ExcerptMatcher, normalize_confidence, normalize_level
from docintel.core.llm import Empty, Parsed, parse_json_object
from docintel.core.logging import get_logger
from docintel.core.prompts import (
    CLASSIFIER_SYSTEM_PROMPT,
    VALIDATION_SYSTEM_PROMPT,
    build_classifier_prompt,
    build_cross_document_prompt,
    build_within_document_prompt,
    truncate,
)
from docintel.core.schemas_analysis import (
    Agreement,
    AnalysisMetadata,
    Contradiction,
    DocumentReference,
    InformationGap,
    KeyClaim,
    Recommendation,
    RiskAssessment,
    TechnicalClassification,
    ValidationResult,
)
from docintel.core.schemas_documents import SearchResult
from docintel.services.common import (
    require_document,
    utc_now_iso,
    validate_document_id,
    validate_document_ids,
)

logger = get_logger(__name__)

WITHIN_KEY_TYPE = "within"
ACROSS_KEY_TYPE = "across"

PRIMARY_MAX_CHARS = 15_000
COMPARISON_MAX_CHARS = 10_000

CLAIM_TYPES = {"fact", "opinion", "recommendation", "requirement"}
NOT_COMPARABLE_NEXT_STEP = (
    "Select documents from the same topic or domain for meaningful comparison"
)

T = TypeVar("T")


@dataclass
class SourceDocument:
    """A document's chunks as fed to an analysis."""

    document_id: str
    name: str
    chunks: list[SearchResult]

    @property
    def text(self) -> str:
        return "\n\n".join(chunk.content for chunk in self.chunks)


# =============================================================================
# Response mapping
# =============================================================================


def _text(value: Any, default: str = "") -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def _items(value: Any) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _collect(items: Any, mapper: Callable[[dict[str, Any]], T | None]) -> list[T]:
    """Map model items through a validator, dropping the ones that fail."""
    results = []
    for item in _items(items):
        try:
            mapped = mapper(item)
        except ValidationError as e:
            logger.debug(f"Dropping invalid analysis item: {e}")
            continue
        if mapped is not None:
            results.append(mapped)
    return results


def _reference(doc: SourceDocument, excerpt: Any, matcher: ExcerptMatcher) -> DocumentReference:
    excerpt_text = _text(excerpt)
    return DocumentReference(
        document_id=doc.document_id,
        document_name=doc.name,
        excerpt=excerpt_text,
        chunk_index=matcher.match(excerpt_text, doc.chunks),
    )


def _resolve_document(name: Any, documents: list[SourceDocument]) -> SourceDocument | None:
    """Find the document a model referred to by name (exact, then partial match)."""
    wanted = _text(name).lower()
    if not wanted:
        return None
    for doc in documents:
        if doc.name.lower() == wanted:
            return doc
    for doc in documents:
        if wanted in doc.name.lower() or doc.name.lower() in wanted:
            return doc
    return None


def _contradiction(
    item: dict[str, Any],
    claim_doc: SourceDocument,
    evidence_doc: SourceDocument,
    matcher: ExcerptMatcher,
) -> Contradiction | None:
    claim = _text(item.get("claim"))
    if not claim:
        return None
    return Contradiction(
        claim=claim,
        evidence=_text(item.get("evidence")),
        severity=normalize_level(item.get("severity")),
        confidence=normalize_confidence(item.get("confidence")),
        explanation=_text(item.get("explanation")),
        impact=_text(item.get("impact"), "Impact not specified"),
        claim_source=_reference(claim_doc, item.get("claimExcerpt"), matcher),
        evidence_source=_reference(evidence_doc, item.get("evidenceExcerpt"), matcher),
    )


def _gap(item: dict[str, Any]) -> InformationGap | None:
    area = _text(item.get("area"))
    if not area:
        return None
    return InformationGap(
        area=area,
        description=_text(item.get("description")),
        severity=normalize_level(item.get("severity")),
        expected_information=_text(item.get("expectedInformation")),
    )


def _key_claim(
    item: dict[str, Any], doc: SourceDocument, matcher: ExcerptMatcher
) -> KeyClaim | None:
    claim = _text(item.get("claim"))
    if not claim:
        return None
    claim_type = _text(item.get("type")).lower()
    return KeyClaim(
        claim=claim,
        source=_reference(doc, item.get("excerpt"), matcher),
        importance=normalize_level(item.get("importance")),
        type=claim_type if claim_type in CLAIM_TYPES else "fact",
    )


def _recommendation(item: dict[str, Any]) -> Recommendation | None:
    title = _text(item.get("title"))
    if not title:
        return None
    return Recommendation(
        title=title,
        description=_text(item.get("description")),
        priority=normalize_level(item.get("priority")),
        action_items=_string_list(item.get("actionItems")),
        related_issues=_string_list(item.get("relatedIssues")),
    )


def _risk_assessment(value: Any) -> RiskAssessment:
    data = value if isinstance(value, dict) else {}
    return RiskAssessment(
        overall_risk=normalize_level(data.get("overallRisk")),
        summary=_text(data.get("summary"), "Analysis complete"),
        critical_items=_string_list(data.get("criticalItems")),
        next_steps=_string_list(data.get("nextSteps")),
    )


def map_within_document(
    analysis: dict[str, Any], doc: SourceDocument, matcher: ExcerptMatcher
) -> ValidationResult:
    """Turn a within-document analysis response into a typed result."""
    return ValidationResult(
        contradictions=_collect(
            analysis.get("contradictions"), lambda c: _contradiction(c, doc, doc, matcher)
        ),
        gaps=_collect(analysis.get("gaps"), _gap),
        agreements=[],
        key_claims=_collect(analysis.get("keyClaims"), lambda k: _key_claim(k, doc, matcher)),
        recommendations=_collect(analysis.get("recommendations"), _recommendation),
        risk_assessment=_risk_assessment(analysis.get("riskAssessment")),
        analysis_metadata=AnalysisMetadata(
            documents_analyzed=1,
            total_chunks_reviewed=len(doc.chunks),
            analysis_timestamp=utc_now_iso(),
        ),
    )


def _is_comparable(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() != "false"
    return value is not False


def map_cross_document(
    analysis: dict[str, Any],
    primary: SourceDocument,
    comparisons: list[SourceDocument],
    matcher: ExcerptMatcher,
) -> ValidationResult:
    """
    Turn a cross-document analysis response into a typed result.

    Documents the model judged unrelated yield empty findings and a low-risk
    assessment that says so, rather than fabricated comparisons.
    """
    metadata = AnalysisMetadata(
        documents_analyzed=1 + len(comparisons),
        total_chunks_reviewed=len(primary.chunks) + sum(len(c.chunks) for c in comparisons),
        analysis_timestamp=utc_now_iso(),
    )

    if not _is_comparable(analysis.get("documentsComparable", True)):
        reason = _text(analysis.get("comparabilityReason"))
        metadata.documents_comparable = False
        return ValidationResult(
            risk_assessment=RiskAssessment(
                overall_risk="low",
                summary=f"Documents are not meaningfully comparable. {reason}".strip(),
                critical_items=[],
                next_steps=[NOT_COMPARABLE_NEXT_STEP],
            ),
            analysis_metadata=metadata,
        )

    def contradiction(item: dict[str, Any]) -> Contradiction | None:
        evidence_doc = (
            _resolve_document(item.get("evidenceDocumentName"), comparisons) or comparisons[0]
        )
        return _contradiction(item, primary, evidence_doc, matcher)

    def agreement(item: dict[str, Any]) -> Agreement | None:
        statement = _text(item.get("statement"))
        if not statement:
            return None

        names = item.get("sources") if isinstance(item.get("sources"), list) else []
        excerpts = item.get("excerpts") if isinstance(item.get("excerpts"), list) else []

        sources = []
        for idx, excerpt in enumerate(excerpts):
            if idx == 0:
                doc = primary
            else:
                name = names[idx] if idx < len(names) else None
                doc = _resolve_document(name, comparisons) or comparisons[
                    min(idx - 1, len(comparisons) - 1)
                ]
            sources.append(_reference(doc, excerpt, matcher))

        return Agreement(
            statement=statement,
            sources=sources,
            confidence=normalize_confidence(item.get("confidence")),
            significance=_text(item.get("significance")),
        )

    return ValidationResult(
        contradictions=_collect(analysis.get("contradictions"), contradiction),
        gaps=_collect(analysis.get("gaps"), _gap),
        agreements=_collect(analysis.get("agreements"), agreement),
        key_claims=_collect(
            analysis.get("keyClaims"), lambda k: _key_claim(k, primary, matcher)
        ),
        recommendations=_collect(analysis.get("recommendations"), _recommendation),
        risk_assessment=_risk_assessment(analysis.get("riskAssessment")),
        analysis_metadata=metadata,
    )


# =============================================================================
# Use-cases
# =============================================================================


async def _load_source(
    container: ServiceContainer, user_id: str, document_id: str
) -> SourceDocument | None:
    chunks = await container.retriever.get_document_chunks(document_id, user_id=user_id)
    if not chunks:
        return None
    return SourceDocument(document_id=document_id, name=chunks[0].document_title, chunks=chunks)


async def _run_analysis(container: ServiceContainer, prompt: str) -> dict[str, Any]:
    raw = await container.completion.complete(
        VALIDATION_SYSTEM_PROMPT,
        prompt,
        temperature=0.3,
        max_output_tokens=4000,
        json_mode=True,
        model=container.settings.ANALYSIS_MODEL,
    )
    parsed = parse_json_object(raw)
    if isinstance(parsed, Empty):
        logger.warning(f"Treating validation response as empty: {parsed.reason}")
        return {}
    return parsed.value


def _with_cached_flag(result: ValidationResult, cached: bool) -> ValidationResult:
    metadata = result.analysis_metadata.model_copy(update={"cached": cached})
    return result.model_copy(update={"analysis_metadata": metadata})


async def detect_within_document(
    container: ServiceContainer,
    user_id: str,
    document_id: str,
    force: bool = False,
) -> ValidationResult:
    """
    Find internal contradictions, gaps, key claims and risks in one document.

    Raises:
        InputValidationError: Malformed document id
        NotFoundOrForbiddenError: Document missing, foreign or without content
        UpstreamServiceError: Chunk fetch or completion failed
    """
    document = await require_document(container, user_id, document_id)
    document_id = document.id

    async def compute() -> ValidationResult:
        source = await _load_source(container, user_id, document_id)
        if source is None:
            raise NotFoundOrForbiddenError("Document")

        prompt = build_within_document_prompt(
            source.name, truncate(source.text, container.settings.VALIDATION_MAX_CHARS)
        )
        analysis = await _run_analysis(container, prompt)
        result = map_within_document(analysis, source, container.matcher)
        logger.info(
            f"Within-document analysis of {document_id}: "
            f"{len(result.contradictions)} contradictions, {len(result.gaps)} gaps",
            extra={"user_id": user_id},
        )
        return result

    key = analysis_key([document_id], WITHIN_KEY_TYPE)
    result, from_cache = await container.analysis_cache.get_or_compute(key, compute, force=force)
    return _with_cached_flag(result, from_cache)


async def detect_across_documents(
    container: ServiceContainer,
    user_id: str,
    primary_document_id: str,
    compare_document_ids: list[str],
    force: bool = False,
) -> ValidationResult:
    """
    Compare a primary document against one or more other documents.

    Raises:
        InputValidationError: Malformed ids or no comparison document
        NotFoundOrForbiddenError: Primary or every comparison document unavailable
        UpstreamServiceError: Chunk fetch or completion failed
    """
    primary_id = validate_document_id(primary_document_id, "primary_document_id")
    compare_ids = [
        doc_id
        for doc_id in validate_document_ids(compare_document_ids, "compare_document_ids")
        if doc_id != primary_id
    ]
    if not compare_ids:
        raise InputValidationError(
            "At least one comparison document is required",
            field_errors={
                "compare_document_ids": ["must contain a document other than the primary"]
            },
        )

    # Ownership is settled before the cache is consulted; cached results carry no owner
    await require_document(container, user_id, primary_id)
    owned = {doc.id for doc in await container.storage.get_documents(user_id, compare_ids)}
    compare_ids = [doc_id for doc_id in compare_ids if doc_id in owned]
    if not compare_ids:
        raise NotFoundOrForbiddenError("Comparison documents")

    async def compute() -> ValidationResult:
        primary = await _load_source(container, user_id, primary_id)
        if primary is None:
            raise NotFoundOrForbiddenError("Primary document")

        comparisons = []
        for doc_id in compare_ids:
            source = await _load_source(container, user_id, doc_id)
            if source is not None:
                comparisons.append(source)
        if not comparisons:
            raise NotFoundOrForbiddenError("Comparison documents")

        prompt = build_cross_document_prompt(
            primary.name,
            truncate(primary.text, PRIMARY_MAX_CHARS),
            [(c.name, truncate(c.text, COMPARISON_MAX_CHARS)) for c in comparisons],
        )
        analysis = await _run_analysis(container, prompt)
        result = map_cross_document(analysis, primary, comparisons, container.matcher)
        logger.info(
            f"Cross-document analysis of {primary_id} against {len(comparisons)} documents "
            f"(comparable={result.analysis_metadata.documents_comparable})",
            extra={"user_id": user_id},
        )
        return result

    key = analysis_key([primary_id, *compare_ids], ACROSS_KEY_TYPE)
    result, from_cache = await container.analysis_cache.get_or_compute(key, compute, force=force)
    return _with_cached_flag(result, from_cache)


# =============================================================================
# Technical-document gate
# =============================================================================


async def classify_technical(
    container: ServiceContainer, file_name: str, text: str
) -> TechnicalClassification:
    """
    Ask a small model whether a document is technical.

    Fails open: an error calling the model, or a response without a verdict,
    yields is_technical=True with confidence 0.0.
    """
    try:
        raw = await container.completion.complete(
            CLASSIFIER_SYSTEM_PROMPT,
            build_classifier_prompt(file_name, text),
            temperature=0.1,
            max_output_tokens=200,
            json_mode=True,
            model=container.settings.CLASSIFIER_MODEL,
        )
    except Exception as e:
        logger.warning(f"Technical classifier failed, allowing upload: {e}")
        return TechnicalClassification(
            is_technical=True,
            confidence=0.0,
            reason="Classification service unavailable; document accepted",
        )

    parsed = parse_json_object(raw)
    data = parsed.value if isinstance(parsed, Parsed) else {}
    is_technical = data.get("isTechnical", data.get("is_technical"))

    if not isinstance(is_technical, bool):
        logger.warning(f"Technical classifier gave no verdict for {file_name}, allowing upload")
        return TechnicalClassification(
            is_technical=True, confidence=0.0, reason="Unable to classify document"
        )

    return TechnicalClassification(
        is_technical=is_technical,
        confidence=normalize_confidence(data.get("confidence")),
        reason=_text(data.get("reason")),
    )


def should_reject(classification: TechnicalClassification, threshold: float = 0.7) -> bool:
    """Reject only confident non-technical verdicts; low confidence fails open."""
    return not classification.is_technical and classification.confidence > threshold
