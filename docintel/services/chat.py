"""Grounded question answering over a user's documents."""

from docintel.core.container import ServiceContainer
from docintel.core.errors import InputValidationError
from docintel.core.logging import get_logger
from docintel.core.prompts import CHAT_SYSTEM_PROMPT, build_chat_context, build_chat_prompt
from docintel.core.schemas_analysis import ChatAnswer, ChatSource
from docintel.core.schemas_documents import SearchResult
from docintel.services.common import validate_document_ids

logger = get_logger(__name__)

NO_RESULTS_ANSWER = (
    "I could not find relevant information in the selected documents. "
    "Try adjusting your selection or rephrasing your question."
)
MAX_QUESTION_CHARS = 2000


def aggregate_sources(chunks: list[SearchResult]) -> list[ChatSource]:
    """Count contributing chunks per document, in order of first appearance."""
    counts: dict[str, int] = {}
    titles: dict[str, str] = {}
    for chunk in chunks:
        counts[chunk.document_id] = counts.get(chunk.document_id, 0) + 1
        titles.setdefault(chunk.document_id, chunk.document_title)

    return [
        ChatSource(document_id=doc_id, document_title=titles[doc_id], chunks_used=count)
        for doc_id, count in counts.items()
    ]


async def answer_question(
    container: ServiceContainer,
    user_id: str,
    question: str,
    document_ids: list[str] | None = None,
    top_k: int | None = None,
    similarity_threshold: float | None = None,
) -> ChatAnswer:
    """
    Answer a question from the user's documents.

    Args:
        container: Service container
        user_id: Asking user
        question: Natural-language question
        document_ids: Optional subset of documents to search
        top_k: Chunks to retrieve (defaults to CHAT_TOP_K)
        similarity_threshold: Similarity floor (defaults to CHAT_SIMILARITY_THRESHOLD)

    Returns:
        ChatAnswer with per-document source counts

    Raises:
        InputValidationError: If the question is blank or too long
        UpstreamServiceError: If embedding, search or completion fails
    """
    settings = container.settings
    question = (question or "").strip()

    if not question:
        raise InputValidationError(
            "Question is required", field_errors={"question": ["must not be empty"]}
        )
    if len(question) > MAX_QUESTION_CHARS:
        raise InputValidationError(
            "Question is too long",
            field_errors={"question": [f"must be at most {MAX_QUESTION_CHARS} characters"]},
        )

    ids = validate_document_ids(document_ids) if document_ids else None

    chunks = await container.retriever.search(
        question,
        top_k=top_k if top_k is not None else settings.CHAT_TOP_K,
        min_similarity=(
            similarity_threshold
            if similarity_threshold is not None
            else settings.CHAT_SIMILARITY_THRESHOLD
        ),
        document_ids=ids,
        user_id=user_id,
    )

    if not chunks:
        logger.info("No relevant chunks for question, skipping completion")
        return ChatAnswer(answer=NO_RESULTS_ANSWER, sources=[], chunks_used=0)

    context = build_chat_context(chunks)
    answer = await container.completion.complete(
        CHAT_SYSTEM_PROMPT,
        build_chat_prompt(question, context),
        temperature=0.7,
        max_output_tokens=800,
        model=settings.CHAT_MODEL,
    )

    sources = aggregate_sources(chunks)
    logger.info(
        f"Answered question from {len(chunks)} chunks across {len(sources)} documents",
        extra={"user_id": user_id},
    )
    return ChatAnswer(answer=answer.strip(), sources=sources, chunks_used=len(chunks))
