"""Tests for grounded question answering."""

import pytest

from docintel.core.errors import InputValidationError, UpstreamServiceError
from docintel.services.chat import NO_RESULTS_ANSWER, aggregate_sources, answer_question
from tests.conftest import USER_ID


@pytest.mark.asyncio
async def test_no_relevant_chunks_skips_completion(container, completion):
    """Test an empty retrieval returns the fixed answer without calling the model."""
    result = await answer_question(container, USER_ID, "What is the retention policy?")

    assert result.answer == NO_RESULTS_ANSWER
    assert result.sources == []
    assert result.chunks_used == 0
    assert completion.calls == []


@pytest.mark.asyncio
async def test_answer_with_sources(container, storage, completion):
    """Test the answer carries per-document chunk counts."""
    ops = storage.add_document(
        USER_ID,
        "ops.txt",
        title="Operations",
        chunks=["The database migration runs nightly", "The database migration is reversible"],
    )
    infra = storage.add_document(
        USER_ID, "infra.txt", chunks=["Every database migration is reviewed"]
    )
    completion.queue("  Migrations run nightly and are reviewed.  ")

    result = await answer_question(
        container, USER_ID, "How does the database migration work?", top_k=10
    )

    assert result.answer == "Migrations run nightly and are reviewed."
    assert result.chunks_used == 3
    counts = {s.document_id: s.chunks_used for s in result.sources}
    assert counts == {ops.id: 2, infra.id: 1}
    titles = {s.document_id: s.document_title for s in result.sources}
    assert titles[ops.id] == "Operations"
    assert titles[infra.id] == "infra.txt"

    call = completion.calls[0]
    assert call["temperature"] == 0.7
    assert call["max_output_tokens"] == 800
    assert "[1] Similarity:" in call["user_prompt"]
    assert "How does the database migration work?" in call["user_prompt"]


@pytest.mark.asyncio
async def test_question_validation(container):
    with pytest.raises(InputValidationError):
        await answer_question(container, USER_ID, "   ")
    with pytest.raises(InputValidationError) as exc_info:
        await answer_question(container, USER_ID, "x" * 2001)
    assert "question" in exc_info.value.field_errors


@pytest.mark.asyncio
async def test_malformed_document_id_rejected(container, storage):
    with pytest.raises(InputValidationError):
        await answer_question(container, USER_ID, "question", document_ids=["not-a-uuid"])
    assert storage.match_calls == []


@pytest.mark.asyncio
async def test_completion_failure_propagates(container, storage, completion):
    storage.add_document(USER_ID, "ops.txt", chunks=["database migration notes"])
    completion.queue(UpstreamServiceError("completion", "timeout"))

    with pytest.raises(UpstreamServiceError):
        await answer_question(container, USER_ID, "database migration notes")


def test_aggregate_sources_keeps_first_appearance_order():
    from docintel.core.schemas_documents import SearchResult

    def chunk(doc_id, index):
        return SearchResult(
            chunk_id=f"{doc_id}-{index}",
            document_id=doc_id,
            document_title=doc_id.upper(),
            content="x",
            chunk_index=index,
            similarity=0.9,
        )

    sources = aggregate_sources([chunk("b", 0), chunk("a", 0), chunk("b", 1)])

    assert [(s.document_id, s.chunks_used) for s in sources] == [("b", 2), ("a", 1)]


@pytest.mark.asyncio
async def test_unrelated_query_with_high_floor_finds_nothing(container, storage, completion):
    """Test a nonsense query against a real corpus never reaches the model."""
    storage.add_document(USER_ID, "ops.txt", chunks=["The database migration runs nightly"])

    results = await container.retriever.search(
        "xyzzyqqqq", min_similarity=0.9, user_id=USER_ID
    )
    answer = await answer_question(
        container, USER_ID, "xyzzyqqqq", similarity_threshold=0.9
    )

    assert results == []
    assert answer.answer == NO_RESULTS_ANSWER
    assert completion.calls == []
