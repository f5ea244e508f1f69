"""Tests for the semantic search use-case."""

import pytest

from docintel.core.errors import InputValidationError, NotFoundOrForbiddenError
from docintel.services.search import search_documents
from tests.conftest import OTHER_USER_ID, USER_ID


@pytest.mark.asyncio
async def test_search_uses_defaults(container, storage):
    storage.add_document(USER_ID, "notes.txt", chunks=["vector index tuning"])

    results = await search_documents(container, USER_ID, "vector index tuning")

    assert len(results) == 1
    assert storage.match_calls[0]["match_count"] == 5
    assert storage.match_calls[0]["match_threshold"] == 0.5


@pytest.mark.asyncio
async def test_search_foreign_document_is_not_found(container, storage):
    """Test restricting to another user's document looks like a missing one."""
    theirs = storage.add_document(OTHER_USER_ID, "theirs.txt", chunks=["secret"])

    with pytest.raises(NotFoundOrForbiddenError):
        await search_documents(container, USER_ID, "secret", document_ids=[theirs.id])
    assert storage.match_calls == []


@pytest.mark.asyncio
async def test_search_query_validation(container):
    with pytest.raises(InputValidationError):
        await search_documents(container, USER_ID, "")
    with pytest.raises(InputValidationError):
        await search_documents(container, USER_ID, "q" * 1001)
