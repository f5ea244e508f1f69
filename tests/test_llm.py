"""Tests for the completion client and tolerant JSON parsing."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from docintel.core.errors import UpstreamServiceError
from docintel.core.llm import (
    Empty,
    OpenAICompletion,
    Parsed,
    parse_json,
    parse_json_object,
    strip_llm_fences,
)


def _response(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _client(**create_kwargs) -> MagicMock:
    client = MagicMock()
    client.chat.completions.create = AsyncMock(**create_kwargs)
    return client


# =============================================================================
# Parsing
# =============================================================================


def test_strip_llm_fences():
    assert strip_llm_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_llm_fences('Here you go:\n```\n[1, 2]\n```\nThanks') == "[1, 2]"
    assert strip_llm_fences('  {"a": 1}  ') == '{"a": 1}'


def test_parse_json_handles_any_shape():
    assert parse_json("[1, 2]") == Parsed([1, 2])
    assert isinstance(parse_json(""), Empty)
    assert isinstance(parse_json(None), Empty)
    assert isinstance(parse_json("not json"), Empty)


def test_parse_json_object_recovers_from_prose():
    """Test an object wrapped in prose is still recovered."""
    result = parse_json_object('Sure! Here is the analysis: {"overview": "x"} Hope it helps.')
    assert result == Parsed({"overview": "x"})


def test_parse_json_object_rejects_non_objects():
    assert isinstance(parse_json_object("[1, 2]"), Empty)
    assert isinstance(parse_json_object('"text"'), Empty)
    assert isinstance(parse_json_object("{broken"), Empty)


# =============================================================================
# OpenAICompletion
# =============================================================================


@pytest.mark.asyncio
async def test_complete_passes_parameters():
    client = _client(return_value=_response("answer"))
    completion = OpenAICompletion(client, model="gpt-4o-mini")

    result = await completion.complete(
        "system", "user", temperature=0.7, max_output_tokens=800
    )

    assert result == "answer"
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-4o-mini"
    assert kwargs["temperature"] == 0.7
    assert kwargs["max_tokens"] == 800
    assert kwargs["messages"][0] == {"role": "system", "content": "system"}
    assert "response_format" not in kwargs


@pytest.mark.asyncio
async def test_complete_json_mode_and_model_override():
    client = _client(return_value=_response("{}"))
    completion = OpenAICompletion(client, model="gpt-4o-mini")

    await completion.complete("s", "u", json_mode=True, model="gpt-4o")

    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-4o"
    assert kwargs["response_format"] == {"type": "json_object"}


@pytest.mark.asyncio
async def test_complete_wraps_client_errors():
    client = _client(side_effect=RuntimeError("rate limited"))

    with pytest.raises(UpstreamServiceError) as exc_info:
        await OpenAICompletion(client, model="m").complete("s", "u")

    assert exc_info.value.service == "completion"
    assert "rate limited" in exc_info.value.detail


@pytest.mark.asyncio
async def test_complete_empty_content_is_an_error():
    client = _client(return_value=_response(None))

    with pytest.raises(UpstreamServiceError):
        await OpenAICompletion(client, model="m").complete("s", "u")
