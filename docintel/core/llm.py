"""Completion client and tolerant parsing of model output."""

import json
import re
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from openai import AsyncOpenAI

from docintel.core.errors import UpstreamServiceError
from docintel.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Parsed(Generic[T]):
    """Model output that parsed and validated."""

    value: T


@dataclass(frozen=True)
class Empty:
    """Model output that could not be used; ``reason`` says why."""

    reason: str


class OpenAICompletion:
    """Chat completion capability backed by the OpenAI API."""

    def __init__(self, client: AsyncOpenAI, model: str):
        self.client = client
        self.model = model

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_output_tokens: int = 1000,
        json_mode: bool = False,
        model: str | None = None,
    ) -> str:
        """
        Run a single chat completion.

        Args:
            system_prompt: System instructions
            user_prompt: User message
            temperature: Sampling temperature
            max_output_tokens: Upper bound on generated tokens
            json_mode: Ask the API for a JSON object response
            model: Model override (defaults to the client's model)

        Returns:
            The response text (untrusted, parse defensively)

        Raises:
            UpstreamServiceError: If the call fails or returns no content
        """
        model_to_use = model or self.model
        kwargs: dict[str, Any] = {
            "model": model_to_use,
            "temperature": temperature,
            "max_tokens": max_output_tokens,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        logger.debug(f"Calling {model_to_use} (json_mode={json_mode})")

        try:
            response = await self.client.chat.completions.create(**kwargs)
        except Exception as e:
            logger.error(f"Completion request to {model_to_use} failed: {e}")
            raise UpstreamServiceError("completion", str(e)) from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            logger.error(f"Completion from {model_to_use} returned no content")
            raise UpstreamServiceError("completion", "No response content")

        return content


def strip_llm_fences(raw_output: str) -> str:
    """Strip markdown code fences from LLM output.

    Handles: ```json ... ```, ``` ... ```, leading/trailing whitespace.
    """
    cleaned = raw_output.strip()

    fence_match = re.search(r"```(?:json)?\s*\n?(.*?)```", cleaned, re.DOTALL)
    if fence_match:
        return fence_match.group(1).strip()

    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def parse_json(raw_output: str | None) -> Parsed[Any] | Empty:
    """Parse LLM output as JSON of any shape, never raising."""
    if not raw_output or not raw_output.strip():
        return Empty("empty response")

    cleaned = strip_llm_fences(raw_output)
    try:
        return Parsed(json.loads(cleaned))
    except json.JSONDecodeError as e:
        logger.warning(f"Model output is not valid JSON: {e}")
        return Empty(f"invalid JSON: {e}")


def parse_json_object(raw_output: str | None) -> Parsed[dict[str, Any]] | Empty:
    """
    Parse LLM output that should be a JSON object.

    Falls back to the outermost ``{...}`` span when the model wrapped the
    object in prose.
    """
    result = parse_json(raw_output)

    if isinstance(result, Empty) and raw_output:
        start, end = raw_output.find("{"), raw_output.rfind("}")
        if 0 <= start < end:
            try:
                result = Parsed(json.loads(raw_output[start : end + 1]))
            except json.JSONDecodeError:
                pass

    if isinstance(result, Empty):
        return result
    if not isinstance(result.value, dict):
        return Empty(f"expected a JSON object, got {type(result.value).__name__}")
    return result
