"""
Generation Attempts
===================

Turns one call to a text-generation service into an explicit outcome:

- ``Generated``: the response parsed and validated against the schema
- ``Unavailable``: no service, the call raised, or it returned nothing
- ``Malformed``: text came back but no valid JSON object could be read

Parsing is strict first (the whole response, markdown fences stripped);
extracting the first balanced ``{...}`` block is the last resort.

Version: 0.1.0
"""

import json
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from shared.llm import TextGenerationService
from shared.logging import get_logger


logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def normalize_token(value: Any) -> Any:
    """Lower-case enum-like strings: "High" -> "high", "3 months" -> "3_months"."""
    if isinstance(value, str):
        return value.strip().lower().replace("-", "_").replace(" ", "_")
    return value


Token = BeforeValidator(normalize_token)


class Payload(BaseModel):
    """Base for generated payload schemas; accepts snake_case or camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


@dataclass(frozen=True)
class Generated(Generic[ModelT]):
    """Validated payload."""

    value: ModelT


@dataclass(frozen=True)
class Unavailable:
    """No usable response."""

    reason: str


@dataclass(frozen=True)
class Malformed:
    """A response that could not be parsed or validated."""

    reason: str
    raw: str = ""


GenerationOutcome = Generated[ModelT] | Unavailable | Malformed


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code fence (```json ... ```)."""
    text = text.strip()
    if not text.startswith("```"):
        return text

    lines = text.split("\n")
    body = lines[1:]
    if body and body[-1].strip() == "```":
        body = body[:-1]
    return "\n".join(body).strip()


def extract_json_block(text: str) -> str | None:
    """
    Return the first balanced ``{...}`` block in ``text``.

    Braces inside JSON string literals are ignored. Returns None when no
    block closes (no ``{`` at all, or truncated output).
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False

        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue

            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start : index + 1]

        # Unbalanced from this opening brace; try the next one
        start = text.find("{", start + 1)

    return None


def parse_json_object(text: str) -> dict[str, Any]:
    """
    Parse a JSON object out of generated text.

    Raises:
        ValueError: No JSON object could be read
    """
    cleaned = strip_code_fences(text)

    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError:
        block = extract_json_block(cleaned)
        if block is None:
            raise ValueError("no JSON object found in response") from None
        payload = json.loads(block)

    if not isinstance(payload, dict):
        raise ValueError(f"expected a JSON object, got {type(payload).__name__}")
    return payload


async def attempt_generation(
    generator: TextGenerationService | None,
    prompt: str,
    schema: type[ModelT],
    *,
    task: str,
) -> GenerationOutcome[ModelT]:
    """
    Call the generator once and classify the outcome.

    Never raises: provider errors become ``Unavailable``, unreadable or
    invalid payloads become ``Malformed``.

    Args:
        generator: Text generation service, or None when not configured
        prompt: Prompt to send
        schema: Pydantic model the payload must validate against
        task: Short name used in log events (e.g. "analysis")

    Returns:
        Generated, Unavailable or Malformed
    """
    if generator is None:
        return Unavailable("no generation service configured")

    try:
        text = await generator.generate(prompt)
    except Exception as e:
        logger.warning(
            "generation_failed",
            task=task,
            error=str(e),
            error_type=type(e).__name__,
        )
        return Unavailable(f"{type(e).__name__}: {e}")

    if not text or not text.strip():
        logger.warning("generation_empty", task=task)
        return Unavailable("empty response")

    try:
        payload = parse_json_object(text)
    except ValueError as e:
        logger.warning("generation_unparseable", task=task, error=str(e))
        return Malformed(str(e), raw=text)

    try:
        value = schema.model_validate(payload)
    except ValidationError as e:
        logger.warning(
            "generation_invalid",
            task=task,
            errors=e.error_count(),
        )
        return Malformed(f"payload failed validation: {e.error_count()} error(s)", raw=text)

    return Generated(value)
