"""Extract JSON payloads from Gemini response text.

Gemini is told not to fence its JSON but often does anyway. Both the
detection and parse responses go through extract_fenced_json before
json.loads.
"""

import json
from typing import Any

from pydantic import TypeAdapter, ValidationError

from snapchef.models.models import DetectionItem, ParsedRecipe
from snapchef.utils.errors import RecipeParseError

OPENING_FENCE = "```json"
CLOSING_FENCE = "```"

_recipes_adapter = TypeAdapter(list[ParsedRecipe])


def extract_fenced_json(text: str) -> str:
    """Return the contents of the first ```json fenced block in ``text``.

    Lines are scanned in order. The first line that is exactly the opening
    fence starts the payload; everything after it up to the next closing
    fence is returned, trimmed. Without an opening fence the whole text is
    the candidate, trimmed.

    Args:
        text: Raw model response.

    Returns:
        The JSON candidate string (not yet parsed).
    """
    lines = text.split("\n")
    candidate = text

    for idx, line in enumerate(lines):
        if line == OPENING_FENCE:
            remaining = "\n".join(lines[idx + 1:])
            candidate = remaining.split(CLOSING_FENCE)[0]
            break

    return candidate.strip()


def parse_detection_items(response_text: str) -> list[DetectionItem]:
    """Parse a detection response into items.

    Raises:
        ValueError: If the payload is not a JSON array of objects with labels
            (json.JSONDecodeError and pydantic.ValidationError are both ValueErrors).
    """
    payload: Any = json.loads(extract_fenced_json(response_text))
    if not isinstance(payload, list):
        raise ValueError(f"Expected a JSON array of items, got {type(payload).__name__}")
    return [DetectionItem.model_validate(entry) for entry in payload]


def parse_recipes(response_text: str) -> list[ParsedRecipe]:
    """Parse a parse-operation response into recipes.

    A single recipe object is accepted and wrapped in a list.

    Raises:
        RecipeParseError: If the payload is not valid JSON or does not match the schema.
    """
    candidate = extract_fenced_json(response_text)
    try:
        payload: Any = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise RecipeParseError(f"Parse response is not valid JSON: {e}") from e

    if isinstance(payload, dict):
        payload = [payload]

    try:
        return _recipes_adapter.validate_python(payload)
    except ValidationError as e:
        raise RecipeParseError(f"Parse response does not match the recipe schema: {e}") from e
