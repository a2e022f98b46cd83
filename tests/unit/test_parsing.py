"""Unit tests for fenced JSON extraction and response parsing."""

import json

import pytest

from snapchef.gemini.parsing import extract_fenced_json, parse_detection_items, parse_recipes
from snapchef.utils.errors import RecipeParseError

RECIPE_JSON = json.dumps(
    [
        {
            "type": "dinner",
            "title": "Vegetable Stir Fry",
            "totalTime": "25 minutes",
            "steps": [{"description": "Chop", "timeToComplete": "10 minutes", "ingredients": ["Carrot"]}],
        }
    ]
)


class TestExtractFencedJson:
    """Test extraction of the first ```json block."""

    def test_plain_text_is_trimmed(self):
        """Test that text without a fence is returned trimmed."""
        assert extract_fenced_json('  [{"label": "Egg"}]\n') == '[{"label": "Egg"}]'

    def test_fenced_block_extracted(self):
        """Test that only the fenced payload is returned."""
        text = 'Here you go:\n```json\n[{"label": "Egg"}]\n```\nEnjoy!'

        assert extract_fenced_json(text) == '[{"label": "Egg"}]'

    def test_first_fence_wins(self):
        """Test that a second fenced block is ignored."""
        text = '```json\n[1]\n```\n```json\n[2]\n```'

        assert extract_fenced_json(text) == "[1]"

    def test_unterminated_fence_takes_rest(self):
        """Test that a missing closing fence yields everything after the opener."""
        assert extract_fenced_json('```json\n{"a": 1}\n') == '{"a": 1}'

    def test_indented_fence_not_recognized(self):
        """Test that the opening fence must be the whole line."""
        text = '  ```json\n[1]\n```'

        assert extract_fenced_json(text) == text.strip()

    def test_bare_fence_not_treated_as_opener(self):
        """Test that a fence without the json tag does not start a payload."""
        text = "```\n[1]\n```"

        assert extract_fenced_json(text) == text

    def test_extraction_is_idempotent_on_extracted_payload(self):
        """Test that extracting from an already-extracted payload is a no-op."""
        once = extract_fenced_json(f"```json\n{RECIPE_JSON}\n```")

        assert extract_fenced_json(once) == once == RECIPE_JSON


class TestParseDetectionItems:
    """Test detection response parsing."""

    def test_parses_labels(self):
        """Test a fenced detection array."""
        items = parse_detection_items('```json\n[{"label": "Egg"}, {"label": "Milk", "box_2d": [0, 0, 5, 5]}]\n```')

        assert [item.label for item in items] == ["Egg", "Milk"]

    def test_non_array_rejected(self):
        """Test that an object payload is a ValueError."""
        with pytest.raises(ValueError, match="JSON array"):
            parse_detection_items('{"label": "Egg"}')

    def test_invalid_json_rejected(self):
        """Test that non-JSON text is a ValueError."""
        with pytest.raises(ValueError):
            parse_detection_items("I see eggs and milk.")


class TestParseRecipes:
    """Test parse-operation response parsing."""

    def test_fenced_array(self):
        """Test a fenced recipe array."""
        recipes = parse_recipes(f"```json\n{RECIPE_JSON}\n```")

        assert len(recipes) == 1
        assert recipes[0].title == "Vegetable Stir Fry"
        assert recipes[0].steps[0].ingredients == ["Carrot"]

    def test_single_object_wrapped(self):
        """Test that a single recipe object becomes a one-element list."""
        recipes = parse_recipes(json.dumps(json.loads(RECIPE_JSON)[0]))

        assert len(recipes) == 1

    def test_empty_array(self):
        """Test that an empty array yields no recipes."""
        assert parse_recipes("```json\n[]\n```") == []

    def test_invalid_json_raises_parse_error(self):
        """Test that non-JSON output is a RecipeParseError."""
        with pytest.raises(RecipeParseError, match="not valid JSON"):
            parse_recipes("Sorry, I cannot help with that.")

    def test_schema_mismatch_raises_parse_error(self):
        """Test that JSON not matching the schema is a RecipeParseError."""
        with pytest.raises(RecipeParseError, match="recipe schema"):
            parse_recipes('[{"title": "No type or steps"}]')
