"""Unit tests for Pydantic models validation."""

from datetime import datetime

import pytest
from pydantic import ValidationError

from snapchef.models.models import (
    DetectionItem,
    GroundingSource,
    ImageInput,
    ParsedRecipe,
    PersistedRecipe,
    PersistedSnap,
    RecipeBatchResult,
    SearchResult,
    WriteOutcome,
)
from snapchef.utils.errors import PersistenceError, WriteError

OMELETTE = {
    "type": "Breakfast",
    "title": "Cheese Omelette",
    "totalTime": "15 minutes",
    "steps": [
        {"description": "Whisk the eggs", "timeToComplete": "2 minutes", "ingredients": ["Egg", "Milk"]},
        {"description": "Cook with cheese", "timeToComplete": "8 minutes", "ingredients": ["Cheddar"]},
    ],
}


class TestDetectionItem:
    """Test DetectionItem validation."""

    def test_label_is_stripped(self):
        """Test that surrounding whitespace is removed from labels."""
        assert DetectionItem(label="  Greek yogurt ").label == "Greek yogurt"

    def test_empty_label_rejected(self):
        """Test that an empty label is invalid."""
        with pytest.raises(ValidationError):
            DetectionItem(label="")

    def test_extra_fields_kept(self):
        """Test that extra fields from the model are preserved."""
        item = DetectionItem.model_validate({"label": "Egg", "box_2d": [1, 2, 3, 4]})

        assert item.model_extra == {"box_2d": [1, 2, 3, 4]}


class TestSearchResult:
    """Test SearchResult aliases and defaults."""

    def test_empty_result(self):
        """Test that empty() has no queries, no sources and no text."""
        result = SearchResult.empty()

        assert result.search_queries == []
        assert result.where_it_searched == []
        assert result.response == ""

    def test_accepts_camel_case(self):
        """Test that wire-format camelCase keys populate the fields."""
        result = SearchResult.model_validate(
            {
                "searchQueries": ["egg milk recipe"],
                "whereItSearched": [{"title": "Allrecipes", "uri": "https://allrecipes.com"}],
                "response": "Pancakes",
            }
        )

        assert result.search_queries == ["egg milk recipe"]
        assert result.where_it_searched[0].title == "Allrecipes"

    def test_dumps_camel_case_by_alias(self):
        """Test that dumping by alias produces wire-format keys."""
        dumped = SearchResult(search_queries=["q"]).model_dump(by_alias=True)

        assert set(dumped) == {"searchQueries", "whereItSearched", "response"}


class TestGroundingSource:
    """Test conversion to and from stored grounding chunks."""

    def test_to_chunk(self):
        """Test the stored chunk shape."""
        source = GroundingSource(title="BBC Good Food", uri="https://bbcgoodfood.com/x")

        assert source.to_chunk() == {"web": {"title": "BBC Good Food", "uri": "https://bbcgoodfood.com/x"}}

    def test_from_chunk_tolerates_missing_web(self):
        """Test that a chunk without web data becomes an empty source."""
        assert GroundingSource.from_chunk({}) == GroundingSource(title="", uri="")


class TestParsedRecipe:
    """Test ParsedRecipe schema validation."""

    def test_valid_recipe_from_camel_case(self):
        """Test parsing the wire format, including meal-type normalization."""
        recipe = ParsedRecipe.model_validate(OMELETTE)

        assert recipe.type == "breakfast"
        assert recipe.total_time == "15 minutes"
        assert recipe.steps[0].time_to_complete == "2 minutes"
        assert recipe.steps[0].ingredients == ["Egg", "Milk"]

    def test_invalid_meal_type(self):
        """Test that meal types other than breakfast/lunch/dinner are rejected."""
        with pytest.raises(ValidationError):
            ParsedRecipe.model_validate({**OMELETTE, "type": "brunch"})

    def test_missing_steps(self):
        """Test that steps are required."""
        payload = {key: value for key, value in OMELETTE.items() if key != "steps"}
        with pytest.raises(ValidationError):
            ParsedRecipe.model_validate(payload)

    def test_step_ingredients_default_empty(self):
        """Test that a step may omit its ingredients."""
        recipe = ParsedRecipe.model_validate(
            {**OMELETTE, "steps": [{"description": "Serve", "timeToComplete": "1 minute"}]}
        )

        assert recipe.steps[0].ingredients == []


class TestImageInput:
    """Test ImageInput helpers."""

    @pytest.mark.parametrize(
        "mime_type,extension",
        [("image/jpeg", "jpg"), ("image/png", "png"), ("image/webp", "webp")],
    )
    def test_extension_from_mime_type(self, mime_type, extension):
        """Test storage-key extensions for each supported format."""
        assert ImageInput(data=b"x", mime_type=mime_type).extension == extension


class TestPersistedRows:
    """Test snap and recipe row models."""

    def test_recipe_row_from_parsed(self):
        """Test that a parsed recipe becomes a recipe row with wire-format steps."""
        recipe = ParsedRecipe.model_validate(OMELETTE)

        row = PersistedRecipe.from_parsed(12, recipe).to_row()

        assert row["parent_snap"] == 12
        assert row["title"] == "Cheese Omelette"
        assert row["totaltime"] == "15 minutes"
        assert row["type"] == "breakfast"
        assert row["steps"][0] == {
            "description": "Whisk the eggs",
            "timeToComplete": "2 minutes",
            "ingredients": ["Egg", "Milk"],
        }
        assert "id" not in row

    def test_recipe_row_back_to_parsed(self):
        """Test that a stored recipe row converts back to a ParsedRecipe."""
        stored = PersistedRecipe.model_validate(
            {**PersistedRecipe.from_parsed(3, ParsedRecipe.model_validate(OMELETTE)).to_row(), "id": 9}
        )

        assert stored.to_parsed() == ParsedRecipe.model_validate(OMELETTE)

    def test_snap_row_nulls_become_empty_lists(self):
        """Test that NULL array columns load as empty lists."""
        snap = PersistedSnap.model_validate(
            {
                "id": 1,
                "created_at": "2026-01-01T10:00:00+00:00",
                "image_url": "public/1.jpg",
                "selected_ingredients": None,
                "search_queries": None,
                "grounding_chunks": None,
            }
        )

        assert snap.selected_ingredients == []
        assert snap.search_queries == []
        assert snap.grounding_chunks == []
        assert isinstance(snap.created_at, datetime)

    def test_snap_to_search_result(self):
        """Test that a stored snap rebuilds its search result."""
        snap = PersistedSnap(
            id=1,
            image_url="public/1.jpg",
            raw_recipe_content="Pancakes",
            search_queries=["pancake recipe"],
            grounding_chunks=[{"web": {"title": "Allrecipes", "uri": "https://allrecipes.com"}}],
        )

        result = snap.to_search_result()

        assert result.response == "Pancakes"
        assert result.search_queries == ["pancake recipe"]
        assert result.where_it_searched == [GroundingSource(title="Allrecipes", uri="https://allrecipes.com")]


class TestRecipeBatchResult:
    """Test aggregated recipe insert outcomes."""

    def test_all_ok(self):
        """Test that a fully successful batch does not raise."""
        batch = RecipeBatchResult(
            snap_id=1,
            outcomes=[WriteOutcome(index=0, title="A", row_id=10), WriteOutcome(index=1, title="B", row_id=11)],
        )

        assert batch.ok is True
        batch.raise_for_failures()

    def test_failures_raise_single_write_error(self):
        """Test that several failures surface as one WriteError naming each."""
        batch = RecipeBatchResult(
            snap_id=5,
            outcomes=[
                WriteOutcome(index=0, title="A", row_id=10),
                WriteOutcome(index=1, title="B", error="HTTP 409"),
                WriteOutcome(index=2, title="C", error="timeout"),
            ],
        )

        assert batch.ok is False
        assert [outcome.title for outcome in batch.succeeded] == ["A"]
        assert [outcome.title for outcome in batch.failed] == ["B", "C"]
        with pytest.raises(WriteError, match="2 of 3 recipe inserts failed for snap 5") as exc:
            batch.raise_for_failures()
        assert isinstance(exc.value, PersistenceError)
        assert "'B'" in str(exc.value) and "'C'" in str(exc.value)
