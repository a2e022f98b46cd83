"""Data models for the fridge-photo-to-recipe workflow.

Pydantic v2 models for everything that crosses a boundary: Gemini responses
(detection items, grounded search results, parsed recipes) and Supabase rows
(snaps and recipes). Wire formats use camelCase, so fields carry aliases and
accept either spelling on input.
"""

from datetime import datetime
from typing import Any, List, Literal, Optional, Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

from snapchef.utils.errors import WriteError


class DetectionItem(BaseModel):
    """A food item detected in the fridge photo.

    Only ``label`` is required; anything else the model returns (boxes,
    quantities, notes) is kept as extra fields.
    """

    model_config = ConfigDict(extra="allow", str_strip_whitespace=True)

    label: Annotated[str, Field(min_length=1, description="Recipe-style item name, e.g. 'Greek yogurt'")]


class GroundingSource(BaseModel):
    """A web page cited by the grounded search response."""

    title: str = ""
    uri: str = ""

    def to_chunk(self) -> dict[str, dict[str, str]]:
        """Grounding-chunk wire shape stored in the snap row: {"web": {"title", "uri"}}."""
        return {"web": {"title": self.title, "uri": self.uri}}

    @classmethod
    def from_chunk(cls, chunk: dict[str, Any]) -> "GroundingSource":
        web = chunk.get("web") or {}
        return cls(title=web.get("title") or "", uri=web.get("uri") or "")


class SearchResult(BaseModel):
    """Output of the grounded recipe search."""

    model_config = ConfigDict(populate_by_name=True)

    search_queries: Annotated[List[str], Field(default_factory=list, alias="searchQueries")]
    where_it_searched: Annotated[List[GroundingSource], Field(default_factory=list, alias="whereItSearched")]
    response: str = ""

    @classmethod
    def empty(cls) -> "SearchResult":
        return cls()


class RecipeStep(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    description: str
    time_to_complete: Annotated[str, Field(alias="timeToComplete")]
    ingredients: Annotated[List[str], Field(default_factory=list)]


class ParsedRecipe(BaseModel):
    """Structured recipe produced by the parse operation."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    type: Literal["breakfast", "lunch", "dinner"]
    title: Annotated[str, Field(min_length=1)]
    total_time: Annotated[str, Field(alias="totalTime")]
    steps: List[RecipeStep]

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, value: Any) -> Any:
        """Models sometimes capitalize the meal type ("Dinner")."""
        if isinstance(value, str):
            return value.strip().lower()
        return value


class ImageInput(BaseModel):
    """A loaded, validated image ready for detection and upload."""

    data: bytes
    mime_type: str = "image/jpeg"
    uri: Optional[str] = None

    @property
    def extension(self) -> str:
        """File extension for storage keys, derived from the MIME type."""
        subtype = self.mime_type.split("/")[-1]
        return "jpg" if subtype == "jpeg" else subtype


class PersistedRecipe(BaseModel):
    """Row of the ``recipe`` table."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[int] = None
    parent_snap: int
    title: str
    steps: Annotated[List[RecipeStep], Field(default_factory=list)]
    totaltime: Optional[str] = None
    type: Literal["breakfast", "lunch", "dinner"]

    @classmethod
    def from_parsed(cls, snap_id: int, recipe: ParsedRecipe) -> "PersistedRecipe":
        return cls(
            parent_snap=snap_id,
            title=recipe.title,
            steps=recipe.steps,
            totaltime=recipe.total_time,
            type=recipe.type,
        )

    def to_row(self) -> dict[str, Any]:
        """Insert payload; the database assigns ``id``."""
        return {
            "parent_snap": self.parent_snap,
            "title": self.title,
            "steps": [step.model_dump(by_alias=True) for step in self.steps],
            "totaltime": self.totaltime,
            "type": self.type,
        }

    def to_parsed(self) -> ParsedRecipe:
        return ParsedRecipe(type=self.type, title=self.title, total_time=self.totaltime or "", steps=self.steps)


class PersistedSnap(BaseModel):
    """Row of the ``snap`` table, with its recipe rows joined in."""

    model_config = ConfigDict(extra="ignore")

    id: int
    created_at: Optional[datetime] = None
    image_url: str
    selected_ingredients: Annotated[List[str], Field(default_factory=list)]
    raw_recipe_content: str = ""
    search_queries: Annotated[List[str], Field(default_factory=list)]
    grounding_chunks: Annotated[List[dict[str, Any]], Field(default_factory=list)]
    recipes: Annotated[List[PersistedRecipe], Field(default_factory=list)]

    @field_validator("selected_ingredients", "search_queries", "grounding_chunks", mode="before")
    @classmethod
    def null_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def sources(self) -> List[GroundingSource]:
        return [GroundingSource.from_chunk(chunk) for chunk in self.grounding_chunks]

    def to_search_result(self) -> SearchResult:
        return SearchResult(
            search_queries=self.search_queries,
            where_it_searched=self.sources,
            response=self.raw_recipe_content,
        )


class WriteOutcome(BaseModel):
    """Result of one recipe insert within a batch."""

    index: int
    title: str
    row_id: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class RecipeBatchResult(BaseModel):
    """Per-recipe outcomes of the parallel recipe inserts for one snap."""

    snap_id: int
    outcomes: Annotated[List[WriteOutcome], Field(default_factory=list)]

    @property
    def ok(self) -> bool:
        return all(outcome.ok for outcome in self.outcomes)

    @property
    def succeeded(self) -> List[WriteOutcome]:
        return [outcome for outcome in self.outcomes if outcome.ok]

    @property
    def failed(self) -> List[WriteOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]

    def raise_for_failures(self) -> None:
        """Raise a single WriteError covering every failed insert, if any."""
        if self.failed:
            details = "; ".join(f"#{o.index} '{o.title}': {o.error}" for o in self.failed)
            raise WriteError(
                f"{len(self.failed)} of {len(self.outcomes)} recipe inserts failed for snap {self.snap_id}: {details}"
            )
