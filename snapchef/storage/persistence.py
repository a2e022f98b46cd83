"""Persistence bridge between a finished workflow and Supabase.

Writes: source image to the snap bucket, one ``snap`` row, then one ``recipe``
row per parsed recipe (inserted concurrently). Reads: the most recent snaps
with their recipes joined in, for the history view.

Nothing is retried or rolled back. An uploaded image whose snap insert fails
stays in the bucket.
"""

import asyncio
import time
from typing import Any, Optional, Sequence, TypeVar

from pydantic import BaseModel, ValidationError

from snapchef.models.models import (
    GroundingSource,
    ImageInput,
    ParsedRecipe,
    PersistedRecipe,
    PersistedSnap,
    RecipeBatchResult,
    WriteOutcome,
)
from snapchef.storage.supabase import SupabaseClient
from snapchef.utils.config import Config, config as default_config
from snapchef.utils.errors import ReadError, WriteError
from snapchef.utils.logger import logger

SNAP_TABLE = "snap"
RECIPE_TABLE = "recipe"

RowModel = TypeVar("RowModel", bound=BaseModel)


def validate_row(model: type[RowModel], table: str, row: dict[str, Any]) -> RowModel:
    """Validate a selected row, reporting malformed rows as ReadError."""
    try:
        return model.model_validate(row)
    except ValidationError as e:
        logger.error(f"Malformed {table} row {row.get('id')}: {e}")
        raise ReadError(f"Malformed {table} row {row.get('id')}: {e.error_count()} invalid field(s)") from e


def snap_image_key(image: ImageInput, timestamp_ms: Optional[int] = None) -> str:
    """Storage key for a snap image: ``public/<epoch-ms>.<ext>``."""
    timestamp_ms = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    return f"public/{timestamp_ms}.{image.extension}"


class PersistenceBridge:
    def __init__(self, client: SupabaseClient, settings: Optional[Config] = None) -> None:
        self.client = client
        self.settings = settings or default_config

    async def save_snap(
        self,
        image: ImageInput,
        selected_labels: Sequence[str],
        raw_text: str,
        search_queries: Sequence[str],
        grounding_sources: Sequence[GroundingSource],
    ) -> int:
        """Upload the image and insert the snap row.

        Returns:
            The new snap id.

        Raises:
            StorageError: If the upload fails (no row is written).
            WriteError: If the row insert fails or returns no id.
        """
        uploaded = await self.client.upload(
            self.settings.SNAP_IMAGE_BUCKET,
            snap_image_key(image),
            image.data,
            image.mime_type,
        )

        rows = await self.client.insert(
            SNAP_TABLE,
            {
                "image_url": uploaded.path,
                "selected_ingredients": list(selected_labels),
                "raw_recipe_content": raw_text,
                "search_queries": list(search_queries),
                "grounding_chunks": [source.to_chunk() for source in grounding_sources],
            },
            returning="id",
        )
        if not rows or rows[0].get("id") is None:
            raise WriteError("Snap insert returned no id")

        snap_id = rows[0]["id"]
        logger.info("Snap saved", extra={"snap_id": snap_id})
        return snap_id

    async def _insert_recipe(self, snap_id: int, recipe: ParsedRecipe) -> Optional[int]:
        row = PersistedRecipe.from_parsed(snap_id, recipe).to_row()
        rows = await self.client.insert(RECIPE_TABLE, row, returning="id")
        return rows[0].get("id") if rows else None

    async def save_recipes(self, snap_id: int, recipes: Sequence[ParsedRecipe]) -> RecipeBatchResult:
        """Insert one recipe row per recipe, concurrently.

        Every insert runs to completion regardless of the others; the result
        lists each outcome. Call ``raise_for_failures()`` on it to turn any
        failures into a single WriteError.
        """
        settled = await asyncio.gather(
            *(self._insert_recipe(snap_id, recipe) for recipe in recipes),
            return_exceptions=True,
        )

        outcomes = []
        for index, (recipe, result) in enumerate(zip(recipes, settled)):
            if isinstance(result, Exception):
                logger.warning(f"Recipe insert #{index} failed: {result}", extra={"snap_id": snap_id})
                outcomes.append(WriteOutcome(index=index, title=recipe.title, error=str(result) or repr(result)))
            else:
                outcomes.append(WriteOutcome(index=index, title=recipe.title, row_id=result))

        batch = RecipeBatchResult(snap_id=snap_id, outcomes=outcomes)
        logger.info(f"Saved {len(batch.succeeded)}/{len(batch.outcomes)} recipes", extra={"snap_id": snap_id})
        return batch

    async def _recipes_for(self, snap_id: int) -> list[PersistedRecipe]:
        rows = await self.client.select(RECIPE_TABLE, filters={"parent_snap": snap_id}, order="id.asc")
        return [validate_row(PersistedRecipe, RECIPE_TABLE, row) for row in rows]

    async def list_recent_snaps(self, limit: Optional[int] = None) -> list[PersistedSnap]:
        """Most recent snaps, newest first, each with its recipes.

        Raises:
            ReadError: If any select fails or a row is malformed.
        """
        limit = limit if limit is not None else self.settings.RECENT_SNAPS_LIMIT
        rows = await self.client.select(SNAP_TABLE, order="created_at.desc", limit=limit)
        snaps = [validate_row(PersistedSnap, SNAP_TABLE, row) for row in rows]

        recipe_lists = await asyncio.gather(*(self._recipes_for(snap.id) for snap in snaps))
        for snap, recipes in zip(snaps, recipe_lists):
            snap.recipes = recipes
        return snaps

    async def get_snap(self, snap_id: int) -> Optional[PersistedSnap]:
        """One snap by id with its recipes, or None if it does not exist."""
        rows = await self.client.select(SNAP_TABLE, filters={"id": snap_id}, limit=1)
        if not rows:
            return None
        snap = validate_row(PersistedSnap, SNAP_TABLE, rows[0])
        snap.recipes = await self._recipes_for(snap.id)
        return snap

    def image_url(self, snap: PersistedSnap) -> str:
        """Public URL of a snap's stored image."""
        return self.client.public_url(self.settings.SNAP_IMAGE_BUCKET, snap.image_url)
