"""Recipe-creation workflow: photo → detection → selection → recipe → display.

The workflow is a forward-only state machine. Every stage change goes through
``_advance``, which checks the TRANSITIONS table; there are no "stage N or
later" comparisons. The only backward move is ``replace_image()``/``reset()``,
which clears everything and returns to AWAITING_IMAGE.

Listeners registered with ``subscribe`` are called after every stage change,
and once more when saving finishes so the outcome (snap id or error) is shown.
The raw recipe text is published (DISPLAYING_RAW_RECIPE) before parsing
starts, so a UI can show it while the parse call is in flight.

Each reset bumps an internal epoch. A call still in flight when the workflow
is reset finishes normally, but its result is dropped.
"""

import inspect
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

from snapchef.gemini.adapter import GeminiAdapter
from snapchef.gemini.images import load_image
from snapchef.models.models import (
    DetectionItem,
    ImageInput,
    ParsedRecipe,
    PersistedSnap,
    RecipeBatchResult,
    SearchResult,
)
from snapchef.storage.persistence import PersistenceBridge
from snapchef.utils.errors import (
    InvalidTransitionError,
    PersistenceError,
    StorageError,
    UserInputError,
)
from snapchef.utils.logger import logger


class Stage(str, Enum):
    AWAITING_IMAGE = "awaiting_image"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    DETECTING_ITEMS = "detecting_items"
    AWAITING_SELECTION = "awaiting_selection"
    GENERATING_RECIPE = "generating_recipe"
    DISPLAYING_RAW_RECIPE = "displaying_raw_recipe"
    DISPLAYING_PARSED_RECIPE = "displaying_parsed_recipe"


# Allowed forward moves; resets are handled separately
TRANSITIONS: dict[Stage, frozenset[Stage]] = {
    Stage.AWAITING_IMAGE: frozenset({Stage.AWAITING_CONFIRMATION}),
    Stage.AWAITING_CONFIRMATION: frozenset({Stage.DETECTING_ITEMS}),
    Stage.DETECTING_ITEMS: frozenset({Stage.AWAITING_SELECTION}),
    Stage.AWAITING_SELECTION: frozenset({Stage.GENERATING_RECIPE}),
    Stage.GENERATING_RECIPE: frozenset({Stage.DISPLAYING_RAW_RECIPE}),
    Stage.DISPLAYING_RAW_RECIPE: frozenset({Stage.DISPLAYING_PARSED_RECIPE}),
    Stage.DISPLAYING_PARSED_RECIPE: frozenset(),
}


@dataclass
class WorkflowState:
    stage: Stage = Stage.AWAITING_IMAGE
    image: Optional[ImageInput] = None
    # Where the image lives: local path/URL for a live run, public URL for a resumed snap
    image_uri: Optional[str] = None
    items: Optional[list[DetectionItem]] = None
    selection: Optional[list[DetectionItem]] = None
    search_result: Optional[SearchResult] = None
    recipes: Optional[list[ParsedRecipe]] = None
    error: Optional[str] = None
    snap_id: Optional[int] = None
    recipe_writes: Optional[RecipeBatchResult] = None

    @property
    def selected_labels(self) -> list[str]:
        return [item.label for item in self.selection or []]


Listener = Callable[[WorkflowState], Any]


class RecipeWorkflow:
    """One recipe-creation session.

    Args:
        adapter: Gemini adapter used for detection, search and parsing.
        bridge: Persistence bridge; None disables saving.
        persist: Set False to skip saving even when a bridge is given.
    """

    def __init__(
        self,
        adapter: Optional[GeminiAdapter],
        bridge: Optional[PersistenceBridge] = None,
        persist: bool = True,
    ) -> None:
        self.adapter = adapter
        self.bridge = bridge
        self.persist = persist and bridge is not None
        self.state = WorkflowState()
        self._listeners: list[Listener] = []
        self._epoch = 0

    @classmethod
    def resume(
        cls,
        snap: PersistedSnap,
        adapter: Optional[GeminiAdapter] = None,
        bridge: Optional[PersistenceBridge] = None,
        image_url: Optional[str] = None,
    ) -> "RecipeWorkflow":
        """Rebuild a finished session from a persisted snap, at DISPLAYING_PARSED_RECIPE.

        No detection, search or parse call is made. The saved selection stands
        in for both the detected items and the selection.
        """
        workflow = cls(adapter, bridge, persist=False)
        if image_url is None and bridge is not None:
            image_url = bridge.image_url(snap)

        selection = [DetectionItem(label=label) for label in snap.selected_ingredients]
        workflow.state = WorkflowState(
            stage=Stage.DISPLAYING_PARSED_RECIPE,
            image_uri=image_url or snap.image_url,
            items=list(selection),
            selection=selection,
            search_result=snap.to_search_result(),
            recipes=[recipe.to_parsed() for recipe in snap.recipes],
            snap_id=snap.id,
        )
        logger.info("Resumed snap", extra={"snap_id": snap.id, "stage": workflow.stage.value})
        return workflow

    @property
    def stage(self) -> Stage:
        return self.state.stage

    def subscribe(self, listener: Listener) -> None:
        """Call ``listener(state)`` after every stage change and after saving; coroutine listeners are awaited."""
        self._listeners.append(listener)

    async def _notify(self) -> None:
        for listener in self._listeners:
            result = listener(self.state)
            if inspect.isawaitable(result):
                await result

    def _require(self, stage: Stage, action: str) -> None:
        if self.state.stage is not stage:
            raise InvalidTransitionError(
                f"Cannot {action} while {self.state.stage.value}; expected {stage.value}"
            )

    async def _advance(self, target: Stage) -> None:
        current = self.state.stage
        if target not in TRANSITIONS[current]:
            raise InvalidTransitionError(f"Transition {current.value} → {target.value} is not allowed")
        self.state.stage = target
        logger.debug(f"{current.value} → {target.value}", extra={"stage": target.value})
        await self._notify()

    async def reset(self) -> None:
        """Return to AWAITING_IMAGE and drop all held data."""
        self._epoch += 1
        self.state = WorkflowState()
        logger.debug("Workflow reset", extra={"stage": self.state.stage.value})
        await self._notify()

    async def replace_image(self) -> None:
        """Discard the current image and everything derived from it."""
        if self.state.stage is Stage.AWAITING_IMAGE:
            raise InvalidTransitionError("No image to replace")
        await self.reset()

    async def acquire_image(self, source: ImageInput | bytes | str | Path | None) -> None:
        """Accept the fridge photo and wait for confirmation.

        Args:
            source: A loaded ImageInput, raw bytes, a path, a URL or a data URI.

        Raises:
            UserInputError: If no image was given or it cannot be used.
        """
        self._require(Stage.AWAITING_IMAGE, "acquire an image")
        if source is None or (isinstance(source, (bytes, str)) and not source):
            raise UserInputError("No image selected")

        epoch = self._epoch
        if isinstance(source, ImageInput):
            image = source
        else:
            image = await load_image(source)
        if epoch != self._epoch:
            return

        self.state.image = image
        self.state.image_uri = image.uri
        await self._advance(Stage.AWAITING_CONFIRMATION)

    async def confirm_image(self) -> list[DetectionItem]:
        """Confirm the photo and run detection.

        Returns:
            The detected items (possibly empty).
        """
        self._require(Stage.AWAITING_CONFIRMATION, "confirm the image")
        image = self.state.image
        if image is None or not image.data:
            raise UserInputError("No image selected")
        if self.adapter is None:
            raise InvalidTransitionError("This session has no Gemini adapter")

        epoch = self._epoch
        await self._advance(Stage.DETECTING_ITEMS)
        items = await self.adapter.detect(image)
        if epoch != self._epoch:
            logger.debug("Discarding detection result after reset")
            return items

        self.state.items = items
        if not items and self.adapter.last_error:
            self.state.error = f"Detection failed: {self.adapter.last_error}"
        await self._advance(Stage.AWAITING_SELECTION)
        return items

    def _resolve_selection(self, chosen: Iterable[DetectionItem | str]) -> list[DetectionItem]:
        by_label: dict[str, DetectionItem] = {}
        for item in self.state.items or []:
            by_label.setdefault(item.label, item)

        selection: list[DetectionItem] = []
        seen: set[str] = set()
        for entry in chosen:
            label = entry.label if isinstance(entry, DetectionItem) else entry
            if label not in by_label:
                raise UserInputError(f"'{label}' was not detected in the image")
            if label in seen:
                continue
            seen.add(label)
            selection.append(by_label[label])
        return selection

    async def select_items(self, chosen: Iterable[DetectionItem | str]) -> Optional[list[ParsedRecipe]]:
        """Generate recipes for the chosen items, then persist the run.

        Args:
            chosen: Detected items or their labels (exact match).

        Returns:
            Parsed recipes, or None if the workflow was reset mid-flight.

        Raises:
            UserInputError: If the selection is empty or names undetected items.
            RecipeParseError: If the recipe text could not be parsed; the
                workflow stays at DISPLAYING_RAW_RECIPE with the raw text kept.
        """
        self._require(Stage.AWAITING_SELECTION, "select items")
        selection = self._resolve_selection(chosen)
        if not selection:
            raise UserInputError("No items selected")
        if self.adapter is None:
            raise InvalidTransitionError("This session has no Gemini adapter")

        epoch = self._epoch
        self.state.selection = selection
        self.state.error = None
        await self._advance(Stage.GENERATING_RECIPE)

        search_result = await self.adapter.search(selection)
        if epoch != self._epoch:
            return None
        self.state.search_result = search_result
        await self._advance(Stage.DISPLAYING_RAW_RECIPE)
        if epoch != self._epoch:
            return None

        if not search_result.response.strip():
            self.state.recipes = []
            self.state.error = "No recipe found for the selected items"
            await self._advance(Stage.DISPLAYING_PARSED_RECIPE)
            return []

        try:
            recipes = await self.adapter.parse_recipe(search_result.response)
        except Exception as e:
            if epoch != self._epoch:
                logger.debug(f"Discarding parse failure after reset: {e}")
                return None
            self.state.error = str(e)
            logger.error(f"Recipe parsing failed: {e}", extra={"stage": self.state.stage.value})
            raise
        if epoch != self._epoch:
            return None

        self.state.recipes = recipes
        await self._advance(Stage.DISPLAYING_PARSED_RECIPE)
        if epoch != self._epoch:
            return None

        if self.persist:
            await self._save(epoch)
        return recipes

    async def _save(self, epoch: int) -> None:
        state = self.state
        try:
            snap_id = await self.bridge.save_snap(
                state.image,
                state.selected_labels,
                state.search_result.response,
                state.search_result.search_queries,
                state.search_result.where_it_searched,
            )
            writes = await self.bridge.save_recipes(snap_id, state.recipes or [])
        except PersistenceError as e:
            logger.error(f"Saving snap failed: {e}")
            if epoch == self._epoch:
                state.error = "Error uploading image" if isinstance(e, StorageError) else "Error uploading recipe"
                await self._notify()
            return

        if epoch != self._epoch:
            return
        state.snap_id = snap_id
        state.recipe_writes = writes
        if not writes.ok:
            state.error = f"{len(writes.failed)} of {len(writes.outcomes)} recipes were not saved"
        # Same stage; listeners re-read the save outcome
        await self._notify()
