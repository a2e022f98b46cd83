"""Gemini adapter for the three AI operations of a snap.

- detect(): multimodal item detection on the fridge photo
- search(): recipe discovery with Google Search grounding
- parse_recipe(): recipe prose to structured recipes on a cheaper model

Detection and search degrade to empty results on API failure (logged, and for
detection recorded on ``last_error``). Parse failures propagate.

The google-genai client is synchronous here, so calls run in a worker thread
via asyncio.to_thread.
"""

import asyncio
from typing import Any, Optional, Sequence

from google import genai
from google.genai import types

from snapchef.gemini.parsing import parse_detection_items, parse_recipes
from snapchef.models.models import DetectionItem, GroundingSource, ImageInput, ParsedRecipe, SearchResult
from snapchef.prompts.prompts import (
    DETECTION_PROMPT,
    SEARCH_SYSTEM_INSTRUCTION,
    build_fallback_recipe_suggestion,
    build_parse_prompt,
    build_search_prompt,
    get_detection_system_instruction,
)
from snapchef.utils.config import Config, config as default_config
from snapchef.utils.errors import DetectionError, RecipeParseError, safe_execute_async
from snapchef.utils.logger import logger


def extract_grounding(response: Any) -> tuple[list[str], list[GroundingSource]]:
    """Read search queries and cited web sources from a grounded response.

    Missing candidates, metadata, queries or chunks all yield empty lists.
    """
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return [], []

    metadata = getattr(candidates[0], "grounding_metadata", None)
    if metadata is None:
        return [], []

    queries = list(getattr(metadata, "web_search_queries", None) or [])
    sources = []
    for chunk in getattr(metadata, "grounding_chunks", None) or []:
        web = getattr(chunk, "web", None)
        if web is None:
            continue
        sources.append(GroundingSource(title=getattr(web, "title", None) or "", uri=getattr(web, "uri", None) or ""))
    return queries, sources


class GeminiAdapter:
    """Builds prompts for, calls, and interprets the Gemini operations.

    Args:
        client: A google-genai ``Client`` (or anything exposing ``models.generate_content``).
        settings: Configuration; defaults to the module-level config.
    """

    def __init__(self, client: Any, settings: Optional[Config] = None) -> None:
        self.client = client
        self.settings = settings or default_config
        self.last_error: Optional[str] = None

    @classmethod
    def from_config(cls, settings: Optional[Config] = None) -> "GeminiAdapter":
        settings = settings or default_config
        return cls(genai.Client(api_key=settings.GEMINI_API_KEY), settings)

    async def _generate(self, **kwargs: Any) -> Any:
        return await asyncio.to_thread(self.client.models.generate_content, **kwargs)

    def _record_error(self, error: Exception) -> None:
        self.last_error = str(error) or error.__class__.__name__

    async def detect(self, image: Optional[ImageInput]) -> list[DetectionItem]:
        """Detect unique food items in the fridge photo.

        Args:
            image: The loaded photo.

        Returns:
            Detected items; an empty list if the call or its JSON fails.

        Raises:
            DetectionError: If no image was supplied.
        """
        if image is None or not image.data:
            raise DetectionError("No image supplied for detection")

        self.last_error = None

        async def _call_detection():
            response = await self._generate(
                model=self.settings.DETECTION_MODEL,
                contents=[
                    DETECTION_PROMPT,
                    types.Part.from_bytes(data=image.data, mime_type=image.mime_type),
                ],
                config=types.GenerateContentConfig(
                    system_instruction=get_detection_system_instruction(self.settings.MAX_DETECTION_ITEMS),
                    temperature=self.settings.DETECTION_TEMPERATURE,
                    safety_settings=[
                        types.SafetySetting(
                            category=types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
                            threshold=types.HarmBlockThreshold.BLOCK_ONLY_HIGH,
                        )
                    ],
                ),
            )
            return parse_detection_items(response.text or "")

        items = await safe_execute_async(
            _call_detection(),
            "Gemini detection call",
            default_return=[],
            on_error=self._record_error,
        )
        logger.info(f"Detected {len(items)} items")
        return items

    async def search(self, items: Sequence[DetectionItem]) -> SearchResult:
        """Find a real recipe for the selected items using grounded search.

        Returns:
            SearchResult; all-empty without calling out when there are no labels,
            and all-empty when the call fails.
        """
        ingredients = [item.label for item in items]
        if not ingredients:
            return SearchResult.empty()

        async def _call_search():
            response = await self._generate(
                model=self.settings.SEARCH_MODEL,
                contents=build_search_prompt(ingredients),
                config=types.GenerateContentConfig(
                    system_instruction=SEARCH_SYSTEM_INSTRUCTION,
                    temperature=self.settings.SEARCH_TEMPERATURE,
                    tools=[types.Tool(google_search=types.GoogleSearch())],
                ),
            )
            queries, sources = extract_grounding(response)
            text = response.text or ""
            if not text.strip():
                logger.warning("Search returned no text, using fallback suggestion")
                text = build_fallback_recipe_suggestion(ingredients)
            return SearchResult(search_queries=queries, where_it_searched=sources, response=text)

        result = await safe_execute_async(
            _call_search(),
            "Gemini grounded search call",
            log_level="error",
            default_return=SearchResult.empty(),
        )
        logger.info(
            f"Search finished: {len(result.search_queries)} queries, {len(result.where_it_searched)} sources"
        )
        return result

    async def parse_recipe(self, raw_text: str) -> list[ParsedRecipe]:
        """Turn recipe prose into structured recipes.

        Raises:
            RecipeParseError: If the response has no usable JSON or fails schema validation.
            Exception: API errors are not caught.
        """
        response = await self._generate(
            model=self.settings.PARSE_MODEL,
            contents=build_parse_prompt(raw_text),
        )
        text = response.text
        if not text:
            raise RecipeParseError("Parse response was empty")

        recipes = parse_recipes(text)
        logger.info(f"Parsed {len(recipes)} recipes")
        return recipes
