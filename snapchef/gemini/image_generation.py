"""Dish photograph generation with Imagen, uploaded to the generated-images bucket."""

import asyncio
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from google.genai import types

from snapchef.prompts.prompts import build_dish_image_prompt
from snapchef.storage.supabase import SupabaseClient
from snapchef.utils.config import Config, config as default_config
from snapchef.utils.errors import ImageGenerationError
from snapchef.utils.logger import logger


@dataclass
class GeneratedImage:
    data: bytes
    path: str
    local_path: Optional[Path] = None


async def generate_image_bytes(client: Any, dish_name: str, prompt: str, settings: Optional[Config] = None) -> bytes:
    """Request dish photos from Imagen and return the first one as PNG bytes.

    Raises:
        ImageGenerationError: If the endpoint returns no images.
    """
    settings = settings or default_config
    full_prompt = build_dish_image_prompt(dish_name, prompt)
    logger.info(f"Generating image with {settings.IMAGE_GENERATION_MODEL}: {full_prompt[:80]}")

    response = await asyncio.to_thread(
        client.models.generate_images,
        model=settings.IMAGE_GENERATION_MODEL,
        prompt=full_prompt,
        config=types.GenerateImagesConfig(
            number_of_images=settings.IMAGE_SAMPLE_COUNT,
            output_mime_type="image/png",
        ),
    )

    generated = getattr(response, "generated_images", None) or []
    for candidate in generated:
        image = getattr(candidate, "image", None)
        if image is not None and image.image_bytes:
            return image.image_bytes

    raise ImageGenerationError(f"No image returned for '{dish_name}'")


async def generate_dish_image(
    client: Any,
    storage: SupabaseClient,
    dish_name: str,
    prompt: str,
    settings: Optional[Config] = None,
    save_dir: Optional[str | Path] = None,
) -> GeneratedImage:
    """Generate a dish photograph and upload it.

    Args:
        client: google-genai client.
        storage: Supabase client used for the upload.
        dish_name: Name of the dish, e.g. "Spaghetti Carbonara".
        prompt: Styling details appended to the dish name.
        settings: Configuration; defaults to the module-level config.
        save_dir: Also write ``<epoch-ms>.png`` here; defaults to GENERATED_IMAGE_DIR.

    Returns:
        GeneratedImage with bytes, bucket path and optional local path.

    Raises:
        ImageGenerationError: If no image was generated.
        StorageError: If the upload fails.
    """
    settings = settings or default_config
    data = await generate_image_bytes(client, dish_name, prompt, settings)

    file_name = f"{int(time.time() * 1000)}.png"
    local_path = None
    save_dir = save_dir if save_dir is not None else settings.GENERATED_IMAGE_DIR
    if save_dir:
        local_path = Path(save_dir) / file_name
        local_path.parent.mkdir(parents=True, exist_ok=True)
        local_path.write_bytes(data)
        logger.info(f"Image saved locally as {local_path}")

    uploaded = await storage.upload(settings.GENERATED_IMAGE_BUCKET, f"public/{file_name}", data, "image/png")
    logger.info(f"Image uploaded to bucket at: {uploaded.path}")
    return GeneratedImage(data=data, path=uploaded.path, local_path=local_path)
