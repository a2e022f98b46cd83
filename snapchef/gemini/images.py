"""Image loading, validation and compression for the fridge photo.

Core Functions:
- fetch_image_bytes(): Get bytes from a path, URL, data URI or raw bytes (async)
- detect_mime_type(): Sniff JPEG/PNG/WEBP from magic bytes
- validate_image_size(): Check MAX_IMAGE_SIZE_MB limit
- compress_image(): Downscale and re-encode large photos with Pillow
- load_image(): All of the above, producing an ImageInput
"""

import base64
from io import BytesIO
from pathlib import Path
from typing import Optional

import aiohttp
import filetype
from PIL import Image

from snapchef.models.models import ImageInput
from snapchef.utils.config import config
from snapchef.utils.errors import ImageError, safe_execute_sync
from snapchef.utils.logger import logger

SUPPORTED_MIME_TYPES = ("image/jpeg", "image/png", "image/webp")


async def fetch_image_bytes(source: str | bytes | Path) -> Optional[bytes]:
    """Fetch image bytes from any supported source.

    - bytes: returned as-is
    - data URI (data:image/jpeg;base64,...): decoded
    - http(s) URL: downloaded with aiohttp
    - anything else: read as a filesystem path

    Returns:
        Image bytes, or None when the source could not be read (logged).
    """
    if isinstance(source, bytes):
        return source

    if isinstance(source, str) and source.startswith("data:"):

        def _decode_data_url():
            _, encoded = source.split(",", 1)
            return base64.b64decode(encoded)

        return safe_execute_sync(_decode_data_url, "Decode data URL", default_return=None)

    if isinstance(source, str) and source.startswith(("http://", "https://")):
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(source) as response:
                    response.raise_for_status()
                    return await response.read()
        except aiohttp.ClientError as e:
            logger.warning(f"Fetch image from URL {source}: {e}")
            return None

    return safe_execute_sync(lambda: Path(source).read_bytes(), f"Read image file {source}", default_return=None)


def detect_mime_type(image_bytes: bytes) -> Optional[str]:
    """Return the MIME type of a supported image, or None."""
    kind = filetype.guess(image_bytes)
    if kind is None or kind.mime not in SUPPORTED_MIME_TYPES:
        logger.warning(f"Unsupported image format: {kind.mime if kind else 'unknown'}")
        return None
    return kind.mime


def validate_image_size(image_bytes: bytes) -> bool:
    size_mb = len(image_bytes) / (1024 * 1024)
    if size_mb > config.MAX_IMAGE_SIZE_MB:
        logger.warning(f"Image size {size_mb:.2f}MB exceeds limit of {config.MAX_IMAGE_SIZE_MB}MB")
        return False
    return True


def compress_image(image_bytes: bytes, max_width: int = 1600) -> bytes:
    """Downscale and re-encode a photo as progressive JPEG.

    Images below COMPRESS_IMG_THRESHOLD_KB are returned untouched, as is the
    original when Pillow cannot decode it.

    Args:
        image_bytes: Raw image bytes.
        max_width: Maximum width in pixels; taller-than-wide photos are bounded the same way.

    Returns:
        Compressed JPEG bytes, or the original bytes.
    """
    size_kb = len(image_bytes) / 1024
    if size_kb < config.COMPRESS_IMG_THRESHOLD_KB:
        logger.debug(f"Image size {size_kb:.1f}KB below compression threshold, skipping compression")
        return image_bytes

    def _compress():
        img = Image.open(BytesIO(image_bytes))
        if img.mode in ("RGBA", "LA", "P"):
            background = Image.new("RGB", img.size, (255, 255, 255))
            background.paste(img.convert("RGBA"), mask=img.convert("RGBA").split()[-1])
            img = background
        elif img.mode != "RGB":
            img = img.convert("RGB")

        img.thumbnail((max_width, max_width), Image.Resampling.LANCZOS)

        output = BytesIO()
        img.save(output, format="JPEG", quality=85, optimize=True, progressive=True)
        compressed = output.getvalue()
        logger.debug(f"Image compressed: {size_kb:.1f}KB → {len(compressed) / 1024:.1f}KB")
        return compressed

    return safe_execute_sync(_compress, "Image compression", default_return=image_bytes)


async def load_image(source: str | bytes | Path) -> ImageInput:
    """Load and validate the fridge photo.

    Args:
        source: Raw bytes, a filesystem path, an http(s) URL or a data URI.

    Returns:
        ImageInput with (possibly compressed) bytes and MIME type.

    Raises:
        ImageError: If the image cannot be read, is not JPEG/PNG/WEBP, or is too large.
    """
    image_bytes = await fetch_image_bytes(source)
    if not image_bytes:
        raise ImageError("Could not read image from the provided source")

    mime_type = detect_mime_type(image_bytes)
    if mime_type is None:
        raise ImageError("Invalid image format. Only JPEG, PNG and WEBP are supported.")

    if not validate_image_size(image_bytes):
        raise ImageError(f"Image too large. Maximum size is {config.MAX_IMAGE_SIZE_MB}MB")

    if config.COMPRESS_IMG:
        compressed = compress_image(image_bytes)
        if compressed is not image_bytes:
            image_bytes, mime_type = compressed, "image/jpeg"

    uri = None if isinstance(source, bytes) or str(source).startswith("data:") else str(source)
    return ImageInput(data=image_bytes, mime_type=mime_type, uri=uri)
