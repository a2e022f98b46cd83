"""Configuration management for SnapChef.

Loads environment variables from system environment and .env file.
Priority order: system environment > .env file > hardcoded defaults
"""

import os
from typing import Optional

from dotenv import load_dotenv

from snapchef.utils.errors import ConfigError


# Load .env file (if exists, silently continues if missing)
load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class Config:
    """Application configuration loaded from environment variables."""

    def __init__(self) -> None:
        """Initialize configuration from environment variables."""
        self.GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
        # Detection Model: multimodal model that lists food items in the fridge photo
        self.DETECTION_MODEL: str = os.getenv("DETECTION_MODEL", "gemini-2.5-pro")
        # Search Model: must support the Google Search grounding tool
        self.SEARCH_MODEL: str = os.getenv("SEARCH_MODEL", "gemini-2.5-pro")
        # Parse Model: cheaper model that turns recipe prose into the recipe schema
        self.PARSE_MODEL: str = os.getenv("PARSE_MODEL", "gemini-2.5-flash-lite")
        # Image Generation Model: Imagen endpoint used for dish photographs
        self.IMAGE_GENERATION_MODEL: str = os.getenv("IMAGE_GENERATION_MODEL", "imagen-3.0-generate-002")
        # Number of images requested per generation (only the first one is kept)
        self.IMAGE_SAMPLE_COUNT: int = int(os.getenv("IMAGE_SAMPLE_COUNT", "4"))
        # Detection is deterministic; search keeps a little creativity
        self.DETECTION_TEMPERATURE: float = float(os.getenv("DETECTION_TEMPERATURE", "0.0"))
        self.SEARCH_TEMPERATURE: float = float(os.getenv("SEARCH_TEMPERATURE", "0.2"))
        # Upper bound on detected items the model is asked to return. Default: 100
        self.MAX_DETECTION_ITEMS: int = int(os.getenv("MAX_DETECTION_ITEMS", "100"))

        # Supabase project (storage buckets + PostgREST tables)
        self.SUPABASE_URL: str = os.getenv("SUPABASE_URL", "").rstrip("/")
        self.SUPABASE_KEY: str = os.getenv("SUPABASE_KEY", "")
        self.SNAP_IMAGE_BUCKET: str = os.getenv("SNAP_IMAGE_BUCKET", "snapimages")
        self.GENERATED_IMAGE_BUCKET: str = os.getenv("GENERATED_IMAGE_BUCKET", "generatedimages")
        # Persist completed runs to Supabase. Disable for local experiments.
        self.PERSIST_SNAPS: bool = _env_flag("PERSIST_SNAPS", "true")
        # Number of snaps shown in the history view. Default: 4
        self.RECENT_SNAPS_LIMIT: int = int(os.getenv("RECENT_SNAPS_LIMIT", "4"))

        # Maximum image size (in MB) that can be processed. Default: 5 MB
        self.MAX_IMAGE_SIZE_MB: int = int(os.getenv("MAX_IMAGE_SIZE_MB", "5"))
        # Image Compression: Enable/disable image compression before detection
        self.COMPRESS_IMG: bool = _env_flag("COMPRESS_IMG", "true")
        # Only compress images at or above this size (in KB)
        self.COMPRESS_IMG_THRESHOLD_KB: int = int(os.getenv("COMPRESS_IMG_THRESHOLD_KB", "300"))

        # Directory for locally saved generated images (None = do not save)
        self.GENERATED_IMAGE_DIR: Optional[str] = os.getenv("GENERATED_IMAGE_DIR")

    @property
    def supabase_enabled(self) -> bool:
        return bool(self.SUPABASE_URL and self.SUPABASE_KEY)

    def validate(self, require_supabase: bool = False) -> None:
        """Validate required configuration.

        Args:
            require_supabase: Also require Supabase credentials (persistence or history use).

        Raises:
            ConfigError: If required keys are missing or invalid values provided.
        """
        if not self.GEMINI_API_KEY:
            raise ConfigError("GEMINI_API_KEY environment variable is required")
        if require_supabase and not self.supabase_enabled:
            raise ConfigError("SUPABASE_URL and SUPABASE_KEY environment variables are required")
        if not (0.0 <= self.DETECTION_TEMPERATURE <= 2.0):
            raise ConfigError(
                f"DETECTION_TEMPERATURE must be between 0.0 and 2.0, got: {self.DETECTION_TEMPERATURE}"
            )
        if not (0.0 <= self.SEARCH_TEMPERATURE <= 2.0):
            raise ConfigError(
                f"SEARCH_TEMPERATURE must be between 0.0 and 2.0, got: {self.SEARCH_TEMPERATURE}"
            )
        if not (1 <= self.MAX_DETECTION_ITEMS <= 100):
            raise ConfigError(
                f"MAX_DETECTION_ITEMS must be between 1 and 100, got: {self.MAX_DETECTION_ITEMS}"
            )
        if self.RECENT_SNAPS_LIMIT < 1:
            raise ConfigError(
                f"RECENT_SNAPS_LIMIT must be at least 1, got: {self.RECENT_SNAPS_LIMIT}"
            )
        if not (1 <= self.IMAGE_SAMPLE_COUNT <= 4):
            raise ConfigError(
                f"IMAGE_SAMPLE_COUNT must be between 1 and 4, got: {self.IMAGE_SAMPLE_COUNT}"
            )
        if self.MAX_IMAGE_SIZE_MB < 1:
            raise ConfigError(
                f"MAX_IMAGE_SIZE_MB must be at least 1, got: {self.MAX_IMAGE_SIZE_MB}"
            )


# Module-level config instance; entry points call config.validate() before use
config = Config()
