"""Error taxonomy and graceful-degradation helpers.

Every failure SnapChef raises derives from SnapChefError so callers can catch
the whole family at a UI boundary. External call failures that should degrade
(detection, search) go through safe_execute_async, which logs and returns a
default instead of raising.
"""

import logging
from typing import Any, Awaitable, Callable, Optional

from snapchef.utils.logger import logger


class SnapChefError(Exception):
    """Base class for all SnapChef errors."""


class ConfigError(SnapChefError):
    """Missing or invalid configuration."""


class UserInputError(SnapChefError):
    """The user supplied nothing usable (no image, empty selection)."""


class InvalidTransitionError(UserInputError):
    """The requested action is not allowed in the workflow's current stage."""


class DetectionError(SnapChefError):
    """Detection was invoked without an image."""


class RecipeParseError(SnapChefError):
    """Parse output lacked the expected JSON or did not match the recipe schema."""


class ImageError(UserInputError):
    """An image could not be loaded, or has an unsupported format or size."""


class ImageGenerationError(SnapChefError):
    """The image generation endpoint returned no image."""


class PersistenceError(SnapChefError):
    """Base class for Supabase storage and table failures."""


class StorageError(PersistenceError):
    """Uploading an object to a storage bucket failed."""


class WriteError(PersistenceError):
    """Inserting a row failed."""


class ReadError(PersistenceError):
    """Selecting rows failed."""


_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def _log_error(operation_name: str, exception: Exception, log_level: str = "warning") -> None:
    logger.log(_LOG_LEVELS.get(log_level, logging.WARNING), f"{operation_name}: {exception}")


async def safe_execute_async(
    coro: Awaitable,
    operation_name: str,
    log_level: str = "warning",
    default_return: Any = None,
    reraise: bool = False,
    on_error: Optional[Callable[[Exception], None]] = None,
) -> Any:
    """Await a coroutine, logging any exception.

    Args:
        coro: Awaitable to execute.
        operation_name: Description for logging (e.g., "Gemini detection call").
        log_level: "debug", "warning" or "error". Default: "warning".
        default_return: Value returned when the coroutine raises and reraise is False.
        reraise: Re-raise after logging instead of returning default_return.
        on_error: Optional callback receiving the exception (e.g. to record it).

    Returns:
        The coroutine's result, or default_return on failure.
    """
    try:
        return await coro
    except Exception as e:
        _log_error(operation_name, e, log_level)
        if on_error is not None:
            on_error(e)
        if reraise:
            raise
        return default_return


def safe_execute_sync(
    func: Callable[[], Any],
    operation_name: str,
    log_level: str = "warning",
    default_return: Any = None,
    reraise: bool = False,
) -> Any:
    """Synchronous counterpart of safe_execute_async."""
    try:
        return func()
    except Exception as e:
        _log_error(operation_name, e, log_level)
        if reraise:
            raise
        return default_return
