"""Error types and graceful-degradation helpers.

Nothing raised inside the conversation pipeline is allowed to reach the caller.
Stages that talk to external collaborators (the Gemini oracle, the profile
store) raise the typed errors below; the pipeline catches them at the stage
boundary and degrades (fallback recipes, default profile, apology response).
"""

from typing import Any, Awaitable, Callable, Optional

from src.utils.logger import logger


# Substrings that mark an oracle failure as worth retrying
TRANSIENT_ERROR_KEYWORDS = ("timeout", "connection", "429", "500", "502", "503", "retryable")

# Substrings that mark a model name as unusable for generate_content
MODEL_NOT_FOUND_KEYWORDS = ("is not found", "not supported for generatecontent", "404 not_found")


class RecipeAssistantError(Exception):
    """Base error for the recipe conversation assistant."""


class OracleError(RecipeAssistantError):
    """The text/image generation oracle failed."""


class ModelNotFoundError(OracleError):
    """The configured model does not exist or does not support generate_content."""


class OracleParseError(OracleError):
    """The oracle answered, but the answer could not be turned into recipes."""


class ProfileStoreError(RecipeAssistantError):
    """The profile/memory document store could not be read or written."""


def is_transient_error(exc: BaseException) -> bool:
    """Return True if the error looks like a network hiccup, rate limit or 5xx."""
    error_str = str(exc).lower()
    return any(keyword in error_str for keyword in TRANSIENT_ERROR_KEYWORDS)


def is_model_not_found_error(exc: BaseException) -> bool:
    """Return True if the error says the requested model is unavailable."""
    if isinstance(exc, ModelNotFoundError):
        return True
    error_str = str(exc).lower()
    return any(keyword in error_str for keyword in MODEL_NOT_FOUND_KEYWORDS)


def _log_error(operation_name: str, exception: Exception, log_level: str = "warning") -> None:
    """Log error with appropriate level.

    Args:
        operation_name: Description for logging
        exception: Exception that occurred
        log_level: Logging level ("debug", "warning", "error"). Default: "warning".
    """
    msg = f"{operation_name}: {exception}"
    if log_level == "debug":
        logger.debug(msg)
    elif log_level == "error":
        logger.error(msg, exc_info=True)
    else:
        logger.warning(msg)


async def safe_execute_async(
    coro: Awaitable[Any],
    operation_name: str,
    log_level: str = "warning",
    default_return: Optional[Any] = None,
    reraise: bool = False,
) -> Any:
    """Safely execute async operation with consistent error logging.

    Used for optional operations that should degrade gracefully, e.g. image
    generation (fall back to a keyword URL) or a profile store read (fall back
    to an empty profile).

    Args:
        coro: Awaitable coroutine to execute.
        operation_name: Description for logging (e.g., "Generate recipe image").
        log_level: Logging level ("debug", "warning", "error"). Default: "warning".
        default_return: Value to return on exception. Default: None.
        reraise: If True, re-raise exception after logging. Default: False.

    Returns:
        Result of coroutine if successful, default_return on exception unless reraise=True.

    Raises:
        Exception: Original exception if reraise=True.
    """
    try:
        return await coro
    except Exception as e:
        _log_error(operation_name, e, log_level)
        if reraise:
            raise
        return default_return


def safe_execute_sync(
    func: Callable[[], Any],
    operation_name: str,
    log_level: str = "warning",
    default_return: Optional[Any] = None,
    reraise: bool = False,
) -> Any:
    """Synchronous version of safe_execute_async. Same behavior and arguments.

    Args:
        func: Callable to execute (no args).
        operation_name: Description for logging.
        log_level: Logging level ("debug", "warning", "error"). Default: "warning".
        default_return: Value to return on exception. Default: None.
        reraise: If True, re-raise exception after logging. Default: False.

    Returns:
        Result of func if successful, default_return on exception unless reraise=True.
    """
    try:
        return func()
    except Exception as e:
        _log_error(operation_name, e, log_level)
        if reraise:
            raise
        return default_return
