"""Unit tests for error types and graceful-degradation helpers."""

import pytest

from src.utils.errors import (
    ModelNotFoundError,
    OracleError,
    OracleParseError,
    ProfileStoreError,
    RecipeAssistantError,
    is_model_not_found_error,
    is_transient_error,
    safe_execute_async,
    safe_execute_sync,
)


class TestErrorClassification:
    """Test transient and model-not-found detection."""

    @pytest.mark.parametrize(
        "message",
        ["Connection reset by peer", "Request timeout", "429 RESOURCE_EXHAUSTED", "503 Service Unavailable"],
    )
    def test_transient_errors(self, message):
        """Test that network hiccups, rate limits and 5xx are transient."""
        assert is_transient_error(Exception(message))

    def test_permanent_error(self):
        """Test that an invalid-argument error is not transient."""
        assert not is_transient_error(Exception("400 INVALID_ARGUMENT: bad prompt"))

    def test_model_not_found(self):
        """Test model-not-found detection by type and by message."""
        assert is_model_not_found_error(ModelNotFoundError("gone"))
        assert is_model_not_found_error(Exception("404 NOT_FOUND: models/gemini-pro is not found"))
        assert not is_model_not_found_error(Exception("quota exceeded"))

    def test_hierarchy(self):
        """Test that every typed error derives from the package base error."""
        assert issubclass(ModelNotFoundError, OracleError)
        assert issubclass(OracleParseError, OracleError)
        for error in (OracleError, ProfileStoreError):
            assert issubclass(error, RecipeAssistantError)


class TestSafeExecute:
    """Test safe_execute_async and safe_execute_sync."""

    @pytest.mark.asyncio
    async def test_async_success(self):
        """Test that the coroutine result is returned."""

        async def ok():
            return 42

        assert await safe_execute_async(ok(), "ok") == 42

    @pytest.mark.asyncio
    async def test_async_failure_returns_default(self):
        """Test that failures are logged and replaced by the default."""

        async def boom():
            raise ProfileStoreError("disk on fire")

        result = await safe_execute_async(boom(), "Read profile", default_return="fallback")

        assert result == "fallback"

    @pytest.mark.asyncio
    async def test_async_reraise(self):
        """Test that reraise=True propagates the original exception."""

        async def boom():
            raise OracleError("no")

        with pytest.raises(OracleError):
            await safe_execute_async(boom(), "Generate", reraise=True)

    def test_sync_failure_returns_default(self):
        """Test the synchronous variant."""

        def boom():
            raise ValueError("bad json")

        assert safe_execute_sync(lambda: "ok", "ok") == "ok"
        assert safe_execute_sync(boom, "Parse", log_level="debug", default_return=[]) == []
