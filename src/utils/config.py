"""Configuration management for the recipe conversation assistant.

Loads environment variables from system environment and .env file.
Priority order: system environment > .env file > hardcoded defaults
"""

import os

from dotenv import load_dotenv


# Load .env file (if exists, silently continues if missing)
load_dotenv()


def _as_bool(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


class Config:
    """Application configuration loaded from environment variables."""

    def __init__(self) -> None:
        """Initialize configuration from environment variables."""
        # Gemini API Key: optional, an empty key means every turn is served from fallback recipes
        self.GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
        # Text model used to draft recipes
        self.GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
        # Model retried once when the configured one is not found or not supported
        self.FALLBACK_TEXT_MODEL: str = os.getenv("FALLBACK_TEXT_MODEL", "gemini-2.0-flash")
        # Image model used to render a picture of each recipe
        self.IMAGE_MODEL: str = os.getenv("IMAGE_MODEL", "gemini-2.0-flash-preview-image-generation")
        # Image Generation: disable to always use the keyword-based fallback image URL
        self.ENABLE_IMAGE_GENERATION: bool = _as_bool(os.getenv("ENABLE_IMAGE_GENERATION", "true"))

        # LLM Model Parameters
        # Temperature: 0.7 keeps recipes varied across sequential calls
        self.TEMPERATURE: float = float(os.getenv("TEMPERATURE", "0.7"))
        # Max Output Tokens: one recipe with full instructions fits comfortably in 4096
        self.MAX_OUTPUT_TOKENS: int = int(os.getenv("MAX_OUTPUT_TOKENS", "4096"))

        # Oracle Retry Configuration - handles transient API failures
        # MAX_RETRIES: attempts per oracle call (exponential backoff between attempts)
        self.MAX_RETRIES: int = int(os.getenv("MAX_RETRIES", "3"))
        # DELAY_BETWEEN_RETRIES: initial delay in seconds, doubled after each failed attempt
        self.DELAY_BETWEEN_RETRIES: int = int(os.getenv("DELAY_BETWEEN_RETRIES", "1"))
        # GENERATION_DELAY_SECONDS: pause between sequential per-recipe oracle calls (rate limits)
        self.GENERATION_DELAY_SECONDS: float = float(os.getenv("GENERATION_DELAY_SECONDS", "2.0"))

        # Maximum number of recipes produced per turn (1-7)
        self.MAX_RECIPES: int = int(os.getenv("MAX_RECIPES", "7"))

        # Conversation Memory
        # SHORT_TERM_WINDOW: number of turns kept in the session sliding window
        self.SHORT_TERM_WINDOW: int = int(os.getenv("SHORT_TERM_WINDOW", "10"))
        # SUMMARY_EVERY_N_TURNS: append a rolling summary to long-term memory every N turns
        self.SUMMARY_EVERY_N_TURNS: int = int(os.getenv("SUMMARY_EVERY_N_TURNS", "5"))
        # MAX_SESSIONS: short-term sessions kept in process; the least recently used is evicted past this
        self.MAX_SESSIONS: int = int(os.getenv("MAX_SESSIONS", "1000"))

        # Profile Store
        # USE_PERSISTENT_STORE: "false" keeps profiles and memory in process only
        self.USE_PERSISTENT_STORE: bool = _as_bool(os.getenv("USE_PERSISTENT_STORE", "true"))
        # PROFILE_DB_FILE: SQLite file holding profile and memory documents
        self.PROFILE_DB_FILE: str = os.getenv("PROFILE_DB_FILE", "recipe_profiles.db")

        # Image Compression: compress generated images before embedding them as data URIs
        self.COMPRESS_IMG: bool = _as_bool(os.getenv("COMPRESS_IMG", "true"))
        # Only compress images larger than this (in KB)
        self.COMPRESS_IMG_THRESHOLD_KB: int = int(os.getenv("COMPRESS_IMG_THRESHOLD_KB", "300"))

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ValueError: If a numeric setting is out of range.
        """
        if not (0.0 <= self.TEMPERATURE <= 2.0):
            raise ValueError(f"TEMPERATURE must be between 0.0 and 2.0, got: {self.TEMPERATURE}")
        if self.MAX_OUTPUT_TOKENS < 512:
            raise ValueError(f"MAX_OUTPUT_TOKENS must be at least 512, got: {self.MAX_OUTPUT_TOKENS}")
        if self.MAX_RETRIES < 1:
            raise ValueError(f"MAX_RETRIES must be at least 1, got: {self.MAX_RETRIES}")
        if self.DELAY_BETWEEN_RETRIES < 0:
            raise ValueError(f"DELAY_BETWEEN_RETRIES must be non-negative, got: {self.DELAY_BETWEEN_RETRIES}")
        if self.GENERATION_DELAY_SECONDS < 0:
            raise ValueError(
                f"GENERATION_DELAY_SECONDS must be non-negative, got: {self.GENERATION_DELAY_SECONDS}"
            )
        if not (1 <= self.MAX_RECIPES <= 7):
            raise ValueError(f"MAX_RECIPES must be between 1 and 7, got: {self.MAX_RECIPES}")
        if self.SHORT_TERM_WINDOW < 1:
            raise ValueError(f"SHORT_TERM_WINDOW must be at least 1, got: {self.SHORT_TERM_WINDOW}")
        if self.SUMMARY_EVERY_N_TURNS < 1:
            raise ValueError(f"SUMMARY_EVERY_N_TURNS must be at least 1, got: {self.SUMMARY_EVERY_N_TURNS}")
        if self.MAX_SESSIONS < 1:
            raise ValueError(f"MAX_SESSIONS must be at least 1, got: {self.MAX_SESSIONS}")


# Create module-level config instance and validate immediately
config = Config()
config.validate()
