"""Recipe generation oracle backed by Google Gemini.

Drafts raw recipes (title, ingredients, steps, tags) and recipe images. The
oracle is the only part of the pipeline that talks to the network, and it is
never allowed to fail a turn:

- Model-not-found / unsupported-model errors retry once on FALLBACK_TEXT_MODEL.
- Transient errors (timeouts, 429, 5xx) retry with exponential backoff.
- Anything else, an empty answer, unparseable output or a missing API key
  yields the fixed fallback recipe set.
- Image failures fall back to a keyword-based stock-photo URL.

Multi-recipe generation is sequential: one call per recipe, a fixed delay
between calls, and a VarietyState accumulator threaded from each call to the
next so later prompts ask the model to avoid earlier main ingredients and
cuisines.
"""

import asyncio
import base64
import json
import re
import uuid
from io import BytesIO
from typing import Any, Awaitable, Callable, Optional

import filetype
from google import genai
from google.genai import types
from PIL import Image

from src.models.models import Recipe, SkillLevel, UserProfile, VarietyState
from src.prompts.prompts import get_image_prompt, get_recipe_prompt
from src.utils.config import config
from src.utils.errors import (
    OracleError,
    OracleParseError,
    is_model_not_found_error,
    is_transient_error,
    safe_execute_async,
    safe_execute_sync,
)
from src.utils.logger import logger

# Deprecated/unsupported model names mapped to the fallback model up front
DEPRECATED_MODELS = ("gemini-1.5-flash", "gemini-1.5-flash-001", "gemini-1.0-pro", "gemini-pro")

SKILL_DIFFICULTY = {
    SkillLevel.BEGINNER: "Easy",
    SkillLevel.INTERMEDIATE: "Medium",
    SkillLevel.ADVANCED: "Hard",
    SkillLevel.EXPERT: "Hard",
}

FALLBACK_RECIPES: list[dict[str, Any]] = [
    {
        "id": "fallback_1",
        "title": "Quick Pasta Primavera",
        "description": "A light, colorful pasta tossed with seasonal vegetables, garlic and parmesan.",
        "cookingTime": "25 minutes",
        "servings": 4,
        "difficulty": "Easy",
        "ingredients": ["pasta", "mixed vegetables", "olive oil", "garlic", "parmesan"],
        "instructions": [
            "Cook pasta according to package directions.",
            "Sauté vegetables in olive oil with garlic.",
            "Toss with pasta and parmesan.",
        ],
        "tags": ["pasta", "vegetarian", "quick"],
        "calories": 350,
    },
    {
        "id": "fallback_2",
        "title": "Healthy Grilled Chicken",
        "description": "Juicy chicken breast marinated in lemon, garlic and herbs, then grilled.",
        "cookingTime": "30 minutes",
        "servings": 4,
        "difficulty": "Medium",
        "ingredients": ["chicken breast", "herbs", "olive oil", "lemon", "garlic"],
        "instructions": [
            "Marinate chicken with herbs, olive oil, lemon and garlic.",
            "Grill for 6-7 minutes per side.",
            "Rest for 5 minutes before slicing.",
        ],
        "tags": ["chicken", "grilled", "healthy"],
        "calories": 280,
    },
    {
        "id": "fallback_3",
        "title": "Fresh Garden Salad",
        "description": "Crisp greens, tomatoes and cucumber with a simple dressing and toasted nuts.",
        "cookingTime": "15 minutes",
        "servings": 2,
        "difficulty": "Easy",
        "ingredients": ["mixed greens", "tomatoes", "cucumber", "dressing", "nuts"],
        "instructions": [
            "Wash and chop all vegetables.",
            "Combine in a large bowl.",
            "Add dressing and top with nuts.",
        ],
        "tags": ["salad", "healthy", "vegetarian"],
        "calories": 150,
    },
]

IMAGE_KEYWORD_TAGS = (
    "italian", "asian", "mexican", "indian", "french", "american", "grilled", "baked", "fried",
    "roasted", "steamed", "pasta", "rice", "soup", "salad", "curry", "stir-fry",
)

CUISINE_IMAGE_STYLES = (
    ("italian", "rustic+mediterranean"),
    ("asian", "minimalist+zen"),
    ("indian", "colorful+traditional"),
    ("mexican", "vibrant+festive"),
    ("french", "elegant+refined"),
)

PRESENTATION_STYLES = {"Easy": "homestyle+comfort", "Medium": "restaurant+quality"}


def resolve_model_name(model: str, fallback_model: str) -> str:
    """Map deprecated model names to the fallback model."""
    if (model or "").strip().lower() in DEPRECATED_MODELS:
        logger.warning(f"Requested text model '{model}' is deprecated/unsupported. Using '{fallback_model}'.")
        return fallback_model
    return model


def fallback_recipes(count: int = 3) -> list[Recipe]:
    """The fixed fallback set, trimmed to count (at least one recipe)."""
    count = max(1, min(count, len(FALLBACK_RECIPES)))
    return [Recipe.model_validate(data) for data in FALLBACK_RECIPES[:count]]


def is_fallback_recipe(recipe: Recipe) -> bool:
    return recipe.id.startswith("fallback_")


def fallback_image_url(recipe: Recipe) -> str:
    """Deterministic stock-photo search URL built from title, ingredients and tags."""
    title_words = [
        word for word in re.sub(r"[^a-z0-9\s]", "", recipe.title.lower()).split() if len(word) > 2
    ]
    ingredient_words = [
        ingredient.split()[0].lower() for ingredient in recipe.ingredients[:3] if ingredient.split()
    ]
    ingredient_words = [word for word in ingredient_words if len(word) > 2]
    tag_words = [tag for tag in recipe.tags if tag in IMAGE_KEYWORD_TAGS]

    cuisine_style = next((style for tag, style in CUISINE_IMAGE_STYLES if tag in recipe.tags), "modern+professional")
    presentation = PRESENTATION_STYLES.get(recipe.difficulty or "", "gourmet+fine+dining")

    keywords = (title_words + ingredient_words + tag_words)[:4]
    keywords += [cuisine_style, presentation, "food", "photography", "delicious", "appetizing"]
    return f"https://source.unsplash.com/800x600/?{'+'.join(keywords)}"


def strip_code_fences(text: str) -> str:
    cleaned = (text or "").strip()
    cleaned = re.sub(r"^```(?:json)?\s*", "", cleaned)
    return re.sub(r"\s*```$", "", cleaned)


def parse_recipe_payload(response_text: str) -> list[dict[str, Any]]:
    """Extract the list of recipe objects from a Gemini answer.

    Lenient parsing, in order:
    1. Strip ```json fences and json.loads() the whole answer
    2. Regex-extract the outermost [...] array from surrounding text
    An object answer is accepted as {"recipes": [...]} or as a single recipe.

    Raises:
        OracleParseError: If no list of objects can be recovered.
    """
    cleaned = strip_code_fences(response_text)

    def _parse_json_direct():
        return json.loads(cleaned)

    def _parse_json_regex():
        array_match = re.search(r"\[.*\]", cleaned, re.DOTALL)
        return json.loads(array_match.group()) if array_match else None

    parsed = safe_execute_sync(_parse_json_direct, "Direct JSON parse", log_level="debug")
    if parsed is None:
        parsed = safe_execute_sync(_parse_json_regex, "Regex JSON extraction", log_level="debug")

    if isinstance(parsed, dict):
        parsed = parsed.get("recipes", [parsed])
    if not isinstance(parsed, list):
        raise OracleParseError("No JSON recipe array found in Gemini response")
    return [item for item in parsed if isinstance(item, dict)]


def compress_image(image_bytes: bytes, max_width: int = 1024) -> bytes:
    """Compress a generated image to JPEG (quality 85) when it exceeds COMPRESS_IMG_THRESHOLD_KB.

    Returns:
        Compressed bytes, or the original bytes if small enough or compression fails.
    """
    size_kb = len(image_bytes) / 1024
    if size_kb < config.COMPRESS_IMG_THRESHOLD_KB:
        return image_bytes

    def _compress():
        img = Image.open(BytesIO(image_bytes))
        if img.mode in ("RGBA", "LA", "P"):
            rgb_img = Image.new("RGB", img.size, (255, 255, 255))
            if img.mode == "RGBA":
                rgb_img.paste(img, mask=img.split()[-1])
            else:
                rgb_img.paste(img.convert("RGB"))
            img = rgb_img
        if img.width > max_width:
            ratio = max_width / img.width
            img = img.resize((max_width, int(img.height * ratio)), Image.Resampling.LANCZOS)

        output = BytesIO()
        img.save(output, format="JPEG", quality=85, optimize=True, progressive=True)
        compressed = output.getvalue()
        logger.debug(f"Recipe image compressed: {size_kb:.0f}KB → {len(compressed) / 1024:.0f}KB")
        return compressed

    return safe_execute_sync(_compress, "Recipe image compression", default_return=image_bytes)


def to_data_uri(image_bytes: bytes, declared_mime: Optional[str] = None) -> Optional[str]:
    """Encode image bytes as a data: URI, sniffing the real format from magic bytes."""
    if config.COMPRESS_IMG:
        image_bytes = compress_image(image_bytes)
    kind = filetype.guess(image_bytes)
    mime_type = kind.mime if kind is not None else declared_mime
    if not mime_type or not mime_type.startswith("image/"):
        logger.warning(f"Generated image has unrecognized format: {mime_type}")
        return None
    return f"data:{mime_type};base64,{base64.b64encode(image_bytes).decode('ascii')}"


class GeminiOracle:
    """Text and image generation through the google-genai client.

    Args:
        api_key: Gemini API key. Defaults to config.GEMINI_API_KEY; empty means fallback-only.
        model: Text model. Defaults to config.GEMINI_MODEL.
        fallback_model: Model retried once on model-not-found errors.
        image_model: Image generation model.
        client: Pre-built genai client (tests inject a fake).
        generation_delay: Seconds between sequential per-recipe calls.
        enable_images: Call the image model; otherwise only fallback image URLs are used.
        sleep: Awaitable sleep function (tests inject a no-op).
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        fallback_model: Optional[str] = None,
        image_model: Optional[str] = None,
        client: Optional[Any] = None,
        generation_delay: Optional[float] = None,
        enable_images: Optional[bool] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.api_key = config.GEMINI_API_KEY if api_key is None else api_key
        self.fallback_model = fallback_model or config.FALLBACK_TEXT_MODEL
        self.model = resolve_model_name(model or config.GEMINI_MODEL, self.fallback_model)
        self.image_model = image_model or config.IMAGE_MODEL
        self.generation_delay = config.GENERATION_DELAY_SECONDS if generation_delay is None else generation_delay
        self.enable_images = config.ENABLE_IMAGE_GENERATION if enable_images is None else enable_images
        self.max_retries = max_retries or config.MAX_RETRIES
        self.retry_delay = config.DELAY_BETWEEN_RETRIES if retry_delay is None else retry_delay
        self._client = client
        self._sleep = sleep

    @property
    def client(self) -> Optional[Any]:
        if self._client is None and self.api_key:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    @property
    def available(self) -> bool:
        return self.client is not None

    def _generation_config(self) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            temperature=config.TEMPERATURE,
            top_p=0.8,
            top_k=40,
            max_output_tokens=config.MAX_OUTPUT_TOKENS,
        )

    async def _call_model(self, model: str, contents: Any, generation_config: Any) -> Any:
        return await asyncio.to_thread(
            self.client.models.generate_content,
            model=model,
            contents=contents,
            config=generation_config,
        )

    async def generate_content_with_fallback(self, contents: Any, generation_config: Any) -> Any:
        """Call the text model; on a model-not-found error retry once with the fallback model."""
        try:
            return await self._call_model(self.model, contents, generation_config)
        except Exception as e:
            if is_model_not_found_error(e) and self.model != self.fallback_model:
                logger.warning(
                    f"Model '{self.model}' failed for generate_content. Retrying with fallback '{self.fallback_model}'..."
                )
                return await self._call_model(self.fallback_model, contents, generation_config)
            raise

    async def generate_text_with_retries(self, prompt: str) -> str:
        """Generate text, retrying transient failures with exponential backoff.

        Raises:
            OracleError: On a permanent failure or when retries are exhausted.
        """
        delay = self.retry_delay
        for attempt in range(1, self.max_retries + 1):
            try:
                response = await self.generate_content_with_fallback(prompt, self._generation_config())
                return response.text or ""
            except Exception as e:
                if is_transient_error(e) and attempt < self.max_retries:
                    logger.debug(
                        f"Transient error detected, retrying (attempt {attempt + 1}/{self.max_retries}) "
                        f"after {delay}s: {e}"
                    )
                    await self._sleep(delay)
                    delay *= 2
                    continue
                raise OracleError(f"Gemini generation failed after {attempt} attempt(s): {e}") from e
        raise OracleError("Gemini generation failed: no attempts made")

    def to_recipes(self, payload: list[dict[str, Any]], profile: UserProfile) -> list[Recipe]:
        """Validate raw recipe objects, filling defaults; invalid items are skipped."""
        recipes = []
        for item in payload:
            data = dict(item)
            data.setdefault("id", f"recipe_{uuid.uuid4().hex[:8]}")
            data.setdefault("servings", 4)
            if not data.get("difficulty"):
                data["difficulty"] = SKILL_DIFFICULTY[profile.skill_level]
            recipe = safe_execute_sync(
                lambda: Recipe.model_validate(data),
                f"Validate recipe '{data.get('title', '?')}'",
                log_level="warning",
            )
            if recipe is None:
                continue
            if not recipe.image_prompt:
                recipe = recipe.model_copy(update={"image_prompt": f"A beautifully plated {recipe.title}"})
            recipes.append(recipe)
        return recipes

    async def generate_one(
        self,
        profile: UserProfile,
        request: str,
        requirements: Optional[list[str]] = None,
        variety: Optional[VarietyState] = None,
        meal_type: Optional[str] = None,
    ) -> Recipe:
        """Draft a single recipe.

        Raises:
            OracleError: If the call fails or yields no valid recipe.
        """
        prompt = get_recipe_prompt(profile, 1, request, requirements, variety, meal_type)
        text = await self.generate_text_with_retries(prompt)
        recipes = self.to_recipes(parse_recipe_payload(text), profile)
        if not recipes:
            raise OracleParseError("Gemini returned no valid recipes")
        return recipes[0]

    async def generate(
        self,
        profile: UserProfile,
        count: int,
        request: str = "",
        requirements: Optional[list[str]] = None,
        variety: Optional[VarietyState] = None,
        meal_type: Optional[str] = None,
    ) -> list[Recipe]:
        """Draft `count` recipes sequentially, enforcing variety between calls.

        Args:
            profile: User profile.
            count: Number of recipes wanted (1-7).
            request: The user's own words.
            requirements: Extracted requirement phrases.
            variety: Seed state (e.g. ingredients from earlier turns of the session).
            meal_type: Requested meal type, if any.

        Returns:
            Drafted recipes, or the fallback set if nothing could be generated.
        """
        if not self.available:
            logger.warning("Gemini API key not configured, serving fallback recipes")
            return fallback_recipes(count)

        state = variety or VarietyState()
        recipes: list[Recipe] = []
        for index in range(count):
            if index > 0 and self.generation_delay:
                await self._sleep(self.generation_delay)
            try:
                recipe = await self.generate_one(profile, request, requirements, state, meal_type)
            except OracleError as e:
                logger.warning(f"✗ Recipe {index + 1}/{count} generation failed: {e}")
                break
            recipes.append(recipe)
            state = state.record(recipe)
            logger.info(f"✓ Generated recipe {index + 1}/{count}: {recipe.title}")

        if not recipes:
            logger.warning("No recipes generated, serving fallback recipes")
            return fallback_recipes(count)
        return recipes

    async def generate_image(self, recipe: Recipe) -> Optional[str]:
        """Render a recipe photo as a data: URI, or None if the model returned no image.

        Raises:
            Exception: Client errors propagate; attach_images() degrades them.
        """
        if not self.enable_images or not self.available:
            return None

        response = await asyncio.to_thread(
            self.client.models.generate_content,
            model=self.image_model,
            contents=get_image_prompt(recipe),
            config=types.GenerateContentConfig(response_modalities=["TEXT", "IMAGE"]),
        )
        for candidate in response.candidates or []:
            for part in (candidate.content.parts if candidate.content else None) or []:
                inline = getattr(part, "inline_data", None)
                if inline is not None and inline.data:
                    return to_data_uri(inline.data, inline.mime_type)
        return None

    async def attach_images(self, recipes: list[Recipe]) -> list[Recipe]:
        """Give every recipe an image_url: generated when possible, keyword fallback otherwise.

        Calls are sequential with the generation delay between them.
        """
        result = []
        for index, recipe in enumerate(recipes):
            if recipe.image_url:
                result.append(recipe)
                continue
            image_url = None
            if self.enable_images and self.available and not is_fallback_recipe(recipe):
                if index > 0 and self.generation_delay:
                    await self._sleep(self.generation_delay)
                image_url = await safe_execute_async(
                    self.generate_image(recipe),
                    f"Generate image for '{recipe.title}'",
                    log_level="warning",
                )
            result.append(recipe.model_copy(update={"image_url": image_url or fallback_image_url(recipe)}))
        return result
