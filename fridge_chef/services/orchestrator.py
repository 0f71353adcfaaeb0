"""Analysis orchestration: one photo plus filters in, one validated AnalysisResult out.

Pipeline (one call to analyze()):
1. prepare_image() - normalize payload to raw bytes + MIME type (InvalidInputError)
2. get_analysis_instructions() - compose filter and mode instructions
3. RecipeGenerationClient.generate() - single outbound request by default;
   MAX_RETRIES > 1 enables retries of transient ServiceUnavailable failures
4. parse_generation_response() - strict schema validation (MalformedResponseError)
5. enforce_mode_constraints() - clear missingIngredients in Only These Items mode
6. Return the AnalysisResult

Only AnalysisError subclasses escape analyze(); nothing partial is ever returned.
"""

import asyncio
import hashlib
import json
from typing import Optional

from pydantic import ValidationError

from fridge_chef.models.models import (
    AnalysisResult,
    FilterOptions,
    GeneratedRecipe,
    GenerationPayload,
    KitchenMode,
    Recipe,
)
from fridge_chef.prompts.prompts import MAX_RECIPES, MIN_RECIPES, RESPONSE_SCHEMA, get_analysis_instructions
from fridge_chef.services.errors import AnalysisError, MalformedResponseError, ServiceUnavailableError
from fridge_chef.services.gemini_client import RecipeGenerationClient
from fridge_chef.services.images import prepare_image
from fridge_chef.utils.config import Config, config as default_config
from fridge_chef.utils.logger import logger


TRANSIENT_ERROR_KEYWORDS = ("timeout", "timed out", "connection", "429", "500", "502", "503", "504", "unavailable")


def recipe_content_id(recipe: GeneratedRecipe) -> str:
    """Deterministic id derived from title, ingredients and instructions."""
    digest = hashlib.sha1()
    digest.update(recipe.title.strip().lower().encode("utf-8"))
    for item in recipe.ingredients + ["|"] + recipe.instructions:
        digest.update(b"\x1f")
        digest.update(item.strip().lower().encode("utf-8"))
    return f"recipe-{digest.hexdigest()[:16]}"


def assign_recipe_ids(recipes: list[GeneratedRecipe]) -> list[str]:
    """Assign every recipe its content id.

    Service-provided ids are ignored: they are only unique within one response
    ("1", "2", "3" on every run), while favorites are keyed by id across runs.

    Returns:
        One id per recipe, in order, all distinct.
    """
    ids: list[str] = []
    for recipe in recipes:
        if recipe.id:
            logger.debug(f"Ignoring service recipe id '{recipe.id}' for '{recipe.title}'")
        candidate = base = recipe_content_id(recipe)
        # Identical content twice in one response still needs distinct ids
        n = 2
        while candidate in ids:
            candidate = f"{base}-{n}"
            n += 1
        ids.append(candidate)
    return ids


def to_recipe(generated: GeneratedRecipe, recipe_id: str) -> Recipe:
    return Recipe(
        id=recipe_id,
        title=generated.title,
        description=generated.description or "",
        ingredients=generated.ingredients,
        pantry_items=generated.pantry_items or [],
        missing_ingredients=generated.missing_ingredients,
        instructions=generated.instructions,
        prep_time=generated.prep_time or "",
        difficulty=generated.difficulty,
        sustainability_score=generated.sustainability_score,
        calories=generated.calories or None,
    )


def enforce_mode_constraints(recipes: list[Recipe], filters: FilterOptions) -> list[Recipe]:
    """Clear missingIngredients on every recipe when mode is Only These Items.

    A non-empty list in strict mode is cosmetic drift by the service, so it is
    corrected rather than failing the whole analysis.
    """
    if filters.mode != KitchenMode.ONLY_THESE_ITEMS:
        return recipes

    corrected = []
    for recipe in recipes:
        if recipe.missing_ingredients:
            logger.warning(
                f"Recipe '{recipe.title}' listed missing ingredients {recipe.missing_ingredients} "
                f"in '{filters.mode.value}' mode, clearing them"
            )
            recipe = recipe.model_copy(update={"missing_ingredients": []})
        corrected.append(recipe)
    return corrected


def find_ungrounded_ingredients(recipe: Recipe, detected: list[str]) -> list[str]:
    """Return recipe ingredients that match neither a detected item nor a pantry item.

    Matching is case-insensitive and lenient: "2 carrots" matches "carrot".
    """
    known = [item.lower() for item in detected + recipe.pantry_items]
    ungrounded = []
    for ingredient in recipe.ingredients:
        name = ingredient.lower()
        if not any(k in name or name in k for k in known):
            ungrounded.append(ingredient)
    return ungrounded


def parse_generation_response(response_text: str, filters: FilterOptions) -> AnalysisResult:
    """Parse and validate the raw service JSON into an AnalysisResult.

    Args:
        response_text: Raw JSON text from the generation service.
        filters: Filters of the originating request (mode drives post-correction).

    Returns:
        Validated AnalysisResult with 3-5 recipes, each with a stable id.

    Raises:
        MalformedResponseError: Invalid JSON, missing required fields, wrong types,
            or a recipe count outside [3, 5].
    """
    try:
        payload = GenerationPayload.model_validate_json(response_text)
    except ValidationError as e:
        raise MalformedResponseError(f"Response does not match schema: {e.error_count()} error(s): {e}") from e

    count = len(payload.recipes)
    if not (MIN_RECIPES <= count <= MAX_RECIPES):
        raise MalformedResponseError(f"Expected {MIN_RECIPES}-{MAX_RECIPES} recipes, got {count}")

    try:
        ids = assign_recipe_ids(payload.recipes)
        recipes = [to_recipe(generated, rid) for generated, rid in zip(payload.recipes, ids)]
        recipes = enforce_mode_constraints(recipes, filters)
        result = AnalysisResult(detected_ingredients=payload.detected_ingredients, recipes=recipes)
    except ValidationError as e:
        raise MalformedResponseError(f"Recipe validation failed: {e}") from e

    for recipe in result.recipes:
        ungrounded = find_ungrounded_ingredients(recipe, result.detected_ingredients)
        if ungrounded:
            logger.debug(f"Recipe '{recipe.title}' uses items not detected in the photo: {ungrounded}")

    return result


def _is_transient(error: ServiceUnavailableError) -> bool:
    message = error.message.lower()
    if error.__cause__ is not None:
        message += " " + str(error.__cause__).lower()
    return any(keyword in message for keyword in TRANSIENT_ERROR_KEYWORDS)


class AnalysisOrchestrator:
    """Drives one analysis request end-to-end against a RecipeGenerationClient."""

    def __init__(self, client: RecipeGenerationClient, settings: Optional[Config] = None) -> None:
        self.client = client
        self.settings = settings or default_config

    async def analyze(self, image: bytes | str, filters: Optional[FilterOptions] = None) -> AnalysisResult:
        """Analyze a photo and return a validated AnalysisResult.

        Args:
            image: Image as raw bytes, data URL, or plain base64 string.
            filters: Filter options; defaults to FilterOptions().

        Returns:
            AnalysisResult with 3-5 recipes.

        Raises:
            InvalidInputError: Image payload is not a decodable, supported image.
            ServiceUnavailableError: Service unreachable, failed, or timed out.
            MalformedResponseError: Service reply did not match the response schema.
        """
        filters = filters or FilterOptions()
        image_bytes, mime_type = prepare_image(image, self.settings.MAX_IMAGE_SIZE_MB)
        instructions = get_analysis_instructions(filters)

        logger.info(
            f"Analyzing image ({mime_type}, {len(image_bytes) / 1024:.1f}KB) with filters "
            f"dietary={filters.dietary.value}, time={filters.time.value}, mode={filters.mode.value}"
        )

        response_text = await self._generate_with_retries(image_bytes, mime_type, instructions)
        result = parse_generation_response(response_text, filters)

        logger.info(
            f"Analysis complete: {len(result.detected_ingredients)} ingredients detected, "
            f"{len(result.recipes)} recipes"
        )
        return result

    def submit(self, image: bytes | str, filters: Optional[FilterOptions] = None) -> "asyncio.Task[AnalysisResult]":
        """Schedule analyze() on the running loop and return the task."""
        return asyncio.create_task(self.analyze(image, filters))

    async def _generate_once(self, image_bytes: bytes, mime_type: str, instructions: str) -> str:
        try:
            return await asyncio.wait_for(
                self.client.generate(image_bytes, mime_type, instructions, RESPONSE_SCHEMA),
                timeout=self.settings.REQUEST_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError as e:
            raise ServiceUnavailableError(
                f"Generation request timed out after {self.settings.REQUEST_TIMEOUT_SECONDS}s"
            ) from e
        except AnalysisError:
            raise
        except Exception as e:
            raise ServiceUnavailableError(f"Generation client failed: {e}") from e

    async def _generate_with_retries(self, image_bytes: bytes, mime_type: str, instructions: str) -> str:
        """Call the client, retrying transient ServiceUnavailable failures with backoff.

        With the default MAX_RETRIES=1 this is exactly one outbound request.
        Malformed responses and permanent failures are never retried.
        """
        max_attempts = self.settings.MAX_RETRIES
        delay_seconds = self.settings.DELAY_BETWEEN_RETRIES

        for attempt in range(1, max_attempts + 1):
            try:
                return await self._generate_once(image_bytes, mime_type, instructions)
            except ServiceUnavailableError as e:
                if attempt >= max_attempts or not _is_transient(e):
                    raise
                logger.debug(
                    f"Transient error, retrying (attempt {attempt + 1}/{max_attempts}) after {delay_seconds}s: {e}"
                )
                await asyncio.sleep(delay_seconds)
                if self.settings.EXPONENTIAL_BACKOFF:
                    delay_seconds *= 2

        # Unreachable: loop either returns or raises
        raise ServiceUnavailableError("Generation retries exhausted")


def dump_result(result: AnalysisResult) -> str:
    """Serialize an AnalysisResult with wire (camelCase) field names."""
    return json.dumps(result.model_dump(mode="json", by_alias=True), ensure_ascii=False, indent=2)
