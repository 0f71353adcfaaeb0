"""Unit tests for AnalysisOrchestrator and response parsing."""

import asyncio
import json

import pytest

from fridge_chef.models.models import FilterOptions, GeneratedRecipe, KitchenMode
from fridge_chef.services.errors import (
    FailureKind,
    InvalidInputError,
    MalformedResponseError,
    ServiceUnavailableError,
)
from fridge_chef.services.orchestrator import (
    AnalysisOrchestrator,
    assign_recipe_ids,
    dump_result,
    find_ungrounded_ingredients,
    parse_generation_response,
    recipe_content_id,
)
from fridge_chef.prompts.prompts import RESPONSE_SCHEMA
from fridge_chef.utils.config import Config
from tests.factories import GIF_BYTES, PNG_BYTES, FakeGenerationClient, make_generated_recipe, make_payload, make_recipe


@pytest.fixture
def settings(monkeypatch):
    """Fast, deterministic orchestrator settings (single attempt by default)."""
    monkeypatch.setenv("MAX_RETRIES", "1")
    monkeypatch.setenv("DELAY_BETWEEN_RETRIES", "0")
    monkeypatch.setenv("REQUEST_TIMEOUT_SECONDS", "5")
    return Config()


class TestRecipeIds:
    """Test stable recipe id assignment."""

    def test_content_id_is_deterministic(self):
        recipe = GeneratedRecipe.model_validate(make_generated_recipe(1, id=None))
        same = GeneratedRecipe.model_validate(make_generated_recipe(1, id=None, description="Other text"))

        assert recipe_content_id(recipe) == recipe_content_id(same)
        assert recipe_content_id(recipe).startswith("recipe-")

    def test_content_id_changes_with_content(self):
        first = GeneratedRecipe.model_validate(make_generated_recipe(1))
        second = GeneratedRecipe.model_validate(make_generated_recipe(2))
        assert recipe_content_id(first) != recipe_content_id(second)

    def test_service_ids_replaced_by_content_ids(self):
        """Test that per-response ids like "1", "2", "3" never become recipe identity."""
        recipes = [GeneratedRecipe.model_validate(make_generated_recipe(i, id=str(i))) for i in (1, 2, 3)]

        assert assign_recipe_ids(recipes) == [recipe_content_id(r) for r in recipes]

    def test_same_service_id_across_runs_gets_different_ids(self):
        first_run = GeneratedRecipe.model_validate(make_generated_recipe(1, id="1", title="Omelette"))
        second_run = GeneratedRecipe.model_validate(make_generated_recipe(1, id="1", title="Fried rice"))

        assert assign_recipe_ids([first_run]) != assign_recipe_ids([second_run])

    def test_missing_and_duplicate_ids_replaced(self):
        recipes = [
            GeneratedRecipe.model_validate(make_generated_recipe(1, id="dup")),
            GeneratedRecipe.model_validate(make_generated_recipe(2, id="dup")),
            GeneratedRecipe.model_validate(make_generated_recipe(3, id=None)),
        ]
        ids = assign_recipe_ids(recipes)

        assert len(set(ids)) == 3
        assert "dup" not in ids
        assert ids == [recipe_content_id(r) for r in recipes]

    def test_identical_content_gets_distinct_ids(self):
        recipe = GeneratedRecipe.model_validate(make_generated_recipe(1, id=None))
        ids = assign_recipe_ids([recipe, recipe, recipe])

        base = recipe_content_id(recipe)
        assert ids == [base, f"{base}-2", f"{base}-3"]


class TestParseGenerationResponse:
    """Test strict validation of the raw service JSON."""

    def test_valid_response(self, valid_response_text):
        result = parse_generation_response(valid_response_text, FilterOptions())

        assert result.detected_ingredients == ["Carrot", "Yogurt"]
        assert [r.title for r in result.recipes] == ["Carrot Yogurt Bowl 1", "Carrot Yogurt Bowl 2", "Carrot Yogurt Bowl 3"]
        assert all(r.id.startswith("recipe-") for r in result.recipes)
        assert result.recipes[0].pantry_items == ["olive oil", "salt"]

    @pytest.mark.parametrize("count", [0, 2, 6])
    def test_recipe_count_outside_range_is_malformed(self, count):
        with pytest.raises(MalformedResponseError, match="Expected 3-5 recipes"):
            parse_generation_response(json.dumps(make_payload(count)), FilterOptions())

    def test_invalid_json_is_malformed(self):
        with pytest.raises(MalformedResponseError) as exc_info:
            parse_generation_response("Sorry, I cannot help with that.", FilterOptions())
        assert exc_info.value.kind == FailureKind.MALFORMED_RESPONSE

    def test_missing_required_field_is_malformed(self):
        payload = make_payload(3)
        del payload["recipes"][1]["instructions"]

        with pytest.raises(MalformedResponseError):
            parse_generation_response(json.dumps(payload), FilterOptions())

    def test_wrong_difficulty_is_malformed(self):
        with pytest.raises(MalformedResponseError):
            parse_generation_response(json.dumps(make_payload(3, difficulty="Extreme")), FilterOptions())

    def test_only_these_items_clears_missing_ingredients(self):
        text = json.dumps(make_payload(3, missingIngredients=["lemon"]))

        result = parse_generation_response(text, FilterOptions(mode=KitchenMode.ONLY_THESE_ITEMS))

        assert all(r.missing_ingredients == [] for r in result.recipes)

    def test_other_modes_keep_missing_ingredients(self):
        text = json.dumps(make_payload(3, missingIngredients=["lemon"]))

        result = parse_generation_response(text, FilterOptions(mode=KitchenMode.STUDENT_HOUSEHOLD))

        assert all(r.missing_ingredients == ["lemon"] for r in result.recipes)


class TestFindUngroundedIngredients:
    def test_lenient_matching(self):
        recipe = make_recipe(ingredients=["2 carrots", "Greek yogurt", "saffron"], pantry_items=["salt"])
        assert find_ungrounded_ingredients(recipe, ["carrot", "yogurt"]) == ["saffron"]


class TestAnalysisOrchestrator:
    """Test AnalysisOrchestrator.analyze() end to end with a fake client."""

    @pytest.mark.asyncio
    async def test_analyze_success(self, settings, valid_response_text):
        client = FakeGenerationClient(valid_response_text)
        orchestrator = AnalysisOrchestrator(client, settings)

        result = await orchestrator.analyze(PNG_BYTES, FilterOptions(dietary="Vegan", time="Quick (15 min)"))

        assert len(result.recipes) == 3
        assert len(client.calls) == 1
        call = client.calls[0]
        assert call["image_bytes"] == PNG_BYTES
        assert call["mime_type"] == "image/png"
        assert "Vegan" in call["instructions"]
        assert call["response_schema"] is RESPONSE_SCHEMA

    @pytest.mark.asyncio
    async def test_analyze_accepts_data_url(self, settings, valid_response_text, png_data_url):
        client = FakeGenerationClient(valid_response_text)

        await AnalysisOrchestrator(client, settings).analyze(png_data_url)

        assert client.calls[0]["image_bytes"] == PNG_BYTES

    @pytest.mark.asyncio
    async def test_invalid_image_never_reaches_client(self, settings, valid_response_text):
        client = FakeGenerationClient(valid_response_text)

        with pytest.raises(InvalidInputError):
            await AnalysisOrchestrator(client, settings).analyze(GIF_BYTES)

        assert client.calls == []

    @pytest.mark.asyncio
    async def test_client_exception_becomes_service_unavailable(self, settings):
        client = FakeGenerationClient(RuntimeError("boom"))

        with pytest.raises(ServiceUnavailableError, match="boom"):
            await AnalysisOrchestrator(client, settings).analyze(PNG_BYTES)

    @pytest.mark.asyncio
    async def test_malformed_response_propagates(self, settings):
        client = FakeGenerationClient(json.dumps(make_payload(2)))

        with pytest.raises(MalformedResponseError):
            await AnalysisOrchestrator(client, settings).analyze(PNG_BYTES)

    @pytest.mark.asyncio
    async def test_timeout_is_service_unavailable(self, monkeypatch):
        monkeypatch.setenv("REQUEST_TIMEOUT_SECONDS", "0.05")
        monkeypatch.setenv("MAX_RETRIES", "1")
        client = FakeGenerationClient("{}", gate=asyncio.Event())

        with pytest.raises(ServiceUnavailableError, match="timed out"):
            await AnalysisOrchestrator(client, Config()).analyze(PNG_BYTES)

    @pytest.mark.asyncio
    async def test_single_attempt_by_default(self, settings):
        client = FakeGenerationClient(ServiceUnavailableError("503 unavailable"))

        with pytest.raises(ServiceUnavailableError):
            await AnalysisOrchestrator(client, settings).analyze(PNG_BYTES)

        assert len(client.calls) == 1

    @pytest.mark.asyncio
    async def test_transient_failure_retried_when_enabled(self, monkeypatch, valid_response_text):
        monkeypatch.setenv("MAX_RETRIES", "3")
        monkeypatch.setenv("DELAY_BETWEEN_RETRIES", "0")
        client = FakeGenerationClient(ServiceUnavailableError("503 unavailable"), valid_response_text)

        result = await AnalysisOrchestrator(client, Config()).analyze(PNG_BYTES)

        assert len(result.recipes) == 3
        assert len(client.calls) == 2

    @pytest.mark.asyncio
    async def test_permanent_failure_not_retried(self, monkeypatch):
        monkeypatch.setenv("MAX_RETRIES", "3")
        monkeypatch.setenv("DELAY_BETWEEN_RETRIES", "0")
        client = FakeGenerationClient(ServiceUnavailableError("API key not valid"))

        with pytest.raises(ServiceUnavailableError):
            await AnalysisOrchestrator(client, Config()).analyze(PNG_BYTES)

        assert len(client.calls) == 1

    @pytest.mark.asyncio
    async def test_malformed_response_not_retried(self, monkeypatch):
        monkeypatch.setenv("MAX_RETRIES", "3")
        monkeypatch.setenv("DELAY_BETWEEN_RETRIES", "0")
        client = FakeGenerationClient("not json")

        with pytest.raises(MalformedResponseError):
            await AnalysisOrchestrator(client, Config()).analyze(PNG_BYTES)

        assert len(client.calls) == 1

    @pytest.mark.asyncio
    async def test_submit_returns_task(self, settings, valid_response_text):
        orchestrator = AnalysisOrchestrator(FakeGenerationClient(valid_response_text), settings)

        task = orchestrator.submit(PNG_BYTES)

        assert isinstance(task, asyncio.Task)
        assert len((await task).recipes) == 3


class TestDumpResult:
    def test_uses_camel_case(self, valid_response_text):
        result = parse_generation_response(valid_response_text, FilterOptions())
        data = json.loads(dump_result(result))

        assert "detectedIngredients" in data
        assert "sustainabilityScore" in data["recipes"][0]


class TestOrchestratorImageLimit:
    """Test that the injected settings decide the image size limit."""

    @pytest.mark.asyncio
    async def test_settings_limit_applies(self, monkeypatch, valid_response_text):
        monkeypatch.setenv("MAX_IMAGE_SIZE_MB", "1")
        client = FakeGenerationClient(valid_response_text)
        oversized = PNG_BYTES + b"\x00" * (1024 * 1024)

        with pytest.raises(InvalidInputError, match="Maximum size is 1MB"):
            await AnalysisOrchestrator(client, Config()).analyze(oversized)

        assert client.calls == []

    @pytest.mark.asyncio
    async def test_larger_settings_limit_overrides_global(self, monkeypatch, valid_response_text):
        monkeypatch.setattr("fridge_chef.services.images.config.MAX_IMAGE_SIZE_MB", 1)
        monkeypatch.setenv("MAX_IMAGE_SIZE_MB", "5")
        client = FakeGenerationClient(valid_response_text)
        two_mb = PNG_BYTES + b"\x00" * (2 * 1024 * 1024)

        result = await AnalysisOrchestrator(client, Config()).analyze(two_mb)

        assert len(result.recipes) == 3
