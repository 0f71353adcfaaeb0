"""Data models and schemas for Fridge Chef.

Defines Pydantic models for filter options, recipes, and analysis results.
All models use Pydantic v2. Recipes serialize with camelCase field names, which is
both the generation service wire format and the persisted favorites layout.
"""

from enum import Enum
from typing import List, Optional, Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class DietaryPreference(str, Enum):
    ALL = "All"
    VEGAN = "Vegan"
    VEGETARIAN = "Vegetarian"
    GLUTEN_FREE = "Gluten-Free"
    LOW_CARB = "Low-Carb"


class TimeBudget(str, Enum):
    ANY = "Any"
    QUICK_15 = "Quick (15 min)"
    QUICK_30 = "Fast (30 min)"


class KitchenMode(str, Enum):
    STANDARD = "Standard"
    STUDENT_HOUSEHOLD = "Student Household"
    FIT_LIVING = "Fit Living"
    ONLY_THESE_ITEMS = "Only These Items"


class Difficulty(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class AppState(str, Enum):
    """Top-level UI states. Exactly one is active at a time."""

    IDLE = "IDLE"
    ANALYZING = "ANALYZING"
    RESULTS = "RESULTS"
    FAVORITES = "FAVORITES"
    ERROR = "ERROR"


class FilterOptions(BaseModel):
    """User-chosen constraints for one analysis request.

    Built fresh per submission and passed unchanged to the orchestrator.
    All fields are closed enumerations, so any constructed instance is valid.
    """

    model_config = ConfigDict(frozen=True)

    dietary: Annotated[
        DietaryPreference, Field(DietaryPreference.ALL, description="Dietary restriction applied to every recipe")
    ]
    time: Annotated[TimeBudget, Field(TimeBudget.ANY, description="Preparation plus cooking time budget")]
    mode: Annotated[KitchenMode, Field(KitchenMode.STANDARD, description="Cooking-constraint preset")]


class Recipe(BaseModel):
    """Domain model for a generated recipe.

    Identity is the `id` field only. Two recipes with the same id are the same
    favorite even when other fields differ.
    """

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: Annotated[str, Field(min_length=1, description="Stable unique recipe identity")]
    title: Annotated[str, Field(min_length=1, description="Dish name")]
    description: Annotated[
        str, Field("", description="Why this dish prevents waste or saves money")
    ]
    ingredients: Annotated[
        List[str], Field(default_factory=list, description="Items from the photo that this recipe uses")
    ]
    pantry_items: Annotated[
        List[str], Field(default_factory=list, description="Assumed household staples (oil, salt, flour, ...)")
    ]
    missing_ingredients: Annotated[
        List[str], Field(default_factory=list, description="Items to buy before cooking")
    ]
    instructions: Annotated[List[str], Field(default_factory=list, description="Sequential cooking steps")]
    prep_time: Annotated[str, Field("", description="Estimated time, e.g. '15 min'")]
    difficulty: Difficulty
    sustainability_score: Annotated[
        float, Field(ge=1, le=10, description="1-10 rating of how much food waste this prevents")
    ]
    calories: Annotated[Optional[str], Field(None, description="Approximate calories per serving")]

    @field_validator("sustainability_score", mode="before")
    @classmethod
    def clamp_sustainability_score(cls, v):
        """Clamp numeric scores into 1-10; the service occasionally drifts out of range."""
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return v
        return min(10.0, max(1.0, float(v)))

    @property
    def has_missing_ingredients(self) -> bool:
        return bool(self.missing_ingredients)


class AnalysisResult(BaseModel):
    """Validated outcome of one successful analysis: detected items plus 3-5 recipes."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    detected_ingredients: Annotated[
        List[str], Field(default_factory=list, description="Items visible in the photo, first-seen order")
    ]
    recipes: Annotated[List[Recipe], Field(min_length=3, max_length=5, description="Generated recipes (3-5)")]

    @field_validator("detected_ingredients", mode="after")
    @classmethod
    def dedupe_detected_ingredients(cls, v: List[str]) -> List[str]:
        """Drop blanks and case-insensitive duplicates, keeping first-seen order."""
        seen = set()
        unique = []
        for item in v:
            name = item.strip()
            key = name.lower()
            if name and key not in seen:
                seen.add(key)
                unique.append(name)
        return unique


# ============================================================================
# Generation service payload (raw response before identity assignment)
# ============================================================================


class GeneratedRecipe(BaseModel):
    """One recipe exactly as the generation service returns it.

    Mirrors the response schema: id, description, pantryItems, prepTime and
    calories are optional there, everything else is required.
    """

    model_config = ConfigDict(str_strip_whitespace=True, alias_generator=to_camel, populate_by_name=True)

    id: Optional[str] = None
    title: Annotated[str, Field(min_length=1)]
    description: Optional[str] = None
    ingredients: List[str]
    pantry_items: Optional[List[str]] = None
    missing_ingredients: List[str]
    instructions: List[str]
    prep_time: Optional[str] = None
    difficulty: Difficulty
    sustainability_score: float
    calories: Optional[str] = None


class GenerationPayload(BaseModel):
    """Top-level generation service response."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    detected_ingredients: List[str]
    recipes: List[GeneratedRecipe]
