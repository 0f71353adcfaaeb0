"""Prompts and response schema for fridge photo analysis.

Provides factory functions that compose the natural-language instruction block
sent with each photo. The instruction combines:
- Filter constraints (dietary, time) - only non-default values add a constraint
- One of four fixed mode blocks selected by KitchenMode
- Shared role, goals and recipe strategy

RESPONSE_SCHEMA is the fixed structural schema (Gemini schema dialect) the
service must answer with.
"""

from fridge_chef.models.models import DietaryPreference, FilterOptions, KitchenMode, TimeBudget


MIN_RECIPES = 3
MAX_RECIPES = 5


MODE_INSTRUCTIONS = {
    KitchenMode.STANDARD: (
        "Standard Mode: Suggest balanced, economical and tasty recipes. "
        "You may assume basic staples such as flour, sugar, tomato paste and common spices are at home."
    ),
    KitchenMode.STUDENT_HOUSEHOLD: (
        "Student Household Mode: Recipes must create minimal dishware (one pot, pan or tray) "
        "and be prepared in the cheapest possible way. Prefer the stovetop over the oven."
    ),
    KitchenMode.FIT_LIVING: (
        "Fit Living Mode: Always estimate and fill in the calories of every recipe. "
        "Offer protein-focused options with healthy fats and low carbohydrates. Do not suggest frying."
    ),
    KitchenMode.ONLY_THESE_ITEMS: (
        "Only These Items Mode (Strict Mode): Assume there are NO extra ingredients at home other than "
        "cooking oil, salt and black pepper. Create dishes using only what is visible in the photo. "
        "The 'pantryItems' list may only contain oil, salt, black pepper or water, nothing else. "
        "The 'missingIngredients' list MUST be empty for every recipe."
    ),
}


def build_filter_prompt(filters: FilterOptions) -> str:
    """Compose user preference constraints. Default filter values add nothing.

    Args:
        filters: User-selected filter options.

    Returns:
        str: Constraint sentences, or an empty string when all filters are default.
    """
    constraints = []
    if filters.dietary != DietaryPreference.ALL:
        constraints.append(f"Dietary Preference: Every recipe must strictly be {filters.dietary.value}.")
    if filters.time != TimeBudget.ANY:
        constraints.append(
            f"Time Constraint: Preparation plus cooking time must fit the '{filters.time.value}' option."
        )
    return " ".join(constraints)


def get_mode_instruction(mode: KitchenMode) -> str:
    """Return the fixed instruction block for a kitchen mode."""
    return MODE_INSTRUCTIONS.get(mode, MODE_INSTRUCTIONS[KitchenMode.STANDARD])


def _get_recipe_strategy(mode: KitchenMode) -> str:
    if mode == KitchenMode.ONLY_THESE_ITEMS:
        return "- 'Only These Items' mode is selected: missingIngredients MUST be an empty list for every recipe."
    return (
        "- For 1-2 recipes, use the missingIngredients list for suggestions like "
        "\"if you buy just one more item, you can make this great dish\".\n"
        "- Keep missingIngredients empty for recipes made strictly from the fridge."
    )


def get_analysis_instructions(filters: FilterOptions) -> str:
    """Generate the complete instruction text sent alongside the photo.

    Args:
        filters: User-selected filter options.

    Returns:
        str: Instruction block for the generation service.
    """
    filter_prompt = build_filter_prompt(filters) or "No additional preferences."
    return f"""You are an expert chef and sustainability advisor.
Your task is to analyze this photo of food storage contents and create recipes using the visible ingredients.

User Preferences:
{filter_prompt}

Selected Mode and Special Instructions:
{get_mode_instruction(filters.mode)}

Our Goals:
1. Prevent food waste.
2. Be economical.

Answer in JSON only, following the response schema.
Suggest at least {MIN_RECIPES} and at most {MAX_RECIPES} recipes.
List every item you can see in detectedIngredients.
Each recipe's ingredients must come from detectedIngredients; assumed staples go in pantryItems.

Recipe Strategy:
{_get_recipe_strategy(filters.mode)}
"""


RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "detectedIngredients": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "List of ingredients detected in the image (e.g., yogurt, zucchini, carrots).",
        },
        "recipes": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "id": {"type": "STRING"},
                    "title": {"type": "STRING", "description": "A catchy name for the dish."},
                    "description": {
                        "type": "STRING",
                        "description": "Brief explanation emphasizing why this prevents waste or saves money.",
                    },
                    "ingredients": {
                        "type": "ARRAY",
                        "items": {"type": "STRING"},
                        "description": "Ingredients from the photo used.",
                    },
                    "pantryItems": {
                        "type": "ARRAY",
                        "items": {"type": "STRING"},
                        "description": "Common household items needed (oil, salt, flour, etc.).",
                    },
                    "missingIngredients": {
                        "type": "ARRAY",
                        "items": {"type": "STRING"},
                        "description": "Ingredients NOT in the photo but required. Empty if made strictly from the fridge.",
                    },
                    "instructions": {
                        "type": "ARRAY",
                        "items": {"type": "STRING"},
                        "description": "Step-by-step cooking instructions.",
                    },
                    "prepTime": {"type": "STRING", "description": "Estimated time (e.g., '15 min', '30 min')."},
                    "difficulty": {"type": "STRING", "enum": ["Easy", "Medium", "Hard"]},
                    "sustainabilityScore": {
                        "type": "NUMBER",
                        "description": "Score from 1-10 on how much waste this prevents.",
                    },
                    "calories": {
                        "type": "STRING",
                        "description": "Approximate calories per serving (e.g. '350 kcal').",
                    },
                },
                "required": [
                    "title",
                    "ingredients",
                    "instructions",
                    "difficulty",
                    "sustainabilityScore",
                    "missingIngredients",
                ],
            },
        },
    },
    "required": ["detectedIngredients", "recipes"],
}
