#!/usr/bin/env python3
"""Ad hoc runner for Fridge Chef.

Analyze a fridge photo from the command line without any UI.

Usage:
    python query.py --image images/fridge.jpg
    python query.py --image images/fridge.jpg --dietary Vegan --time "Quick (15 min)"
    python query.py --image images/fridge.jpg --mode "Only These Items" --favorite 1
    python query.py --image images/fridge.jpg --debug   # Show full JSON result
    python query.py --favorites                          # List saved favorites

Features:
- Drives AppStateMachine exactly like a UI would (select image, toggle favorite)
- Rich console rendering of detected ingredients and recipes
- Favorites toggled by 1-based recipe number, persisted to FAVORITES_FILE
"""

import asyncio
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from fridge_chef.models.models import (
    AppState,
    DietaryPreference,
    FilterOptions,
    KitchenMode,
    Recipe,
    TimeBudget,
)
from fridge_chef.services.gemini_client import GeminiRecipeClient
from fridge_chef.services.orchestrator import AnalysisOrchestrator, dump_result
from fridge_chef.state.machine import AppStateMachine
from fridge_chef.storage.favorites import FavoritesStore
from fridge_chef.utils.logger import logger

console = Console()

USAGE = (
    "Usage: python query.py [--image PATH] [--dietary VALUE] [--time VALUE] [--mode VALUE] "
    "[--favorite N ...] [--favorites] [--debug]"
)

VALUE_FLAGS = {
    "--image": "image_path",
    "--dietary": "dietary",
    "--time": "time",
    "--mode": "mode",
}


def parse_args(argv: list[str]) -> dict:
    """Parse command-line flags into an options dict.

    Raises:
        ValueError: Unknown flag, missing value, or an invalid filter value.
    """
    options = {
        "image_path": None,
        "dietary": None,
        "time": None,
        "mode": None,
        "favorite": [],
        "favorites": False,
        "debug": False,
    }

    i = 0
    while i < len(argv):
        flag = argv[i]
        if flag in VALUE_FLAGS or flag == "--favorite":
            if i + 1 >= len(argv):
                raise ValueError(f"{flag} flag requires a value")
            value = argv[i + 1]
            if flag == "--favorite":
                if not value.isdigit() or int(value) < 1:
                    raise ValueError(f"--favorite expects a recipe number starting at 1, got: {value}")
                options["favorite"].append(int(value))
            else:
                options[VALUE_FLAGS[flag]] = value
            i += 2
        elif flag == "--favorites":
            options["favorites"] = True
            i += 1
        elif flag == "--debug":
            options["debug"] = True
            i += 1
        else:
            raise ValueError(f"Unknown flag: {flag}")

    if not options["image_path"] and not options["favorites"]:
        raise ValueError("Provide --image PATH or --favorites")

    options["filters"] = build_filters(options["dietary"], options["time"], options["mode"])
    return options


def build_filters(dietary: Optional[str], time: Optional[str], mode: Optional[str]) -> FilterOptions:
    """Build FilterOptions from CLI strings, matching enum values case-insensitively."""

    def _match(enum_cls, raw: Optional[str]):
        if raw is None:
            return None
        for member in enum_cls:
            if raw.strip().lower() in (member.value.lower(), member.name.lower()):
                return member
        allowed = ", ".join(f"'{m.value}'" for m in enum_cls)
        raise ValueError(f"Invalid value '{raw}'. Allowed: {allowed}")

    values = {
        "dietary": _match(DietaryPreference, dietary),
        "time": _match(TimeBudget, time),
        "mode": _match(KitchenMode, mode),
    }
    return FilterOptions(**{k: v for k, v in values.items() if v is not None})


def render_recipe(index: int, recipe: Recipe, is_favorite: bool) -> Panel:
    """Render one recipe card."""
    lines = []
    if recipe.description:
        lines.append(f"[italic]{recipe.description}[/italic]\n")
    meta = f"⏱ {recipe.prep_time or '?'}  •  {recipe.difficulty.value}  •  🌱 {recipe.sustainability_score:g}/10"
    if recipe.calories:
        meta += f"  •  🔥 {recipe.calories}"
    lines.append(meta)
    lines.append(f"\n[bold]From your fridge:[/bold] {', '.join(recipe.ingredients) or '-'}")
    if recipe.pantry_items:
        lines.append(f"[bold]Pantry:[/bold] {', '.join(recipe.pantry_items)}")
    if recipe.missing_ingredients:
        lines.append(f"[yellow][bold]Buy:[/bold] {', '.join(recipe.missing_ingredients)}[/yellow]")
    lines.append("\n[bold]Steps:[/bold]")
    lines.extend(f"  {n}. {step}" for n, step in enumerate(recipe.instructions, 1))

    heart = "❤️ " if is_favorite else ""
    return Panel("\n".join(lines), title=f"{index}. {heart}{recipe.title}", title_align="left")


def render_favorites(machine: AppStateMachine) -> None:
    recipes = machine.favorite_recipes
    if not recipes:
        console.print("[dim]No favorite recipes yet.[/dim]")
        return
    table = Table(title=f"Favorite recipes ({len(recipes)})")
    table.add_column("Title")
    table.add_column("Time")
    table.add_column("Difficulty")
    table.add_column("Score", justify="right")
    for recipe in recipes:
        table.add_row(recipe.title, recipe.prep_time, recipe.difficulty.value, f"{recipe.sustainability_score:g}")
    console.print(table)


async def run_query(options: dict) -> int:
    """Run one CLI session against a fresh AppStateMachine.

    Returns:
        Process exit code.
    """
    favorites = FavoritesStore()
    favorites.load()
    machine = AppStateMachine(AnalysisOrchestrator(GeminiRecipeClient()), favorites)

    if options["image_path"]:
        image_file = Path(options["image_path"])
        if not image_file.exists():
            console.print(f"[red]✗ Error: Image file not found: {image_file}[/red]")
            return 1

        logger.info(f"Loading image: {image_file.name}...")
        image_bytes = image_file.read_bytes()

        with console.status("Analyzing your fridge..."):
            await machine.select_image(image_bytes, options["filters"])

        if machine.state == AppState.ERROR:
            console.print(f"[red]✗ {machine.error}[/red]")
            machine.reset()
            return 1

        result = machine.result
        if options["debug"]:
            console.print("[bold cyan]Debug Mode: Full Result[/bold cyan]")
            console.print_json(dump_result(result))

        console.print(f"\n[bold]Detected ingredients:[/bold] {', '.join(result.detected_ingredients)}\n")

        for number in options["favorite"]:
            if number > len(result.recipes):
                console.print(f"[yellow]No recipe number {number}, skipping[/yellow]")
                continue
            machine.toggle_favorite(result.recipes[number - 1])

        for index, recipe in enumerate(result.recipes, 1):
            console.print(render_recipe(index, recipe, machine.is_favorite(recipe)))

    if options["favorites"]:
        machine.show_favorites()
        render_favorites(machine)

    return 0


if __name__ == "__main__":
    try:
        cli_options = parse_args(sys.argv[1:])
    except ValueError as e:
        print(f"Error: {e}")
        print(USAGE)
        sys.exit(1)

    try:
        sys.exit(asyncio.run(run_query(cli_options)))
    except KeyboardInterrupt:
        logger.info("\nQuery interrupted by user.")
        sys.exit(0)
