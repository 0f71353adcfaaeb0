"""Persisted favorites collection.

Favorites are keyed by recipe id and stored as a single JSON file holding an
array of full Recipe objects (camelCase fields). The whole file is rewritten on
every toggle.

Storage failures never escape: a missing or corrupted file loads as an empty
collection, and a failed save is logged while the in-memory collection stays
authoritative for the current session.
"""

import os
import tempfile
import threading
from pathlib import Path
from typing import Iterator, List, Optional

from pydantic import TypeAdapter, ValidationError

from fridge_chef.models.models import Recipe
from fridge_chef.utils.config import config
from fridge_chef.utils.logger import logger


RECIPE_LIST_ADAPTER = TypeAdapter(List[Recipe])


class FavoritesStore:
    """Id-keyed set of favorite recipes with a load/save lifecycle.

    toggle() is the only mutator. Each toggle holds a reentrant lock across the
    mutation and the file write, so the store is safe to share with a
    multi-threaded host and the file always reflects the latest toggle.
    """

    def __init__(self, path: Optional[str | Path] = None) -> None:
        self.path = Path(path or config.FAVORITES_FILE)
        self._favorites: dict[str, Recipe] = {}
        self._lock = threading.RLock()

    def load(self) -> List[Recipe]:
        """Read persisted favorites, replacing the in-memory collection.

        Returns:
            Loaded recipes in stored order. Empty list if the file is absent or
            cannot be parsed (corruption self-heals to empty on the next save).
        """
        recipes: List[Recipe] = []
        if self.path.exists():
            try:
                recipes = RECIPE_LIST_ADAPTER.validate_json(self.path.read_bytes())
            except (OSError, ValidationError) as e:
                logger.warning(f"Failed to load favorites from {self.path}, starting empty: {e}")
                recipes = []
        else:
            logger.debug(f"No favorites file at {self.path}, starting empty")

        with self._lock:
            self._favorites = {}
            for recipe in recipes:
                self._favorites.setdefault(recipe.id, recipe)
            loaded = list(self._favorites.values())

        logger.info(f"Loaded {len(loaded)} favorite(s)")
        return loaded

    def save(self) -> bool:
        """Write the full collection to disk, replacing the previous file atomically.

        Snapshot and write happen under the store lock, so concurrent saves land
        on disk in mutation order.

        Returns:
            True on success, False if persisting failed (logged, non-fatal).
        """
        with self._lock:
            snapshot = list(self._favorites.values())
            data = RECIPE_LIST_ADAPTER.dump_json(snapshot, by_alias=True)

            tmp_path = None
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".favorites-", suffix=".json")
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
                os.replace(tmp_path, self.path)
                tmp_path = None
                logger.debug(f"Saved {len(snapshot)} favorite(s) to {self.path}")
                return True
            except OSError as e:
                logger.warning(f"Failed to save favorites to {self.path}: {e}")
                return False
            finally:
                if tmp_path and os.path.exists(tmp_path):
                    os.remove(tmp_path)

    def toggle(self, recipe: Recipe) -> bool:
        """Remove the recipe if its id is already a favorite, otherwise add it, then save.

        Args:
            recipe: Recipe to toggle. Only its id decides membership.

        Returns:
            True if the recipe is a favorite after the toggle.
        """
        with self._lock:
            if recipe.id in self._favorites:
                del self._favorites[recipe.id]
                is_favorite = False
            else:
                self._favorites[recipe.id] = recipe
                is_favorite = True

            logger.info(f"Favorite {'added' if is_favorite else 'removed'}: '{recipe.title}' ({recipe.id})")
            self.save()
        return is_favorite

    def is_favorite(self, recipe: Recipe | str) -> bool:
        recipe_id = recipe if isinstance(recipe, str) else recipe.id
        return recipe_id in self._favorites

    @property
    def recipes(self) -> List[Recipe]:
        """Favorites in the order they were added."""
        with self._lock:
            return list(self._favorites.values())

    def __contains__(self, recipe: Recipe | str) -> bool:
        return self.is_favorite(recipe)

    def __len__(self) -> int:
        return len(self._favorites)

    def __iter__(self) -> Iterator[Recipe]:
        return iter(self.recipes)

