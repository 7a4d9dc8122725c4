"""
Abstractions for recipe and user persistence.
Enables backend swapping (SQLite, MongoDB) and testability via dependency injection.
"""

from typing import Any, List, Optional, Protocol, Tuple

from recipebox.models import Recipe, User
from recipebox.queries import SearchCriteria


class RecipeRepository(Protocol):
    """Abstract interface for recipe documents.

    Writes validate the full document against the Recipe model and raise
    pydantic.ValidationError when it does not conform.
    """

    async def find_recipes(
        self,
        criteria: SearchCriteria,
        limit: Optional[int] = None,
        populate_author: bool = False,
    ) -> List[Recipe]:
        """Recipes matching criteria, newest first."""
        ...

    async def get_recipe(
        self, recipe_id: str, populate_author: bool = False
    ) -> Optional[Recipe]:
        """Get a recipe by ID. Malformed IDs are treated as absent."""
        ...

    async def create_recipe(self, document: dict[str, Any]) -> Recipe:
        """Persist a new recipe document, assigning id and timestamps."""
        ...

    async def update_recipe(
        self, recipe_id: str, changes: dict[str, Any]
    ) -> Optional[Recipe]:
        """Apply a partial update. Returns None if the recipe is gone."""
        ...

    async def delete_recipe(self, recipe_id: str) -> bool:
        """Delete a recipe. Deleting a missing recipe is a no-op."""
        ...

    async def toggle_like(
        self, recipe_id: str, user_id: str
    ) -> Optional[Tuple[Recipe, bool]]:
        """Atomically add or remove user_id in likes. Returns (recipe, favorited)."""
        ...

    async def import_recipes(self, recipes: List[Recipe]) -> int:
        """Insert already validated recipes. Returns count imported."""
        ...


class UserRepository(Protocol):
    """Abstract interface for the users referenced as authors and likers."""

    async def get_user(self, user_id: str) -> Optional[User]:
        """Get a user by ID."""
        ...

    async def create_user(self, name: str, email: str) -> User:
        """Create a user."""
        ...

    async def import_users(self, users_data: List[dict]) -> int:
        """Import users from list of dicts. Returns count imported."""
        ...
