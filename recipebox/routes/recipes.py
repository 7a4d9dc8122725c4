import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import ValidationError

from recipebox import config
from recipebox.core.abstractions import RecipeRepository
from recipebox.core.dependencies import get_recipe_storage
from recipebox.core.security import get_current_user, get_owned_recipe
from recipebox.models import Recipe, RecipePayload, User
from recipebox.normalizer import normalize_recipe_payload, normalize_recipe_update
from recipebox.queries import SearchCriteria
from recipebox.services.metrics import aggregate_metrics, timed_query
from recipebox.services.prometheus_metrics import (
    record_favorite_toggle,
    record_handler_failure,
    record_recipe_search,
)
from recipebox.validation import first_error_message

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def _recipe_to_response(recipe: Recipe) -> dict[str, Any]:
    """Convert Recipe to its wire shape (camelCase, ``_id``)."""
    return recipe.to_document()


def _recipes_response(recipes: list[Recipe]) -> dict[str, Any]:
    return {"recipes": [_recipe_to_response(r) for r in recipes]}


def _server_error(endpoint: str, message: str) -> HTTPException:
    """500 with a fixed message; details stay in the server log."""
    record_handler_failure(endpoint)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=message
    )


def _validation_error(exc: ValidationError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST, detail=first_error_message(exc)
    )


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Recipe not found")


@router.get("/recipes")
async def list_recipes(
    storage: RecipeRepository = Depends(get_recipe_storage),
):
    """Newest public, published recipes with author name and email."""
    try:
        with timed_query("find"):
            recipes = await storage.find_recipes(
                SearchCriteria.public(),
                limit=config.PUBLIC_LIST_LIMIT,
                populate_author=True,
            )
    except Exception:
        logger.exception("List recipes error")
        raise _server_error("list", "Failed to fetch recipes")
    return _recipes_response(recipes)


@router.get("/recipes/my")
async def list_my_recipes(
    user: User = Depends(get_current_user),
    storage: RecipeRepository = Depends(get_recipe_storage),
):
    """All recipes authored by the caller, newest first."""
    try:
        with timed_query("find"):
            recipes = await storage.find_recipes(SearchCriteria.authored_by(user.id))
    except Exception:
        logger.exception("My recipes error")
        raise _server_error("my", "Failed to fetch your recipes")
    return _recipes_response(recipes)


@router.get("/recipes/favorites")
async def list_favorite_recipes(
    user: User = Depends(get_current_user),
    storage: RecipeRepository = Depends(get_recipe_storage),
):
    """Recipes the caller has favorited, newest first."""
    try:
        with timed_query("find"):
            recipes = await storage.find_recipes(SearchCriteria.favorites_of(user.id))
    except Exception:
        logger.exception("Favorites error")
        raise _server_error("favorites", "Failed to fetch favorite recipes")
    return _recipes_response(recipes)


@router.get("/recipes/search")
async def search_recipes(
    q: Optional[str] = None,
    category: Optional[str] = None,
    cuisine: Optional[str] = None,
    difficulty: Optional[str] = None,
    storage: RecipeRepository = Depends(get_recipe_storage),
):
    """
    Search public recipes.

    ``q`` is a case-insensitive substring match on title, description or
    any tag; category, cuisine and difficulty must match exactly.
    """
    criteria = SearchCriteria.search(q, category, cuisine, difficulty)
    record_recipe_search(criteria.used_filters())
    try:
        with timed_query("find"):
            recipes = await storage.find_recipes(criteria)
    except Exception:
        logger.exception("Search error")
        raise _server_error("search", "Failed to search recipes")
    return _recipes_response(recipes)


@router.get("/recipes/{recipe_id}")
async def get_recipe(
    recipe_id: str,
    storage: RecipeRepository = Depends(get_recipe_storage),
):
    """Get a recipe by ID, with author name and email."""
    try:
        with timed_query("get"):
            recipe = await storage.get_recipe(recipe_id, populate_author=True)
    except Exception:
        logger.exception("Get recipe error")
        raise _server_error("get", "Failed to fetch recipe")
    if recipe is None:
        raise _not_found()
    return _recipe_to_response(recipe)


@router.post("/recipes")
async def create_recipe(
    payload: RecipePayload,
    user: User = Depends(get_current_user),
    storage: RecipeRepository = Depends(get_recipe_storage),
):
    """Create a public recipe owned by the caller."""
    document = normalize_recipe_payload(payload, user.id)
    try:
        with timed_query("create"):
            recipe = await storage.create_recipe(document)
    except ValidationError as e:
        logger.warning("Create recipe validation error: %s", first_error_message(e))
        raise _validation_error(e)
    except Exception:
        logger.exception("Create recipe error")
        raise _server_error("create", "Failed to create recipe")
    logger.info("User %s created recipe %s", user.id, recipe.id)
    return {"recipe": _recipe_to_response(recipe), "message": "Recipe created successfully"}


@router.put("/recipes/{recipe_id}")
async def update_recipe(
    recipe_id: str,
    payload: RecipePayload,
    owned: Recipe = Depends(get_owned_recipe),
    storage: RecipeRepository = Depends(get_recipe_storage),
):
    """Update an owned recipe. The author never changes."""
    changes = normalize_recipe_update(payload, owned.author_id)
    try:
        with timed_query("update"):
            recipe = await storage.update_recipe(recipe_id, changes)
    except ValidationError as e:
        logger.warning("Update recipe validation error: %s", first_error_message(e))
        raise _validation_error(e)
    except Exception:
        logger.exception("Update recipe error")
        raise _server_error("update", "Failed to update recipe")
    if recipe is None:
        raise _not_found()
    return {"recipe": _recipe_to_response(recipe), "message": "Recipe updated successfully"}


@router.delete("/recipes/{recipe_id}")
async def delete_recipe(
    recipe_id: str,
    owned: Recipe = Depends(get_owned_recipe),
    storage: RecipeRepository = Depends(get_recipe_storage),
):
    """Delete an owned recipe"""
    try:
        with timed_query("delete"):
            await storage.delete_recipe(recipe_id)
    except Exception:
        logger.exception("Delete recipe error")
        raise _server_error("delete", "Failed to delete recipe")
    logger.info("Recipe %s deleted by its author %s", recipe_id, owned.author_id)
    return {"message": "Recipe deleted successfully"}


@router.post("/recipes/{recipe_id}/favorite")
async def toggle_favorite(
    recipe_id: str,
    user: User = Depends(get_current_user),
    storage: RecipeRepository = Depends(get_recipe_storage),
):
    """Add the caller to the recipe's likes, or remove them if already there."""
    try:
        with timed_query("toggle_like"):
            result = await storage.toggle_like(recipe_id, user.id)
    except Exception:
        logger.exception("Toggle favorite error")
        raise _server_error("favorite", "Failed to update favorite")
    if result is None:
        raise _not_found()

    recipe, favorited = result
    record_favorite_toggle(favorited)
    return {
        "recipe": _recipe_to_response(recipe),
        "favorited": favorited,
        "message": "Recipe added to favorites" if favorited else "Recipe removed from favorites",
    }


@router.get("/metrics")
def get_metrics():
    """Return aggregate storage timing metrics."""
    return aggregate_metrics.to_dict()
