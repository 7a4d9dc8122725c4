"""
FastAPI dependency injection providers.
Use Depends(get_recipe_storage), etc. in route handlers.
"""

import logging
from typing import Optional, Union

from recipebox import config
from recipebox.core.abstractions import RecipeRepository, UserRepository
from recipebox.services.mongo_storage import MongoRecipeStorage
from recipebox.services.storage import RecipeStorage

logger = logging.getLogger(__name__)

# --- Singleton (lazy-initialized, owned by the app lifespan) ---

_storage: Optional[Union[RecipeStorage, MongoRecipeStorage]] = None


def create_storage() -> Union[RecipeStorage, MongoRecipeStorage]:
    """Build the configured backend: MongoDB if MONGO_URI is set, else SQLite."""
    if config.MONGO_URI:
        return MongoRecipeStorage(
            config.MONGO_URI,
            config.MONGO_DB_NAME,
            server_selection_timeout_ms=config.MONGO_SERVER_SELECTION_TIMEOUT_MS,
        )
    logger.info("MONGO_URI not set, using SQLite storage at %s", config.SQLITE_PATH)
    return RecipeStorage(db_path=config.SQLITE_PATH)


def _get_storage() -> Union[RecipeStorage, MongoRecipeStorage]:
    global _storage
    if _storage is None:
        _storage = create_storage()
    return _storage


def get_recipe_storage() -> RecipeRepository:
    """Provide RecipeRepository. Used as Depends(get_recipe_storage)."""
    return _get_storage()


def get_user_storage() -> UserRepository:
    """Provide UserRepository. Used as Depends(get_user_storage)."""
    return _get_storage()


def close_storage() -> None:
    """Release the shared backend. Called on application shutdown."""
    global _storage
    if _storage is not None:
        _storage.close()
        _storage = None


# --- Factory for test overrides ---


def create_fresh_recipe_storage() -> RecipeStorage:
    """Create new in-memory RecipeStorage instance. Use in tests for clean state."""
    return RecipeStorage()
