"""
MongoDB-backed recipe storage (motor async client).

Recipes and users live in their own collections. ``_id`` is an ObjectId
in the database and a hex string everywhere else; ``author`` and
``likes`` hold user id strings.
"""

import logging
from typing import Any, List, Optional, Tuple

import motor.motor_asyncio
from bson import ObjectId
from pymongo import DESCENDING, ReturnDocument

from recipebox.models import AuthorSummary, Recipe, User, utcnow
from recipebox.queries import SearchCriteria

logger = logging.getLogger(__name__)

NEWEST_FIRST = [("createdAt", DESCENDING), ("_id", DESCENDING)]
IMMUTABLE_FIELDS = ("_id", "author", "createdAt")


def _object_id(value: str) -> Optional[ObjectId]:
    """ObjectId for a hex id, or None when the id is malformed."""
    if not ObjectId.is_valid(value):
        return None
    return ObjectId(value)


def _recipe_from_doc(doc: dict[str, Any]) -> Recipe:
    return Recipe.model_validate({**doc, "_id": str(doc["_id"])})


def _user_from_doc(doc: dict[str, Any]) -> User:
    return User.model_validate({**doc, "_id": str(doc["_id"])})


def _to_mongo(recipe: Recipe) -> dict[str, Any]:
    """Stored shape: native datetimes, ObjectId primary key."""
    doc = recipe.model_dump(by_alias=True)
    doc["_id"] = ObjectId(recipe.id)
    doc["author"] = recipe.author_id
    return doc


class MongoRecipeStorage:
    """MongoDB storage implementing RecipeRepository and UserRepository."""

    def __init__(
        self,
        uri: str,
        db_name: str,
        server_selection_timeout_ms: int = 30000,
    ) -> None:
        self._client = motor.motor_asyncio.AsyncIOMotorClient(
            uri,
            serverSelectionTimeoutMS=server_selection_timeout_ms,
        )
        self._db = self._client[db_name]
        self.recipes = self._db["recipes"]
        self.users = self._db["users"]
        logger.info("MongoDB recipe storage using database %s", db_name)

    def close(self) -> None:
        self._client.close()

    async def _populate(self, recipes: List[Recipe]) -> List[Recipe]:
        author_ids = [
            oid for oid in {_object_id(r.author_id) for r in recipes} if oid is not None
        ]
        if not author_ids:
            return recipes
        cursor = self.users.find(
            {"_id": {"$in": author_ids}}, {"name": 1, "email": 1}
        )
        authors = {
            str(u["_id"]): AuthorSummary(id=str(u["_id"]), name=u["name"], email=u["email"])
            async for u in cursor
        }
        return [
            r.model_copy(update={"author": authors[r.author_id]})
            if r.author_id in authors
            else r
            for r in recipes
        ]

    # --- RecipeRepository ---

    async def find_recipes(
        self,
        criteria: SearchCriteria,
        limit: Optional[int] = None,
        populate_author: bool = False,
    ) -> List[Recipe]:
        cursor = self.recipes.find(criteria.to_mongo_filter()).sort(NEWEST_FIRST)
        if limit is not None:
            cursor = cursor.limit(limit)
        docs = await cursor.to_list(length=limit)
        results = [_recipe_from_doc(d) for d in docs]
        if populate_author:
            return await self._populate(results)
        return results

    async def get_recipe(
        self, recipe_id: str, populate_author: bool = False
    ) -> Optional[Recipe]:
        oid = _object_id(recipe_id)
        if oid is None:
            return None
        doc = await self.recipes.find_one({"_id": oid})
        if doc is None:
            return None
        recipe = _recipe_from_doc(doc)
        if populate_author:
            return (await self._populate([recipe]))[0]
        return recipe

    async def create_recipe(self, document: dict[str, Any]) -> Recipe:
        now = utcnow()
        recipe = Recipe.model_validate(
            {
                **document,
                "_id": str(ObjectId()),
                "likes": [],
                "createdAt": now,
                "updatedAt": now,
            }
        )
        await self.recipes.insert_one(_to_mongo(recipe))
        return recipe

    async def update_recipe(
        self, recipe_id: str, changes: dict[str, Any]
    ) -> Optional[Recipe]:
        oid = _object_id(recipe_id)
        if oid is None:
            return None
        existing = await self.recipes.find_one({"_id": oid})
        if existing is None:
            return None

        allowed = {k: v for k, v in changes.items() if k not in IMMUTABLE_FIELDS}
        # Validate the would-be document, then $set only the changed paths
        merged = _recipe_from_doc({**existing, **allowed, "updatedAt": utcnow()})
        stored = _to_mongo(merged)
        update = {
            key: stored[key] for key in [*allowed, "updatedAt"] if key in stored
        }

        doc = await self.recipes.find_one_and_update(
            {"_id": oid},
            {"$set": update},
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            return None
        return _recipe_from_doc(doc)

    async def delete_recipe(self, recipe_id: str) -> bool:
        oid = _object_id(recipe_id)
        if oid is None:
            return False
        result = await self.recipes.delete_one({"_id": oid})
        return result.deleted_count > 0

    async def toggle_like(
        self, recipe_id: str, user_id: str
    ) -> Optional[Tuple[Recipe, bool]]:
        oid = _object_id(recipe_id)
        if oid is None:
            return None

        # Remove only if present; otherwise add. Each step is a single atomic update.
        doc = await self.recipes.find_one_and_update(
            {"_id": oid, "likes": user_id},
            {"$pull": {"likes": user_id}, "$set": {"updatedAt": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if doc is not None:
            return _recipe_from_doc(doc), False

        doc = await self.recipes.find_one_and_update(
            {"_id": oid},
            {"$addToSet": {"likes": user_id}, "$set": {"updatedAt": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            return None
        return _recipe_from_doc(doc), True

    async def import_recipes(self, recipes: List[Recipe]) -> int:
        count = 0
        for recipe in recipes:
            if _object_id(recipe.id) is None:
                logger.warning("Skipping seed recipe with non-ObjectId id %s", recipe.id)
                continue
            await self.recipes.replace_one(
                {"_id": ObjectId(recipe.id)}, _to_mongo(recipe), upsert=True
            )
            count += 1
        return count

    # --- UserRepository ---

    async def get_user(self, user_id: str) -> Optional[User]:
        oid = _object_id(user_id)
        if oid is None:
            return None
        doc = await self.users.find_one({"_id": oid})
        if doc is None:
            return None
        return _user_from_doc(doc)

    async def create_user(self, name: str, email: str) -> User:
        user = User(id=str(ObjectId()), name=name, email=email)
        doc = user.model_dump(by_alias=True)
        doc["_id"] = ObjectId(user.id)
        await self.users.insert_one(doc)
        return user

    async def import_users(self, users_data: List[dict]) -> int:
        count = 0
        for user_dict in users_data:
            try:
                user = User.model_validate({"_id": str(ObjectId()), **user_dict})
            except ValueError as e:
                logger.warning("Skipping invalid seed user: %s", e)
                continue
            oid = _object_id(user.id)
            if oid is None:
                logger.warning("Skipping seed user with non-ObjectId id %s", user.id)
                continue
            doc = user.model_dump(by_alias=True)
            doc["_id"] = oid
            await self.users.replace_one({"_id": oid}, doc, upsert=True)
            count += 1
        return count
