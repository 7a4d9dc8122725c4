"""
Recipe storage implementations.
SQLite-backed document store (recipes kept as JSON documents, queried
with the JSON1 functions) with in-memory support for testing.
"""

import asyncio
import json
import logging
import sqlite3
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from recipebox.models import AuthorSummary, Recipe, User, utcnow
from recipebox.queries import SearchCriteria

logger = logging.getLogger(__name__)

# Never taken from an update's change set
IMMUTABLE_FIELDS = ("_id", "author", "createdAt")


def _init_schema(conn: sqlite3.Connection) -> None:
    """Create recipes and users tables if not exists."""
    conn.execute("""
        CREATE TABLE IF NOT EXISTS recipes (
            id TEXT PRIMARY KEY,
            author TEXT NOT NULL,
            created_at TEXT NOT NULL,
            document TEXT NOT NULL
        )
    """)
    conn.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            email TEXT NOT NULL UNIQUE,
            created_at TEXT NOT NULL
        )
    """)
    conn.commit()


def _sort_key(moment: datetime) -> str:
    """Sortable text timestamp; naive datetimes are taken as UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat()


def _recipe_to_row(recipe: Recipe) -> tuple:
    """Convert Recipe to DB row tuple."""
    return (
        recipe.id,
        recipe.author_id,
        _sort_key(recipe.created_at),
        json.dumps(recipe.to_document()),
    )


def _recipe_from_document(raw: str) -> Recipe:
    return Recipe.model_validate(json.loads(raw))


def _user_from_row(row: tuple) -> User:
    id_, name, email, created_at = row
    return User(
        id=id_,
        name=name,
        email=email,
        created_at=datetime.fromisoformat(created_at),
    )


class RecipeStorage:
    """
    SQLite-backed storage implementing RecipeRepository and UserRepository.

    The sqlite3 calls are blocking, so each async method hands its work to
    a worker thread with ``asyncio.to_thread``. One lock guards the shared
    connection for reads and writes alike.
    """

    def __init__(self, db_path: Optional[str] = None) -> None:
        self._db_path = db_path or ":memory:"
        self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
        self._lock = threading.Lock()
        _init_schema(self._conn)
        logger.debug("SQLite recipe storage at %s", self._db_path)

    def close(self) -> None:
        self._conn.close()

    # --- internal helpers (caller holds the lock) ---

    def _fetch_recipe(self, recipe_id: str) -> Optional[Recipe]:
        cur = self._conn.execute(
            "SELECT document FROM recipes WHERE id = ?", (recipe_id,)
        )
        row = cur.fetchone()
        if row is None:
            return None
        return _recipe_from_document(row[0])

    def _write_recipe(self, recipe: Recipe) -> None:
        # Upsert in place so an existing row keeps its rowid (ordering tiebreak)
        self._conn.execute(
            "INSERT INTO recipes (id, author, created_at, document) "
            "VALUES (?, ?, ?, ?) "
            "ON CONFLICT(id) DO UPDATE SET "
            "author = excluded.author, "
            "created_at = excluded.created_at, "
            "document = excluded.document",
            _recipe_to_row(recipe),
        )

    def _populate(self, recipes: List[Recipe]) -> List[Recipe]:
        """Replace author ids with name/email summaries where the user exists."""
        author_ids = {r.author_id for r in recipes}
        if not author_ids:
            return recipes
        placeholders = ", ".join("?" for _ in author_ids)
        cur = self._conn.execute(
            f"SELECT id, name, email FROM users WHERE id IN ({placeholders})",
            tuple(author_ids),
        )
        authors: Dict[str, AuthorSummary] = {
            id_: AuthorSummary(id=id_, name=name, email=email)
            for id_, name, email in cur.fetchall()
        }
        return [
            r.model_copy(update={"author": authors[r.author_id]})
            if r.author_id in authors
            else r
            for r in recipes
        ]

    # --- blocking work, run in a worker thread ---

    def _find(
        self,
        criteria: SearchCriteria,
        limit: Optional[int],
        populate_author: bool,
    ) -> List[Recipe]:
        where, params = criteria.to_sql_filter()
        sql = "SELECT document FROM recipes"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY created_at DESC, rowid DESC"

        results = []
        with self._lock:
            cur = self._conn.execute(sql, params)
            for (raw,) in cur:
                document = json.loads(raw)
                # Text search has no SQL counterpart
                if not criteria.matches(document):
                    continue
                results.append(Recipe.model_validate(document))
                if limit is not None and len(results) >= limit:
                    break
            if populate_author:
                return self._populate(results)
        return results

    def _get(self, recipe_id: str, populate_author: bool) -> Optional[Recipe]:
        with self._lock:
            recipe = self._fetch_recipe(recipe_id)
            if recipe is None or not populate_author:
                return recipe
            return self._populate([recipe])[0]

    def _insert(self, recipe: Recipe) -> None:
        with self._lock:
            self._write_recipe(recipe)
            self._conn.commit()

    def _update(self, recipe_id: str, allowed: dict[str, Any]) -> Optional[Recipe]:
        with self._lock:
            existing = self._fetch_recipe(recipe_id)
            if existing is None:
                return None
            recipe = Recipe.model_validate(
                {**existing.to_document(), **allowed, "updatedAt": utcnow()}
            )
            self._write_recipe(recipe)
            self._conn.commit()
        return recipe

    def _delete(self, recipe_id: str) -> bool:
        with self._lock:
            cur = self._conn.execute("DELETE FROM recipes WHERE id = ?", (recipe_id,))
            self._conn.commit()
        return cur.rowcount > 0

    def _toggle(self, recipe_id: str, user_id: str) -> Optional[Tuple[Recipe, bool]]:
        with self._lock:
            existing = self._fetch_recipe(recipe_id)
            if existing is None:
                return None
            if user_id in existing.likes:
                likes = [u for u in existing.likes if u != user_id]
                favorited = False
            else:
                likes = existing.likes + [user_id]
                favorited = True
            recipe = existing.model_copy(
                update={"likes": likes, "updated_at": utcnow()}
            )
            self._write_recipe(recipe)
            self._conn.commit()
        return recipe, favorited

    def _import_recipes(self, recipes: List[Recipe]) -> int:
        with self._lock:
            for recipe in recipes:
                self._write_recipe(recipe)
            self._conn.commit()
        return len(recipes)

    def _get_user(self, user_id: str) -> Optional[User]:
        with self._lock:
            cur = self._conn.execute(
                "SELECT id, name, email, created_at FROM users WHERE id = ?",
                (user_id,),
            )
            row = cur.fetchone()
        if row is None:
            return None
        return _user_from_row(tuple(row))

    def _insert_user(self, user: User) -> None:
        with self._lock:
            self._conn.execute(
                "INSERT INTO users (id, name, email, created_at) VALUES (?, ?, ?, ?)",
                (user.id, user.name, user.email, user.created_at.isoformat()),
            )
            self._conn.commit()

    def _import_users(self, users_data: List[dict]) -> int:
        count = 0
        with self._lock:
            for user_dict in users_data:
                try:
                    user = User.model_validate(
                        {"_id": uuid.uuid4().hex, **user_dict}
                    )
                except ValueError as e:
                    logger.warning("Skipping invalid seed user: %s", e)
                    continue
                self._conn.execute(
                    "INSERT OR REPLACE INTO users (id, name, email, created_at) "
                    "VALUES (?, ?, ?, ?)",
                    (user.id, user.name, user.email, user.created_at.isoformat()),
                )
                count += 1
            self._conn.commit()
        return count

    # --- RecipeRepository ---

    async def find_recipes(
        self,
        criteria: SearchCriteria,
        limit: Optional[int] = None,
        populate_author: bool = False,
    ) -> List[Recipe]:
        return await asyncio.to_thread(self._find, criteria, limit, populate_author)

    async def get_recipe(
        self, recipe_id: str, populate_author: bool = False
    ) -> Optional[Recipe]:
        return await asyncio.to_thread(self._get, recipe_id, populate_author)

    async def create_recipe(self, document: dict[str, Any]) -> Recipe:
        now = utcnow()
        recipe = Recipe.model_validate(
            {
                **document,
                "_id": uuid.uuid4().hex,
                "likes": [],
                "createdAt": now,
                "updatedAt": now,
            }
        )
        await asyncio.to_thread(self._insert, recipe)
        return recipe

    async def update_recipe(
        self, recipe_id: str, changes: dict[str, Any]
    ) -> Optional[Recipe]:
        allowed = {k: v for k, v in changes.items() if k not in IMMUTABLE_FIELDS}
        return await asyncio.to_thread(self._update, recipe_id, allowed)

    async def delete_recipe(self, recipe_id: str) -> bool:
        return await asyncio.to_thread(self._delete, recipe_id)

    async def toggle_like(
        self, recipe_id: str, user_id: str
    ) -> Optional[Tuple[Recipe, bool]]:
        return await asyncio.to_thread(self._toggle, recipe_id, user_id)

    async def import_recipes(self, recipes: List[Recipe]) -> int:
        return await asyncio.to_thread(self._import_recipes, recipes)

    # --- UserRepository ---

    async def get_user(self, user_id: str) -> Optional[User]:
        return await asyncio.to_thread(self._get_user, user_id)

    async def create_user(self, name: str, email: str) -> User:
        user = User(id=uuid.uuid4().hex, name=name, email=email)
        await asyncio.to_thread(self._insert_user, user)
        return user

    async def import_users(self, users_data: List[dict]) -> int:
        return await asyncio.to_thread(self._import_users, users_data)
