"""
Tests for the SQLite document store.
"""

import asyncio
import threading
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from recipebox.models import AuthorSummary, Recipe
from recipebox.queries import SearchCriteria
from recipebox.services import storage as storage_module


def run(coro):
    return asyncio.run(coro)


def new_document(author_id, **fields):
    base = {
        "title": "Soup",
        "description": "Warm",
        "category": "Lunch",
        "author": author_id,
        "isPublic": True,
        "isPublished": True,
    }
    base.update(fields)
    return base


def test_create_assigns_id_timestamps_and_empty_likes(storage, author):
    recipe = run(storage.create_recipe(new_document(author.id)))
    assert recipe.id
    assert recipe.likes == []
    assert recipe.created_at == recipe.updated_at
    assert run(storage.get_recipe(recipe.id)) == recipe


def test_create_ignores_client_likes(storage, author):
    recipe = run(storage.create_recipe(new_document(author.id, likes=["u9"])))
    assert recipe.likes == []


def test_create_invalid_document_raises_and_stores_nothing(storage, author):
    with pytest.raises(ValidationError):
        run(storage.create_recipe(new_document(author.id, servings=0)))
    assert run(storage.find_recipes(SearchCriteria())) == []


def test_get_missing_recipe(storage):
    assert run(storage.get_recipe("missing")) is None


def test_populate_author(storage, author):
    recipe = run(storage.create_recipe(new_document(author.id)))
    populated = run(storage.get_recipe(recipe.id, populate_author=True))
    assert populated.author == AuthorSummary(id=author.id, name=author.name, email=author.email)


def test_populate_unknown_author_keeps_id(storage):
    recipe = run(storage.create_recipe(new_document("ghost")))
    populated = run(storage.get_recipe(recipe.id, populate_author=True))
    assert populated.author == "ghost"


def test_find_newest_first_with_limit(storage, author):
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    recipes = [
        Recipe.model_validate(
            {**new_document(author.id, title=f"R{i}"), "_id": f"r{i}", "createdAt": start + timedelta(days=i)}
        )
        for i in range(5)
    ]
    run(storage.import_recipes(list(reversed(recipes))))

    found = run(storage.find_recipes(SearchCriteria.public(), limit=3))
    assert [r.id for r in found] == ["r4", "r3", "r2"]


def test_find_by_author(storage, author, other_user):
    run(storage.create_recipe(new_document(author.id, title="Mine")))
    run(storage.create_recipe(new_document(other_user.id, title="Theirs")))
    found = run(storage.find_recipes(SearchCriteria.authored_by(author.id)))
    assert [r.title for r in found] == ["Mine"]


def test_update_applies_changes_and_protects_identity(storage, author):
    recipe = run(storage.create_recipe(new_document(author.id)))
    updated = run(
        storage.update_recipe(
            recipe.id,
            {"title": "Stew", "author": "intruder", "_id": "other", "createdAt": "2000-01-01T00:00:00Z"},
        )
    )
    assert updated.title == "Stew"
    assert updated.id == recipe.id
    assert updated.author == author.id
    assert updated.created_at == recipe.created_at
    assert updated.updated_at >= recipe.updated_at


def test_update_validation_error_leaves_document(storage, author):
    recipe = run(storage.create_recipe(new_document(author.id)))
    with pytest.raises(ValidationError):
        run(storage.update_recipe(recipe.id, {"difficulty": "Impossible"}))
    assert run(storage.get_recipe(recipe.id)).difficulty == "Medium"


def test_update_missing_recipe(storage):
    assert run(storage.update_recipe("missing", {"title": "x"})) is None


def test_delete(storage, author):
    recipe = run(storage.create_recipe(new_document(author.id)))
    assert run(storage.delete_recipe(recipe.id)) is True
    assert run(storage.get_recipe(recipe.id)) is None
    # Deleting again is a silent no-op
    assert run(storage.delete_recipe(recipe.id)) is False


def test_toggle_like(storage, author, other_user):
    recipe = run(storage.create_recipe(new_document(author.id)))

    liked, favorited = run(storage.toggle_like(recipe.id, other_user.id))
    assert favorited is True
    assert liked.likes == [other_user.id]

    unliked, favorited = run(storage.toggle_like(recipe.id, other_user.id))
    assert favorited is False
    assert unliked.likes == []
    assert run(storage.get_recipe(recipe.id)).likes == []


def test_toggle_like_missing_recipe(storage):
    assert run(storage.toggle_like("missing", "u1")) is None


def test_users(storage):
    user = run(storage.create_user("Cara", "cara@example.com"))
    assert run(storage.get_user(user.id)) == user
    assert run(storage.get_user("missing")) is None


def test_import_users(storage):
    count = run(
        storage.import_users(
            [
                {"_id": "u1", "name": "Dee", "email": "dee@example.com"},
                {"name": "No Email"},
            ]
        )
    )
    assert count == 1
    assert run(storage.get_user("u1")).name == "Dee"


def test_find_filters_flags_likes_and_exact_fields(storage, author, other_user):
    thai = run(storage.create_recipe(new_document(author.id, title="Green Curry", cuisine="Thai")))
    run(storage.create_recipe(new_document(author.id, title="Hidden", isPublic=False)))
    run(storage.create_recipe(new_document(author.id, title="Draft", isPublished=False)))
    run(storage.toggle_like(thai.id, other_user.id))

    def titles(criteria):
        return [r.title for r in run(storage.find_recipes(criteria))]

    assert titles(SearchCriteria.public()) == ["Green Curry"]
    assert titles(SearchCriteria.search(cuisine="Thai")) == ["Green Curry"]
    assert titles(SearchCriteria.search(cuisine="thai")) == []
    assert titles(SearchCriteria.search("curry", difficulty="Medium")) == ["Green Curry"]
    assert titles(SearchCriteria.favorites_of(other_user.id)) == ["Green Curry"]
    assert titles(SearchCriteria.favorites_of(author.id)) == []


def test_writes_keep_order_of_equal_timestamps(storage, author):
    moment = datetime(2024, 1, 1, tzinfo=timezone.utc)
    run(
        storage.import_recipes(
            [
                Recipe.model_validate({**new_document(author.id, title=name), "_id": name, "createdAt": moment})
                for name in ("first", "second", "third")
            ]
        )
    )

    def order():
        return [r.id for r in run(storage.find_recipes(SearchCriteria.public()))]

    assert order() == ["third", "second", "first"]
    run(storage.toggle_like("first", "u9"))
    run(storage.update_recipe("second", {"title": "Second"}))
    assert order() == ["third", "second", "first"]


def test_sqlite_work_runs_off_the_event_loop_thread(storage, author, monkeypatch):
    recipe = run(storage.create_recipe(new_document(author.id)))
    decoded_on = []
    original = storage_module._recipe_from_document

    def recording(raw):
        decoded_on.append(threading.get_ident())
        return original(raw)

    monkeypatch.setattr(storage_module, "_recipe_from_document", recording)

    async def fetch():
        return threading.get_ident(), await storage.get_recipe(recipe.id)

    loop_thread, fetched = run(fetch())
    assert fetched.id == recipe.id
    assert decoded_on
    assert loop_thread not in decoded_on
