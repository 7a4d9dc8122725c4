"""
Test fixtures for Recipebox API tests.
Uses FastAPI dependency overrides for an isolated in-memory store per test.
"""

import asyncio
import os

import pytest
from fastapi.testclient import TestClient

# Never talk to a real MongoDB during tests
os.environ.pop("MONGO_URI", None)

from recipebox.core.dependencies import (
    create_fresh_recipe_storage,
    get_recipe_storage,
    get_user_storage,
)
from recipebox.core.security import create_access_token
from recipebox.main import app
from recipebox.services.metrics import aggregate_metrics


def run(coro):
    """Drive a storage coroutine from synchronous test code."""
    return asyncio.run(coro)


@pytest.fixture
def storage():
    """Fresh in-memory RecipeStorage instance for each test."""
    s = create_fresh_recipe_storage()
    yield s
    s.close()


@pytest.fixture
def client(storage):
    """Test client with dependency overrides for recipe and user storage."""
    def get_storage():
        return storage

    app.dependency_overrides[get_recipe_storage] = get_storage
    app.dependency_overrides[get_user_storage] = get_storage

    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_aggregate_metrics():
    """Reset aggregate metrics before each test for consistent assertions."""
    aggregate_metrics.reset()
    yield


@pytest.fixture
def author(storage):
    return run(storage.create_user("Alice Baker", "alice@example.com"))


@pytest.fixture
def other_user(storage):
    return run(storage.create_user("Bob Cook", "bob@example.com"))


@pytest.fixture
def auth_headers(author):
    return {"Authorization": f"Bearer {create_access_token(author.id)}"}


@pytest.fixture
def other_headers(other_user):
    return {"Authorization": f"Bearer {create_access_token(other_user.id)}"}


@pytest.fixture
def sample_recipe_data():
    """Client-shaped recipe submission"""
    return {
        "title": "Test Recipe",
        "description": "A test recipe",
        "category": "Dinner",
        "cuisine": "Italian",
        "prepTime": 10,
        "cookTime": "20",
        "servings": 4,
        "difficulty": "Easy",
        "ingredients": ["pasta", "", "tomato"],
        "instructions": ["Boil water", None, "Cook pasta"],
        "tags": ["quick"],
        "image": "https://example.com/pasta.jpg",
        "dietary": ["vegetarian"],
    }


@pytest.fixture
def create_recipe(client, auth_headers, sample_recipe_data):
    """Create a recipe through the API and return its JSON."""
    def _create(headers=None, **overrides):
        body = {**sample_recipe_data, **overrides}
        response = client.post("/api/recipes", json=body, headers=headers or auth_headers)
        assert response.status_code == 200, response.text
        return response.json()["recipe"]

    return _create
