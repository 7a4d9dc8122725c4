"""
Tests for client payload normalization.
"""

import pytest

from recipebox.models import RecipePayload
from recipebox.normalizer import (
    coerce_count,
    normalize_cuisine,
    normalize_difficulty,
    normalize_ingredients,
    normalize_instructions,
    normalize_recipe_payload,
    normalize_recipe_update,
)


def payload(**fields) -> RecipePayload:
    return RecipePayload.model_validate(fields)


@pytest.mark.parametrize("value", ["Easy", "Medium", "Hard"])
def test_valid_difficulty_passes_through(value):
    assert normalize_difficulty(value) == value


def test_expert_maps_to_hard():
    assert normalize_difficulty("Expert") == "Hard"


@pytest.mark.parametrize("value", [None, "", "easy", "HARD", "Beginner", 3, ["Easy"]])
def test_unknown_difficulty_maps_to_medium(value):
    assert normalize_difficulty(value) == "Medium"


@pytest.mark.parametrize("value", [None, "", "   ", "\t\n", 42])
def test_blank_cuisine_defaults_to_other(value):
    assert normalize_cuisine(value) == "Other"


def test_cuisine_passes_through_untrimmed():
    assert normalize_cuisine(" Thai ") == " Thai "


@pytest.mark.parametrize(
    "value,expected",
    [
        (None, 1),
        (0, 1),
        ("0", 1),
        ("", 1),
        ("abc", 1),
        (float("nan"), 1),
        (False, 1),
        (True, 1),
        (15, 15),
        ("15", 15),
        (" 7 ", 7),
        (2.0, 2),
        (2.5, 2.5),
        (-3, -3),
        ("1e2", 100),
        ("1.", 1),
        (".5", 0.5),
        ("0x10", 16),
        ("0b11", 3),
        ("0o7", 7),
        ("0x0", 1),
    ],
)
def test_coerce_count(value, expected):
    assert coerce_count(value) == expected


@pytest.mark.parametrize(
    "value",
    ["1_000", "inf", "-Infinity", "infinity", "nan", "1e999", "12abc", "0x", "-0x10", "\u0663"],
)
def test_coerce_count_rejects_non_decimal_strings(value):
    assert coerce_count(value) == 1


def test_coerce_count_non_finite_float():
    assert coerce_count(float("inf")) == 1
    assert coerce_count(float("-inf")) == 1


def test_instructions_numbered_by_position_skipping_empty():
    steps = normalize_instructions(["Chop", "", None, "Fry", 0, "Serve"])
    assert steps == [
        {"step": 1, "text": "Chop"},
        {"step": 2, "text": "Fry"},
        {"step": 3, "text": "Serve"},
    ]


def test_empty_lists_and_objects_are_kept():
    ingredients = normalize_ingredients([{}, "salt", [], float("nan"), False])
    assert [i["name"] for i in ingredients] == ["{}", "salt", "[]"]
    steps = normalize_instructions([[], "Stir"])
    assert [s["step"] for s in steps] == [1, 2]


def test_instructions_ignore_client_step_numbers():
    steps = normalize_instructions(["first", "second"])
    assert [s["step"] for s in steps] == [1, 2]


def test_full_payload():
    doc = normalize_recipe_payload(
        payload(
            title="Pancakes",
            description="Fluffy",
            category="Breakfast",
            cuisine="American",
            prepTime="5",
            cookTime=10,
            servings=0,
            difficulty="Expert",
            ingredients=["flour", "", "milk", 2],
            instructions=["Mix", "Cook"],
            tags=["sweet", "sweet"],
            image="https://example.com/p.jpg",
            dietary=["vegetarian"],
            author="someone-else",
        ),
        "user-1",
    )
    assert doc == {
        "title": "Pancakes",
        "description": "Fluffy",
        "category": "Breakfast",
        "cuisine": "American",
        "prepTime": 5,
        "cookingTime": 10,
        "servings": 1,
        "difficulty": "Hard",
        "ingredients": [
            {"name": "flour", "quantity": "1", "unit": ""},
            {"name": "milk", "quantity": "1", "unit": ""},
            {"name": "2", "quantity": "1", "unit": ""},
        ],
        "instructions": [{"step": 1, "text": "Mix"}, {"step": 2, "text": "Cook"}],
        "tags": ["sweet", "sweet"],
        "dietary": ["vegetarian"],
        "images": [{"url": "https://example.com/p.jpg", "isPrimary": True}],
        "author": "user-1",
        "isPublic": True,
        "isPublished": True,
    }


def test_empty_payload_defaults():
    doc = normalize_recipe_payload(payload(), "user-1")
    assert "title" not in doc
    assert "description" not in doc
    assert "category" not in doc
    assert doc["cuisine"] == "Other"
    assert doc["difficulty"] == "Medium"
    assert doc["ingredients"] == []
    assert doc["instructions"] == []
    assert doc["tags"] == []
    assert doc["dietary"] == []
    assert doc["images"] == []
    assert (doc["prepTime"], doc["cookingTime"], doc["servings"]) == (1, 1, 1)


def test_empty_image_gives_no_images():
    assert normalize_recipe_payload(payload(image=""), "u")["images"] == []


def test_update_strips_author():
    changes = normalize_recipe_update(payload(title="New", author="intruder"), "owner")
    assert "author" not in changes
    assert changes["title"] == "New"
    assert changes["isPublic"] is True
