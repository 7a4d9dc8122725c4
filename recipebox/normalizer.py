"""
Client payload normalization.

Maps a loosely typed recipe submission onto the stored Recipe document
shape. Pure functions, no I/O: the result is handed to the repository,
which runs the schema validation.
"""

import math
import re
from typing import Any

from recipebox.models import DEFAULT_CUISINE, DifficultyLevel, RecipePayload

ALLOWED_DIFFICULTIES = tuple(level.value for level in DifficultyLevel)
DEFAULT_COUNT = 1

# Numeric strings accepted by coerce_count; anything else falls back to 1
DECIMAL_NUMBER = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?", re.ASCII)
PREFIXED_INTEGER = re.compile(r"0([xX][0-9a-fA-F]+|[oO][0-7]+|[bB][01]+)")

# Fields the client may leave out entirely; absent means "not provided"
# rather than an empty value.
OPTIONAL_TEXT_FIELDS = ("title", "description", "category")


def normalize_difficulty(value: Any) -> str:
    """Valid levels pass through, "Expert" maps to Hard, anything else to Medium."""
    if isinstance(value, str) and value in ALLOWED_DIFFICULTIES:
        return value
    if value == "Expert":
        return DifficultyLevel.HARD.value
    return DifficultyLevel.MEDIUM.value


def normalize_cuisine(value: Any) -> str:
    if isinstance(value, str) and value.strip():
        return value
    return DEFAULT_CUISINE


def coerce_count(value: Any) -> int | float:
    """
    Coerce a client number the lenient way.

    Strings must be plain decimal ("12", " 2.5 ", "1e2") or prefixed
    hex/octal/binary ("0x10"). Missing, unparseable, non-finite and zero
    all fall back to 1; zero counts as "not provided".
    """
    number: float
    if isinstance(value, bool):
        number = float(value)
    elif isinstance(value, int):
        return value or DEFAULT_COUNT
    elif isinstance(value, float):
        number = value
    elif isinstance(value, str):
        text = value.strip()
        if DECIMAL_NUMBER.fullmatch(text):
            number = float(text)
        elif PREFIXED_INTEGER.fullmatch(text):
            return int(text, 0) or DEFAULT_COUNT
        else:
            return DEFAULT_COUNT
    else:
        return DEFAULT_COUNT

    if not math.isfinite(number) or not number:
        return DEFAULT_COUNT
    if number.is_integer():
        return int(number)
    return number


def _is_present(item: Any) -> bool:
    """False for null, false, zero, NaN and the empty string; lists and objects always count."""
    if isinstance(item, (list, dict)):
        return True
    if isinstance(item, float) and math.isnan(item):
        return False
    return bool(item)


def normalize_ingredients(items: list[Any] | None) -> list[dict[str, str]]:
    return [
        {"name": str(item), "quantity": "1", "unit": ""}
        for item in (items or [])
        if _is_present(item)
    ]


def normalize_instructions(items: list[Any] | None) -> list[dict[str, Any]]:
    """Number steps by position after dropping empty entries."""
    kept = [item for item in (items or []) if _is_present(item)]
    return [
        {"step": index + 1, "text": str(item)}
        for index, item in enumerate(kept)
    ]


def normalize_images(image: Any) -> list[dict[str, Any]]:
    if _is_present(image):
        return [{"url": image, "isPrimary": True}]
    return []


def normalize_recipe_payload(payload: RecipePayload, author_id: str) -> dict[str, Any]:
    """Build a persistence-ready recipe document for ``author_id``."""
    document: dict[str, Any] = {
        "title": payload.title,
        "description": payload.description,
        "category": payload.category,
        "cuisine": normalize_cuisine(payload.cuisine),
        "prepTime": coerce_count(payload.prep_time),
        "cookingTime": coerce_count(payload.cook_time),
        "servings": coerce_count(payload.servings),
        "difficulty": normalize_difficulty(payload.difficulty),
        "ingredients": normalize_ingredients(payload.ingredients),
        "instructions": normalize_instructions(payload.instructions),
        "tags": payload.tags if payload.tags is not None else [],
        "dietary": payload.dietary if payload.dietary is not None else [],
        "images": normalize_images(payload.image),
        "author": author_id,
        "isPublic": True,
        "isPublished": True,
    }
    for field in OPTIONAL_TEXT_FIELDS:
        if document[field] is None:
            del document[field]
    return document


def normalize_recipe_update(payload: RecipePayload, author_id: str) -> dict[str, Any]:
    """Same as create, minus the author: updates never reassign ownership."""
    changes = normalize_recipe_payload(payload, author_id)
    changes.pop("author", None)
    return changes
