"""
Recipe document validation.

The repositories validate every written document through the Recipe
model; these helpers turn pydantic errors into client messages and
check seed files before they are imported.
"""

from pydantic import ValidationError

from recipebox.models import Recipe

DEFAULT_VALIDATION_MESSAGE = "Validation error"


def first_error_message(exc: ValidationError) -> str:
    """Message for the first violated field, e.g. ``title: Field required``."""
    errors = exc.errors()
    if not errors:
        return DEFAULT_VALIDATION_MESSAGE
    first = errors[0]
    path = ".".join(str(part) for part in first.get("loc", ()))
    msg = first.get("msg") or DEFAULT_VALIDATION_MESSAGE
    return f"{path}: {msg}" if path else msg


def migrate_seed_document(recipe_dict: dict) -> dict:
    """Accept hand-written seed documents that use the client's shorthand."""
    data = dict(recipe_dict)

    # cookTime -> cookingTime
    if "cookTime" in data and "cookingTime" not in data:
        data["cookingTime"] = data.pop("cookTime")

    # Ingredients: plain strings -> ingredient objects
    if isinstance(data.get("ingredients"), list):
        data["ingredients"] = [
            {"name": item, "quantity": "1", "unit": ""} if isinstance(item, str) else item
            for item in data["ingredients"]
        ]

    # Instructions: plain strings -> numbered steps
    if isinstance(data.get("instructions"), list):
        data["instructions"] = [
            {"step": index + 1, "text": item} if isinstance(item, str) else item
            for index, item in enumerate(data["instructions"])
        ]

    return data


def validate_recipe_document(recipe_dict: dict) -> tuple[Recipe | None, list[dict]]:
    """
    Validate a single stored recipe document.

    Returns:
        Tuple of (Recipe instance or None, list of error dicts).
    """
    if not isinstance(recipe_dict, dict):
        return None, [
            {
                "loc": ("document",),
                "msg": f"Each item must be an object, got {type(recipe_dict).__name__}",
                "type": "type_error",
            }
        ]

    try:
        recipe = Recipe.model_validate(migrate_seed_document(recipe_dict))
        return recipe, []
    except ValidationError as e:
        errors = []
        for err in e.errors():
            errors.append(
                {
                    "loc": ("document",) + tuple(err["loc"]),
                    "msg": err["msg"],
                    "type": err.get("type", "value_error"),
                }
            )
        return None, errors


def validate_recipes_for_import(
    recipes_data: list,
) -> tuple[list[Recipe], list[dict]]:
    """
    Validate all seed recipes. Collects all validation errors.

    Returns:
        Tuple of (valid_recipes, all_errors). Errors carry the item index
        and its id/title so callers can report them.
    """
    valid: list[Recipe] = []
    all_errors: list[dict] = []

    for i, item in enumerate(recipes_data):
        recipe, errs = validate_recipe_document(item)
        if errs:
            for e in errs:
                err_copy = dict(e)
                err_copy["index"] = i
                err_copy["recipe_id"] = item.get("_id", "?") if isinstance(item, dict) else "?"
                err_copy["recipe_title"] = item.get("title", "<no title>") if isinstance(item, dict) else "<no title>"
                all_errors.append(err_copy)
        elif recipe:
            valid.append(recipe)

    return valid, all_errors
