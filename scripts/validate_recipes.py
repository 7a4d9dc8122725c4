#!/usr/bin/env python3
"""
Check seed files before pointing SEED_DATA_PATH at them.

A seed file is either an object with a "recipes" array (and optionally a
"users" array) or a bare array of recipe documents. Recipes are checked
against the stored Recipe schema after the same shorthand migration the
server applies on startup (cookTime, string ingredients and steps).

Usage:
    python scripts/validate_recipes.py sample-recipes.json
    python scripts/validate_recipes.py seeds/a.json seeds/b.json

Exit codes:
    0 - every file is valid
    1 - at least one file is unreadable, not JSON, or has invalid entries
"""

import argparse
import json
import sys
from pathlib import Path

from pydantic import ValidationError

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from recipebox.models import User
from recipebox.validation import first_error_message, validate_recipes_for_import

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def load_seed(path: Path) -> tuple[list, list]:
    """Return (users, recipes) from a seed file; raises ValueError on bad shape."""
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, list):
        return [], data
    if isinstance(data, dict) and isinstance(data.get("recipes"), list):
        users = data.get("users", [])
        if not isinstance(users, list):
            raise ValueError('"users" must be an array')
        return users, data["recipes"]
    raise ValueError('root must be an array of recipes or an object with a "recipes" array')


def check_users(users: list) -> list[str]:
    problems = []
    for i, item in enumerate(users):
        if not isinstance(item, dict):
            problems.append(f"User at index {i}: must be an object")
            continue
        try:
            # Seed users may omit _id; the importer assigns one
            User.model_validate({"_id": f"seed-user-{i}", **item})
        except ValidationError as e:
            problems.append(f"User at index {i}: {first_error_message(e)}")
    return problems


def check_recipes(recipes: list) -> list[str]:
    _, errors = validate_recipes_for_import(recipes)
    problems = []
    for err in errors:
        path = ".".join(str(part) for part in err["loc"])
        problems.append(
            f"Recipe at index {err['index']} "
            f"(id={err['recipe_id']}, title={err['recipe_title']!r}): {path}: {err['msg']}"
        )
    return problems


def check_file(path: Path) -> list[str]:
    """Human-readable problems found in one seed file (empty when valid)."""
    try:
        users, recipes = load_seed(path)
    except FileNotFoundError:
        return [f"{path}: file not found"]
    except json.JSONDecodeError as e:
        return [f"{path}: invalid JSON at line {e.lineno}: {e.msg}"]
    except (OSError, ValueError) as e:
        return [f"{path}: {e}"]
    return check_users(users) + check_recipes(recipes)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Validate recipe seed files.")
    parser.add_argument("files", nargs="+", type=Path, help="seed JSON files")
    args = parser.parse_args(argv)

    failed = False
    for path in args.files:
        if not path.is_absolute():
            path = PROJECT_ROOT / path
        problems = check_file(path)
        for problem in problems:
            print(problem)
        failed = failed or bool(problems)

    if failed:
        print("\nValidation failed.", file=sys.stderr)
        return 1

    print("All recipes passed schema validation.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
