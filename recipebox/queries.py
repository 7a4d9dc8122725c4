"""
Recipe query construction.

Each listing endpoint is described by a SearchCriteria value. The Mongo
backend renders it to a filter document. The SQLite backend renders the
flag, ownership, likes and exact-match parts to a WHERE clause over its
JSON documents and evaluates the text search in-process. Both must agree.
"""

import re
from dataclasses import dataclass
from typing import Any, Optional

PUBLIC_FILTER = {"isPublic": True, "isPublished": True}
TEXT_FIELDS = ("title", "description", "tags")
EXACT_FIELDS = ("category", "cuisine", "difficulty")


@dataclass(frozen=True)
class SearchCriteria:
    """Filter over recipe documents. Empty strings count as "not given"."""

    public_only: bool = False
    author: Optional[str] = None
    liked_by: Optional[str] = None
    text: Optional[str] = None
    category: Optional[str] = None
    cuisine: Optional[str] = None
    difficulty: Optional[str] = None

    @classmethod
    def public(cls) -> "SearchCriteria":
        return cls(public_only=True)

    @classmethod
    def authored_by(cls, user_id: str) -> "SearchCriteria":
        return cls(author=user_id)

    @classmethod
    def favorites_of(cls, user_id: str) -> "SearchCriteria":
        return cls(liked_by=user_id)

    @classmethod
    def search(
        cls,
        q: Optional[str] = None,
        category: Optional[str] = None,
        cuisine: Optional[str] = None,
        difficulty: Optional[str] = None,
    ) -> "SearchCriteria":
        return cls(
            public_only=True,
            text=q or None,
            category=category or None,
            cuisine=cuisine or None,
            difficulty=difficulty or None,
        )

    def _exact_filters(self) -> dict[str, str]:
        return {
            field: getattr(self, field)
            for field in EXACT_FIELDS
            if getattr(self, field)
        }

    def used_filters(self) -> list[str]:
        """Names of the optional filters in effect, for metrics labels."""
        used = ["q"] if self.text else []
        return used + list(self._exact_filters())

    def to_mongo_filter(self) -> dict[str, Any]:
        query: dict[str, Any] = {}
        if self.public_only:
            query.update(PUBLIC_FILTER)
        if self.author:
            query["author"] = self.author
        if self.liked_by:
            query["likes"] = self.liked_by
        if self.text:
            pattern = {"$regex": re.escape(self.text), "$options": "i"}
            query["$or"] = [{field: pattern} for field in TEXT_FIELDS]
        query.update(self._exact_filters())
        return query

    def to_sql_filter(self) -> tuple[list[str], list[Any]]:
        """
        WHERE clauses and parameters for the SQLite recipes table.

        Clauses apply to the ``author`` column and the JSON ``document``
        column; the text search is left to ``matches``.
        """
        clauses: list[str] = []
        params: list[Any] = []
        if self.public_only:
            clauses += [
                f"json_extract(document, '$.{field}') = 1" for field in PUBLIC_FILTER
            ]
        if self.author:
            clauses.append("author = ?")
            params.append(self.author)
        if self.liked_by:
            clauses.append(
                "EXISTS (SELECT 1 FROM json_each(document, '$.likes') "
                "WHERE json_each.value = ?)"
            )
            params.append(self.liked_by)
        for field, value in self._exact_filters().items():
            clauses.append(f"json_extract(document, '$.{field}') = ?")
            params.append(value)
        return clauses, params

    def matches(self, document: dict[str, Any]) -> bool:
        if self.public_only and not (
            document.get("isPublic") is True and document.get("isPublished") is True
        ):
            return False
        if self.author and _author_id(document.get("author")) != self.author:
            return False
        if self.liked_by and self.liked_by not in document.get("likes", []):
            return False
        if self.text and not _matches_text(document, self.text):
            return False
        return all(
            document.get(field) == value
            for field, value in self._exact_filters().items()
        )


def _author_id(author: Any) -> Any:
    if isinstance(author, dict):
        return author.get("_id")
    return author


def _matches_text(document: dict[str, Any], text: str) -> bool:
    needle = text.lower()
    title = document.get("title") or ""
    description = document.get("description") or ""
    if needle in title.lower() or needle in description.lower():
        return True
    return any(needle in tag.lower() for tag in document.get("tags", []))
