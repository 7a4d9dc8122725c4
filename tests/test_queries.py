"""
Tests for recipe query construction (Mongo filters and in-process matching).
"""

import re

from recipebox.queries import SearchCriteria


def doc(**fields):
    base = {
        "title": "Tomato Soup",
        "description": "A warm soup",
        "category": "Lunch",
        "cuisine": "Italian",
        "difficulty": "Easy",
        "tags": ["vegan", "Quick"],
        "author": "u1",
        "likes": ["u2"],
        "isPublic": True,
        "isPublished": True,
    }
    base.update(fields)
    return base


def test_public_filter():
    assert SearchCriteria.public().to_mongo_filter() == {
        "isPublic": True,
        "isPublished": True,
    }


def test_authored_and_favorites_filters():
    assert SearchCriteria.authored_by("u1").to_mongo_filter() == {"author": "u1"}
    assert SearchCriteria.favorites_of("u2").to_mongo_filter() == {"likes": "u2"}


def test_search_without_params_is_public_filter():
    assert SearchCriteria.search().to_mongo_filter() == SearchCriteria.public().to_mongo_filter()
    assert SearchCriteria.search("", "", "", "").to_mongo_filter() == {
        "isPublic": True,
        "isPublished": True,
    }


def test_search_filter_with_everything():
    query = SearchCriteria.search("a.b", "Lunch", "Thai", "Hard").to_mongo_filter()
    pattern = {"$regex": re.escape("a.b"), "$options": "i"}
    assert query == {
        "isPublic": True,
        "isPublished": True,
        "$or": [{"title": pattern}, {"description": pattern}, {"tags": pattern}],
        "category": "Lunch",
        "cuisine": "Thai",
        "difficulty": "Hard",
    }


def test_used_filters():
    assert SearchCriteria.search().used_filters() == []
    assert SearchCriteria.search("soup", cuisine="Thai").used_filters() == ["q", "cuisine"]


def test_matches_public_flags():
    criteria = SearchCriteria.public()
    assert criteria.matches(doc())
    assert not criteria.matches(doc(isPublic=False))
    assert not criteria.matches(doc(isPublished=False))


def test_matches_text_in_any_field():
    assert SearchCriteria.search("TOMATO").matches(doc())
    assert SearchCriteria.search("warm").matches(doc())
    assert SearchCriteria.search("quick").matches(doc())
    assert not SearchCriteria.search("beef").matches(doc())


def test_matches_exact_filters_are_case_sensitive():
    assert SearchCriteria.search(category="Lunch").matches(doc())
    assert not SearchCriteria.search(category="lunch").matches(doc())
    assert not SearchCriteria.search("soup", difficulty="Hard").matches(doc())


def test_matches_author_and_likes():
    assert SearchCriteria.authored_by("u1").matches(doc())
    assert SearchCriteria.authored_by("u1").matches(doc(author={"_id": "u1"}))
    assert not SearchCriteria.authored_by("u2").matches(doc())
    assert SearchCriteria.favorites_of("u2").matches(doc())
    assert not SearchCriteria.favorites_of("u1").matches(doc())


def test_sql_filter_for_public_search():
    clauses, params = SearchCriteria.search("soup", category="Lunch").to_sql_filter()
    assert clauses == [
        "json_extract(document, '$.isPublic') = 1",
        "json_extract(document, '$.isPublished') = 1",
        "json_extract(document, '$.category') = ?",
    ]
    # Text search stays in-process
    assert params == ["Lunch"]


def test_sql_filter_for_author_and_favorites():
    assert SearchCriteria.authored_by("u1").to_sql_filter() == (["author = ?"], ["u1"])
    clauses, params = SearchCriteria.favorites_of("u2").to_sql_filter()
    assert "json_each(document, '$.likes')" in clauses[0]
    assert params == ["u2"]


def test_sql_filter_empty():
    assert SearchCriteria().to_sql_filter() == ([], [])
