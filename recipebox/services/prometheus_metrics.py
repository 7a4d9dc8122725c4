"""
Prometheus metrics for persistence latency, search usage, favorites and failures.
Exposed via /metrics endpoint for Prometheus scraping.
"""

from prometheus_client import Counter, Histogram

# Response time histogram (seconds), per repository operation
persistence_duration_seconds = Histogram(
    "recipebox_persistence_duration_seconds",
    "Recipe storage call duration in seconds",
    ["operation"],  # find, get, create, update, delete, toggle_like
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

# Which search filters are used
recipe_search_total = Counter(
    "recipebox_search_total",
    "Recipe search requests by filters used",
    ["filters"],  # e.g. q, q+category, none
)

favorite_toggles_total = Counter(
    "recipebox_favorite_toggles_total",
    "Favorite toggles by resulting action",
    ["action"],  # added, removed
)

handler_failures_total = Counter(
    "recipebox_handler_failures_total",
    "Requests that ended in an unclassified 500",
    ["endpoint"],
)


def record_persistence_duration(operation: str, seconds: float) -> None:
    """Record a storage call duration."""
    persistence_duration_seconds.labels(operation=operation).observe(seconds)


def record_recipe_search(filters: list[str]) -> None:
    """Record a search by the set of filters it used (bounded cardinality)."""
    label = "+".join(filters) if filters else "none"
    recipe_search_total.labels(filters=label).inc()


def record_favorite_toggle(favorited: bool) -> None:
    action = "added" if favorited else "removed"
    favorite_toggles_total.labels(action=action).inc()


def record_handler_failure(endpoint: str) -> None:
    handler_failures_total.labels(endpoint=endpoint).inc()
