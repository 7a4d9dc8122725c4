import json
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app

from recipebox import config
from recipebox.core.dependencies import close_storage, get_recipe_storage, get_user_storage
from recipebox.errors import register_error_handlers
from recipebox.routes import recipes
from recipebox.services.metrics import aggregate_metrics, start_request_metrics
from recipebox.validation import validate_recipes_for_import

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


async def seed_from_file(path: Path) -> tuple[int, int]:
    """
    Load users and recipes from a seed file into the configured storage.

    The file holds ``{"users": [...], "recipes": [...]}``. Recipes that fail
    schema validation are skipped. Returns (users, recipes) imported.
    """
    with open(path, "r", encoding="utf-8") as seed_file:
        data = json.load(seed_file)

    user_count = await get_user_storage().import_users(data.get("users", []))

    valid, errors = validate_recipes_for_import(data.get("recipes", []))
    for err in errors:
        logger.warning(
            "Skipping seed recipe %s (%r): %s %s",
            err["index"],
            err["recipe_title"],
            ".".join(str(part) for part in err["loc"]),
            err["msg"],
        )
    recipe_count = await get_recipe_storage().import_recipes(valid)
    return user_count, recipe_count


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Seed sample data on startup; release the storage client on shutdown."""
    if not config.SEED_DATA_PATH.exists():
        logger.info("No seed data file found at %s", config.SEED_DATA_PATH)
    else:
        try:
            users, count = await seed_from_file(config.SEED_DATA_PATH)
            logger.info(
                "Seeded %d users and %d recipes from %s",
                users,
                count,
                config.SEED_DATA_PATH.name,
            )
        except (OSError, ValueError) as error:
            logger.error("Failed to seed sample data: %s", error)

    yield

    close_storage()


# Create FastAPI app
app = FastAPI(title=config.APP_NAME, version=config.VERSION, lifespan=lifespan)

register_error_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def track_storage_time(request: Request, call_next):
    """Time storage calls per request and roll them into the aggregate."""
    m = start_request_metrics()
    response = await call_next(request)
    aggregate_metrics.record(m.query_ms, m.query_count)
    if m.query_count:
        response.headers["X-Storage-Time-Ms"] = f"{m.query_ms:.2f}"
    return response


# Include routers
app.include_router(recipes.router, tags=["Recipes"])

# Prometheus scrape endpoint
app.mount("/metrics", make_asgi_app())


# Basic health check
@app.get("/health")
def health_check():
    return {"status": "healthy"}
