"""
Application configuration, read once from the environment.
"""

import os
from pathlib import Path

# App configuration
APP_NAME = "Recipebox API"
VERSION = "1.0.0"
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("CORS_ORIGINS", "*").split(",")
    if origin.strip()
]

# Persistence: MongoDB when MONGO_URI is set, otherwise the SQLite document store
MONGO_URI = os.environ.get("MONGO_URI") or None
MONGO_DB_NAME = os.environ.get("MONGO_DB_NAME", "recipebox")
MONGO_SERVER_SELECTION_TIMEOUT_MS = int(
    os.environ.get("MONGO_SERVER_SELECTION_TIMEOUT_MS", "30000")
)
SQLITE_PATH = os.environ.get("SQLITE_PATH", ":memory:")

SEED_DATA_PATH = Path(
    os.environ.get(
        "SEED_DATA_PATH",
        str(Path(__file__).parent.parent / "sample-recipes.json"),
    )
)

# Auth tokens
JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.environ.get("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))

# Listing
PUBLIC_LIST_LIMIT = int(os.environ.get("PUBLIC_LIST_LIMIT", "50"))
