"""
Request pipeline gates: bearer-token authentication and recipe ownership.

Both are FastAPI dependencies; a handler that declares one only runs once
the gate has passed.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from recipebox import config
from recipebox.core.abstractions import RecipeRepository, UserRepository
from recipebox.core.dependencies import get_recipe_storage, get_user_storage
from recipebox.models import Recipe, User
from recipebox.services.metrics import timed_query

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")

BEARER_CHALLENGE = {"WWW-Authenticate": "Bearer"}


def create_access_token(user_id: str, expires_minutes: Optional[int] = None) -> str:
    minutes = expires_minutes if expires_minutes is not None else config.ACCESS_TOKEN_EXPIRE_MINUTES
    payload = {
        "sub": user_id,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=minutes),
    }
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[str]:
    """Return the user id in the token, or None if it is invalid or expired."""
    try:
        payload = jwt.decode(
            token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM]
        )
    except JWTError as e:
        logger.debug("Rejected token: %s", e)
        return None
    return payload.get("sub")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    users: UserRepository = Depends(get_user_storage),
) -> User:
    """Authentication gate. Resolves the requester or fails with 401."""
    user_id = decode_access_token(token)
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized, token failed",
            headers=BEARER_CHALLENGE,
        )
    user = await users.get_user(user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized, user not found",
            headers=BEARER_CHALLENGE,
        )
    return user


async def get_owned_recipe(
    recipe_id: str,
    user: User = Depends(get_current_user),
    storage: RecipeRepository = Depends(get_recipe_storage),
) -> Recipe:
    """Ownership gate. Loads the recipe in the path and checks its author."""
    with timed_query("get"):
        recipe = await storage.get_recipe(recipe_id)
    if recipe is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Recipe not found")
    if recipe.author_id != user.id:
        logger.info("User %s denied access to recipe %s", user.id, recipe_id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to modify this recipe",
        )
    return recipe
