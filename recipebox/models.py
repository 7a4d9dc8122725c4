from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from datetime import datetime, timezone
from typing import Any, List, Optional, Union
from enum import Enum

# Constants
MAX_TITLE_LENGTH = 200
DEFAULT_CUISINE = "Other"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DifficultyLevel(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class Document(BaseModel):
    """Base for stored documents: snake_case attributes, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class Ingredient(Document):
    name: str = Field(min_length=1)
    quantity: str = "1"
    unit: str = ""


class Instruction(Document):
    step: int = Field(ge=1)
    text: str = Field(min_length=1)


class RecipeImage(Document):
    url: str = Field(min_length=1)
    is_primary: bool = False


class AuthorSummary(Document):
    id: str = Field(alias="_id")
    name: str
    email: str


class User(Document):
    id: str = Field(alias="_id")
    name: str
    email: str
    created_at: datetime = Field(default_factory=utcnow)


class Recipe(Document):
    id: str = Field(alias="_id")
    title: str = Field(min_length=1, max_length=MAX_TITLE_LENGTH)
    description: str = Field(min_length=1)
    category: str = Field(min_length=1)
    cuisine: str = DEFAULT_CUISINE
    prep_time: int = Field(default=1, ge=1)
    cooking_time: int = Field(default=1, ge=1)
    servings: int = Field(default=1, ge=1)
    difficulty: DifficultyLevel = DifficultyLevel.MEDIUM
    ingredients: List[Ingredient] = Field(default_factory=list)
    instructions: List[Instruction] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    dietary: List[str] = Field(default_factory=list)
    images: List[RecipeImage] = Field(default_factory=list)
    author: Union[AuthorSummary, str]
    likes: List[str] = Field(default_factory=list)
    is_public: bool = True
    is_published: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def author_id(self) -> str:
        if isinstance(self.author, AuthorSummary):
            return self.author.id
        return self.author


class RecipePayload(BaseModel):
    """Client submission for create and update.

    Every field is optional and loosely typed; the normalizer decides what
    each value becomes. Unknown keys (including ``author``) are ignored.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    title: Any = None
    description: Any = None
    category: Any = None
    cuisine: Any = None
    prep_time: Any = Field(default=None, alias="prepTime")
    cook_time: Any = Field(default=None, alias="cookTime")
    servings: Any = None
    difficulty: Any = None
    ingredients: Optional[List[Any]] = None
    instructions: Optional[List[Any]] = None
    tags: Any = None
    image: Any = None
    dietary: Any = None
