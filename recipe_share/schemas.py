from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Difficulty = Literal["Easy", "Medium", "Hard"]


class RecipeBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(
        ..., min_length=1, json_schema_extra={"example": "Simple Pancakes"}
    )
    description: str = Field(..., min_length=1)
    image: str = Field(..., min_length=1)
    cook_time: str = Field(
        ..., alias="cookTime", min_length=1, json_schema_extra={"example": "25m"}
    )
    servings: int = Field(..., ge=1)
    difficulty: Difficulty
    category: str = Field(..., min_length=1)
    ingredients: List[str] = Field(
        default_factory=list,
        json_schema_extra={"example": ["flour", "milk", "egg"]},
    )
    instructions: List[str] = Field(
        default_factory=list,
        json_schema_extra={
            "example": [
                "Mix dry ingredients",
                "Add wet ingredients",
                "Cook on skillet until golden",
            ]
        },
    )
    tags: List[str] = Field(default_factory=list)
    views: int = Field(0, ge=0)
    likes: int = Field(0, ge=0)


class RecipeCreate(RecipeBase):
    pass


class RecipeUpdate(BaseModel):
    """Partial update; the creator is not updatable."""

    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    image: Optional[str] = Field(None, min_length=1)
    cook_time: Optional[str] = Field(None, alias="cookTime", min_length=1)
    servings: Optional[int] = Field(None, ge=1)
    difficulty: Optional[Difficulty] = None
    category: Optional[str] = Field(None, min_length=1)
    ingredients: Optional[List[str]] = None
    instructions: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    views: Optional[int] = Field(None, ge=0)
    likes: Optional[int] = Field(None, ge=0)


class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5, json_schema_extra={"example": 4})
    comment: str = Field(
        ..., min_length=1, max_length=500,
        json_schema_extra={"example": "Great weeknight dinner"},
    )


class ReviewUpdate(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    comment: Optional[str] = Field(None, min_length=1, max_length=500)


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=1)


class LoginRequest(BaseModel):
    email: str
    password: str
