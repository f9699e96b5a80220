from datetime import datetime, timezone

from sqlalchemy import (
    Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint,
)

from .db import Base


def utcnow():
    # Naive UTC; SQLite drops tzinfo on the way back anyway
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(254), unique=True, index=True, nullable=False)
    password_hash = Column(String(128), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class UserSession(Base):
    __tablename__ = "user_sessions"
    token = Column(String(64), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False)


class Recipe(Base):
    __tablename__ = "recipes"
    # Never reuse ids of deleted recipes; saved entries may still point at them
    __table_args__ = {"sqlite_autoincrement": True}
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    image = Column(String(1000), nullable=False)
    cook_time = Column(String(50), nullable=False)
    servings = Column(Integer, nullable=False)
    difficulty = Column(String(10), nullable=False)  # Easy | Medium | Hard
    category = Column(String(100), nullable=False)
    ingredients = Column(Text, nullable=True)  # JSON-encoded list
    instructions = Column(Text, nullable=True)  # JSON-encoded list
    tags = Column(Text, nullable=True)  # JSON-encoded list
    views = Column(Integer, default=0, nullable=False)
    likes = Column(Integer, default=0, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class SavedRecipe(Base):
    # No FK to recipes: deleting a recipe leaves the entry behind and the
    # saved listing skips it.
    __tablename__ = "saved_recipes"
    user_id = Column(Integer, ForeignKey("users.id"), primary_key=True)
    recipe_id = Column(Integer, primary_key=True)
    saved_at = Column(DateTime, default=utcnow, nullable=False)


class SavedDemoRecipe(Base):
    __tablename__ = "saved_demo_recipes"
    user_id = Column(Integer, ForeignKey("users.id"), primary_key=True)
    demo_id = Column(String(32), primary_key=True)
    saved_at = Column(DateTime, default=utcnow, nullable=False)


class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("recipe_id", "user_id", name="uq_reviews_recipe_user"),
    )
    id = Column(Integer, primary_key=True, index=True)
    recipe_id = Column(Integer, ForeignKey("recipes.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    user_name = Column(String(254), nullable=False)  # snapshot at creation time
    rating = Column(Integer, nullable=False)
    comment = Column(String(500), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
