import json
from typing import Optional

from sqlalchemy.orm import Session

from . import models, schemas
from .demo import get_demo_recipe, is_demo_id
from .errors import ForbiddenError, NotFoundError
from .logger import get_logger

logger = get_logger(__name__)

LIST_FIELDS = ("ingredients", "instructions", "tags")

MIN_KEY = -(2 ** 63)
MAX_KEY = 2 ** 63 - 1


def parse_id(value) -> Optional[int]:
    """Return the integer key behind a path id, or None if it cannot be one.

    Only ASCII digits are accepted, and keys outside the signed 64-bit range
    the database stores are treated as unknown.
    """
    if isinstance(value, int):
        key = value
    else:
        text = str(value).strip()
        if not (text.isascii() and text.isdigit()):
            return None
        key = int(text)
    if not MIN_KEY <= key <= MAX_KEY:
        return None
    return key


def _load_list(value):
    try:
        return json.loads(value or "[]")
    except ValueError:
        return []


def recipe_to_dict(recipe: models.Recipe, is_saved: bool = False) -> dict:
    return {
        "id": str(recipe.id),
        "title": recipe.title,
        "description": recipe.description,
        "image": recipe.image,
        "cookTime": recipe.cook_time,
        "servings": recipe.servings,
        "difficulty": recipe.difficulty,
        "category": recipe.category,
        "ingredients": _load_list(recipe.ingredients),
        "instructions": _load_list(recipe.instructions),
        "tags": _load_list(recipe.tags),
        "isSaved": is_saved,
        "createdDate": recipe.created_at.isoformat() if recipe.created_at else None,
        "views": recipe.views or 0,
        "likes": recipe.likes or 0,
        "createdBy": str(recipe.created_by),
    }


def get_recipe(db: Session, recipe_id):
    key = parse_id(recipe_id)
    if key is None:
        return None
    return db.get(models.Recipe, key)


def get_recipe_or_404(db: Session, recipe_id) -> models.Recipe:
    recipe = get_recipe(db, recipe_id)
    if recipe is None:
        raise NotFoundError(f"Recipe with id: {recipe_id} not found")
    return recipe


def find_recipe(db: Session, recipe_id, saved_ids=frozenset()) -> dict:
    """Resolve a persisted or demo recipe id to its API representation."""
    if is_demo_id(recipe_id):
        demo = get_demo_recipe(recipe_id)
        if demo is None:
            raise NotFoundError(f"Recipe with id: {recipe_id} not found")
        demo["isSaved"] = recipe_id in saved_ids
        return demo
    recipe = get_recipe_or_404(db, recipe_id)
    return recipe_to_dict(recipe, str(recipe.id) in saved_ids)


def get_recipes(db: Session, skip: int = 0, limit: Optional[int] = None):
    query = db.query(models.Recipe).order_by(models.Recipe.id).offset(skip)
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def get_user_recipes(db: Session, user_id: int):
    return (
        db.query(models.Recipe)
        .filter(models.Recipe.created_by == user_id)
        .order_by(models.Recipe.id)
        .all()
    )


def create_recipe(db: Session, recipe: schemas.RecipeCreate, user: models.User):
    db_recipe = models.Recipe(
        title=recipe.title,
        description=recipe.description,
        image=recipe.image,
        cook_time=recipe.cook_time,
        servings=recipe.servings,
        difficulty=recipe.difficulty,
        category=recipe.category,
        ingredients=json.dumps(recipe.ingredients or []),
        instructions=json.dumps(recipe.instructions or []),
        tags=json.dumps(recipe.tags or []),
        views=recipe.views,
        likes=recipe.likes,
        created_by=user.id,
    )
    db.add(db_recipe)
    db.commit()
    db.refresh(db_recipe)
    logger.info("Recipe %s created by user %s", db_recipe.id, user.id)
    return db_recipe


def _owned_recipe(db: Session, recipe_id, user: models.User, action: str) -> models.Recipe:
    if is_demo_id(recipe_id):
        raise ForbiddenError("Demo recipes are read-only")
    db_recipe = get_recipe_or_404(db, recipe_id)
    if db_recipe.created_by != user.id:
        logger.warning("User %s may not %s recipe %s", user.id, action, db_recipe.id)
        raise ForbiddenError(f"You are not authorized to {action} this recipe")
    return db_recipe


def update_recipe(db: Session, recipe_id, recipe: schemas.RecipeUpdate, user: models.User):
    db_recipe = _owned_recipe(db, recipe_id, user, "edit")
    changes = recipe.model_dump(exclude_unset=True)
    for field, value in changes.items():
        if value is None:
            continue
        if field in LIST_FIELDS:
            value = json.dumps(value)
        setattr(db_recipe, field, value)
    db.add(db_recipe)
    db.commit()
    db.refresh(db_recipe)
    return db_recipe


def delete_recipe(db: Session, recipe_id, user: models.User):
    db_recipe = _owned_recipe(db, recipe_id, user, "delete")
    # Reviews go with the recipe; saved entries stay behind as tombstones
    db.query(models.Review).filter(models.Review.recipe_id == db_recipe.id).delete()
    db.delete(db_recipe)
    db.commit()
    logger.info("Recipe %s deleted by user %s", recipe_id, user.id)
    return True
