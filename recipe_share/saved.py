"""
Save-membership for persisted and demo recipes.

A user's saved recipes live in two tables: ``saved_recipes`` holds integer
keys of persisted recipes and ``saved_demo_recipes`` holds raw ``demo-<n>``
ids from the bundled catalog. The id prefix decides which table an operation
touches, so one recipe can never be in both. Both tables key on
``(user_id, recipe)`` so a concurrent double save fails on commit instead of
storing a duplicate.
"""

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import models
from .crud import get_recipe_or_404, parse_id, recipe_to_dict
from .demo import demo_recipes, get_demo_recipe, is_demo_id
from .errors import ConflictError, NotFoundError, ValidationError
from .logger import get_logger

logger = get_logger(__name__)


def _commit_save(db: Session, entry, user: models.User, recipe_id: str):
    db.add(entry)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("Concurrent save of %s by user %s rejected", recipe_id, user.id)
        raise ConflictError("Recipe already saved")


def save_recipe(db: Session, user: models.User, recipe_id: str) -> str:
    """Add a recipe to the user's saved set and return a status message.

    Raises:
        NotFoundError: the id names neither a persisted nor a demo recipe.
        ConflictError: the recipe is already saved.
    """
    if is_demo_id(recipe_id):
        if get_demo_recipe(recipe_id) is None:
            raise NotFoundError("Recipe not found")
        if db.get(models.SavedDemoRecipe, (user.id, recipe_id)) is not None:
            raise ConflictError("Recipe already saved")
        _commit_save(db, models.SavedDemoRecipe(user_id=user.id, demo_id=recipe_id), user, recipe_id)
        logger.info("User %s saved demo recipe %s", user.id, recipe_id)
        return "Demo recipe saved successfully"

    recipe = get_recipe_or_404(db, recipe_id)
    if db.get(models.SavedRecipe, (user.id, recipe.id)) is not None:
        raise ConflictError("Recipe already saved")
    _commit_save(db, models.SavedRecipe(user_id=user.id, recipe_id=recipe.id), user, recipe_id)
    logger.info("User %s saved recipe %s", user.id, recipe.id)
    return "Recipe saved successfully"


def unsave_recipe(db: Session, user: models.User, recipe_id: str) -> str:
    """Remove a recipe from the user's saved set and return a status message.

    The persisted branch does not require the recipe to still exist, so a
    saved-then-deleted recipe can be cleared.

    Raises:
        ValidationError: the recipe is not in the applicable saved set.
    """
    if is_demo_id(recipe_id):
        entry = db.get(models.SavedDemoRecipe, (user.id, recipe_id))
        if entry is None:
            raise ValidationError("Demo recipe not saved")
        db.delete(entry)
        db.commit()
        logger.info("User %s unsaved demo recipe %s", user.id, recipe_id)
        return "Demo recipe unsaved successfully"

    key = parse_id(recipe_id)
    entry = db.get(models.SavedRecipe, (user.id, key)) if key is not None else None
    if entry is None:
        raise ValidationError("Recipe not saved")
    db.delete(entry)
    db.commit()
    logger.info("User %s unsaved recipe %s", user.id, key)
    return "Recipe unsaved successfully"


def _saved_demo_ids(db: Session, user: models.User):
    rows = (
        db.query(models.SavedDemoRecipe.demo_id)
        .filter(models.SavedDemoRecipe.user_id == user.id)
        .all()
    )
    return {row.demo_id for row in rows}


def saved_ids(db: Session, user: models.User) -> set:
    """String ids of everything the user has saved, both kinds mixed."""
    rows = (
        db.query(models.SavedRecipe.recipe_id)
        .filter(models.SavedRecipe.user_id == user.id)
        .all()
    )
    return {str(row.recipe_id) for row in rows} | _saved_demo_ids(db, user)


def list_saved_recipes(db: Session, user: models.User) -> list:
    """Persisted saved recipes in save order, then saved demo recipes in catalog order.

    Entries pointing at deleted recipes are skipped.
    """
    entries = (
        db.query(models.SavedRecipe)
        .filter(models.SavedRecipe.user_id == user.id)
        .order_by(models.SavedRecipe.saved_at, models.SavedRecipe.recipe_id)
        .all()
    )
    result = []
    for entry in entries:
        recipe = db.get(models.Recipe, entry.recipe_id)
        if recipe is None:
            continue
        result.append(recipe_to_dict(recipe, is_saved=True))

    demo_saved = _saved_demo_ids(db, user)
    result.extend(r for r in demo_recipes(demo_saved) if r["isSaved"])
    return result
