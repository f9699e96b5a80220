"""
Reviews and rating aggregates.

One review per (recipe, user). The average rating and review count of a
recipe are computed from the ``reviews`` table on every read; nothing is
cached or maintained incrementally, so a create, update or delete is visible
to the next read.
"""

import math
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import models
from .config import get_config
from .crud import get_recipe, parse_id
from .demo import get_demo_recipe, is_demo_id
from .errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from .logger import get_logger

logger = get_logger(__name__)

MIN_RATING = 1
MAX_RATING = 5
MAX_COMMENT_LENGTH = 500


def round_rating(value: float) -> float:
    """Round to one decimal place, halves rounding up."""
    return math.floor(value * 10 + 0.5) / 10


def empty_stats() -> dict:
    return {"averageRating": 0, "totalReviews": 0}


def review_to_dict(review: models.Review) -> dict:
    return {
        "id": str(review.id),
        "recipeId": str(review.recipe_id),
        "userId": str(review.user_id),
        "userName": review.user_name,
        "rating": review.rating,
        "comment": review.comment,
        "createdAt": review.created_at.isoformat() if review.created_at else None,
        "updatedAt": review.updated_at.isoformat() if review.updated_at else None,
    }


def _validate_rating(rating):
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValidationError("Rating must be a whole number between 1 and 5")
    if rating < MIN_RATING or rating > MAX_RATING:
        raise ValidationError("Rating must be between 1 and 5")


def _validate_comment(comment):
    if not isinstance(comment, str) or not comment.strip():
        raise ValidationError("Comment is required")
    if len(comment) > MAX_COMMENT_LENGTH:
        raise ValidationError(f"Comment must be at most {MAX_COMMENT_LENGTH} characters")


def _stats_for(db: Session, recipe_key: int) -> dict:
    average, total = (
        db.query(func.avg(models.Review.rating), func.count(models.Review.id))
        .filter(models.Review.recipe_id == recipe_key)
        .one()
    )
    if not total:
        return empty_stats()
    return {"averageRating": round_rating(float(average)), "totalReviews": total}


def _require_known_recipe(db: Session, recipe_id) -> Optional[models.Recipe]:
    """Return the persisted recipe, or None for a catalog demo id."""
    if is_demo_id(recipe_id):
        if get_demo_recipe(recipe_id) is None:
            raise NotFoundError("Recipe not found")
        return None
    recipe = get_recipe(db, recipe_id)
    if recipe is None:
        raise NotFoundError("Recipe not found")
    return recipe


def recipe_stats(db: Session, recipe_id) -> dict:
    """Average rating and review count for a recipe.

    Demo recipes cannot carry reviews and always report zero stats.

    Raises:
        NotFoundError: the id resolves to no known recipe.
    """
    recipe = _require_known_recipe(db, recipe_id)
    if recipe is None:
        return empty_stats()
    return _stats_for(db, recipe.id)


def list_recipe_reviews(db: Session, recipe_id, page: int = 1, limit: Optional[int] = None) -> dict:
    """One page of a recipe's reviews, newest first, with pagination and stats."""
    if limit is None or limit < 1:
        limit = get_config().reviews_page_size
    page = max(page, 1)

    recipe = _require_known_recipe(db, recipe_id)
    if recipe is None:
        reviews, stats = [], empty_stats()
    else:
        reviews = (
            db.query(models.Review)
            .filter(models.Review.recipe_id == recipe.id)
            .order_by(models.Review.created_at.desc(), models.Review.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        stats = _stats_for(db, recipe.id)

    total = stats["totalReviews"]
    return {
        "reviews": [review_to_dict(r) for r in reviews],
        "pagination": {
            "currentPage": page,
            "totalPages": math.ceil(total / limit),
            "totalReviews": total,
            "limit": limit,
        },
        "stats": stats,
    }


def get_review(db: Session, review_id) -> models.Review:
    key = parse_id(review_id)
    review = db.get(models.Review, key) if key is not None else None
    if review is None:
        raise NotFoundError("Review not found")
    return review


def _existing_review(db: Session, recipe_key: int, user_key: int) -> Optional[models.Review]:
    return (
        db.query(models.Review)
        .filter(models.Review.recipe_id == recipe_key, models.Review.user_id == user_key)
        .first()
    )


def create_review(db: Session, recipe_id, user: models.User, rating, comment) -> models.Review:
    """Create the acting user's review of a persisted recipe.

    The reviewer's display name is copied onto the review and is not updated
    if the user later renames themselves.

    Raises:
        ValidationError: rating outside 1-5, or empty/overlong comment.
        NotFoundError: unknown recipe; demo recipes are not reviewable.
        ConflictError: the user already reviewed this recipe.
    """
    _validate_rating(rating)
    _validate_comment(comment)

    if is_demo_id(recipe_id):
        raise NotFoundError("Recipe not found")
    recipe = _require_known_recipe(db, recipe_id)

    if _existing_review(db, recipe.id, user.id) is not None:
        raise ConflictError("You have already reviewed this recipe")

    review = models.Review(
        recipe_id=recipe.id,
        user_id=user.id,
        user_name=user.name or user.email,
        rating=rating,
        comment=comment,
    )
    db.add(review)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("You have already reviewed this recipe")
    db.refresh(review)
    logger.info("User %s reviewed recipe %s (%s stars)", user.id, recipe.id, rating)
    return review


def _owned_review(db: Session, review_id, user: models.User, action: str) -> models.Review:
    review = get_review(db, review_id)
    if review.user_id != user.id:
        logger.warning("User %s may not %s review %s", user.id, action, review.id)
        raise ForbiddenError(f"You can only {action} your own reviews")
    return review


def update_review(db: Session, review_id, user: models.User, rating=None, comment=None) -> models.Review:
    if rating is None and comment is None:
        raise ValidationError("Rating or comment is required for update")
    if rating is not None:
        _validate_rating(rating)
    if comment is not None:
        _validate_comment(comment)

    review = _owned_review(db, review_id, user, "update")
    if rating is not None:
        review.rating = rating
    if comment is not None:
        review.comment = comment
    review.updated_at = models.utcnow()
    db.commit()
    db.refresh(review)
    logger.info("Review %s updated by user %s", review.id, user.id)
    return review


def delete_review(db: Session, review_id, user: models.User) -> None:
    review = _owned_review(db, review_id, user, "delete")
    db.delete(review)
    db.commit()
    logger.info("Review %s deleted by user %s", review_id, user.id)
