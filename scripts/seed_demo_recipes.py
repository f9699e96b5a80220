"""Persist the bundled demo catalog as ordinary recipes owned by a seed user.

The seeded copies get regular integer ids and can be reviewed; the ``demo-<n>``
catalog entries served by the API are left untouched.
"""
import json
import os
import secrets

from recipe_share import models
from recipe_share.auth import hash_password
from recipe_share.db import SessionLocal, init_db
from recipe_share.demo import demo_recipes
from recipe_share.logger import get_logger, setup_logging

SEED_EMAIL = os.getenv("RECIPES_SEED_EMAIL", "demo@recipes.local")

logger = get_logger("scripts.seed_demo_recipes")


def main():
    setup_logging()
    init_db()
    db = SessionLocal()
    try:
        owner = db.query(models.User).filter(models.User.email == SEED_EMAIL).first()
        if owner is None:
            owner = models.User(
                name="Demo Chef",
                email=SEED_EMAIL,
                password_hash=hash_password(secrets.token_urlsafe(16)),
            )
            db.add(owner)
            db.flush()

        added = 0
        for r in demo_recipes():
            exists = (
                db.query(models.Recipe)
                .filter(models.Recipe.title == r["title"], models.Recipe.created_by == owner.id)
                .first()
            )
            if exists:
                continue
            db.add(models.Recipe(
                title=r["title"],
                description=r["description"],
                image=r["image"],
                cook_time=r["cookTime"],
                servings=r["servings"],
                difficulty=r["difficulty"],
                category=r["category"],
                ingredients=json.dumps(r.get("ingredients", [])),
                instructions=json.dumps(r.get("instructions", [])),
                tags=json.dumps(r.get("tags", [])),
                views=r.get("views", 0),
                likes=r.get("likes", 0),
                created_by=owner.id,
            ))
            added += 1
        db.commit()
    finally:
        db.close()
    logger.info("Seeded %d demo recipes", added)


if __name__ == "__main__":
    main()
