# flake8: noqa
import sys
from pathlib import Path

# Ensure project root is on sys.path so `recipe_share` can be imported when tests are run
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))  # noqa: E402

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from recipe_share import app as app_module
from recipe_share import models
from recipe_share.db import Base, get_db


SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

RECIPE_PAYLOAD = {
    "title": "Simple Pancakes",
    "description": "Fluffy breakfast pancakes",
    "image": "https://example.com/pancakes.jpg",
    "cookTime": "20m",
    "servings": 4,
    "difficulty": "Easy",
    "category": "Breakfast",
    "ingredients": ["flour", "milk", "egg"],
    "instructions": ["Mix", "Cook on skillet until golden"],
    "tags": ["breakfast"],
}


@pytest.fixture
def session_factory():
    # StaticPool so the same in-memory database is shared across connections
    engine = create_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app_module.app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app_module.app)
    app_module.app.dependency_overrides.clear()


@pytest.fixture
def register(client):
    """Register a user through the API; returns (user dict, auth headers, token)."""
    counter = {"n": 0}

    def _register(name=None, email=None, password="secret123"):
        counter["n"] += 1
        name = name or f"User {counter['n']}"
        email = email or f"user{counter['n']}@example.com"
        res = client.post("/api/auth/register", json={"name": name, "email": email, "password": password})
        assert res.status_code == 201, res.text
        data = res.json()["data"]
        return data["user"], {"Authorization": f"Bearer {data['token']}"}, data["token"]

    return _register


@pytest.fixture
def create_recipe(client):
    def _create(headers, **overrides):
        payload = dict(RECIPE_PAYLOAD, **overrides)
        res = client.post("/api/recipes", json=payload, headers=headers)
        assert res.status_code == 201, res.text
        return res.json()["data"]

    return _create


@pytest.fixture
def make_user(db):
    """Insert a user row directly, for service-level tests."""
    counter = {"n": 0}

    def _make(name=None):
        counter["n"] += 1
        user = models.User(
            name=name or f"Cook {counter['n']}",
            email=f"cook{counter['n']}@example.com",
            password_hash="x",
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_recipe(db):
    def _make(owner, title="Soup"):
        recipe = models.Recipe(
            title=title,
            description="Warm soup",
            image="https://example.com/soup.jpg",
            cook_time="30m",
            servings=2,
            difficulty="Easy",
            category="Main",
            created_by=owner.id,
        )
        db.add(recipe)
        db.commit()
        db.refresh(recipe)
        return recipe

    return _make
