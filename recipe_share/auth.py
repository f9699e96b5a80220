"""
Authentication for the recipe-share API.

Passwords are hashed with bcrypt. A successful login issues an opaque bearer
token backed by a row in ``user_sessions``; the FastAPI dependencies below
resolve that token to the acting user.
"""

import secrets
from datetime import timedelta
from typing import Optional

import bcrypt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import models
from .config import get_config
from .db import get_db
from .errors import ConflictError, UnauthenticatedError, ValidationError
from .logger import get_logger

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError as e:
        logger.error("Password verification error: %s", e)
        return False


def get_user_by_email(db: Session, email: str):
    return (
        db.query(models.User)
        .filter(models.User.email == email.strip().lower())
        .first()
    )


def register_user(db: Session, name: str, email: str, password: str) -> models.User:
    email = email.strip().lower()
    if "@" not in email:
        raise ValidationError("A valid email address is required")
    min_length = get_config().password_min_length
    if len(password) < min_length:
        raise ValidationError(f"Password must be at least {min_length} characters")
    if get_user_by_email(db, email):
        raise ConflictError("Email is already registered")

    user = models.User(name=name.strip(), email=email, password_hash=hash_password(password))
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Email is already registered")
    db.refresh(user)
    logger.info("User registered: %s", email)
    return user


def authenticate_user(db: Session, email: str, password: str) -> models.User:
    user = get_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        logger.warning("Authentication failed for %s", email)
        raise UnauthenticatedError("Invalid email or password")
    return user


def create_session(db: Session, user: models.User) -> str:
    token = secrets.token_urlsafe(32)
    expires_at = models.utcnow() + timedelta(hours=get_config().session_duration_hours)
    db.add(models.UserSession(token=token, user_id=user.id, expires_at=expires_at))
    db.commit()
    return token


def user_for_token(db: Session, token: str) -> Optional[models.User]:
    session = db.get(models.UserSession, token)
    if session is None:
        return None
    if session.expires_at <= models.utcnow():
        db.delete(session)
        db.commit()
        return None
    return db.get(models.User, session.user_id)


def user_to_dict(user: models.User) -> dict:
    return {"id": str(user.id), "name": user.name, "email": user.email}


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Optional[models.User]:
    if credentials is None:
        return None
    return user_for_token(db, credentials.credentials)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> models.User:
    if credentials is None:
        raise UnauthenticatedError("Authentication required")
    user = user_for_token(db, credentials.credentials)
    if user is None:
        raise UnauthenticatedError("Invalid or expired token")
    return user
