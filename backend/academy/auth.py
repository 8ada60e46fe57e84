"""Authentication helpers and FastAPI security dependencies.

This module provides utilities to decode JWT tokens and the FastAPI
dependencies `get_current_user` / `get_optional_user` that validate the
bearer token and return the corresponding `User` model instance from the
request's database session.

Token verification raises `errors.Unauthorized` on failure so the
dependencies can be used directly inside routes; the exception handlers
in `main.py` render the 401 envelope.
"""

from typing import Optional

from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import jwt
from sqlmodel import Session

from . import errors, models, repositories
from .config import settings
from .database import get_session

bearer_scheme = HTTPBearer(auto_error=False)


def decode_token(token: str) -> dict:
    """Decode and verify a JWT token.

    Returns the decoded payload on success or raises `Unauthorized`.
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise errors.Unauthorized('token expired')
    except jwt.InvalidTokenError:
        raise errors.Unauthorized('invalid token')


def resolve_user(credentials: Optional[HTTPAuthorizationCredentials], session: Session) -> models.User:
    """Turn bearer credentials into a `User` or raise `Unauthorized`."""
    if credentials is None or not credentials.credentials:
        raise errors.Unauthorized('not authenticated')
    payload = decode_token(credentials.credentials)
    user_id = payload.get('user_id')
    if not user_id or not isinstance(user_id, int):
        raise errors.Unauthorized('invalid token payload')
    user = repositories.UserRepository(session).get(user_id)
    if not user:
        raise errors.Unauthorized('user not found')
    return user


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    session: Session = Depends(get_session),
) -> models.User:
    """FastAPI dependency that returns the authenticated user."""
    return resolve_user(credentials, session)


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    session: Session = Depends(get_session),
) -> Optional[models.User]:
    """Like `get_current_user` but yields `None` for anonymous callers."""
    try:
        return resolve_user(credentials, session)
    except errors.Unauthorized:
        return None
