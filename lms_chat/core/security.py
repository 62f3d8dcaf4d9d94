# lms_chat/core/security.py
"""Caller identity from the JWT issued at login."""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID
import logging

import jwt
from fastapi.requests import HTTPConnection

from .config import settings
from .exceptions import Unauthorized

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    user_id: UUID
    role: Optional[str] = None


def create_access_token(user_id: UUID, role: str, expires_in: timedelta = timedelta(days=1)) -> str:
    """Issue a token with the same claims the login flow puts in the auth cookie"""
    payload = {
        "userId": str(user_id),
        "role": role,
        "exp": datetime.now(timezone.utc) + expires_in,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: Optional[str]) -> Identity:
    if not token:
        raise Unauthorized()
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        return Identity(user_id=UUID(payload["userId"]), role=payload.get("role"))
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Session expired")
    except (jwt.InvalidTokenError, KeyError, ValueError) as e:
        logger.info(f"Rejected token: {e}")
        raise Unauthorized("Invalid authentication token")


def token_from_request(request: HTTPConnection) -> Optional[str]:
    """Cookie first, then a bearer header"""
    token = request.cookies.get(settings.auth_cookie_name)
    if token:
        return token
    authorization = request.headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials
    return None
