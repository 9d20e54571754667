# src/goal_tracker/api/auth.py

from __future__ import annotations

import logging
from typing import Any

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..core.state import AppState
from ..errors import AuthRequired
from ..tasks.task_models import UserSession

logger = logging.getLogger(__name__)

auth_scheme = HTTPBearer(auto_error=False)


def decode_token(token: str, settings: Any) -> dict[str, Any]:
    """
    Verify an access token issued by the auth provider (HS256 shared secret).

    `sub` is the user id; `email` is optional.
    """
    secret = getattr(settings, "jwt_secret", None)
    if not secret:
        raise AuthRequired("Authentication is not configured on this server.")

    audience = getattr(settings, "jwt_audience", None)
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[getattr(settings, "jwt_algorithm", "HS256")],
            audience=audience,
            options={"verify_aud": bool(audience)},
        )
    except jwt.ExpiredSignatureError:
        raise AuthRequired("Token expired") from None
    except jwt.InvalidTokenError:
        raise AuthRequired("Invalid token") from None


def get_state(request: Request) -> AppState:
    return request.app.state.goal


def get_current_user(
    state: AppState = Depends(get_state),
    credentials: HTTPAuthorizationCredentials | None = Depends(auth_scheme),
) -> UserSession:
    if credentials is None:
        raise AuthRequired()

    payload = decode_token(credentials.credentials, state.settings)
    user_id = payload.get("sub")
    if not user_id:
        raise AuthRequired("Invalid token payload")

    email = payload.get("email") or None
    session = UserSession(user_id=str(user_id), email=email)
    state.task_store.upsert_user(session.user_id, session.email)
    return session
