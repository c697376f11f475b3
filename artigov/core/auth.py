"""Who is calling: the ``require_auth`` dependency.

Only identity is resolved here. Project roles and approver seats are
per-project and belong to the permission service, so this layer can only
ever answer 401; 403 and 404 come from the services.

With ``AUTH_ENABLED=false`` the caller is named by the ``X-User-Id``
header, which lets local runs and tests act as any provisioned user.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .config import settings
from .logging_config import actor_id_var
from .token_factory import decode_token
from ..database import get_db
from ..exceptions import AuthenticationError
from ..models.project import User

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False, description="HS256 token issued by the identity provider")


@dataclass(frozen=True)
class AuthContext:
    user_id: str
    email: Optional[str] = None


def _claimed_identity(
    credentials: Optional[HTTPAuthorizationCredentials], x_user_id: Optional[str]
) -> tuple[str, Optional[str]]:
    """``(user_id, email)`` the request claims, before the user table is consulted."""
    if not settings.auth_enabled:
        user_id = (x_user_id or "").strip()
        if not user_id:
            raise AuthenticationError("Missing X-User-Id header")
        return user_id, None

    if credentials is None:
        raise AuthenticationError("Missing bearer token")
    payload = decode_token(credentials.credentials, settings.jwt_secret_key, settings.jwt_algorithm)
    if payload is None:
        raise AuthenticationError("Invalid or expired token")
    return payload.sub, payload.email


def require_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    x_user_id: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> AuthContext:
    """Resolve the caller to an active user, or raise AuthenticationError (401)."""
    user_id, email = _claimed_identity(credentials, x_user_id)

    user = db.get(User, user_id)
    if user is None or not user.is_active:
        logger.info("Rejected caller", extra={"claimed_user_id": user_id})
        raise AuthenticationError("Unknown or deactivated user")

    actor_id_var.set(user.user_id)
    return AuthContext(user_id=user.user_id, email=email or user.email)
