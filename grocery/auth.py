# grocery/auth.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from fastapi import Depends, Header, Request, Response
from jose import JWTError, jwt
from passlib.context import CryptContext

from .config import settings
from .errors import AuthenticationError, AuthorizationError
from .models import STAFF_ROLES, User

pwd = CryptContext(schemes=["argon2"], deprecated="auto")


@dataclass(frozen=True)
class Principal:
    """Who is calling: resolved from the session token, no DB hit."""

    user_id: int
    role: str
    username: str = ""

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


def hash_password(p: str) -> str:
    return pwd.hash(p)


def verify_password(p: str, h: str) -> bool:
    return pwd.verify(p, h)


def create_token(user: User) -> str:
    exp = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_expire_minutes)
    payload = {
        "sub": str(user.id),
        "role": user.role,
        "username": user.username,
        "exp": exp,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_alg)


def decode_token(token: str) -> Optional[Principal]:
    try:
        data = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_alg])
        return Principal(
            user_id=int(data.get("sub")),
            role=str(data.get("role") or "customer"),
            username=str(data.get("username") or ""),
        )
    except (JWTError, TypeError, ValueError):
        return None


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.token_cookie,
        value=token,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        path="/",
        max_age=settings.jwt_expire_minutes * 60,
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(key=settings.token_cookie, path="/")


def _bearer(authorization: Optional[str]) -> Optional[str]:
    if authorization and authorization.lower().startswith("bearer "):
        return authorization.split(" ", 1)[1].strip() or None
    return None


def current_principal(
    request: Request,
    authorization: str | None = Header(default=None),
) -> Principal:
    """
    Resolve the caller:
      - session cookie first (browser storefront / dashboards),
      - else `Authorization: Bearer <token>` (scripts, tests).
    A stale cookie does not shadow a valid bearer token.
    """
    tokens = [t for t in (request.cookies.get(settings.token_cookie), _bearer(authorization)) if t]
    if not tokens:
        raise AuthenticationError("Please log in first")

    for token in tokens:
        principal = decode_token(token)
        if principal is not None:
            return principal
    raise AuthenticationError("Session expired, please log in again")


def require_roles(*roles: str) -> Callable[..., Principal]:
    def _dep(principal: Principal = Depends(current_principal)) -> Principal:
        if principal.role not in roles:
            raise AuthorizationError()
        return principal

    return _dep


require_staff = require_roles(*STAFF_ROLES)
require_admin = require_roles("admin")
