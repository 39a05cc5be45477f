# app/core/auth.py
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlmodel import Session, select

from app.core.config import get_settings
from app.core.errors import AuthError, AuthorizationError
from app.database import get_session
from app.models.user import User

settings = get_settings()

# HTTP Bearer scheme:
# - auto_error=False => missing Authorization header will NOT raise immediately
#   so we can fall back to the auth cookie or to guest mode.
bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(
    user_id: uuid.UUID | str,
    email: str,
    role: str = "user",
    expires_minutes: int | None = None,
) -> str:
    """
    Sign a token carrying the (userId, email, role) identity.

    Tokens are normally minted by the identity provider; this helper
    signs with the same secret and claim layout.
    """
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=expires_minutes or settings.JWT_EXPIRES_MINUTES
    )
    claims = {
        "sub": str(user_id),
        "email": email,
        "role": role,
        "exp": expire,
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALG)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify an access token (JWT).

    Verification:
      - signature (HS256 using JWT_SECRET)
      - expiration time (exp)
      - audience is NOT verified

    Raises:
        AuthError: if token is invalid/expired.
    """
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        raise AuthError("Invalid or expired token")


def _default_name_from_email(email: str) -> str:
    """
    Derive a default display name from email if the user has not
    completed their profile yet.
    """
    if "@" in email:
        return email.split("@", 1)[0][:50]
    return email[:50]


def _extract_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None,
) -> str | None:
    if credentials is not None:
        return credentials.credentials
    return request.cookies.get(settings.AUTH_COOKIE_NAME)


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User | None:
    """
    Resolve the current user from the auth cookie or a Bearer token.

    Flow:
      1. No Authorization header and no auth cookie => guest => None.
      2. Decode JWT => extract 'sub' (or legacy 'userId'), 'email', 'role'.
      3. Convert the id to UUID to match User.id type.
      4. Find user profile in users.
      5. If missing, auto-provision a profile with the token's role.

    Raises:
        AuthError: if token is malformed or missing required claims.
    """
    token = _extract_token(request, credentials)
    if not token:
        return None  # guest mode

    payload = decode_access_token(token)
    sub = payload.get("sub") or payload.get("userId")
    email = payload.get("email")

    if not sub or not email:
        raise AuthError("Token missing sub/email")

    try:
        sub_uuid = uuid.UUID(str(sub))
    except ValueError:
        raise AuthError("Invalid sub in token")

    user = session.exec(select(User).where(User.id == sub_uuid)).first()

    if user is None:
        role = payload.get("role")
        user = User(
            id=sub_uuid,
            email=email,
            name=_default_name_from_email(email),
            role=role if role in ("user", "admin") else "user",
        )
        session.add(user)
        session.commit()
        session.refresh(user)

    return user


def require_auth(user: User | None = Depends(get_current_user)) -> User:
    """
    Enforce authentication.

    Raises:
        AuthError(401): if user is None.
    """
    if user is None:
        raise AuthError("Unauthorized - Please log in")
    return user


def require_admin(user: User = Depends(require_auth)) -> User:
    """
    Enforce admin role.

    Raises:
        AuthorizationError(403): if role is not admin.
    """
    if user.role != "admin":
        raise AuthorizationError("Forbidden - Admin access required")
    return user
