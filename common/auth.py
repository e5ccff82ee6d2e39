"""Verification of bearer tokens issued by the account service.

Accounts and logins live outside these services; they only need to know who
is calling and with which role. ``issue_token`` signs the same claims the
account service does and is used by local tooling and the test suite.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import HTTPException, status
from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import ValidationError

from .config import get_settings
from .models import RoleEnum
from .schemas import TokenData

settings = get_settings()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def issue_token(subject: str, role: RoleEnum = RoleEnum.STAFF, expires_delta: Optional[timedelta] = None) -> str:
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    claims: Dict[str, Any] = {
        "sub": subject,
        "role": RoleEnum(role).value,
        "exp": datetime.now(timezone.utc) + lifetime,
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> TokenData:
    """Check the signature and expiry of ``token`` and return its principal.

    Tokens without a role claim belong to front desk staff.
    """
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError as exc:
        raise _unauthorized("Token expired") from exc
    except JWTError as exc:
        raise _unauthorized("Invalid token") from exc

    subject = claims.get("sub")
    if not subject:
        raise _unauthorized("Missing subject in token")
    try:
        return TokenData(username=subject, role=claims.get("role", RoleEnum.STAFF.value))
    except ValidationError as exc:
        raise _unauthorized("Unknown role in token") from exc
