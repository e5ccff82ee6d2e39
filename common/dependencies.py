"""Reusable FastAPI dependencies for auth."""
from typing import Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from .auth import decode_token
from .models import RoleEnum
from .schemas import TokenData

oauth_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def get_current_principal(token: str = Depends(oauth_scheme)) -> TokenData:
    return decode_token(token)


def allow_roles(*roles: RoleEnum) -> Callable[[TokenData], TokenData]:
    def dependency(principal: TokenData = Depends(get_current_principal)) -> TokenData:
        if principal.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return principal

    return dependency
