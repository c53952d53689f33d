"""Request dependencies shared by routers."""
from __future__ import annotations

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from trajet_api.core.security import decode_access_token
from trajet_api.db.models import Driver
from trajet_api.services.account_service import DRIVER, AccountService
from trajet_api.services.errors import NotFoundError

_bearer = HTTPBearer(auto_error=False)
_drivers = AccountService(DRIVER)


def current_driver(credentials: HTTPAuthorizationCredentials | None = Depends(_bearer)) -> Driver:
    """Resolve the bearer token to a driver; 401 for missing, expired or foreign tokens."""
    claims = decode_access_token(credentials.credentials if credentials else None)
    if not claims or claims.get("kind") != DRIVER.name:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")
    try:
        return _drivers.get_principal(claims["id"])
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Driver not found") from None
