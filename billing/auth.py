from typing import Optional

from fastapi import Header
from jose import JWTError, jwt

from billing.config import settings
from billing.errors import UnauthorizedError


def verify_token(authorization: Optional[str] = Header(None)):
    """Bearer-token check, only enforced when ``JWT_SECRET`` is configured."""
    if not settings.jwt_secret:
        return None
    if not authorization:
        raise UnauthorizedError("Missing bearer token")
    try:
        scheme, token = authorization.split()
        if scheme.lower() != "bearer":
            raise ValueError(scheme)
        return jwt.decode(token, settings.jwt_secret, algorithms=["HS256"])
    except (ValueError, JWTError):
        raise UnauthorizedError("Invalid or missing token")
