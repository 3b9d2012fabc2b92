from typing import Optional

from fastapi import Depends, Header, HTTPException
from jose import JWTError, jwt

from checkout_gateway.config import Settings
from checkout_gateway.dependencies import get_settings


def verify_token(authorization: Optional[str] = Header(None),
                 settings: Settings = Depends(get_settings)):
    """Guard for ledger listings; open when API_JWT_SECRET is unset."""
    if not settings.api_jwt_secret:
        return None
    try:
        scheme, token = (authorization or "").split()
        if scheme.lower() != "bearer":
            raise ValueError("not a bearer token")
        return jwt.decode(token, settings.api_jwt_secret, algorithms=["HS256"])
    except (ValueError, JWTError):
        raise HTTPException(status_code=401, detail="Invalid or missing token")
