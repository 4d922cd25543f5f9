from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request
from jose import JWTError, jwt

from inventory_api.config import settings
from inventory_api.utils.logging import get_logger

log = get_logger("auth")


def create_access_token(subject: str, expires_minutes: Optional[int] = None, **claims) -> str:
    minutes = expires_minutes if expires_minutes is not None else settings.ACCESS_TOKEN_EXPIRE_MINUTES
    payload = {
        "sub": subject,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=minutes),
        **claims,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def require_identity(request: Request) -> Optional[Dict[str, Any]]:
    """
    Bearer-token gate in front of the product routes.
    401 when the header or token is missing, 403 when the token does not verify.
    """
    if not settings.AUTH_ENABLED:
        return None

    header = request.headers.get("Authorization")
    if not header:
        raise HTTPException(status_code=401, detail="No token")
    parts = header.split(" ", 1)
    token = parts[1].strip() if len(parts) == 2 else ""
    if not token:
        raise HTTPException(status_code=401, detail="Malformed token")

    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        log.info("Rejected bearer token: %s", e)
        raise HTTPException(status_code=403, detail="Invalid token")

    request.state.identity = claims
    return claims
