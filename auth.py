import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from jwt import exceptions as jwt_exc
from fastapi import Depends, HTTPException, Request
from pymongo.database import Database

import settings
from database import COLL_USERS, get_db

logger = logging.getLogger(__name__)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=settings.ACCESS_TOKEN_EXPIRE_HOURS))
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return encoded_jwt


async def get_current_user(request: Request) -> dict:
    """Verify the bearer token and return its decoded claims.

    The claims must carry an ``email``; anything else (missing header, bad
    signature, expired token) is a 401.
    """
    auth = request.headers.get("authorization")
    if not auth or not auth.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="unauthorized")
    token = auth.split(" ", 1)[1]
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt_exc.InvalidTokenError:
        raise HTTPException(status_code=401, detail="unauthorized access")
    if not payload.get("email"):
        raise HTTPException(status_code=401, detail="unauthorized access")
    return payload


async def require_admin(decoded: dict = Depends(get_current_user), db: Database = Depends(get_db)) -> dict:
    # Role is read from the store on every request, never from the token.
    user = db[COLL_USERS].find_one({"email": decoded["email"]})
    if not user or user.get("role") != "admin":
        logger.info("Admin access denied for %s", decoded["email"])
        raise HTTPException(status_code=403, detail="Forbidden Access")
    return user


def require_same_user(email: str, decoded: dict) -> None:
    if email != decoded.get("email"):
        raise HTTPException(status_code=403, detail="Forbidden access")
