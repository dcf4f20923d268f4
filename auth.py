"""Session tokens and request guards."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from bson import ObjectId
from fastapi import Depends, HTTPException, Request
from fastapi.responses import Response

from config import Settings

logger = logging.getLogger(__name__)

COOKIE_NAME = "token"
ALGORITHM = "HS256"


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def issue_token(claims: Dict[str, Any], settings: Settings) -> str:
    payload = dict(claims)
    payload["exp"] = datetime.now(timezone.utc) + timedelta(seconds=settings.jwt_expires_in)
    return jwt.encode(payload, settings.jwt_secret, algorithm=ALGORITHM)


def _cookie_options(settings: Settings) -> Dict[str, Any]:
    return {
        "httponly": True,
        "secure": settings.production,
        "samesite": "none" if settings.production else "strict",
    }


def set_token_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(COOKIE_NAME, token, max_age=settings.jwt_expires_in, **_cookie_options(settings))


def clear_token_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(COOKIE_NAME, **_cookie_options(settings))


def _extract_token(request: Request) -> Optional[str]:
    token = request.cookies.get(COOKIE_NAME)
    if token:
        return token
    header = request.headers.get("Authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


def verify_token(request: Request, settings: Settings = Depends(get_settings)) -> Dict[str, Any]:
    """Decode the caller's token or reject the request with 401."""
    token = _extract_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized access: no token provided")
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[ALGORITHM])
    except jwt.InvalidTokenError as e:
        logger.info("Rejected token: %s", e)
        raise HTTPException(status_code=401, detail="Unauthorized access: invalid token")
    if not claims.get("email"):
        raise HTTPException(status_code=401, detail="Unauthorized access: invalid token")
    return claims


def parse_object_id(value: str) -> ObjectId:
    if not ObjectId.is_valid(value):
        raise HTTPException(status_code=400, detail="Invalid ID format")
    return ObjectId(value)


def valid_object_id(id: str) -> ObjectId:
    return parse_object_id(id)
