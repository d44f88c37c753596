"""
Authentication Utility - JWT and one-time code handling.

Provides:
- One-time numeric codes and opaque refresh token values
- JWT access token creation/verification
- FastAPI dependency for protected routes
"""

import secrets
from datetime import timedelta
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from pymongo.database import Database

from unihub.core.config import get_settings
from unihub.core.errors import Unauthorized
from unihub.db.mongodb import COLLECTIONS, get_db, utcnow

# Bearer token extractor; missing headers are reported by get_current_user
bearer_scheme = HTTPBearer(auto_error=False)


def generate_otp() -> str:
    """6-digit numeric code from the OS CSPRNG."""
    return str(100000 + secrets.randbelow(900000))


def generate_refresh_token() -> str:
    """Opaque 512-bit token value."""
    return secrets.token_hex(64)


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token. The user id is its only claim besides expiry."""
    settings = get_settings()
    expire = utcnow() + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    to_encode = {"sub": str(user_id), "exp": expire}
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify JWT token."""
    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Database = Depends(get_db),
) -> dict:
    """
    FastAPI dependency - Get current authenticated user document.

    Usage:
        @router.get("/protected")
        def route(user: dict = Depends(get_current_user)):
            return user
    """
    if credentials is None:
        raise Unauthorized("Authentication required")

    payload = decode_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        raise Unauthorized("Invalid or expired token")

    try:
        user_id = ObjectId(payload["sub"])
    except InvalidId:
        raise Unauthorized("Invalid or expired token")

    # Verify user exists
    user = db[COLLECTIONS["users"]].find_one({"_id": user_id})
    if not user:
        raise Unauthorized("User not found")
    return user
