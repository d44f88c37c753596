"""
Auth Service - OTP login and session lifecycle.

Flow:
1. request_otp: store a fresh 6-digit code (5 min) and email it
2. verify_otp: consume the code, find-or-create the user, issue
   a 24h access JWT plus a 30 day refresh token stored server-side
3. refresh_access_token: mint a new access JWT (refresh token not rotated)
4. logout: revoke the refresh token if it exists, always succeeds

Expiry is checked here on every read; the TTL indexes only clean up.
"""

import logging
from datetime import timedelta
from typing import Optional

from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from unihub.core.auth import create_access_token, generate_otp, generate_refresh_token
from unihub.core.config import Settings, get_settings
from unihub.core.errors import Expired, InvalidCredential, InvalidInput, SessionExpired, Unauthorized
from unihub.db.mongodb import COLLECTIONS, utcnow
from unihub.services.email_templates import otp_email
from unihub.services.user_service import new_user_document, normalize_email, user_summary

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, db: Database, notifier=None, settings: Settings = None):
        self.otps = db[COLLECTIONS["otps"]]
        self.users = db[COLLECTIONS["users"]]
        self.tokens = db[COLLECTIONS["refresh_tokens"]]
        self.notifier = notifier
        self.settings = settings or get_settings()

    def request_otp(self, email: str) -> None:
        normalized = normalize_email(email)
        code = generate_otp()
        now = utcnow()

        # at most one live code per email
        self.otps.delete_many({"email": normalized})
        self.otps.insert_one({
            "email": normalized,
            "otp": code,
            "expiresAt": now + timedelta(minutes=self.settings.otp_expire_minutes),
            "createdAt": now,
            "updatedAt": now,
        })
        logger.info("OTP generated for %s", normalized)

        if self.notifier is not None:
            self.notifier.notify(otp_email(normalized, code, self.settings.otp_expire_minutes))

    def verify_otp(self, email: str, code: str) -> dict:
        if not email or not code:
            raise InvalidInput("Email and OTP are required")
        normalized = normalize_email(email)

        record = self.otps.find_one({"email": normalized, "otp": str(code).strip()})
        if not record:
            raise InvalidCredential("Invalid OTP")

        if utcnow() > record["expiresAt"]:
            self.otps.delete_one({"_id": record["_id"]})
            raise Expired("OTP has expired. Please request a new one.")

        # Consume before issuing anything: only one caller can win the delete
        if self.otps.delete_one({"_id": record["_id"]}).deleted_count != 1:
            raise InvalidCredential("Invalid OTP")

        user = self._find_or_create_user(normalized)
        access_token = create_access_token(str(user["_id"]))
        refresh_token = self._store_refresh_token(user["_id"])

        return {
            "accessToken": access_token,
            "refreshToken": refresh_token,
            "user": user_summary(user),
        }

    def refresh_access_token(self, refresh_token: str) -> dict:
        record = self.tokens.find_one({"token": refresh_token, "isRevoked": False})
        if not record:
            raise Unauthorized("Invalid or revoked refresh token")

        if utcnow() > record["expiresAt"]:
            self.tokens.delete_one({"_id": record["_id"]})
            raise SessionExpired("Refresh token has expired. Please login again.")

        user = self.users.find_one({"_id": record["userId"]})
        if not user:
            self.tokens.delete_one({"_id": record["_id"]})
            raise Unauthorized("User not found")

        return {
            "accessToken": create_access_token(str(user["_id"])),
            "user": user_summary(user),
        }

    def logout(self, refresh_token: Optional[str]) -> None:
        if not refresh_token:
            return
        self.tokens.update_one(
            {"token": refresh_token},
            {"$set": {"isRevoked": True, "updatedAt": utcnow()}},
        )

    # ============================================================
    # HELPERS
    # ============================================================

    def _find_or_create_user(self, email: str) -> dict:
        try:
            return self.users.find_one_and_update(
                {"email": email},
                {"$setOnInsert": new_user_document(email)},
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            # concurrent first login created it between match and insert
            return self.users.find_one({"email": email})

    def _store_refresh_token(self, user_id) -> str:
        now = utcnow()
        token = generate_refresh_token()
        self.tokens.insert_one({
            "userId": user_id,
            "token": token,
            "expiresAt": now + timedelta(days=self.settings.refresh_token_expire_days),
            "isRevoked": False,
            "createdAt": now,
            "updatedAt": now,
        })
        return token
