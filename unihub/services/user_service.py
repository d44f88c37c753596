"""
User Service - profile management and university email verification.

Rules:
- A profile is complete once name, university, skills and about are set.
- The university can be chosen once. After that it is locked.
- A verified university email must belong to the user's own university.
"""

import logging
import secrets
from datetime import timedelta
from typing import Optional, Tuple

from email_validator import EmailNotValidError, validate_email
from pymongo import ReturnDocument
from pymongo.database import Database

from unihub.core.auth import generate_otp
from unihub.core.config import Settings, get_settings
from unihub.core.errors import Conflict, Expired, Forbidden, InvalidCredential, InvalidInput, NotFound
from unihub.db.mongodb import COLLECTIONS, utcnow
from unihub.schemas.schemas import ProfileUpdate
from unihub.services.email_templates import university_verification_email

logger = logging.getLogger(__name__)

# Accepted email domains per university (subdomains allowed)
UNIVERSITY_EMAIL_DOMAINS = {
    "SRM_AP": ("srmap.edu.in",),
    "KLU": ("kluniversity.in",),
}

PENDING_VERIFICATION_CLEARED = {
    "pendingUniversityEmail": None,
    "universityVerificationOtp": None,
    "universityVerificationOtpExpiry": None,
}


def normalize_email(email: Optional[str]) -> str:
    """Trim, lowercase and syntax-check an address."""
    if not email or not isinstance(email, str):
        raise InvalidInput("Valid email address is required")
    candidate = email.strip().lower()
    try:
        validate_email(candidate, check_deliverability=False)
    except EmailNotValidError:
        raise InvalidInput("Valid email address is required")
    return candidate


def is_profile_complete(user: dict) -> bool:
    return bool(user.get("name") and user.get("university") and user.get("skills") and user.get("about"))


def user_summary(user: dict) -> dict:
    """The user as returned by /auth and /users endpoints."""
    return {
        "_id": str(user["_id"]),
        "email": user.get("email"),
        "name": user.get("name"),
        "university": user.get("university"),
        "universityEmail": user.get("universityEmail"),
        "isUniversityVerified": bool(user.get("isUniversityVerified")),
        "skills": user.get("skills") or [],
        "about": user.get("about"),
        "yearOfStudy": user.get("yearOfStudy"),
        "profession": user.get("profession"),
        "profileImage": user.get("profileImage"),
        "profileComplete": is_profile_complete(user),
        "createdAt": user.get("createdAt"),
    }


def new_user_document(email: str) -> dict:
    now = utcnow()
    return {
        "email": email,
        "name": None,
        "university": None,
        "universityEmail": None,
        "isUniversityVerified": False,
        "universityVerificationOtp": None,
        "universityVerificationOtpExpiry": None,
        "pendingUniversityEmail": None,
        "skills": [],
        "about": None,
        "yearOfStudy": None,
        "profession": None,
        "profileImage": None,
        "createdAt": now,
        "updatedAt": now,
    }


def _optional_text(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    return value.strip() or None


class UserService:
    """
    Handles the users collection on behalf of the signed-in user.
    """

    def __init__(self, db: Database, notifier=None, settings: Settings = None):
        self.collection = db[COLLECTIONS["users"]]
        self.notifier = notifier
        self.settings = settings or get_settings()

    def _reload(self, user_id) -> dict:
        user = self.collection.find_one({"_id": user_id})
        if not user:
            raise NotFound("User not found")
        return user

    def get_profile(self, user: dict) -> dict:
        return user_summary(self._reload(user["_id"]))

    def update_profile(self, user: dict, payload: ProfileUpdate) -> Tuple[dict, bool]:
        """
        Update the caller's profile.

        Returns:
            (user summary, True if this call performed the initial setup)
        """
        current = self._reload(user["_id"])
        current_university = current.get("university")
        requested = payload.university.value if payload.university else None

        if current_university and requested and requested != current_university:
            raise Forbidden("University cannot be changed after profile setup.")

        initial_setup = not current_university and requested is not None

        name = (payload.name or "").strip()
        skills = [s.strip() for s in (payload.skills or []) if s and s.strip()]
        about = (payload.about or "").strip()
        if not name or not skills or not about:
            if initial_setup:
                raise InvalidInput(
                    "Name, university, skills (non-empty array), and about are required for initial profile setup"
                )
            raise InvalidInput("Name, skills (non-empty array), and about are required")

        update = {"name": name, "skills": skills, "about": about, "updatedAt": utcnow()}

        # Optional fields change only when the client sent them (null clears)
        sent = payload.model_fields_set
        if "year_of_study" in sent:
            update["yearOfStudy"] = _optional_text(payload.year_of_study)
        if "profile_image" in sent:
            update["profileImage"] = _optional_text(payload.profile_image)
        if "profession" in sent:
            update["profession"] = payload.profession.value if payload.profession else None

        query = {"_id": current["_id"]}
        if initial_setup:
            update["university"] = requested
            query["university"] = None

        updated = self.collection.find_one_and_update(
            query, {"$set": update}, return_document=ReturnDocument.AFTER
        )
        if updated is None:
            # Another request locked the university first
            fresh = self._reload(current["_id"])
            if fresh.get("university") != requested:
                raise Forbidden("University cannot be changed after profile setup.")
            update.pop("university", None)
            initial_setup = False
            updated = self.collection.find_one_and_update(
                {"_id": current["_id"]}, {"$set": update}, return_document=ReturnDocument.AFTER
            )

        return user_summary(updated), initial_setup

    # ============================================================
    # UNIVERSITY EMAIL VERIFICATION
    # ============================================================

    def request_university_verification(self, user: dict, university_email: str) -> dict:
        current = self._reload(user["_id"])
        university = current.get("university")
        if not university:
            raise InvalidInput("Please complete your profile (university is required) before verifying")
        if current.get("isUniversityVerified"):
            raise Conflict("University email is already verified")

        domains = UNIVERSITY_EMAIL_DOMAINS.get(university)
        if not domains:
            raise InvalidInput("Unsupported university")

        email = normalize_email(university_email)
        domain = email.rsplit("@", 1)[1]
        if not any(domain == d or domain.endswith("." + d) for d in domains):
            raise InvalidInput(f"Please use your university email ({', '.join('@' + d for d in domains)})")

        minutes = self.settings.university_otp_expire_minutes
        code = generate_otp()
        now = utcnow()
        self.collection.update_one(
            {"_id": current["_id"]},
            {"$set": {
                "pendingUniversityEmail": email,
                "universityVerificationOtp": code,
                "universityVerificationOtpExpiry": now + timedelta(minutes=minutes),
                "updatedAt": now,
            }},
        )

        if self.notifier is not None:
            self.notifier.notify(university_verification_email(email, code, university, minutes))
        logger.info("University verification requested for user %s", current["_id"])
        return {"pendingUniversityEmail": email}

    def confirm_university_verification(self, user: dict, code: str) -> dict:
        current = self._reload(user["_id"])
        if current.get("isUniversityVerified"):
            raise Conflict("University email is already verified")

        pending = current.get("pendingUniversityEmail")
        stored = current.get("universityVerificationOtp")
        if not pending or not stored:
            raise InvalidInput("No pending university email verification")

        code = (code or "").strip()
        if not secrets.compare_digest(stored.encode("utf-8"), code.encode("utf-8")):
            raise InvalidCredential("Invalid OTP")

        expiry = current.get("universityVerificationOtpExpiry")
        if expiry is None or utcnow() > expiry:
            self.collection.update_one(
                {"_id": current["_id"]},
                {"$set": dict(PENDING_VERIFICATION_CLEARED, updatedAt=utcnow())},
            )
            raise Expired("OTP has expired. Please request a new one.")

        updated = self.collection.find_one_and_update(
            {"_id": current["_id"], "universityVerificationOtp": code, "isUniversityVerified": {"$ne": True}},
            {"$set": dict(
                PENDING_VERIFICATION_CLEARED,
                isUniversityVerified=True,
                universityEmail=pending,
                updatedAt=utcnow(),
            )},
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            raise InvalidCredential("Invalid OTP")
        return user_summary(updated)
