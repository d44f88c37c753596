"""
User Routes

GET /users/me - Current user's profile
PUT /users/me - Update profile (university can only be set once)
POST /users/request-university-verification - Email an OTP to a university address
POST /users/verify-university-email - Confirm the university address
"""

from fastapi import APIRouter, Depends
from pymongo.database import Database

from unihub.api.deps import get_notifier, success
from unihub.core.auth import get_current_user
from unihub.db.mongodb import get_db
from unihub.schemas.schemas import ProfileUpdate, UniversityVerificationConfirm, UniversityVerificationRequest
from unihub.services.notifier import Notifier
from unihub.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me")
def get_me(user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    """Get current user's profile."""
    return success({"user": UserService(db).get_profile(user)})


@router.put("/me")
def update_me(
    profile: ProfileUpdate,
    user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """Update current user's profile."""
    summary, initial_setup = UserService(db).update_profile(user, profile)
    message = "Profile setup completed successfully" if initial_setup else "Profile updated successfully"
    return success({"user": summary}, message=message)


@router.post("/request-university-verification")
def request_university_verification(
    request: UniversityVerificationRequest,
    user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """Send a verification code to the user's university email."""
    data = UserService(db, notifier).request_university_verification(user, request.university_email)
    return success(data, message="Verification code sent to your university email")


@router.post("/verify-university-email")
def verify_university_email(
    request: UniversityVerificationConfirm,
    user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """Confirm the university email with the emailed code."""
    summary = UserService(db).confirm_university_verification(user, request.otp)
    return success({"user": summary}, message="University email verified successfully")
