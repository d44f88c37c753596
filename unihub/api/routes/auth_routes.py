"""
Authentication Routes

POST /auth/send-otp - Email a 6-digit login code
POST /auth/verify-otp - Exchange the code for access + refresh tokens
POST /auth/refresh-token - Get a new access token
POST /auth/logout - Revoke a refresh token (no auth required)
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pymongo.database import Database

from unihub.api.deps import get_notifier, success
from unihub.db.mongodb import get_db
from unihub.schemas.schemas import LogoutRequest, RefreshTokenRequest, SendOtpRequest, VerifyOtpRequest
from unihub.services.auth_service import AuthService
from unihub.services.notifier import Notifier

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/send-otp")
def send_otp(
    request: SendOtpRequest,
    db: Database = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """Send a login OTP. The email goes out after the response."""
    AuthService(db, notifier).request_otp(request.email)
    return success(message="OTP sent to your email")


@router.post("/verify-otp")
def verify_otp(request: VerifyOtpRequest, db: Database = Depends(get_db)):
    """
    Verify the OTP and log in (creates the account on first login).

    Include the access token in requests: Authorization: Bearer <token>
    """
    session = AuthService(db).verify_otp(request.email, request.otp)
    return success(session, message="Login successful")


@router.post("/refresh-token")
def refresh_token(request: RefreshTokenRequest, db: Database = Depends(get_db)):
    """Issue a new access token. The refresh token itself is not rotated."""
    return success(AuthService(db).refresh_access_token(request.refresh_token))


@router.post("/logout")
def logout(request: Optional[LogoutRequest] = None, db: Database = Depends(get_db)):
    """Revoke the refresh token if it exists. Always succeeds."""
    AuthService(db).logout(request.refresh_token if request else None)
    return success(message="Logged out successfully")
