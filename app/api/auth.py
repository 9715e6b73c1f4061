"""
Auth API: register with email OTP, verify the OTP, resend it.
Responses use {success, message[, user]}; failures come back as {success: false, message}.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.core.email_sender import Delivery, EmailSender, get_email_sender
from app.core.errors import BuildExError
from app.core.otp import OtpService, get_otp_service
from app.db.database import get_db
from app.schemas.user import AuthResponse, RegisterRequest, ResendOtpRequest, VerifyOtpRequest
from app.services import registration

router = APIRouter()

_DELIVERY_MESSAGES = {
    Delivery.DELIVERED: "OTP sent to email",
    Delivery.NOT_CONFIGURED: "OTP generated (email not configured)",
    Delivery.FAILED: "OTP generated; email delivery failed, please retry or contact support",
}


def _failure(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


@router.post("/register", response_model=AuthResponse, response_model_exclude_none=True)
def register(
    body: RegisterRequest,
    db: Session = Depends(get_db),
    otp_service: OtpService = Depends(get_otp_service),
    email_sender: EmailSender = Depends(get_email_sender),
):
    """Create a pending user and email an OTP. Delivery failure still returns success."""
    try:
        delivery = registration.register_user(
            db,
            otp_service,
            email_sender,
            username=body.username,
            email=body.email,
            password=body.password,
            full_name=body.full_name,
            phone=body.phone,
            role=body.role,
        )
    except BuildExError as e:
        return _failure(e.status_code, e.message)
    return {"success": True, "message": _DELIVERY_MESSAGES[delivery]}


@router.post("/verify-otp", response_model=AuthResponse, response_model_exclude_none=True)
def verify_otp(
    body: VerifyOtpRequest,
    db: Session = Depends(get_db),
    otp_service: OtpService = Depends(get_otp_service),
):
    """Activate the user if the OTP matches. Any failure is a 400."""
    try:
        user = registration.verify_user(db, otp_service, body.email, body.otp)
    except BuildExError as e:
        return _failure(400, e.message)
    return {"success": True, "message": "User verified successfully", "user": user}


@router.post("/resend-otp", response_model=AuthResponse, response_model_exclude_none=True)
def resend_otp(
    body: ResendOtpRequest,
    db: Session = Depends(get_db),
    otp_service: OtpService = Depends(get_otp_service),
    email_sender: EmailSender = Depends(get_email_sender),
):
    try:
        delivery = registration.resend_otp(db, otp_service, email_sender, body.email)
    except BuildExError as e:
        return _failure(e.status_code, e.message)
    return {"success": True, "message": _DELIVERY_MESSAGES[delivery]}
