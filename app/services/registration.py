"""
Registration with email OTP verification.
pending_verification --(correct OTP)--> active. Email delivery problems never fail a
request: the OTP stays valid and is written to the log so the flow remains usable.
"""
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import settings
from app.core.auth_utils import hash_password, normalize_email
from app.core.email_sender import Delivery, EmailSender
from app.core.errors import Conflict, InvalidOtp, UserNotFound
from app.core.otp import OtpService
from app.db.models import User, UserStatus

logger = logging.getLogger(__name__)


def _user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def _deliver_otp(email: str, otp_service: OtpService, email_sender: EmailSender) -> Delivery:
    otp = otp_service.issue(email)
    ttl_minutes = max(1, otp_service.ttl_seconds // 60)
    delivery = email_sender.send_otp_email(email, otp, ttl_minutes)
    if not delivery.ok:
        logger.warning("OTP email not delivered (%s); OTP for %s is %s", delivery.value, email, otp)
    elif settings.otp_debug_log:
        logger.warning("OTP_DEBUG_LOG: OTP for %s is %s (disable OTP_DEBUG_LOG in production)", email, otp)
    return delivery


def register_user(
    db: Session,
    otp_service: OtpService,
    email_sender: EmailSender,
    username: str,
    email: str,
    password: str,
    full_name: Optional[str] = None,
    phone: Optional[str] = None,
    role: Optional[str] = None,
) -> Delivery:
    """Create a pending user and send its OTP. Raises Conflict on duplicate email/username."""
    email = normalize_email(email)
    username = username.strip()
    if _user_by_email(db, email):
        raise Conflict("Email already exists")
    if db.query(User).filter(User.username == username).first():
        raise Conflict("Username already exists")

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        full_name=full_name,
        phone=phone,
        role=role,
        status=UserStatus.PENDING_VERIFICATION.value,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same identity
        db.rollback()
        raise Conflict("Email or username already exists")
    logger.info("Registered user %s (%s), pending verification", user.id, email)

    return _deliver_otp(email, otp_service, email_sender)


def resend_otp(db: Session, otp_service: OtpService, email_sender: EmailSender, email: str) -> Delivery:
    """Issue a fresh OTP for a user that is still pending verification."""
    email = normalize_email(email)
    user = _user_by_email(db, email)
    if not user:
        raise UserNotFound()
    if user.status == UserStatus.ACTIVE.value:
        raise Conflict("User already verified")
    return _deliver_otp(email, otp_service, email_sender)


def verify_user(db: Session, otp_service: OtpService, email: str, code: str) -> dict:
    """Check the OTP, activate the user, and return its public profile."""
    email = normalize_email(email)
    if not otp_service.validate(email, code):
        raise InvalidOtp()

    user = _user_by_email(db, email)
    if not user:
        # OTP was valid but the record is gone: report it, don't paper over it
        logger.error("Valid OTP for %s but no user record", email)
        raise UserNotFound()

    user.status = UserStatus.ACTIVE.value
    db.commit()
    db.refresh(user)
    logger.info("User %s verified", user.id)
    return public_profile(user)


def public_profile(user: User) -> dict:
    """User fields safe to return to clients (no password hash)."""
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "full_name": user.full_name,
        "phone": user.phone,
        "role": user.role,
        "status": user.status,
        "created_at": user.created_at,
    }
