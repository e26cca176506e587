import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from janseva.models.models import OTPVerification, User
from janseva.schemas.enums import OTPChannel, UserRole
from janseva.utils.normalisation import ghost_email_for, normalize_email, phone_candidates

logger = logging.getLogger(__name__)


# ---------------------------- OTP STORE ----------------------------
def create_otp(
    db: Session,
    identifier: str,
    code: str,
    channel: OTPChannel,
    created_at: datetime,
    expires_at: datetime,
) -> OTPVerification:
    otp = OTPVerification(
        identifier=identifier,
        otp_code=code,
        otp_type=channel,
        created_at=created_at,
        expires_at=expires_at,
        attempts=0,
        verified=False,
    )
    db.add(otp)
    db.commit()
    db.refresh(otp)
    return otp


def get_active_otps(db: Session, identifier: str, now: datetime, max_attempts: int) -> List[OTPVerification]:
    """
    Records that block a new issuance: unverified, unexpired and not exhausted.
    Oldest first.
    """
    return (
        db.query(OTPVerification)
        .filter(
            OTPVerification.identifier == identifier,
            OTPVerification.verified == False,  # noqa: E712
            OTPVerification.expires_at > now,
            OTPVerification.attempts < max_attempts,
        )
        .order_by(OTPVerification.created_at.asc(), OTPVerification.id.asc())
        .all()
    )


def get_active_otp(db: Session, identifier: str, now: datetime, max_attempts: int) -> Optional[OTPVerification]:
    """Most recently created active record, or None."""
    active = get_active_otps(db, identifier, now, max_attempts)
    return active[-1] if active else None


def get_latest_unverified_otp(db: Session, identifier: str) -> Optional[OTPVerification]:
    """Most recently created unverified record, regardless of expiry or attempts."""
    return (
        db.query(OTPVerification)
        .filter(OTPVerification.identifier == identifier, OTPVerification.verified == False)  # noqa: E712
        .order_by(OTPVerification.created_at.desc(), OTPVerification.id.desc())
        .first()
    )


def delete_otp(db: Session, otp: OTPVerification) -> None:
    db.delete(otp)
    db.commit()


def increment_otp_attempts(db: Session, otp: OTPVerification) -> int:
    otp.attempts = (otp.attempts or 0) + 1
    db.commit()
    db.refresh(otp)
    return otp.attempts


def mark_otp_verified(db: Session, otp: OTPVerification) -> OTPVerification:
    otp.verified = True
    db.commit()
    db.refresh(otp)
    return otp


# ---------------------------- USERS ----------------------------
def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == normalize_email(email)).first()


def get_user_by_phone(db: Session, phone: str) -> Optional[User]:
    """
    Exact match first, then with/without a leading '+', then the ghost email
    that phone-only accounts are registered under.
    """
    for candidate in phone_candidates(phone):
        user = db.query(User).filter(User.phone == candidate).first()
        if user:
            return user
    return db.query(User).filter(User.email == ghost_email_for(phone)).first()


def create_user(
    db: Session,
    hashed_password: str,
    full_name: str = "User",
    email: Optional[str] = None,
    phone: Optional[str] = None,
    role: UserRole = UserRole.CITIZEN,
    email_confirmed: bool = False,
    phone_confirmed: bool = False,
) -> User:
    user = User(
        full_name=full_name,
        email=normalize_email(email) or None,
        phone=phone or None,
        hashed_password=hashed_password,
        role=role,
        email_confirmed=email_confirmed,
        phone_confirmed=phone_confirmed,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def update_user_password(db: Session, user: User, hashed_password: str, phone_confirmed: Optional[bool] = None) -> User:
    user.hashed_password = hashed_password
    if phone_confirmed is not None:
        user.phone_confirmed = phone_confirmed
    db.commit()
    db.refresh(user)
    return user
