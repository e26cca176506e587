# janseva/routers/otp.py
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from janseva import config
from janseva.database.database import get_db
from janseva.schemas.enums import OTPChannel
from janseva.schemas.otp import (
    SendOTPRequest,
    SendOTPResponse,
    VerifyOTPRequest,
    VerifyOTPResponse,
)
from janseva.utils.auth_provider import LocalAuthProvider
from janseva.utils.email import SendGridEmailGateway
from janseva.utils.otp_issuer import OTPIssuer
from janseva.utils.otp_verifier import OTPVerifier
from janseva.utils.sms import TwoFactorSMSGateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/otp", tags=["OTP"])


# ---------------- DEPENDENCIES ----------------
def get_sms_gateway() -> TwoFactorSMSGateway:
    return TwoFactorSMSGateway.from_config()


def get_email_gateway() -> SendGridEmailGateway:
    return SendGridEmailGateway.from_config()


def get_otp_issuer(
    db: Session = Depends(get_db),
    sms_gateway=Depends(get_sms_gateway),
    email_gateway=Depends(get_email_gateway),
) -> OTPIssuer:
    return OTPIssuer(
        db,
        sms_gateway=sms_gateway,
        email_gateway=email_gateway,
        expiry_seconds=config.OTP_EXPIRE_SECONDS,
        max_attempts=config.OTP_MAX_ATTEMPTS,
    )


def get_otp_verifier(db: Session = Depends(get_db)) -> OTPVerifier:
    return OTPVerifier(
        db,
        auth_provider=LocalAuthProvider(db),
        max_attempts=config.OTP_MAX_ATTEMPTS,
    )


# ---------------- SEND OTP ----------------
@router.post("/send", response_model=SendOTPResponse, status_code=status.HTTP_200_OK)
def send_otp(payload: SendOTPRequest, issuer: OTPIssuer = Depends(get_otp_issuer)):
    """
    Issue a 6-digit OTP to an email address or phone number.
    Payload: { "identifier": "...", "type": "email" | "phone" }
    """
    result = issuer.issue(payload.identifier, payload.type)
    target = "mobile" if result.channel == OTPChannel.PHONE else "email"
    message = f"OTP sent to {target}"
    if result.delivered_via == "voice":
        message = "SMS failed, but voice call was initiated."
    return SendOTPResponse(message=message, expires_in=result.expires_in)


# ---------------- VERIFY OTP ----------------
@router.post("/verify", response_model=VerifyOTPResponse, status_code=status.HTTP_200_OK)
def verify_otp(payload: VerifyOTPRequest, verifier: OTPVerifier = Depends(get_otp_verifier)):
    """
    Verify a submitted OTP (body: { identifier, otp, fullName?, mode? }).
    For phone OTPs with a matching account, the OTP becomes the account
    password so the client can sign in through /auth/login.
    """
    result = verifier.verify(payload.identifier, payload.otp, payload.mode, payload.full_name)
    return VerifyOTPResponse(
        message="OTP verified successfully",
        identifier=result.identifier,
        type=result.channel,
        can_login=True,
        can_bridge_login=result.can_bridge_login,
        user_exists=result.user_exists,
        login_identifier=result.login_identifier,
    )
