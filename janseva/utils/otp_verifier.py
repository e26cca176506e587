import hmac
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from janseva.crud import crud
from janseva.models.models import OTPVerification
from janseva.schemas.enums import OTPChannel, VerifyMode
from janseva.utils.auth_provider import LocalAuthProvider
from janseva.utils.exceptions import (
    AttemptsExceeded, InvalidCode, InvalidRequest, OTPExpired, OTPNotFound
)
from janseva.utils.normalisation import as_utc, guess_channel, normalize_identifier, utcnow

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5


@dataclass
class VerifyResult:
    identifier: str
    channel: OTPChannel
    can_bridge_login: bool = False
    user_exists: bool = False
    login_identifier: Optional[str] = None


class OTPVerifier:
    """
    Checks a submitted code against the most recent unverified record for an
    identifier. Check order: expiry, then attempts, then the code itself.

    On success for a phone OTP the matching account's password is set to the
    verified code, so the client can finish with a normal password sign-in
    (phone + code). A second verify for the same record finds nothing
    unverified and is rejected with OTPNotFound.
    """

    def __init__(
        self,
        db: Session,
        auth_provider: LocalAuthProvider,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.auth_provider = auth_provider
        self.max_attempts = max_attempts
        self.clock = clock

    def verify(
        self,
        identifier: Optional[str],
        code: Optional[str],
        mode: VerifyMode = VerifyMode.LOGIN,
        full_name: Optional[str] = None,
    ) -> VerifyResult:
        if not identifier or not code:
            raise InvalidRequest("Missing identifier or OTP")

        normalized = normalize_identifier(identifier, guess_channel(identifier))
        otp = crud.get_latest_unverified_otp(self.db, normalized)
        if not otp:
            raise OTPNotFound()

        if self.clock() > as_utc(otp.expires_at):
            raise OTPExpired()

        if otp.attempts >= self.max_attempts:
            raise AttemptsExceeded()

        if not hmac.compare_digest(otp.otp_code.encode("utf-8"), code.strip().encode("utf-8")):
            attempts = crud.increment_otp_attempts(self.db, otp)
            remaining = max(0, self.max_attempts - attempts)
            logger.info("Invalid OTP for %s (%s attempts left)", normalized, remaining)
            raise InvalidCode(remaining)

        crud.mark_otp_verified(self.db, otp)
        logger.info("OTP %s verified for %s", otp.id, normalized)

        result = VerifyResult(identifier=normalized, channel=otp.otp_type)
        if otp.otp_type == OTPChannel.PHONE:
            self._bridge_login(otp, result, mode, full_name)
        return result

    def _bridge_login(
        self,
        otp: OTPVerification,
        result: VerifyResult,
        mode: VerifyMode,
        full_name: Optional[str],
    ) -> None:
        user = self.auth_provider.find_user_by_phone(otp.identifier)

        if user:
            logger.info("Found existing user %s for verified phone", user.id)
            self.auth_provider.set_user_password(user, otp.otp_code)
        elif VerifyMode(mode) == VerifyMode.REGISTER:
            logger.info("Creating phone account for verified number")
            user = self.auth_provider.create_phone_user(otp.identifier, otp.otp_code, full_name)
        else:
            logger.warning("Verified phone has no account; registration required")
            return

        result.user_exists = True
        result.can_bridge_login = True
        result.login_identifier = user.phone or user.email
