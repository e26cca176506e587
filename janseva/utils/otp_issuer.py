import logging
import math
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional, Protocol

from pydantic import EmailStr, TypeAdapter, ValidationError
from sqlalchemy.orm import Session

from janseva.crud import crud
from janseva.models.models import OTPVerification
from janseva.schemas.enums import OTPChannel
from janseva.utils.exceptions import DispatchError, DispatchFailed, InvalidRequest, RateLimited
from janseva.utils.normalisation import as_utc, normalize_identifier, utcnow

logger = logging.getLogger(__name__)

DEFAULT_EXPIRY_SECONDS = 600
DEFAULT_MAX_ATTEMPTS = 5

DISPATCH_FAILED_MESSAGE = "Failed to send OTP. Please try again."

DISPATCH_HINTS = {
    OTPChannel.PHONE: "SMS service may not be configured. Please contact administrator or try email verification.",
    OTPChannel.EMAIL: "Email service may not be configured. Please contact administrator.",
}


class OTPGateway(Protocol):
    def send_otp(self, destination: str, code: str) -> str:
        ...


@dataclass
class IssueResult:
    identifier: str
    channel: OTPChannel
    expires_at: datetime
    expires_in: int
    delivered_via: str


def generate_otp() -> str:
    """Uniformly random code in 100000-999999."""
    return str(100000 + secrets.randbelow(900000))


_email_adapter = TypeAdapter(EmailStr)


def _validate_email(address: str) -> None:
    try:
        _email_adapter.validate_python(address)
    except ValidationError:
        raise InvalidRequest("Invalid email address")


class OTPIssuer:
    """
    Creates an OTP record, dispatches the code and rolls the record back when
    dispatch fails. Issuance is refused while an active record exists.
    """

    def __init__(
        self,
        db: Session,
        sms_gateway: OTPGateway,
        email_gateway: OTPGateway,
        expiry_seconds: int = DEFAULT_EXPIRY_SECONDS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        clock: Callable[[], datetime] = utcnow,
        code_factory: Callable[[], str] = generate_otp,
    ):
        self.db = db
        self.gateways = {OTPChannel.PHONE: sms_gateway, OTPChannel.EMAIL: email_gateway}
        self.expiry_seconds = expiry_seconds
        self.max_attempts = max_attempts
        self.clock = clock
        self.code_factory = code_factory

    def _retry_after(self, otp: OTPVerification, now: datetime) -> int:
        return max(1, math.ceil((as_utc(otp.expires_at) - now).total_seconds()))

    def _check_cooldown(self, identifier: str, now: datetime) -> None:
        active = crud.get_active_otp(self.db, identifier, now, self.max_attempts)
        if active:
            retry_after = self._retry_after(active, now)
            logger.info("OTP request rate-limited for %s (retry in %ss)", identifier, retry_after)
            raise RateLimited(retry_after)

    def _lost_race(self, otp: OTPVerification, now: datetime) -> Optional[OTPVerification]:
        """Return the earlier active record if a concurrent request beat ours to the insert."""
        active = crud.get_active_otps(self.db, otp.identifier, now, self.max_attempts)
        if active and active[0].id != otp.id:
            return active[0]
        return None

    def _dispatch(self, otp: OTPVerification) -> str:
        gateway = self.gateways[otp.otp_type]
        return gateway.send_otp(otp.identifier, otp.otp_code)

    def issue(self, identifier: Optional[str], channel: Optional[OTPChannel]) -> IssueResult:
        if not identifier or not channel:
            raise InvalidRequest("Missing identifier or type")

        channel = OTPChannel(channel)
        normalized = normalize_identifier(identifier, channel)
        if not normalized:
            raise InvalidRequest("Missing identifier or type")
        if channel == OTPChannel.EMAIL:
            _validate_email(normalized)
        logger.debug("Normalized OTP identifier: %s -> %s", identifier, normalized)

        now = self.clock()
        self._check_cooldown(normalized, now)

        otp = crud.create_otp(
            self.db,
            identifier=normalized,
            code=self.code_factory(),
            channel=channel,
            created_at=now,
            expires_at=now + timedelta(seconds=self.expiry_seconds),
        )

        winner = self._lost_race(otp, now)
        if winner:
            crud.delete_otp(self.db, otp)
            raise RateLimited(self._retry_after(winner, now))

        try:
            delivered_via = self._dispatch(otp)
        except DispatchError as e:
            logger.error("OTP dispatch failed for %s via %s: %s", normalized, channel.value, e)
            crud.delete_otp(self.db, otp)
            raise DispatchFailed(str(e) or DISPATCH_FAILED_MESSAGE, DISPATCH_HINTS[channel])
        except Exception:
            # An undelivered code must never stay in the store
            logger.exception("Unexpected OTP dispatch error for %s via %s", normalized, channel.value)
            crud.delete_otp(self.db, otp)
            raise DispatchFailed(DISPATCH_FAILED_MESSAGE, DISPATCH_HINTS[channel])

        logger.info("OTP %s issued for %s via %s", otp.id, normalized, delivered_via)
        return IssueResult(
            identifier=normalized,
            channel=channel,
            expires_at=as_utc(otp.expires_at),
            expires_in=self.expiry_seconds,
            delivered_via=delivered_via,
        )
