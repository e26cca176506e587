import re
from datetime import datetime, timezone
from typing import List, Optional, Union

from janseva.schemas.enums import OTPChannel

_NON_DIGITS = re.compile(r"\D")

GHOST_EMAIL_DOMAIN = "phone.local"


def digits_only(phone: Optional[str]) -> str:
    """Strip everything except digits: '+91 98765-43210' -> '919876543210'."""
    return _NON_DIGITS.sub("", phone or "")


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def normalize_identifier(identifier: Optional[str], channel: Union[OTPChannel, str]) -> str:
    """
    Normalize an OTP identifier so that the same human input always maps to
    the same store rows.
      - phone -> digits only
      - email -> stripped, lower-cased
    """
    if OTPChannel(channel) == OTPChannel.PHONE:
        return digits_only(identifier)
    return normalize_email(identifier)


def guess_channel(identifier: Optional[str]) -> OTPChannel:
    """Identifiers containing '@' are emails; anything else is treated as a phone number."""
    return OTPChannel.EMAIL if "@" in (identifier or "") else OTPChannel.PHONE


def phone_candidates(phone: Optional[str]) -> List[str]:
    """
    Lookup variants for a stored phone number, most specific first:
    exact input, then with and without a leading '+'.
    """
    raw = (phone or "").strip()
    digits = digits_only(raw)
    candidates = []
    for value in (raw, f"+{digits}", digits):
        if value and value != "+" and value not in candidates:
            candidates.append(value)
    return candidates


def ghost_email_for(phone: Optional[str]) -> str:
    """Synthetic email used for phone-only accounts."""
    return f"{digits_only(phone)}@{GHOST_EMAIL_DOMAIN}"


# ---------- Time Helpers ----------
def utcnow() -> datetime:
    """Return current UTC time with timezone."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
