import pytest

from janseva.crud import crud
from janseva.models.models import OTPVerification
from janseva.schemas.enums import OTPChannel, UserRole, VerifyMode
from janseva.utils.auth_provider import LocalAuthProvider
from janseva.utils.exceptions import (
    AttemptsExceeded, InvalidCode, InvalidRequest, OTPExpired, OTPNotFound
)
from janseva.utils.otp_issuer import OTPIssuer
from janseva.utils.otp_verifier import OTPVerifier
from janseva.utils.security import get_password_hash, verify_password


@pytest.fixture
def issuer(db_session, sms_gateway, email_gateway, clock):
    return OTPIssuer(db_session, sms_gateway=sms_gateway, email_gateway=email_gateway, clock=clock)


@pytest.fixture
def verifier(db_session, clock):
    return OTPVerifier(db_session, auth_provider=LocalAuthProvider(db_session), clock=clock)


def _latest(db_session, identifier):
    db_session.expire_all()
    return (
        db_session.query(OTPVerification)
        .filter(OTPVerification.identifier == identifier)
        .order_by(OTPVerification.id.desc())
        .first()
    )


def test_correct_code_marks_record_verified(issuer, verifier, db_session, email_gateway):
    issuer.issue("user@example.com", OTPChannel.EMAIL)

    result = verifier.verify("user@example.com", email_gateway.last_code)

    assert result.identifier == "user@example.com"
    assert result.channel == OTPChannel.EMAIL
    assert result.can_bridge_login is False
    assert _latest(db_session, "user@example.com").verified is True


def test_verified_record_cannot_be_used_twice(issuer, verifier, email_gateway):
    issuer.issue("user@example.com", OTPChannel.EMAIL)
    verifier.verify("user@example.com", email_gateway.last_code)

    with pytest.raises(OTPNotFound):
        verifier.verify("user@example.com", email_gateway.last_code)


def test_wrong_code_increments_attempts(issuer, verifier, db_session):
    issuer.issue("user@example.com", OTPChannel.EMAIL)

    with pytest.raises(InvalidCode) as exc:
        verifier.verify("user@example.com", "000000")

    assert exc.value.remaining_attempts == 4
    assert exc.value.to_payload() == {"error": "Invalid OTP. Please try again.", "remainingAttempts": 4}
    otp = _latest(db_session, "user@example.com")
    assert otp.attempts == 1
    assert otp.verified is False


def test_five_failures_lock_out_even_the_correct_code(issuer, verifier, email_gateway, db_session):
    issuer.issue("user@example.com", OTPChannel.EMAIL)
    code = email_gateway.last_code

    remaining = []
    for _ in range(5):
        with pytest.raises(InvalidCode) as exc:
            verifier.verify("user@example.com", "000000")
        remaining.append(exc.value.remaining_attempts)
    assert remaining == [4, 3, 2, 1, 0]

    with pytest.raises(AttemptsExceeded):
        verifier.verify("user@example.com", code)
    assert _latest(db_session, "user@example.com").attempts == 5


def test_expired_code_is_rejected(issuer, verifier, email_gateway, clock):
    issuer.issue("user@example.com", OTPChannel.EMAIL)
    clock.advance(601)

    with pytest.raises(OTPExpired):
        verifier.verify("user@example.com", email_gateway.last_code)


def test_expiry_wins_over_exhausted_attempts(issuer, verifier, email_gateway, clock):
    issuer.issue("user@example.com", OTPChannel.EMAIL)
    for _ in range(5):
        with pytest.raises(InvalidCode):
            verifier.verify("user@example.com", "000000")
    clock.advance(601)

    with pytest.raises(OTPExpired):
        verifier.verify("user@example.com", email_gateway.last_code)


def test_new_request_after_lockout_creates_fresh_record(issuer, verifier, email_gateway):
    issuer.issue("user@example.com", OTPChannel.EMAIL)
    for _ in range(5):
        with pytest.raises(InvalidCode):
            verifier.verify("user@example.com", "000000")

    issuer.issue("user@example.com", OTPChannel.EMAIL)
    result = verifier.verify("user@example.com", email_gateway.last_code)

    assert result.channel == OTPChannel.EMAIL


def test_verify_uses_most_recent_record(db_session, sms_gateway, email_gateway, verifier, clock):
    codes = iter(["111111", "222222"])
    issuer = OTPIssuer(
        db_session, sms_gateway=sms_gateway, email_gateway=email_gateway,
        clock=clock, code_factory=lambda: next(codes),
    )
    issuer.issue("user@example.com", OTPChannel.EMAIL)
    clock.advance(601)
    issuer.issue("user@example.com", OTPChannel.EMAIL)

    with pytest.raises(InvalidCode):
        verifier.verify("user@example.com", "111111")
    assert verifier.verify("user@example.com", "222222").channel == OTPChannel.EMAIL


def test_unknown_identifier_not_found(verifier):
    with pytest.raises(OTPNotFound):
        verifier.verify("nobody@example.com", "123456")


def test_missing_fields(verifier):
    with pytest.raises(InvalidRequest):
        verifier.verify("user@example.com", "")
    with pytest.raises(InvalidRequest):
        verifier.verify(None, "123456")


# ---------------- Login bridge ----------------
def test_phone_bridge_sets_password_for_existing_account(issuer, verifier, db_session, sms_gateway):
    user = crud.create_user(
        db_session,
        hashed_password=get_password_hash("old-password"),
        full_name="Ravi Kumar",
        phone="+919876543210",
    )
    issuer.issue("+919876543210", OTPChannel.PHONE)
    code = sms_gateway.last_code

    result = verifier.verify("+919876543210", code)

    assert result.can_bridge_login is True
    assert result.user_exists is True
    assert result.login_identifier == "+919876543210"
    db_session.refresh(user)
    assert verify_password(code, user.hashed_password)
    assert not verify_password("old-password", user.hashed_password)
    assert user.phone_confirmed is True


def test_phone_bridge_matches_number_stored_without_plus(issuer, verifier, db_session, sms_gateway):
    crud.create_user(db_session, hashed_password=get_password_hash("x"), phone="919876543210")
    issuer.issue("+91 98765 43210", OTPChannel.PHONE)

    result = verifier.verify("+919876543210", sms_gateway.last_code)

    assert result.can_bridge_login is True
    assert result.login_identifier == "919876543210"


def test_phone_without_account_verifies_but_gets_no_bridge(issuer, verifier, db_session, sms_gateway):
    issuer.issue("+919876543210", OTPChannel.PHONE)

    result = verifier.verify("+919876543210", sms_gateway.last_code)

    assert result.can_bridge_login is False
    assert result.user_exists is False
    assert result.login_identifier is None
    assert _latest(db_session, "919876543210").verified is True


def test_register_mode_creates_phone_account(issuer, verifier, db_session, sms_gateway):
    issuer.issue("+919876543210", OTPChannel.PHONE)
    code = sms_gateway.last_code

    result = verifier.verify("+919876543210", code, mode=VerifyMode.REGISTER, full_name="Asha Devi")

    assert result.can_bridge_login is True
    user = crud.get_user_by_phone(db_session, "919876543210")
    assert user.full_name == "Asha Devi"
    assert user.role == UserRole.CITIZEN
    assert user.email == "919876543210@phone.local"
    assert verify_password(code, user.hashed_password)


def test_email_channel_never_touches_accounts(issuer, verifier, db_session, email_gateway):
    user = crud.create_user(
        db_session,
        hashed_password=get_password_hash("keep-me"),
        email="user@example.com",
    )
    issuer.issue("user@example.com", OTPChannel.EMAIL)

    result = verifier.verify("user@example.com", email_gateway.last_code)

    assert result.can_bridge_login is False
    db_session.refresh(user)
    assert verify_password("keep-me", user.hashed_password)
