"""
Error taxonomy of the OTP service.

Every OTPServiceError knows its HTTP status and renders its own JSON body,
so routers simply let them propagate to the app-level handler in main.py.
Gateway-level failures (DispatchError) are internal: the issuer converts
them into DispatchFailed after rolling back the stored record.
"""
from typing import Any, Dict, Optional


class OTPServiceError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.message}


class InvalidRequest(OTPServiceError):
    status_code = 400


class RateLimited(OTPServiceError):
    status_code = 429

    def __init__(self, retry_after: int, message: Optional[str] = None):
        super().__init__(message or f"Please wait {retry_after} seconds before requesting a new OTP.")
        self.retry_after = retry_after

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.message, "retryAfter": self.retry_after}


class DispatchFailed(OTPServiceError):
    status_code = 500

    def __init__(self, message: str, details: str):
        super().__init__(message)
        self.details = details

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.message, "details": self.details}


class OTPNotFound(OTPServiceError):
    status_code = 404

    def __init__(self, message: str = "No OTP found. Please request a new one."):
        super().__init__(message)


class OTPExpired(OTPServiceError):
    status_code = 400

    def __init__(self, message: str = "OTP has expired. Please request a new one."):
        super().__init__(message)


class AttemptsExceeded(OTPServiceError):
    status_code = 400

    def __init__(self, message: str = "Maximum verification attempts exceeded. Please request a new OTP."):
        super().__init__(message)


class InvalidCode(OTPServiceError):
    status_code = 400

    def __init__(self, remaining_attempts: int, message: str = "Invalid OTP. Please try again."):
        super().__init__(message)
        self.remaining_attempts = remaining_attempts

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.message, "remainingAttempts": self.remaining_attempts}


class AuthProviderError(OTPServiceError):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(f"Auth system error: {message}")


# ---------------- Gateway errors ----------------
class DispatchError(Exception):
    """Raised by SMS / email gateways when a message could not be delivered."""


class GatewayNotConfigured(DispatchError):
    pass
