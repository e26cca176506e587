# janseva/utils/sms.py
import logging
import requests
from typing import Optional

from janseva import config
from janseva.utils.exceptions import DispatchError, GatewayNotConfigured
from janseva.utils.normalisation import digits_only

logger = logging.getLogger(__name__)


class TwoFactorSMSGateway:
    """
    OTP delivery through the 2Factor.in OTP API.

      GET {api_url}/{api_key}/SMS/{phone}/{otp}/{template}
      GET {api_url}/{api_key}/VOICE/{phone}/{otp}

    2Factor answers with JSON {"Status": "Success" | "Error", "Details": ...}.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: str = config.TWO_FACTOR_API_URL,
        template: Optional[str] = config.TWO_FACTOR_TEMPLATE,
        voice_fallback: bool = config.TWO_FACTOR_VOICE_FALLBACK,
        timeout: float = config.GATEWAY_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.api_url = api_url.rstrip("/")
        self.template = template
        self.voice_fallback = voice_fallback
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls) -> "TwoFactorSMSGateway":
        return cls(api_key=config.TWO_FACTOR_API_KEY)

    def _call(self, url: str) -> dict:
        try:
            resp = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            # The request URL carries the API key; never surface the exception text
            logger.error("2Factor request failed: %s", type(e).__name__)
            raise DispatchError("Network error sending OTP")

        try:
            data = resp.json()
        except ValueError:
            raise DispatchError(f"2Factor error: {resp.status_code} - {resp.text}")

        if not isinstance(data, dict):
            raise DispatchError(f"2Factor error: unexpected response ({resp.status_code})")

        if data.get("Status") != "Success":
            raise DispatchError(data.get("Details") or "SMS delivery failed")
        return data

    def send_sms(self, phone: str, code: str) -> dict:
        """Send the OTP by SMS. Falls back to the template-less endpoint once if the template is rejected."""
        if not self.api_key:
            logger.error("2Factor API key not configured")
            raise GatewayNotConfigured("SMS service not configured. Please contact administrator.")

        clean_phone = digits_only(phone)
        base = f"{self.api_url}/{self.api_key}/SMS/{clean_phone}/{code}"

        if not self.template:
            return self._call(base)

        try:
            return self._call(f"{base}/{self.template}")
        except DispatchError as e:
            logger.warning("2Factor templated SMS failed (%s); retrying without template", e)
            return self._call(base)

    def send_voice(self, phone: str, code: str) -> dict:
        if not self.api_key:
            raise GatewayNotConfigured("Voice OTP service not configured.")
        clean_phone = digits_only(phone)
        return self._call(f"{self.api_url}/{self.api_key}/VOICE/{clean_phone}/{code}")

    def send_otp(self, phone: str, code: str) -> str:
        """
        Deliver an OTP to a phone number. Returns the channel that accepted it
        ("sms" or "voice"); raises DispatchError when none did.
        """
        try:
            self.send_sms(phone, code)
            return "sms"
        except GatewayNotConfigured:
            raise
        except DispatchError as sms_error:
            if not self.voice_fallback:
                raise
            logger.warning("SMS delivery failed (%s); trying voice call", sms_error)
            try:
                self.send_voice(phone, code)
            except DispatchError as voice_error:
                logger.error("Voice OTP delivery failed: %s", voice_error)
                raise sms_error
            return "voice"
