# janseva/utils/email.py
import logging
from typing import Optional
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail, To, HtmlContent, PlainTextContent, Email, MailSettings, SandBoxMode

from janseva import config
from janseva.utils.exceptions import DispatchError, GatewayNotConfigured

logger = logging.getLogger(__name__)

OTP_SUBJECT = "SMART JANSEVA - OTP Verification"


def render_otp_email(code: str, expires_minutes: int = 10) -> tuple:
    """Return (plain_text, html) bodies for an OTP email."""
    plain_text = (
        f"SMART JANSEVA\n\nYour OTP for verification is: {code}\n"
        f"This OTP is valid for {expires_minutes} minutes.\n"
        "Do not share this OTP with anyone. SMART JANSEVA will never ask for your OTP."
    )
    html = f"""
    <html>
      <body style="font-family: Arial, sans-serif; padding: 20px;">
        <div style="max-width: 600px; margin: 0 auto; background: #f5f5f5; padding: 30px; border-radius: 10px;">
          <h2 style="color: #000080;">SMART JANSEVA</h2>
          <p>Your OTP for verification is:</p>
          <h1 style="color: #FF9933; font-size: 36px; letter-spacing: 5px;">{code}</h1>
          <p>This OTP is valid for {expires_minutes} minutes.</p>
          <p style="color: #666; font-size: 12px;">Do not share this OTP with anyone. SMART JANSEVA will never ask for your OTP.</p>
        </div>
      </body>
    </html>
    """
    return plain_text, html


class SendGridEmailGateway:
    """Send OTP emails via SendGrid. Raises DispatchError unless SendGrid accepts the message."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        from_email: Optional[str] = None,
        sandbox: bool = False,
        expires_minutes: int = 10,
        client: Optional[SendGridAPIClient] = None,
    ):
        self.api_key = api_key
        self.from_email = from_email
        self.sandbox = sandbox
        self.expires_minutes = expires_minutes
        self._client = client

    @classmethod
    def from_config(cls) -> "SendGridEmailGateway":
        return cls(
            api_key=config.SENDGRID_API_KEY,
            from_email=config.SENDGRID_FROM_EMAIL,
            sandbox=config.SENDGRID_SANDBOX,
            expires_minutes=max(1, config.OTP_EXPIRE_SECONDS // 60),
        )

    def _build_message(self, to_email: str, code: str) -> Mail:
        plain_text, html = render_otp_email(code, self.expires_minutes)
        message = Mail(
            from_email=Email(self.from_email),
            to_emails=To(to_email),
            subject=OTP_SUBJECT,
            plain_text_content=PlainTextContent(plain_text),
            html_content=HtmlContent(html)
        )
        # Sandbox mode available for dev (does not deliver)
        if self.sandbox:
            mail_settings = MailSettings()
            mail_settings.sandbox_mode = SandBoxMode(True)
            message.mail_settings = mail_settings
        return message

    def send_otp(self, to_email: str, code: str) -> str:
        if not self.client_configured:
            logger.error("SendGrid not configured (missing API key or sender email).")
            raise GatewayNotConfigured("Email service not configured. Please contact administrator.")

        try:
            message = self._build_message(to_email, code)
            client = self._client or SendGridAPIClient(self.api_key)
            resp = client.send(message)
        except Exception as e:
            # python-http-client raises HTTPError subclasses for 4xx/5xx
            logger.exception("Failed to send email via SendGrid: %s", e)
            raise DispatchError(f"Email delivery failed: {e}")

        code_resp = resp.status_code if resp is not None else None
        logger.info("SendGrid send result: %s", code_resp)
        # SendGrid returns 202 on success, treat 200/202 as ok
        if code_resp not in (200, 202):
            logger.warning("SendGrid returned non-2xx: %s %s", code_resp, getattr(resp, "body", ""))
            raise DispatchError(f"Email delivery failed with status {code_resp}")
        return "email"

    @property
    def client_configured(self) -> bool:
        return bool((self.api_key or self._client) and self.from_email)
