# config.py
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


# ------------------ Security ------------------
SECRET_KEY = os.getenv("SECRET_KEY", "change-this-secret")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60))

# Default admin ensured at startup
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@smartjanseva.gov.in")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "AdminPass123!")  # use env var in production

# ------------------ Database ------------------
raw_db_url = os.getenv("DATABASE_URL")
# Render-style "postgres://" URLs are not accepted by SQLAlchemy 2.x
if raw_db_url and raw_db_url.startswith("postgres://"):
    DATABASE_URL = raw_db_url.replace("postgres://", "postgresql://", 1)
else:
    DATABASE_URL = raw_db_url or "sqlite:///./janseva.db"

# ------------------ OTP ------------------
OTP_EXPIRE_SECONDS = int(os.getenv("OTP_EXPIRE_SECONDS", 600))
OTP_MAX_ATTEMPTS = int(os.getenv("OTP_MAX_ATTEMPTS", 5))

# ------------------ 2Factor (SMS / voice) ------------------
TWO_FACTOR_API_KEY = os.getenv("TWO_FACTOR_API_KEY")
TWO_FACTOR_API_URL = os.getenv("TWO_FACTOR_API_URL", "https://2factor.in/API/V1")
TWO_FACTOR_TEMPLATE = os.getenv("TWO_FACTOR_TEMPLATE", "SMARTJANSEVA")
TWO_FACTOR_VOICE_FALLBACK = _env_bool("TWO_FACTOR_VOICE_FALLBACK", "true")

# ------------------ SendGrid (email) ------------------
SENDGRID_API_KEY = os.getenv("SENDGRID_API_KEY")
SENDGRID_FROM_EMAIL = os.getenv("SENDGRID_FROM_EMAIL", "noreply@smartjanseva.gov.in")
SENDGRID_SANDBOX = _env_bool("SENDGRID_SANDBOX")

GATEWAY_TIMEOUT_SECONDS = float(os.getenv("GATEWAY_TIMEOUT_SECONDS", 15))

# ------------------ HTTP ------------------
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
